from typing import Optional
from pydantic import BaseModel

class RPCSpec(BaseModel):
    url: str
    timeout: int = 30
    poa: bool = False

class ContractsSpec(BaseModel):
    enhanced: str
    basic: str

class DeploymentDescriptor(BaseModel):
    name: str
    finalization: int = 0
    events_pull_interval: int = 5
    start_block: Optional[int] = None
    rpc: RPCSpec
    contracts: ContractsSpec
