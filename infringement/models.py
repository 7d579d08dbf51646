from typing import Any, List, Optional

from pydantic import BaseModel

class RegistrationData(BaseModel):
    tokenId: str
    transactionHash: str
    creatorId: str
    title: str
    description: str = ''
    mediaUrl: Optional[str] = None
    ipfsHash: Optional[str] = None

class RegistrationResult(BaseModel):
    ipAssetId: int
    success: bool
    alreadyRegistered: bool = False
    message: str = ''
    data: Optional[Any] = None

class InfringementStatus(BaseModel):
    tokenId: str
    status: str = 'unknown'
    infringements: List[Any] = []
    lastChecked: int

class AssetFailure(BaseModel):
    ipAssetId: int
    error: str

class RegistrationSummary(BaseModel):
    successful: List[RegistrationResult] = []
    failed: List[AssetFailure] = []
    total: int = 0
    successCount: int = 0
    failureCount: int = 0

class AssetInfringementReport(BaseModel):
    ipAssetId: int
    name: str
    status: InfringementStatus

class InfringementReport(BaseModel):
    reports: List[AssetInfringementReport] = []
    errors: List[AssetFailure] = []
    total: int = 0
    successCount: int = 0
    failureCount: int = 0
