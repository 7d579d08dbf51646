from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel

class EventKind(str, Enum):
    ASSET_REGISTERED = 'AssetRegistered'
    LICENSE_ATTACHED = 'LicenseAttached'
    LICENSE_TOKEN_MINTED = 'LicenseTokenMinted'
    REVENUE_PAID = 'RevenuePaid'
    ROYALTY_CLAIMED = 'RoyaltyClaimed'
    ASSET_TRANSFERRED = 'AssetTransferred'

class TransactionType(str, Enum):
    REGISTER = 'register'
    TRANSFER = 'transfer'
    MINT = 'mint'
    PAY = 'pay'
    CLAIM = 'claim'

class ApplyOutcome(str, Enum):
    APPLIED = 'applied'
    DUPLICATE = 'duplicate'
    SKIPPED = 'skipped'

class AssetRegisteredArgs(BaseModel):
    ipAssetId: int
    name: str
    owner: str
    ipfsHash: Optional[str] = None

class LicenseAttachedArgs(BaseModel):
    ipAssetId: int
    licenseId: int
    licenseType: str

class LicenseTokenMintedArgs(BaseModel):
    licenseId: int
    buyer: str
    amount: int
    price: Optional[int] = None

class RevenuePaidArgs(BaseModel):
    ipAssetId: int
    payer: str
    amount: int
    description: Optional[str] = None

class RoyaltyClaimedArgs(BaseModel):
    ipAssetId: int
    claimant: str
    amount: int

class AssetTransferredArgs(BaseModel):
    ipAssetId: int
    previousOwner: str
    newOwner: str

EventArgs = Union[
    AssetRegisteredArgs,
    LicenseAttachedArgs,
    LicenseTokenMintedArgs,
    RevenuePaidArgs,
    RoyaltyClaimedArgs,
    AssetTransferredArgs
]

class IPAssetEvent(BaseModel):
    kind: EventKind
    shape: str
    args: EventArgs
    contractAddress: str
    logIndex: int
    transactionHash: str
    transactionIndex: int
    blockNumber: int
    sender: Optional[str] = None

class BlockData(BaseModel):
    number: int
    hash: str
    timestamp: int
    transactions: List[str]

class ProcessedBlock(BaseModel):
    number: int
    transactions: int = 0
    matched: int = 0
    applied: int = 0
    duplicates: int = 0
    skipped: int = 0
