from functools import cache
from typing import Callable, Dict, List, Optional, Tuple

from eth_abi.exceptions import DecodingError
from eth_utils import event_abi_to_log_topic
from hexbytes import HexBytes
from web3 import Web3
from web3.contract import Contract
from web3.exceptions import LogTopicError, MismatchedABI

from chainutils.abi import ABI, get_abi, get_event_abis
from chainutils.constants import BASIC_SHAPE, ENHANCED_SHAPE
from chainutils.logging import debug, warning

from .models import (
    EventKind,
    IPAssetEvent,
    AssetRegisteredArgs,
    LicenseAttachedArgs,
    LicenseTokenMintedArgs,
    RevenuePaidArgs,
    RoyaltyClaimedArgs,
    AssetTransferredArgs,
)

# Order matters: when several shapes share a topic, the first one that
# decodes wins.
SHAPES = [
    (ENHANCED_SHAPE, ABI.IP_ASSET_MANAGER_ENHANCED),
    (BASIC_SHAPE, ABI.IP_ASSET_MANAGER),
]

EVENT_KINDS = {
    'IPAssetRegistered': EventKind.ASSET_REGISTERED,
    'LicenseAttached': EventKind.LICENSE_ATTACHED,
    'LicenseTokenMinted': EventKind.LICENSE_TOKEN_MINTED,
    'RevenuePaid': EventKind.REVENUE_PAID,
    'RoyaltyClaimed': EventKind.ROYALTY_CLAIMED,
    'IPAssetTransferred': EventKind.ASSET_TRANSFERRED,
}

def _asset_registered(args) -> AssetRegisteredArgs:
    return AssetRegisteredArgs(
        ipAssetId=args['ipAssetId'],
        name=args['name'],
        owner=args['owner'],
        ipfsHash=args.get('ipfsHash') or None
    )

def _license_attached(args) -> LicenseAttachedArgs:
    # the basic contract carries encrypted terms in place of the type label
    license_type = args['licenseType'] if 'licenseType' in args else args['encryptedTerms']
    return LicenseAttachedArgs(
        ipAssetId=args['ipAssetId'],
        licenseId=args['licenseId'],
        licenseType=license_type
    )

def _license_token_minted(args) -> LicenseTokenMintedArgs:
    return LicenseTokenMintedArgs(
        licenseId=args['licenseId'],
        buyer=args['to'],
        amount=args['amount'],
        price=args.get('price')
    )

def _revenue_paid(args) -> RevenuePaidArgs:
    return RevenuePaidArgs(
        ipAssetId=args['ipAssetId'],
        payer=args['payer'],
        amount=args['amount'],
        description=args.get('description')
    )

def _royalty_claimed(args) -> RoyaltyClaimedArgs:
    return RoyaltyClaimedArgs(
        ipAssetId=args['ipAssetId'],
        claimant=args['claimant'],
        amount=args['amount']
    )

def _asset_transferred(args) -> AssetTransferredArgs:
    return AssetTransferredArgs(
        ipAssetId=args['ipAssetId'],
        previousOwner=args['from'],
        newOwner=args['to']
    )

ARGS_CONVERTERS: Dict[EventKind, Callable] = {
    EventKind.ASSET_REGISTERED: _asset_registered,
    EventKind.LICENSE_ATTACHED: _license_attached,
    EventKind.LICENSE_TOKEN_MINTED: _license_token_minted,
    EventKind.REVENUE_PAID: _revenue_paid,
    EventKind.ROYALTY_CLAIMED: _royalty_claimed,
    EventKind.ASSET_TRANSFERRED: _asset_transferred,
}

class IPAssetManagerContract:
    _watched: Dict[str, str]
    _contracts: Dict[str, Contract]

    def __init__(self, w3: Web3, enhanced_address: str, basic_address: str):
        self._watched = {
            Web3.to_checksum_address(enhanced_address): ENHANCED_SHAPE,
            Web3.to_checksum_address(basic_address): BASIC_SHAPE,
        }
        self._contracts = {
            shape: w3.eth.contract(abi=get_abi(abi)) for (shape, abi) in SHAPES
        }

    def watched_addresses(self) -> List[str]:
        return list(self._watched.keys())

    def is_watched(self, address: Optional[str]) -> bool:
        if not address:
            return False
        return Web3.to_checksum_address(address) in self._watched

    @cache
    def _get_event_decoders(self) -> Dict[bytes, List[Tuple[str, str]]]:
        decoders = {}
        for (shape, abi) in SHAPES:
            for event_abi in get_event_abis(abi):
                topic = bytes(event_abi_to_log_topic(event_abi))
                decoders.setdefault(topic, []).append((shape, event_abi['name']))
        return decoders

    def process_log(self, log_rec, sender: Optional[str] = None) -> Optional[IPAssetEvent]:
        if not self.is_watched(log_rec['address']):
            return None
        if len(log_rec['topics']) == 0:
            return None

        candidates = self._get_event_decoders().get(bytes(HexBytes(log_rec['topics'][0])))
        if not candidates:
            debug(f"decoder: unknown topic in log {log_rec['logIndex']} of {Web3.to_hex(log_rec['transactionHash'])}")
            return None

        for (shape, name) in candidates:
            try:
                pl = getattr(self._contracts[shape].events, name).process_log(log_rec)
            except (MismatchedABI, LogTopicError, DecodingError) as e:
                debug(f'decoder: {name} of {shape} shape does not fit: {e}')
                continue

            kind = EVENT_KINDS[name]
            return IPAssetEvent(
                kind=kind,
                shape=shape,
                args=ARGS_CONVERTERS[kind](pl['args']),
                contractAddress=Web3.to_checksum_address(pl['address']),
                logIndex=pl['logIndex'],
                transactionHash=Web3.to_hex(pl['transactionHash']),
                transactionIndex=pl['transactionIndex'],
                blockNumber=pl['blockNumber'],
                sender=sender
            )

        warning(f"decoder: cannot decode log {log_rec['logIndex']} of {Web3.to_hex(log_rec['transactionHash'])} with any known shape")
        return None
