from typing import Callable, Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from chainutils.logging import info, warning, debug

from ..models import (
    ApplyOutcome,
    EventKind,
    IPAssetEvent,
    TransactionType,
)
from .adapter import DBAdapter
from .models import (
    IPAsset,
    IPAssetTransaction,
    License,
    LicenseMint,
    Payment,
    ProcessedLog,
    Royalty,
    RoyaltyClaim,
)

Handler = Callable[[Session, IPAssetEvent], ApplyOutcome]

class MirrorWriter:
    """Applies decoded events to the mirror tables.

    Every event is applied in its own transaction together with its
    ``processed_logs`` mark, so replaying a log that was already applied is a
    no-op. Database errors are not handled here and abort the caller's block.
    """
    _db: DBAdapter
    _handlers: Dict[EventKind, Handler]

    def __init__(self, db: DBAdapter):
        self._db = db
        self._handlers = {
            EventKind.ASSET_REGISTERED: self._on_asset_registered,
            EventKind.LICENSE_ATTACHED: self._on_license_attached,
            EventKind.LICENSE_TOKEN_MINTED: self._on_license_token_minted,
            EventKind.REVENUE_PAID: self._on_revenue_paid,
            EventKind.ROYALTY_CLAIMED: self._on_royalty_claimed,
            EventKind.ASSET_TRANSFERRED: self._on_asset_transferred,
        }

    def apply(self, event: IPAssetEvent) -> ApplyOutcome:
        with self._db.begin() as session:
            if session.get(ProcessedLog, (event.transactionHash, event.logIndex)):
                debug(f'mirror: log {event.logIndex} of {event.transactionHash} already applied')
                return ApplyOutcome.DUPLICATE

            outcome = self._handlers[event.kind](session, event)
            session.add(ProcessedLog(
                transaction_hash=event.transactionHash,
                log_index=event.logIndex,
                block_number=event.blockNumber,
                event=event.kind.value,
                outcome=outcome.value
            ))
        return outcome

    def _find_asset(self, session: Session, contract: str, token_id: int, for_update: bool = False) -> Optional[IPAsset]:
        query = select(IPAsset).where(
            IPAsset.contract_address == contract,
            IPAsset.token_id == token_id
        )
        if for_update:
            query = query.with_for_update()
        return session.scalar(query)

    def _find_license(self, session: Session, contract: str, token_id: int, for_update: bool = False) -> Optional[License]:
        query = select(License).where(
            License.contract_address == contract,
            License.token_id == token_id
        )
        if for_update:
            query = query.with_for_update()
        return session.scalar(query)

    def _record_transaction(
        self,
        session: Session,
        asset_id: int,
        event: IPAssetEvent,
        tx_type: TransactionType,
        from_address: str,
        to_address: Optional[str] = None,
        amount: Optional[int] = None,
        details: Optional[dict] = None
    ):
        session.add(IPAssetTransaction(
            ip_asset_id=asset_id,
            transaction_hash=event.transactionHash,
            log_index=event.logIndex,
            block_number=event.blockNumber,
            from_address=from_address,
            to_address=to_address,
            type=tx_type.value,
            amount=amount,
            details=details
        ))

    def _on_asset_registered(self, session: Session, event: IPAssetEvent) -> ApplyOutcome:
        args = event.args
        info(f'mirror: IP asset registered: id {args.ipAssetId}, name "{args.name}", owner {args.owner}')
        asset = self._find_asset(session, event.contractAddress, args.ipAssetId)
        if asset is None:
            asset = IPAsset(
                contract_address=event.contractAddress,
                token_id=args.ipAssetId,
                name=args.name,
                owner=args.owner,
                ipfs_hash=args.ipfsHash
            )
            session.add(asset)
            session.flush()
        else:
            asset.name = args.name
            asset.owner = args.owner
            if args.ipfsHash:
                asset.ipfs_hash = args.ipfsHash

        self._record_transaction(
            session,
            asset.id,
            event,
            TransactionType.REGISTER,
            from_address=event.sender or args.owner,
            to_address=args.owner,
            details={'name': args.name, 'ipfsHash': args.ipfsHash or ''}
        )
        return ApplyOutcome.APPLIED

    def _on_license_attached(self, session: Session, event: IPAssetEvent) -> ApplyOutcome:
        args = event.args
        info(f'mirror: license attached: IP asset {args.ipAssetId}, license {args.licenseId}, type "{args.licenseType}"')
        asset = self._find_asset(session, event.contractAddress, args.ipAssetId)
        if asset is None:
            warning(f'mirror: IP asset {args.ipAssetId} of {event.contractAddress} is not mirrored, license {args.licenseId} stays unlinked')

        lic = self._find_license(session, event.contractAddress, args.licenseId)
        if lic is None:
            session.add(License(
                ip_asset_id=asset.id if asset else None,
                contract_address=event.contractAddress,
                token_id=args.licenseId,
                license_type=args.licenseType
            ))
        else:
            lic.license_type = args.licenseType
            if asset and lic.ip_asset_id is None:
                lic.ip_asset_id = asset.id
        return ApplyOutcome.APPLIED

    def _on_license_token_minted(self, session: Session, event: IPAssetEvent) -> ApplyOutcome:
        args = event.args
        info(f'mirror: license token minted: license {args.licenseId}, buyer {args.buyer}, amount {args.amount}, price {args.price}')
        lic = self._find_license(session, event.contractAddress, args.licenseId, for_update=True)
        if lic is None:
            warning(f'mirror: license {args.licenseId} of {event.contractAddress} is not mirrored, mint skipped')
            return ApplyOutcome.SKIPPED

        session.add(LicenseMint(
            license_id=lic.id,
            buyer=args.buyer,
            amount=args.amount,
            price=args.price,
            transaction_hash=event.transactionHash,
            log_index=event.logIndex,
            block_number=event.blockNumber
        ))
        # the row stays locked until the event transaction commits
        lic.current_mints = lic.current_mints + args.amount
        if lic.ip_asset_id is not None:
            self._record_transaction(
                session,
                lic.ip_asset_id,
                event,
                TransactionType.MINT,
                from_address=event.sender or args.buyer,
                to_address=args.buyer,
                amount=args.price,
                details={'licenseId': str(args.licenseId), 'quantity': str(args.amount)}
            )
        return ApplyOutcome.APPLIED

    def _on_revenue_paid(self, session: Session, event: IPAssetEvent) -> ApplyOutcome:
        args = event.args
        info(f'mirror: revenue paid: IP asset {args.ipAssetId}, payer {args.payer}, amount {args.amount}')
        asset = self._find_asset(session, event.contractAddress, args.ipAssetId, for_update=True)
        if asset is None:
            warning(f'mirror: IP asset {args.ipAssetId} of {event.contractAddress} is not mirrored, payment skipped')
            return ApplyOutcome.SKIPPED

        session.add(Payment(
            ip_asset_id=asset.id,
            payer=args.payer,
            amount=args.amount,
            description=args.description,
            transaction_hash=event.transactionHash,
            log_index=event.logIndex,
            block_number=event.blockNumber
        ))
        asset.total_revenue = asset.total_revenue + args.amount
        self._record_transaction(
            session,
            asset.id,
            event,
            TransactionType.PAY,
            from_address=args.payer,
            amount=args.amount,
            details={'description': args.description or ''}
        )
        return ApplyOutcome.APPLIED

    def _on_royalty_claimed(self, session: Session, event: IPAssetEvent) -> ApplyOutcome:
        args = event.args
        info(f'mirror: royalty claimed: IP asset {args.ipAssetId}, claimant {args.claimant}, amount {args.amount}')
        asset = self._find_asset(session, event.contractAddress, args.ipAssetId)
        if asset is None:
            warning(f'mirror: IP asset {args.ipAssetId} of {event.contractAddress} is not mirrored, claim skipped')
            return ApplyOutcome.SKIPPED

        # TODO: bind the claim to the claimant's royalty share once the event carries its id
        royalty = session.scalar(
            select(Royalty).where(Royalty.ip_asset_id == asset.id).order_by(Royalty.id).limit(1)
        )
        if royalty is None:
            warning(f'mirror: IP asset {args.ipAssetId} has no royalty record, claim skipped')
            return ApplyOutcome.SKIPPED

        session.add(RoyaltyClaim(
            royalty_id=royalty.id,
            claimant=args.claimant,
            amount=args.amount,
            transaction_hash=event.transactionHash,
            log_index=event.logIndex,
            block_number=event.blockNumber
        ))
        self._record_transaction(
            session,
            asset.id,
            event,
            TransactionType.CLAIM,
            from_address=args.claimant,
            amount=args.amount
        )
        return ApplyOutcome.APPLIED

    def _on_asset_transferred(self, session: Session, event: IPAssetEvent) -> ApplyOutcome:
        args = event.args
        info(f'mirror: IP asset transferred: id {args.ipAssetId}, from {args.previousOwner} to {args.newOwner}')
        asset = self._find_asset(session, event.contractAddress, args.ipAssetId)
        if asset is None:
            warning(f'mirror: IP asset {args.ipAssetId} of {event.contractAddress} is not mirrored, creating it from the transfer')
            asset = IPAsset(
                contract_address=event.contractAddress,
                token_id=args.ipAssetId,
                owner=args.newOwner
            )
            session.add(asset)
            session.flush()
        else:
            asset.owner = args.newOwner

        self._record_transaction(
            session,
            asset.id,
            event,
            TransactionType.TRANSFER,
            from_address=args.previousOwner,
            to_address=args.newOwner,
            details={'ipAssetId': str(args.ipAssetId)}
        )
        return ApplyOutcome.APPLIED
