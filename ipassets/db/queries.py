from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel
from sqlalchemy import func, select, update

from ..models import TransactionType
from .adapter import DBAdapter
from .models import (
    IPAsset,
    IPAssetTransaction,
    License,
    LicenseMint,
    Royalty,
    RoyaltyClaim,
)

class AssetAnalytics(BaseModel):
    ipAssetId: int
    totalLicenseSales: int
    totalRevenue: int
    totalRoyaltyClaims: int
    activeLicenses: int
    totalTransactions: int

class MirrorReader:
    _db: DBAdapter

    def __init__(self, db: DBAdapter):
        self._db = db

    def find_asset(self, contract_address: str, token_id: int) -> Optional[IPAsset]:
        with self._db.session() as session:
            return session.scalar(
                select(IPAsset).where(
                    IPAsset.contract_address == contract_address,
                    IPAsset.token_id == token_id
                )
            )

    def assets_of(self, owner: str) -> List[IPAsset]:
        with self._db.session() as session:
            return list(session.scalars(
                select(IPAsset).where(IPAsset.owner == owner).order_by(IPAsset.id)
            ))

    def licenses_of(self, asset_id: int) -> List[License]:
        with self._db.session() as session:
            return list(session.scalars(
                select(License).where(License.ip_asset_id == asset_id).order_by(License.id)
            ))

    def pending_monitoring(self) -> List[IPAsset]:
        """Active assets not yet registered for infringement monitoring."""
        with self._db.session() as session:
            return list(session.scalars(
                select(IPAsset)
                .where(IPAsset.is_active.is_(True), IPAsset.monitored_at.is_(None))
                .order_by(IPAsset.id)
            ))

    def monitored_assets(self) -> List[IPAsset]:
        with self._db.session() as session:
            return list(session.scalars(
                select(IPAsset)
                .where(IPAsset.is_active.is_(True), IPAsset.monitored_at.is_not(None))
                .order_by(IPAsset.id)
            ))

    def registration_tx(self, asset_id: int) -> Optional[str]:
        with self._db.session() as session:
            return session.scalar(
                select(IPAssetTransaction.transaction_hash)
                .where(
                    IPAssetTransaction.ip_asset_id == asset_id,
                    IPAssetTransaction.type == TransactionType.REGISTER.value
                )
                .order_by(IPAssetTransaction.id)
                .limit(1)
            )

    def mark_monitored(self, asset_id: int):
        with self._db.begin() as session:
            session.execute(
                update(IPAsset)
                .where(IPAsset.id == asset_id)
                .values(monitored_at=datetime.now(timezone.utc))
            )

    def asset_analytics(self, asset_id: int) -> Optional[AssetAnalytics]:
        with self._db.session() as session:
            asset = session.get(IPAsset, asset_id)
            if asset is None:
                return None

            # uint256 columns are summed in Python
            license_sales = sum(session.scalars(
                select(LicenseMint.amount)
                .join(License, LicenseMint.license_id == License.id)
                .where(License.ip_asset_id == asset_id)
            ))
            royalty_claims = sum(session.scalars(
                select(RoyaltyClaim.amount)
                .join(Royalty, RoyaltyClaim.royalty_id == Royalty.id)
                .where(Royalty.ip_asset_id == asset_id)
            ))
            active_licenses = session.scalar(
                select(func.count(License.id))
                .where(License.ip_asset_id == asset_id, License.is_active.is_(True))
            )
            transactions = session.scalar(
                select(func.count(IPAssetTransaction.id))
                .where(IPAssetTransaction.ip_asset_id == asset_id)
            )

            return AssetAnalytics(
                ipAssetId=asset.token_id,
                totalLicenseSales=license_sales,
                totalRevenue=asset.total_revenue,
                totalRoyaltyClaims=royalty_claims,
                activeLicenses=active_licenses,
                totalTransactions=transactions
            )
