from typing import List, Optional

from json import dump

from pydantic import BaseModel

from chainutils.logging import info, error

from .db.queries import AssetAnalytics, MirrorReader

class LicenseSummary(BaseModel):
    licenseId: int
    licenseType: str
    currentMints: int
    maxMints: Optional[int] = None
    isActive: bool

class OwnedAsset(BaseModel):
    ipAssetId: int
    contractAddress: str
    name: str
    monitored: bool
    licenses: List[LicenseSummary] = []
    analytics: AssetAnalytics

class OwnerReport(BaseModel):
    owner: str
    assets: List[OwnedAsset] = []
    totalRevenue: int = 0

def owner_report(reader: MirrorReader, owner: str) -> OwnerReport:
    """Portfolio of the mirrored IP assets held by ``owner``."""
    report = OwnerReport(owner=owner)
    for asset in reader.assets_of(owner):
        licenses = [
            LicenseSummary(
                licenseId=lic.token_id,
                licenseType=lic.license_type,
                currentMints=lic.current_mints,
                maxMints=lic.max_mints,
                isActive=lic.is_active
            ) for lic in reader.licenses_of(asset.id)
        ]
        report.assets.append(OwnedAsset(
            ipAssetId=asset.token_id,
            contractAddress=asset.contract_address,
            name=asset.name,
            monitored=asset.monitored_at is not None,
            licenses=licenses,
            analytics=reader.asset_analytics(asset.id)
        ))
        report.totalRevenue += asset.total_revenue
    info(f'report: {len(report.assets)} IP assets owned by {owner}')
    return report

def save_report(report: BaseModel, filename: str) -> bool:
    retval = False
    try:
        with open(filename, 'w') as json_file:
            dump(report.model_dump(mode='json'), json_file)
            retval = True
    except Exception as e:
        error(f'report: cannot save report to {filename} with the reason {e}')
    return retval
