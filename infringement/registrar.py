from typing import Optional

from chainutils.logging import info, warning

from ipassets.db.models import IPAsset
from ipassets.db.queries import MirrorReader
from ipassets.report import save_report

from .connector import YakoaConnector
from .models import (
    AssetFailure,
    AssetInfringementReport,
    InfringementReport,
    RegistrationData,
    RegistrationSummary,
)

def token_id_of(asset: IPAsset) -> str:
    return f'{asset.contract_address}:{int(asset.token_id)}'

class MonitoringRegistrar:
    """Registers mirrored IP assets with the infringement monitoring service.

    Only active assets without ``monitored_at`` are picked up; an asset is
    marked monitored once the service accepted it or reported it as already
    known, so a failed registration is retried on the next round.
    """
    _reader: MirrorReader
    _connector: YakoaConnector
    _report_filename: Optional[str]

    def __init__(self, reader: MirrorReader, connector: YakoaConnector, report_filename: Optional[str] = None):
        self._reader = reader
        self._connector = connector
        self._report_filename = report_filename

    def _registration_data(self, asset: IPAsset) -> RegistrationData:
        return RegistrationData(
            tokenId=token_id_of(asset),
            transactionHash=self._reader.registration_tx(asset.id) or '',
            creatorId=asset.owner,
            title=asset.name,
            description=asset.description or '',
            mediaUrl=asset.metadata_uri,
            ipfsHash=asset.ipfs_hash
        )

    def register_pending(self) -> RegistrationSummary:
        assets = self._reader.pending_monitoring()
        summary = RegistrationSummary(total=len(assets))
        if len(assets) == 0:
            info(f'registrar: no IP assets pending monitoring registration')
            return summary

        if not self._connector.health_check():
            warning(f'registrar: monitoring service is not healthy, registration postponed')
            for asset in assets:
                summary.failed.append(AssetFailure(ipAssetId=int(asset.token_id), error='service unavailable'))
            summary.failureCount = len(summary.failed)
            return summary

        info(f'registrar: registering {len(assets)} IP assets for monitoring')
        for asset in assets:
            result = self._connector.register_asset(int(asset.token_id), self._registration_data(asset))
            if result.success:
                self._reader.mark_monitored(asset.id)
                summary.successful.append(result)
            else:
                summary.failed.append(AssetFailure(ipAssetId=result.ipAssetId, error=result.message))

        summary.successCount = len(summary.successful)
        summary.failureCount = len(summary.failed)
        info(f'registrar: {summary.successCount} of {summary.total} IP assets registered, {summary.failureCount} failed')
        return summary

    def report_infringements(self) -> InfringementReport:
        assets = self._reader.monitored_assets()
        report = InfringementReport(total=len(assets))
        info(f'registrar: fetching infringement reports for {len(assets)} IP assets')
        for asset in assets:
            status = self._connector.check_status(token_id_of(asset))
            if status is None:
                report.errors.append(AssetFailure(ipAssetId=asset.token_id, error='status is not available'))
            else:
                report.reports.append(AssetInfringementReport(ipAssetId=asset.token_id, name=asset.name, status=status))

        report.successCount = len(report.reports)
        report.failureCount = len(report.errors)
        info(f'registrar: {report.successCount} of {report.total} infringement reports received, {report.failureCount} failed')
        return report

    def loop(self):
        self.register_pending()
        report = self.report_infringements()
        if self._report_filename:
            save_report(report, self._report_filename)
