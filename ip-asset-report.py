from web3 import Web3

from chainutils.logging import error

from ipassets.settings import ReportSettings
from ipassets.db.adapter import DBAdapter
from ipassets.db.queries import MirrorReader
from ipassets.report import owner_report, save_report

if __name__ == '__main__':
    settings = ReportSettings.get()
    if not Web3.is_address(settings.report_owner):
        error(f'REPORT_OWNER is not a valid address: "{settings.report_owner}"')
        exit(1)
    db = DBAdapter(settings.database_url)
    db.check_schema()
    report = owner_report(MirrorReader(db), Web3.to_checksum_address(settings.report_owner))
    if not save_report(report, settings.report_file):
        exit(1)
