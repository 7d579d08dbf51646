from chainutils.misc import every

from infringement.settings import Settings
from infringement.connector import YakoaConnector
from infringement.registrar import MonitoringRegistrar
from ipassets.db.adapter import DBAdapter
from ipassets.db.queries import MirrorReader

if __name__ == '__main__':
    settings = Settings.get()
    db = DBAdapter(settings.database_url)
    db.check_schema()
    registrar = MonitoringRegistrar(
        MirrorReader(db),
        YakoaConnector(settings.yakoa_backend_url, settings.yakoa_api_key),
        settings.infringement_report_file
    )
    every(registrar.loop, settings.yakoa_register_interval)
