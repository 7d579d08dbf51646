from chainutils.settings.common import CommonSettings

class Settings(CommonSettings):
    yakoa_backend_url: str = 'http://localhost:5000'
    yakoa_api_key: str = ''
    yakoa_register_interval: int = 300
    infringement_report_file: str = 'infringement-report.json'

    def __init__(self, **values):
        def api_key_formatter(key: str) -> str:
            if len(key) <= 4:
                return '*' * len(key)
            return f'{key[:2]}...{key[-2:]}'

        super().__init__(**values)

        self.extend_formatters({'yakoa_api_key': api_key_formatter})
