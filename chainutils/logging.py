from os import getenv

from logging import basicConfig, getLogger, WARNING
from logging import info, debug, warning, error, exception

basicConfig(
    level=getenv('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s %(levelname)s [%(threadName)s] %(message)s'
)
getLogger('web3').setLevel(WARNING)
getLogger('urllib3').setLevel(WARNING)

__all__ = ['info', 'debug', 'warning', 'error', 'exception']
