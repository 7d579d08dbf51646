from typing import Callable, Any

from time import sleep

from web3 import Web3, HTTPProvider
from web3.middleware import ExtraDataToPOAMiddleware

from .logging import info, error
from .misc import backoff_delay

class Web3Provider:
    def __init__(
        self,
        chainid: str,
        url: str,
        retry_attempts: int,
        retry_delay: int,
        timeout: int = 30,
        poa: bool = False
    ):
        self.chainid = chainid
        self.w3 = Web3(HTTPProvider(url, request_kwargs={'timeout': timeout}))
        if poa:
            self.w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        self._retry_attempts = retry_attempts
        self._retry_delay = retry_delay

    def make_call(self, func: Callable, *args, **kwargs) -> Any:
        exc = None
        attempts = 0
        while True:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                exc = e
                error(f'{self.chainid}: not able to get data: {e}')
            attempts += 1
            if attempts < self._retry_attempts:
                delay = backoff_delay(self._retry_delay, attempts - 1)
                info(f'{self.chainid}: repeat attempt in {delay} seconds')
                sleep(delay)
            else:
                break
        raise exc
