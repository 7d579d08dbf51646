from web3 import Web3
from web3.types import TxReceipt

from chainutils.web3 import Web3Provider
from chainutils.logging import debug

from .models import BlockData

class ChainReader(Web3Provider):
    _finalization_delay: int

    def __init__(
        self,
        chainid: str,
        url: str,
        retry_attempts: int,
        retry_delay: int,
        finalization_delay: int = 0,
        timeout: int = 30,
        poa: bool = False
    ):
        super().__init__(chainid, url, retry_attempts, retry_delay, timeout, poa)
        self._finalization_delay = finalization_delay

    def get_head(self) -> int:
        latest_block = self.make_call(self.w3.eth.get_block, 'latest').number
        return latest_block - self._finalization_delay

    def get_block(self, number: int) -> BlockData:
        debug(f'{self.chainid}: getting block {number}')
        block = self.make_call(self.w3.eth.get_block, number)
        return BlockData(
            number=block.number,
            hash=Web3.to_hex(block.hash),
            timestamp=block.timestamp,
            transactions=[Web3.to_hex(h) for h in block.transactions]
        )

    def get_receipt(self, tx_hash: str) -> TxReceipt:
        debug(f'{self.chainid}: getting receipt for {tx_hash}')
        return self.make_call(self.w3.eth.get_transaction_receipt, tx_hash)
