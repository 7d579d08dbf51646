from concurrent.futures import ThreadPoolExecutor
from typing import List

from web3.types import TxReceipt

from chainutils.logging import info, debug

from .contract import IPAssetManagerContract
from .db.checkpoint import CheckpointTracker
from .db.mirror import MirrorWriter
from .models import ApplyOutcome, ProcessedBlock
from .web3 import ChainReader

class Indexer:
    _chain: str
    _reader: ChainReader
    _contract: IPAssetManagerContract
    _mirror: MirrorWriter
    _checkpoint: CheckpointTracker
    _receipt_workers: int

    def __init__(
        self,
        reader: ChainReader,
        contract: IPAssetManagerContract,
        mirror: MirrorWriter,
        checkpoint: CheckpointTracker,
        receipt_workers: int = 1
    ):
        self._chain = reader.chainid
        self._reader = reader
        self._contract = contract
        self._mirror = mirror
        self._checkpoint = checkpoint
        self._receipt_workers = max(1, receipt_workers)

    def _get_receipts(self, tx_hashes: List[str]) -> List[TxReceipt]:
        if self._receipt_workers == 1 or len(tx_hashes) < 2:
            return [self._reader.get_receipt(h) for h in tx_hashes]
        # map keeps the block order of transactions
        with ThreadPoolExecutor(max_workers=self._receipt_workers) as pool:
            return list(pool.map(self._reader.get_receipt, tx_hashes))

    def process_block(self, number: int) -> ProcessedBlock:
        block = self._reader.get_block(number)
        result = ProcessedBlock(number=number, transactions=len(block.transactions))

        for receipt in self._get_receipts(block.transactions):
            if not self._contract.is_watched(receipt['to']):
                continue
            result.matched += 1
            for log_rec in receipt['logs']:
                event = self._contract.process_log(log_rec, sender=receipt['from'])
                if event is None:
                    continue
                outcome = self._mirror.apply(event)
                if outcome == ApplyOutcome.APPLIED:
                    result.applied += 1
                elif outcome == ApplyOutcome.DUPLICATE:
                    result.duplicates += 1
                else:
                    result.skipped += 1

        self._checkpoint.advance(number)

        if result.matched > 0:
            info(f'indexer:{self._chain}: block {number}: {result.matched} of {result.transactions} txs matched, '
                 f'{result.applied} applied, {result.duplicates} duplicates, {result.skipped} skipped')
        else:
            debug(f'indexer:{self._chain}: block {number}: no matching txs')
        return result
