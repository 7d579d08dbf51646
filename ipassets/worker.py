from typing import Optional

from queue import Empty, Queue
from threading import Event, Thread

from chainutils.logging import info, error, warning
from chainutils.misc import backoff_delay, every

from .db.checkpoint import CheckpointTracker
from .db.exceptions import CheckpointConflict
from .exceptions import BlockProcessingError
from .main import Indexer
from .models import ProcessedBlock
from .web3 import ChainReader

class BlockPoller:
    """Feeds block numbers to the indexer strictly in order.

    The head observed at startup is queued as the backfill target and a
    watcher thread queues the current head every ``pull_interval`` seconds.
    A single consumer drains the queue, so backfill and live blocks never
    interleave. A block that keeps failing halts the poller with
    ``BlockProcessingError``; the watermark stays on the previous block.
    """
    _chain: str
    _indexer: Indexer
    _reader: ChainReader
    _checkpoint: CheckpointTracker
    _pull_interval: float
    _retry_attempts: int
    _retry_delay: float
    _targets: Queue
    _stop: Event
    _watcher_stop: Optional[Event]

    def __init__(
        self,
        indexer: Indexer,
        reader: ChainReader,
        checkpoint: CheckpointTracker,
        pull_interval: float,
        retry_attempts: int,
        retry_delay: float
    ):
        self._chain = reader.chainid
        self._indexer = indexer
        self._reader = reader
        self._checkpoint = checkpoint
        self._pull_interval = pull_interval
        self._retry_attempts = max(1, retry_attempts)
        self._retry_delay = retry_delay
        self._targets = Queue()
        self._stop = Event()
        self._watcher_stop = None

    def notify(self, block_number: int):
        self._targets.put(block_number)

    def stop(self):
        info(f'indexer:{self._chain}: stop requested')
        self._stop.set()
        if self._watcher_stop:
            self._watcher_stop.set()
        # wake up the consumer if it waits for a target
        self._targets.put(None)

    def is_stopped(self) -> bool:
        return self._stop.is_set()

    def _next_target(self) -> Optional[int]:
        """Blocks for a target, then drains the queue and keeps the highest one."""
        targets = [self._targets.get()]
        while True:
            try:
                targets.append(self._targets.get_nowait())
            except Empty:
                break
        targets = [t for t in targets if t is not None]
        return max(targets) if targets else None

    def _watch_head(self):
        try:
            head = self._reader.get_head()
        except Exception as e:
            error(f'indexer:{self._chain}: cannot get chain head: {e}')
            return
        self.notify(head)

    def _start_watcher(self) -> Thread:
        self._watcher_stop = Event()
        watcher = Thread(
            target=lambda: every(self._watch_head, self._pull_interval, self._watcher_stop),
            name=f'{self._chain}-head-watcher',
            daemon=True
        )
        watcher.start()
        return watcher

    def _process(self, block_number: int) -> Optional[ProcessedBlock]:
        attempts = 0
        while True:
            try:
                return self._indexer.process_block(block_number)
            except CheckpointConflict:
                raise
            except Exception as e:
                attempts += 1
                error(f'indexer:{self._chain}: block {block_number} failed (attempt {attempts} of {self._retry_attempts}): {e}')
                if attempts >= self._retry_attempts:
                    raise BlockProcessingError(block_number, attempts) from e
            delay = backoff_delay(self._retry_delay, attempts - 1)
            info(f'indexer:{self._chain}: retry block {block_number} in {delay} seconds')
            if self._stop.wait(delay):
                return None

    def run(self):
        if self._stop.is_set():
            warning(f'indexer:{self._chain}: poller is stopped')
            return

        watermark = self._checkpoint.load()
        head = self._reader.get_head()
        info(f'indexer:{self._chain}: backfill from block {watermark + 1} to {head}')
        self.notify(head)

        self._start_watcher()
        try:
            while not self._stop.is_set():
                target = self._next_target()
                if target is None or target <= watermark:
                    continue
                while watermark < target and not self._stop.is_set():
                    if self._process(watermark + 1) is None:
                        break
                    watermark += 1
        finally:
            self._watcher_stop.set()
        info(f'indexer:{self._chain}: stopped at block {watermark}')
