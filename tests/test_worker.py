import threading

import pytest

from sqlalchemy import func, select

from ipassets.db.checkpoint import CheckpointTracker
from ipassets.db.models import IPAsset, ProcessedLog
from ipassets.exceptions import BlockProcessingError
from ipassets.main import Indexer
from ipassets.models import ProcessedBlock
from ipassets.worker import BlockPoller

from chainfakes import ALICE, ENHANCED, FakeChainReader, make_log, make_receipt, tx_hash

class RecordingIndexer:
    """Advances the checkpoint like Indexer and records processed blocks."""

    def __init__(self, checkpoint: CheckpointTracker, stop_at: int = None):
        self.checkpoint = checkpoint
        self.stop_at = stop_at
        self.poller = None
        self.processed = []
        self.failures = {}

    def process_block(self, number: int) -> ProcessedBlock:
        if self.failures.get(number, 0) > 0:
            self.failures[number] -= 1
            raise ConnectionError(f'block {number} is not available')
        self.processed.append(number)
        self.checkpoint.advance(number)
        if number == self.stop_at:
            self.poller.stop()
        return ProcessedBlock(number=number)

def run_with_timeout(poller: BlockPoller, timeout: float = 10):
    errors = []
    def target():
        try:
            poller.run()
        except Exception as e:
            errors.append(e)
    thread = threading.Thread(target=target, daemon=True)
    thread.start()
    thread.join(timeout)
    if thread.is_alive():
        poller.stop()
        thread.join(timeout)
        pytest.fail('poller did not stop')
    return errors

def make_poller(chain, indexer, checkpoint, attempts=3) -> BlockPoller:
    poller = BlockPoller(indexer, chain, checkpoint, 0.01, attempts, 0)
    indexer.poller = poller
    return poller

def test_backfill_then_live(db):
    chain = FakeChainReader()
    # startup head, then the head watcher sees one more block
    chain.heads = [105, 106]
    chain.head = 106
    checkpoint = CheckpointTracker(db, 'poller', lambda: 100)
    indexer = RecordingIndexer(checkpoint, stop_at=106)

    errors = run_with_timeout(make_poller(chain, indexer, checkpoint))

    assert errors == []
    assert indexer.processed == [101, 102, 103, 104, 105, 106]
    assert checkpoint.load() == 106

def test_targets_below_watermark_are_ignored(db):
    chain = FakeChainReader()
    chain.heads = [50, 40, 50, 51]
    chain.head = 51
    checkpoint = CheckpointTracker(db, 'poller', lambda: 49)
    indexer = RecordingIndexer(checkpoint, stop_at=51)
    poller = make_poller(chain, indexer, checkpoint)

    errors = run_with_timeout(poller)

    assert errors == []
    assert indexer.processed == [50, 51]

def test_failing_block_is_retried(db):
    chain = FakeChainReader()
    chain.head = 3
    checkpoint = CheckpointTracker(db, 'poller', lambda: 0)
    indexer = RecordingIndexer(checkpoint, stop_at=3)
    indexer.failures[2] = 2

    errors = run_with_timeout(make_poller(chain, indexer, checkpoint, attempts=3))

    assert errors == []
    assert indexer.processed == [1, 2, 3]

def test_poller_halts_on_exhausted_retries(db):
    chain = FakeChainReader()
    chain.head = 3
    checkpoint = CheckpointTracker(db, 'poller', lambda: 0)
    indexer = RecordingIndexer(checkpoint)
    indexer.failures[2] = 10

    errors = run_with_timeout(make_poller(chain, indexer, checkpoint, attempts=2))

    assert len(errors) == 1
    assert isinstance(errors[0], BlockProcessingError)
    assert errors[0].block_number == 2
    assert indexer.processed == [1]
    assert checkpoint.load() == 1

def test_restart_resumes_from_checkpoint(db, contract, mirror):
    chain = FakeChainReader()
    chain.head = 4
    checkpoint = CheckpointTracker(db, 'poller', lambda: 0)
    indexer = Indexer(chain, contract, mirror, checkpoint)
    chain.failures[3] = 1

    first = BlockPoller(indexer, chain, checkpoint, 0.01, 1, 0)
    errors = run_with_timeout(first)
    assert isinstance(errors[0], BlockProcessingError)
    assert checkpoint.load() == 2

    second = BlockPoller(indexer, chain, checkpoint, 0.01, 1, 0)
    stopper = threading.Timer(0.5, second.stop)
    stopper.start()
    errors = run_with_timeout(second)
    stopper.cancel()

    assert errors == []
    assert checkpoint.load() == 4
    assert chain.block_requests == [1, 2, 3, 3, 4]

def test_stopped_poller_does_not_run(db):
    chain = FakeChainReader(head=5)
    checkpoint = CheckpointTracker(db, 'poller', lambda: 0)
    indexer = RecordingIndexer(checkpoint)
    poller = make_poller(chain, indexer, checkpoint)
    poller.stop()

    assert run_with_timeout(poller) == []
    assert indexer.processed == []

class StoppingIndexer(Indexer):
    def __init__(self, *args, stop_at: int):
        super().__init__(*args)
        self.stop_at = stop_at
        self.poller = None

    def process_block(self, number: int) -> ProcessedBlock:
        processed = super().process_block(number)
        if number == self.stop_at:
            self.poller.stop()
        return processed

def test_backfill_then_live_mirrors_each_event_once(db, contract, mirror):
    chain = FakeChainReader()
    for number in range(101, 107):
        tx = tx_hash(f'register-{number}')
        chain.add_block(number, [make_receipt(tx, ENHANCED, [make_log('enhanced', 'IPAssetRegistered', {
            'ipAssetId': number, 'name': f'asset {number}', 'owner': ALICE, 'ipfsHash': ''
        }, tx=tx, block_number=number)])])
    chain.heads = [105, 106]
    chain.head = 106
    checkpoint = CheckpointTracker(db, 'poller', lambda: 100)
    indexer = StoppingIndexer(chain, contract, mirror, checkpoint, stop_at=106)

    errors = run_with_timeout(make_poller(chain, indexer, checkpoint))

    assert errors == []
    assert checkpoint.load() == 106
    assert chain.block_requests == [101, 102, 103, 104, 105, 106]
    with db.session() as session:
        outcomes = session.scalars(select(ProcessedLog.outcome).order_by(ProcessedLog.block_number)).all()
        assets = session.scalar(select(func.count()).select_from(IPAsset))
    assert outcomes == ['applied'] * 6
    assert assets == 6

def test_queued_targets_are_coalesced(db):
    chain = FakeChainReader()
    checkpoint = CheckpointTracker(db, 'poller', lambda: 0)
    poller = make_poller(chain, RecordingIndexer(checkpoint), checkpoint)
    for target in (5, 9, 7):
        poller.notify(target)

    assert poller._next_target() == 9
    assert poller._targets.empty()

def test_stop_marker_does_not_hide_targets(db):
    chain = FakeChainReader()
    checkpoint = CheckpointTracker(db, 'poller', lambda: 0)
    poller = make_poller(chain, RecordingIndexer(checkpoint), checkpoint)
    poller.notify(3)
    poller.stop()

    assert poller._next_target() == 3
    poller._targets.put(None)
    assert poller._next_target() is None
