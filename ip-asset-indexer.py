import signal
import threading

from chainutils.logging import info, exception, warning

from ipassets.settings import Settings
from ipassets.contract import IPAssetManagerContract
from ipassets.db.adapter import DBAdapter
from ipassets.db.checkpoint import CheckpointTracker
from ipassets.db.mirror import MirrorWriter
from ipassets.main import Indexer
from ipassets.worker import BlockPoller

class IndexerWorker:
    _chain: str
    _poller: BlockPoller

    def __init__(self, settings: Settings, db: DBAdapter):
        deployment = settings.deployment()
        reader = settings.reader()
        self._chain = settings.chain_selector

        def default_block() -> int:
            if deployment.start_block is not None:
                return deployment.start_block - 1
            return reader.get_head()

        checkpoint = CheckpointTracker(db, f'{settings.indexer_name}:{self._chain}', default_block)
        indexer = Indexer(
            reader,
            IPAssetManagerContract(reader.w3, deployment.contracts.enhanced, deployment.contracts.basic),
            MirrorWriter(db),
            checkpoint,
            settings.receipt_workers
        )
        self._poller = BlockPoller(
            indexer,
            reader,
            checkpoint,
            deployment.events_pull_interval,
            settings.block_retry_attempts,
            settings.block_retry_delay
        )

    def job(self):
        try:
            self._poller.run()
        except Exception as e:
            exception(f'indexer:{self._chain}: poller halted: {e}')
            raise

    def stop(self):
        self._poller.stop()

    def is_stopped(self) -> bool:
        return self._poller.is_stopped()

class IPAssetIndexer():
    _worker: IndexerWorker
    _liveness_interval: int

    def __init__(self, settings: Settings):
        self._db = DBAdapter(settings.database_url)
        if settings.auto_create_schema:
            self._db.init_schema()
        else:
            self._db.check_schema()
        self._worker = IndexerWorker(settings, self._db)
        self._liveness_interval = settings.threads_liveness_interval

    def stop(self, signum, _frame):
        info(f'Signal {signum} received')
        self._worker.stop()

    def run(self):
        task = None
        while True:
            if task:
                task.join(self._liveness_interval)
                if self._worker.is_stopped():
                    info('THREADS MONITORING: Indexer stopped. Waiting for the polling thread')
                    task.join()
                    info('THREADS MONITORING: Indexer stopped. Exiting')
                    break
                if task.is_alive():
                    continue
                warning(f'THREADS MONITORING: Polling thread is not alive')
            info(f'THREADS MONITORING: Restarting indexer thread')
            task = threading.Thread(target=self._worker.job)
            task.daemon = True
            task.name = 'ip-asset-indexer'
            task.start()
        self._db.dispose()

if __name__ == '__main__':
    settings = Settings.get()
    worker = IPAssetIndexer(settings)
    signal.signal(signal.SIGINT, worker.stop)
    signal.signal(signal.SIGTERM, worker.stop)
    worker.run()
