from typing import Callable

from sqlalchemy import select, update

from chainutils.logging import info

from .adapter import DBAdapter
from .exceptions import CheckpointConflict
from .models import IndexerCheckpoint

class CheckpointTracker:
    """Durable watermark of the highest fully processed block.

    The row is created on the first ``load()`` from ``default_block`` and is
    only ever moved forward by exactly one block, so a second writer or a
    skipped block surfaces as ``CheckpointConflict`` instead of a silent gap.
    """
    _db: DBAdapter
    _name: str
    _default_block: Callable[[], int]

    def __init__(self, db: DBAdapter, name: str, default_block: Callable[[], int]):
        self._db = db
        self._name = name
        self._default_block = default_block

    def load(self) -> int:
        with self._db.begin() as session:
            checkpoint = session.get(IndexerCheckpoint, self._name)
            if checkpoint:
                info(f'checkpoint:{self._name}: last processed block {checkpoint.last_block}')
                return checkpoint.last_block

            last_block = self._default_block()
            info(f'checkpoint:{self._name}: no checkpoint found, initialize with block {last_block}')
            session.add(IndexerCheckpoint(name=self._name, last_block=last_block))
            return last_block

    def advance(self, block_number: int):
        expected = block_number - 1
        with self._db.begin() as session:
            result = session.execute(
                update(IndexerCheckpoint)
                .where(
                    IndexerCheckpoint.name == self._name,
                    IndexerCheckpoint.last_block == expected
                )
                .values(last_block=block_number)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                found = session.scalar(
                    select(IndexerCheckpoint.last_block).where(IndexerCheckpoint.name == self._name)
                )
                raise CheckpointConflict(self._name, expected, found)
        info(f'checkpoint:{self._name}: advanced to block {block_number}')
