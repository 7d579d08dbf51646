from typing import ContextManager

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from chainutils.logging import info

from .exceptions import NotInitialized
from .models import Base

class DBAdapter:
    _engine: Engine
    _sessions: sessionmaker

    def __init__(self, url: str, echo: bool = False):
        engine_args = {}
        parsed = make_url(url)
        if parsed.get_backend_name() == 'sqlite':
            # the poll loop writes from its own thread
            engine_args['connect_args'] = {'check_same_thread': False}
            if parsed.database in (None, '', ':memory:'):
                engine_args['poolclass'] = StaticPool
        self._engine = create_engine(url, echo=echo, **engine_args)
        self._sessions = sessionmaker(bind=self._engine, expire_on_commit=False)
        info(f'db: engine created for {parsed.render_as_string(hide_password=True)}')

    def init_schema(self):
        info(f'db: creating missing tables')
        Base.metadata.create_all(self._engine)

    def check_schema(self):
        existing = set(inspect(self._engine).get_table_names())
        missing = [t for t in Base.metadata.tables if t not in existing]
        if missing:
            raise NotInitialized(missing)

    def begin(self) -> ContextManager[Session]:
        return self._sessions.begin()

    def session(self) -> Session:
        return self._sessions()

    def dispose(self):
        self._engine.dispose()
