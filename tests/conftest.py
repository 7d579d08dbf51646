import pytest

from web3 import Web3, HTTPProvider

from ipassets.contract import IPAssetManagerContract
from ipassets.db.adapter import DBAdapter
from ipassets.db.mirror import MirrorWriter
from ipassets.db.queries import MirrorReader

from chainfakes import ENHANCED, BASIC

@pytest.fixture
def db():
    adapter = DBAdapter('sqlite://')
    adapter.init_schema()
    yield adapter
    adapter.dispose()

@pytest.fixture
def mirror(db):
    return MirrorWriter(db)

@pytest.fixture
def reader(db):
    return MirrorReader(db)

@pytest.fixture
def contract():
    # no requests are sent, the provider is only needed to build contracts
    w3 = Web3(HTTPProvider('http://127.0.0.1:8545'))
    return IPAssetManagerContract(w3, ENHANCED, BASIC)
