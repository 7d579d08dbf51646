import pytest

import infringement.connector
from infringement.connector import YakoaConnector
from infringement.models import RegistrationData

class FakeResponse:
    def __init__(self, status_code: int, payload=None, text: str = ''):
        self.status_code = status_code
        self.ok = status_code < 400
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError('no json')
        return self._payload

class Recorder:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    def __call__(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.exc:
            raise self.exc
        return self.response

REGISTRATION = RegistrationData(
    tokenId='0xabc:42',
    transactionHash='0x01',
    creatorId='0xowner',
    title='Book',
    ipfsHash='Qm123'
)

@pytest.fixture
def connector():
    return YakoaConnector('http://yakoa.local/', 'key-123')

def test_register_asset(connector, monkeypatch):
    post = Recorder(FakeResponse(200, {'id': 'reg-1'}))
    monkeypatch.setattr(infringement.connector, 'post', post)

    result = connector.register_asset(42, REGISTRATION)

    assert result.success
    assert not result.alreadyRegistered
    assert result.data == {'id': 'reg-1'}
    url, kwargs = post.calls[0]
    assert url == 'http://yakoa.local/api/yakoa/register'
    assert kwargs['json']['ipAssetId'] == '42'
    assert kwargs['json']['registrationData']['tokenId'] == '0xabc:42'
    assert 'mediaUrl' not in kwargs['json']['registrationData']
    assert kwargs['timeout'] == (3.05, 30)

def test_api_key_header(connector):
    class Request:
        headers = {}

    r = connector._api_key_auth(Request())

    assert r.headers['X-API-KEY'] == 'key-123'

def test_already_registered(connector, monkeypatch):
    monkeypatch.setattr(infringement.connector, 'post', Recorder(FakeResponse(409, text='conflict')))

    result = connector.register_asset(42, REGISTRATION)

    assert result.success
    assert result.alreadyRegistered
    assert result.data == 'conflict'

def test_register_failure(connector, monkeypatch):
    monkeypatch.setattr(infringement.connector, 'post', Recorder(FakeResponse(500, text='boom')))

    result = connector.register_asset(42, REGISTRATION)

    assert not result.success
    assert result.message == 'status code 500'

def test_service_unavailable(connector, monkeypatch):
    monkeypatch.setattr(infringement.connector, 'post', Recorder(exc=ConnectionError('refused')))

    result = connector.register_asset(42, REGISTRATION)

    assert not result.success
    assert 'refused' in result.message

def test_check_status(connector, monkeypatch):
    get = Recorder(FakeResponse(200, {'status': 'clean', 'infringements': [{'url': 'x'}]}))
    monkeypatch.setattr(infringement.connector, 'get', get)

    status = connector.check_status('0xabc:42')

    assert status.status == 'clean'
    assert status.infringements == [{'url': 'x'}]
    assert get.calls[0][0] == 'http://yakoa.local/api/yakoa/status/0xabc%3A42'

def test_check_status_defaults(connector, monkeypatch):
    monkeypatch.setattr(infringement.connector, 'get', Recorder(FakeResponse(200, {})))

    status = connector.check_status('0xabc:42')

    assert status.status == 'unknown'
    assert status.infringements == []

def test_check_status_with_non_json_body(connector, monkeypatch):
    monkeypatch.setattr(infringement.connector, 'get', Recorder(FakeResponse(200, text='<html>maintenance</html>')))

    status = connector.check_status('0xabc:42')

    assert status.status == 'unknown'
    assert status.infringements == []

def test_check_status_with_list_body(connector, monkeypatch):
    monkeypatch.setattr(infringement.connector, 'get', Recorder(FakeResponse(200, ['clean'])))

    assert connector.check_status('0xabc:42').status == 'unknown'

def test_check_status_failure(connector, monkeypatch):
    monkeypatch.setattr(infringement.connector, 'get', Recorder(FakeResponse(404, text='not found')))

    assert connector.check_status('0xabc:42') is None

def test_health_check(connector, monkeypatch):
    monkeypatch.setattr(infringement.connector, 'get', Recorder(FakeResponse(200, text='ok')))
    assert connector.health_check()

    monkeypatch.setattr(infringement.connector, 'get', Recorder(exc=ConnectionError('refused')))
    assert not connector.health_check()
