from typing import Optional

from time import time
from urllib.parse import quote

from requests import get, post
from requests.auth import AuthBase

from chainutils.logging import info, error, warning

from .models import InfringementStatus, RegistrationData, RegistrationResult

class ApiKeyAuth(AuthBase):
    def __init__(self, _key):
        self.key = _key

    def __call__(self, r):
        r.headers['X-API-KEY'] = self.key
        return r

class YakoaConnector:
    _service_url: str
    _api_key_auth: ApiKeyAuth

    def __init__(self, base_url: str, api_key: str):
        self._service_url = base_url.rstrip('/')
        self._api_key_auth = ApiKeyAuth(api_key)

    def register_asset(self, ip_asset_id: int, registration: RegistrationData) -> RegistrationResult:
        register_url = f'{self._service_url}/api/yakoa/register'
        info(f'connector: registering IP asset {ip_asset_id} ({registration.tokenId}) for monitoring')
        try:
            r = post(
                register_url,
                json={
                    'ipAssetId': str(ip_asset_id),
                    'registrationData': registration.model_dump(exclude_none=True)
                },
                auth=self._api_key_auth,
                timeout=(3.05, 30)
            )
        except Exception as e:
            error(f'connector: monitoring service is not available at {self._service_url}: {e}')
            return RegistrationResult(ipAssetId=ip_asset_id, success=False, message=str(e))

        if r.status_code == 409:
            warning(f'connector: IP asset {ip_asset_id} is already registered for monitoring')
            return RegistrationResult(
                ipAssetId=ip_asset_id,
                success=True,
                alreadyRegistered=True,
                message=f'IP asset {ip_asset_id} already registered',
                data=_json_or_text(r)
            )
        if not r.ok:
            error(f'connector: cannot register IP asset {ip_asset_id} (status code: {r.status_code}, error: {r.text})')
            return RegistrationResult(
                ipAssetId=ip_asset_id,
                success=False,
                message=f'status code {r.status_code}'
            )

        info(f'connector: IP asset {ip_asset_id} registered for monitoring')
        return RegistrationResult(
            ipAssetId=ip_asset_id,
            success=True,
            message=f'IP asset {ip_asset_id} registered for infringement monitoring',
            data=_json_or_text(r)
        )

    def check_status(self, token_id: str) -> Optional[InfringementStatus]:
        status_url = f"{self._service_url}/api/yakoa/status/{quote(token_id, safe='')}"
        try:
            r = get(status_url, auth=self._api_key_auth, timeout=(3.05, 15))
        except Exception as e:
            error(f'connector: monitoring service is not available at {self._service_url}: {e}')
            return None

        if not r.ok:
            error(f'connector: cannot get infringement status of {token_id} (status code: {r.status_code}, error: {r.text})')
            return None

        data = _json_or_text(r)
        if not isinstance(data, dict):
            warning(f'connector: unexpected infringement status payload for {token_id}: {r.text}')
            data = {}
        status = InfringementStatus(
            tokenId=token_id,
            status=data.get('status') or 'unknown',
            infringements=data.get('infringements') or [],
            lastChecked=int(time())
        )
        info(f'connector: infringement status of {token_id}: {status.status}')
        return status

    def health_check(self) -> bool:
        try:
            r = get(f'{self._service_url}/', timeout=(3.05, 5))
        except Exception as e:
            warning(f'connector: health check failed: {e}')
            return False
        return r.ok

def _json_or_text(r):
    try:
        return r.json()
    except ValueError:
        return r.text
