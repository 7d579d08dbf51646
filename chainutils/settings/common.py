from functools import cache
from typing import Callable, Dict, List

from json import load

from pydantic import PrivateAttr
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url

from ..logging import info, error
from ..misc import InitException
from .models import DeploymentDescriptor

class GenericSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', extra='ignore')

    _extra_sources: List[Callable] = PrivateAttr(default_factory=list)
    _formatters: Dict[str, Callable] = PrivateAttr(default_factory=dict)

    def extend_extra_sources(self, source: Callable):
        self._extra_sources.append(source)

    def extend_formatters(self, formatter: dict):
        self._formatters.update(formatter)

    def apply_extra_sources(self):
        # init of fields that cannot be filled by the regular settings sources
        for fn in self._extra_sources:
            fn()

    def log(self):
        for (key, value) in self:
            to_out = value
            if key in self._formatters:
                to_out = self._formatters[key](value)
            info(f'{key.upper()} = {to_out}')

    @classmethod
    @cache
    def get(cls):
        settings = cls()
        settings.apply_extra_sources()
        settings.log()
        return settings

class CommonSettings(GenericSettings):
    deployments_info: str = 'ip-deployments-info.json'
    chain_selector: str = 'hedera-testnet'
    database_url: str = 'sqlite:///ip-assets.db'
    web3_retry_attempts: int = 3
    web3_retry_delay: int = 2
    chains: Dict[str, DeploymentDescriptor] = {}

    def __init__(self, **values):
        def deployments_spec_init():
            # deployments_info can be overridden by env, so the file is read
            # only after all regular sources were applied
            fname = self.deployments_info
            info(f'Load deployments info from {fname}')
            try:
                with open(fname) as f:
                    chains = load(f)['chains']
            except IOError as e:
                error(f'Cannot read deployments info')
                raise e
            for cid in chains:
                self.chains[cid] = DeploymentDescriptor.model_validate(chains[cid])

        def chains_formatter(chains: Dict[str, DeploymentDescriptor]) -> str:
            return str([chains[c].name for c in chains])

        def database_url_formatter(url: str) -> str:
            return make_url(url).render_as_string(hide_password=True)

        super().__init__(**values)

        self.extend_extra_sources(deployments_spec_init)
        self.extend_formatters({
            'chains': chains_formatter,
            'database_url': database_url_formatter
        })

    def deployment(self) -> DeploymentDescriptor:
        if not self.chain_selector in self.chains:
            error(f'Chain {self.chain_selector} is not in the deployments info')
            raise InitException
        return self.chains[self.chain_selector]
