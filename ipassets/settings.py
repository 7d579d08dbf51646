from typing import Dict

from chainutils.settings.common import CommonSettings
from chainutils.logging import info

from .web3 import ChainReader

class Settings(CommonSettings):
    indexer_name: str = 'ip-asset-manager'
    auto_create_schema: bool = True
    receipt_workers: int = 4
    block_retry_attempts: int = 5
    block_retry_delay: int = 2
    threads_liveness_interval: int = 60
    w3_providers: dict = {}

    def __init__(self, **values):
        def init_w3_providers():
            # chains are known only after the deployments source is applied
            info(f'Init web3 providers')
            for chainid in self.chains:
                deployment = self.chains[chainid]
                self.w3_providers[chainid] = ChainReader(
                    chainid,
                    deployment.rpc.url,
                    self.web3_retry_attempts,
                    self.web3_retry_delay,
                    deployment.finalization,
                    deployment.rpc.timeout,
                    deployment.rpc.poa
                )

        def web3_providers_formatter(w3_providers: Dict[str, ChainReader]) -> str:
            providers_to_str = {}
            for c in w3_providers:
                providers_to_str[c] = w3_providers[c].w3.provider.endpoint_uri

            return str(providers_to_str)

        super().__init__(**values)

        self.extend_extra_sources(init_w3_providers)
        self.extend_formatters({'w3_providers': web3_providers_formatter})

    def reader(self) -> ChainReader:
        self.deployment()
        return self.w3_providers[self.chain_selector]

class ReportSettings(CommonSettings):
    report_owner: str = ''
    report_file: str = 'owner-report.json'
