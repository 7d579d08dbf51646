from functools import cache
from json import load
from enum import Enum

from .logging import info, error
from .constants import ABI_DIR

class ABI(Enum):
    IP_ASSET_MANAGER = "ip_asset_manager.json"
    IP_ASSET_MANAGER_ENHANCED = "ip_asset_manager_enhanced.json"

@cache
def get_abi(fname: ABI) -> list:
    full_fname = f'{ABI_DIR}/{fname.value}'
    try:
        with open(full_fname) as f:
            abi = load(f)
    except IOError as e:
        error(f'Cannot read {full_fname}')
        raise e
    info(f'{full_fname} loaded')
    return abi

def get_event_abis(fname: ABI) -> list:
    return [entry for entry in get_abi(fname) if entry['type'] == 'event']
