"""
Chain and compiler configuration

Every setting can be passed explicitly or picked up from an INFT_*
environment variable, falling back to a default suitable for local runs.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ConfigError

DEFAULT_ANVIL_PORT = 8545
DEFAULT_CHAIN_ID = 31337
DEFAULT_SOLC_VERSION = '0.8.20'
DEFAULT_TX_TIMEOUT = 30


def _env_int(key: str, default: Optional[int]) -> Optional[int]:
    value = os.getenv(key)
    if value is None or value == '':
        return default
    try:
        return int(value, 0)
    except ValueError as e:
        raise ConfigError(f"{key} must be an integer, got {value!r}") from e


def _env_path(key: str) -> Optional[Path]:
    value = os.getenv(key)
    return Path(value).expanduser() if value else None


class ChainConfig:
    """Settings for the local chain and the contract artifact registry"""

    def __init__(
        self,
        rpc_url: str = None,
        fork_url: str = None,
        anvil_port: int = None,
        chain_id: int = None,
        solc_version: str = None,
        contracts_dir=None,
        build_dir=None,
        tx_timeout: int = None,
        gas: int = None
    ):
        """
        Args:
            rpc_url: Existing node to connect to (INFT_RPC_URL)
                     - None: spawn a local Anvil node
            fork_url: Upstream RPC for Anvil to fork from (INFT_FORK_URL)
            anvil_port: Port of the spawned Anvil node (INFT_ANVIL_PORT)
            chain_id: Chain ID of the spawned node (INFT_CHAIN_ID)
            solc_version: Compiler used for .sol sources (INFT_SOLC_VERSION)
            contracts_dir: Directory holding .sol sources (INFT_CONTRACTS_DIR)
            build_dir: Directory holding compiled JSON artifacts (INFT_BUILD_DIR)
            tx_timeout: Seconds to wait for a receipt (INFT_TX_TIMEOUT)
            gas: Fixed gas limit, None lets the node estimate (INFT_GAS_LIMIT)
        """
        self.rpc_url = rpc_url if rpc_url is not None else os.getenv('INFT_RPC_URL') or None
        self.fork_url = fork_url if fork_url is not None else os.getenv('INFT_FORK_URL') or None
        self.anvil_port = anvil_port if anvil_port is not None else _env_int('INFT_ANVIL_PORT', DEFAULT_ANVIL_PORT)
        self.chain_id = chain_id if chain_id is not None else _env_int('INFT_CHAIN_ID', DEFAULT_CHAIN_ID)
        self.solc_version = solc_version or os.getenv('INFT_SOLC_VERSION') or DEFAULT_SOLC_VERSION
        self.contracts_dir = Path(contracts_dir).expanduser() if contracts_dir else _env_path('INFT_CONTRACTS_DIR')
        self.build_dir = Path(build_dir).expanduser() if build_dir else _env_path('INFT_BUILD_DIR')
        self.tx_timeout = tx_timeout if tx_timeout is not None else _env_int('INFT_TX_TIMEOUT', DEFAULT_TX_TIMEOUT)
        self.gas = gas if gas is not None else _env_int('INFT_GAS_LIMIT', None)

        if not 0 < self.anvil_port < 65536:
            raise ConfigError(f"anvil_port out of range: {self.anvil_port}")
        if self.tx_timeout <= 0:
            raise ConfigError(f"tx_timeout must be positive: {self.tx_timeout}")

    @property
    def anvil_rpc_url(self) -> str:
        return f"http://127.0.0.1:{self.anvil_port}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rpc_url': self.rpc_url,
            'fork_url': self.fork_url,
            'anvil_port': self.anvil_port,
            'chain_id': self.chain_id,
            'solc_version': self.solc_version,
            'contracts_dir': str(self.contracts_dir) if self.contracts_dir else None,
            'build_dir': str(self.build_dir) if self.build_dir else None,
            'tx_timeout': self.tx_timeout,
            'gas': self.gas,
        }

    def __repr__(self) -> str:
        return f"ChainConfig({self.to_dict()!r})"
