"""
Contract artifacts - resolve, deploy and attach contracts by name

Counterpart of Truffle's artifacts.require(): a contract name resolves to
its ABI and creation bytecode, taken from compiled build artifacts
(Truffle / Hardhat / Foundry JSON) or compiled from Solidity sources with
py-solc-x. The resulting ContractArtifact deploys new instances or binds
to existing ones.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from eth_utils import to_checksum_address
from solcx import compile_files, install_solc
from solcx.exceptions import SolcError, SolcNotInstalled
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted

from .config import ChainConfig, DEFAULT_SOLC_VERSION, DEFAULT_TX_TIMEOUT
from .errors import ArtifactNotFoundError, ContractNotFoundError, DeploymentError


def normalize_name(name: str) -> str:
    """'./AliERC20v2.sol' -> 'AliERC20v2'"""
    name = name.strip()
    if name.startswith('./'):
        name = name[2:]
    name = name.rsplit('/', 1)[-1]
    if name.endswith('.sol'):
        name = name[:-4]
    return name


def _bytecode_from_json(data: Dict[str, Any]) -> str:
    bytecode = data.get('bytecode', '')
    # Foundry nests the bytecode under "object"
    if isinstance(bytecode, dict):
        bytecode = bytecode.get('object', '')
    return bytecode or ''


class ContractInstance:
    """Handle to a deployed contract"""

    def __init__(self, artifact: 'ContractArtifact', address: str, receipt=None):
        self.artifact = artifact
        self.address = to_checksum_address(address)
        self.receipt = receipt
        self.contract = artifact.w3.eth.contract(address=self.address, abi=artifact.abi)

    @property
    def name(self) -> str:
        return self.artifact.name

    def call(self, fn_name: str, *args):
        """Read-only call of a contract function"""
        return self.contract.get_function_by_name(fn_name)(*args).call()

    def transact(self, fn_name: str, *args, sender: str):
        """
        Send a transaction and wait for it to be mined

        Args:
            fn_name: Contract function name
            *args: Function arguments
            sender: Address the transaction is sent from

        Returns:
            Transaction receipt

        Raises:
            DeploymentError: Transaction reverted
        """
        fn = self.contract.get_function_by_name(fn_name)(*args)
        try:
            tx_hash = fn.transact(self.artifact.tx_params(sender))
        except ContractLogicError as e:
            raise DeploymentError(f"{self.name}.{fn_name} reverted: {e}") from e
        receipt = self.artifact.wait_for_receipt(tx_hash, f"{self.name}.{fn_name}")
        if receipt['status'] != 1:
            raise DeploymentError(
                f"{self.name}.{fn_name} failed: status={receipt['status']}, gasUsed={receipt['gasUsed']}",
                receipt=receipt
            )
        return receipt

    def __eq__(self, other):
        if isinstance(other, ContractInstance):
            return self.address == other.address
        return NotImplemented

    def __hash__(self):
        return hash(self.address)

    def __repr__(self) -> str:
        return f"<{self.name} at {self.address}>"


class ContractArtifact:
    """ABI and creation bytecode of a single contract"""

    def __init__(
        self,
        w3: Web3,
        name: str,
        abi: List[Dict[str, Any]],
        bytecode: str,
        gas: int = None,
        tx_timeout: int = DEFAULT_TX_TIMEOUT
    ):
        self.w3 = w3
        self.name = name
        self.abi = abi
        if bytecode and not bytecode.startswith('0x'):
            bytecode = '0x' + bytecode
        self.bytecode = bytecode
        self.gas = gas
        self.tx_timeout = tx_timeout

    def tx_params(self, sender: str) -> Dict[str, Any]:
        params = {'from': to_checksum_address(sender)}
        if self.gas:
            params['gas'] = self.gas
        return params

    def wait_for_receipt(self, tx_hash, label: str):
        try:
            return self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.tx_timeout)
        except TimeExhausted as e:
            raise DeploymentError(f"{label} not mined within {self.tx_timeout}s") from e

    def new(self, *args, sender: str) -> ContractInstance:
        """
        Deploy a new instance

        Args:
            *args: Constructor arguments
            sender: Deployer address

        Returns:
            ContractInstance bound to the deployed address
        """
        if not self.bytecode or self.bytecode == '0x':
            raise DeploymentError(f"{self.name} has no bytecode (abstract contract or interface?)")

        factory = self.w3.eth.contract(abi=self.abi, bytecode=self.bytecode)
        try:
            tx_hash = factory.constructor(*args).transact(self.tx_params(sender))
        except ContractLogicError as e:
            raise DeploymentError(f"{self.name} constructor reverted: {e}") from e
        receipt = self.wait_for_receipt(tx_hash, f"{self.name} deployment")

        if receipt['status'] != 1:
            raise DeploymentError(
                f"{self.name} deployment failed: status={receipt['status']}, gasUsed={receipt['gasUsed']}",
                receipt=receipt
            )
        if not receipt.get('contractAddress'):
            raise DeploymentError(f"{self.name} deployment failed - no contract address", receipt=receipt)

        instance = ContractInstance(self, receipt['contractAddress'], receipt)
        print(f"  • {self.name} deployed: {instance.address}")
        return instance

    def at(self, address: str) -> ContractInstance:
        """
        Bind to a contract already deployed at address

        Raises:
            ValueError: Not a valid address
            ContractNotFoundError: No code at the address
        """
        if not address or not Web3.is_address(address):
            raise ValueError(f"Invalid {self.name} address: {address!r}")
        address = to_checksum_address(address)
        if len(self.w3.eth.get_code(address)) == 0:
            raise ContractNotFoundError(self.name, address)
        print(f"  • {self.name} attached: {address}")
        return ContractInstance(self, address)

    def __repr__(self) -> str:
        return f"<ContractArtifact {self.name}>"


class ArtifactRegistry:
    """Resolves contract names to ContractArtifacts"""

    def __init__(
        self,
        w3: Web3,
        contracts_dir=None,
        build_dir=None,
        solc_version: str = DEFAULT_SOLC_VERSION,
        gas: int = None,
        tx_timeout: int = DEFAULT_TX_TIMEOUT
    ):
        """
        Args:
            w3: Web3 connection used for deployments
            contracts_dir: Directory with .sol sources, compiled on first use
            build_dir: Directory with compiled JSON artifacts, searched first
            solc_version: Compiler version for the sources
            gas: Fixed gas limit for transactions, None lets the node estimate
            tx_timeout: Seconds to wait for each receipt
        """
        self.w3 = w3
        self.contracts_dir = Path(contracts_dir) if contracts_dir else None
        self.build_dir = Path(build_dir) if build_dir else None
        self.solc_version = solc_version
        self.gas = gas
        self.tx_timeout = tx_timeout

        self._artifacts: Dict[str, ContractArtifact] = {}
        self._compiled: Optional[Dict[str, Dict[str, Any]]] = None

    @classmethod
    def from_config(cls, w3: Web3, config: ChainConfig) -> 'ArtifactRegistry':
        return cls(
            w3,
            contracts_dir=config.contracts_dir,
            build_dir=config.build_dir,
            solc_version=config.solc_version,
            gas=config.gas,
            tx_timeout=config.tx_timeout
        )

    def register(self, name: str, abi: List[Dict[str, Any]], bytecode: str) -> ContractArtifact:
        name = normalize_name(name)
        artifact = ContractArtifact(self.w3, name, abi, bytecode, gas=self.gas, tx_timeout=self.tx_timeout)
        self._artifacts[name] = artifact
        return artifact

    def require(self, name: str) -> ContractArtifact:
        """
        Resolve a contract by name

        Lookup order: registered artifacts, build_dir JSON, contracts_dir sources.

        Raises:
            ArtifactNotFoundError: Name could not be resolved
        """
        name = normalize_name(name)
        if name in self._artifacts:
            return self._artifacts[name]

        data = self._load_build_artifact(name)
        if data is None:
            data = self._compile_sources().get(name)
        if data is None:
            searched = [p for p in (self.build_dir, self.contracts_dir) if p]
            raise ArtifactNotFoundError(name, searched)

        return self.register(name, data['abi'], data['bin'])

    def _load_build_artifact(self, name: str) -> Optional[Dict[str, Any]]:
        if not self.build_dir or not self.build_dir.is_dir():
            return None

        for path in sorted(self.build_dir.rglob(f'{name}.json')):
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if 'abi' not in data:
                continue
            return {'abi': data['abi'], 'bin': _bytecode_from_json(data)}
        return None

    def _compile_sources(self) -> Dict[str, Dict[str, Any]]:
        """Compile every .sol file under contracts_dir once, indexed by contract name"""
        if self._compiled is not None:
            return self._compiled

        self._compiled = {}
        if not self.contracts_dir or not self.contracts_dir.is_dir():
            return self._compiled

        sources = sorted(str(p) for p in self.contracts_dir.rglob('*.sol'))
        if not sources:
            return self._compiled

        print(f"✓ Compiling {len(sources)} Solidity sources with solc {self.solc_version}...")
        kwargs = dict(
            output_values=['abi', 'bin'],
            base_path=str(self.contracts_dir),
            allow_paths=[str(self.contracts_dir)],
            solc_version=self.solc_version,
        )
        try:
            try:
                compiled = compile_files(sources, **kwargs)
            except SolcNotInstalled:
                print(f"  • Installing Solidity compiler v{self.solc_version}...")
                install_solc(self.solc_version)
                compiled = compile_files(sources, **kwargs)
        except SolcError as e:
            # nothing cached on failure
            self._compiled = None
            raise DeploymentError(f"Compiling {self.contracts_dir} failed: {e}") from e

        for key, interface in compiled.items():
            contract_name = key.rsplit(':', 1)[-1]
            self._compiled[contract_name] = interface
        return self._compiled
