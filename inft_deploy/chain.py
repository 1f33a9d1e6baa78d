"""
Local Chain - Environment Layer

Responsibilities:
1. Start a local Anvil node (optionally forking an upstream RPC) or attach to an existing node
2. Provide the Web3 connection and the node's unlocked accounts
3. Snapshot / revert chain state between tests
"""

import os
import socket
import subprocess
import threading
import queue
import time
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import requests
from eth_account import Account
from eth_utils import to_checksum_address
from web3 import Web3
from web3.providers.rpc import HTTPProvider

from .config import ChainConfig
from .errors import ChainError

ANVIL_PATHS = [
    os.path.expanduser('~/.foundry/bin/anvil'),
    '/usr/local/bin/anvil',
    'anvil',
]

PROXY_VARS = ['http_proxy', 'https_proxy', 'HTTP_PROXY', 'HTTPS_PROXY',
              'all_proxy', 'ALL_PROXY', 'ftp_proxy', 'FTP_PROXY']


def find_anvil() -> Optional[str]:
    """Return the first working anvil binary, or None"""
    for path in ANVIL_PATHS:
        try:
            subprocess.run(
                [path, '--version'],
                capture_output=True,
                check=True,
                text=True,
                timeout=5
            )
            return path
        except (subprocess.CalledProcessError, FileNotFoundError, PermissionError, subprocess.TimeoutExpired):
            continue
    return None


def is_port_in_use(port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        return s.connect_ex(('127.0.0.1', port)) == 0


class LocalChain:
    """Local chain management class"""

    def __init__(self, config: ChainConfig = None, startup_timeout: int = 60):
        """
        Args:
            config: Chain configuration, read from INFT_* environment variables when None
            startup_timeout: Seconds to wait for a spawned Anvil to open its port
        """
        self.config = config or ChainConfig()
        self.startup_timeout = startup_timeout
        self.anvil_process: Optional[subprocess.Popen] = None
        self.anvil_cmd: Optional[str] = None

        self.w3: Optional[Web3] = None
        self.rpc_url: Optional[str] = None
        self.initial_snapshot_id: Optional[str] = None

    def __enter__(self) -> 'LocalChain':
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()

    @property
    def is_managed(self) -> bool:
        """Whether this object spawned the node it talks to"""
        return self.anvil_process is not None

    def start(self) -> Dict[str, Any]:
        """
        Start environment

        Returns:
            Environment info dictionary
        """
        # 1. Start Anvil unless an external node was configured
        if self.config.rpc_url:
            self.rpc_url = self.config.rpc_url
            print(f"✓ Using external node: {self.rpc_url}")
        else:
            self._start_anvil()
            self.rpc_url = self.config.anvil_rpc_url

        try:
            return self._connect()
        except Exception:
            self._cleanup_anvil()
            self.w3 = None
            raise

    def _connect(self) -> Dict[str, Any]:
        # 2. Connect Web3 bypassing proxy (local connection should not go through proxy)
        session = requests.Session()
        session.proxies = {
            'http': None,
            'https': None,
        }
        session.trust_env = False

        provider = HTTPProvider(
            self.rpc_url,
            session=session,
            request_kwargs={'timeout': 60}
        )
        self.w3 = Web3(provider)

        if not self.w3.is_connected():
            raise ChainError(f"Cannot connect to node: {self.rpc_url}")

        print(f"✓ Node connected successfully")
        print(f"  Chain ID: {self.w3.eth.chain_id}")
        print(f"  RPC: {self.rpc_url}")
        if self.config.fork_url:
            print(f"  Fork: {self.config.fork_url}")

        # 3. Create initial snapshot for fast reset
        try:
            self.initial_snapshot_id = self.create_snapshot()
        except Exception as e:
            print(f"⚠️  Failed to create initial snapshot: {e}")
            self.initial_snapshot_id = None

        return {
            'rpc_url': self.rpc_url,
            'chain_id': self.w3.eth.chain_id,
            'accounts': self.accounts,
            'block_number': self.w3.eth.block_number,
            'snapshot_id': self.initial_snapshot_id,
        }

    def _require_started(self):
        if not self.w3:
            raise ChainError("Chain not started")

    def _rpc(self, method: str, params: list) -> Any:
        """Send a raw RPC request and unwrap its result"""
        self._require_started()
        response = self.w3.provider.make_request(method, params)
        if 'error' in response:
            raise ChainError(f"{method} failed: {response['error']}")
        return response.get('result')

    @property
    def accounts(self) -> List[str]:
        """Accounts unlocked on the node"""
        self._require_started()
        return list(self.w3.eth.accounts)

    def create_snapshot(self) -> str:
        """
        Create snapshot of current state

        Returns:
            Snapshot ID
        """
        snapshot_id = self._rpc('evm_snapshot', [])
        print(f"✓ Snapshot created: {snapshot_id}")
        return snapshot_id

    def revert_to_snapshot(self, snapshot_id: str) -> bool:
        """
        Revert to specified snapshot

        Args:
            snapshot_id: Snapshot ID

        Returns:
            Whether revert was successful
        """
        result = bool(self._rpc('evm_revert', [snapshot_id]))
        if result:
            print(f"✓ Reverted to snapshot: {snapshot_id}")
        else:
            print(f"⚠️  Failed to revert snapshot: {snapshot_id}")
        return result

    def reset(self) -> bool:
        """
        Revert to the state right after start() and take the snapshot again
        (Anvil consumes a snapshot on revert)
        """
        self._require_started()
        if not self.initial_snapshot_id:
            print("⚠️  Warning: No initial snapshot, cannot reset")
            return False

        if not self.revert_to_snapshot(self.initial_snapshot_id):
            return False
        self.initial_snapshot_id = self.create_snapshot()
        return True

    def set_balance(self, address: str, wei: int):
        self._rpc('anvil_setBalance', [to_checksum_address(address), hex(wei)])

    def create_account(self, balance_wei: int = 100 * 10**18) -> str:
        """
        Create a fresh account, fund it and let the node send transactions for it

        Returns:
            Checksummed address
        """
        account = Account.create()
        self.set_balance(account.address, balance_wei)
        self._rpc('anvil_impersonateAccount', [account.address])
        print(f"✓ Account created: {account.address} ({balance_wei / 10**18} ETH)")
        return account.address

    @contextmanager
    def impersonate(self, address: str):
        """Send transactions from an arbitrary address inside the block"""
        address = to_checksum_address(address)
        self._rpc('anvil_impersonateAccount', [address])
        try:
            yield address
        finally:
            self._rpc('anvil_stopImpersonatingAccount', [address])

    def stop(self):
        """Stop environment"""
        self._cleanup_anvil()
        self.w3 = None
        self.initial_snapshot_id = None
        print("✓ Environment cleaned up")

    def _start_anvil(self):
        """Start Anvil process"""
        port = self.config.anvil_port

        # 1. Check if port is in use
        if is_port_in_use(port):
            raise ChainError(
                f"Port {port} is already in use, cannot start Anvil\n"
                f"Set INFT_RPC_URL to reuse the running node or free the port:\n"
                f"  Linux/Mac: lsof -ti:{port} | xargs kill -9"
            )

        # 2. Find anvil command
        self.anvil_cmd = find_anvil()
        if not self.anvil_cmd:
            raise ChainError(
                "Anvil not found! Please install Foundry:\n"
                "  curl -L https://foundry.paradigm.xyz | bash\n"
                "  foundryup"
            )
        print(f"✓ Found Anvil: {self.anvil_cmd}")

        # 3. Start Anvil
        anvil_cmd_list = [
            self.anvil_cmd,
            '--port', str(port),
            '--host', '127.0.0.1',
            '--chain-id', str(self.config.chain_id),
        ]
        if self.config.fork_url:
            anvil_cmd_list += ['--fork-url', self.config.fork_url, '--retries', '3']

        print(f"🔨 Starting Anvil on port {port}...")

        # Proxy settings in the environment break local RPC
        anvil_env = os.environ.copy()
        for var in PROXY_VARS:
            anvil_env.pop(var, None)
        anvil_env['no_proxy'] = '*'
        anvil_env['NO_PROXY'] = '*'

        self.anvil_process = subprocess.Popen(
            anvil_cmd_list,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            env=anvil_env
        )

        # Drain stderr on a thread so the pipe buffer never fills
        stderr_queue = queue.Queue()

        process = self.anvil_process

        def read_stderr():
            for line in iter(process.stderr.readline, b''):
                stderr_queue.put(line.decode('utf-8', errors='ignore').strip())

        threading.Thread(target=read_stderr, daemon=True).start()

        stderr_output = []

        def drain():
            while True:
                try:
                    line = stderr_queue.get_nowait()
                except queue.Empty:
                    break
                if line:
                    stderr_output.append(line)

        # 4. Wait for start
        for i in range(self.startup_timeout):
            time.sleep(1)
            drain()

            if is_port_in_use(port):
                print(f"✓ Anvil started successfully ({i + 1}s)")
                return

            if self.anvil_process.poll() is not None:
                returncode = self.anvil_process.returncode
                time.sleep(0.5)
                drain()
                error_msg = '\n'.join(stderr_output[-20:]) if stderr_output else "No error message"
                self._cleanup_anvil()
                raise ChainError(
                    f"Anvil process exited unexpectedly (code {returncode})\n"
                    f"Error message: {error_msg[:500]}"
                )

        drain()
        stderr_log = '\n'.join(stderr_output[-30:]) if stderr_output else "No output captured"
        self._cleanup_anvil()
        raise ChainError(
            f"Anvil start timed out ({self.startup_timeout}s)\n"
            f"Anvil stderr output (last 30 lines):\n{stderr_log}"
        )

    def _cleanup_anvil(self):
        """Cleanup Anvil process"""
        if self.anvil_process:
            try:
                self.anvil_process.terminate()
                self.anvil_process.wait(timeout=5)
                print("✓ Anvil process terminated")
            except subprocess.TimeoutExpired:
                self.anvil_process.kill()
                print("✓ Anvil process forcibly terminated")
            self.anvil_process = None
