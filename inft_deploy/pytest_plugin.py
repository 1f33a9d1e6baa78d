"""
pytest fixtures for suites built on the deployment routines

Loaded automatically through the pytest11 entry point. A session-wide
chain is started on first use; inft_isolation reverts every change a
test makes.
"""

import pytest

from .artifacts import ArtifactRegistry
from .chain import LocalChain
from .config import ChainConfig


def pytest_addoption(parser):
    group = parser.getgroup('inft-deploy')
    group.addoption('--inft-rpc-url', default=None, help='Use an already running node instead of spawning Anvil')
    group.addoption('--inft-contracts-dir', default=None, help='Directory with the Solidity sources')
    group.addoption('--inft-build-dir', default=None, help='Directory with compiled JSON artifacts')


@pytest.fixture(scope='session')
def inft_config(request) -> ChainConfig:
    return ChainConfig(
        rpc_url=request.config.getoption('--inft-rpc-url'),
        contracts_dir=request.config.getoption('--inft-contracts-dir'),
        build_dir=request.config.getoption('--inft-build-dir'),
    )


@pytest.fixture(scope='session')
def inft_chain(inft_config):
    chain = LocalChain(inft_config)
    chain.start()
    yield chain
    chain.stop()


@pytest.fixture(scope='session')
def inft_accounts(inft_chain):
    return inft_chain.accounts


@pytest.fixture(scope='session')
def inft_artifacts(inft_chain, inft_config) -> ArtifactRegistry:
    return ArtifactRegistry.from_config(inft_chain.w3, inft_config)


@pytest.fixture
def inft_isolation(inft_chain):
    """Snapshot before the test, revert after it"""
    snapshot_id = inft_chain.create_snapshot()
    yield
    inft_chain.revert_to_snapshot(snapshot_id)
