import json
from unittest.mock import MagicMock

import pytest
from solcx.exceptions import SolcError, SolcNotInstalled
from web3.exceptions import ContractLogicError, TimeExhausted

from inft_deploy import artifacts as artifacts_module
from inft_deploy.artifacts import ArtifactRegistry, ContractArtifact, ContractInstance, normalize_name
from inft_deploy.config import ChainConfig
from inft_deploy.errors import ArtifactNotFoundError, ContractNotFoundError, DeploymentError, InftDeployError

DEPLOYER = '0x' + '10' * 20
DEPLOYED = '0x' + '12' * 20
ABI = [{'type': 'constructor', 'inputs': [{'name': 'holder', 'type': 'address'}], 'stateMutability': 'nonpayable'}]


def make_w3(receipt=None, code=b'\x60\x80'):
    w3 = MagicMock()
    w3.eth.wait_for_transaction_receipt.return_value = receipt or {
        'status': 1,
        'gasUsed': 21000,
        'contractAddress': DEPLOYED,
    }
    w3.eth.get_code.return_value = code
    return w3


@pytest.mark.parametrize('name', ['./AliERC20v2', 'AliERC20v2.sol', 'AliERC20v2', 'contracts/AliERC20v2.sol'])
def test_normalize_name(name):
    assert normalize_name(name) == 'AliERC20v2'


def test_new_deploys_and_waits_for_receipt():
    w3 = make_w3()
    artifact = ContractArtifact(w3, 'AliERC20v2', ABI, '6080', gas=5_000_000, tx_timeout=12)

    instance = artifact.new(DEPLOYER, sender=DEPLOYER)

    w3.eth.contract.assert_any_call(abi=ABI, bytecode='0x6080')
    factory = w3.eth.contract.return_value
    factory.constructor.assert_called_once_with(DEPLOYER)
    factory.constructor.return_value.transact.assert_called_once_with({'from': DEPLOYER, 'gas': 5_000_000})
    w3.eth.wait_for_transaction_receipt.assert_called_once_with(
        factory.constructor.return_value.transact.return_value, timeout=12
    )
    assert isinstance(instance, ContractInstance)
    assert instance.address == DEPLOYED
    assert instance.name == 'AliERC20v2'
    assert instance.receipt['status'] == 1


def test_new_raises_on_reverted_deployment():
    w3 = make_w3(receipt={'status': 0, 'gasUsed': 100, 'contractAddress': None})
    artifact = ContractArtifact(w3, 'AliERC20v2', ABI, '0x6080')

    with pytest.raises(DeploymentError) as exc_info:
        artifact.new(DEPLOYER, sender=DEPLOYER)
    assert exc_info.value.receipt['status'] == 0


def test_new_raises_without_contract_address():
    w3 = make_w3(receipt={'status': 1, 'gasUsed': 100, 'contractAddress': None})
    artifact = ContractArtifact(w3, 'AliERC20v2', ABI, '0x6080')

    with pytest.raises(DeploymentError):
        artifact.new(DEPLOYER, sender=DEPLOYER)


def test_new_refuses_empty_bytecode():
    w3 = make_w3()
    artifact = ContractArtifact(w3, 'IERC721', [], '0x')

    with pytest.raises(DeploymentError):
        artifact.new(sender=DEPLOYER)
    w3.eth.contract.assert_not_called()


def test_at_binds_existing_contract():
    w3 = make_w3()
    artifact = ContractArtifact(w3, 'AliERC20v2', ABI, '0x6080')

    instance = artifact.at(DEPLOYED.lower())

    assert instance.address == DEPLOYED
    assert instance.receipt is None
    w3.eth.get_code.assert_called_once_with(DEPLOYED)


def test_at_raises_when_no_code():
    artifact = ContractArtifact(make_w3(code=b''), 'AliERC20v2', ABI, '0x6080')

    with pytest.raises(ContractNotFoundError) as exc_info:
        artifact.at(DEPLOYED)
    assert exc_info.value.address == DEPLOYED


@pytest.mark.parametrize('address', [None, '', '0x1234', 'not an address'])
def test_at_rejects_invalid_address(address):
    artifact = ContractArtifact(make_w3(), 'AliERC20v2', ABI, '0x6080')

    with pytest.raises(ValueError):
        artifact.at(address)


def test_instance_transact_and_call():
    w3 = make_w3(receipt={'status': 1, 'gasUsed': 30000})
    artifact = ContractArtifact(w3, 'AliERC20v2', ABI, '0x6080')
    instance = ContractInstance(artifact, DEPLOYED)
    fn = instance.contract.get_function_by_name.return_value.return_value
    fn.call.return_value = 0xFFFF

    receipt = instance.transact('updateFeatures', 0xFFFF, sender=DEPLOYER)

    instance.contract.get_function_by_name.assert_called_with('updateFeatures')
    fn.transact.assert_called_once_with({'from': DEPLOYER})
    assert receipt['gasUsed'] == 30000
    assert instance.call('features') == 0xFFFF


def test_instance_transact_raises_on_revert():
    w3 = make_w3(receipt={'status': 0, 'gasUsed': 30000})
    instance = ContractInstance(ContractArtifact(w3, 'PersonalityPodERC721', ABI, '0x6080'), DEPLOYED)

    with pytest.raises(DeploymentError, match='PersonalityPodERC721.updateRole'):
        instance.transact('updateRole', DEPLOYER, 0x10000, sender=DEPLOYER)


def test_instances_compare_by_address():
    artifact = ContractArtifact(make_w3(), 'AliERC20v2', ABI, '0x6080')

    assert ContractInstance(artifact, DEPLOYED) == ContractInstance(artifact, DEPLOYED.lower())
    assert len({ContractInstance(artifact, DEPLOYED), ContractInstance(artifact, DEPLOYED)}) == 1


def test_registry_loads_truffle_and_foundry_artifacts(tmp_path):
    (tmp_path / 'AliERC20v2.json').write_text(json.dumps({'abi': ABI, 'bytecode': '0x6080'}))
    nested = tmp_path / 'NFTStakingMock.sol'
    nested.mkdir()
    (nested / 'NFTStakingMock.json').write_text(json.dumps({'abi': [], 'bytecode': {'object': '0x6090'}}))
    registry = ArtifactRegistry(make_w3(), build_dir=tmp_path)

    ali = registry.require('./AliERC20v2')
    staking = registry.require('NFTStakingMock')

    assert ali.abi == ABI
    assert ali.bytecode == '0x6080'
    assert staking.bytecode == '0x6090'
    assert registry.require('AliERC20v2.sol') is ali


def test_registry_skips_json_without_abi(tmp_path):
    (tmp_path / 'AliERC20v2.json').write_text(json.dumps({'_format': 'hh-sol-dbg-1'}))
    registry = ArtifactRegistry(make_w3(), build_dir=tmp_path)

    with pytest.raises(ArtifactNotFoundError) as exc_info:
        registry.require('AliERC20v2')
    assert exc_info.value.name == 'AliERC20v2'


def test_registry_compiles_sources_once(tmp_path, monkeypatch):
    (tmp_path / 'Tokens.sol').write_text('contract AliERC20v2 {}')
    compile_files = MagicMock(return_value={
        f'{tmp_path}/Tokens.sol:AliERC20v2': {'abi': ABI, 'bin': '6080'},
        f'{tmp_path}/Tokens.sol:PersonalityPodERC721': {'abi': [], 'bin': '6090'},
    })
    monkeypatch.setattr(artifacts_module, 'compile_files', compile_files)
    registry = ArtifactRegistry(make_w3(), contracts_dir=tmp_path, solc_version='0.8.20')

    ali = registry.require('AliERC20v2')
    persona = registry.require('PersonalityPodERC721')

    assert ali.bytecode == '0x6080'
    assert persona.bytecode == '0x6090'
    compile_files.assert_called_once()
    assert compile_files.call_args.kwargs['solc_version'] == '0.8.20'


def test_registry_installs_missing_solc(tmp_path, monkeypatch):
    (tmp_path / 'Tokens.sol').write_text('contract AliERC20v2 {}')
    compile_files = MagicMock(side_effect=[
        SolcNotInstalled('not installed'),
        {f'{tmp_path}/Tokens.sol:AliERC20v2': {'abi': ABI, 'bin': '6080'}},
    ])
    install_solc = MagicMock()
    monkeypatch.setattr(artifacts_module, 'compile_files', compile_files)
    monkeypatch.setattr(artifacts_module, 'install_solc', install_solc)
    registry = ArtifactRegistry(make_w3(), contracts_dir=tmp_path, solc_version='0.8.19')

    registry.require('AliERC20v2')

    install_solc.assert_called_once_with('0.8.19')
    assert compile_files.call_count == 2


def test_registry_prefers_registered_artifacts(tmp_path):
    (tmp_path / 'AliERC20v2.json').write_text(json.dumps({'abi': ABI, 'bytecode': '0x6080'}))
    registry = ArtifactRegistry(make_w3(), build_dir=tmp_path)

    registered = registry.register('AliERC20v2', [], '0xfe')

    assert registry.require('AliERC20v2') is registered


def test_registry_unknown_contract(tmp_path):
    registry = ArtifactRegistry(make_w3(), contracts_dir=tmp_path, build_dir=tmp_path / 'missing')

    with pytest.raises(ArtifactNotFoundError):
        registry.require('IntelligentNFTv2')


def test_registry_from_config(tmp_path):
    config = ChainConfig(contracts_dir=tmp_path, solc_version='0.8.15', gas=7_000_000, tx_timeout=5)
    registry = ArtifactRegistry.from_config(make_w3(), config)

    assert registry.contracts_dir == tmp_path
    assert registry.solc_version == '0.8.15'
    assert registry.register('X', [], '0x00').gas == 7_000_000
    assert registry.tx_timeout == 5


def test_instance_transact_wraps_estimate_revert():
    w3 = make_w3()
    instance = ContractInstance(ContractArtifact(w3, 'NFTStakingMock', ABI, '0x6080'), DEPLOYED)
    fn = instance.contract.get_function_by_name.return_value.return_value
    fn.transact.side_effect = ContractLogicError('execution reverted: access denied')

    with pytest.raises(DeploymentError, match='NFTStakingMock.setNow32 reverted') as exc_info:
        instance.transact('setNow32', 1_000_000_000, sender=DEPLOYER)
    w3.eth.wait_for_transaction_receipt.assert_not_called()
    assert isinstance(exc_info.value.__cause__, ContractLogicError)


def test_new_wraps_constructor_revert():
    w3 = make_w3()
    w3.eth.contract.return_value.constructor.return_value.transact.side_effect = ContractLogicError('execution reverted')
    artifact = ContractArtifact(w3, 'IntelligentNFTv2', ABI, '0x6080')

    with pytest.raises(DeploymentError, match='IntelligentNFTv2 constructor reverted') as exc_info:
        artifact.new(DEPLOYER, sender=DEPLOYER)
    assert isinstance(exc_info.value.__cause__, ContractLogicError)


def test_receipt_timeout_raises_deployment_error():
    w3 = make_w3()
    w3.eth.wait_for_transaction_receipt.side_effect = TimeExhausted('not in chain after 3 seconds')
    artifact = ContractArtifact(w3, 'PersonalityDrop', ABI, '0x6080', tx_timeout=3)

    with pytest.raises(DeploymentError, match='PersonalityDrop deployment not mined within 3s'):
        artifact.new(DEPLOYER, sender=DEPLOYER)

    instance = ContractInstance(artifact, DEPLOYED)
    with pytest.raises(DeploymentError, match='PersonalityDrop.updateFeatures not mined'):
        instance.transact('updateFeatures', 0xFFFF, sender=DEPLOYER)


@pytest.mark.parametrize('registered_as', ['./AliERC20v2', 'AliERC20v2.sol', 'AliERC20v2'])
def test_registered_artifact_resolves_under_every_name_form(tmp_path, registered_as):
    registry = ArtifactRegistry(make_w3(), build_dir=tmp_path)

    registered = registry.register(registered_as, [], '0xfe')

    assert registered.name == 'AliERC20v2'
    for name in ('./AliERC20v2', 'AliERC20v2.sol', 'AliERC20v2'):
        assert registry.require(name) is registered


def test_compile_failure_raises_deploy_error(tmp_path, monkeypatch):
    (tmp_path / 'Broken.sol').write_text('contract AliERC20v2 {')
    compile_files = MagicMock(side_effect=[
        SolcError('compile failed', command=['solc'], return_code=1, stdin_data=None, stdout_data='', stderr_data='ParserError'),
        {f'{tmp_path}/Broken.sol:AliERC20v2': {'abi': ABI, 'bin': '6080'}},
    ])
    monkeypatch.setattr(artifacts_module, 'compile_files', compile_files)
    registry = ArtifactRegistry(make_w3(), contracts_dir=tmp_path)

    with pytest.raises(InftDeployError, match='Compiling'):
        registry.require('AliERC20v2')

    # a fixed source tree compiles on the next lookup
    assert registry.require('AliERC20v2').bytecode == '0x6080'
    assert compile_files.call_count == 2
