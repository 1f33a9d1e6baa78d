"""
Deployment routines for the iNFT protocol contracts

Each routine deploys (or attaches to) a contract and wires up the feature
flags and roles a test needs. Every transaction is sent from a0, the
smart contract owner and super admin.
"""

from typing import NamedTuple

from .artifacts import ArtifactRegistry, ContractInstance
from .block_utils import DEFAULT_NOW32
from .features_roles import FEATURE_ALL, ROLE_TOKEN_CREATOR

ALI_ERC20 = "./AliERC20v2"
PERSONALITY_POD_ERC721 = "./PersonalityPodERC721"
INTELLIGENT_NFT = "./IntelligentNFTv2"
PERSONALITY_DROP = "./PersonalityDrop"
NFT_STAKING = "./NFTStakingMock"

DEFAULT_PERSONA_NAME = "iNFT Personality Pod"
DEFAULT_PERSONA_SYMBOL = "POD"


class IntelligentNftDeployment(NamedTuple):
    ali: ContractInstance
    inft: ContractInstance


class PersonaDropDeployment(NamedTuple):
    persona: ContractInstance
    airdrop: ContractInstance


class PersonaStakingDeployment(NamedTuple):
    persona: ContractInstance
    staking: ContractInstance
    now32: int


def ali_erc20_deploy(artifacts: ArtifactRegistry, a0: str, h0: str = None) -> ContractInstance:
    """
    Deploys AliERC20 token with all the features enabled

    Args:
        artifacts: Contract artifact registry
        a0: Smart contract owner, super admin
        h0: Initial token holder address, defaults to a0

    Returns:
        AliERC20 instance
    """
    token = ali_erc20_deploy_restricted(artifacts, a0, h0)
    token.transact("updateFeatures", FEATURE_ALL, sender=a0)
    print(f"  • {token.name}: all features enabled")
    return token


def ali_erc20_deploy_restricted(artifacts: ArtifactRegistry, a0: str, h0: str = None) -> ContractInstance:
    """
    Deploys AliERC20 token with no features enabled

    Args:
        artifacts: Contract artifact registry
        a0: Smart contract owner, super admin
        h0: Initial token holder address, defaults to a0

    Returns:
        AliERC20 instance
    """
    AliERC20 = artifacts.require(ALI_ERC20)
    return AliERC20.new(h0 or a0, sender=a0)


def persona_deploy(
    artifacts: ArtifactRegistry,
    a0: str,
    name: str = DEFAULT_PERSONA_NAME,
    symbol: str = DEFAULT_PERSONA_SYMBOL
) -> ContractInstance:
    """
    Deploys Personality Pod ERC721 token with all the features enabled

    Args:
        artifacts: Contract artifact registry
        a0: Smart contract owner, super admin
        name: ERC721 name
        symbol: ERC721 symbol

    Returns:
        PersonalityPodERC721 instance
    """
    token = persona_deploy_restricted(artifacts, a0, name, symbol)
    token.transact("updateFeatures", FEATURE_ALL, sender=a0)
    print(f"  • {token.name}: all features enabled")
    return token


def persona_deploy_restricted(
    artifacts: ArtifactRegistry,
    a0: str,
    name: str = DEFAULT_PERSONA_NAME,
    symbol: str = DEFAULT_PERSONA_SYMBOL
) -> ContractInstance:
    """Deploys Personality Pod ERC721 token with no features enabled"""
    PersonalityPodERC721 = artifacts.require(PERSONALITY_POD_ERC721)
    return PersonalityPodERC721.new(name, symbol, sender=a0)


def intelligent_nft_deploy(artifacts: ArtifactRegistry, a0: str, ali_addr: str = None) -> IntelligentNftDeployment:
    """
    Deploys Intelligent NFT v2

    Binds the iNFT to the AliERC20 token at ali_addr when given,
    deploys a new fully featured AliERC20 otherwise.

    Args:
        artifacts: Contract artifact registry
        a0: Smart contract owner, super admin
        ali_addr: AliERC20 token address, optional

    Returns:
        (ali, inft) instances
    """
    AliERC20 = artifacts.require(ALI_ERC20)
    IntelligentNFTv2 = artifacts.require(INTELLIGENT_NFT)

    ali = AliERC20.at(ali_addr) if ali_addr else ali_erc20_deploy(artifacts, a0)
    inft = IntelligentNFTv2.new(ali.address, sender=a0)

    return IntelligentNftDeployment(ali, inft)


def nft_drop_deploy_pure(artifacts: ArtifactRegistry, a0: str, nft_addr: str) -> ContractInstance:
    """
    Deploys PersonalityDrop with no features enabled, and no roles set up

    Args:
        artifacts: Contract artifact registry
        a0: Smart contract owner, super admin
        nft_addr: ERC721 token the airdrop is going to mint, required

    Returns:
        PersonalityDrop instance
    """
    if not nft_addr:
        raise ValueError("nft_addr is required to deploy PersonalityDrop")

    PersonalityDrop = artifacts.require(PERSONALITY_DROP)
    return PersonalityDrop.new(nft_addr, sender=a0)


def persona_drop_deploy_restricted(
    artifacts: ArtifactRegistry,
    a0: str,
    persona_addr: str = None
) -> PersonaDropDeployment:
    """
    Deploys PersonalityDrop with no features enabled, but all the required roles set up

    Binds the drop to the PersonalityPodERC721 at persona_addr when given,
    deploys a new fully featured one otherwise.

    Returns:
        (persona, airdrop) instances
    """
    PersonalityPodERC721 = artifacts.require(PERSONALITY_POD_ERC721)

    persona = PersonalityPodERC721.at(persona_addr) if persona_addr else persona_deploy(artifacts, a0)
    airdrop = nft_drop_deploy_pure(artifacts, a0, persona.address)

    # the airdrop mints the tokens it distributes
    persona.transact("updateRole", airdrop.address, ROLE_TOKEN_CREATOR, sender=a0)
    print(f"  • {persona.name}: ROLE_TOKEN_CREATOR granted to {airdrop.name} {airdrop.address}")

    return PersonaDropDeployment(persona, airdrop)


def persona_staking_deploy_restricted(
    artifacts: ArtifactRegistry,
    a0: str,
    persona_addr: str = None
) -> PersonaStakingDeployment:
    """
    Deploys NFTStaking with no features enabled, but all the required roles set up

    Binds staking to the PersonalityPodERC721 at persona_addr when given,
    deploys a new fully featured one otherwise. The staking mock clock
    is pinned to DEFAULT_NOW32.

    Returns:
        (persona, staking, now32)
    """
    PersonalityPodERC721 = artifacts.require(PERSONALITY_POD_ERC721)

    persona = PersonalityPodERC721.at(persona_addr) if persona_addr else persona_deploy(artifacts, a0)
    staking = nft_staking_deploy_pure(artifacts, a0, persona.address)

    now32 = DEFAULT_NOW32
    staking.transact("setNow32", now32, sender=a0)
    print(f"  • {staking.name}: now32 set to {now32}")

    return PersonaStakingDeployment(persona, staking, now32)


def nft_staking_deploy_pure(artifacts: ArtifactRegistry, a0: str, nft_addr: str) -> ContractInstance:
    """
    Deploys NFTStaking with no features enabled, and no roles set up

    Args:
        artifacts: Contract artifact registry
        a0: Smart contract owner, super admin
        nft_addr: ERC721 token staking would accept, required

    Returns:
        NFTStaking instance
    """
    if not nft_addr:
        raise ValueError("nft_addr is required to deploy NFTStaking")

    NFTStaking = artifacts.require(NFT_STAKING)
    return NFTStaking.new(nft_addr, sender=a0)


# Routine Registry - maps routine name to function
DEPLOYMENT_ROUTINES = {
    'ali_erc20_deploy': ali_erc20_deploy,
    'ali_erc20_deploy_restricted': ali_erc20_deploy_restricted,
    'persona_deploy': persona_deploy,
    'persona_deploy_restricted': persona_deploy_restricted,
    'intelligent_nft_deploy': intelligent_nft_deploy,
    'nft_drop_deploy_pure': nft_drop_deploy_pure,
    'persona_drop_deploy_restricted': persona_drop_deploy_restricted,
    'persona_staking_deploy_restricted': persona_staking_deploy_restricted,
    'nft_staking_deploy_pure': nft_staking_deploy_pure,
}
