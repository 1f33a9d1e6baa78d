"""
iNFT Deploy - Deployment helpers for the iNFT protocol test suite

Deploys the ALI ERC20 token, Personality Pod ERC721, Intelligent NFT v2,
Personality airdrop and NFT staking contracts on a local EVM node with
their feature flags and roles pre-wired.
"""

__version__ = "0.1.0"
