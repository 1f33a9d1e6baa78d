"""
Feature flags and roles used by the iNFT protocol contracts

Values mirror the constants declared in the contracts' access control.
Features occupy the low 16 bits, roles the bits above them.
"""

# ERC20 / ERC721 token features
FEATURE_TRANSFERS = 0x0000_0001
FEATURE_TRANSFERS_ON_BEHALF = 0x0000_0002
FEATURE_UNSAFE_TRANSFERS = 0x0000_0004
FEATURE_OWN_BURNS = 0x0000_0008
FEATURE_BURNS_ON_BEHALF = 0x0000_0010
FEATURE_DELEGATIONS = 0x0000_0020
FEATURE_DELEGATIONS_ON_BEHALF = 0x0000_0040
FEATURE_ERC1363_TRANSFERS = 0x0000_0080
FEATURE_ERC1363_APPROVALS = 0x0000_0100
FEATURE_EIP2612_PERMITS = 0x0000_0200
FEATURE_EIP3009_TRANSFERS = 0x0000_0400
FEATURE_EIP3009_RECEPTIONS = 0x0000_0800

# Intelligent NFT linker features
FEATURE_LINKING = 0x0000_0001
FEATURE_UNLINKING = 0x0000_0002
FEATURE_DEPOSITS = 0x0000_0004
FEATURE_WITHDRAWALS = 0x0000_0008

# Airdrop and staking features
FEATURE_REDEEM = 0x0000_0001
FEATURE_STAKING = 0x0000_0001
FEATURE_UNSTAKING = 0x0000_0002

FEATURE_ALL = 0x0000_FFFF

# Token roles
ROLE_TOKEN_CREATOR = 0x0001_0000
ROLE_TOKEN_DESTROYER = 0x0002_0000
ROLE_ERC20_RECEIVER = 0x0004_0000
ROLE_ERC20_SENDER = 0x0008_0000
ROLE_URI_MANAGER = 0x0010_0000

# Intelligent NFT roles
ROLE_MINTER = 0x0001_0000
ROLE_BURNER = 0x0002_0000
ROLE_EDITOR = 0x0004_0000

# Oracle / data roles
ROLE_DATA_MANAGER = 0x0001_0000

ROLE_ACCESS_MANAGER = 1 << 255

FULL_PRIVILEGES_MASK = (1 << 256) - 1


def not_(*masks: int) -> int:
    """
    Complement of the given masks within the 256-bit permission space

    Example:
        not_(FEATURE_LINKING) enables everything except linking
    """
    combined = 0
    for mask in masks:
        combined |= mask
    return FULL_PRIVILEGES_MASK ^ (combined & FULL_PRIVILEGES_MASK)
