"""
Block and time helpers shared by the deployment routines and tests
"""

import time
from typing import Any, Mapping, Optional

from web3 import Web3

# "Current" timestamp forced onto the staking mock
DEFAULT_NOW32 = 1_000_000_000

# uint32 timestamp far enough in the future for permits and authorizations
DEFAULT_DEADLINE = 4_000_000_000


def default_deadline(offset: Optional[int] = None) -> int:
    """
    Deadline for signed approvals

    Args:
        offset: Seconds from now; None returns DEFAULT_DEADLINE

    Returns:
        Unix timestamp
    """
    if offset is None:
        return DEFAULT_DEADLINE
    return int(time.time()) + offset


def now32(w3: Web3) -> int:
    """Timestamp of the latest block"""
    return int(w3.eth.get_block('latest')['timestamp'])


def extract_gas(receipt: Mapping[str, Any]) -> int:
    return int(receipt['gasUsed'])
