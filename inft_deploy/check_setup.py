#!/usr/bin/env python3
"""
iNFT Deploy Setup Checker

Verifies that the local toolchain and the contract sources needed by the
deployment routines are available.
"""

import re
import sys
from pathlib import Path

from solcx import get_installed_solc_versions

from .chain import find_anvil
from .config import ChainConfig
from .deployment_routines import (
    ALI_ERC20,
    INTELLIGENT_NFT,
    NFT_STAKING,
    PERSONALITY_DROP,
    PERSONALITY_POD_ERC721,
)
from .artifacts import normalize_name

REQUIRED_CONTRACTS = [
    normalize_name(name)
    for name in (ALI_ERC20, PERSONALITY_POD_ERC721, INTELLIGENT_NFT, PERSONALITY_DROP, NFT_STAKING)
]


def check_directory_exists(dirpath: Path, description: str) -> bool:
    """Check if a directory exists"""
    if dirpath and dirpath.is_dir():
        print(f"✅ {description}: {dirpath}")
        return True
    print(f"❌ {description}: {dirpath} NOT FOUND")
    return False


def find_contract(name: str, config: ChainConfig) -> bool:
    """Whether a source file or build artifact exists for the contract"""
    for directory, pattern in ((config.build_dir, f'{name}.json'), (config.contracts_dir, f'{name}.sol')):
        if directory and directory.is_dir() and any(directory.rglob(pattern)):
            return True
    # sources may declare several contracts per file
    declaration = re.compile(rf'\bcontract\s+{re.escape(name)}\b')
    if config.contracts_dir and config.contracts_dir.is_dir():
        for path in config.contracts_dir.rglob('*.sol'):
            if declaration.search(path.read_text(encoding='utf-8', errors='ignore')):
                return True
    return False


def main(config: ChainConfig = None) -> int:
    config = config or ChainConfig()

    print("=" * 80)
    print("🔍 iNFT Deploy Setup Checker")
    print("=" * 80)
    print()

    all_checks_passed = True

    print("🔧 Toolchain:")
    if config.rpc_url:
        print(f"✅ External node configured: {config.rpc_url}")
    else:
        anvil = find_anvil()
        if anvil:
            print(f"✅ Anvil: {anvil}")
        else:
            print("❌ Anvil NOT FOUND (install Foundry or set INFT_RPC_URL)")
            all_checks_passed = False

    installed = [str(v) for v in get_installed_solc_versions()]
    if config.solc_version in installed:
        print(f"✅ solc {config.solc_version} installed")
    else:
        # compiled on demand, only needed for .sol sources
        print(f"⚠️  solc {config.solc_version} not installed yet (installed: {', '.join(installed) or 'none'})")
    print()

    print("📁 Contract Locations:")
    has_build = config.build_dir is not None and check_directory_exists(config.build_dir, "Build artifacts")
    has_sources = config.contracts_dir is not None and check_directory_exists(config.contracts_dir, "Solidity sources")
    if not (has_build or has_sources):
        print("❌ Neither INFT_BUILD_DIR nor INFT_CONTRACTS_DIR points to an existing directory")
        all_checks_passed = False
    print()

    print("📦 Protocol Contracts:")
    for name in REQUIRED_CONTRACTS:
        if find_contract(name, config):
            print(f"✅ {name}")
        else:
            print(f"❌ {name} NOT FOUND")
            all_checks_passed = False
    print()

    print("=" * 80)
    if not all_checks_passed:
        print("❌ SOME CHECKS FAILED - Please review errors above")
        return 1
    print("✅ ALL CHECKS PASSED - Ready to deploy")
    print("=" * 80)
    return 0


if __name__ == "__main__":
    sys.exit(main())
