"""
Run an iNFT deployment routine against a local chain

Usage:
    # Deploy a fully featured ALI token on a fresh Anvil node
    python run_deployment.py ali_erc20_deploy --contracts-dir ../contracts

    # Deploy iNFT bound to an existing ALI token on a running node
    python run_deployment.py intelligent_nft_deploy --rpc-url http://127.0.0.1:8545 --ali-addr 0x...

    # Check toolchain and contract sources
    python run_deployment.py --check-setup
"""

import argparse
import inspect
import json
import sys
from pathlib import Path
from typing import Any, Dict

from inft_deploy import check_setup
from inft_deploy.artifacts import ArtifactRegistry, ContractInstance
from inft_deploy.chain import LocalChain
from inft_deploy.config import ChainConfig
from inft_deploy.deployment_routines import DEPLOYMENT_ROUTINES
from inft_deploy.errors import InftDeployError

# CLI option -> routine keyword argument
ROUTINE_OPTIONS = ['h0', 'name', 'symbol', 'ali_addr', 'persona_addr', 'nft_addr']


def deployment_addresses(result) -> Dict[str, Any]:
    """Flatten a routine result into {field: address or value}"""
    if isinstance(result, ContractInstance):
        return {result.name: result.address}
    addresses = {}
    for field, value in result._asdict().items():
        addresses[field] = value.address if isinstance(value, ContractInstance) else value
    return addresses


def routine_kwargs(routine, args: argparse.Namespace) -> Dict[str, Any]:
    """Pass through only the options the routine accepts and that were given"""
    params = inspect.signature(routine).parameters
    return {
        option: getattr(args, option)
        for option in ROUTINE_OPTIONS
        if option in params and getattr(args, option) is not None
    }


def run(args: argparse.Namespace) -> Dict[str, Any]:
    config = ChainConfig(
        rpc_url=args.rpc_url,
        fork_url=args.fork_url,
        anvil_port=args.port,
        contracts_dir=args.contracts_dir,
        build_dir=args.build_dir,
    )
    routine = DEPLOYMENT_ROUTINES[args.routine]

    with LocalChain(config) as chain:
        a0 = args.a0 or chain.accounts[0]
        artifacts = ArtifactRegistry.from_config(chain.w3, config)

        print(f"\n🚀 {args.routine} (a0: {a0})")
        result = routine(artifacts, a0, **routine_kwargs(routine, args))
        return deployment_addresses(result)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description='Deploy iNFT protocol contracts with pre-wired permissions',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Routines:\n  " + "\n  ".join(DEPLOYMENT_ROUTINES)
    )

    parser.add_argument(
        'routine',
        nargs='?',
        choices=sorted(DEPLOYMENT_ROUTINES),
        help='Deployment routine to run'
    )
    parser.add_argument('--a0', type=str, default=None, help='Deployer / super admin (default: first node account)')
    parser.add_argument('--h0', type=str, default=None, help='Initial ALI token holder (default: a0)')
    parser.add_argument('--name', type=str, default=None, help='Personality Pod ERC721 name')
    parser.add_argument('--symbol', type=str, default=None, help='Personality Pod ERC721 symbol')
    parser.add_argument('--ali-addr', type=str, default=None, help='Attach to this AliERC20 instead of deploying')
    parser.add_argument('--persona-addr', type=str, default=None, help='Attach to this PersonalityPodERC721 instead of deploying')
    parser.add_argument('--nft-addr', type=str, default=None, help='ERC721 address for the *_pure routines')
    parser.add_argument('--rpc-url', type=str, default=None, help='Use a running node instead of spawning Anvil')
    parser.add_argument('--fork-url', type=str, default=None, help='Upstream RPC URL for Anvil to fork')
    parser.add_argument('--port', type=int, default=None, help='Anvil port (default: 8545)')
    parser.add_argument('--contracts-dir', type=str, default=None, help='Directory with Solidity sources')
    parser.add_argument('--build-dir', type=str, default=None, help='Directory with compiled JSON artifacts')
    parser.add_argument('--output', type=str, default=None, help='Write deployed addresses to this JSON file')
    parser.add_argument('--check-setup', action='store_true', help='Check toolchain and contract sources, then exit')

    args = parser.parse_args(argv)

    if args.check_setup:
        return check_setup.main(ChainConfig(
            rpc_url=args.rpc_url,
            contracts_dir=args.contracts_dir,
            build_dir=args.build_dir,
        ))

    if not args.routine:
        parser.error('routine is required unless --check-setup is given')

    try:
        addresses = run(args)
    except (InftDeployError, ValueError) as e:
        print(f"❌ Deployment failed: {e}")
        return 1

    print("\n" + "=" * 80)
    print(f"✅ {args.routine} completed")
    for field, value in addresses.items():
        print(f"  {field:<12} {value}")
    print("=" * 80)

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump({'routine': args.routine, 'addresses': addresses}, f, indent=2)
        print(f"📁 Addresses saved to: {output_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
