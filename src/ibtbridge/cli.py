"""
Command line interface for the IBT bridge.

    ibtbridge verify
    ibtbridge balance --ethereum 0x... --sui 0x...
    ibtbridge transfer eth-to-sui 10 [--from 0x...] [--to 0x...]
    ibtbridge mint-test ethereum [--to 0x...] [--amount 1000]

Deployment identifiers come from ``IBT_BRIDGE_*`` environment variables (see
``BridgeSettings.from_env``). Signer keys come from
``IBT_BRIDGE_ETHEREUM_PRIVATE_KEY`` and ``IBT_BRIDGE_SUI_PRIVATE_KEY``.
"""

import argparse
import asyncio
import json
import os
import sys
from typing import Any, Dict, List, Optional

from .bridge.amounts import format_amount
from .bridge.bridge_types import ChainSide, TransferDirection, TransferOutcome
from .bridge.orchestrator import BridgeService
from .config import BridgeSettings
from .errors import BridgeError, describe_error
from .logging import LogConfig, LogLevel, get_logger, setup_logging

logger = get_logger(__name__)

EXIT_COMPLETED = 0
EXIT_FAILED = 1
EXIT_PARTIAL = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ibtbridge", description="Bridge IBT tokens between Ethereum and Sui"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=[level.value for level in LogLevel],
        help="Log level (default: IBT_BRIDGE_LOG_LEVEL or info)",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=["json", "text"],
        help="Log format written to stderr",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("verify", help="Check bridge resources on both chains")

    balance = subparsers.add_parser("balance", help="Show IBT balances")
    balance.add_argument("--ethereum", help="Ethereum address (default: signer)")
    balance.add_argument("--sui", help="Sui address (default: signer)")

    transfer = subparsers.add_parser("transfer", help="Bridge tokens")
    transfer.add_argument(
        "direction", choices=[direction.value for direction in TransferDirection]
    )
    transfer.add_argument("amount", help="Decimal IBT amount, e.g. 10 or 0.5")
    transfer.add_argument("--from", dest="source", help="Source address (default: signer)")
    transfer.add_argument("--to", dest="destination", help="Destination address (default: signer)")

    mint = subparsers.add_parser("mint-test", help="Mint test IBT liquidity")
    mint.add_argument("chain", choices=[side.value for side in ChainSide])
    mint.add_argument("--to", dest="owner", help="Recipient (default: signer)")
    mint.add_argument("--amount", help="Decimal IBT amount")

    return parser


def _sessions(environ) -> Dict[ChainSide, Any]:
    sessions: Dict[ChainSide, Any] = {}
    ethereum_key = environ.get("IBT_BRIDGE_ETHEREUM_PRIVATE_KEY")
    if ethereum_key:
        from .bridge.chains.ethereum import LocalAccountSession

        sessions[ChainSide.ACCOUNT] = LocalAccountSession(ethereum_key)
    sui_key = environ.get("IBT_BRIDGE_SUI_PRIVATE_KEY")
    if sui_key:
        from .bridge.chains.sui import Ed25519Session

        sessions[ChainSide.OBJECT] = Ed25519Session(sui_key)
    return sessions


def _signer(sessions: Dict[ChainSide, Any], side: ChainSide, given: Optional[str]) -> str:
    if given:
        return given
    session = sessions.get(side)
    if session is None:
        raise SystemExit(f"error: no {side.value} address given and no {side.value} signer key set")
    return session.address


def outcome_exit_code(outcome: TransferOutcome) -> int:
    if outcome.completed:
        return EXIT_COMPLETED
    if outcome.partially_completed:
        return EXIT_PARTIAL
    return EXIT_FAILED


def _print(data: Dict[str, Any]) -> None:
    print(json.dumps(data, indent=2, default=str))


async def run(args: argparse.Namespace, environ=None) -> int:
    environ = os.environ if environ is None else environ
    settings = BridgeSettings.from_env(environ)
    sessions = _sessions(environ)
    service = BridgeService.from_settings(
        settings,
        ethereum_session=sessions.get(ChainSide.ACCOUNT),
        sui_session=sessions.get(ChainSide.OBJECT),
    )
    try:
        if args.command == "verify":
            result = await service.verify()
            _print(
                {
                    "ok": result.ok,
                    "ethereum": result.account.to_dict(),
                    "sui": result.object.to_dict(),
                }
            )
            return EXIT_COMPLETED if result.ok else EXIT_FAILED

        if args.command == "balance":
            balances = await service.balances(
                _signer(sessions, ChainSide.ACCOUNT, args.ethereum),
                _signer(sessions, ChainSide.OBJECT, args.sui),
            )
            _print({chain: format_amount(amount) for chain, amount in balances.items()})
            return EXIT_COMPLETED

        if args.command == "transfer":
            direction = TransferDirection.parse(args.direction)
            outcome = await service.transfer(
                direction,
                args.amount,
                _signer(sessions, direction.source_side, args.source),
                _signer(sessions, direction.destination_side, args.destination),
            )
            _print(outcome.to_dict())
            if outcome.partially_completed:
                logger.critical(
                    "Funds are in an intermediate state and need manual intervention",
                    extra={"transfer_id": outcome.transfer_id, "detail": outcome.detail},
                )
            return outcome_exit_code(outcome)

        if args.command == "mint-test":
            side = ChainSide(args.chain)
            receipt = await service.mint_test_tokens(
                side, _signer(sessions, side, args.owner), args.amount
            )
            _print(receipt.to_dict())
            return EXIT_COMPLETED
    finally:
        await service.close()

    return EXIT_FAILED


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    log_config = LogConfig.from_env()
    if args.log_level:
        log_config.level = LogLevel(args.log_level)
    if args.log_format:
        log_config.format_type = args.log_format
    setup_logging(log_config)

    try:
        return asyncio.run(run(args))
    except BridgeError as e:
        logger.error("Command Failed", extra={"error": e.to_dict()})
        print(f"error: {describe_error(e)}", file=sys.stderr)
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
