"""Command line access to the settlement engine."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict

from loguru import logger

from predictpool.clock import FixedClock
from predictpool.core.config import get_settings
from predictpool.core.logging import configure_logging
from predictpool.db import init_db, session_scope
from predictpool.errors import SettlementError
from predictpool.ledger import SqlValueLedger
from predictpool.platform import PredictionPlatform
from predictpool.repositories import PlatformNotInitialized


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Operate the up/down prediction market settlement engine")
    parser.add_argument("--height", type=int, default=0, help="Current chain height used for window checks")
    parser.add_argument("--caller", default=None, help="Identity performing the operation")
    sub = parser.add_subparsers(dest="command", required=True)

    init = sub.add_parser("init", help="Create tables and the platform configuration")
    init.add_argument("--owner", default=None)
    init.add_argument("--oracle", default=None)

    fund = sub.add_parser("fund", help="Credit a ledger account (local SQL ledger only)")
    fund.add_argument("principal")
    fund.add_argument("amount", type=int)

    create = sub.add_parser("create-market", help="Open a new market (owner only)")
    create.add_argument("reference_price", type=int)
    create.add_argument("open_height", type=int)
    create.add_argument("close_height", type=int)

    predict = sub.add_parser("predict", help="Stake on a market direction")
    predict.add_argument("market_id", type=int)
    predict.add_argument("direction", help="up or down")
    predict.add_argument("amount", type=int)

    resolve = sub.add_parser("resolve", help="Resolve a market with its final price (oracle only)")
    resolve.add_argument("market_id", type=int)
    resolve.add_argument("final_price", type=int)

    claim = sub.add_parser("claim", help="Claim winnings for the caller")
    claim.add_argument("market_id", type=int)

    status = sub.add_parser("status", help="Show market details and status")
    status.add_argument("market_id", type=int)

    stats = sub.add_parser("stats", help="Show platform or participant statistics")
    stats.add_argument("participant", nargs="?", default=None)

    return parser.parse_args(argv)


def _require_caller(args: argparse.Namespace) -> str:
    if not args.caller:
        raise SystemExit(f"--caller is required for '{args.command}'")
    return args.caller


def run(args: argparse.Namespace) -> object:
    settings = get_settings()
    platform = PredictionPlatform(clock=FixedClock(args.height), settings=settings)

    if args.command == "init":
        init_db()
        return asdict(platform.initialize(owner=args.owner, oracle=args.oracle))
    if args.command == "fund":
        with session_scope() as session:
            balance = SqlValueLedger(session).credit(args.principal, args.amount)
        logger.info("Credited {} to {}", args.amount, args.principal)
        return {"principal": args.principal, "balance": balance}
    if args.command == "create-market":
        market_id = platform.create_market(
            _require_caller(args), args.reference_price, args.open_height, args.close_height
        )
        return {"market_id": market_id}
    if args.command == "predict":
        return asdict(
            platform.make_prediction(_require_caller(args), args.market_id, args.direction, args.amount)
        )
    if args.command == "resolve":
        return asdict(platform.resolve_market(_require_caller(args), args.market_id, args.final_price))
    if args.command == "claim":
        caller = _require_caller(args)
        return {"market_id": args.market_id, "participant": caller, "net_payout": platform.claim_winnings(caller, args.market_id)}
    if args.command == "status":
        return {
            "market": asdict(platform.get_market_details(args.market_id)),
            "status": asdict(platform.get_market_status(args.market_id)),
        }
    if args.command == "stats":
        if args.participant:
            return asdict(platform.get_participant_stats(args.participant))
        return asdict(platform.get_platform_stats())
    raise SystemExit(f"Unknown command {args.command}")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(get_settings().log_level)
    try:
        result = run(args)
    except SettlementError as exc:
        logger.error("{} failed: {} ({})", args.command, exc.message, exc.code)
        return 1
    except PlatformNotInitialized as exc:
        logger.error("{}", exc)
        return 2
    print(json.dumps(result, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
