#!/usr/bin/env python3
"""Command line access to bridge route search, fee estimates and transfer tracking"""

import argparse
import asyncio
import json

from evmbridge.core.bridge.errors import BridgeError
from evmbridge.core.bridge.models import FeeEstimate, RouteSearchResult, TransferProgress
from evmbridge.core.bridge.service import BridgeService
from evmbridge.logging_config import setup_logging


def print_routes(result: RouteSearchResult):
    """Pretty print a route search"""
    print(f"\n🌉 Routes {result.source.value} → {result.target.value} ({result.asset})")
    print("=" * 60)

    if not result.routes:
        print(f"❌ No routes found ({result.reason})")
        for option in result.alternative_options or []:
            print(f"   • {option}")
        return

    for i, route in enumerate(result.routes, 1):
        marker = "⭐" if i == 1 else "  "
        path = " → ".join(chain.value for chain in route.path)
        print(f"{marker}{i:2d}. {path}")
        print(f"      via {', '.join(route.bridges)}")
        print(f"      {route.speed.value:<9} {route.estimated_time:<14} fee {route.estimated_fee_percent:<10} "
              f"{route.security.value} / {route.risk.value}")
        if route.fee_estimate is not None:
            print(f"      est. total {route.fee_estimate.total_fee} native")
        for warning in route.warnings:
            print(f"      ⚠️  {warning}")


def print_fees(estimate: FeeEstimate):
    """Pretty print a fee estimate"""
    data = estimate.to_dict()
    breakdown = data["feeBreakdown"]
    print(f"\n💸 Fee estimate {data['route']} ({data['urgencyMode']})")
    print("=" * 60)
    print(f"Amount:          {data['amount']}")
    print(f"Protocol:        {data['protocol'] or 'not selected'}")
    for label, key in (
        ("Source gas", "sourceChainGas"),
        ("Target gas", "targetChainGas"),
        ("Relayer", "relayerFee"),
        ("Protocol fee", "protocolFee"),
        ("Finalization", "finalizationCost"),
    ):
        if breakdown[key] is not None:
            print(f"{label + ':':<17}{breakdown[key]}")
    print(f"Total:           {breakdown['totalFee']} ({breakdown['totalFeeUSD'] or 'no USD price'})")

    if estimate.alternative_bridges:
        print("\nAlternatives:")
        for alt in estimate.alternative_bridges:
            print(f" - {alt.protocol:<10} {alt.total_fee} ({alt.estimated_time})")
    for warning in estimate.warnings:
        print(f"⚠️  {warning}")
    for recommendation in estimate.recommendations:
        print(f"💡 {recommendation}")


def print_progress(progress: TransferProgress):
    """Pretty print transfer progress"""
    print(f"\n🔎 Transfer {progress.transaction_hash}")
    print(f"   {progress.source_chain.value} → {progress.target_chain.value}")
    print("=" * 60)
    icons = {"completed": "✅", "pending": "⏳", "failed": "❌"}
    for record in progress.phases:
        print(f"{icons[record.status.value]} {record.phase.value}")
    print(f"\nStatus:     {progress.current_status} ({progress.overall_progress}%)")
    print(f"Completion: {progress.estimated_completion}")
    print("\nNext steps:")
    for step in progress.next_steps:
        print(f" - {step}")
    for leg, error in progress.leg_errors.items():
        print(f"⚠️  {leg} leg unavailable: {error['error']}")
    for name, url in progress.monitoring_urls.items():
        print(f"🔗 {name}: {url}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="EVM Bridge CLI")
    parser.add_argument("--json", action="store_true", help="Print raw JSON instead of a summary")
    parser.add_argument("--log-level", default="WARNING", help="Log level (default: WARNING)")
    subparsers = parser.add_subparsers(dest="command")

    routes_parser = subparsers.add_parser("routes", help="Find bridge routes")
    routes_parser.add_argument("source", help="Source chain")
    routes_parser.add_argument("target", help="Target chain")
    routes_parser.add_argument("token", help="Token symbol or address")
    routes_parser.add_argument("--amount", help="Amount, enables live fee estimates")
    routes_parser.add_argument("--speed", default="any", help="instant, fast, standard, slow or any")
    routes_parser.add_argument("--security", default="any", help="canonical, optimistic, third-party or any")
    routes_parser.add_argument("--max-hops", type=int, default=2, help="1 for direct routes only")

    fees_parser = subparsers.add_parser("fees", help="Estimate bridge fees")
    fees_parser.add_argument("source", help="Source chain")
    fees_parser.add_argument("target", help="Target chain")
    fees_parser.add_argument("amount", help="Amount to bridge")
    fees_parser.add_argument("--protocol", help="Bridge protocol (canonical, hop, stargate, across, ...)")
    fees_parser.add_argument("--urgency", default="standard", help="economy, standard or fast")

    track_parser = subparsers.add_parser("track", help="Track a bridge transfer")
    track_parser.add_argument("source", help="Source chain")
    track_parser.add_argument("target", help="Target chain")
    track_parser.add_argument("tx_hash", help="Source chain transaction hash")
    track_parser.add_argument("--protocol", help="Bridge protocol used")
    track_parser.add_argument("--recipient", help="Recipient address for destination monitoring")
    track_parser.add_argument("--timeout", type=float, help="Overall timeout in seconds")

    return parser


async def main():
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    setup_logging(args.log_level, json_logs=False)
    service = BridgeService()

    try:
        if args.command == "routes":
            result = await service.find_routes(
                args.source,
                args.target,
                args.token,
                amount=args.amount,
                preferences={"speed": args.speed, "security": args.security, "maxHops": args.max_hops},
            )
            if args.json:
                print(json.dumps(result.to_dict(), indent=2))
            else:
                print_routes(result)

        elif args.command == "fees":
            estimate = await service.estimate_fee(
                args.source, args.target, args.amount, protocol=args.protocol, urgency=args.urgency
            )
            if args.json:
                print(json.dumps(estimate.to_dict(), indent=2))
            else:
                print_fees(estimate)

        elif args.command == "track":
            progress = await service.track_transfer(
                args.source,
                args.target,
                args.tx_hash,
                bridge_protocol=args.protocol,
                user_address=args.recipient,
                timeout=args.timeout,
            )
            if args.json:
                print(json.dumps(progress.to_dict(), indent=2))
            else:
                print_progress(progress)

    except BridgeError as e:
        print(f"❌ {e.message}")
        print(f"   {e.suggestion}")
        raise SystemExit(1)


if __name__ == "__main__":
    asyncio.run(main())
