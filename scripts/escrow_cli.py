from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

from guardescrow.amounts import format_amount, to_base_units
from guardescrow.client import EscrowApiError, EscrowClient
from guardescrow.keys import create_and_save_keypair, load_keypair_from_file

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger("escrow_cli")

DEFAULT_API_URL = os.environ.get("ESCROW_API_URL", "http://localhost:8080")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="escrow-cli", description="Command line client for the escrow API.")
    parser.add_argument("--api-url", default=DEFAULT_API_URL, help="Escrow API base URL.")
    parser.add_argument(
        "--encryption-key",
        default=os.environ.get("KEY_ENCRYPTION_KEY"),
        help="Key used to encrypt/decrypt keypair files.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    keygen = commands.add_parser("keygen", help="Create a new keypair file.")
    keygen.add_argument("--out", required=True, help="Output path for the keypair.")

    airdrop = commands.add_parser("airdrop", help="Credit lamports to a keypair (development only).")
    airdrop.add_argument("-k", "--keypair", required=True, help="Path to keypair.")
    airdrop.add_argument("-m", "--amount", required=True, type=int, help="Amount in lamports.")

    create = commands.add_parser("create", help="Initialize a new escrow.")
    create.add_argument("-b", "--buyer", required=True, help="Path to buyer keypair.")
    create.add_argument("-s", "--seller", required=True, help="Seller public key.")
    create.add_argument("-a", "--arbiter", help="Optional arbiter public key.")
    size = create.add_mutually_exclusive_group(required=True)
    size.add_argument("-m", "--amount", type=int, help="Amount in lamports.")
    size.add_argument("--sol", help="Amount in whole coins, e.g. 0.5.")
    create.add_argument("-t", "--timeout", required=True, type=int, help="Timeout period in seconds.")

    fund = commands.add_parser("fund", help="Fund an existing escrow.")
    fund.add_argument("-e", "--escrow", required=True, help="Escrow custody address.")
    fund.add_argument("-b", "--buyer", required=True, help="Path to buyer keypair.")

    for name, help_text in (
        ("release", "Release funds to seller."),
        ("refund", "Refund funds to buyer."),
        ("cancel", "Cancel an unfunded escrow."),
    ):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument("-e", "--escrow", required=True, help="Escrow custody address.")
        sub.add_argument("-k", "--keypair", required=True, help="Path to caller keypair.")

    status = commands.add_parser("status", help="Show escrow state.")
    status.add_argument("-e", "--escrow", required=True, help="Escrow custody address.")
    return parser


def client_for(args: argparse.Namespace, keypair_path: str) -> EscrowClient:
    keypair = load_keypair_from_file(keypair_path, args.encryption_key)
    return EscrowClient(base_url=args.api_url, keypair=keypair)


def describe(summary: dict) -> str:
    lines = [
        f"Escrow:    {summary['address']}",
        f"State:     {summary['state']}",
        f"Buyer:     {summary['buyer']}",
        f"Seller:    {summary['seller']}",
        f"Arbiter:   {summary['arbiter'] or 'none'}",
        f"Amount:    {summary['amount']} lamports ({format_amount(summary['amount'])})",
        f"Balance:   {summary['custody_balance']} lamports (reserve {summary['minimum_reserve']})",
        f"Timeout:   {summary['timeout_period']} seconds (seller may claim from {summary['timeout_at']})",
    ]
    return "\n".join(lines)


async def run(args: argparse.Namespace) -> None:
    if args.command == "keygen":
        if Path(args.out).exists():
            raise SystemExit(f"Refusing to overwrite {args.out}")
        keypair = create_and_save_keypair(args.out, args.encryption_key)
        logger.info("Keypair written to %s", args.out)
        logger.info("Public key: %s", keypair.public_key)
        return

    if args.command == "airdrop":
        client = client_for(args, args.keypair)
        balance = await client.airdrop(args.amount)
        logger.info("Balance of %s: %s lamports", client.keypair.public_key, balance)
        return

    if args.command == "create":
        client = client_for(args, args.buyer)
        amount = args.amount if args.amount is not None else to_base_units(args.sol)
        summary = await client.create_escrow(args.seller, amount, args.timeout, args.arbiter)
        logger.info(describe(summary))
        logger.info("Next step: escrow-cli fund --escrow %s --buyer %s", summary["address"], args.buyer)
        return

    if args.command == "fund":
        summary = await client_for(args, args.buyer).fund_escrow(args.escrow)
        logger.info(describe(summary))
        return

    if args.command in {"release", "refund", "cancel"}:
        client = client_for(args, args.keypair)
        operation = {
            "release": client.release_to_seller,
            "refund": client.refund_to_buyer,
            "cancel": client.cancel_escrow,
        }[args.command]
        logger.info(json.dumps(await operation(args.escrow), indent=2))
        return

    if args.command == "status":
        client = EscrowClient(base_url=args.api_url)
        logger.info(describe(await client.get_escrow_state(args.escrow)))


def main() -> None:
    args = build_parser().parse_args()
    try:
        asyncio.run(run(args))
    except EscrowApiError as exc:
        logger.error("Error: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
