"""Command-line client.

Usage:
    sealedscore --wallet.name me --ledger.context_address 0xabc ping
    sealedscore --wallet.name me list --mine
    sealedscore --wallet.name me create hello 87
    sealedscore --wallet.name me decrypt 1718000000000
    sealedscore --wallet.name me stats
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys

import bittensor as bt
from dotenv import load_dotenv

from sealedscore.base.config import ClientSettings, add_args, load_settings
from sealedscore.core.identity import wallet_identity
from sealedscore.core.session import ScoreSession
from sealedscore.core.status import StatusKind, TransactionStatus, TransactionStatusMachine
from sealedscore.crypto.sdk import HTTPRelayerSDK
from sealedscore.records.gateway.http_client import HTTPRecordGateway
from sealedscore.records.models import Record


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Confidential pronunciation score client")
    bt.Wallet.add_args(parser)
    bt.logging.add_args(parser)
    add_args(parser)

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("ping", help="Check confidential-compute availability")

    list_cmd = commands.add_parser("list", help="List records")
    list_cmd.add_argument("--mine", action="store_true", help="Only records owned by this wallet")
    list_cmd.add_argument("--search", type=str, default="", help="Filter by label or owner")

    create_cmd = commands.add_parser("create", help="Encrypt and submit a score")
    create_cmd.add_argument("label", type=str)
    create_cmd.add_argument("score", type=int)

    decrypt_cmd = commands.add_parser("decrypt", help="Decrypt and publish a record's score")
    decrypt_cmd.add_argument("record_id", type=int)

    commands.add_parser("stats", help="Learning statistics for this wallet")
    return parser


def _print_status(status: TransactionStatus) -> None:
    if status.kind == StatusKind.IDLE:
        return
    print(f"[{status.kind.value}] {status.message}")


def _format_record(session: ScoreSession, record: Record) -> str:
    view = session.displayed_score(record.id)
    if view.value is None:
        score = "encrypted"
    elif view.provisional:
        score = f"{view.value}/100 (unconfirmed)"
    else:
        score = f"{view.value}/100"
    created = record.created_at.strftime("%Y-%m-%d %H:%M")
    return f"{record.id:>15}  {record.label:<24} {record.owner[:16]:<16}  {created}  {score}"


async def run_command(args: argparse.Namespace, settings: ClientSettings, wallet: bt.Wallet) -> int:
    gateway = HTTPRecordGateway(
        settings.ledger.url,
        wallet,
        timeout=settings.ledger.timeout,
        max_retries=settings.ledger.max_retries,
    )
    sdk = HTTPRelayerSDK(settings.relayer.url, timeout=settings.relayer.timeout)
    status = TransactionStatusMachine(
        success_ttl=settings.status.success_ttl,
        error_ttl=settings.status.error_ttl,
    )
    status.subscribe(_print_status)
    session = ScoreSession(
        gateway=gateway,
        sdk=sdk,
        identity_provider=wallet_identity(wallet),
        context_address=settings.ledger.context_address,
        status=status,
    )

    try:
        if args.command == "ping":
            return 0 if await session.check_availability() else 1

        if args.command in ("create", "decrypt"):
            if not await session.connect():
                return 1
        elif not await session.load_records():
            return 1

        if args.command == "list":
            records = session.search(args.search) if args.search else session.records
            if args.mine:
                owned = {r.id for r in session.owned_records}
                records = [r for r in records if r.id in owned]
            for record in records:
                print(_format_record(session, record))
            print(f"{len(records)} record(s)")
            return 0

        if args.command == "create":
            record_id = await session.create_record(args.label, args.score)
            if record_id is None:
                return 1
            print(f"record_id={record_id}")
            return 0

        if args.command == "decrypt":
            value = await session.decrypt_record(args.record_id)
            view = session.displayed_score(args.record_id)
            if value is not None:
                print(f"score={value}")
                return 0
            if view.provisional:
                print(f"score={view.value} (unconfirmed)")
            return 1

        if args.command == "stats":
            print(session.stats.model_dump_json(indent=2))
            return 0

        return 2
    finally:
        session.close()
        await gateway.close()
        await sdk.close()


def main() -> None:
    if os.environ.get("SEALEDSCORE_TEST_MODE") != "true":
        load_dotenv()

    args = build_parser().parse_args()
    settings = load_settings(args)

    wallet_name = os.environ.get("SEALEDSCORE_WALLET__NAME", getattr(args, "wallet.name", "default"))
    wallet_hotkey = os.environ.get("SEALEDSCORE_WALLET__HOTKEY", getattr(args, "wallet.hotkey", "default"))
    wallet = bt.Wallet(name=wallet_name, hotkey=wallet_hotkey)

    if args.command != "ping" and not settings.ledger.context_address:
        bt.logging.error("SEALEDSCORE_LEDGER__CONTEXT_ADDRESS is required")
        sys.exit(1)

    sys.exit(asyncio.run(run_command(args, settings, wallet)))


if __name__ == "__main__":
    main()
