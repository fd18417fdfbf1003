"""Command-line interface for TrustLens."""

import argparse
import os
import sys
from typing import Any

from trustlens.config import Settings, StorageBackend, get_settings
from trustlens.container import Container
from trustlens.domain.locations import supported_locations
from trustlens.domain.transactions import TransactionSubmission
from trustlens.exceptions import TrustLensError
from trustlens.logging_config import configure_logging


def create_container(args: argparse.Namespace) -> Container:
    """Build a container from environment settings plus CLI overrides."""
    overrides: dict[str, Any] = {}
    if getattr(args, "storage", None):
        overrides["storage_backend"] = StorageBackend(args.storage)
    if getattr(args, "sqlite_path", None):
        overrides["sqlite_path"] = args.sqlite_path

    settings = Settings(**overrides) if overrides else get_settings()
    configure_logging(settings)
    return Container(settings=settings)


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    # uvicorn builds the app from the environment, including reload workers
    if args.storage:
        os.environ["TRUSTLENS_STORAGE_BACKEND"] = args.storage
    if args.sqlite_path:
        os.environ["TRUSTLENS_SQLITE_PATH"] = args.sqlite_path
    get_settings.cache_clear()

    settings = get_settings()
    uvicorn.run(
        "trustlens.api.app:app",
        host=args.host or settings.api_host,
        port=args.port or settings.api_port,
        reload=args.reload or settings.api_reload,
    )
    return 0


def cmd_version(args: argparse.Namespace) -> int:
    """Show version information."""
    print(f"TrustLens v{get_settings().app_version}")
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    """Show storage status and counters."""
    with create_container(args) as container:
        storage = container.storage
        print(f"Storage: {storage.active.value} (requested {storage.requested.value})")
        if storage.degraded:
            print(f"  Degraded: {storage.status.value} - {storage.error}")
        print(f"Transactions: {storage.ledger.count()}")
        print(f"Blacklisted accounts: {storage.blacklist.count()}")
        print(f"Locations: {', '.join(supported_locations())}")
    return 0


def cmd_evaluate(args: argparse.Namespace) -> int:
    """Evaluate a single transaction and record it."""
    with create_container(args) as container:
        service = container.fraud_service
        try:
            submission = TransactionSubmission(
                transaction_id=args.transaction_id,
                amount=args.amount,
                currency=args.currency,
                sender_account_number=args.sender,
                recipient_account_number=args.recipient,
                location=args.location,
                card_type=args.card_type,
                timestamp=service.now(),
                phone=args.phone,
            )
            outcome = service.submit(submission)
        except TrustLensError as e:
            print(f"Error: {e.message}")
            return 1

    txn = outcome.transaction
    verdict = "FRAUD" if txn.anomalous else "SAFE"
    print(f"Transaction {txn.transaction_id}: {verdict}")
    for reason in txn.reasons:
        print(f"  - {reason}")
    return 2 if txn.anomalous else 0


def cmd_history(args: argparse.Namespace) -> int:
    """List recorded transactions."""
    with create_container(args) as container:
        transactions = container.fraud_service.history()

    if not transactions:
        print("No transactions recorded")
        return 0

    print(f"{'ID':<20} {'Amount':>14} {'Sender':<14} {'Location':<12} {'Verdict':<7}")
    print("-" * 71)
    for txn in transactions:
        verdict = "FRAUD" if txn.anomalous else "SAFE"
        amount = f"{txn.currency} {txn.amount}"
        print(
            f"{txn.transaction_id[:20]:<20} {amount:>14} "
            f"{txn.sender_account_number[:14]:<14} {txn.location[:12]:<12} {verdict:<7}"
        )
    print(f"\nTotal: {len(transactions)} transaction(s)")
    return 0


def cmd_blacklist_list(args: argparse.Namespace) -> int:
    """List blacklisted accounts."""
    with create_container(args) as container:
        entries = container.storage.blacklist.entries()

    if not entries:
        print("Blacklist is empty")
        return 0

    for entry in entries:
        reasons = "; ".join(entry.reasons) or "-"
        print(f"{entry.account_number:<20} {entry.added_at:%Y-%m-%d %H:%M}  {reasons}")
    print(f"\nTotal: {len(entries)} account(s)")
    return 0


def cmd_blacklist_add(args: argparse.Namespace) -> int:
    """Add an account to the blacklist."""
    with create_container(args) as container:
        reasons = (args.reason,) if args.reason else ("manual",)
        added = container.fraud_service.blacklist_account(args.account, reasons)

    if added:
        print(f"Account {args.account} added to blacklist")
    else:
        print(f"Account {args.account} is already blacklisted")
    return 0


def cmd_blacklist_remove(args: argparse.Namespace) -> int:
    """Remove an account from the blacklist."""
    with create_container(args) as container:
        removed = container.fraud_service.unblacklist_account(args.account)

    if removed:
        print(f"Account {args.account} removed from blacklist")
    else:
        print(f"Account {args.account} was not blacklisted")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="trustlens",
        description="TrustLens - Rule-based transaction fraud screening",
    )
    parser.add_argument(
        "--storage",
        "-s",
        choices=[b.value for b in StorageBackend],
        help="Storage backend (default: from TRUSTLENS_STORAGE_BACKEND)",
        default=None,
    )
    parser.add_argument(
        "--sqlite-path",
        help="SQLite database file when --storage=sqlite",
        default=None,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default=None, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port")
    serve_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload (development only)"
    )
    serve_parser.set_defaults(func=cmd_serve)

    # version command
    version_parser = subparsers.add_parser("version", help="Show version")
    version_parser.set_defaults(func=cmd_version)

    # status command
    status_parser = subparsers.add_parser("status", help="Show storage status")
    status_parser.set_defaults(func=cmd_status)

    # evaluate command
    evaluate_parser = subparsers.add_parser(
        "evaluate", help="Evaluate and record a transaction"
    )
    evaluate_parser.add_argument("transaction_id", help="Unique transaction id")
    evaluate_parser.add_argument("amount", help="Transaction amount")
    evaluate_parser.add_argument("--sender", required=True, help="Sender account")
    evaluate_parser.add_argument("--recipient", required=True, help="Recipient account")
    evaluate_parser.add_argument("--location", required=True, help="Place name")
    evaluate_parser.add_argument("--card-type", required=True, help="Card type")
    evaluate_parser.add_argument("--currency", default="INR", help="Currency code")
    evaluate_parser.add_argument("--phone", default=None, help="Notification number")
    evaluate_parser.set_defaults(func=cmd_evaluate)

    # history command
    history_parser = subparsers.add_parser("history", help="List recorded transactions")
    history_parser.set_defaults(func=cmd_history)

    # blacklist commands
    blacklist_parser = subparsers.add_parser("blacklist", help="Manage the blacklist")
    blacklist_subparsers = blacklist_parser.add_subparsers(
        dest="blacklist_command", help="Blacklist commands"
    )

    bl_list_parser = blacklist_subparsers.add_parser("list", help="List accounts")
    bl_list_parser.set_defaults(func=cmd_blacklist_list)

    bl_add_parser = blacklist_subparsers.add_parser("add", help="Add an account")
    bl_add_parser.add_argument("account", help="Account number")
    bl_add_parser.add_argument("--reason", default=None, help="Why it is blacklisted")
    bl_add_parser.set_defaults(func=cmd_blacklist_add)

    bl_remove_parser = blacklist_subparsers.add_parser("remove", help="Remove an account")
    bl_remove_parser.add_argument("account", help="Account number")
    bl_remove_parser.set_defaults(func=cmd_blacklist_remove)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "blacklist" and (
        not hasattr(args, "blacklist_command") or args.blacklist_command is None
    ):
        blacklist_parser.print_help()
        return 0

    result: int = args.func(args)
    return result


if __name__ == "__main__":
    sys.exit(main())
