"""Chainport CLI entry points.

This module exposes migrate, tip, and run-spec commands.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
from contextlib import contextmanager
from dataclasses import replace
import json
from pathlib import Path
import signal
import threading
from typing import Any, Iterator, Sequence

from cli.run_spec_command import add_run_spec_command, run_run_spec_command
from core.config import ChainportConfig
from core.constants import DEFAULT_LEDGER_STORE_KIND, SUPPORTED_LEDGER_STORE_KINDS
from core.logging_config import configure_logging
from core.types import MigrationOptions
from migration.migration_sdk import ChainportClient
from migration.run_summary import summary_to_payload


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="chainport", description="Chainport migration CLI")
    parser.add_argument("--staging-root", help="Override CHAINPORT_STAGING_ROOT for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_migrate_command(subparsers)
    _add_tip_command(subparsers)
    add_run_spec_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Chainport CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging()
    cancel_event = threading.Event()
    client = _build_client(args, cancel_event)
    with _cancel_on_signals(cancel_event):
        if args.command == "migrate":
            return _run_migrate_command(client, args)
        if args.command == "tip":
            return _run_tip_command(client, args)
        if args.command == "run-spec":
            return run_run_spec_command(client, args)
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_client(args: argparse.Namespace, cancel_event: threading.Event) -> ChainportClient:
    """Build SDK client with optional staging-root and tuning overrides."""
    config = ChainportConfig.from_env()
    if args.staging_root:
        config = replace(config, staging_root=Path(args.staging_root).expanduser().resolve())
    overrides = {
        field_name: getattr(args, arg_name, None)
        for field_name, arg_name in (
            ("workers", "workers"),
            ("rotate_every_blocks", "rotate_every"),
            ("max_buffer_rows", "max_buffer_rows"),
        )
    }
    config = replace(
        config, **{name: value for name, value in overrides.items() if value is not None}
    )
    config.validate()
    return ChainportClient(config, cancel_event=cancel_event)


@contextmanager
def _cancel_on_signals(cancel_event: threading.Event) -> Iterator[None]:
    """Set the cancel event on SIGINT or SIGTERM while a command runs."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _request_cancel(signum: int, frame: object) -> None:
        cancel_event.set()

    previous_handlers = {
        signum: signal.signal(signum, _request_cancel)
        for signum in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        yield
    finally:
        for signum, handler in previous_handlers.items():
            signal.signal(signum, handler)


def _run_migrate_command(client: ChainportClient, args: argparse.Namespace) -> int:
    """Handle migrate command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code, 1 when the run was cancelled or recorded failures.
    """
    options = MigrationOptions(
        ledger_path=args.ledger,
        sink_database=args.sink_database,
        store_kind=args.store_kind,
        offset=args.offset,
        limit=args.limit,
        run_id=args.run_id,
    )
    summary = client.migrate(options)
    print(json.dumps(summary_to_payload(summary), indent=2))
    if summary.cancelled or summary.has_failures:
        return 1
    return 0


def _run_tip_command(client: ChainportClient, args: argparse.Namespace) -> int:
    """Handle tip command."""
    print(client.tip(args.ledger, args.store_kind))
    return 0


def _add_ledger_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--ledger", required=True, help="Ledger store root directory")
    parser.add_argument(
        "--store-kind",
        default=DEFAULT_LEDGER_STORE_KIND,
        choices=SUPPORTED_LEDGER_STORE_KINDS,
        help="Ledger store layout",
    )


def _add_migrate_command(subparsers: Any) -> None:
    """Register migrate subcommand."""
    parser = subparsers.add_parser("migrate", help="Migrate ledger blocks into the sink database")
    _add_ledger_arguments(parser)
    parser.add_argument("--sink-database", required=True, help="DuckDB sink database file")
    parser.add_argument("--offset", type=int, help="Blocks from genesis to skip")
    parser.add_argument("--limit", type=int, help="Number of blocks to process")
    parser.add_argument("--run-id", help="Optional explicit run id for staging paths")
    parser.add_argument("--workers", type=int, help="Concurrent block evaluation workers")
    parser.add_argument("--rotate-every", type=int, help="Blocks between buffer rotations")
    parser.add_argument("--max-buffer-rows", type=int, help="Rows that force an early rotation")


def _add_tip_command(subparsers: Any) -> None:
    """Register tip subcommand."""
    parser = subparsers.add_parser("tip", help="Print the ledger tip index")
    _add_ledger_arguments(parser)
