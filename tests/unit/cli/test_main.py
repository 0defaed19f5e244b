"""Unit tests for the CLI entry point."""

from __future__ import annotations

import json
import signal

import pytest

from cli.main import build_parser, main
from core.errors import ConfigurationError


def _migrate_argv(tmp_path, ledger_path, *extra: str) -> list[str]:
    return [
        "--staging-root",
        str(tmp_path / "staging"),
        "migrate",
        "--ledger",
        str(ledger_path),
        "--sink-database",
        str(tmp_path / "sink.duckdb"),
        "--run-id",
        "run-cli",
        *extra,
    ]


def test_migrate_prints_summary_json(sample_ledger_path, tmp_path, capsys) -> None:
    """A clean run exits zero and prints its summary."""
    exit_code = main(_migrate_argv(tmp_path, sample_ledger_path, "--workers", "2"))
    payload = json.loads(capsys.readouterr().out)

    assert (
        exit_code == 0
        and payload["run_id"] == "run-cli"
        and payload["range_completed"] == {"start": 0, "end": 3}
        and payload["record_counts"]["hack_and_slashes"] == 1
        and (tmp_path / "staging" / "runs" / "run-cli" / "summary.json").exists()
    )


def test_migrate_exits_non_zero_on_chunk_failures(sample_ledger_path, tmp_path, capsys) -> None:
    """Re-running a loaded range reports failures through the exit code."""
    main(_migrate_argv(tmp_path, sample_ledger_path))
    capsys.readouterr()

    exit_code = main(_migrate_argv(tmp_path, sample_ledger_path)[:-1] + ["run-cli-again"])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 1 and payload["chunk_failures"]


def test_migrate_rejects_range_beyond_tip(sample_ledger_path, tmp_path) -> None:
    """Range errors propagate before any block is scanned."""
    with pytest.raises(ConfigurationError):
        main(_migrate_argv(tmp_path, sample_ledger_path, "--offset", "2", "--limit", "5"))


def test_migrate_rejects_zero_workers(sample_ledger_path, tmp_path) -> None:
    """CLI tuning overrides are validated."""
    with pytest.raises(ConfigurationError, match="workers"):
        main(_migrate_argv(tmp_path, sample_ledger_path, "--workers", "0"))


def test_tip_prints_highest_index(sample_ledger_path, capsys) -> None:
    """The tip command prints only the index."""
    exit_code = main(["tip", "--ledger", str(sample_ledger_path)])

    assert exit_code == 0 and capsys.readouterr().out.strip() == "3"


def test_signal_handlers_are_restored_after_command(sample_ledger_path, capsys) -> None:
    """Cancellation handlers are scoped to one command."""
    previous_handler = signal.getsignal(signal.SIGTERM)

    main(["tip", "--ledger", str(sample_ledger_path)])

    assert signal.getsignal(signal.SIGTERM) is previous_handler


def test_parser_rejects_unknown_store_kind() -> None:
    """Store kinds are limited to the supported layouts."""
    with pytest.raises(SystemExit):
        build_parser().parse_args(["tip", "--ledger", "x", "--store-kind", "rocksdb"])
