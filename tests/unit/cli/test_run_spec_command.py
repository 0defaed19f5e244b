"""Unit tests for the run-spec CLI command."""

from __future__ import annotations

from cli.main import main
from core.types import MigrationOptions, MigrationRange, MigrationSummary
from migration.migration_sdk import ChainportClient


def test_run_spec_command_prints_step_output(tmp_path, monkeypatch, capsys) -> None:
    """Each step's output lines are printed in order."""
    migrations: list[MigrationOptions] = []

    def _fake_migrate(self, options: MigrationOptions) -> MigrationSummary:
        migrations.append(options)
        return MigrationSummary(
            run_id="run-spec-1",
            range_attempted=MigrationRange(start=5, end=9),
            last_completed_index=None,
            record_counts={},
            blocks_processed=0,
            elapsed_seconds=0.0,
            chunks_loaded=0,
            cancelled=True,
        )

    def _fake_tip(self, ledger_path: str, store_kind: str = "jsonl") -> int:
        return 9

    monkeypatch.setattr(ChainportClient, "migrate", _fake_migrate)
    monkeypatch.setattr(ChainportClient, "tip", _fake_tip)
    spec_path = tmp_path / "plan.yaml"
    spec_path.write_text(
        "version: 1\n"
        "defaults:\n"
        f"  staging_root: {tmp_path / 'staging'}\n"
        "  ledger: /data/ledger\n"
        "  sink_database: /data/sink.duckdb\n"
        "steps:\n"
        "  - command: tip\n"
        "  - command: migrate\n"
        "    offset: 5\n",
        encoding="utf-8",
    )

    exit_code = main(["run-spec", str(spec_path)])
    output_lines = capsys.readouterr().out.splitlines()

    assert (
        exit_code == 0
        and output_lines[0] == "tip=9"
        and "last_completed_index=-" in output_lines
        and "resume_offset=5" in output_lines
        and "cancelled=true" in output_lines
        and migrations[0].offset == 5
    )
