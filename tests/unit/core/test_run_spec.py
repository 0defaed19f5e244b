"""Unit tests for YAML run-spec parsing and execution."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.errors import RunSpecError
from core.run_spec import load_run_spec
from core.run_spec_execution import execute_run_spec
from core.types import MigrationOptions, MigrationRange, MigrationSummary


class _FakeClient:
    def __init__(self) -> None:
        self.staging_roots: list[str] = []
        self.migrations: list[MigrationOptions] = []
        self.tip_requests: list[tuple[str, str]] = []

    def with_staging_root(self, staging_root: str) -> "_FakeClient":
        self.staging_roots.append(staging_root)
        return self

    def migrate(self, options: MigrationOptions) -> MigrationSummary:
        self.migrations.append(options)
        return MigrationSummary(
            run_id="run-1",
            range_attempted=MigrationRange(start=0, end=9),
            last_completed_index=9,
            record_counts={"agents": 2},
            blocks_processed=10,
            elapsed_seconds=0.5,
            chunks_loaded=1,
        )

    def tip(self, ledger_path: str, store_kind: str = "jsonl") -> int:
        self.tip_requests.append((ledger_path, store_kind))
        return 42


def _write_spec(tmp_path: Path, content: str) -> str:
    spec_path = tmp_path / "run.yaml"
    spec_path.write_text(content, encoding="utf-8")
    return str(spec_path)


def test_load_run_spec_accepts_inline_and_args_steps(tmp_path) -> None:
    """Both step layouts should parse to the same argument mapping."""
    spec = load_run_spec(
        _write_spec(
            tmp_path,
            "version: 1\n"
            "defaults:\n"
            "  ledger: /data/ledger\n"
            "  sink_database: /data/sink.duckdb\n"
            "steps:\n"
            "  - command: tip\n"
            "  - command: migrate\n"
            "    args:\n"
            "      offset: 10\n"
            "  - command: migrate\n"
            "    offset: 20\n",
        )
    )

    assert (
        [step.command for step in spec.steps] == ["tip", "migrate", "migrate"]
        and spec.steps[1].args == {"offset": 10}
        and spec.steps[2].args == {"offset": 20}
        and spec.defaults.ledger == "/data/ledger"
    )


@pytest.mark.parametrize(
    "content",
    [
        "version: 2\nsteps:\n  - command: tip\n",
        "version: 1\nsteps: []\n",
        "version: 1\nsteps:\n  - command: train\n",
        "version: 1\nextra: true\nsteps:\n  - command: tip\n",
        "version: 1\nsteps:\n  - command: tip\n    args: {}\n    ledger: x\n",
        "version: [1\n",
        "",
    ],
)
def test_load_run_spec_rejects_invalid_documents(tmp_path, content: str) -> None:
    """Malformed specs should raise RunSpecError."""
    with pytest.raises(RunSpecError):
        load_run_spec(_write_spec(tmp_path, content))


def test_load_run_spec_rejects_missing_file(tmp_path) -> None:
    """A missing file is reported as a run-spec error."""
    with pytest.raises(RunSpecError, match="does not exist"):
        load_run_spec(str(tmp_path / "missing.yaml"))


def test_execute_run_spec_applies_defaults_and_reports_summary(tmp_path) -> None:
    """Step values override defaults and summaries render as key lines."""
    client = _FakeClient()
    spec = load_run_spec(
        _write_spec(
            tmp_path,
            "version: 1\n"
            "defaults:\n"
            "  staging_root: /tmp/stage\n"
            "  ledger: /data/ledger\n"
            "  store_kind: directory\n"
            "  sink_database: /data/sink.duckdb\n"
            "steps:\n"
            "  - command: tip\n"
            "  - command: migrate\n"
            "    store_kind: jsonl\n"
            "    limit: 10\n",
        )
    )

    lines = execute_run_spec(client, spec)

    assert (
        client.staging_roots == ["/tmp/stage"]
        and client.tip_requests == [("/data/ledger", "directory")]
        and client.migrations
        == [
            MigrationOptions(
                ledger_path="/data/ledger",
                sink_database="/data/sink.duckdb",
                store_kind="jsonl",
                limit=10,
            )
        ]
        and lines
        == (
            "tip=42",
            "run_id=run-1",
            "range_attempted=0-9",
            "last_completed_index=9",
            "resume_offset=10",
            "blocks_processed=10",
            "chunks_loaded=1",
            "failures=0",
            "cancelled=false",
        )
    )


def test_execute_run_spec_rejects_unknown_step_keys(tmp_path) -> None:
    """Unsupported step arguments should fail before the client is called."""
    client = _FakeClient()
    spec = load_run_spec(
        _write_spec(tmp_path, "version: 1\nsteps:\n  - command: tip\n    ledger: x\n    limit: 3\n")
    )

    with pytest.raises(RunSpecError, match="limit"):
        execute_run_spec(client, spec)

    assert client.tip_requests == []


def test_migrate_step_requires_sink_database(tmp_path) -> None:
    """A migrate step without a sink database anywhere is rejected."""
    spec = load_run_spec(
        _write_spec(tmp_path, "version: 1\nsteps:\n  - command: migrate\n    ledger: x\n")
    )

    with pytest.raises(RunSpecError, match="sink_database"):
        execute_run_spec(_FakeClient(), spec)
