"""Shared run-spec execution engine for CLI and SDK workflows.

This module maps validated run-spec steps to client operations so different
entry points can execute one declarative migration plan without drift.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from core.constants import DEFAULT_LEDGER_STORE_KIND
from core.errors import RunSpecError
from core.run_spec import RunSpec, RunSpecDefaults, RunSpecStep, load_run_spec
from core.run_spec_fields import optional_int, optional_string, string_with_default
from core.types import MigrationOptions, MigrationSummary

_MIGRATE_STEP_KEYS = frozenset(
    {"ledger", "store_kind", "sink_database", "offset", "limit", "run_id"}
)
_TIP_STEP_KEYS = frozenset({"ledger", "store_kind"})


class RunSpecClient(Protocol):
    """Client API contract required by run-spec execution."""

    def with_staging_root(self, staging_root: str) -> Any: ...

    def migrate(self, options: MigrationOptions) -> MigrationSummary: ...

    def tip(self, ledger_path: str, store_kind: str = DEFAULT_LEDGER_STORE_KIND) -> int: ...


@dataclass(frozen=True)
class RunSpecExecutionContext:
    """In-memory context used to execute run-spec steps."""

    client: RunSpecClient
    defaults: RunSpecDefaults


def execute_run_spec_file(client: RunSpecClient, spec_file: str) -> tuple[str, ...]:
    """Load and execute a run-spec file, returning printable output lines."""
    spec = load_run_spec(spec_file)
    return execute_run_spec(client, spec)


def execute_run_spec(client: RunSpecClient, spec: RunSpec) -> tuple[str, ...]:
    """Execute a parsed run-spec object and return output lines."""
    execution_client = (
        client.with_staging_root(spec.defaults.staging_root)
        if spec.defaults.staging_root
        else client
    )
    context = RunSpecExecutionContext(client=execution_client, defaults=spec.defaults)
    output_lines: list[str] = []
    for step in spec.steps:
        output_lines.extend(_execute_step(context, step))
    return tuple(output_lines)


def _execute_step(context: RunSpecExecutionContext, step: RunSpecStep) -> tuple[str, ...]:
    if step.command == "migrate":
        return _execute_migrate_step(context, step)
    if step.command == "tip":
        return (_execute_tip_step(context, step),)
    raise RunSpecError(f"Unsupported run-spec command '{step.command}'.")


def _execute_migrate_step(
    context: RunSpecExecutionContext,
    step: RunSpecStep,
) -> tuple[str, ...]:
    _validate_step_keys(step, _MIGRATE_STEP_KEYS)
    options = MigrationOptions(
        ledger_path=string_with_default(step.args, "ledger", context.defaults.ledger),
        sink_database=string_with_default(
            step.args, "sink_database", context.defaults.sink_database
        ),
        store_kind=_resolve_store_kind(context, step),
        offset=optional_int(step.args, "offset"),
        limit=optional_int(step.args, "limit"),
        run_id=optional_string(step.args, "run_id"),
    )
    summary = context.client.migrate(options)
    failure_count = (
        len(summary.gaps) + len(summary.extraction_failures) + len(summary.chunk_failures)
    )
    return (
        f"run_id={summary.run_id}",
        f"range_attempted={summary.range_attempted.start}-{summary.range_attempted.end}",
        f"last_completed_index={_dash_if_none(summary.last_completed_index)}",
        f"resume_offset={summary.resume_offset}",
        f"blocks_processed={summary.blocks_processed}",
        f"chunks_loaded={summary.chunks_loaded}",
        f"failures={failure_count}",
        f"cancelled={str(summary.cancelled).lower()}",
    )


def _execute_tip_step(context: RunSpecExecutionContext, step: RunSpecStep) -> str:
    _validate_step_keys(step, _TIP_STEP_KEYS)
    tip = context.client.tip(
        string_with_default(step.args, "ledger", context.defaults.ledger),
        _resolve_store_kind(context, step),
    )
    return f"tip={tip}"


def _resolve_store_kind(context: RunSpecExecutionContext, step: RunSpecStep) -> str:
    return (
        optional_string(step.args, "store_kind")
        or context.defaults.store_kind
        or DEFAULT_LEDGER_STORE_KIND
    )


def _validate_step_keys(step: RunSpecStep, allowed_keys: frozenset[str]) -> None:
    unknown_keys = sorted(set(step.args) - allowed_keys)
    if unknown_keys:
        raise RunSpecError(
            f"Run-spec command '{step.command}' does not accept: {', '.join(unknown_keys)}."
        )


def _dash_if_none(value: object) -> str:
    return "-" if value is None else str(value)
