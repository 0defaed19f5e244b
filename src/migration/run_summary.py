"""Run summary persistence helpers.

This module renders migration summaries as JSON payloads and writes
them beside the run's staged chunk files.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime, timezone
import hashlib
import json
from pathlib import Path
from typing import Any

from core.constants import RUN_SUMMARY_FILE_NAME, RUNS_DIR_NAME
from core.types import MigrationOptions, MigrationRange, MigrationSummary


def build_run_id(options: MigrationOptions) -> str:
    """Build a unique run id from the request and the current time.

    Args:
        options: Migration request options.

    Returns:
        Run id string.
    """
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
    digest_seed = "|".join(
        [options.ledger_path, options.store_kind, str(options.offset), str(options.limit)]
    )
    digest = hashlib.sha256(digest_seed.encode("utf-8")).hexdigest()[:10]
    return f"run-{timestamp}-{digest}"


def run_dir_for(staging_root: Path, run_id: str) -> Path:
    """Return the staging directory of one run."""
    return staging_root / RUNS_DIR_NAME / run_id


def summary_to_payload(summary: MigrationSummary) -> dict[str, Any]:
    """Convert a run summary to a JSON-serializable payload."""
    return {
        "run_id": summary.run_id,
        "range_attempted": _range_payload(summary.range_attempted),
        "range_completed": _range_payload(summary.range_completed),
        "last_completed_index": summary.last_completed_index,
        "resume_offset": summary.resume_offset,
        "blocks_processed": summary.blocks_processed,
        "record_counts": dict(sorted(summary.record_counts.items())),
        "chunks_loaded": summary.chunks_loaded,
        "elapsed_seconds": round(summary.elapsed_seconds, 3),
        "cancelled": summary.cancelled,
        "gaps": [asdict(gap) for gap in summary.gaps],
        "extraction_failures": [asdict(failure) for failure in summary.extraction_failures],
        "chunk_failures": [asdict(failure) for failure in summary.chunk_failures],
    }


def write_summary_file(run_dir: Path, summary: MigrationSummary) -> Path:
    """Write the run summary JSON file.

    Args:
        run_dir: Run staging directory.
        summary: Final run summary.

    Returns:
        Path to the written summary file.
    """
    run_dir.mkdir(parents=True, exist_ok=True)
    summary_path = run_dir / RUN_SUMMARY_FILE_NAME
    summary_path.write_text(
        json.dumps(summary_to_payload(summary), indent=2) + "\n",
        encoding="utf-8",
    )
    return summary_path


def _range_payload(block_range: MigrationRange | None) -> dict[str, int] | None:
    if block_range is None:
        return None
    return {"start": block_range.start, "end": block_range.end}
