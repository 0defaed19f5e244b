"""Migration orchestration.

This module coordinates range resolution, ordered block scanning,
reference dedup, staging rotation, and background chunk loading for
one migration run.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
import threading
import time
from typing import Callable

from core.config import ChainportConfig
from core.logging_config import get_logger
from core.types import (
    BlockGap,
    ChunkFailure,
    ExtractionFailure,
    MigrationOptions,
    MigrationRange,
    MigrationSummary,
)
from extraction.records import is_complete_reference, is_reference_record, record_row
from ledger.ledger_store import LedgerReader, open_ledger
from migration.block_scanner import BlockScanner, ScannedBlock
from migration.dedup_cache import DedupCache
from migration.migration_range import resolve_migration_range
from migration.run_state import RunState, validate_run_transition
from migration.run_summary import build_run_id, run_dir_for, summary_to_payload, write_summary_file
from sink.bulk_loader import BulkLoader, DuckDBBulkLoader
from sink.load_queue import ChunkLoadQueue
from sink.staging_buffer import ChunkedSinkWriter

_LOGGER = get_logger(__name__)

LoaderFactory = Callable[[str], BulkLoader]


@dataclass
class _RunProgress:
    """Mutable counters of one run, owned by the driver thread."""

    last_completed_index: int | None = None
    blocks_processed: int = 0
    blocks_since_rotation: int = 0
    record_counts: Counter[str] = field(default_factory=Counter)
    gaps: list[BlockGap] = field(default_factory=list)
    extraction_failures: list[ExtractionFailure] = field(default_factory=list)
    flush_failures: list[ChunkFailure] = field(default_factory=list)


class MigrationPipelineRunner:
    """Stateful runner for one migration run."""

    def __init__(
        self,
        options: MigrationOptions,
        config: ChainportConfig,
        cancel_event: threading.Event | None = None,
        loader_factory: LoaderFactory = DuckDBBulkLoader,
        ledger: LedgerReader | None = None,
    ) -> None:
        config.validate()
        self._options = options
        self._config = config
        self._cancel_event = cancel_event or threading.Event()
        self._loader_factory = loader_factory
        self._ledger = ledger
        self._state: RunState = "initializing"
        self._dedup = DedupCache()
        self._progress = _RunProgress()

    @property
    def state(self) -> RunState:
        return self._state

    def run(self) -> MigrationSummary:
        """Execute the run and return its summary.

        Raises:
            ConfigurationError: If the ledger, range, or sink is invalid.
        """
        started_at = time.monotonic()
        try:
            ledger = self._ledger or open_ledger(
                self._options.ledger_path, self._options.store_kind
            )
            block_range = resolve_migration_range(
                self._options.offset, self._options.limit, ledger.tip()
            )
            run_id = self._options.run_id or build_run_id(self._options)
            loader = self._loader_factory(self._options.sink_database)
        except Exception:
            self._transition("failed")
            raise
        _LOGGER.info(
            "migration_started",
            run_id=run_id,
            range_start=block_range.start,
            range_end=block_range.end,
            workers=self._config.workers,
        )
        writer = ChunkedSinkWriter(
            run_dir=run_dir_for(self._config.staging_root, run_id),
            rotate_every_blocks=self._config.rotate_every_blocks,
            max_buffer_rows=self._config.max_buffer_rows,
            flush_attempts=self._config.flush_attempts,
        )
        load_queue = ChunkLoadQueue(loader)
        try:
            self._scan(ledger, block_range, writer, load_queue)
            self._drain(writer, load_queue)
        except Exception:
            self._transition("failed")
            raise
        finally:
            load_queue.close()
            loader.close()
        summary = self._build_summary(run_id, block_range, load_queue, started_at)
        self._transition("completed")
        summary_path = write_summary_file(
            run_dir_for(self._config.staging_root, run_id), summary
        )
        _LOGGER.info(
            "migration_completed",
            summary_path=str(summary_path),
            **summary_to_payload(summary),
        )
        return summary

    def _scan(
        self,
        ledger: LedgerReader,
        block_range: MigrationRange,
        writer: ChunkedSinkWriter,
        load_queue: ChunkLoadQueue,
    ) -> None:
        self._transition("scanning")
        scanner = BlockScanner(ledger, self._config.workers, self._cancel_event)
        for scanned in scanner.scan(block_range):
            self._apply_scanned_block(scanned, writer)
            if writer.needs_rotation(self._progress.blocks_since_rotation):
                self._transition("flushing")
                self._rotate(writer, load_queue)
                self._transition("loading")
                self._transition("scanning")
        if self._cancel_event.is_set():
            _LOGGER.warning(
                "migration_cancelled",
                last_completed_index=self._progress.last_completed_index,
            )

    def _apply_scanned_block(self, scanned: ScannedBlock, writer: ChunkedSinkWriter) -> None:
        progress = self._progress
        if scanned.gap is not None:
            progress.gaps.append(scanned.gap)
        progress.extraction_failures.extend(scanned.extraction_failures)
        for record in scanned.records:
            if is_reference_record(record) and not self._dedup.add_if_absent(
                record.table, record.natural_key, is_complete_reference(record)
            ):
                continue
            writer.append(record.table, record_row(record))
            progress.record_counts[record.table] += 1
        progress.last_completed_index = scanned.block_index
        progress.blocks_processed += 1
        progress.blocks_since_rotation += 1

    def _rotate(self, writer: ChunkedSinkWriter, load_queue: ChunkLoadQueue) -> None:
        rotation = writer.rotate()
        self._progress.flush_failures.extend(rotation.failures)
        self._progress.blocks_since_rotation = 0
        load_queue.submit(rotation.flushed)

    def _drain(self, writer: ChunkedSinkWriter, load_queue: ChunkLoadQueue) -> None:
        self._transition("draining")
        self._rotate(writer, load_queue)
        load_queue.drain()

    def _build_summary(
        self,
        run_id: str,
        block_range: MigrationRange,
        load_queue: ChunkLoadQueue,
        started_at: float,
    ) -> MigrationSummary:
        progress = self._progress
        last_index = progress.last_completed_index
        return MigrationSummary(
            run_id=run_id,
            range_attempted=block_range,
            last_completed_index=last_index,
            record_counts=dict(progress.record_counts),
            blocks_processed=progress.blocks_processed,
            elapsed_seconds=time.monotonic() - started_at,
            chunks_loaded=load_queue.loaded_count,
            gaps=tuple(progress.gaps),
            extraction_failures=tuple(progress.extraction_failures),
            chunk_failures=tuple(progress.flush_failures) + load_queue.failures,
            cancelled=last_index is None or last_index < block_range.end,
        )

    def _transition(self, next_state: RunState) -> None:
        validate_run_transition(self._state, next_state)
        _LOGGER.debug("migration_state_changed", previous=self._state, state=next_state)
        self._state = next_state


def migrate(
    options: MigrationOptions,
    config: ChainportConfig,
    cancel_event: threading.Event | None = None,
) -> MigrationSummary:
    """Run one migration from ledger blocks to the sink database.

    Args:
        options: Migration request options.
        config: Runtime configuration.
        cancel_event: Optional event that stops scheduling new blocks.

    Returns:
        Final run summary.

    Raises:
        ConfigurationError: If the ledger, range, or sink is invalid.
    """
    runner = MigrationPipelineRunner(options, config, cancel_event=cancel_event)
    return runner.run()
