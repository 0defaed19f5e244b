"""Shared typed models.

This module defines immutable data models used by the ledger, evaluation,
sink, and migration layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Mapping

from core.constants import DEFAULT_LEDGER_STORE_KIND


@dataclass(frozen=True)
class ActionPayload:
    """One recorded state-transition request.

    Attributes:
        type_id: Versioned action kind tag, e.g. ``buy7``.
        values: Action arguments as recorded on the ledger.
    """

    type_id: str
    values: Mapping[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class Transaction:
    """Signed transaction carrying an ordered action list.

    Attributes:
        tx_id: Transaction identifier.
        signer: Agent address that signed the transaction.
        actions: Actions in recorded order.
    """

    tx_id: str
    signer: str
    actions: tuple[ActionPayload, ...] = ()


@dataclass(frozen=True)
class Block:
    """Immutable ledger block.

    Attributes:
        index: Block height, 0 for genesis.
        hash: Content-addressed block identifier.
        previous_hash: Parent block identifier, None for genesis.
        timestamp: Block creation time.
        transactions: Transactions in recorded order.
    """

    index: int
    hash: str
    previous_hash: str | None
    timestamp: datetime
    transactions: tuple[Transaction, ...] = ()


@dataclass(frozen=True)
class MigrationOptions:
    """Migration command options.

    Attributes:
        ledger_path: Root directory of the ledger store.
        sink_database: DuckDB database file that receives loaded chunks.
        store_kind: Ledger store layout selector.
        offset: Blocks from genesis to skip; 0 when omitted.
        limit: Number of blocks to process; runs to the tip when omitted.
        run_id: Optional explicit run identifier for staging paths.
    """

    ledger_path: str
    sink_database: str
    store_kind: str = DEFAULT_LEDGER_STORE_KIND
    offset: int | None = None
    limit: int | None = None
    run_id: str | None = None


@dataclass(frozen=True)
class MigrationRange:
    """Inclusive block index range for one run."""

    start: int
    end: int

    @property
    def block_count(self) -> int:
        """Number of blocks covered by the range."""
        return self.end - self.start + 1


@dataclass(frozen=True)
class BlockGap:
    """A block skipped because its ledger data could not be read."""

    block_index: int
    reason: str


@dataclass(frozen=True)
class ExtractionFailure:
    """One action effect whose records could not be derived."""

    block_index: int
    tx_id: str
    action_kind: str
    reason: str


ChunkFailureStage = Literal["flush", "load"]


@dataclass(frozen=True)
class ChunkFailure:
    """One chunk that failed to flush or load.

    Attributes:
        table: Sink table name.
        chunk_index: Per-table chunk sequence number.
        chunk_path: Staging file path, for manual re-load.
        stage: Lifecycle step that failed.
        reason: Error message.
    """

    table: str
    chunk_index: int
    chunk_path: str
    stage: ChunkFailureStage
    reason: str


@dataclass(frozen=True)
class MigrationSummary:
    """Final report for one migration run.

    Attributes:
        run_id: Run identifier used for staging paths.
        range_attempted: Range resolved at startup.
        last_completed_index: Highest block emitted in order, None if none.
        record_counts: Rows appended per sink table after dedup.
        blocks_processed: Number of blocks emitted, gaps included.
        elapsed_seconds: Wall-clock duration of the run.
        chunks_loaded: Number of chunks accepted by the sink.
        gaps: Blocks skipped due to ledger read failures.
        extraction_failures: Effects whose records were skipped.
        chunk_failures: Chunks that failed to flush or load.
        cancelled: Whether the run stopped early on request.
    """

    run_id: str
    range_attempted: MigrationRange
    last_completed_index: int | None
    record_counts: Mapping[str, int]
    blocks_processed: int
    elapsed_seconds: float
    chunks_loaded: int
    gaps: tuple[BlockGap, ...] = ()
    extraction_failures: tuple[ExtractionFailure, ...] = ()
    chunk_failures: tuple[ChunkFailure, ...] = ()
    cancelled: bool = False

    @property
    def range_completed(self) -> MigrationRange | None:
        """Range actually emitted, None when no block completed."""
        if self.last_completed_index is None:
            return None
        return MigrationRange(start=self.range_attempted.start, end=self.last_completed_index)

    @property
    def resume_offset(self) -> int:
        """Offset that resumes right after the last completed block."""
        if self.last_completed_index is None:
            return self.range_attempted.start
        return self.last_completed_index + 1

    @property
    def has_failures(self) -> bool:
        """Whether any block, effect, or chunk failed."""
        return bool(self.gaps or self.extraction_failures or self.chunk_failures)
