"""Chunked staging writer.

This module keeps one open row buffer per sink table, rotates buffers on a
block cadence or row threshold, and flushes rotated buffers atomically to
numbered chunk files with bounded retries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
import threading
from typing import Literal, Sequence

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from core.constants import CHUNK_FILE_SUFFIX, FLUSH_RETRY_INITIAL_DELAY, FLUSH_RETRY_MAX_DELAY
from core.errors import SinkFlushError
from core.logging_config import get_logger
from core.types import ChunkFailure
from sink.row_encoding import encode_row
from sink.sink_schema import get_table_schema, load_order_key

_LOGGER = get_logger(__name__)

BufferState = Literal["open", "rotating", "flushed", "loaded", "failed"]
ALLOWED_BUFFER_TRANSITIONS: dict[BufferState, tuple[BufferState, ...]] = {
    "open": ("rotating",),
    "rotating": ("flushed", "failed"),
    "flushed": ("loaded", "failed"),
    "loaded": (),
    "failed": (),
}


@dataclass
class StagingBuffer:
    """Ordered encoded rows for one table and their chunk lifecycle.

    Only the writer appends, and only while the buffer is open.
    """

    table: str
    lines: list[str] = field(default_factory=list)
    state: BufferState = "open"
    chunk_index: int | None = None
    chunk_path: Path | None = None

    @property
    def row_count(self) -> int:
        return len(self.lines)

    def transition(self, next_state: BufferState) -> None:
        """Move to the next lifecycle state.

        Raises:
            SinkFlushError: If the transition is not an allowed edge.
        """
        allowed_states = ALLOWED_BUFFER_TRANSITIONS[self.state]
        if next_state not in allowed_states:
            raise SinkFlushError(
                f"Invalid staging buffer transition {self.state!r} -> {next_state!r} "
                f"for table {self.table}. Allowed: {', '.join(allowed_states) or 'none'}."
            )
        self.state = next_state


@dataclass(frozen=True)
class RotationResult:
    """Buffers flushed by one rotation plus the chunks that failed."""

    flushed: tuple[StagingBuffer, ...]
    failures: tuple[ChunkFailure, ...]


class ChunkedSinkWriter:
    """Thread-safe per-table staging writer."""

    def __init__(
        self,
        run_dir: Path,
        rotate_every_blocks: int,
        max_buffer_rows: int,
        flush_attempts: int,
        retry_initial_delay: float = FLUSH_RETRY_INITIAL_DELAY,
    ) -> None:
        self._run_dir = run_dir
        self._rotate_every_blocks = rotate_every_blocks
        self._max_buffer_rows = max_buffer_rows
        self._flush_attempts = flush_attempts
        self._retry_initial_delay = retry_initial_delay
        self._lock = threading.Lock()
        self._buffers: dict[str, StagingBuffer] = {}
        self._next_chunk_index: dict[str, int] = {}

    def append(self, table: str, row: Sequence[object]) -> None:
        """Encode a row and append it to the table's open buffer.

        Raises:
            KeyError: If the table is not a sink table.
            TypeError: If a field has no bulk-load encoding.
        """
        get_table_schema(table)
        line = encode_row(row)
        with self._lock:
            buffer = self._buffers.get(table)
            if buffer is None:
                buffer = StagingBuffer(table=table)
                self._buffers[table] = buffer
            buffer.lines.append(line)

    def buffered_rows(self) -> int:
        """Total rows across open buffers."""
        with self._lock:
            return sum(buffer.row_count for buffer in self._buffers.values())

    def needs_rotation(self, blocks_since_rotation: int) -> bool:
        """Whether the block cadence or any buffer's row threshold is reached."""
        if blocks_since_rotation >= self._rotate_every_blocks:
            return True
        with self._lock:
            return any(
                buffer.row_count >= self._max_buffer_rows for buffer in self._buffers.values()
            )

    def rotate(self) -> RotationResult:
        """Swap in fresh buffers and flush the swapped ones.

        Empty buffers are discarded. A chunk that still fails after the
        configured attempts is reported and the remaining chunks are flushed.

        Returns:
            Flushed buffers in table load order, and failed chunks.
        """
        swapped = self._swap_buffers()
        flushed: list[StagingBuffer] = []
        failures: list[ChunkFailure] = []
        for buffer in swapped:
            try:
                self._flush_buffer(buffer)
            except SinkFlushError as error:
                buffer.transition("failed")
                failures.append(
                    ChunkFailure(
                        table=buffer.table,
                        chunk_index=buffer.chunk_index or 0,
                        chunk_path=str(buffer.chunk_path),
                        stage="flush",
                        reason=str(error),
                    )
                )
                _LOGGER.error(
                    "chunk_flush_failed",
                    table=buffer.table,
                    chunk_index=buffer.chunk_index,
                    error=str(error),
                )
                continue
            flushed.append(buffer)
        return RotationResult(flushed=tuple(flushed), failures=tuple(failures))

    def _swap_buffers(self) -> list[StagingBuffer]:
        with self._lock:
            swapped = [buffer for buffer in self._buffers.values() if buffer.row_count > 0]
            self._buffers = {}
            for buffer in swapped:
                buffer.transition("rotating")
                chunk_index = self._next_chunk_index.get(buffer.table, 0)
                self._next_chunk_index[buffer.table] = chunk_index + 1
                buffer.chunk_index = chunk_index
                buffer.chunk_path = _chunk_path(self._run_dir, buffer.table, chunk_index)
        swapped.sort(key=lambda buffer: load_order_key(buffer.table))
        return swapped

    def _flush_buffer(self, buffer: StagingBuffer) -> None:
        chunk_path = buffer.chunk_path
        if chunk_path is None:
            raise SinkFlushError(f"Staging buffer for {buffer.table} has no chunk path.")
        try:
            for attempt in Retrying(
                stop=stop_after_attempt(self._flush_attempts),
                wait=wait_exponential(
                    multiplier=self._retry_initial_delay,
                    max=FLUSH_RETRY_MAX_DELAY,
                ),
                retry=retry_if_exception_type(OSError),
                reraise=True,
            ):
                with attempt:
                    write_chunk_file(chunk_path, buffer.lines)
        except OSError as error:
            raise SinkFlushError(
                f"Failed to write chunk {chunk_path} after {self._flush_attempts} attempts: "
                f"{error}. Check free space and permissions under the staging root."
            ) from error
        buffer.transition("flushed")
        _LOGGER.info(
            "chunk_flushed",
            table=buffer.table,
            chunk_index=buffer.chunk_index,
            row_count=buffer.row_count,
            chunk_path=str(chunk_path),
        )


def write_chunk_file(chunk_path: Path, lines: Sequence[str]) -> None:
    """Write chunk lines through a temp file, fsync, then rename into place."""
    chunk_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = chunk_path.with_name(chunk_path.name + ".tmp")
    with temp_path.open("w", encoding="utf-8", newline="") as handle:
        handle.writelines(lines)
        handle.flush()
        os.fsync(handle.fileno())
    os.replace(temp_path, chunk_path)


def _chunk_path(run_dir: Path, table: str, chunk_index: int) -> Path:
    return run_dir / table / f"chunk-{chunk_index:05d}{CHUNK_FILE_SUFFIX}"
