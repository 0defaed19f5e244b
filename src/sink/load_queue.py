"""Background chunk loading.

This module hands flushed chunks to the bulk loader on a single worker
thread so loads run in submission order while scanning continues.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
import threading
from typing import Iterable

from core.errors import LoadError
from core.logging_config import get_logger
from core.types import ChunkFailure
from sink.bulk_loader import BulkLoader
from sink.staging_buffer import StagingBuffer

_LOGGER = get_logger(__name__)


class ChunkLoadQueue:
    """Single-worker load queue; failed loads are recorded, never retried."""

    def __init__(self, loader: BulkLoader) -> None:
        self._loader = loader
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="chainport-load")
        self._pending: list[Future[None]] = []
        self._lock = threading.Lock()
        self._loaded_count = 0
        self._failures: list[ChunkFailure] = []

    def submit(self, buffers: Iterable[StagingBuffer]) -> None:
        """Queue flushed buffers for loading in the given order."""
        for buffer in buffers:
            self._pending.append(self._executor.submit(self._load_buffer, buffer))

    def drain(self) -> None:
        """Block until every queued load has finished."""
        pending, self._pending = self._pending, []
        for future in pending:
            future.result()

    def close(self) -> None:
        """Drain queued loads and stop the worker."""
        self.drain()
        self._executor.shutdown(wait=True)

    @property
    def loaded_count(self) -> int:
        with self._lock:
            return self._loaded_count

    @property
    def failures(self) -> tuple[ChunkFailure, ...]:
        with self._lock:
            return tuple(self._failures)

    def _load_buffer(self, buffer: StagingBuffer) -> None:
        chunk_path = buffer.chunk_path
        if chunk_path is None or buffer.state != "flushed":
            raise LoadError(f"Chunk for {buffer.table} is not flushed; state={buffer.state}.")
        try:
            self._loader.load(buffer.table, chunk_path)
        except LoadError as error:
            buffer.transition("failed")
            _LOGGER.error(
                "chunk_load_failed",
                table=buffer.table,
                chunk_index=buffer.chunk_index,
                chunk_path=str(chunk_path),
                error=str(error),
            )
            with self._lock:
                self._failures.append(
                    ChunkFailure(
                        table=buffer.table,
                        chunk_index=buffer.chunk_index or 0,
                        chunk_path=str(chunk_path),
                        stage="load",
                        reason=str(error),
                    )
                )
            return
        buffer.transition("loaded")
        with self._lock:
            self._loaded_count += 1
        _LOGGER.info(
            "chunk_loaded",
            table=buffer.table,
            chunk_index=buffer.chunk_index,
            row_count=buffer.row_count,
        )
