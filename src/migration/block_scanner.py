"""Concurrent block scanning with an ordering barrier.

This module evaluates and extracts blocks on a bounded worker pool and
yields per-block results strictly in block-index order.
"""

from __future__ import annotations

from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
import threading
from typing import Iterator

from core.constants import IN_FLIGHT_BLOCKS_PER_WORKER
from core.errors import ExtractionError, LedgerReadError
from core.logging_config import get_logger
from core.types import BlockGap, ExtractionFailure, MigrationRange
from evaluation.evaluator import evaluate_block
from extraction.records import ExtractedRecord
from extraction.registry import extract_records
from ledger.ledger_store import LedgerReader

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class ScannedBlock:
    """Records and failures derived from one block.

    Attributes:
        block_index: Scanned block index.
        records: Extracted records in action order, before dedup.
        extraction_failures: Effects whose records were skipped.
        gap: Set when the block could not be read or evaluated.
    """

    block_index: int
    records: tuple[ExtractedRecord, ...] = ()
    extraction_failures: tuple[ExtractionFailure, ...] = ()
    gap: BlockGap | None = None


def scan_block(ledger: LedgerReader, block_index: int) -> ScannedBlock:
    """Read, replay and extract one block.

    Ledger read failures turn the whole block into a gap. Extraction
    failures skip only the affected effect.
    """
    try:
        block = ledger.get_block(block_index)
        effects = evaluate_block(block, ledger)
    except LedgerReadError as error:
        _LOGGER.warning("block_gap_recorded", block_index=block_index, error=str(error))
        return ScannedBlock(
            block_index=block_index,
            gap=BlockGap(block_index=block_index, reason=str(error)),
        )
    records: list[ExtractedRecord] = []
    failures: list[ExtractionFailure] = []
    for effect in effects:
        try:
            records.extend(extract_records(effect))
        except ExtractionError as error:
            _LOGGER.warning(
                "record_extraction_failed",
                block_index=block_index,
                tx_id=effect.context.tx_id,
                action_kind=effect.action_kind,
                error=str(error),
            )
            failures.append(
                ExtractionFailure(
                    block_index=block_index,
                    tx_id=effect.context.tx_id,
                    action_kind=effect.action_kind,
                    reason=str(error),
                )
            )
    return ScannedBlock(
        block_index=block_index,
        records=tuple(records),
        extraction_failures=tuple(failures),
    )


class BlockScanner:
    """Bounded-window block scanner.

    At most ``workers * IN_FLIGHT_BLOCKS_PER_WORKER`` blocks are scheduled
    ahead of the consumer. Once the cancel event is set no new block is
    scheduled; blocks already in flight are still emitted.
    """

    def __init__(
        self,
        ledger: LedgerReader,
        workers: int,
        cancel_event: threading.Event,
    ) -> None:
        self._ledger = ledger
        self._workers = workers
        self._window = workers * IN_FLIGHT_BLOCKS_PER_WORKER
        self._cancel_event = cancel_event

    def scan(self, block_range: MigrationRange) -> Iterator[ScannedBlock]:
        """Yield scanned blocks of a range in index order."""
        in_flight: deque[Future[ScannedBlock]] = deque()
        next_index = block_range.start
        with ThreadPoolExecutor(
            max_workers=self._workers,
            thread_name_prefix="chainport-scan",
        ) as executor:
            while True:
                while (
                    len(in_flight) < self._window
                    and next_index <= block_range.end
                    and not self._cancel_event.is_set()
                ):
                    in_flight.append(executor.submit(scan_block, self._ledger, next_index))
                    next_index += 1
                if not in_flight:
                    return
                yield in_flight.popleft().result()
