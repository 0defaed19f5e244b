"""Unit tests for ordered concurrent block scanning."""

from __future__ import annotations

from decimal import Decimal
import threading

from core.errors import LedgerReadError
from core.types import Block, MigrationRange
from ledger.ledger_store import LedgerReader, open_ledger
from ledger_fixtures import empty_blocks, write_ledger
from migration.block_scanner import BlockScanner, scan_block


class _BrokenBlockLedger:
    """Ledger wrapper failing reads of selected blocks."""

    def __init__(self, inner: LedgerReader, broken: frozenset[int]) -> None:
        self._inner = inner
        self._broken = broken

    def tip(self) -> int:
        return self._inner.tip()

    def get_block(self, index: int) -> Block:
        if index in self._broken:
            raise LedgerReadError(f"corrupt block {index}")
        return self._inner.get_block(index)

    def state_at(self, address: str, block_index: int) -> object | None:
        return self._inner.state_at(address, block_index)

    def balance_at(self, address: str, currency: str, block_index: int) -> Decimal:
        return self._inner.balance_at(address, currency, block_index)


def _empty_ledger(tmp_path, count: int) -> LedgerReader:
    return open_ledger(str(write_ledger(tmp_path / "ledger", empty_blocks(count))), "jsonl")


def test_scan_yields_blocks_in_index_order(tmp_path) -> None:
    """Concurrent evaluation must not reorder emitted blocks."""
    scanner = BlockScanner(_empty_ledger(tmp_path, 30), workers=4, cancel_event=threading.Event())

    indices = [scanned.block_index for scanned in scanner.scan(MigrationRange(start=3, end=27))]

    assert indices == list(range(3, 28))


def test_unreadable_block_becomes_gap(tmp_path) -> None:
    """A read failure skips only the affected block."""
    ledger = _BrokenBlockLedger(_empty_ledger(tmp_path, 5), frozenset({2}))
    scanner = BlockScanner(ledger, workers=2, cancel_event=threading.Event())

    scanned = list(scanner.scan(MigrationRange(start=0, end=4)))

    assert (
        [block.block_index for block in scanned] == [0, 1, 2, 3, 4]
        and scanned[2].gap is not None
        and scanned[2].gap.block_index == 2
        and all(block.gap is None for block in scanned if block.block_index != 2)
    )


def test_cancelled_scan_schedules_nothing(tmp_path) -> None:
    """A cancel set before scanning yields no blocks."""
    cancel_event = threading.Event()
    cancel_event.set()
    scanner = BlockScanner(_empty_ledger(tmp_path, 5), workers=2, cancel_event=cancel_event)

    assert list(scanner.scan(MigrationRange(start=0, end=4))) == []


def test_cancel_mid_scan_emits_contiguous_prefix(tmp_path) -> None:
    """Blocks already scheduled are still emitted in order after cancel."""
    cancel_event = threading.Event()
    scanner = BlockScanner(_empty_ledger(tmp_path, 50), workers=2, cancel_event=cancel_event)
    indices: list[int] = []
    for scanned in scanner.scan(MigrationRange(start=0, end=49)):
        indices.append(scanned.block_index)
        if scanned.block_index == 5:
            cancel_event.set()

    assert indices == list(range(len(indices))) and 6 <= len(indices) < 50


def test_scan_block_extracts_records(sample_ledger_path) -> None:
    """A single block scan evaluates and extracts its actions."""
    ledger = open_ledger(str(sample_ledger_path), "jsonl")

    scanned = scan_block(ledger, 2)

    assert (
        [record.table for record in scanned.records]
        == ["agents", "avatars", "combination_equipments"]
        and scanned.gap is None
        and scanned.extraction_failures == ()
    )
