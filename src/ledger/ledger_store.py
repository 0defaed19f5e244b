"""Ledger reader implementations.

This module exposes the read-only ledger contract used by the evaluator
and two file-backed stores: an eager JSONL store and a lazy per-block
directory store. Both answer state queries as of any block index.
"""

from __future__ import annotations

from bisect import bisect_right
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Protocol, Sequence

from core.constants import (
    LEDGER_BLOCKS_DIR_NAME,
    LEDGER_BLOCKS_FILE_NAME,
    LEDGER_STATES_FILE_NAME,
    SUPPORTED_LEDGER_STORE_KINDS,
)
from core.errors import BlockNotFoundError, ConfigurationError, LedgerReadError
from core.types import Block
from ledger.ledger_payload import (
    BalanceEntry,
    StateEntry,
    block_from_payload,
    iter_json_lines,
    read_json_object,
    state_entry_from_payload,
)


class LedgerReader(Protocol):
    """Read-only ledger contract shared by all store kinds."""

    def tip(self) -> int: ...

    def get_block(self, index: int) -> Block: ...

    def state_at(self, address: str, block_index: int) -> object | None: ...

    def balance_at(self, address: str, currency: str, block_index: int) -> Decimal: ...


class _History:
    """Sorted per-key value history with point-in-time lookup."""

    def __init__(self) -> None:
        self._indices: list[int] = []
        self._values: list[object] = []

    def add(self, block_index: int, value: object) -> None:
        position = bisect_right(self._indices, block_index)
        self._indices.insert(position, block_index)
        self._values.insert(position, value)

    def value_at(self, block_index: int) -> object | None:
        position = bisect_right(self._indices, block_index)
        if position == 0:
            return None
        return self._values[position - 1]


class LedgerStateIndex:
    """Point-in-time index over committed states and balances.

    Entries are immutable once the index is built, so concurrent readers
    need no locking.
    """

    def __init__(self, entries: Iterable[StateEntry | BalanceEntry] = ()) -> None:
        self._states: dict[str, _History] = {}
        self._balances: dict[tuple[str, str], _History] = {}
        for entry in entries:
            if isinstance(entry, BalanceEntry):
                key = (entry.address, entry.currency)
                self._balances.setdefault(key, _History()).add(entry.block_index, entry.amount)
            else:
                self._states.setdefault(entry.address, _History()).add(
                    entry.block_index, entry.value
                )

    def state_at(self, address: str, block_index: int) -> object | None:
        """Return the latest state committed at or before ``block_index``."""
        history = self._states.get(address)
        if history is None:
            return None
        return history.value_at(block_index)

    def balance_at(self, address: str, currency: str, block_index: int) -> Decimal:
        """Return the latest balance committed at or before ``block_index``."""
        history = self._balances.get((address, currency))
        if history is None:
            return Decimal(0)
        amount = history.value_at(block_index)
        return amount if isinstance(amount, Decimal) else Decimal(0)


class InMemoryLedger:
    """Ledger backed by an in-memory block list and state index."""

    def __init__(self, blocks: Sequence[Block], state_index: LedgerStateIndex) -> None:
        _validate_block_sequence(blocks)
        self._blocks = tuple(blocks)
        self._state_index = state_index

    def tip(self) -> int:
        """Return the highest block index."""
        return len(self._blocks) - 1

    def get_block(self, index: int) -> Block:
        """Return block at ``index``.

        Raises:
            BlockNotFoundError: If index is negative or beyond tip.
        """
        if index < 0 or index >= len(self._blocks):
            raise BlockNotFoundError(index, self.tip())
        return self._blocks[index]

    def state_at(self, address: str, block_index: int) -> object | None:
        """Return state for ``address`` as of ``block_index``."""
        return self._state_index.state_at(address, block_index)

    def balance_at(self, address: str, currency: str, block_index: int) -> Decimal:
        """Return balance for ``address`` as of ``block_index``."""
        return self._state_index.balance_at(address, currency, block_index)


class DirectoryLedgerStore:
    """Ledger reading one ``<index>.json`` file per block on demand."""

    def __init__(self, ledger_root: Path, state_index: LedgerStateIndex) -> None:
        self._blocks_dir = ledger_root / LEDGER_BLOCKS_DIR_NAME
        self._state_index = state_index
        self._tip = _scan_block_files(self._blocks_dir)

    def tip(self) -> int:
        """Return the highest block index."""
        return self._tip

    def get_block(self, index: int) -> Block:
        """Read and parse block at ``index``.

        Raises:
            BlockNotFoundError: If index is negative or beyond tip.
            LedgerReadError: If the block file is unreadable or invalid.
        """
        if index < 0 or index > self._tip:
            raise BlockNotFoundError(index, self._tip)
        block_path = self._blocks_dir / f"{index:08d}.json"
        block = block_from_payload(read_json_object(block_path), str(block_path))
        if block.index != index:
            raise LedgerReadError(
                f"Block file {block_path} holds index {block.index}, expected {index}."
            )
        return block

    def state_at(self, address: str, block_index: int) -> object | None:
        """Return state for ``address`` as of ``block_index``."""
        return self._state_index.state_at(address, block_index)

    def balance_at(self, address: str, currency: str, block_index: int) -> Decimal:
        """Return balance for ``address`` as of ``block_index``."""
        return self._state_index.balance_at(address, currency, block_index)


def open_ledger(ledger_path: str, store_kind: str) -> LedgerReader:
    """Open a file-backed ledger store.

    Args:
        ledger_path: Ledger root directory.
        store_kind: One of ``jsonl`` or ``directory``.

    Returns:
        Ready-to-read ledger.

    Raises:
        ConfigurationError: If the store kind is unknown, the path is missing,
            the ledger is unreadable, or it holds no blocks.
    """
    if store_kind not in SUPPORTED_LEDGER_STORE_KINDS:
        supported = ", ".join(SUPPORTED_LEDGER_STORE_KINDS)
        raise ConfigurationError(
            f"Invalid ledger store kind '{store_kind}'. Choose one of: {supported}."
        )
    ledger_root = Path(ledger_path).expanduser()
    if not ledger_root.is_dir():
        raise ConfigurationError(
            f"Ledger path {ledger_root} is not a directory. Provide a valid ledger root."
        )
    try:
        state_index = _load_state_index(ledger_root / LEDGER_STATES_FILE_NAME)
        if store_kind == "directory":
            return DirectoryLedgerStore(ledger_root, state_index)
        blocks = _load_jsonl_blocks(ledger_root / LEDGER_BLOCKS_FILE_NAME)
        return InMemoryLedger(blocks, state_index)
    except LedgerReadError as error:
        raise ConfigurationError(f"Failed to open ledger at {ledger_root}: {error}") from error


def _load_state_index(states_path: Path) -> LedgerStateIndex:
    """Load state history, treating a missing file as an empty history."""
    if not states_path.exists():
        return LedgerStateIndex()
    entries = [
        state_entry_from_payload(payload, f"{states_path}:{line_number}")
        for line_number, payload in iter_json_lines(states_path)
    ]
    return LedgerStateIndex(entries)


def _load_jsonl_blocks(blocks_path: Path) -> list[Block]:
    if not blocks_path.exists():
        raise LedgerReadError(f"Missing {LEDGER_BLOCKS_FILE_NAME} under {blocks_path.parent}.")
    blocks = [
        block_from_payload(payload, f"{blocks_path}:{line_number}")
        for line_number, payload in iter_json_lines(blocks_path)
    ]
    return sorted(blocks, key=lambda block: block.index)


def _scan_block_files(blocks_dir: Path) -> int:
    """Return tip index after checking block files are contiguous from 0."""
    if not blocks_dir.is_dir():
        raise LedgerReadError(
            f"Missing {LEDGER_BLOCKS_DIR_NAME}/ directory under {blocks_dir.parent}."
        )
    indices: list[int] = []
    for block_path in blocks_dir.glob("*.json"):
        try:
            indices.append(int(block_path.stem))
        except ValueError:
            continue
    indices.sort()
    if not indices:
        raise LedgerReadError(f"No block files found in {blocks_dir}.")
    if indices != list(range(len(indices))):
        raise LedgerReadError(
            f"Block files in {blocks_dir} are not contiguous from genesis."
        )
    return indices[-1]


def _validate_block_sequence(blocks: Sequence[Block]) -> None:
    if not blocks:
        raise LedgerReadError("Ledger holds no blocks; a genesis block is required.")
    for position, block in enumerate(blocks):
        if block.index != position:
            raise LedgerReadError(
                f"Ledger block sequence broken at position {position}: found index {block.index}."
            )
