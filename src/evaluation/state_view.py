"""State views used during block replay.

A prior-state view reads the ledger as of the block before the one being
replayed. A block journal records each action's delta once; views pinned to
a journal version let later actions observe earlier ones.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Generic, Mapping, Protocol, TypeVar

from ledger.ledger_store import LedgerReader

_ValueT = TypeVar("_ValueT")


class StateView(Protocol):
    """Read-only state accessor handed to executors and extractors."""

    def get_state(self, address: str) -> object | None: ...

    def get_balance(self, address: str, currency: str) -> Decimal: ...


@dataclass(frozen=True)
class StateDelta:
    """State and balance changes produced by one action.

    A state key mapped to ``None`` removes that state.
    """

    states: Mapping[str, object | None] = field(default_factory=dict)
    balances: Mapping[tuple[str, str], Decimal] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        """Whether the delta changes nothing."""
        return not self.states and not self.balances


EMPTY_DELTA = StateDelta()


class PriorStateView:
    """Ledger state as of the parent of ``block_index``."""

    def __init__(self, ledger: LedgerReader, block_index: int) -> None:
        self._ledger = ledger
        self._state_index = block_index - 1

    @property
    def state_index(self) -> int:
        """Block index the view reads from."""
        return self._state_index

    def get_state(self, address: str) -> object | None:
        if self._state_index < 0:
            return None
        return self._ledger.state_at(address, self._state_index)

    def get_balance(self, address: str, currency: str) -> Decimal:
        if self._state_index < 0:
            return Decimal(0)
        return self._ledger.balance_at(address, currency, self._state_index)


class _VersionedValues(Generic[_ValueT]):
    """Values of one key in the order they were written."""

    def __init__(self) -> None:
        self._versions: list[int] = []
        self._values: list[_ValueT] = []

    def append(self, version: int, value: _ValueT) -> None:
        self._versions.append(version)
        self._values.append(value)

    def lookup(self, version: int) -> tuple[bool, _ValueT | None]:
        position = bisect_right(self._versions, version)
        if position == 0:
            return False, None
        return True, self._values[position - 1]


class BlockJournal:
    """Append-only log of the deltas applied while replaying one block.

    Version ``n`` covers the first ``n`` non-empty deltas. Only the replaying
    thread appends; views keep reading the version they were created with.
    """

    def __init__(self) -> None:
        self._version = 0
        self._states: dict[str, _VersionedValues[object | None]] = {}
        self._balances: dict[tuple[str, str], _VersionedValues[Decimal]] = {}

    @property
    def version(self) -> int:
        return self._version

    def apply(self, delta: StateDelta) -> int:
        """Record a delta and return the version that includes it."""
        if delta.is_empty:
            return self._version
        self._version += 1
        for address, value in delta.states.items():
            self._states.setdefault(address, _VersionedValues()).append(self._version, value)
        for key, amount in delta.balances.items():
            self._balances.setdefault(key, _VersionedValues()).append(self._version, amount)
        return self._version

    def state_at(self, address: str, version: int) -> tuple[bool, object | None]:
        """Return whether the address was written by ``version``, and its value."""
        values = self._states.get(address)
        if values is None:
            return False, None
        return values.lookup(version)

    def balance_at(self, key: tuple[str, str], version: int) -> tuple[bool, Decimal | None]:
        """Return whether the balance was written by ``version``, and its amount."""
        values = self._balances.get(key)
        if values is None:
            return False, None
        return values.lookup(version)


class JournalStateView:
    """Journal-over-base view pinned to one journal version."""

    def __init__(self, base: StateView, journal: BlockJournal, version: int) -> None:
        self._base = base
        self._journal = journal
        self._version = version

    def get_state(self, address: str) -> object | None:
        found, value = self._journal.state_at(address, self._version)
        if found:
            return value
        return self._base.get_state(address)

    def get_balance(self, address: str, currency: str) -> Decimal:
        found, amount = self._journal.balance_at((address, currency), self._version)
        if found and amount is not None:
            return amount
        return self._base.get_balance(address, currency)
