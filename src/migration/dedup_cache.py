"""Run-scoped dedup cache for reference records."""

from __future__ import annotations

import threading


class DedupCache:
    """Thread-safe map of ``(table, natural_key)`` pairs to completeness.

    A key seen only with missing optional fields may be admitted once more
    when a complete row for it appears. Entries are discarded with the run.
    """

    def __init__(self) -> None:
        self._keys: dict[tuple[str, str], bool] = {}
        self._lock = threading.Lock()

    def add_if_absent(self, table: str, key: str, complete: bool = True) -> bool:
        """Record a key and report whether its row should be written.

        Args:
            table: Sink table name.
            key: Natural key within the table.
            complete: Whether the row carries every optional field.

        Returns:
            True if the key was absent, or was recorded incomplete and this
            row is complete.
        """
        entry = (table, key)
        with self._lock:
            recorded = self._keys.get(entry)
            if recorded is None or (complete and not recorded):
                self._keys[entry] = complete
                return True
            return False

    def __contains__(self, entry: object) -> bool:
        with self._lock:
            return entry in self._keys

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)
