"""Migration range resolution."""

from __future__ import annotations

from core.errors import ConfigurationError
from core.types import MigrationRange


def resolve_migration_range(offset: int | None, limit: int | None, tip: int) -> MigrationRange:
    """Resolve optional offset and limit into an inclusive block range.

    Args:
        offset: Blocks from genesis to skip; 0 when omitted.
        limit: Number of blocks to process; runs to the tip when omitted.
        tip: Ledger tip index.

    Returns:
        Inclusive range within ``[0, tip]``.

    Raises:
        ConfigurationError: If values are negative, ``offset`` is beyond the
            tip, or ``offset + limit`` exceeds the tip index.
    """
    start = 0 if offset is None else offset
    if start < 0:
        raise ConfigurationError(f"Invalid offset {start}: expected integer >= 0.")
    if start > tip:
        raise ConfigurationError(
            f"Invalid offset {start}: ledger tip is #{tip}. Use an offset between 0 and {tip}."
        )
    if limit is None:
        return MigrationRange(start=start, end=tip)
    if limit < 1:
        raise ConfigurationError(f"Invalid limit {limit}: expected integer >= 1.")
    if start + limit > tip:
        raise ConfigurationError(
            f"Invalid range: offset {start} + limit {limit} exceeds ledger tip #{tip}. "
            "Lower --limit or omit it to run to the tip."
        )
    return MigrationRange(start=start, end=start + limit - 1)
