"""Bulk-load row encoding.

Rows are written as ``;``-delimited lines. Strings are always quoted so
delimiters and quotes inside values survive; ``None`` is the unquoted
``\\N`` null marker.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Sequence

from core.constants import ROW_FIELD_DELIMITER, ROW_LINE_TERMINATOR, ROW_NULL_MARKER, ROW_QUOTE_CHAR


def encode_row(values: Sequence[object]) -> str:
    """Encode one row as a terminated chunk line.

    Args:
        values: Field values in table column order.

    Returns:
        Encoded line including the line terminator.

    Raises:
        TypeError: If a value has no bulk-load encoding.
    """
    fields = [encode_field(value) for value in values]
    return ROW_FIELD_DELIMITER.join(fields) + ROW_LINE_TERMINATOR


def encode_field(value: object) -> str:
    """Encode one field value."""
    if value is None:
        return ROW_NULL_MARKER
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, datetime):
        return _encode_timestamp(value)
    if isinstance(value, str):
        return _quote(value)
    raise TypeError(f"Cannot encode {type(value).__name__} value for bulk load.")


def _quote(value: str) -> str:
    escaped = value.replace(ROW_QUOTE_CHAR, ROW_QUOTE_CHAR * 2)
    return f"{ROW_QUOTE_CHAR}{escaped}{ROW_QUOTE_CHAR}"


def _encode_timestamp(value: datetime) -> str:
    # Timestamps are stored as naive UTC.
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat()
