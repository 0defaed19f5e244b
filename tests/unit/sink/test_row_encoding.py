"""Unit tests for bulk-load row encoding."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from sink.row_encoding import encode_field, encode_row


def test_encode_row_quotes_strings_and_marks_nulls() -> None:
    """Null and empty string must stay distinguishable."""
    line = encode_row(["a;b", None, "", 'say "hi"'])

    assert line == '"a;b";\\N;"";"say ""hi"""\n'


def test_encode_field_renders_scalars_bare() -> None:
    """Booleans, integers, and decimals are written unquoted."""
    assert (
        encode_field(True) == "true"
        and encode_field(False) == "false"
        and encode_field(42) == "42"
        and encode_field(Decimal("12.50")) == "12.50"
        and encode_field(Decimal("1E+2")) == "100"
    )


def test_encode_field_normalizes_timestamps_to_utc() -> None:
    """Offset-aware timestamps are stored as naive UTC ISO strings."""
    moment = datetime(2021, 6, 1, 9, 0, tzinfo=timezone(timedelta(hours=9)))

    assert encode_field(moment) == "2021-06-01T00:00:00"


def test_encode_field_rejects_unknown_types() -> None:
    """Values without an encoding should fail loudly."""
    with pytest.raises(TypeError):
        encode_field(object())
