"""JSON payload parsing for ledger files.

This module converts raw block and state-history JSON objects into typed
models. Every parse failure names the file and line that caused it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
import json
from pathlib import Path
from typing import Any, Iterator, Mapping

from core.errors import LedgerReadError
from core.types import ActionPayload, Block, Transaction


@dataclass(frozen=True)
class StateEntry:
    """Committed state value for one address at one block."""

    block_index: int
    address: str
    value: object


@dataclass(frozen=True)
class BalanceEntry:
    """Committed balance for one address and currency at one block."""

    block_index: int
    address: str
    currency: str
    amount: Decimal


def iter_json_lines(file_path: Path) -> Iterator[tuple[int, dict[str, Any]]]:
    """Yield ``(line_number, payload)`` pairs from a JSONL file.

    Args:
        file_path: JSONL file path.

    Yields:
        One-based line number and parsed JSON object.

    Raises:
        LedgerReadError: If the file is unreadable or a line is invalid.
    """
    try:
        lines = file_path.read_text(encoding="utf-8").splitlines()
    except OSError as error:
        raise LedgerReadError(
            f"Failed to read ledger file {file_path}: {error}. Check the ledger path."
        ) from error
    for line_number, line in enumerate(lines, 1):
        if not line.strip():
            continue
        yield line_number, _parse_object(line, f"{file_path}:{line_number}")


def read_json_object(file_path: Path) -> dict[str, Any]:
    """Read one JSON object file.

    Raises:
        LedgerReadError: If the file is unreadable or not a JSON object.
    """
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as error:
        raise LedgerReadError(
            f"Failed to read ledger file {file_path}: {error}. Check the ledger path."
        ) from error
    return _parse_object(text, str(file_path))


def block_from_payload(payload: Mapping[str, Any], location: str) -> Block:
    """Deserialize one block payload.

    Args:
        payload: Parsed block JSON object.
        location: File/line context for error messages.

    Returns:
        Parsed block.

    Raises:
        LedgerReadError: If required block fields are missing or invalid.
    """
    try:
        transactions = tuple(
            _transaction_from_payload(item) for item in payload.get("transactions", [])
        )
        previous_hash = payload.get("previous_hash")
        return Block(
            index=int(payload["index"]),
            hash=str(payload["hash"]),
            previous_hash=str(previous_hash) if previous_hash is not None else None,
            timestamp=datetime.fromisoformat(str(payload["timestamp"])),
            transactions=transactions,
        )
    except (KeyError, TypeError, ValueError) as error:
        raise LedgerReadError(
            f"Invalid block payload at {location}: {error!r}. "
            "Expected index, hash, timestamp, and a transactions list."
        ) from error


def state_entry_from_payload(
    payload: Mapping[str, Any],
    location: str,
) -> StateEntry | BalanceEntry:
    """Deserialize one state-history row.

    Rows with a ``currency`` field are balances; all others are state values.

    Raises:
        LedgerReadError: If required fields are missing or invalid.
    """
    try:
        block_index = int(payload["block_index"])
        address = str(payload["address"])
        if "currency" in payload:
            return BalanceEntry(
                block_index=block_index,
                address=address,
                currency=str(payload["currency"]),
                amount=Decimal(str(payload["amount"])),
            )
        return StateEntry(block_index=block_index, address=address, value=payload.get("value"))
    except (KeyError, TypeError, ValueError, InvalidOperation) as error:
        raise LedgerReadError(
            f"Invalid state entry at {location}: {error!r}. "
            "Expected block_index, address, and value or currency/amount."
        ) from error


def _transaction_from_payload(payload: Mapping[str, Any]) -> Transaction:
    actions = tuple(
        ActionPayload(type_id=str(item["type_id"]), values=dict(item.get("values", {})))
        for item in payload.get("actions", [])
    )
    return Transaction(tx_id=str(payload["tx_id"]), signer=str(payload["signer"]), actions=actions)


def _parse_object(text: str, location: str) -> dict[str, Any]:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as error:
        raise LedgerReadError(
            f"Failed to parse ledger JSON at {location}: {error.msg}."
        ) from error
    if not isinstance(payload, dict):
        raise LedgerReadError(f"Invalid ledger JSON at {location}: expected object.")
    return payload
