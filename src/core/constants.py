"""Core constants used across Chainport modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_STAGING_ROOT = Path(".chainport")
RUNS_DIR_NAME = "runs"
RUN_SUMMARY_FILE_NAME = "summary.json"
CHUNK_FILE_SUFFIX = ".csv"
DEFAULT_WORKERS = 4
DEFAULT_ROTATE_EVERY_BLOCKS = 5000
DEFAULT_MAX_BUFFER_ROWS = 100_000
DEFAULT_FLUSH_ATTEMPTS = 3
FLUSH_RETRY_INITIAL_DELAY = 0.5
FLUSH_RETRY_MAX_DELAY = 5.0
IN_FLIGHT_BLOCKS_PER_WORKER = 2

LEDGER_BLOCKS_FILE_NAME = "blocks.jsonl"
LEDGER_BLOCKS_DIR_NAME = "blocks"
LEDGER_STATES_FILE_NAME = "states.jsonl"
SUPPORTED_LEDGER_STORE_KINDS = ("jsonl", "directory")
DEFAULT_LEDGER_STORE_KIND = "jsonl"

ROW_FIELD_DELIMITER = ";"
ROW_LINE_TERMINATOR = "\n"
ROW_NULL_MARKER = "\\N"
ROW_QUOTE_CHAR = '"'

GOLD_CURRENCY_TICKER = "NCG"
ORDER_ADDRESS_PREFIX = "order:"
MIMISBRUNNR_STAGE_ID_FLOOR = 10_000_000
