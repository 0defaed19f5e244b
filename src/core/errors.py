"""Chainport exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations


class ChainportError(Exception):
    """Base exception for all Chainport failures."""


class ConfigurationError(ChainportError):
    """Raised for invalid runtime configuration, ranges, or store locations."""


class LedgerReadError(ChainportError):
    """Raised when a block or state entry cannot be read from the ledger."""


class BlockNotFoundError(LedgerReadError):
    """Raised when a block index is negative or beyond the ledger tip."""

    def __init__(self, block_index: int, tip_index: int) -> None:
        self.block_index = block_index
        self.tip_index = tip_index
        super().__init__(
            f"Block #{block_index} not found: ledger tip is #{tip_index}. "
            "Request an index between 0 and the tip."
        )


class ActionFailure(ChainportError):
    """Raised by action executors when domain rules reject an action."""


class ExtractionError(ChainportError):
    """Raised when an action effect has an unexpected input shape."""


class SinkFlushError(ChainportError):
    """Raised when a staging buffer cannot be written to its chunk file."""


class LoadError(ChainportError):
    """Raised when the bulk loader rejects a flushed chunk."""


class RunSpecError(ChainportError):
    """Raised for invalid or unsupported run-spec configuration."""
