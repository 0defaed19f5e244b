"""Public SDK surface for Chainport.

This module provides a stable import path for library users.
It re-exports the primary client and typed option models.
"""

from __future__ import annotations

from core.config import ChainportConfig
from core.types import MigrationOptions, MigrationRange, MigrationSummary
from extraction.registry import supported_action_kinds
from migration.migration_sdk import ChainportClient
from migration.pipeline import migrate

__all__ = [
    "ChainportClient",
    "ChainportConfig",
    "MigrationOptions",
    "MigrationRange",
    "MigrationSummary",
    "migrate",
    "supported_action_kinds",
]
