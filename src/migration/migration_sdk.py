"""Python SDK for migration operations.

This module exposes high-level APIs for running migrations, inspecting
the ledger tip, and executing YAML run-specs.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
import threading

from core.config import ChainportConfig
from core.constants import DEFAULT_LEDGER_STORE_KIND
from core.run_spec_execution import execute_run_spec_file
from core.types import MigrationOptions, MigrationSummary
from ledger.ledger_store import open_ledger
from migration.pipeline import migrate


class ChainportClient:
    """Primary SDK entry point for ledger migrations."""

    def __init__(
        self,
        config: ChainportConfig | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
            cancel_event: Optional event that stops a running migration.
        """
        self._config = config or ChainportConfig.from_env()
        self._cancel_event = cancel_event

    @property
    def config(self) -> ChainportConfig:
        return self._config

    def with_staging_root(self, staging_root: str) -> "ChainportClient":
        """Clone the client with a different staging root.

        Args:
            staging_root: New staging root path.

        Returns:
            New SDK client instance.
        """
        resolved_root = Path(staging_root).expanduser().resolve()
        updated_config = replace(self._config, staging_root=resolved_root)
        return ChainportClient(updated_config, cancel_event=self._cancel_event)

    def migrate(self, options: MigrationOptions) -> MigrationSummary:
        """Migrate a block range into the sink database.

        Args:
            options: Migration options.

        Returns:
            Final run summary.

        Raises:
            ConfigurationError: If the ledger, range, or sink is invalid.
        """
        return migrate(options, self._config, cancel_event=self._cancel_event)

    def tip(self, ledger_path: str, store_kind: str = DEFAULT_LEDGER_STORE_KIND) -> int:
        """Return the ledger tip index.

        Raises:
            ConfigurationError: If the ledger cannot be opened.
        """
        return open_ledger(ledger_path, store_kind).tip()

    def run_spec(self, spec_file: str) -> tuple[str, ...]:
        """Execute a YAML run-spec through the shared execution engine.

        Args:
            spec_file: Path to YAML run-spec file.

        Returns:
            Ordered command output lines.

        Raises:
            RunSpecError: If the run-spec is invalid.
        """
        return execute_run_spec_file(self, spec_file)
