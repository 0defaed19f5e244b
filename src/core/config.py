"""Runtime configuration model for Chainport.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import (
    DEFAULT_FLUSH_ATTEMPTS,
    DEFAULT_MAX_BUFFER_ROWS,
    DEFAULT_ROTATE_EVERY_BLOCKS,
    DEFAULT_STAGING_ROOT,
    DEFAULT_WORKERS,
)
from core.errors import ConfigurationError


@dataclass(frozen=True)
class ChainportConfig:
    """Validated runtime configuration.

    Attributes:
        staging_root: Local root directory for chunk files and run summaries.
        workers: Number of concurrent block evaluation workers.
        rotate_every_blocks: Block cadence for staging buffer rotation.
        max_buffer_rows: Row count that forces an early rotation.
        flush_attempts: Total write attempts per chunk before it is failed.
    """

    staging_root: Path
    workers: int
    rotate_every_blocks: int
    max_buffer_rows: int
    flush_attempts: int

    @classmethod
    def from_env(cls) -> "ChainportConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            ConfigurationError: If environment values are invalid.
        """
        staging_root_value = os.getenv("CHAINPORT_STAGING_ROOT", str(DEFAULT_STAGING_ROOT))
        return cls(
            staging_root=Path(staging_root_value).expanduser().resolve(),
            workers=_parse_positive_int("CHAINPORT_WORKERS", DEFAULT_WORKERS),
            rotate_every_blocks=_parse_positive_int(
                "CHAINPORT_ROTATE_EVERY_BLOCKS", DEFAULT_ROTATE_EVERY_BLOCKS
            ),
            max_buffer_rows=_parse_positive_int(
                "CHAINPORT_MAX_BUFFER_ROWS", DEFAULT_MAX_BUFFER_ROWS
            ),
            flush_attempts=_parse_positive_int(
                "CHAINPORT_FLUSH_ATTEMPTS", DEFAULT_FLUSH_ATTEMPTS
            ),
        )

    def validate(self) -> None:
        """Re-check numeric fields after CLI overrides are applied.

        Raises:
            ConfigurationError: If any tuning value is below one.
        """
        for field_name in ("workers", "rotate_every_blocks", "max_buffer_rows", "flush_attempts"):
            value = getattr(self, field_name)
            if value < 1:
                raise ConfigurationError(
                    f"Invalid {field_name} value {value}: expected integer >= 1."
                )


def _parse_positive_int(env_name: str, default_value: int) -> int:
    """Parse a positive integer environment value.

    Args:
        env_name: Environment variable name.
        default_value: Value used when the variable is unset.

    Returns:
        Parsed integer.

    Raises:
        ConfigurationError: If value is not an integer >= 1.
    """
    raw_value = os.getenv(env_name)
    if raw_value is None:
        return default_value
    try:
        parsed_value = int(raw_value)
    except ValueError as error:
        raise ConfigurationError(
            f"Invalid {env_name} value: expected integer, got '{raw_value}'. "
            f"Set {env_name} to a positive number."
        ) from error
    if parsed_value < 1:
        raise ConfigurationError(
            f"Invalid {env_name} value {parsed_value}: expected integer >= 1."
        )
    return parsed_value
