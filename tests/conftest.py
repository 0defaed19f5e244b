"""Pytest configuration for repository test runs."""

from __future__ import annotations

from dataclasses import replace
import sys
from pathlib import Path

import pytest


def pytest_sessionstart() -> None:
    """Add src directory to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    src_path = project_root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


@pytest.fixture
def chainport_config(tmp_path: Path):
    """Config rooted in a temporary staging directory with small batches."""
    from core.config import ChainportConfig

    return replace(
        ChainportConfig.from_env(),
        staging_root=tmp_path / "staging",
        workers=2,
        rotate_every_blocks=2,
        max_buffer_rows=1000,
        flush_attempts=2,
    )


@pytest.fixture
def sample_ledger_path(tmp_path: Path) -> Path:
    """Four-block JSONL ledger with avatar creation, craft, and battle."""
    from ledger_fixtures import sample_chain, write_ledger

    blocks, states = sample_chain()
    return write_ledger(tmp_path / "ledger", blocks, states)
