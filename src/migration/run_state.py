"""Pipeline run lifecycle states and transition validation."""

from __future__ import annotations

from typing import Literal

from core.errors import ChainportError

RunState = Literal[
    "initializing",
    "scanning",
    "flushing",
    "loading",
    "draining",
    "completed",
    "failed",
]
ALLOWED_RUN_TRANSITIONS: dict[RunState, tuple[RunState, ...]] = {
    "initializing": ("scanning", "failed"),
    "scanning": ("flushing", "draining", "failed"),
    "flushing": ("loading", "failed"),
    "loading": ("scanning", "failed"),
    "draining": ("completed", "failed"),
    "completed": (),
    "failed": (),
}


def validate_run_transition(current: RunState, next_state: RunState) -> None:
    """Validate one run transition against allowed state machine edges."""
    allowed_states = ALLOWED_RUN_TRANSITIONS[current]
    if next_state not in allowed_states:
        raise ChainportError(
            f"Invalid migration run state transition {current!r} -> {next_state!r}. "
            f"Allowed: {', '.join(allowed_states) or 'none'}."
        )
