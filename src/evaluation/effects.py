"""Typed action evaluation results."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from core.types import ActionPayload
from evaluation.state_view import StateDelta, StateView


@dataclass(frozen=True)
class ActionContext:
    """Input context for one action evaluation.

    Attributes:
        signer: Agent address that signed the enclosing transaction.
        block_index: Index of the block being replayed.
        block_hash: Hash of the block being replayed.
        block_timestamp: Timestamp of the block being replayed.
        tx_id: Enclosing transaction id.
        action_index: Position of the action inside its transaction.
        previous_states: State before this action, including earlier
            actions of the same block.
    """

    signer: str
    block_index: int
    block_hash: str
    block_timestamp: datetime
    tx_id: str
    action_index: int
    previous_states: StateView


@dataclass(frozen=True)
class ActionEffect:
    """Realized outcome of one action.

    Attributes:
        action: Recorded action payload.
        context: Evaluation input context.
        output_states: State after this action.
        delta: Changes made by this action alone.
        success: False when domain rules rejected the action.
        error: Failure message when ``success`` is False.
    """

    action: ActionPayload
    context: ActionContext
    output_states: StateView
    delta: StateDelta
    success: bool
    error: str | None = None

    @property
    def action_kind(self) -> str:
        """Versioned action kind tag."""
        return self.action.type_id
