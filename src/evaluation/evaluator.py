"""Block evaluation.

This module replays every action of a block against the ledger state as
of the block's parent and returns one effect per action, in transaction
order then action order.
"""

from __future__ import annotations

from core.errors import ActionFailure
from core.logging_config import get_logger
from core.types import ActionPayload, Block
from evaluation.action_executors import get_executor
from evaluation.effects import ActionContext, ActionEffect
from evaluation.state_view import (
    EMPTY_DELTA,
    BlockJournal,
    JournalStateView,
    PriorStateView,
    StateDelta,
)
from ledger.ledger_store import LedgerReader

_LOGGER = get_logger(__name__)


def evaluate_block(block: Block, ledger: LedgerReader) -> list[ActionEffect]:
    """Replay a block and return its ordered action effects.

    Args:
        block: Block to replay.
        ledger: Ledger providing state as of ``block.index - 1``.

    Returns:
        Effects in transaction order then in-transaction action order.
        Domain failures appear as effects with ``success=False``.

    Raises:
        LedgerReadError: If a state lookup fails; the whole block aborts.
    """
    base_view = PriorStateView(ledger, block.index)
    journal = BlockJournal()
    effects: list[ActionEffect] = []
    for transaction in block.transactions:
        for action_index, action in enumerate(transaction.actions):
            context = ActionContext(
                signer=transaction.signer,
                block_index=block.index,
                block_hash=block.hash,
                block_timestamp=block.timestamp,
                tx_id=transaction.tx_id,
                action_index=action_index,
                previous_states=JournalStateView(base_view, journal, journal.version),
            )
            delta, error = _execute_action(action, context)
            version = journal.apply(delta)
            effects.append(
                ActionEffect(
                    action=action,
                    context=context,
                    output_states=JournalStateView(base_view, journal, version),
                    delta=delta,
                    success=error is None,
                    error=error,
                )
            )
    return effects


def _execute_action(action: ActionPayload, context: ActionContext) -> tuple[StateDelta, str | None]:
    """Run one executor, converting domain failures into an error message."""
    executor = get_executor(action.type_id)
    if executor is None:
        return EMPTY_DELTA, None
    try:
        return executor(action.values, context), None
    except ActionFailure as failure:
        return EMPTY_DELTA, str(failure)
    except (ArithmeticError, KeyError, TypeError, ValueError) as error:
        _LOGGER.debug(
            "action_values_malformed",
            block_index=context.block_index,
            tx_id=context.tx_id,
            action_kind=action.type_id,
            error=repr(error),
        )
        return EMPTY_DELTA, f"malformed action values: {error!r}"
