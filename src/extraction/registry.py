"""Extraction handler registry.

Maps every versioned action kind tag to the one handler that understands
its argument layout.
"""

from __future__ import annotations

from core.errors import ExtractionError
from evaluation.action_values import (
    parse_buy_by_order,
    parse_buy_by_product,
    parse_buy_single_product,
    parse_combination_long_keys,
    parse_combination_short_keys,
    parse_enhancement_material_list,
    parse_enhancement_single_material,
)
from evaluation.effects import ActionEffect
from extraction.handlers import (
    ExtractionHandler,
    buy_handler,
    combination_handler,
    enhancement_handler,
    extract_create_avatar,
    extract_hack_and_slash,
)
from extraction.records import ExtractedRecord

_extract_buy_single_product = buy_handler(parse_buy_single_product)
_extract_buy_by_product = buy_handler(parse_buy_by_product)
_extract_buy_by_order = buy_handler(parse_buy_by_order)

HANDLERS: dict[str, ExtractionHandler] = {
    "create_avatar": extract_create_avatar,
    "create_avatar2": extract_create_avatar,
    "hack_and_slash2": extract_hack_and_slash,
    "hack_and_slash3": extract_hack_and_slash,
    "hack_and_slash4": extract_hack_and_slash,
    "combination_equipment": combination_handler(parse_combination_long_keys),
    "combination_equipment2": combination_handler(parse_combination_short_keys),
    "combination_equipment3": combination_handler(parse_combination_short_keys),
    "item_enhancement": enhancement_handler(parse_enhancement_material_list),
    "item_enhancement2": enhancement_handler(parse_enhancement_single_material),
    "item_enhancement3": enhancement_handler(parse_enhancement_single_material),
    "buy3": _extract_buy_single_product,
    "buy4": _extract_buy_single_product,
    "buy5": _extract_buy_by_product,
    "buy6": _extract_buy_by_product,
    "buy7": _extract_buy_by_product,
    "buy8": _extract_buy_by_order,
    "buy9": _extract_buy_by_order,
}


def supported_action_kinds() -> tuple[str, ...]:
    """Return registered kind tags in stable order."""
    return tuple(sorted(HANDLERS))


def extract_records(effect: ActionEffect) -> list[ExtractedRecord]:
    """Extract sink records from one action effect.

    Args:
        effect: Evaluated action effect.

    Returns:
        Records in agent, avatar, event order. Failed effects and kind tags
        without a handler yield no records.

    Raises:
        ExtractionError: If the effect's arguments or states have an
            unexpected shape.
    """
    if not effect.success:
        return []
    handler = HANDLERS.get(effect.action_kind)
    if handler is None:
        return []
    try:
        return handler(effect)
    except (ArithmeticError, KeyError, TypeError, ValueError) as error:
        raise ExtractionError(
            f"Failed to extract {effect.action_kind} in tx {effect.context.tx_id} "
            f"at block #{effect.context.block_index}: {error!r}. "
            "Check the action payload against its revision's argument layout."
        ) from error
