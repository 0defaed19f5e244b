"""Extraction handlers per action revision family.

Handlers are pure functions of one successful effect. They read the
effect's pre- and post-action state views and return records in
dependency order: agents, avatars, then the event itself.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Callable, Mapping

from core.constants import MIMISBRUNNR_STAGE_ID_FLOOR
from evaluation.action_values import (
    BuyValues,
    CombinationValues,
    EnhancementValues,
    PurchaseValues,
    parse_create_avatar,
    parse_hack_and_slash,
)
from evaluation.effects import ActionEffect
from evaluation.state_view import StateView
from extraction.records import (
    AgentRecord,
    AvatarRecord,
    CraftRecord,
    EnhancementRecord,
    ExtractedRecord,
    HackAndSlashRecord,
    TradeRecord,
)

ExtractionHandler = Callable[[ActionEffect], list[ExtractedRecord]]


def extract_create_avatar(effect: ActionEffect) -> list[ExtractedRecord]:
    parsed = parse_create_avatar(effect.action.values)
    return _reference_records(effect.output_states, effect.context.signer, parsed.avatar_address)


def extract_hack_and_slash(effect: ActionEffect) -> list[ExtractedRecord]:
    parsed = parse_hack_and_slash(effect.action.values)
    signer = effect.context.signer
    avatar_state = _state_mapping(effect.output_states, parsed.avatar_address)
    cleared_stage = int(avatar_state.get("cleared_stage", 0))
    records = _reference_records(effect.output_states, signer, parsed.avatar_address)
    records.append(
        HackAndSlashRecord(
            id=parsed.action_id,
            avatar_address=parsed.avatar_address,
            agent_address=signer,
            stage_id=parsed.stage_id,
            cleared=cleared_stage >= parsed.stage_id,
            mimisbrunnr=parsed.stage_id > MIMISBRUNNR_STAGE_ID_FLOOR,
            block_index=effect.context.block_index,
        )
    )
    return records


def combination_handler(
    parse_values: Callable[[Mapping[str, object]], CombinationValues],
) -> ExtractionHandler:
    """Build a crafting handler for one argument layout."""

    def extract_combination(effect: ActionEffect) -> list[ExtractedRecord]:
        parsed = parse_values(effect.action.values)
        signer = effect.context.signer
        records = _reference_records(effect.output_states, signer, parsed.avatar_address)
        records.append(
            CraftRecord(
                id=parsed.action_id,
                avatar_address=parsed.avatar_address,
                agent_address=signer,
                recipe_id=parsed.recipe_id,
                slot_index=parsed.slot_index,
                sub_recipe_id=parsed.sub_recipe_id,
                block_index=effect.context.block_index,
            )
        )
        return records

    return extract_combination


def enhancement_handler(
    parse_values: Callable[[Mapping[str, object]], EnhancementValues],
) -> ExtractionHandler:
    """Build an enhancement handler for one argument layout."""

    def extract_enhancement(effect: ActionEffect) -> list[ExtractedRecord]:
        parsed = parse_values(effect.action.values)
        signer = effect.context.signer
        records = _reference_records(effect.output_states, signer, parsed.avatar_address)
        records.append(
            EnhancementRecord(
                id=parsed.action_id,
                avatar_address=parsed.avatar_address,
                agent_address=signer,
                item_id=parsed.item_id,
                material_item_id=parsed.material_item_id,
                slot_index=parsed.slot_index,
                block_index=effect.context.block_index,
            )
        )
        return records

    return extract_enhancement


def buy_handler(
    parse_values: Callable[[Mapping[str, object]], BuyValues],
) -> ExtractionHandler:
    """Build a purchase handler for one argument layout.

    A purchase counts as a trade when its order existed before the action
    and was consumed by it.
    """

    def extract_buy(effect: ActionEffect) -> list[ExtractedRecord]:
        parsed = parse_values(effect.action.values)
        signer = effect.context.signer
        records = _reference_records(effect.output_states, signer, parsed.buyer_avatar_address)
        trades: list[ExtractedRecord] = []
        for purchase in parsed.purchases:
            order = effect.context.previous_states.get_state(purchase.order_address)
            if order is None or effect.output_states.get_state(purchase.order_address) is not None:
                continue
            records.extend(
                _reference_records(
                    effect.output_states,
                    purchase.seller_agent_address,
                    purchase.seller_avatar_address,
                )
            )
            trades.append(_trade_record(effect, parsed, purchase, _as_mapping(order, "order")))
        return records + trades

    return extract_buy


def _trade_record(
    effect: ActionEffect,
    parsed: BuyValues,
    purchase: PurchaseValues,
    order: Mapping[str, Any],
) -> TradeRecord:
    item = _as_mapping(order["item"], "order item")
    return TradeRecord(
        order_id=purchase.order_id,
        tx_id=effect.context.tx_id,
        block_index=effect.context.block_index,
        block_hash=effect.context.block_hash,
        item_id=str(item["item_id"]),
        seller_avatar_address=purchase.seller_avatar_address,
        buyer_avatar_address=parsed.buyer_avatar_address,
        price=Decimal(str(order["price"])),
        item_type=_optional_str(item.get("item_type")),
        item_sub_type=_optional_str(item.get("item_sub_type")),
        item_sheet_id=_optional_int(item.get("item_sheet_id")),
        elemental_type=_optional_str(item.get("elemental_type")),
        grade=_optional_int(item.get("grade")),
        item_count=int(order.get("item_count", 1)),
        timestamp=effect.context.block_timestamp,
    )


def _reference_records(
    view: StateView,
    agent_address: str,
    avatar_address: str,
) -> list[ExtractedRecord]:
    avatar_state = view.get_state(avatar_address)
    name = avatar_state.get("name") if isinstance(avatar_state, Mapping) else None
    return [
        AgentRecord(address=agent_address),
        AvatarRecord(
            address=avatar_address,
            agent_address=agent_address,
            name=_optional_str(name),
        ),
    ]


def _state_mapping(view: StateView, address: str) -> Mapping[str, Any]:
    return _as_mapping(view.get_state(address), f"state at {address}")


def _as_mapping(value: object, context: str) -> Mapping[str, Any]:
    if isinstance(value, Mapping):
        return value
    raise TypeError(f"{context} must be an object, got {type(value).__name__}")


def _optional_str(value: object) -> str | None:
    return None if value is None else str(value)


def _optional_int(value: object) -> int | None:
    return None if value is None else int(str(value))
