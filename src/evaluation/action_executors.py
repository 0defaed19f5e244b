"""Versioned action executors.

Each executor applies the domain rules of one action revision to the state
visible in its context and returns the resulting state delta. Executors
raise ``ActionFailure`` when domain rules reject the action.
"""

from __future__ import annotations

import copy
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping

from core.constants import GOLD_CURRENCY_TICKER
from core.errors import ActionFailure
from evaluation.action_values import (
    BuyValues,
    CombinationValues,
    EnhancementValues,
    parse_buy_by_order,
    parse_buy_by_product,
    parse_buy_single_product,
    parse_combination_long_keys,
    parse_combination_short_keys,
    parse_create_avatar,
    parse_enhancement_material_list,
    parse_enhancement_single_material,
    parse_hack_and_slash,
)
from evaluation.effects import ActionContext
from evaluation.state_view import StateDelta

ActionExecutor = Callable[[Mapping[str, object], ActionContext], StateDelta]

AVATAR_SLOT_COUNT = 3
COMBINATION_SLOT_COUNT = 4
AVATAR_NAME_MIN_LENGTH = 2
AVATAR_NAME_MAX_LENGTH = 20


def execute_create_avatar(values: Mapping[str, object], context: ActionContext) -> StateDelta:
    """Register a new avatar in one of the signer's agent slots."""
    parsed = parse_create_avatar(values)
    return _create_avatar(context, parsed.avatar_address, parsed.index, parsed.name)


def execute_create_avatar_checked(
    values: Mapping[str, object],
    context: ActionContext,
) -> StateDelta:
    """Register a new avatar, enforcing slot range and name length."""
    parsed = parse_create_avatar(values)
    if not 0 <= parsed.index < AVATAR_SLOT_COUNT:
        raise ActionFailure(f"avatar slot {parsed.index} out of range")
    if not AVATAR_NAME_MIN_LENGTH <= len(parsed.name) <= AVATAR_NAME_MAX_LENGTH:
        raise ActionFailure(f"avatar name length {len(parsed.name)} out of range")
    return _create_avatar(context, parsed.avatar_address, parsed.index, parsed.name)


def execute_hack_and_slash(values: Mapping[str, object], context: ActionContext) -> StateDelta:
    """Battle one stage; the next uncleared stage or any earlier one is cleared."""
    parsed = parse_hack_and_slash(values)
    avatar = _owned_avatar(context, parsed.avatar_address)
    cleared_stage = int(avatar.get("cleared_stage", 0))
    if parsed.stage_id > cleared_stage + 1:
        return StateDelta()
    avatar["cleared_stage"] = max(cleared_stage, parsed.stage_id)
    return StateDelta(states={parsed.avatar_address: avatar})


def execute_combination_long_keys(
    values: Mapping[str, object],
    context: ActionContext,
) -> StateDelta:
    return _combine_equipment(parse_combination_long_keys(values), context)


def execute_combination_short_keys(
    values: Mapping[str, object],
    context: ActionContext,
) -> StateDelta:
    return _combine_equipment(parse_combination_short_keys(values), context)


def execute_enhancement_material_list(
    values: Mapping[str, object],
    context: ActionContext,
) -> StateDelta:
    return _enhance_item(parse_enhancement_material_list(values), context)


def execute_enhancement_single_material(
    values: Mapping[str, object],
    context: ActionContext,
) -> StateDelta:
    return _enhance_item(parse_enhancement_single_material(values), context)


def execute_buy_single_product(values: Mapping[str, object], context: ActionContext) -> StateDelta:
    """Buy one product; any rejected purchase fails the action."""
    return _buy(parse_buy_single_product(values), context, allow_partial=False)


def execute_buy_by_product(values: Mapping[str, object], context: ActionContext) -> StateDelta:
    """Buy several products; rejected purchases are skipped."""
    return _buy(parse_buy_by_product(values), context, allow_partial=True)


def execute_buy_by_order(values: Mapping[str, object], context: ActionContext) -> StateDelta:
    """Buy several orders; rejected purchases are skipped."""
    return _buy(parse_buy_by_order(values), context, allow_partial=True)


EXECUTORS: dict[str, ActionExecutor] = {
    "create_avatar": execute_create_avatar,
    "create_avatar2": execute_create_avatar_checked,
    "hack_and_slash2": execute_hack_and_slash,
    "hack_and_slash3": execute_hack_and_slash,
    "hack_and_slash4": execute_hack_and_slash,
    "combination_equipment": execute_combination_long_keys,
    "combination_equipment2": execute_combination_short_keys,
    "combination_equipment3": execute_combination_short_keys,
    "item_enhancement": execute_enhancement_material_list,
    "item_enhancement2": execute_enhancement_single_material,
    "item_enhancement3": execute_enhancement_single_material,
    "buy3": execute_buy_single_product,
    "buy4": execute_buy_single_product,
    "buy5": execute_buy_by_product,
    "buy6": execute_buy_by_product,
    "buy7": execute_buy_by_product,
    "buy8": execute_buy_by_order,
    "buy9": execute_buy_by_order,
}


def get_executor(type_id: str) -> ActionExecutor | None:
    """Return the executor registered for a kind tag, if any."""
    return EXECUTORS.get(type_id)


def _create_avatar(
    context: ActionContext,
    avatar_address: str,
    index: int,
    name: str,
) -> StateDelta:
    view = context.previous_states
    agent = _mutable_copy(view.get_state(context.signer)) or {"avatar_addresses": {}}
    slots = agent.setdefault("avatar_addresses", {})
    if str(index) in slots:
        raise ActionFailure(f"agent {context.signer} slot {index} already holds an avatar")
    if view.get_state(avatar_address) is not None:
        raise ActionFailure(f"avatar {avatar_address} already exists")
    slots[str(index)] = avatar_address
    avatar = {
        "agent_address": context.signer,
        "name": name,
        "level": 1,
        "cleared_stage": 0,
        "inventory": {},
    }
    return StateDelta(states={context.signer: agent, avatar_address: avatar})


def _combine_equipment(parsed: CombinationValues, context: ActionContext) -> StateDelta:
    if not 0 <= parsed.slot_index < COMBINATION_SLOT_COUNT:
        raise ActionFailure(f"combination slot {parsed.slot_index} out of range")
    avatar = _owned_avatar(context, parsed.avatar_address)
    inventory = avatar.setdefault("inventory", {})
    inventory[parsed.action_id] = {
        "item_type": "Equipment",
        "item_sub_type": "Weapon",
        "item_sheet_id": parsed.recipe_id,
        "grade": 1,
        "elemental_type": "Normal",
        "level": 0,
        "count": 1,
    }
    return StateDelta(states={parsed.avatar_address: avatar})


def _enhance_item(parsed: EnhancementValues, context: ActionContext) -> StateDelta:
    avatar = _owned_avatar(context, parsed.avatar_address)
    inventory = avatar.setdefault("inventory", {})
    item = inventory.get(parsed.item_id)
    if not isinstance(item, dict):
        raise ActionFailure(f"item {parsed.item_id} not in avatar inventory")
    if parsed.material_item_id is not None:
        if parsed.material_item_id == parsed.item_id:
            raise ActionFailure("item cannot be enhanced with itself")
        if parsed.material_item_id not in inventory:
            raise ActionFailure(f"material {parsed.material_item_id} not in avatar inventory")
        del inventory[parsed.material_item_id]
    item["level"] = int(item.get("level", 0)) + 1
    return StateDelta(states={parsed.avatar_address: avatar})


def _buy(parsed: BuyValues, context: ActionContext, allow_partial: bool) -> StateDelta:
    view = context.previous_states
    buyer_avatar = _owned_avatar(context, parsed.buyer_avatar_address)
    inventory = buyer_avatar.setdefault("inventory", {})
    states: dict[str, object | None] = {}
    balances: dict[tuple[str, str], Decimal] = {}
    buyer_key = (context.signer, GOLD_CURRENCY_TICKER)
    balances[buyer_key] = view.get_balance(*buyer_key)
    rejections: list[str] = []
    for purchase in parsed.purchases:
        if purchase.order_address in states:
            order = states[purchase.order_address]
        else:
            order = view.get_state(purchase.order_address)
        try:
            if (
                purchase.seller_agent_address == context.signer
                or purchase.seller_avatar_address == parsed.buyer_avatar_address
            ):
                raise ActionFailure("buyer cannot purchase its own order")
            order, price = _accept_purchase(
                order, purchase.seller_avatar_address, balances[buyer_key]
            )
        except ActionFailure as rejection:
            rejections.append(f"order {purchase.order_id}: {rejection}")
            continue
        seller_key = (purchase.seller_agent_address, GOLD_CURRENCY_TICKER)
        balances[buyer_key] -= price
        balances[seller_key] = balances.get(seller_key, view.get_balance(*seller_key)) + price
        item = dict(order["item"])
        inventory[str(item["item_id"])] = item
        states[purchase.order_address] = None
    if rejections and (not allow_partial or len(rejections) == len(parsed.purchases)):
        raise ActionFailure("; ".join(rejections))
    states[parsed.buyer_avatar_address] = buyer_avatar
    return StateDelta(states=states, balances=balances)


def _accept_purchase(
    order: object,
    seller_avatar_address: str,
    buyer_balance: Decimal,
) -> tuple[dict[str, Any], Decimal]:
    """Return the order and its price, or raise ``ActionFailure`` to reject it."""
    if not isinstance(order, dict):
        raise ActionFailure("order not found")
    if order.get("seller_avatar_address") != seller_avatar_address:
        raise ActionFailure("order seller does not match purchase")
    price = _order_price(order)
    if buyer_balance < price:
        raise ActionFailure(f"insufficient {GOLD_CURRENCY_TICKER} balance")
    return order, price


def _order_price(order: Mapping[str, Any]) -> Decimal:
    """Return an order's price as a finite, non-negative amount.

    Raises:
        ActionFailure: If the stored price is missing or not a valid amount.
    """
    try:
        price = Decimal(str(order["price"]))
    except (KeyError, InvalidOperation) as error:
        raise ActionFailure(f"invalid order price {order.get('price')!r}") from error
    if not price.is_finite() or price < 0:
        raise ActionFailure(f"invalid order price {order.get('price')!r}")
    return price


def _owned_avatar(context: ActionContext, avatar_address: str) -> dict[str, Any]:
    """Return a mutable copy of an avatar owned by the signer."""
    avatar = _mutable_copy(context.previous_states.get_state(avatar_address))
    if avatar is None:
        raise ActionFailure(f"avatar {avatar_address} not found")
    if avatar.get("agent_address") != context.signer:
        raise ActionFailure(f"avatar {avatar_address} is not owned by {context.signer}")
    return avatar


def _mutable_copy(state: object | None) -> dict[str, Any] | None:
    if state is None:
        return None
    if not isinstance(state, dict):
        raise ActionFailure(f"unexpected state shape {type(state).__name__}")
    return copy.deepcopy(state)
