"""Unit tests for versioned action executors."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from core.errors import ActionFailure
from evaluation.action_executors import EXECUTORS, get_executor
from evaluation.effects import ActionContext
from evaluation.state_view import BlockJournal, JournalStateView, StateDelta

BUYER_AGENT = "agent-b"
BUYER_AVATAR = "avatar-b"
SELLER_AGENT = "agent-s"
SELLER_AVATAR = "avatar-s"


class _DictStateView:
    def __init__(self, states: dict[str, object], balances: dict[tuple[str, str], Decimal]) -> None:
        self._states = states
        self._balances = balances

    def get_state(self, address: str) -> object | None:
        return self._states.get(address)

    def get_balance(self, address: str, currency: str) -> Decimal:
        return self._balances.get((address, currency), Decimal(0))


def _context(signer: str, states: dict[str, object], balances=None) -> ActionContext:
    return ActionContext(
        signer=signer,
        block_index=7,
        block_hash="hash-7",
        block_timestamp=datetime(2021, 6, 1, tzinfo=timezone.utc),
        tx_id="tx-7",
        action_index=0,
        previous_states=_DictStateView(states, balances or {}),
    )


def _order(order_id: str, price: str = "10") -> dict[str, object]:
    return {
        "seller_agent_address": SELLER_AGENT,
        "seller_avatar_address": SELLER_AVATAR,
        "price": price,
        "item": {"item_id": f"item-{order_id}", "item_type": "Equipment", "grade": 2},
        "item_count": 1,
    }


def _purchase_info(order_key: str, order_id: str) -> dict[str, str]:
    return {
        order_key: order_id,
        "sellerAgentAddress": SELLER_AGENT,
        "sellerAvatarAddress": SELLER_AVATAR,
    }


def _market_states(*order_ids: str) -> dict[str, object]:
    states: dict[str, object] = {
        BUYER_AVATAR: {"agent_address": BUYER_AGENT, "name": "Bob", "inventory": {}},
    }
    for order_id in order_ids:
        states[f"order:{order_id}"] = _order(order_id)
    return states


def _view_after(context: ActionContext, delta: StateDelta) -> JournalStateView:
    journal = BlockJournal()
    return JournalStateView(context.previous_states, journal, journal.apply(delta))


def test_buy_moves_gold_and_item_and_consumes_order() -> None:
    """A successful purchase should settle balances, inventory, and order state."""
    context = _context(
        BUYER_AGENT, _market_states("o-1"), {(BUYER_AGENT, "NCG"): Decimal("25")}
    )

    delta = get_executor("buy9")(
        {
            "id": "buy-1",
            "buyerAvatarAddress": BUYER_AVATAR,
            "purchaseInfos": [_purchase_info("orderId", "o-1")],
        },
        context,
    )
    view = _view_after(context, delta)

    assert (
        view.get_state("order:o-1") is None
        and view.get_balance(BUYER_AGENT, "NCG") == Decimal("15")
        and view.get_balance(SELLER_AGENT, "NCG") == Decimal("10")
        and "item-o-1" in view.get_state(BUYER_AVATAR)["inventory"]
    )


def test_single_product_buy_fails_on_insufficient_balance() -> None:
    """Single-purchase revisions should fail the whole action."""
    context = _context(BUYER_AGENT, _market_states("o-1"), {(BUYER_AGENT, "NCG"): Decimal("1")})

    with pytest.raises(ActionFailure):
        get_executor("buy4")(
            {
                "id": "buy-1",
                "buyerAvatarAddress": BUYER_AVATAR,
                "productId": "o-1",
                "sellerAgentAddress": SELLER_AGENT,
                "sellerAvatarAddress": SELLER_AVATAR,
            },
            context,
        )


def test_multi_product_buy_skips_missing_orders() -> None:
    """Multi-purchase revisions should settle what they can."""
    context = _context(
        BUYER_AGENT, _market_states("o-1"), {(BUYER_AGENT, "NCG"): Decimal("100")}
    )
    purchase_infos = [_purchase_info("productId", order_id) for order_id in ("o-missing", "o-1")]

    delta = get_executor("buy6")(
        {"id": "buy-1", "buyerAvatarAddress": BUYER_AVATAR, "purchaseInfos": purchase_infos},
        context,
    )

    assert delta.states["order:o-1"] is None and "order:o-missing" not in delta.states


def test_multi_product_buy_fails_when_every_purchase_is_rejected() -> None:
    """A purchase batch with no settled order is a failed action."""
    context = _context(BUYER_AGENT, _market_states(), {(BUYER_AGENT, "NCG"): Decimal("100")})
    purchase_infos = [_purchase_info("productId", "o-1")]

    with pytest.raises(ActionFailure):
        get_executor("buy7")(
            {"id": "buy-1", "buyerAvatarAddress": BUYER_AVATAR, "purchaseInfos": purchase_infos},
            context,
        )


def test_buy_rejects_order_with_malformed_price() -> None:
    """An order whose stored price is not an amount fails the purchase."""
    states = _market_states("o-1")
    states["order:o-1"] = _order("o-1", price="abc")
    context = _context(BUYER_AGENT, states, {(BUYER_AGENT, "NCG"): Decimal("100")})

    with pytest.raises(ActionFailure, match="invalid order price"):
        get_executor("buy9")(
            {
                "id": "buy-1",
                "buyerAvatarAddress": BUYER_AVATAR,
                "purchaseInfos": [_purchase_info("orderId", "o-1")],
            },
            context,
        )


def test_buy_rejects_purchase_from_own_agent() -> None:
    """Buying an order listed by the signer would mint gold, so it is refused."""
    states: dict[str, object] = {
        SELLER_AVATAR: {"agent_address": SELLER_AGENT, "name": "Sam", "inventory": {}},
        "order:o-1": _order("o-1"),
    }
    context = _context(SELLER_AGENT, states, {(SELLER_AGENT, "NCG"): Decimal("100")})

    with pytest.raises(ActionFailure, match="own order"):
        get_executor("buy9")(
            {
                "id": "buy-1",
                "buyerAvatarAddress": SELLER_AVATAR,
                "purchaseInfos": [_purchase_info("orderId", "o-1")],
            },
            context,
        )


def test_partial_buy_settles_only_foreign_orders() -> None:
    """A self-listed order in a batch is skipped while the rest settle."""
    states = _market_states("o-1")
    states["order:o-own"] = {**_order("o-own"), "seller_avatar_address": BUYER_AVATAR}
    own_purchase = {
        "orderId": "o-own",
        "sellerAgentAddress": BUYER_AGENT,
        "sellerAvatarAddress": BUYER_AVATAR,
    }
    context = _context(BUYER_AGENT, states, {(BUYER_AGENT, "NCG"): Decimal("100")})

    delta = get_executor("buy9")(
        {
            "id": "buy-1",
            "buyerAvatarAddress": BUYER_AVATAR,
            "purchaseInfos": [own_purchase, _purchase_info("orderId", "o-1")],
        },
        context,
    )
    view = _view_after(context, delta)

    assert (
        view.get_balance(BUYER_AGENT, "NCG") == Decimal("90")
        and view.get_balance(SELLER_AGENT, "NCG") == Decimal("10")
        and view.get_state("order:o-own") is not None
        and view.get_state("order:o-1") is None
    )


def test_enhancement_consumes_material_and_levels_item() -> None:
    """Enhancement should remove the material and bump the item level."""
    avatar = {
        "agent_address": BUYER_AGENT,
        "inventory": {"sword": {"level": 2}, "scrap": {"level": 0}},
    }
    context = _context(BUYER_AGENT, {BUYER_AVATAR: avatar})

    delta = get_executor("item_enhancement3")(
        {
            "id": "enh-1",
            "avatarAddress": BUYER_AVATAR,
            "itemId": "sword",
            "materialId": "scrap",
            "slotIndex": 0,
        },
        context,
    )
    inventory = delta.states[BUYER_AVATAR]["inventory"]

    assert inventory == {"sword": {"level": 3}} and avatar["inventory"]["sword"]["level"] == 2


def test_combination_rejects_out_of_range_slot() -> None:
    """Crafting slots outside the workshop range should fail."""
    context = _context(BUYER_AGENT, {BUYER_AVATAR: {"agent_address": BUYER_AGENT}})

    with pytest.raises(ActionFailure):
        get_executor("combination_equipment")(
            {"id": "c-1", "avatarAddress": BUYER_AVATAR, "recipeId": 1, "slotIndex": 9},
            context,
        )


def test_checked_avatar_creation_rejects_short_names() -> None:
    """The checked creation revision enforces name length."""
    context = _context(BUYER_AGENT, {})

    with pytest.raises(ActionFailure):
        get_executor("create_avatar2")(
            {"avatarAddress": BUYER_AVATAR, "index": 0, "name": "B"}, context
        )


def test_unchecked_avatar_creation_registers_agent_slot() -> None:
    """The first creation revision should register the slot without name checks."""
    context = _context(BUYER_AGENT, {})

    delta = get_executor("create_avatar")(
        {"avatarAddress": BUYER_AVATAR, "index": 0, "name": "B"}, context
    )

    assert delta.states[BUYER_AGENT] == {"avatar_addresses": {"0": BUYER_AVATAR}} and isinstance(
        delta, StateDelta
    )


def test_registry_covers_every_buy_revision() -> None:
    """Every purchase revision from buy3 to buy9 should have an executor."""
    assert all(f"buy{version}" in EXECUTORS for version in range(3, 10))
