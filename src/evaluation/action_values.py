"""Versioned action argument parsers.

Successive revisions of one logical action record their arguments under
different keys. Each parser here reads one revision family into a typed
value object shared by executors and extraction handlers.

Parsers raise ``KeyError``, ``TypeError`` or ``ValueError`` on malformed input.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

from core.constants import ORDER_ADDRESS_PREFIX


@dataclass(frozen=True)
class CreateAvatarValues:
    avatar_address: str
    index: int
    name: str


@dataclass(frozen=True)
class HackAndSlashValues:
    action_id: str
    avatar_address: str
    stage_id: int
    world_id: int


@dataclass(frozen=True)
class CombinationValues:
    action_id: str
    avatar_address: str
    recipe_id: int
    slot_index: int
    sub_recipe_id: int | None


@dataclass(frozen=True)
class EnhancementValues:
    action_id: str
    avatar_address: str
    item_id: str
    material_item_id: str | None
    slot_index: int


@dataclass(frozen=True)
class PurchaseValues:
    order_id: str
    seller_agent_address: str
    seller_avatar_address: str

    @property
    def order_address(self) -> str:
        return order_address(self.order_id)


@dataclass(frozen=True)
class BuyValues:
    action_id: str
    buyer_avatar_address: str
    purchases: tuple[PurchaseValues, ...]


def order_address(order_id: str) -> str:
    """State address holding an open shop order."""
    return f"{ORDER_ADDRESS_PREFIX}{order_id}"


def parse_create_avatar(values: Mapping[str, object]) -> CreateAvatarValues:
    return CreateAvatarValues(
        avatar_address=str(values["avatarAddress"]),
        index=_as_int(values["index"]),
        name=str(values["name"]),
    )


def parse_hack_and_slash(values: Mapping[str, object]) -> HackAndSlashValues:
    return HackAndSlashValues(
        action_id=str(values["id"]),
        avatar_address=str(values["avatarAddress"]),
        stage_id=_as_int(values["stageId"]),
        world_id=_as_int(values.get("worldId", 1)),
    )


def parse_combination_long_keys(values: Mapping[str, object]) -> CombinationValues:
    sub_recipe = values.get("subRecipeId")
    return CombinationValues(
        action_id=str(values["id"]),
        avatar_address=str(values["avatarAddress"]),
        recipe_id=_as_int(values["recipeId"]),
        slot_index=_as_int(values["slotIndex"]),
        sub_recipe_id=_as_int(sub_recipe) if sub_recipe is not None else None,
    )


def parse_combination_short_keys(values: Mapping[str, object]) -> CombinationValues:
    sub_recipe = values.get("i")
    return CombinationValues(
        action_id=str(values["id"]),
        avatar_address=str(values["a"]),
        recipe_id=_as_int(values["r"]),
        slot_index=_as_int(values["s"]),
        sub_recipe_id=_as_int(sub_recipe) if sub_recipe is not None else None,
    )


def parse_enhancement_material_list(values: Mapping[str, object]) -> EnhancementValues:
    material_ids = _as_sequence(values.get("materialIds", []))
    return EnhancementValues(
        action_id=str(values["id"]),
        avatar_address=str(values["avatarAddress"]),
        item_id=str(values["itemId"]),
        material_item_id=str(material_ids[0]) if material_ids else None,
        slot_index=_as_int(values["slotIndex"]),
    )


def parse_enhancement_single_material(values: Mapping[str, object]) -> EnhancementValues:
    return EnhancementValues(
        action_id=str(values["id"]),
        avatar_address=str(values["avatarAddress"]),
        item_id=str(values["itemId"]),
        material_item_id=str(values["materialId"]),
        slot_index=_as_int(values["slotIndex"]),
    )


def parse_buy_single_product(values: Mapping[str, object]) -> BuyValues:
    purchase = PurchaseValues(
        order_id=str(values["productId"]),
        seller_agent_address=str(values["sellerAgentAddress"]),
        seller_avatar_address=str(values["sellerAvatarAddress"]),
    )
    return BuyValues(
        action_id=str(values["id"]),
        buyer_avatar_address=str(values["buyerAvatarAddress"]),
        purchases=(purchase,),
    )


def parse_buy_by_product(values: Mapping[str, object]) -> BuyValues:
    return _parse_purchase_infos(values, order_key="productId")


def parse_buy_by_order(values: Mapping[str, object]) -> BuyValues:
    return _parse_purchase_infos(values, order_key="orderId")


def _parse_purchase_infos(values: Mapping[str, object], order_key: str) -> BuyValues:
    purchases = []
    for raw_info in _as_sequence(values["purchaseInfos"]):
        if not isinstance(raw_info, Mapping):
            raise TypeError(f"purchase info must be an object, got {type(raw_info).__name__}")
        purchases.append(
            PurchaseValues(
                order_id=str(raw_info[order_key]),
                seller_agent_address=str(raw_info["sellerAgentAddress"]),
                seller_avatar_address=str(raw_info["sellerAvatarAddress"]),
            )
        )
    return BuyValues(
        action_id=str(values["id"]),
        buyer_avatar_address=str(values["buyerAvatarAddress"]),
        purchases=tuple(purchases),
    )


def _as_int(value: object) -> int:
    if isinstance(value, bool):
        raise TypeError("boolean is not a valid integer argument")
    if isinstance(value, (int, str)):
        return int(value)
    raise TypeError(f"expected integer argument, got {type(value).__name__}")


def _as_sequence(value: object) -> Sequence[object]:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return value
    raise TypeError(f"expected list argument, got {type(value).__name__}")
