"""Extracted record models.

Each record type names its sink table, exposes its natural key, and
renders its sink row in table column order.
"""

from __future__ import annotations

from dataclasses import astuple, dataclass
from datetime import datetime
from decimal import Decimal
from typing import ClassVar, Union

AGENTS_TABLE = "agents"
AVATARS_TABLE = "avatars"
HACK_AND_SLASHES_TABLE = "hack_and_slashes"
COMBINATION_EQUIPMENTS_TABLE = "combination_equipments"
ITEM_ENHANCEMENTS_TABLE = "item_enhancements"
SHOP_HISTORY_TABLE = "shop_history"

REFERENCE_TABLES = frozenset({AGENTS_TABLE, AVATARS_TABLE})


@dataclass(frozen=True)
class AgentRecord:
    table: ClassVar[str] = AGENTS_TABLE

    address: str

    @property
    def natural_key(self) -> str:
        return self.address


@dataclass(frozen=True)
class AvatarRecord:
    table: ClassVar[str] = AVATARS_TABLE

    address: str
    agent_address: str
    name: str | None

    @property
    def natural_key(self) -> str:
        return self.address


@dataclass(frozen=True)
class HackAndSlashRecord:
    table: ClassVar[str] = HACK_AND_SLASHES_TABLE

    id: str
    avatar_address: str
    agent_address: str
    stage_id: int
    cleared: bool
    mimisbrunnr: bool
    block_index: int

    @property
    def natural_key(self) -> str:
        return self.id


@dataclass(frozen=True)
class CraftRecord:
    table: ClassVar[str] = COMBINATION_EQUIPMENTS_TABLE

    id: str
    avatar_address: str
    agent_address: str
    recipe_id: int
    slot_index: int
    sub_recipe_id: int | None
    block_index: int

    @property
    def natural_key(self) -> str:
        return self.id


@dataclass(frozen=True)
class EnhancementRecord:
    table: ClassVar[str] = ITEM_ENHANCEMENTS_TABLE

    id: str
    avatar_address: str
    agent_address: str
    item_id: str
    material_item_id: str | None
    slot_index: int
    block_index: int

    @property
    def natural_key(self) -> str:
        return self.id


@dataclass(frozen=True)
class TradeRecord:
    """One purchased shop order."""

    table: ClassVar[str] = SHOP_HISTORY_TABLE

    order_id: str
    tx_id: str
    block_index: int
    block_hash: str
    item_id: str
    seller_avatar_address: str
    buyer_avatar_address: str
    price: Decimal
    item_type: str | None
    item_sub_type: str | None
    item_sheet_id: int | None
    elemental_type: str | None
    grade: int | None
    item_count: int
    timestamp: datetime

    @property
    def natural_key(self) -> str:
        return self.order_id


ExtractedRecord = Union[
    AgentRecord,
    AvatarRecord,
    HackAndSlashRecord,
    CraftRecord,
    EnhancementRecord,
    TradeRecord,
]


def record_row(record: ExtractedRecord) -> tuple[object, ...]:
    """Return record fields in sink column order."""
    return astuple(record)


def is_reference_record(record: ExtractedRecord) -> bool:
    """Whether a record belongs to a dedup-once reference table."""
    return record.table in REFERENCE_TABLES


def is_complete_reference(record: ExtractedRecord) -> bool:
    """Whether a reference record carries every optional column."""
    if isinstance(record, AvatarRecord):
        return record.name is not None
    return True
