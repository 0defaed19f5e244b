"""Sink table definitions.

This module declares the relational layout of every sink table in record
field order, plus the order in which tables must be loaded.
"""

from __future__ import annotations

from dataclasses import dataclass

from extraction.records import (
    AGENTS_TABLE,
    AVATARS_TABLE,
    COMBINATION_EQUIPMENTS_TABLE,
    HACK_AND_SLASHES_TABLE,
    ITEM_ENHANCEMENTS_TABLE,
    SHOP_HISTORY_TABLE,
)


@dataclass(frozen=True)
class TableSchema:
    """Relational layout of one sink table.

    Attributes:
        name: Table name.
        columns: ``(column, sql_type)`` pairs in row order.
        primary_key: Natural key column.
        ignore_conflicts: Whether rows with an existing key are skipped.
        fill_columns: Columns an existing row takes from a conflicting row
            when its own value is null. Other columns keep their first value.
    """

    name: str
    columns: tuple[tuple[str, str], ...]
    primary_key: str
    ignore_conflicts: bool = False
    fill_columns: tuple[str, ...] = ()

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(column for column, _ in self.columns)


_ADDRESS = "VARCHAR"

TABLE_SCHEMAS: tuple[TableSchema, ...] = (
    TableSchema(
        name=AGENTS_TABLE,
        columns=(("address", _ADDRESS),),
        primary_key="address",
        ignore_conflicts=True,
    ),
    TableSchema(
        name=AVATARS_TABLE,
        columns=(
            ("address", _ADDRESS),
            ("agent_address", _ADDRESS),
            ("name", "VARCHAR"),
        ),
        primary_key="address",
        fill_columns=("name",),
    ),
    TableSchema(
        name=HACK_AND_SLASHES_TABLE,
        columns=(
            ("id", "VARCHAR"),
            ("avatar_address", _ADDRESS),
            ("agent_address", _ADDRESS),
            ("stage_id", "INTEGER"),
            ("cleared", "BOOLEAN"),
            ("mimisbrunnr", "BOOLEAN"),
            ("block_index", "BIGINT"),
        ),
        primary_key="id",
    ),
    TableSchema(
        name=COMBINATION_EQUIPMENTS_TABLE,
        columns=(
            ("id", "VARCHAR"),
            ("avatar_address", _ADDRESS),
            ("agent_address", _ADDRESS),
            ("recipe_id", "INTEGER"),
            ("slot_index", "INTEGER"),
            ("sub_recipe_id", "INTEGER"),
            ("block_index", "BIGINT"),
        ),
        primary_key="id",
    ),
    TableSchema(
        name=ITEM_ENHANCEMENTS_TABLE,
        columns=(
            ("id", "VARCHAR"),
            ("avatar_address", _ADDRESS),
            ("agent_address", _ADDRESS),
            ("item_id", "VARCHAR"),
            ("material_item_id", "VARCHAR"),
            ("slot_index", "INTEGER"),
            ("block_index", "BIGINT"),
        ),
        primary_key="id",
    ),
    TableSchema(
        name=SHOP_HISTORY_TABLE,
        columns=(
            ("order_id", "VARCHAR"),
            ("tx_id", "VARCHAR"),
            ("block_index", "BIGINT"),
            ("block_hash", "VARCHAR"),
            ("item_id", "VARCHAR"),
            ("seller_avatar_address", _ADDRESS),
            ("buyer_avatar_address", _ADDRESS),
            ("price", "DECIMAL(38, 18)"),
            ("item_type", "VARCHAR"),
            ("item_sub_type", "VARCHAR"),
            ("item_sheet_id", "INTEGER"),
            ("elemental_type", "VARCHAR"),
            ("grade", "INTEGER"),
            ("item_count", "INTEGER"),
            ("timestamp", "TIMESTAMP"),
        ),
        primary_key="order_id",
    ),
)

# Reference tables first so event rows never precede the rows they refer to.
TABLE_LOAD_ORDER: tuple[str, ...] = tuple(schema.name for schema in TABLE_SCHEMAS)

_SCHEMAS_BY_NAME = {schema.name: schema for schema in TABLE_SCHEMAS}


def get_table_schema(table: str) -> TableSchema:
    """Return one table schema by name.

    Raises:
        KeyError: If the table is not a sink table.
    """
    return _SCHEMAS_BY_NAME[table]


def load_order_key(table: str) -> int:
    """Sort key placing tables in load order."""
    return TABLE_LOAD_ORDER.index(table)
