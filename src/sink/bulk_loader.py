"""Bulk loader contract and DuckDB implementation.

This module defines the sink collaborator that accepts one flushed chunk
file at a time and a DuckDB-backed loader that creates sink tables and
bulk-inserts chunk files with ``read_csv``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

import duckdb

from core.constants import ROW_FIELD_DELIMITER, ROW_NULL_MARKER, ROW_QUOTE_CHAR
from core.errors import ConfigurationError, LoadError
from core.logging_config import get_logger
from sink.sink_schema import TABLE_SCHEMAS, TableSchema, get_table_schema

_LOGGER = get_logger(__name__)


class BulkLoader(Protocol):
    """Sink collaborator that loads one chunk file into one table."""

    def load(self, table: str, chunk_path: Path) -> None:
        """Load a chunk, raising ``LoadError`` when the sink rejects it."""

    def close(self) -> None:
        """Release sink resources."""


class DuckDBBulkLoader:
    """Bulk loader writing chunk files into a DuckDB database."""

    def __init__(self, database_path: str) -> None:
        self._database_path = database_path
        try:
            if database_path != ":memory:":
                Path(database_path).expanduser().parent.mkdir(parents=True, exist_ok=True)
            self._connection = duckdb.connect(database_path)
            for schema in TABLE_SCHEMAS:
                self._connection.execute(build_create_table_sql(schema))
        except (duckdb.Error, OSError) as error:
            raise ConfigurationError(
                f"Failed to open sink database {database_path}: {error}. "
                "Check the --sink-database path and that no other process holds it."
            ) from error
        _LOGGER.info("sink_connected", database_path=database_path)

    def load(self, table: str, chunk_path: Path) -> None:
        """Insert every row of a chunk file into its table.

        Args:
            table: Sink table name.
            chunk_path: Flushed chunk file.

        Raises:
            LoadError: If the table is unknown or the sink rejects the chunk.
        """
        try:
            schema = get_table_schema(table)
        except KeyError as error:
            raise LoadError(f"Unknown sink table {table!r} for chunk {chunk_path}.") from error
        try:
            self._connection.execute(build_load_sql(schema, chunk_path))
        except duckdb.Error as error:
            raise LoadError(
                f"Sink rejected chunk {chunk_path} for table {table}: {error}. "
                "Fix the sink and re-load the chunk file manually."
            ) from error

    def row_count(self, table: str) -> int:
        """Return the number of rows currently stored in a table."""
        schema = get_table_schema(table)
        result = self._connection.execute(f"SELECT count(*) FROM {_identifier(schema.name)}")
        row = result.fetchone()
        return int(row[0]) if row else 0

    def close(self) -> None:
        self._connection.close()


def build_create_table_sql(schema: TableSchema) -> str:
    """Render the ``CREATE TABLE IF NOT EXISTS`` statement for a table."""
    column_lines = [f"{_identifier(name)} {sql_type}" for name, sql_type in schema.columns]
    column_lines.append(f"PRIMARY KEY ({_identifier(schema.primary_key)})")
    joined_columns = ",\n    ".join(column_lines)
    return f"CREATE TABLE IF NOT EXISTS {_identifier(schema.name)} (\n    {joined_columns}\n)"


def build_load_sql(schema: TableSchema, chunk_path: Path) -> str:
    """Render the bulk insert statement for one chunk file.

    Tables with fill columns keep one row per key from the chunk, preferring
    rows whose fill columns are set, and fill nulls of existing rows.
    """
    column_types = ", ".join(
        f"{_literal(name)}: {_literal(sql_type)}" for name, sql_type in schema.columns
    )
    source = (
        f"read_csv({_literal(str(chunk_path))}, "
        f"delim={_literal(ROW_FIELD_DELIMITER)}, "
        f"quote={_literal(ROW_QUOTE_CHAR)}, "
        f"escape={_literal(ROW_QUOTE_CHAR)}, "
        f"nullstr={_literal(ROW_NULL_MARKER)}, "
        "allow_quoted_nulls=false, header=false, auto_detect=false, "
        f"columns={{{column_types}}})"
    )
    table = _identifier(schema.name)
    if not schema.fill_columns:
        conflict_clause = " OR IGNORE" if schema.ignore_conflicts else ""
        return f"INSERT{conflict_clause} INTO {table} SELECT * FROM {source}"
    key = _identifier(schema.primary_key)
    null_last = ", ".join(f"{_identifier(column)} IS NULL" for column in schema.fill_columns)
    assignments = ", ".join(
        f"{_identifier(column)} = COALESCE({_identifier(column)}, excluded.{_identifier(column)})"
        for column in schema.fill_columns
    )
    return (
        f"INSERT INTO {table} SELECT DISTINCT ON ({key}) * FROM {source} "
        f"ORDER BY {key}, {null_last} "
        f"ON CONFLICT ({key}) DO UPDATE SET {assignments}"
    )


def _identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"
