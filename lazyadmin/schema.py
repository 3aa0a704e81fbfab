"""Catalog introspection normalized into TableInfo/ColumnInfo."""

from __future__ import annotations

from .dialects import SqlDialect, get_dialect
from .drivers import DatabaseHandle
from .errors import NoPrimaryKeyError
from .models import ColumnInfo, Dialect, TableInfo


def list_tables(handle: DatabaseHandle, dialect: SqlDialect | Dialect | str) -> list[TableInfo]:
    """Enumerate user tables, ordered by (schema,) name."""

    resolved = get_dialect(dialect)
    sql, params = resolved.tables_query()
    _, rows = handle.fetch(sql, params)
    return [resolved.parse_table(row) for row in rows]


def list_columns(
    handle: DatabaseHandle,
    dialect: SqlDialect | Dialect | str,
    table: str,
    schema: str = "public",
) -> list[ColumnInfo]:
    """Columns of ``table`` in catalog ordinal order."""

    resolved = get_dialect(dialect)
    sql, params = resolved.columns_query(table, schema)
    _, rows = handle.fetch(sql, params)
    return [resolved.parse_column(row) for row in rows]


def get_primary_key(
    handle: DatabaseHandle,
    dialect: SqlDialect | Dialect | str,
    table: str,
    schema: str = "public",
) -> str:
    """Name of the first primary-key column.

    Raises :class:`NoPrimaryKeyError` when the table has none, so callers can
    disable edit/delete instead of treating it as a connection failure.
    """

    for column in list_columns(handle, dialect, table, schema):
        if column.primary_key:
            return column.name
    raise NoPrimaryKeyError(table)


__all__ = ["get_primary_key", "list_columns", "list_tables"]
