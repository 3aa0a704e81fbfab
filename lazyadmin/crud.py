"""Parameterized SELECT/INSERT/UPDATE/DELETE built from column maps.

Identifiers are always quoted through :mod:`lazyadmin.quoting`; values are
always bound. INSERT/UPDATE columns are sorted so the generated SQL is stable
regardless of mapping order.
"""

from __future__ import annotations

from typing import Any, Mapping

from .dialects import SqlDialect, get_dialect
from .drivers import DatabaseHandle
from .errors import RecordNotFoundError
from .models import Dialect, Record, WriteResult, WriteStatus

DEFAULT_LIMIT = 100

Statement = tuple[str, tuple[Any, ...]]
DialectLike = SqlDialect | Dialect | str


def build_select_all(
    dialect: DialectLike,
    table: str,
    limit: int = DEFAULT_LIMIT,
    *,
    schema: str | None = None,
) -> str:
    """``SELECT * ... LIMIT n``; non-positive limits fall back to 100."""

    resolved = get_dialect(dialect)
    count = int(limit)
    if count <= 0:
        count = DEFAULT_LIMIT
    return f"SELECT * FROM {resolved.table_ref(table, schema)} LIMIT {count}"


def build_insert(
    dialect: DialectLike,
    table: str,
    data: Mapping[str, Any],
    *,
    schema: str | None = None,
) -> Statement:
    if not data:
        raise ValueError("no data to insert")
    resolved = get_dialect(dialect)
    columns = sorted(data)
    quoted = ", ".join(resolved.quote(column) for column in columns)
    markers = ", ".join(resolved.placeholders(len(columns)))
    sql = f"INSERT INTO {resolved.table_ref(table, schema)} ({quoted}) VALUES ({markers})"
    return sql, tuple(data[column] for column in columns)


def build_update(
    dialect: DialectLike,
    table: str,
    pk_column: str,
    pk_value: Any,
    data: Mapping[str, Any],
    *,
    schema: str | None = None,
) -> Statement:
    if not data:
        raise ValueError("no data to update")
    resolved = get_dialect(dialect)
    columns = sorted(data)
    assignments = ", ".join(
        f"{resolved.quote(column)} = {marker}"
        for column, marker in zip(columns, resolved.placeholders(len(columns)))
    )
    key_marker = resolved.placeholder(len(columns) + 1)
    sql = (
        f"UPDATE {resolved.table_ref(table, schema)} SET {assignments} "
        f"WHERE {resolved.quote(pk_column)} = {key_marker}"
    )
    return sql, (*(data[column] for column in columns), pk_value)


def build_delete(
    dialect: DialectLike,
    table: str,
    pk_column: str,
    pk_value: Any,
    *,
    schema: str | None = None,
) -> Statement:
    resolved = get_dialect(dialect)
    sql = (
        f"DELETE FROM {resolved.table_ref(table, schema)} "
        f"WHERE {resolved.quote(pk_column)} = {resolved.placeholder(1)}"
    )
    return sql, (pk_value,)


def build_select_by_key(
    dialect: DialectLike,
    table: str,
    pk_column: str,
    pk_value: Any,
    *,
    schema: str | None = None,
) -> Statement:
    resolved = get_dialect(dialect)
    sql = (
        f"SELECT * FROM {resolved.table_ref(table, schema)} "
        f"WHERE {resolved.quote(pk_column)} = {resolved.placeholder(1)}"
    )
    return sql, (pk_value,)


def insert(
    handle: DatabaseHandle,
    dialect: DialectLike,
    table: str,
    data: Mapping[str, Any],
    *,
    schema: str | None = None,
) -> WriteResult:
    """Insert one row; driver errors propagate unchanged."""

    sql, params = build_insert(dialect, table, data, schema=schema)
    affected = handle.execute(sql, params)
    return WriteResult(status=WriteStatus.APPLIED, rows_affected=affected)


def update(
    handle: DatabaseHandle,
    dialect: DialectLike,
    table: str,
    pk_column: str,
    pk_value: Any,
    data: Mapping[str, Any],
    *,
    schema: str | None = None,
) -> WriteResult:
    """Update the row keyed by ``pk_value``; zero matches is ``NO_ROWS_MATCHED``."""

    sql, params = build_update(dialect, table, pk_column, pk_value, data, schema=schema)
    return _write_outcome(handle.execute(sql, params))


def delete(
    handle: DatabaseHandle,
    dialect: DialectLike,
    table: str,
    pk_column: str,
    pk_value: Any,
    *,
    schema: str | None = None,
) -> WriteResult:
    """Delete the row keyed by ``pk_value``; zero matches is ``NO_ROWS_MATCHED``."""

    sql, params = build_delete(dialect, table, pk_column, pk_value, schema=schema)
    return _write_outcome(handle.execute(sql, params))


def get_by_primary_key(
    handle: DatabaseHandle,
    dialect: DialectLike,
    table: str,
    pk_column: str,
    pk_value: Any,
    *,
    schema: str | None = None,
) -> Record:
    """Fetch one row as a column->value mapping or raise RecordNotFoundError."""

    sql, params = build_select_by_key(dialect, table, pk_column, pk_value, schema=schema)
    columns, rows = handle.fetch(sql, params)
    if not rows:
        raise RecordNotFoundError(table, pk_column, pk_value)
    return dict(zip(columns, rows[0]))


def _write_outcome(affected: int) -> WriteResult:
    if affected == 0:
        return WriteResult(status=WriteStatus.NO_ROWS_MATCHED, rows_affected=0)
    return WriteResult(status=WriteStatus.APPLIED, rows_affected=affected)


__all__ = [
    "DEFAULT_LIMIT",
    "build_delete",
    "build_insert",
    "build_select_all",
    "build_select_by_key",
    "build_update",
    "delete",
    "get_by_primary_key",
    "insert",
    "update",
]
