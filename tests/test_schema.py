"""Tests for catalog introspection."""

from __future__ import annotations

from typing import Any, Iterator

import pytest

from lazyadmin.drivers import SqliteHandle
from lazyadmin.errors import ConnectivityError, NoPrimaryKeyError
from lazyadmin.models import ColumnInfo, TableInfo
from lazyadmin.schema import get_primary_key, list_columns, list_tables


@pytest.fixture
def handle() -> Iterator[SqliteHandle]:
    db = SqliteHandle.open(":memory:")
    db.execute("CREATE TABLE users (id INTEGER PRIMARY KEY, email TEXT NOT NULL, nick TEXT DEFAULT 'anon')")
    db.execute("CREATE TABLE audit_log (message TEXT)")
    db.execute("CREATE TABLE \"it's\" (k TEXT PRIMARY KEY)")
    try:
        yield db
    finally:
        db.close()


class _CatalogHandle:
    def __init__(self, rows: list[tuple[Any, ...]]) -> None:
        self.rows = rows
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    def fetch(self, sql: str, params=()):  # type: ignore[no-untyped-def]
        self.calls.append((sql, tuple(params)))
        return (), self.rows

    def execute(self, sql: str, params=()) -> int:  # type: ignore[no-untyped-def]
        raise AssertionError("catalog queries never execute")

    def ping(self) -> None:
        return None

    def close(self) -> None:
        return None


def test_sqlite_lists_tables_by_name(handle: SqliteHandle) -> None:
    tables = list_tables(handle, "sqlite")

    assert tables == [TableInfo("audit_log", ""), TableInfo("it's", ""), TableInfo("users", "")]


def test_sqlite_columns_invert_not_null(handle: SqliteHandle) -> None:
    columns = list_columns(handle, "sqlite", "users")

    assert [column.name for column in columns] == ["id", "email", "nick"]
    assert columns[0].primary_key is True
    assert columns[1].nullable is False
    assert columns[1].primary_key is False
    assert columns[2].nullable is True
    assert columns[2].has_default is True
    assert columns[1].has_default is False


def test_sqlite_escapes_table_name_in_pragma(handle: SqliteHandle) -> None:
    assert get_primary_key(handle, "sqlite", "it's") == "k"


def test_primary_key_absent_is_distinguished(handle: SqliteHandle) -> None:
    with pytest.raises(NoPrimaryKeyError) as excinfo:
        get_primary_key(handle, "sqlite", "audit_log")

    assert not isinstance(excinfo.value, ConnectivityError)
    assert isinstance(excinfo.value, LookupError)
    assert excinfo.value.table == "audit_log"


def test_postgres_columns_use_schema_parameter() -> None:
    catalog = _CatalogHandle(
        [
            ("id", "integer", False, True, "nextval('users_id_seq'::regclass)"),
            ("email", "text", True, False, None),
        ]
    )

    columns = list_columns(catalog, "postgres", "users", "crm")

    assert columns == [
        ColumnInfo("id", "integer", False, True, "nextval('users_id_seq'::regclass)"),
        ColumnInfo("email", "text", True, False, None),
    ]
    sql, params = catalog.calls[0]
    assert "$1" in sql and "$2" in sql
    assert params == ("users", "crm")


def test_postgres_tables_keep_schema() -> None:
    catalog = _CatalogHandle([("accounts", "public"), ("events", "analytics")])

    tables = list_tables(catalog, "postgresql")

    assert tables[1].qualified_name == "analytics.events"
    assert "pg_catalog" in catalog.calls[0][0]


def test_mysql_columns_coerce_integer_flags() -> None:
    catalog = _CatalogHandle([("id", "int", 0, 1, None), ("name", "varchar", 1, 0, "x")])

    columns = list_columns(catalog, "mysql", "users")

    assert columns[0].nullable is False and columns[0].primary_key is True
    assert columns[1].nullable is True and columns[1].default == "x"
    assert catalog.calls[0][1] == ("users",)
    assert "DATABASE()" in catalog.calls[0][0]


def test_get_primary_key_returns_first_flagged_column() -> None:
    catalog = _CatalogHandle([("tenant", "int", 0, 1, None), ("id", "int", 0, 1, None)])

    assert get_primary_key(catalog, "mysql", "memberships") == "tenant"
