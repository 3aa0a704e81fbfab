"""Per-dialect capabilities: quoting, placeholders, DSNs, handles and catalog queries.

A :class:`SqlDialect` is selected once via :func:`get_dialect` and threaded
through the schema/CRUD layers instead of switching on driver strings at every
call site.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Mapping, Sequence
from urllib.parse import quote as urlquote

from .drivers import AsyncpgHandle, DatabaseHandle, PyMySQLHandle, SqliteHandle
from .errors import ConfigurationError
from .loop import BackgroundLoop
from .models import ColumnInfo, ConnectionDescriptor, Dialect, TableInfo
from .quoting import escape_literal, qualify, quote_char, quote_identifier

CatalogQuery = tuple[str, tuple[Any, ...]]


class SqlDialect:
    """Behaviour shared by all dialects; subclasses fill in the specifics."""

    tag: Dialect
    default_port: int | None = None
    namespaced: bool = False

    @property
    def quote_char(self) -> str:
        return quote_char(self.tag)

    def quote(self, name: str) -> str:
        return quote_identifier(self.tag, name)

    def table_ref(self, table: str, schema: str | None = None) -> str:
        return qualify(self.tag, table, schema)

    def placeholder(self, position: int) -> str:
        """Placeholder for the 1-based parameter ``position``."""

        raise NotImplementedError

    def placeholders(self, count: int, *, start: int = 1) -> list[str]:
        return [self.placeholder(position) for position in range(start, start + count)]

    def validate(self, descriptor: ConnectionDescriptor) -> None:
        """Reject descriptors that cannot work before any I/O happens."""

    def with_defaults(self, descriptor: ConnectionDescriptor) -> ConnectionDescriptor:
        return descriptor

    def dsn(self, descriptor: ConnectionDescriptor, *, mask_password: bool = False) -> Any:
        raise NotImplementedError

    def open(self, descriptor: ConnectionDescriptor, loop: BackgroundLoop) -> DatabaseHandle:
        raise NotImplementedError

    def tables_query(self) -> CatalogQuery:
        raise NotImplementedError

    def columns_query(self, table: str, schema: str) -> CatalogQuery:
        raise NotImplementedError

    def parse_table(self, row: Sequence[Any]) -> TableInfo:
        return TableInfo(name=str(row[0]), schema=str(row[1] or ""))

    def parse_column(self, row: Sequence[Any]) -> ColumnInfo:
        name, type_, nullable, is_pk, default = row[:5]
        return ColumnInfo(
            name=str(name),
            type=str(type_),
            nullable=bool(nullable),
            primary_key=bool(is_pk),
            default=None if default is None else str(default),
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class SqliteDialect(SqlDialect):
    """Embedded single-file dialect."""

    tag = Dialect.SQLITE

    def placeholder(self, position: int) -> str:
        return "?"

    def validate(self, descriptor: ConnectionDescriptor) -> None:
        if not (descriptor.path or descriptor.database):
            raise ConfigurationError("sqlite connections require a path")

    def dsn(self, descriptor: ConnectionDescriptor, *, mask_password: bool = False) -> str:
        return descriptor.path or descriptor.database or ""

    def open(self, descriptor: ConnectionDescriptor, loop: BackgroundLoop) -> DatabaseHandle:
        return SqliteHandle.open(self.dsn(descriptor))

    def tables_query(self) -> CatalogQuery:
        return (
            "SELECT name, '' AS schema FROM sqlite_master "
            "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name",
            (),
        )

    def columns_query(self, table: str, schema: str) -> CatalogQuery:
        return f"PRAGMA table_info('{escape_literal(table)}')", ()

    def parse_column(self, row: Sequence[Any]) -> ColumnInfo:
        # cid, name, type, notnull, dflt_value, pk
        _, name, type_, notnull, default, pk = row[:6]
        return ColumnInfo(
            name=str(name),
            type=str(type_ or ""),
            nullable=not notnull,
            primary_key=bool(pk and int(pk) > 0),
            default=None if default is None else str(default),
        )


class PostgresDialect(SqlDialect):
    """Client-server dialect with numbered ``$n`` placeholders."""

    tag = Dialect.POSTGRES
    default_port = 5432
    namespaced = True

    _TABLES_QUERY = """
        SELECT table_name, table_schema
        FROM information_schema.tables
        WHERE table_schema NOT IN ('pg_catalog', 'information_schema')
        ORDER BY table_schema, table_name
    """

    _COLUMNS_QUERY = """
        SELECT
            c.column_name,
            c.data_type,
            c.is_nullable = 'YES' AS nullable,
            EXISTS (
                SELECT 1
                FROM information_schema.table_constraints tc
                JOIN information_schema.key_column_usage kcu
                    ON tc.constraint_name = kcu.constraint_name
                    AND tc.table_schema = kcu.table_schema
                    AND tc.table_name = kcu.table_name
                WHERE tc.constraint_type = 'PRIMARY KEY'
                    AND tc.table_schema = c.table_schema
                    AND tc.table_name = c.table_name
                    AND kcu.column_name = c.column_name
            ) AS is_pk,
            c.column_default
        FROM information_schema.columns c
        WHERE c.table_name = $1 AND c.table_schema = $2
        ORDER BY c.ordinal_position
    """

    def placeholder(self, position: int) -> str:
        return f"${position}"

    def with_defaults(self, descriptor: ConnectionDescriptor) -> ConnectionDescriptor:
        return _apply_port(descriptor, self.default_port)

    def dsn(self, descriptor: ConnectionDescriptor, *, mask_password: bool = False) -> str:
        host = descriptor.host or "localhost"
        port = descriptor.port or self.default_port
        password = urlquote(descriptor.password or "", safe="")
        if mask_password and password:
            password = "***"
        userinfo = urlquote(descriptor.user or "", safe="")
        if password:
            userinfo = f"{userinfo}:{password}"
        if userinfo:
            userinfo += "@"
        if ":" in host and not host.startswith("["):
            host = f"[{host}]"
        database = urlquote(descriptor.database or "", safe="")
        ssl_mode = descriptor.ssl_mode or "disable"
        return f"postgresql://{userinfo}{host}:{port}/{database}?sslmode={urlquote(ssl_mode, safe='')}"

    def open(self, descriptor: ConnectionDescriptor, loop: BackgroundLoop) -> DatabaseHandle:
        return AsyncpgHandle.open(self.dsn(descriptor), loop)

    def tables_query(self) -> CatalogQuery:
        return self._TABLES_QUERY, ()

    def columns_query(self, table: str, schema: str) -> CatalogQuery:
        return self._COLUMNS_QUERY, (table, schema or "public")


class MySQLDialect(SqlDialect):
    """Client-server dialect with anonymous positional placeholders."""

    tag = Dialect.MYSQL
    default_port = 3306

    _TABLES_QUERY = """
        SELECT table_name, table_schema
        FROM information_schema.tables
        WHERE table_schema = DATABASE()
        ORDER BY table_name
    """

    _COLUMNS_QUERY = """
        SELECT
            COLUMN_NAME,
            DATA_TYPE,
            IS_NULLABLE = 'YES' AS nullable,
            COLUMN_KEY = 'PRI' AS is_pk,
            COLUMN_DEFAULT
        FROM information_schema.columns
        WHERE table_schema = DATABASE() AND table_name = %s
        ORDER BY ordinal_position
    """

    def placeholder(self, position: int) -> str:
        # PyMySQL's paramstyle is "format"; markers are positional and unnumbered.
        return "%s"

    def with_defaults(self, descriptor: ConnectionDescriptor) -> ConnectionDescriptor:
        return _apply_port(descriptor, self.default_port)

    def dsn(self, descriptor: ConnectionDescriptor, *, mask_password: bool = False) -> dict[str, Any]:
        password = descriptor.password or ""
        if mask_password and password:
            password = "***"
        params: dict[str, Any] = {
            "host": descriptor.host or "localhost",
            "port": descriptor.port or self.default_port,
            "user": descriptor.user or "",
            "password": password,
        }
        if descriptor.database:
            params["database"] = descriptor.database
        return params

    def open(self, descriptor: ConnectionDescriptor, loop: BackgroundLoop) -> DatabaseHandle:
        return PyMySQLHandle.open(**self.dsn(descriptor))

    def tables_query(self) -> CatalogQuery:
        return self._TABLES_QUERY, ()

    def columns_query(self, table: str, schema: str) -> CatalogQuery:
        return self._COLUMNS_QUERY, (table,)


_DIALECTS: Mapping[Dialect, SqlDialect] = {
    Dialect.SQLITE: SqliteDialect(),
    Dialect.POSTGRES: PostgresDialect(),
    Dialect.MYSQL: MySQLDialect(),
}


def get_dialect(tag: "SqlDialect | Dialect | str") -> SqlDialect:
    """Resolve a dialect tag (or pass through an already-selected dialect)."""

    if isinstance(tag, SqlDialect):
        return tag
    return _DIALECTS[Dialect.parse(tag)]


def _apply_port(descriptor: ConnectionDescriptor, default: int | None) -> ConnectionDescriptor:
    if descriptor.port or default is None:
        return descriptor
    return replace(descriptor, port=default)


__all__ = [
    "MySQLDialect",
    "PostgresDialect",
    "SqlDialect",
    "SqliteDialect",
    "get_dialect",
]
