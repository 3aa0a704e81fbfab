"""Uniform, synchronous handles over the sqlite3, asyncpg and PyMySQL drivers."""

from __future__ import annotations

import sqlite3
from typing import Any, Protocol, Sequence, runtime_checkable

import asyncpg
import pymysql
from pymysql.constants import CLIENT
from pymysql.cursors import SSCursor

from .loop import BackgroundLoop

Params = Sequence[Any]
FetchResult = tuple[tuple[str, ...], list[tuple[Any, ...]]]


@runtime_checkable
class DatabaseHandle(Protocol):
    """Protocol implemented by live database handles."""

    def fetch(self, sql: str, params: Params = (), *, limit: int | None = None) -> FetchResult:
        """Run a row-returning statement; return column names and at most ``limit`` rows."""

    def execute(self, sql: str, params: Params = ()) -> int:
        """Run a statement and return the affected-row count."""

    def ping(self) -> None:
        """Perform a trivial round-trip."""

    def close(self) -> None:
        """Release the handle."""


class SqliteHandle:
    """Handle over a stdlib ``sqlite3`` connection in autocommit mode."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection

    @classmethod
    def open(cls, path: str) -> "SqliteHandle":
        return cls(sqlite3.connect(path, isolation_level=None, check_same_thread=False))

    def fetch(self, sql: str, params: Params = (), *, limit: int | None = None) -> FetchResult:
        cursor = self._conn.execute(sql, tuple(params))
        try:
            columns = tuple(str(item[0]) for item in cursor.description or ())
            batch = cursor.fetchall() if limit is None else cursor.fetchmany(limit)
            rows = [tuple(row) for row in batch]
        finally:
            cursor.close()
        return columns, rows

    def execute(self, sql: str, params: Params = ()) -> int:
        cursor = self._conn.execute(sql, tuple(params))
        try:
            return cursor.rowcount
        finally:
            cursor.close()

    def ping(self) -> None:
        self._conn.execute("SELECT 1").close()

    def close(self) -> None:
        self._conn.close()


class AsyncpgHandle:
    """Handle over an asyncpg connection living on a :class:`BackgroundLoop`."""

    def __init__(self, connection: asyncpg.Connection, loop: BackgroundLoop) -> None:
        self._conn = connection
        self._loop = loop

    @classmethod
    def open(cls, dsn: str, loop: BackgroundLoop, *, timeout: float = 10.0) -> "AsyncpgHandle":
        connection = loop.run(asyncpg.connect(dsn=dsn, timeout=timeout))
        return cls(connection, loop)

    def fetch(self, sql: str, params: Params = (), *, limit: int | None = None) -> FetchResult:
        return self._loop.run(self._fetch(sql, tuple(params), limit))

    def execute(self, sql: str, params: Params = ()) -> int:
        status = self._loop.run(self._conn.execute(sql, *params))
        return _affected_rows(status)

    def ping(self) -> None:
        self._loop.run(self._conn.fetchval("SELECT 1"))

    def close(self) -> None:
        self._loop.run(self._conn.close())

    async def _fetch(self, sql: str, params: tuple[Any, ...], limit: int | None) -> FetchResult:
        statement = await self._conn.prepare(sql)
        columns = tuple(attribute.name for attribute in statement.get_attributes())
        if limit is None:
            records = await statement.fetch(*params)
        else:
            # Server-side cursors only exist inside a transaction.
            async with self._conn.transaction():
                cursor = await statement.cursor(*params)
                records = await cursor.fetch(limit)
        return columns, [tuple(record) for record in records]


class PyMySQLHandle:
    """Handle over a PyMySQL connection (autocommit, FOUND_ROWS semantics)."""

    def __init__(self, connection: pymysql.connections.Connection) -> None:
        self._conn = connection

    @classmethod
    def open(cls, *, connect_timeout: int = 10, **dsn: Any) -> "PyMySQLHandle":
        connection = pymysql.connect(
            autocommit=True,
            client_flag=CLIENT.FOUND_ROWS,
            connect_timeout=connect_timeout,
            **dsn,
        )
        return cls(connection)

    def fetch(self, sql: str, params: Params = (), *, limit: int | None = None) -> FetchResult:
        with self._conn.cursor(SSCursor) as cursor:
            cursor.execute(sql, tuple(params) or None)
            columns = tuple(str(item[0]) for item in cursor.description or ())
            batch = cursor.fetchall() if limit is None else cursor.fetchmany(limit)
            rows = [tuple(row) for row in batch]
        return columns, rows

    def execute(self, sql: str, params: Params = ()) -> int:
        with self._conn.cursor() as cursor:
            return cursor.execute(sql, tuple(params) or None)

    def ping(self) -> None:
        with self._conn.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchall()

    def close(self) -> None:
        self._conn.close()


def _affected_rows(status: str | None) -> int:
    """Parse the trailing row count out of a command tag like ``UPDATE 3``."""

    if not status:
        return 0
    tail = status.rsplit(" ", 1)[-1]
    try:
        return int(tail)
    except ValueError:
        return 0


__all__ = [
    "AsyncpgHandle",
    "DatabaseHandle",
    "FetchResult",
    "Params",
    "PyMySQLHandle",
    "SqliteHandle",
]
