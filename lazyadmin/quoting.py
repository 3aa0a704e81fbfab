"""Identifier quoting and literal escaping.

Table and column names cannot be bound as parameters, so every identifier that
reaches SQL text goes through :func:`quote_identifier`.
"""

from __future__ import annotations

from typing import Mapping

from .models import Dialect

_QUOTE_CHARS: Mapping[Dialect, str] = {
    Dialect.SQLITE: '"',
    Dialect.POSTGRES: '"',
    Dialect.MYSQL: "`",
}


def quote_char(dialect: Dialect | str) -> str:
    """Return the identifier quote character for a dialect."""

    return _QUOTE_CHARS[Dialect.parse(dialect)]


def quote_identifier(dialect: Dialect | str, name: str) -> str:
    """Wrap ``name`` in the dialect's quote character, doubling embedded quotes.

    >>> quote_identifier("postgres", 'users"; DROP TABLE users; --')
    '"users""; DROP TABLE users; --"'
    >>> quote_identifier("mysql", "my table")
    '`my table`'
    """

    quote = quote_char(dialect)
    escaped = name.replace(quote, quote * 2)
    return f"{quote}{escaped}{quote}"


def qualify(dialect: Dialect | str, table: str, schema: str | None = None) -> str:
    """Quote a table name, prefixing the schema where the dialect has namespaces."""

    resolved = Dialect.parse(dialect)
    quoted = quote_identifier(resolved, table)
    if schema and resolved is Dialect.POSTGRES:
        return f"{quote_identifier(resolved, schema)}.{quoted}"
    return quoted


def escape_literal(value: str) -> str:
    """Double single quotes for SQLite catalog lookups (never for user data)."""

    return value.replace("'", "''")


__all__ = ["escape_literal", "qualify", "quote_char", "quote_identifier"]
