"""Exception types shared by the connection, schema and CRUD layers."""

from __future__ import annotations


class LazyAdminError(Exception):
    """Base class for errors raised by lazyadmin itself."""


class ConfigurationError(LazyAdminError, ValueError):
    """Raised when a descriptor or config file is unusable; no I/O has happened."""


class ConnectivityError(LazyAdminError, RuntimeError):
    """Raised when a database or tunnel cannot be reached or authenticated."""


class TunnelError(ConnectivityError):
    """Raised when the SSH tunnel cannot be established."""


class NoPrimaryKeyError(LazyAdminError, LookupError):
    """Raised when a table has no primary-key column."""

    def __init__(self, table: str) -> None:
        super().__init__(f"no primary key found for table {table!r}")
        self.table = table


class RecordNotFoundError(LazyAdminError, LookupError):
    """Raised when a primary-key lookup matches no row."""

    def __init__(self, table: str, pk_column: str, pk_value: object) -> None:
        super().__init__(f"record not found: {table}.{pk_column} = {pk_value!r}")
        self.table = table
        self.pk_column = pk_column
        self.pk_value = pk_value


class QueryExecutionError(LazyAdminError, ValueError):
    """Raised when a raw query cannot be executed as given."""


__all__ = [
    "ConfigurationError",
    "ConnectivityError",
    "LazyAdminError",
    "NoPrimaryKeyError",
    "QueryExecutionError",
    "RecordNotFoundError",
    "TunnelError",
]
