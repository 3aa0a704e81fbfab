"""Terminal database browser: connections, tunnels, catalogs and CRUD."""

from __future__ import annotations

from .connections import Connection, ConnectionManager
from .crud import build_select_all, delete, get_by_primary_key, insert, update
from .dialects import SqlDialect, get_dialect
from .errors import (
    ConfigurationError,
    ConnectivityError,
    LazyAdminError,
    NoPrimaryKeyError,
    QueryExecutionError,
    RecordNotFoundError,
    TunnelError,
)
from .models import (
    ColumnInfo,
    ConnectionDescriptor,
    Dialect,
    TableInfo,
    TabularResult,
    TunnelDescriptor,
    WriteResult,
    WriteStatus,
)
from .query import run_query
from .quoting import escape_literal, quote_identifier
from .schema import get_primary_key, list_columns, list_tables
from .tunnel import SecureTunnel

__all__ = [
    "ColumnInfo",
    "ConfigurationError",
    "Connection",
    "ConnectionDescriptor",
    "ConnectionManager",
    "ConnectivityError",
    "Dialect",
    "LazyAdminError",
    "NoPrimaryKeyError",
    "QueryExecutionError",
    "RecordNotFoundError",
    "SecureTunnel",
    "SqlDialect",
    "TableInfo",
    "TabularResult",
    "TunnelDescriptor",
    "TunnelError",
    "WriteResult",
    "WriteStatus",
    "build_select_all",
    "delete",
    "escape_literal",
    "get_by_primary_key",
    "get_dialect",
    "get_primary_key",
    "insert",
    "list_columns",
    "list_tables",
    "quote_identifier",
    "run_query",
    "update",
]
