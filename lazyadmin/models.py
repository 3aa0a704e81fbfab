"""Shared dataclasses used across connection/schema/query modules."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from .errors import ConfigurationError

Record = dict[str, Any]

_DIALECT_ALIASES: Mapping[str, str] = {
    "sqlite": "sqlite",
    "sqlite3": "sqlite",
    "postgres": "postgres",
    "postgresql": "postgres",
    "mysql": "mysql",
}


class Dialect(str, Enum):
    """Closed set of supported database engines."""

    SQLITE = "sqlite"
    POSTGRES = "postgres"
    MYSQL = "mysql"

    @classmethod
    def parse(cls, tag: "Dialect | str | None") -> "Dialect":
        """Resolve a driver tag (including aliases such as ``postgresql``)."""

        if isinstance(tag, Dialect):
            return tag
        key = (tag or "").strip().lower()
        canonical = _DIALECT_ALIASES.get(key)
        if canonical is None:
            raise ConfigurationError(f"unsupported driver: {tag!r}")
        return cls(canonical)


@dataclass(frozen=True, slots=True)
class TunnelDescriptor:
    """How to reach the SSH server that fronts the database."""

    host: str
    user: str
    port: int = 0
    password: str | None = None
    private_key: str | None = None
    known_hosts: str | None = None
    insecure_skip_host_key_check: bool = False


@dataclass(frozen=True, slots=True)
class ConnectionDescriptor:
    """Validated description of a database endpoint."""

    dialect: Dialect
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    path: str | None = None
    ssl_mode: str | None = None
    tunnel: TunnelDescriptor | None = None
    label: str | None = None


@dataclass(frozen=True, slots=True)
class TableInfo:
    """A table surfaced by catalog enumeration."""

    name: str
    schema: str = ""

    @property
    def qualified_name(self) -> str:
        if self.schema:
            return f"{self.schema}.{self.name}"
        return self.name


@dataclass(frozen=True, slots=True)
class ColumnInfo:
    """Column metadata normalized across dialects."""

    name: str
    type: str
    nullable: bool
    primary_key: bool
    default: str | None = None

    @property
    def has_default(self) -> bool:
        return self.default is not None


@dataclass(frozen=True, slots=True)
class ResultColumn:
    """Column header plus a display-width hint."""

    title: str
    width: int


@dataclass(frozen=True, slots=True)
class TabularResult:
    """Materialized query output ready for rendering."""

    columns: tuple[ResultColumn, ...]
    rows: tuple[tuple[str, ...], ...]
    values: tuple[tuple[Any, ...], ...] = ()
    truncated: bool = False

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(column.title for column in self.columns)

    @property
    def row_count(self) -> int:
        return len(self.rows)


class WriteStatus(str, Enum):
    """Outcome of a data-modifying statement."""

    APPLIED = "applied"
    NO_ROWS_MATCHED = "no_rows_matched"


@dataclass(frozen=True, slots=True)
class WriteResult:
    """Row-count outcome reported by insert/update/delete."""

    status: WriteStatus
    rows_affected: int

    @property
    def matched(self) -> bool:
        return self.status is WriteStatus.APPLIED


__all__ = [
    "ColumnInfo",
    "ConnectionDescriptor",
    "Dialect",
    "Record",
    "ResultColumn",
    "TableInfo",
    "TabularResult",
    "TunnelDescriptor",
    "WriteResult",
    "WriteStatus",
]
