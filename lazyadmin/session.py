"""Connection/session manager wiring the core into the UI."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from . import crud, query, schema
from .config import AppConfig, ConnectionConfig
from .connections import Connection, ConnectionManager
from .errors import LazyAdminError, NoPrimaryKeyError
from .models import ColumnInfo, Dialect, Record, TableInfo, TabularResult, WriteResult

LOG = logging.getLogger(__name__)

SessionListener = Callable[["SessionState"], None]


@dataclass(frozen=True, slots=True)
class SessionState:
    """Current session snapshot (active connection + catalog)."""

    label: str
    connected: bool
    tables: tuple[TableInfo, ...]
    refreshed_at: datetime
    dialect: Dialect | None = None
    status: str = "Connected"
    latency_ms: int | None = None
    last_error: str | None = None
    tunnelled: bool = False


class SessionManager:
    """Owns the active :class:`Connection` and a per-connection table cache."""

    def __init__(
        self,
        config: AppConfig,
        *,
        manager: ConnectionManager | None = None,
        autoconnect: bool = True,
    ) -> None:
        self._config = config
        self._manager = manager or ConnectionManager()
        self._listeners: set[SessionListener] = set()
        self._state: SessionState | None = None
        self._connection: Connection | None = None
        self._tables: tuple[TableInfo, ...] | None = None
        labels = self.labels
        active = config.active_connection if config.active_connection in labels else None
        active = active or (labels[0] if labels else None)
        if autoconnect and active:
            try:
                self.connect(active)
            except LazyAdminError:
                LOG.warning("Initial connection failed", exc_info=True, extra={"label": active})

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def labels(self) -> tuple[str, ...]:
        """Connection labels available in the current config."""

        return tuple(entry.label for entry in self._config.connections)

    @property
    def state(self) -> SessionState | None:
        """Current session state."""

        return self._state

    @property
    def connection(self) -> Connection:
        if self._connection is None or self._connection.closed:
            raise LazyAdminError("No active connection.")
        return self._connection

    def connect(self, label: str) -> SessionState:
        """Activate the requested connection, closing the previous one."""

        entry = self._config.connection(label)
        self._drop_connection()
        descriptor = entry.to_descriptor()
        try:
            connection = self._manager.connect(descriptor)
        except LazyAdminError as exc:
            self._update_state(entry, connected=False, status="Disconnected", last_error=str(exc))
            raise
        self._connection = connection
        try:
            tables = self.tables(refresh=True)
        except Exception as exc:
            self._drop_connection()
            self._update_state(entry, connected=False, status="Disconnected", last_error=str(exc))
            raise
        self._config = self._config.with_active_connection(label)
        self._update_state(
            entry,
            connected=True,
            tables=tables,
            refreshed_at=connection.connected_at,
            latency_ms=connection.latency_ms,
            tunnelled=connection.tunnel is not None,
        )
        return self._state

    def add_connection(self, entry: ConnectionConfig) -> ConnectionConfig:
        """Register a connection entry; returns it as stored (label filled in)."""

        self._config = self._config.with_connection(entry)
        return self._config.connections[-1]

    def refresh(self) -> None:
        """Reload the table list for the active connection."""

        if not self._state or self._connection is None:
            return
        entry = self._config.connection(self._state.label)
        previous = self._state
        try:
            tables = self.tables(refresh=True)
        except Exception as exc:
            self._update_state(
                entry,
                connected=previous.connected,
                tables=previous.tables,
                status="Refresh failed",
                latency_ms=previous.latency_ms,
                last_error=str(exc),
                tunnelled=previous.tunnelled,
            )
            raise
        self._update_state(
            entry,
            connected=True,
            tables=tables,
            status="Refreshed",
            latency_ms=self._state.latency_ms,
            tunnelled=self._state.tunnelled,
        )

    def tables(self, *, refresh: bool = False) -> tuple[TableInfo, ...]:
        if self._tables is None or refresh:
            connection = self.connection
            self._tables = tuple(schema.list_tables(connection.handle, connection.dialect))
        return self._tables

    def columns(self, table: TableInfo) -> list[ColumnInfo]:
        connection = self.connection
        return schema.list_columns(connection.handle, connection.dialect, table.name, table.schema or "public")

    def primary_key(self, table: TableInfo) -> str | None:
        """Primary-key column name, or None when the table has none."""

        connection = self.connection
        try:
            return schema.get_primary_key(connection.handle, connection.dialect, table.name, table.schema or "public")
        except NoPrimaryKeyError:
            return None

    def browse(self, table: TableInfo, limit: int = crud.DEFAULT_LIMIT) -> TabularResult:
        connection = self.connection
        sql = crud.build_select_all(connection.dialect, table.name, limit, schema=table.schema or None)
        return query.run_query(connection.handle, sql)

    def run_view(self, title: str) -> TabularResult:
        view = self._config.view(title)
        return query.run_query(self.connection.handle, view.query)

    def fetch_record(self, table: TableInfo, pk_column: str, pk_value: Any) -> Record:
        connection = self.connection
        return crud.get_by_primary_key(
            connection.handle, connection.dialect, table.name, pk_column, pk_value, schema=table.schema or None
        )

    def insert_record(self, table: TableInfo, data: Mapping[str, Any]) -> WriteResult:
        connection = self.connection
        return crud.insert(connection.handle, connection.dialect, table.name, data, schema=table.schema or None)

    def update_record(self, table: TableInfo, pk_column: str, pk_value: Any, data: Mapping[str, Any]) -> WriteResult:
        connection = self.connection
        return crud.update(
            connection.handle, connection.dialect, table.name, pk_column, pk_value, data, schema=table.schema or None
        )

    def delete_record(self, table: TableInfo, pk_column: str, pk_value: Any) -> WriteResult:
        connection = self.connection
        return crud.delete(
            connection.handle, connection.dialect, table.name, pk_column, pk_value, schema=table.schema or None
        )

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Subscribe to session updates; returns an unsubscribe handle."""

        self._listeners.add(listener)
        if self._state:
            listener(self._state)

        def _unsubscribe() -> None:
            self._listeners.discard(listener)

        return _unsubscribe

    def close(self) -> None:
        """Close the active connection and stop background work."""

        self._drop_connection()
        self._manager.shutdown()

    def _drop_connection(self) -> None:
        self._tables = None
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def _update_state(
        self,
        entry: ConnectionConfig,
        *,
        connected: bool,
        tables: tuple[TableInfo, ...] = (),
        refreshed_at: datetime | None = None,
        status: str = "Connected",
        latency_ms: int | None = None,
        last_error: str | None = None,
        tunnelled: bool = False,
    ) -> None:
        self._state = SessionState(
            label=entry.label,
            connected=connected,
            tables=tables,
            refreshed_at=refreshed_at or datetime.now(tz=timezone.utc),
            dialect=entry.dialect,
            status=status,
            latency_ms=latency_ms,
            last_error=last_error,
            tunnelled=tunnelled,
        )
        self._notify()

    def _notify(self) -> None:
        if not self._state:
            return
        for listener in tuple(self._listeners):
            listener(self._state)


__all__ = ["SessionManager", "SessionState"]
