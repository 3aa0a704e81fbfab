"""Sidebar listing connections, tables and saved views."""

from __future__ import annotations

from typing import Callable

from textual import on
from textual.app import ComposeResult
from textual.containers import Container
from textual.message import Message
from textual.widgets import Label, ListItem, ListView, Static

from lazyadmin.models import TableInfo
from lazyadmin.session import SessionManager, SessionState


class NavigationSidebar(Container):
    """Connections, tables of the active connection, and configured views."""

    DEFAULT_CSS = """
    NavigationSidebar {
        width: 30;
        min-width: 22;
        border-right: solid $surface-darken-1;
        padding: 1;
        height: 1fr;
        background: $surface-darken-2;
    }

    NavigationSidebar .sidebar-heading {
        text-style: bold;
        margin-top: 1;
    }

    #connection-list {
        height: 5;
        border: round $primary 30%;
    }

    #connection-list .active {
        text-style: bold;
    }

    #table-list {
        height: 1fr;
        border: round $primary 30%;
    }

    #view-list {
        height: 6;
        border: round $primary 30%;
    }
    """

    class TableChosen(Message):
        """Posted when a table is selected."""

        def __init__(self, table: TableInfo) -> None:
            super().__init__()
            self.table = table

    class ViewChosen(Message):
        """Posted when a saved view is selected."""

        def __init__(self, title: str) -> None:
            super().__init__()
            self.title = title

    def __init__(self, session_manager: SessionManager) -> None:
        super().__init__(id="nav-sidebar")
        self._session_manager = session_manager
        self._connection_items: dict[str, _ConnectionItem] = {}
        self._unsubscribe: Callable[[], None] | None = None

    def compose(self) -> ComposeResult:
        yield Static("Connections", classes="sidebar-heading")
        items = [_ConnectionItem(label) for label in self._session_manager.labels]
        self._connection_items = {item.connection_label: item for item in items}
        yield ListView(*items, id="connection-list")
        yield Static("Tables", classes="sidebar-heading")
        yield ListView(id="table-list")
        yield Static("Views", classes="sidebar-heading")
        views = [_ViewItem(view.title) for view in self._session_manager.config.views]
        yield ListView(*views, id="view-list")

    async def on_mount(self) -> None:
        self._unsubscribe = self._session_manager.subscribe(self._handle_session_update)

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def reload_connections(self) -> None:
        """Rebuild the connection list after the config gained an entry."""

        connection_list = self.query_one("#connection-list", ListView)
        connection_list.clear()
        items = [_ConnectionItem(label) for label in self._session_manager.labels]
        self._connection_items = {item.connection_label: item for item in items}
        state = self._session_manager.state
        for item in items:
            item.set_class(state is not None and item.connection_label == state.label, "active")
            connection_list.append(item)

    def _handle_session_update(self, state: SessionState) -> None:
        for label, item in self._connection_items.items():
            item.set_class(label == state.label, "active")
        table_list = self.query_one("#table-list", ListView)
        table_list.clear()
        for table in state.tables:
            table_list.append(_TableItem(table))

    @on(ListView.Selected)
    def _handle_selected(self, event: ListView.Selected) -> None:
        item = event.item
        if isinstance(item, _ConnectionItem):
            switcher = getattr(self.app, "switch_connection", None)
            if switcher is not None:
                switcher(item.connection_label)
        elif isinstance(item, _TableItem):
            self.post_message(self.TableChosen(item.table))
        elif isinstance(item, _ViewItem):
            self.post_message(self.ViewChosen(item.view_title))
        else:
            return
        event.stop()


class _ConnectionItem(ListItem):
    def __init__(self, label: str) -> None:
        super().__init__(Label(label))
        self.connection_label = label


class _TableItem(ListItem):
    def __init__(self, table: TableInfo) -> None:
        super().__init__(Label(table.qualified_name))
        self.table = table


class _ViewItem(ListItem):
    def __init__(self, title: str) -> None:
        super().__init__(Label(title))
        self.view_title = title


__all__ = ["NavigationSidebar"]
