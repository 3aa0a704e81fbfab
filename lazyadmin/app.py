"""Textual application entry point for lazyadmin."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from textual import on
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import DataTable, Footer, Header

from .config import CONFIG_FILE, AppConfig, ConnectionConfig, load_config, save_config
from .errors import LazyAdminError, RecordNotFoundError
from .forms import RecordForm, build_connection
from .models import TableInfo, TabularResult, WriteStatus
from .providers import ConnectionSwitchProvider
from .session import SessionManager
from .widgets import (
    ConfirmScreen,
    ConnectionFormScreen,
    NavigationSidebar,
    RecordFormScreen,
    RecordPanel,
    StatusBar,
)

LOG = logging.getLogger(__name__)


class LazyAdminApp(App[None]):
    """Browse tables and saved views across the configured connections."""

    COMMANDS = App.COMMANDS | {ConnectionSwitchProvider}
    CSS = """
    Screen {
        layout: vertical;
    }
    #content {
        layout: horizontal;
        height: 1fr;
    }
    #main-column {
        layout: vertical;
        padding: 0 1;
        height: 1fr;
    }
    #result-grid {
        height: 1fr;
    }
    """

    BINDINGS = [
        ("ctrl+c", "quit", "Quit"),
        ("ctrl+r", "refresh", "Refresh"),
        ("i", "insert_row", "Insert"),
        ("e", "edit_row", "Edit"),
        ("d", "delete_row", "Delete"),
        ("n", "add_connection", "New Connection"),
        ("ctrl+p", "command_palette", "Command Palette"),
    ]

    def __init__(
        self,
        config: AppConfig,
        *,
        config_path: Path | None = None,
        session_manager: SessionManager | None = None,
    ) -> None:
        super().__init__()
        self._config = config
        self._config_path = config_path
        self._session_manager = session_manager or SessionManager(config)
        self._current_table: TableInfo | None = None
        self._current_pk: str | None = None
        self._result: TabularResult | None = None

    def compose(self) -> ComposeResult:
        """Compose the root layout."""

        yield Header(show_clock=True)
        grid = DataTable(id="result-grid", cursor_type="row", zebra_stripes=True)
        main_column = Vertical(grid, RecordPanel(), id="main-column")
        yield Horizontal(NavigationSidebar(self._session_manager), main_column, id="content")
        yield StatusBar(self._session_manager)
        yield Footer()

    async def on_mount(self) -> None:
        state = self._session_manager.state
        if state and state.last_error:
            self.notify(state.last_error, severity="error")

    @property
    def session_manager(self) -> SessionManager:
        """Expose the session manager for tests and providers."""

        return self._session_manager

    @property
    def current_result(self) -> TabularResult | None:
        return self._result

    def switch_connection(self, label: str) -> None:
        """Activate the requested connection and persist the choice."""

        try:
            state = self._session_manager.connect(label)
        except (LazyAdminError, ValueError) as exc:
            self.notify(str(exc), severity="error")
            return
        self._clear_result()
        self._config = self._config.with_active_connection(state.label)
        if self._config_path is not None:
            save_config(self._config, self._config_path)
        self.notify(f"Switched to connection: {state.label}", severity="information")

    def show_table(self, table: TableInfo) -> None:
        try:
            result = self._session_manager.browse(table)
            pk = self._session_manager.primary_key(table)
        except Exception as exc:
            LOG.exception("Browse failed", extra={"table": table.qualified_name})
            self.notify(str(exc), severity="error")
            return
        self._current_table = table
        self._current_pk = pk
        self._render_result(result)
        if pk is None:
            self.notify(f"{table.qualified_name} has no primary key; row actions disabled.", severity="warning")

    def show_view(self, title: str) -> None:
        try:
            result = self._session_manager.run_view(title)
        except Exception as exc:
            LOG.exception("View failed", extra={"view": title})
            self.notify(str(exc), severity="error")
            return
        self._current_table = None
        self._current_pk = None
        self._render_result(result)

    def action_refresh(self) -> None:
        try:
            self._session_manager.refresh()
        except Exception as exc:
            LOG.exception("Refresh failed")
            self.notify(f"Refresh failed: {exc}", severity="error")
            return
        if self._current_table is not None:
            self.show_table(self._current_table)

    def action_insert_row(self) -> None:
        if self._dialog_open():
            return
        table = self._current_table
        if table is None:
            self.notify("Select a table before inserting.", severity="warning")
            return
        try:
            columns = self._session_manager.columns(table)
        except Exception as exc:
            LOG.exception("Column lookup failed", extra={"table": table.qualified_name})
            self.notify(str(exc), severity="error")
            return
        form = RecordForm(columns)
        self.push_screen(
            RecordFormScreen(f"Insert into {table.qualified_name}", form),
            lambda values: self._submit_insert(table, form, values),
        )

    def action_edit_row(self) -> None:
        if self._dialog_open():
            return
        located = self._selected_key()
        if located is None:
            return
        table, pk_column, pk_value = located
        try:
            record = self._session_manager.fetch_record(table, pk_column, pk_value)
            columns = self._session_manager.columns(table)
        except RecordNotFoundError as exc:
            self.notify(str(exc), severity="warning")
            return
        except Exception as exc:
            LOG.exception("Record fetch failed", extra={"table": table.qualified_name})
            self.notify(str(exc), severity="error")
            return
        form = RecordForm(columns, record)
        self.push_screen(
            RecordFormScreen(f"Edit {table.qualified_name} [{pk_column} = {pk_value}]", form),
            lambda values: self._submit_update(table, pk_column, pk_value, form, values),
        )

    def action_delete_row(self) -> None:
        if self._dialog_open():
            return
        located = self._selected_key()
        if located is None:
            return
        table, pk_column, pk_value = located

        def _confirmed(answer: bool | None) -> None:
            if answer:
                self._delete(table, pk_column, pk_value)
            else:
                self.notify("Cancelled", severity="information")

        self.push_screen(ConfirmScreen(f"Delete record with {pk_column} = {pk_value}? (y/n)"), _confirmed)

    def action_add_connection(self) -> None:
        if self._dialog_open():
            return
        self.push_screen(ConnectionFormScreen(), self._submit_connection)

    def _submit_insert(self, table: TableInfo, form: RecordForm, values: dict[str, str] | None) -> None:
        if values is None:
            self.notify("Cancelled", severity="information")
            return
        try:
            data = form.insert_data(values)
        except ValueError as exc:
            self.notify(f"Validation failed: {exc}", severity="error")
            return
        if not data:
            self.notify("Nothing to insert.", severity="warning")
            return
        try:
            outcome = self._session_manager.insert_record(table, data)
        except Exception as exc:
            LOG.exception("Insert failed", extra={"table": table.qualified_name})
            self.notify(f"Insert failed: {exc}", severity="error")
            return
        self.notify(f"Inserted {outcome.rows_affected} row(s).", severity="information")
        self.show_table(table)

    def _submit_update(
        self,
        table: TableInfo,
        pk_column: str,
        pk_value: object,
        form: RecordForm,
        values: dict[str, str] | None,
    ) -> None:
        if values is None:
            self.notify("Cancelled", severity="information")
            return
        data = form.changed_data(values)
        if not data:
            self.notify("No changes made", severity="information")
            return
        try:
            outcome = self._session_manager.update_record(table, pk_column, pk_value, data)
        except Exception as exc:
            LOG.exception("Update failed", extra={"table": table.qualified_name})
            self.notify(f"Update failed: {exc}", severity="error")
            return
        if outcome.status is WriteStatus.NO_ROWS_MATCHED:
            self.notify("No rows matched; the record may have been deleted.", severity="warning")
        else:
            self.notify(f"Updated {outcome.rows_affected} row(s).", severity="information")
        self.show_table(table)

    def _delete(self, table: TableInfo, pk_column: str, pk_value: object) -> None:
        try:
            outcome = self._session_manager.delete_record(table, pk_column, pk_value)
        except Exception as exc:
            LOG.exception("Delete failed", extra={"table": table.qualified_name})
            self.notify(str(exc), severity="error")
            return
        if outcome.status is WriteStatus.NO_ROWS_MATCHED:
            self.notify("No rows matched; the record may already be gone.", severity="warning")
        else:
            self.notify(f"Deleted {outcome.rows_affected} row(s).", severity="information")
        self.show_table(table)

    def _submit_connection(self, values: dict[str, str] | None) -> None:
        if values is None:
            return
        try:
            entry: ConnectionConfig = build_connection(values)
        except ValueError as exc:
            self.notify(str(exc), severity="error")
            return
        entry = self._session_manager.add_connection(entry)
        self._config = self._config.with_connection(entry)
        if self._config_path is not None:
            try:
                save_config(self._config, self._config_path)
            except OSError as exc:
                LOG.exception("Saving config failed", extra={"path": str(self._config_path)})
                self.notify(f"Could not save config: {exc}", severity="error")
        self.query_one(NavigationSidebar).reload_connections()
        self.notify("Connection added", severity="information")

    def _dialog_open(self) -> bool:
        return isinstance(self.screen, ModalScreen)

    @on(NavigationSidebar.TableChosen)
    def _handle_table_chosen(self, event: NavigationSidebar.TableChosen) -> None:
        self.show_table(event.table)

    @on(NavigationSidebar.ViewChosen)
    def _handle_view_chosen(self, event: NavigationSidebar.ViewChosen) -> None:
        self.show_view(event.title)

    @on(DataTable.RowSelected)
    def _handle_row_selected(self, event: DataTable.RowSelected) -> None:
        located = self._selected_key()
        if located is None:
            return
        table, pk_column, pk_value = located
        panel = self.query_one(RecordPanel)
        try:
            record = self._session_manager.fetch_record(table, pk_column, pk_value)
        except RecordNotFoundError as exc:
            panel.show_message(str(exc))
            return
        except Exception as exc:
            LOG.exception("Record fetch failed", extra={"table": table.qualified_name})
            self.notify(str(exc), severity="error")
            return
        panel.show_record(f"{table.qualified_name} [{pk_column} = {pk_value}]", record)

    def _selected_key(self) -> tuple[TableInfo, str, object] | None:
        table, result = self._current_table, self._result
        if table is None or result is None or not result.rows:
            return None
        if self._current_pk is None:
            self.notify("No primary key; row actions are disabled for this table.", severity="warning")
            return None
        try:
            pk_index = result.column_names.index(self._current_pk)
        except ValueError:
            return None
        row_index = self.query_one("#result-grid", DataTable).cursor_row
        if not 0 <= row_index < len(result.values):
            return None
        return table, self._current_pk, result.values[row_index][pk_index]

    def _render_result(self, result: TabularResult) -> None:
        self._result = result
        grid = self.query_one("#result-grid", DataTable)
        grid.clear(columns=True)
        for column in result.columns:
            grid.add_column(column.title, width=column.width)
        grid.add_rows(result.rows)
        if result.truncated:
            self.notify(f"Showing the first {result.row_count} rows.", severity="warning")

    def _clear_result(self) -> None:
        self._current_table = None
        self._current_pk = None
        self._result = None
        self.query_one("#result-grid", DataTable).clear(columns=True)
        self.query_one(RecordPanel).show_message("Select a row to inspect it.")


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments and invoke the Textual application."""

    parser = argparse.ArgumentParser(prog="lazyadmin", description="Terminal database browser.")
    parser.add_argument("config", nargs="?", default=str(CONFIG_FILE), help="Path to the TOML config file.")
    parser.add_argument("--connection", help="Label of the connection to open first.")
    parser.add_argument("--log-file", help="Write logs to this file (the TUI owns the terminal).")
    args = parser.parse_args(argv)

    if args.log_file:
        logging.basicConfig(
            filename=args.log_file,
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    config_path = Path(args.config)
    try:
        config = load_config(config_path)
    except LazyAdminError as exc:
        print(f"Error loading config: {exc}", file=sys.stderr)
        return 1
    if not config.connections:
        print(f"Error loading config: no database connections defined in {config_path}", file=sys.stderr)
        return 1
    if args.connection:
        config = config.with_active_connection(args.connection)

    session_manager = SessionManager(config)
    try:
        LazyAdminApp(config, config_path=config_path, session_manager=session_manager).run()
    finally:
        session_manager.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
