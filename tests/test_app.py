"""App-level tests for the Textual UI."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any

import pytest
from textual.widgets import DataTable, Input, ListItem, ListView

from lazyadmin.app import LazyAdminApp, main
from lazyadmin.config import AppConfig, ConnectionConfig, ViewConfig, load_config
from lazyadmin.models import TableInfo
from lazyadmin.providers import ConnectionSwitchProvider
from lazyadmin.session import SessionManager
from lazyadmin.widgets import ConfirmScreen, ConnectionFormScreen, RecordFormScreen, RecordPanel


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class _DummyScreen:
    """Minimal stub so providers can reference an app without a running screen stack."""

    def __init__(self, app: LazyAdminApp) -> None:
        self.app = app
        self.focused = None


def _database(path: Path, *statements: str) -> str:
    connection = sqlite3.connect(path)
    try:
        for statement in statements:
            connection.execute(statement)
        connection.commit()
    finally:
        connection.close()
    return str(path)


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    local = _database(
        tmp_path / "local.db",
        "CREATE TABLE accounts (id INTEGER PRIMARY KEY, email TEXT)",
        "CREATE TABLE audit_log (message TEXT)",
        "CREATE TABLE notes (id INTEGER PRIMARY KEY, body TEXT NOT NULL, tag TEXT)",
        "INSERT INTO accounts (email) VALUES ('a@example.com'), ('b@example.com')",
        "INSERT INTO audit_log (message) VALUES ('boot')",
    )
    replica = _database(tmp_path / "replica.db", "CREATE TABLE events (id INTEGER PRIMARY KEY)")
    return AppConfig(
        connections=[
            ConnectionConfig(label="Local", driver="sqlite", path=local),
            ConnectionConfig(label="Replica", driver="sqlite", path=replica),
        ],
        views=[ViewConfig(title="Emails", query="SELECT email FROM accounts")],
        active_connection="Local",
    )


@pytest.mark.anyio
async def test_connection_switch_provider_persists_choice(tmp_path: Path, config: AppConfig) -> None:
    config_path = tmp_path / "admin.toml"
    manager = SessionManager(config)
    app = LazyAdminApp(config, config_path=config_path, session_manager=manager)

    try:
        async with app.run_test() as pilot:
            provider = ConnectionSwitchProvider(_DummyScreen(app))
            hits = [hit async for hit in provider.discover()]
            assert len(hits) == 2
            target = next(hit for hit in hits if "Replica" in (hit.display or ""))
            await target.command()
            await pilot.pause()

            assert manager.state is not None and manager.state.label == "Replica"
            assert 'active_connection = "Replica"' in config_path.read_text()
    finally:
        manager.close()


@pytest.mark.anyio
async def test_browse_select_and_delete_rows(config: AppConfig, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = SessionManager(config)
    app = LazyAdminApp(config, session_manager=manager)
    shown: list[dict[str, Any]] = []
    monkeypatch.setattr(RecordPanel, "show_record", lambda self, title, record: shown.append(record))

    try:
        async with app.run_test() as pilot:
            app.show_table(TableInfo("accounts"))
            await pilot.pause()
            assert app.current_result is not None
            assert app.current_result.row_count == 2
            assert app.query_one("#result-grid", DataTable).row_count == 2

            app.query_one("#result-grid", DataTable).focus()
            await pilot.press("enter")
            await pilot.pause()
            assert shown == [{"id": 1, "email": "a@example.com"}]

            app.action_delete_row()
            await pilot.pause()
            assert isinstance(app.screen, ConfirmScreen)
            await pilot.press("y")
            await pilot.pause()
            assert app.current_result.row_count == 1
    finally:
        manager.close()


@pytest.mark.anyio
async def test_keyless_tables_disable_row_actions(config: AppConfig) -> None:
    manager = SessionManager(config)
    app = LazyAdminApp(config, session_manager=manager)

    try:
        async with app.run_test() as pilot:
            app.show_table(TableInfo("audit_log"))
            await pilot.pause()
            app.action_delete_row()
            await pilot.pause()

            assert app.current_result is not None
            assert app.current_result.row_count == 1
            assert manager.browse(TableInfo("audit_log")).row_count == 1
    finally:
        manager.close()


@pytest.mark.anyio
async def test_views_render_into_grid(config: AppConfig) -> None:
    manager = SessionManager(config)
    app = LazyAdminApp(config, session_manager=manager)

    try:
        async with app.run_test() as pilot:
            app.show_view("Emails")
            await pilot.pause()

            assert app.current_result is not None
            assert app.current_result.column_names == ("email",)
    finally:
        manager.close()


def _record_notifications(app: LazyAdminApp, monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, str]]:
    seen: list[tuple[str, str]] = []

    def _notify(message: str, *, severity: str = "information", **kwargs: Any) -> None:
        seen.append((message, severity))

    monkeypatch.setattr(app, "notify", _notify)
    return seen


@pytest.mark.anyio
async def test_declining_delete_keeps_row(config: AppConfig, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = SessionManager(config)
    app = LazyAdminApp(config, session_manager=manager)

    try:
        async with app.run_test() as pilot:
            notes = _record_notifications(app, monkeypatch)
            app.show_table(TableInfo("accounts"))
            await pilot.pause()

            app.action_delete_row()
            await pilot.pause()
            assert isinstance(app.screen, ConfirmScreen)
            assert app.screen.prompt == "Delete record with id = 1? (y/n)"
            await pilot.press("n")
            await pilot.pause()

            assert not isinstance(app.screen, ConfirmScreen)
            assert app.current_result is not None and app.current_result.row_count == 2
            assert manager.browse(TableInfo("accounts")).row_count == 2
            assert ("Cancelled", "information") in notes
    finally:
        manager.close()


@pytest.mark.anyio
async def test_insert_form_validates_and_inserts(config: AppConfig, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = SessionManager(config)
    app = LazyAdminApp(config, session_manager=manager)

    try:
        async with app.run_test() as pilot:
            notes = _record_notifications(app, monkeypatch)
            app.show_table(TableInfo("notes"))
            await pilot.pause()

            app.action_insert_row()
            await pilot.pause()
            assert isinstance(app.screen, RecordFormScreen)
            await pilot.press("ctrl+s")
            await pilot.pause()
            assert ("Validation failed: required fields missing: body", "error") in notes
            assert manager.browse(TableInfo("notes")).row_count == 0

            app.action_insert_row()
            await pilot.pause()
            app.screen.query_one("#field-1", Input).value = "  remember the milk  "
            await pilot.press("ctrl+s")
            await pilot.pause()

            result = manager.browse(TableInfo("notes"))
            assert result.values == ((1, "remember the milk", None),)
            assert app.current_result is not None and app.current_result.row_count == 1
    finally:
        manager.close()


@pytest.mark.anyio
async def test_edit_form_sends_only_changed_fields(config: AppConfig, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = SessionManager(config)
    app = LazyAdminApp(config, session_manager=manager)
    updates: list[dict[str, Any]] = []
    original_update = manager.update_record

    def _spy(table: TableInfo, pk_column: str, pk_value: Any, data: dict[str, Any]) -> Any:
        updates.append(dict(data))
        return original_update(table, pk_column, pk_value, data)

    monkeypatch.setattr(manager, "update_record", _spy)

    try:
        async with app.run_test() as pilot:
            notes = _record_notifications(app, monkeypatch)
            app.show_table(TableInfo("accounts"))
            await pilot.pause()

            app.action_edit_row()
            await pilot.pause()
            assert isinstance(app.screen, RecordFormScreen)
            assert app.screen.query_one("#field-1", Input).value == "a@example.com"
            await pilot.press("ctrl+s")
            await pilot.pause()
            assert ("No changes made", "information") in notes
            assert updates == []

            app.action_edit_row()
            await pilot.pause()
            app.screen.query_one("#field-1", Input).value = "z@example.com"
            await pilot.press("ctrl+s")
            await pilot.pause()

            assert updates == [{"email": "z@example.com"}]
            assert manager.fetch_record(TableInfo("accounts"), "id", 1) == {"id": 1, "email": "z@example.com"}
    finally:
        manager.close()


@pytest.mark.anyio
async def test_edit_of_vanished_row_warns(config: AppConfig, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = SessionManager(config)
    app = LazyAdminApp(config, session_manager=manager)

    try:
        async with app.run_test() as pilot:
            notes = _record_notifications(app, monkeypatch)
            app.show_table(TableInfo("accounts"))
            await pilot.pause()

            app.action_edit_row()
            await pilot.pause()
            manager.delete_record(TableInfo("accounts"), "id", 1)
            app.screen.query_one("#field-1", Input).value = "late@example.com"
            await pilot.press("ctrl+s")
            await pilot.pause()

            assert any(severity == "warning" and "No rows matched" in message for message, severity in notes)
    finally:
        manager.close()


@pytest.mark.anyio
async def test_add_connection_form_saves_config(
    tmp_path: Path, config: AppConfig, monkeypatch: pytest.MonkeyPatch
) -> None:
    config_path = tmp_path / "admin.toml"
    scratch = _database(tmp_path / "scratch.db", "CREATE TABLE items (id INTEGER PRIMARY KEY)")
    manager = SessionManager(config)
    app = LazyAdminApp(config, config_path=config_path, session_manager=manager)

    try:
        async with app.run_test() as pilot:
            notes = _record_notifications(app, monkeypatch)

            app.action_add_connection()
            await pilot.pause()
            assert isinstance(app.screen, ConnectionFormScreen)
            app.screen.query_one("#connection-label", Input).value = "Scratch"
            await pilot.press("ctrl+s")
            await pilot.pause()
            assert ("driver is required", "error") in notes
            assert manager.labels == ("Local", "Replica")

            app.action_add_connection()
            await pilot.pause()
            app.screen.query_one("#connection-label", Input).value = "Scratch"
            app.screen.query_one("#connection-driver", Input).value = "sqlite"
            app.screen.query_one("#connection-path", Input).value = scratch
            await pilot.press("ctrl+s")
            await pilot.pause()
            await pilot.pause()

            assert ("Connection added", "information") in notes
            assert manager.labels == ("Local", "Replica", "Scratch")
            assert load_config(config_path).connection("Scratch").path == scratch
            connection_list = app.query_one("#connection-list", ListView)
            assert len(list(connection_list.query(ListItem))) == 3

            app.switch_connection("Scratch")
            assert manager.state is not None and manager.state.label == "Scratch"
    finally:
        manager.close()


@pytest.mark.anyio
async def test_refresh_failure_is_reported(config: AppConfig, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = SessionManager(config)
    app = LazyAdminApp(config, session_manager=manager)

    try:
        async with app.run_test() as pilot:
            notes = _record_notifications(app, monkeypatch)
            app.show_table(TableInfo("accounts"))
            await pilot.pause()
            manager.connection.handle.close()

            await pilot.press("ctrl+r")
            await pilot.pause()

            assert app.is_running
            assert manager.state is not None and manager.state.status == "Refresh failed"
            assert any(severity == "error" and message.startswith("Refresh failed") for message, severity in notes)
    finally:
        manager.close()


def test_main_rejects_config_without_connections(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config_path = tmp_path / "admin.toml"
    config_path.write_text('project_name = "empty"\n')

    assert main([str(config_path)]) == 1
    assert "no database connections" in capsys.readouterr().err


def test_main_reports_invalid_config(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config_path = tmp_path / "admin.toml"
    config_path.write_text("[[connections]\n")

    assert main([str(config_path)]) == 1
    assert "invalid TOML" in capsys.readouterr().err
