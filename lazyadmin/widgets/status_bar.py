"""Status bar widget that mirrors session information."""

from __future__ import annotations

from typing import Callable

from textual.widgets import Static

from lazyadmin.session import SessionManager, SessionState


class StatusBar(Static):
    """Compact status strip rendered above Textual's footer."""

    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        padding: 0 1;
        background: $surface-darken-3;
        color: $text;
    }
    """

    def __init__(self, session_manager: SessionManager) -> None:
        super().__init__("", id="status-bar")
        self._session_manager = session_manager
        self._unsubscribe: Callable[[], None] | None = None

    async def on_mount(self) -> None:
        self._unsubscribe = self._session_manager.subscribe(self._handle_session_update)

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def _handle_session_update(self, state: SessionState) -> None:
        self.update(describe_state(state))


def describe_state(state: SessionState) -> str:
    """One-line summary of a session state."""

    latency = f"{state.latency_ms} ms" if state.latency_ms is not None else "-"
    refreshed = state.refreshed_at.astimezone().strftime("%H:%M:%S")
    driver = state.dialect.value if state.dialect else "?"
    if state.tunnelled:
        driver += " via ssh"
    parts = [
        f"Connection: {state.label}",
        f"Driver: {driver}",
        f"Tables: {len(state.tables)}",
        f"Status: {state.status} ({latency})",
        f"Refreshed: {refreshed}",
    ]
    if state.last_error:
        parts.append(f"Error: {state.last_error.splitlines()[0][:80]}")
    return " | ".join(parts)


__all__ = ["StatusBar", "describe_state"]
