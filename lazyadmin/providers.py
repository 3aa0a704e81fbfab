"""Command palette providers for core app features."""

from __future__ import annotations

from textual.command import DiscoveryHit, Hit, Hits, Provider
from textual.types import IgnoreReturnCallbackType

from .session import SessionManager


class ConnectionSwitchProvider(Provider):
    """Expose configured connections to the command palette."""

    async def search(self, query: str) -> Hits:
        manager = self._session_manager
        if manager is None:
            return
        matcher = self.matcher(query)
        for label in manager.labels:
            match = matcher.match(label)
            if match > 0:
                yield Hit(
                    score=match,
                    match_display=f"Switch to connection: {matcher.highlight(label)}",
                    command=self._build_callback(label),
                    help="Close the current connection and open this one.",
                )

    async def discover(self) -> Hits:
        manager = self._session_manager
        if manager is None:
            return
        for label in manager.labels:
            yield DiscoveryHit(
                display=f"Switch to connection: {label}",
                command=self._build_callback(label),
                help="Close the current connection and open this one.",
            )

    @property
    def _session_manager(self) -> SessionManager | None:
        manager = getattr(self.app, "session_manager", None)
        if isinstance(manager, SessionManager):
            return manager
        return None

    def _build_callback(self, label: str) -> IgnoreReturnCallbackType:
        async def _run() -> None:
            switcher = getattr(self.app, "switch_connection", None)
            if switcher is None:
                return
            switcher(label)

        return _run


__all__ = ["ConnectionSwitchProvider"]
