"""Widget library for the Textual UI."""

from __future__ import annotations

from .dialogs import ConfirmScreen, ConnectionFormScreen, RecordFormScreen
from .navigation_sidebar import NavigationSidebar
from .record_panel import RecordPanel
from .status_bar import StatusBar

__all__ = [
    "ConfirmScreen",
    "ConnectionFormScreen",
    "NavigationSidebar",
    "RecordFormScreen",
    "RecordPanel",
    "StatusBar",
]
