"""Panel rendering a single record fetched by primary key."""

from __future__ import annotations

from textual.widgets import Static

from lazyadmin.models import Record
from lazyadmin.query import to_display


class RecordPanel(Static):
    """Shows ``column: value`` lines for the selected row."""

    DEFAULT_CSS = """
    RecordPanel {
        height: auto;
        max-height: 12;
        padding: 0 1;
        border-top: solid $surface-darken-1;
        color: $text-muted;
    }
    """

    def __init__(self) -> None:
        super().__init__("Select a row to inspect it.", id="record-panel", markup=False)

    def show_record(self, title: str, record: Record) -> None:
        width = max((len(column) for column in record), default=0)
        lines = [title]
        lines.extend(f"{column.ljust(width)} : {to_display(value)}" for column, value in record.items())
        self.update("\n".join(lines))

    def show_message(self, message: str) -> None:
        self.update(message)


__all__ = ["RecordPanel"]
