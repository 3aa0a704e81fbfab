"""Modal screens for record forms, the add-connection form and confirmations."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, Static

from lazyadmin.forms import CONNECTION_FIELDS, RecordForm

FormValues = dict[str, str]

_DIALOG_CSS = """
    {name} {{
        align: center middle;
    }}

    {name} > Vertical {{
        width: 80%;
        max-width: 100;
        height: auto;
        max-height: 90%;
        border: round $primary;
        padding: 1 2;
        background: $surface;
    }}

    {name} .dialog-title {{
        text-style: bold;
        margin-bottom: 1;
    }}

    {name} .form-row {{
        height: auto;
    }}

    {name} .form-row Label {{
        width: 20;
        padding-top: 1;
    }}

    {name} .form-row Input {{
        width: 1fr;
    }}

    {name} .dialog-actions {{
        height: auto;
        margin-top: 1;
    }}

    {name} .dialog-actions > * {{
        margin-right: 1;
    }}
"""


class _FormScreen(ModalScreen[FormValues | None]):
    """Inputs keyed by field name; dismisses with their raw values, or None on cancel."""

    BINDINGS = [
        Binding("ctrl+s", "save", "Save", priority=True),
        Binding("escape", "cancel", "Cancel", priority=True),
    ]

    def __init__(self, heading: str) -> None:
        super().__init__()
        self._heading = heading
        self._inputs: dict[str, Input] = {}

    def _form_rows(self) -> list[tuple[str, Input]]:
        raise NotImplementedError

    def compose(self) -> ComposeResult:
        rows = self._form_rows()
        self._inputs = dict(rows)
        with Vertical():
            yield Static(self._heading, classes="dialog-title", markup=False)
            with VerticalScroll():
                for name, field_input in rows:
                    yield Horizontal(Label(f"{name}:", markup=False), field_input, classes="form-row")
            yield Horizontal(
                Button("Save", id="form-save", variant="primary"),
                Button("Cancel", id="form-cancel"),
                Static("ctrl+s save, esc cancel"),
                classes="dialog-actions",
            )

    def on_mount(self) -> None:
        if self._inputs:
            next(iter(self._inputs.values())).focus()

    def form_values(self) -> FormValues:
        return {name: field_input.value for name, field_input in self._inputs.items()}

    def action_save(self) -> None:
        self.dismiss(self.form_values())

    def action_cancel(self) -> None:
        self.dismiss(None)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "form-save":
            self.action_save()
        elif event.button.id == "form-cancel":
            self.action_cancel()


class RecordFormScreen(_FormScreen):
    """Insert or edit one row; inputs start from the loaded record."""

    DEFAULT_CSS = _DIALOG_CSS.format(name="RecordFormScreen")

    def __init__(self, heading: str, form: RecordForm) -> None:
        super().__init__(heading)
        self._form = form

    def _form_rows(self) -> list[tuple[str, Input]]:
        return [
            (
                field.name,
                Input(value=field.original, placeholder=field.placeholder, id=f"field-{index}"),
            )
            for index, field in enumerate(self._form.fields)
        ]


class ConnectionFormScreen(_FormScreen):
    """Collects a new connection entry."""

    DEFAULT_CSS = _DIALOG_CSS.format(name="ConnectionFormScreen")

    _PLACEHOLDERS = {
        "label": "Display name",
        "driver": "sqlite, postgres or mysql",
        "port": "Default for the driver",
        "path": "SQLite file path",
    }

    def __init__(self) -> None:
        super().__init__("Add Connection")

    def _form_rows(self) -> list[tuple[str, Input]]:
        return [
            (
                name,
                Input(
                    placeholder=self._PLACEHOLDERS.get(name, ""),
                    password=name == "password",
                    id=f"connection-{name}",
                ),
            )
            for name in CONNECTION_FIELDS
        ]


class ConfirmScreen(ModalScreen[bool]):
    """Yes/no prompt; dismisses with True only on ``y``."""

    DEFAULT_CSS = """
    ConfirmScreen {
        align: center middle;
    }

    ConfirmScreen > Static {
        width: auto;
        max-width: 80%;
        border: round $warning;
        padding: 1 2;
        background: $surface;
    }
    """

    BINDINGS = [
        ("y", "confirm", "Yes"),
        ("n", "decline", "No"),
        ("escape", "decline", "No"),
    ]

    def __init__(self, prompt: str) -> None:
        super().__init__()
        self.prompt = prompt

    def compose(self) -> ComposeResult:
        yield Static(self.prompt, id="confirm-message", markup=False)

    def action_confirm(self) -> None:
        self.dismiss(True)

    def action_decline(self) -> None:
        self.dismiss(False)


__all__ = ["ConfirmScreen", "ConnectionFormScreen", "RecordFormScreen"]
