"""Field handling behind the insert/edit record forms and the connection form."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from pydantic import ValidationError

from .config import ConnectionConfig
from .models import ColumnInfo, Record
from .query import to_display


@dataclass(frozen=True, slots=True)
class FormField:
    """One input of a record form: the column plus the value it started with."""

    column: ColumnInfo
    original: str = ""

    @property
    def name(self) -> str:
        return self.column.name

    @property
    def placeholder(self) -> str:
        hint = f"{self.column.name} ({self.column.type})"
        if self.column.primary_key:
            hint += " [PK]"
        if self.column.nullable:
            hint += " [NULL OK]"
        return hint


class RecordForm:
    """Turns raw form input into insert/update payloads."""

    def __init__(self, columns: Sequence[ColumnInfo], record: Record | None = None) -> None:
        self.fields = tuple(
            FormField(column, _initial_value(record, column.name) if record is not None else "") for column in columns
        )

    def insert_data(self, values: Mapping[str, str]) -> dict[str, Any]:
        """Non-empty trimmed values; raises ValueError naming missing required columns."""

        data: dict[str, Any] = {}
        missing: list[str] = []
        for field in self.fields:
            value = values.get(field.name, "").strip()
            if not value:
                if not field.column.nullable and not field.column.has_default:
                    missing.append(field.name)
                continue
            data[field.name] = value
        if missing:
            raise ValueError(f"required fields missing: {', '.join(missing)}")
        return data

    def changed_data(self, values: Mapping[str, str]) -> dict[str, Any]:
        """Columns whose value differs from the loaded record, primary key excluded."""

        data: dict[str, Any] = {}
        for field in self.fields:
            if field.column.primary_key:
                continue
            value = values.get(field.name, field.original).strip()
            if value == field.original:
                continue
            data[field.name] = None if not value and field.column.nullable else value
        return data


CONNECTION_FIELDS = ("label", "driver", "host", "port", "user", "password", "name", "path")


def build_connection(values: Mapping[str, str]) -> ConnectionConfig:
    """Validate the add-connection form; errors surface as ValueError."""

    raw = {key: values.get(key, "").strip() for key in CONNECTION_FIELDS}
    if not raw["driver"]:
        raise ValueError("driver is required")
    port = raw.pop("port")
    if port and not port.isdigit():
        raise ValueError(f"port must be a number, got {port!r}")
    payload: dict[str, Any] = {key: value for key, value in raw.items() if value}
    payload["port"] = int(port) if port else 0
    try:
        return ConnectionConfig(**payload)
    except ValidationError as exc:
        messages = "; ".join(error["msg"] for error in exc.errors())
        raise ValueError(messages) from exc


def _initial_value(record: Record, column: str) -> str:
    value = record.get(column)
    return "" if value is None else to_display(value)


__all__ = ["CONNECTION_FIELDS", "FormField", "RecordForm", "build_connection"]
