"""Raw query execution producing display-ready tabular results."""

from __future__ import annotations

from typing import Any, Iterable, Sequence

from .drivers import DatabaseHandle
from .errors import QueryExecutionError
from .models import ResultColumn, TabularResult

NULL_DISPLAY = "NULL"
MIN_COLUMN_WIDTH = 10
DEFAULT_MAX_ROWS = 1000


def run_query(
    handle: DatabaseHandle,
    sql: str,
    params: Sequence[Any] = (),
    *,
    max_rows: int = DEFAULT_MAX_ROWS,
) -> TabularResult:
    """Execute a row-returning statement and materialize at most ``max_rows`` rows."""

    statement = sql.strip()
    if not statement:
        raise QueryExecutionError("Provide SQL to execute.")
    if max_rows > 0:
        # One extra row tells a capped result apart from an exact fit.
        columns, rows = handle.fetch(statement, params, limit=max_rows + 1)
    else:
        columns, rows = handle.fetch(statement, params)
    truncated = max_rows > 0 and len(rows) > max_rows
    if truncated:
        rows = rows[:max_rows]
    return _to_result(columns, rows, truncated=truncated)


def execute_statement(handle: DatabaseHandle, sql: str, params: Sequence[Any] = ()) -> int:
    """Execute a non-row-returning statement and return the affected-row count."""

    statement = sql.strip()
    if not statement:
        raise QueryExecutionError("Provide SQL to execute.")
    return handle.execute(statement, params)


def to_display(value: Any) -> str:
    """Stringify one cell: NULL placeholder, raw text for byte payloads."""

    if value is None:
        return NULL_DISPLAY
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def _to_result(
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    *,
    truncated: bool = False,
) -> TabularResult:
    values = tuple(tuple(row) for row in rows)
    return TabularResult(
        columns=tuple(ResultColumn(title=name, width=max(len(name), MIN_COLUMN_WIDTH)) for name in columns),
        rows=tuple(tuple(to_display(value) for value in row) for row in values),
        values=values,
        truncated=truncated,
    )


__all__ = ["DEFAULT_MAX_ROWS", "NULL_DISPLAY", "execute_statement", "run_query", "to_display"]
