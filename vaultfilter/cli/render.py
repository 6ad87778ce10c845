from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from typing import Any

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .results import CommandResult


@dataclass(frozen=True, slots=True)
class RenderSettings:
    output: str  # "table" | "json"
    quiet: bool
    verbosity: int


def _error_title(error_type: str) -> str:
    mapping = {
        "usage_error": "Usage error",
        "validation_error": "Validation error",
        "io_error": "I/O error",
        "internal_error": "Internal error",
    }
    return mapping.get((error_type or "").strip(), "Error")


def _format_value(value: Any) -> str:
    if value is None:
        return "(my vault)"
    return str(value)


def _filter_table(basic_filter: dict[str, list[Any]]) -> Table:
    table = Table(show_header=True, header_style="bold")
    table.add_column("category")
    table.add_column("values")
    for key, values in basic_filter.items():
        if not values:
            continue
        table.add_row(key, Text("\n".join(_format_value(v) for v in values)))
    return table


def _render_data(command: str, data: Any) -> Any:
    if not isinstance(data, dict):
        return Text(str(data)) if data is not None else None

    if command == "version":
        return Text(str(data.get("version", "")), style="bold")

    if command == "parse":
        if not data.get("success"):
            return Text("Not representable as a basic filter.", style="yellow")
        basic_filter = data.get("filter") or {}
        if not any(basic_filter.values()):
            return Text("(empty filter)")
        return _filter_table(basic_filter)

    if command in ("format", "canonicalize"):
        if data.get("success") is False:
            return Text("Not representable as a basic filter.", style="yellow")
        # Rich markup would eat the brackets in names like "[prod]".
        return Text(str(data.get("filter", "")))

    table = Table(show_header=True, header_style="bold")
    table.add_column("field")
    table.add_column("value")
    for k, v in data.items():
        table.add_row(str(k), Text(str(v)))
    return table


def render_result(result: CommandResult, *, settings: RenderSettings) -> int:
    stdout = Console(file=sys.stdout, force_terminal=False)
    stderr = Console(file=sys.stderr, force_terminal=False)

    if settings.output == "json":
        payload = result.model_dump(by_alias=True, mode="json")
        sys.stdout.write(json.dumps(payload, ensure_ascii=False) + "\n")
        return 0

    if not result.ok:
        if result.error is not None:
            title = _error_title(result.error.type)
            stderr.print(Text(f"{title}: {result.error.message}"))
            if result.error.hint:
                stderr.print(Text(f"Hint: {result.error.hint}"))
            if settings.verbosity >= 1 and result.error.details:
                stderr.print(Text(json.dumps(result.error.details, ensure_ascii=False)))
        else:
            stderr.print("Error")
        return 0

    renderable = _render_data(result.command, result.data)
    if renderable is not None:
        # Raw filters must come out on one line, whatever the terminal width.
        stdout.print(renderable, soft_wrap=isinstance(renderable, Text))
    return 0
