from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click
import rich_click

from vaultfilter import BasicFilter, ParseFailure, to_filter, try_parse

from ..context import CLIContext
from ..errors import CLIError
from ..options import output_options
from ..runner import CommandOutput, run_command

_TERMS_DROPPED = "Free-text terms are not part of the canonical filter and were dropped: {}"


def _read_source(source: str) -> str:
    if source == "-":
        return click.get_text_stream("stdin").read()
    path = Path(source)
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(
            f"Cannot read {path}: {exc.strerror or exc}",
            exit_code=2,
            error_type="io_error",
        ) from exc


def _load_basic_filter(source: str) -> BasicFilter:
    text = _read_source(source)
    try:
        payload: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        raise CLIError(
            f"Invalid JSON in basic filter: {exc.msg} (line {exc.lineno}, column {exc.colno})",
            exit_code=2,
            error_type="usage_error",
        ) from exc
    return BasicFilter.from_dict(payload)


@click.command(name="parse", cls=rich_click.RichCommand)
@click.argument("raw")
@output_options
@click.pass_obj
def parse_cmd(ctx: CLIContext, raw: str) -> None:
    """Reduce a raw filter to a basic filter.

    Exits with code 1 when the filter cannot be expressed with facets.
    """

    def fn(_: CLIContext, _warnings: list[str]) -> CommandOutput:
        result = try_parse(raw)
        if isinstance(result, ParseFailure):
            return CommandOutput(data={"success": False, "raw": raw}, exit_code=1)
        return CommandOutput(data={"success": True, "filter": result.filter.to_dict()})

    run_command(ctx, command="parse", fn=fn)


@click.command(name="format", cls=rich_click.RichCommand)
@click.option("--my-vault", is_flag=True, help="Include the personal vault.")
@click.option("--org", "orgs", multiple=True, metavar="ID", help="Organization vault (repeatable).")
@click.option("--folder", "folders", multiple=True, metavar="NAME", help="Folder (repeatable).")
@click.option(
    "--collection", "collections", multiple=True, metavar="NAME", help="Collection (repeatable)."
)
@click.option("--type", "types", multiple=True, metavar="NAME", help="Item type (repeatable).")
@click.option("--field", "fields", multiple=True, metavar="NAME", help="Custom field (repeatable).")
@click.option(
    "--from-json",
    "from_json",
    type=str,
    default=None,
    help="Read a basic filter JSON object from a file ('-' for stdin).",
)
@output_options
@click.pass_obj
def format_cmd(
    ctx: CLIContext,
    *,
    my_vault: bool,
    orgs: tuple[str, ...],
    folders: tuple[str, ...],
    collections: tuple[str, ...],
    types: tuple[str, ...],
    fields: tuple[str, ...],
    from_json: str | None,
) -> None:
    """Build the canonical raw filter for a facet selection."""

    def fn(_: CLIContext, warnings: list[str]) -> CommandOutput:
        has_facets = my_vault or any((orgs, folders, collections, types, fields))
        if from_json is not None:
            if has_facets:
                raise CLIError(
                    "--from-json cannot be combined with facet options.",
                    exit_code=2,
                    error_type="usage_error",
                )
            basic_filter = _load_basic_filter(from_json)
        else:
            vaults: list[str | None] = [None] if my_vault else []
            vaults.extend(orgs)
            basic_filter = BasicFilter(
                vaults=tuple(vaults),
                folders=folders,
                collections=collections,
                types=types,
                fields=fields,
            )

        if basic_filter.terms:
            warnings.append(_TERMS_DROPPED.format(", ".join(basic_filter.terms)))
        return CommandOutput(data={"filter": to_filter(basic_filter)}, warnings=warnings)

    run_command(ctx, command="format", fn=fn)


@click.command(name="canonicalize", cls=rich_click.RichCommand)
@click.argument("raw")
@output_options
@click.pass_obj
def canonicalize_cmd(ctx: CLIContext, raw: str) -> None:
    """Rewrite a raw filter in canonical form.

    Exits with code 1 when the filter cannot be expressed with facets.
    """

    def fn(_: CLIContext, warnings: list[str]) -> CommandOutput:
        result = try_parse(raw)
        if isinstance(result, ParseFailure):
            return CommandOutput(data={"success": False, "raw": raw}, exit_code=1)
        if result.filter.terms:
            warnings.append(_TERMS_DROPPED.format(", ".join(result.filter.terms)))
        return CommandOutput(
            data={"success": True, "filter": to_filter(result.filter)}, warnings=warnings
        )

    run_command(ctx, command="canonicalize", fn=fn)
