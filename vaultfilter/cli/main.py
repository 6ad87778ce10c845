from __future__ import annotations

import click
import rich_click

import vaultfilter

from .context import CLIContext, resolve_log_file, resolve_output
from .errors import CLIError
from .logging import configure_logging, restore_logging


@click.group(
    name="vault-filter",
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
    cls=rich_click.RichGroup,
)
@click.option(
    "--output",
    type=click.Choice(["table", "json"]),
    default=None,
    help="Output format (default: $VAULT_FILTER_OUTPUT or table).",
)
@click.option("--json", "json_flag", is_flag=True, help="Alias for --output json.")
@click.option("-q", "--quiet", is_flag=True, help="Suppress non-essential stderr output.")
@click.option("-v", "verbose", count=True, help="Increase verbosity (-v, -vv).")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Also write debug logs to this file (default: $VAULT_FILTER_LOG_FILE).",
)
@click.version_option(version=vaultfilter.__version__, prog_name="vault-filter")
@click.pass_context
def cli(
    click_ctx: click.Context,
    *,
    output: str | None,
    json_flag: bool,
    quiet: bool,
    verbose: int,
    log_file: str | None,
) -> None:
    """Convert between vault facet selections and raw search filters."""
    if click_ctx.invoked_subcommand is None:
        click.echo(click_ctx.get_help())
        raise click.exceptions.Exit(0)

    try:
        out = resolve_output(output, json_flag=json_flag)
    except CLIError as exc:
        raise click.UsageError(exc.message) from exc

    effective_log_file = resolve_log_file(log_file)
    click_ctx.obj = CLIContext(
        output=out,
        quiet=quiet,
        verbosity=verbose,
        log_file=effective_log_file,
    )

    previous_logging = configure_logging(verbosity=verbose, log_file=effective_log_file)
    click_ctx.call_on_close(lambda: restore_logging(previous_logging))


# Register commands
from .commands.filter_cmds import canonicalize_cmd as _canonicalize_cmd  # noqa: E402
from .commands.filter_cmds import format_cmd as _format_cmd  # noqa: E402
from .commands.filter_cmds import parse_cmd as _parse_cmd  # noqa: E402
from .commands.version_cmd import version_cmd as _version_cmd  # noqa: E402

cli.add_command(_version_cmd)
cli.add_command(_parse_cmd)
cli.add_command(_format_cmd)
cli.add_command(_canonicalize_cmd)
