from __future__ import annotations

import platform

import click
import rich_click

import vaultfilter

from ..context import CLIContext
from ..options import output_options
from ..runner import CommandOutput, run_command


@click.command(name="version", cls=rich_click.RichCommand)
@output_options
@click.pass_obj
def version_cmd(ctx: CLIContext) -> None:
    """Show version information."""

    def fn(_: CLIContext, _warnings: list[str]) -> CommandOutput:
        data = {
            "version": vaultfilter.__version__,
            "pythonVersion": platform.python_version(),
            "platform": platform.platform(),
        }
        return CommandOutput(data=data)

    run_command(ctx, command="version", fn=fn)
