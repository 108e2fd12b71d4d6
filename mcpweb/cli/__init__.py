from __future__ import annotations

import sys

import click
from rich.console import Console

from .. import __version__
from ..config import ClientConfig
from ..exceptions import InvalidConfiguration
from .formatting import RichGroup

console = Console()


@click.group(cls=RichGroup)
@click.version_option(
    version=__version__, prog_name="mcpweb"
)
@click.pass_context
def cli(ctx: click.Context):
    """Browse and invoke MCP server tools from the browser."""
    try:
        ctx.obj = ClientConfig.from_env()
    except InvalidConfiguration as e:
        raise click.BadParameter(repr(e.raw), param_hint=e.env_name) from None


from . import commands  # noqa: E402, F401


def main():
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[dim]Stopping servers...[/dim]")
        sys.exit(0)
