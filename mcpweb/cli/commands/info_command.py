from __future__ import annotations

import sys

import click
from rich import box
from rich.table import Table

from ... import __version__
from .. import cli, console
from ..branding import BannerRenderer
from .options import build_config

_banner = BannerRenderer(console, __version__)


@cli.command()
@click.pass_context
def info(ctx: click.Context):
    """Show version, interpreters and protocol settings."""
    _banner.render("full")

    config = build_config(ctx)

    table = Table(
        box=box.SIMPLE,
        show_header=False,
        padding=(0, 2),
    )
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Version", __version__)
    table.add_row("Python", sys.version.split()[0])
    table.add_row("Platform", sys.platform)
    table.add_row("MCP protocol", config.protocol_version)
    table.add_row("Client identity", f"{config.client_name} {config.client_version}")
    table.add_row(".js interpreter", config.script_interpreter)
    table.add_row("Other interpreter", config.python_interpreter)
    table.add_row("Handshake timeout", f"{config.handshake_timeout:g}s")
    table.add_row("HTTP address", f"{config.host}:{config.port}")

    console.print(table)
    console.print()
