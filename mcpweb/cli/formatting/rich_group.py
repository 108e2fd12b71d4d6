from __future__ import annotations

import click
from rich import box
from rich.table import Table

from ..branding import BannerRenderer


class RichGroup(click.Group):
    """Click group whose help page is a rich banner plus command table."""

    def format_help(self, ctx, formatter):
        from ... import __version__
        from .. import console

        BannerRenderer(console, __version__).render("small")
        console.print()

        if self.help:
            console.print(f"  {self.help}")
            console.print()

        visible_commands = [
            (name, cmd)
            for name, cmd in self.commands.items()
            if not cmd.hidden
        ]
        if visible_commands:
            table = Table(
                box=box.ROUNDED,
                show_header=True,
                header_style="bold cyan",
                border_style="dim",
                padding=(0, 2),
            )
            table.add_column("Command", style="green")
            table.add_column("Description", style="white")
            for name, cmd in visible_commands:
                table.add_row(
                    name, cmd.get_short_help_str(limit=50)
                )
            console.print("  [bold]Commands[/bold]")
            console.print()
            console.print(table)
            console.print()

        console.print(
            "  [dim]Run[/dim]"
            " [cyan]mcpweb <command> --help[/cyan]"
            " [dim]for details on a specific command[/dim]"
        )
        console.print()
