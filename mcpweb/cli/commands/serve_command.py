from __future__ import annotations

import sys
from typing import Optional

import click

from ... import __version__
from ...logging import setup_logging
from ...manager import SessionManager
from ...transports import HTTPTransport
from .. import cli, console
from ..branding import BannerRenderer, StatusPrinter
from .options import build_config, interpreter_options

_banner = BannerRenderer(console, __version__)
_status = StatusPrinter(console)


@cli.command()
@click.option(
    "--host",
    default=None,
    help="HTTP host to bind to",
)
@click.option(
    "-p",
    "--port",
    type=int,
    default=None,
    help="HTTP port (WebSocket is served on /ws)",
)
@interpreter_options
@click.option(
    "--log-file",
    default=None,
    help="Also write logs to this file",
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Enable verbose logging",
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    help="Minimal output",
)
@click.pass_context
def serve(
    ctx: click.Context,
    host: Optional[str],
    port: Optional[int],
    handshake_timeout: Optional[float],
    script_interpreter: Optional[str],
    python_interpreter: Optional[str],
    log_file: Optional[str],
    verbose: bool,
    quiet: bool,
):
    """
    Run the HTTP API and WebSocket relay.

    Examples:
      mcpweb serve
      mcpweb serve --port 8080 --node /usr/local/bin/node
    """
    config = build_config(
        ctx,
        handshake_timeout=handshake_timeout,
        script_interpreter=script_interpreter,
        python_interpreter=python_interpreter,
        host=host,
        port=port,
    )

    if not quiet:
        _banner.render("small", tagline="Live tool & resource explorer")
        console.print()

    log_level = (
        "DEBUG"
        if verbose
        else "INFO" if not quiet else "WARNING"
    )
    logger = setup_logging(
        level=log_level,
        rich_output=sys.stderr.isatty(),
        log_file=log_file,
    )

    if not quiet:
        _status.print(
            f"Serving on [cyan]http://{config.host}:{config.port}[/cyan]"
            f" [dim](WebSocket: /ws)[/dim]",
            "server",
        )
        _status.print(
            f".js servers run with [cyan]{config.script_interpreter}[/cyan],"
            f" others with [cyan]{config.python_interpreter}[/cyan]",
            "info",
        )
        console.print("  [dim]Press Ctrl+C to stop[/dim]")
        console.print()

    manager = SessionManager(config)
    HTTPTransport(
        manager,
        host=config.host,
        port=config.port,
        mcpweb_logger=logger,
    ).run()
