from __future__ import annotations

import asyncio
import json
import sys
from typing import Any, Optional

import click

from ... import __version__
from ...broadcast import Subscription
from ...exceptions import McpWebError
from ...logging import setup_logging
from ...manager import SessionManager
from ...types import EnvelopeType
from .. import cli, console
from ..branding import BannerRenderer, StatusPrinter
from ..renderers import CatalogTableRenderer
from .options import build_config, interpreter_options

_banner = BannerRenderer(console, __version__)
_status = StatusPrinter(console)
_catalog_renderer = CatalogTableRenderer(console)


async def _await_response(
    subscription: Subscription,
    request_id,
    timeout: float,
) -> dict[str, Any]:
    async def _next_matching():
        async for envelope in subscription:
            if (
                envelope.type is EnvelopeType.SERVER_RESPONSE
                and envelope.payload.get("id") == request_id
            ):
                return envelope.payload
        raise McpWebError("Subscription closed before the response arrived")

    try:
        return await asyncio.wait_for(_next_matching(), timeout)
    except asyncio.TimeoutError:
        raise McpWebError(
            f"No response to request {request_id} within {timeout:g}s"
        ) from None


async def _run_probe(
    path: str,
    config,
    timeout: float,
    include_resources: bool,
    tool_name: Optional[str],
    tool_args: Optional[dict],
) -> None:
    async with SessionManager(config) as manager:
        subscription = manager.hub.subscribe()

        session_id = await manager.connect(path)
        _status.print(f"Spawned [cyan]{session_id}[/cyan]", "loading")

        session = await manager.wait_until_ready(session_id)
        _status.session_state(
            session_id,
            session.state,
            f"{session.server_name or path}, protocol {session.protocol_version or '?'}",
        )

        request_id = await manager.list_tools(session_id)
        await _await_response(subscription, request_id, timeout)
        _catalog_renderer.render_tools(session.tools)

        if include_resources:
            request_id = await manager.list_resources(session_id)
            await _await_response(subscription, request_id, timeout)
            _catalog_renderer.render_resources(session.resources)

        if tool_name:
            request_id = await manager.call_tool(session_id, tool_name, tool_args)
            response = await _await_response(subscription, request_id, timeout)
            _catalog_renderer.render_call_result(tool_name, response)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "-r",
    "--resources",
    "include_resources",
    is_flag=True,
    help="Also list resources",
)
@click.option(
    "-c",
    "--call",
    "tool_name",
    default=None,
    help="Call this tool after listing",
)
@click.option(
    "-a",
    "--args",
    "tool_args",
    default=None,
    help="JSON object of arguments for --call",
)
@click.option(
    "-t",
    "--timeout",
    type=float,
    default=10.0,
    show_default=True,
    help="Seconds to wait for each response",
)
@interpreter_options
@click.pass_context
def probe(
    ctx: click.Context,
    path: str,
    include_resources: bool,
    tool_name: Optional[str],
    tool_args: Optional[str],
    timeout: float,
    handshake_timeout: Optional[float],
    script_interpreter: Optional[str],
    python_interpreter: Optional[str],
):
    """
    Connect to one MCP server and show its catalog.

    Examples:
      mcpweb probe ./server.py
      mcpweb probe ./server.js -r
      mcpweb probe ./server.py -c echo -a '{"text": "hi"}'
    """
    _banner.render("mini")
    console.print()
    _status.print(f"Probing: [cyan]{path}[/cyan]", "loading")

    parsed_args = None
    if tool_args is not None:
        try:
            parsed_args = json.loads(tool_args)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"invalid JSON: {e}", param_hint="--args")
        if not isinstance(parsed_args, dict):
            raise click.BadParameter("must be a JSON object", param_hint="--args")

    config = build_config(
        ctx,
        handshake_timeout=handshake_timeout,
        script_interpreter=script_interpreter,
        python_interpreter=python_interpreter,
    )
    setup_logging(level="WARNING")

    try:
        asyncio.run(
            _run_probe(
                path,
                config,
                timeout,
                include_resources,
                tool_name,
                parsed_args,
            )
        )
    except McpWebError as e:
        console.print()
        _status.print(str(e), "error")
        sys.exit(1)

    console.print()
