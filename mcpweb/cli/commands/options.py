from __future__ import annotations

import click

from ...config import ClientConfig


def interpreter_options(command):
    """Options shared by every command that spawns servers."""
    command = click.option(
        "--python",
        "python_interpreter",
        default=None,
        help="Interpreter for non-.js servers",
    )(command)
    command = click.option(
        "--node",
        "script_interpreter",
        default=None,
        help="Interpreter for .js servers",
    )(command)
    command = click.option(
        "--handshake-timeout",
        type=float,
        default=None,
        help="Seconds allowed for the initialize handshake",
    )(command)
    return command


def build_config(ctx: click.Context, **overrides) -> ClientConfig:
    """Environment config from the group, with command-line flags on top."""
    base = ctx.find_object(ClientConfig) or ClientConfig()
    return base.with_overrides(**overrides)
