"""
MCP Web Client Logging Module

Provides rich console logging for the session manager with:
- Colored output keyed to session lifecycle
- Structured log format for non-interactive use
- Semantic helpers for handshake, frame and subscriber events

Usage:
    from mcpweb.logging import setup_logging

    logger = setup_logging(level="DEBUG")
    logger.handshake_completed("server_1a2b", "echo-server")
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.text import Text
from rich.theme import Theme

# =============================================================================
# THEME
# =============================================================================

MCPWEB_THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "debug": "dim",
        "session.id": "bold white",
        "session.ready": "bold green",
        "session.failed": "bold red",
        "session.closed": "bold yellow",
        "frame": "cyan",
        "stderr": "magenta",
        "subscriber": "blue",
    }
)

PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
PLAIN_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


# =============================================================================
# CUSTOM LOG HANDLER
# =============================================================================


class McpWebRichHandler(RichHandler):
    """Rich handler with level icons."""

    LEVEL_ICONS = {
        "DEBUG": "🔍",
        "INFO": "ℹ️ ",
        "WARNING": "⚠️ ",
        "ERROR": "❌",
        "CRITICAL": "🚨",
    }

    LEVEL_STYLES = {
        "DEBUG": "dim",
        "INFO": "cyan",
        "WARNING": "yellow",
        "ERROR": "red",
        "CRITICAL": "bold red",
    }

    def __init__(self, *args, **kwargs):
        kwargs.setdefault("show_time", True)
        kwargs.setdefault("show_path", False)
        kwargs.setdefault("rich_tracebacks", True)
        super().__init__(*args, **kwargs)

    def get_level_text(
        self, record: logging.LogRecord
    ) -> Text:
        level_name = record.levelname
        icon = self.LEVEL_ICONS.get(level_name, "•")
        style = self.LEVEL_STYLES.get(level_name, "white")
        return Text(f"{icon} {level_name:<8}", style=style)


# =============================================================================
# MCPWEB LOGGER
# =============================================================================


class McpWebLogger:
    """
    High-level logging interface for the session manager.

    Example:
        logger = McpWebLogger("manager")
        logger.session_spawned("server_1a2b", ["node", "server.js"])
    """

    def __init__(self, name: str, level: Optional[str] = None):
        self.name = name
        self._logger = logging.getLogger(f"mcpweb.{name}")
        if level is not None:
            self._logger.setLevel(
                getattr(logging, level.upper())
            )

    @property
    def stdlib_logger(self) -> logging.Logger:
        return self._logger

    def _log(self, level: int, message: str, **kwargs):
        extra = {"markup": True, **kwargs}
        self._logger.log(level, message, extra=extra)

    # =========================================================================
    # SESSION LIFECYCLE
    # =========================================================================

    def session_spawned(self, session_id: str, argv: list[str]):
        command = escape(" ".join(argv))
        self._log(
            logging.INFO,
            f"[session.id]{session_id}[/session.id] spawned: [cyan]{command}[/cyan]",
        )

    def handshake_completed(
        self,
        session_id: str,
        server_name: Optional[str] = None,
    ):
        server = f" ({escape(server_name)})" if server_name else ""
        self._log(
            logging.INFO,
            f"[session.id]{session_id}[/session.id]{server} "
            f"[session.ready]fully initialized[/session.ready]",
        )

    def session_failed(self, session_id: str, reason: str):
        self._log(
            logging.ERROR,
            f"[session.id]{session_id}[/session.id] "
            f"[session.failed]failed:[/session.failed] {escape(reason)}",
        )

    def session_closed(
        self,
        session_id: str,
        returncode: Optional[int] = None,
    ):
        self._log(
            logging.INFO,
            f"[session.id]{session_id}[/session.id] "
            f"[session.closed]closed[/session.closed] [dim](exit code {returncode})[/dim]",
        )

    # =========================================================================
    # FRAMES
    # =========================================================================

    def command_sent(
        self, session_id: str, method: str, request_id
    ):
        self._log(
            logging.DEBUG,
            f"[session.id]{session_id}[/session.id] → [frame]{method}[/frame] [dim](id {request_id})[/dim]",
        )

    def frame_malformed(
        self, session_id: str, reason: str, raw_text: str
    ):
        preview = escape(raw_text[:120])
        self._log(
            logging.WARNING,
            f"[session.id]{session_id}[/session.id] malformed frame: "
            f"{escape(reason)} [dim]// {preview}[/dim]",
        )

    def server_stderr(self, session_id: str, text: str):
        self._log(
            logging.INFO,
            f"[stderr]Server {session_id} error:[/stderr] {escape(text)}",
        )

    # =========================================================================
    # SUBSCRIBERS / SERVER
    # =========================================================================

    def subscriber_connected(
        self, subscriber_id: str, address: Optional[str]
    ):
        self._log(
            logging.INFO,
            f"[subscriber]WebSocket client connected:[/subscriber] "
            f"{subscriber_id} from {address or 'unknown'}",
        )

    def subscriber_disconnected(
        self, subscriber_id: str, dropped: int = 0
    ):
        suffix = f" ({dropped} envelopes dropped)" if dropped else ""
        self._log(
            logging.DEBUG,
            f"[dim]WebSocket client disconnected: {subscriber_id}{suffix}[/dim]",
        )

    def server_started(self, address: str):
        self._log(
            logging.INFO,
            f"MCP Web Client running on [cyan]http://{address}[/cyan] "
            f"[dim](WebSocket on /ws)[/dim]",
        )

    def server_stopped(self):
        self._log(logging.INFO, "[dim]Server stopped[/dim]")

    # =========================================================================
    # GENERIC
    # =========================================================================

    def error(self, message: str, exc_info: bool = False):
        self._logger.error(message, exc_info=exc_info)

    def warning(self, message: str):
        self._log(
            logging.WARNING, f"[warning]{message}[/warning]"
        )

    def info(self, message: str):
        self._log(logging.INFO, message)

    def debug(self, message: str):
        self._log(logging.DEBUG, f"[dim]{message}[/dim]")


# =============================================================================
# SETUP FUNCTION
# =============================================================================


def setup_logging(
    level: str = "INFO",
    rich_output: bool = True,
    log_file: Optional[str] = None,
) -> McpWebLogger:
    """
    Configure the ``mcpweb`` logger tree.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        rich_output: Enable rich console output (disable when piping logs)
        log_file: Optional file path for log output

    Returns:
        McpWebLogger for the main program
    """
    root_logger = logging.getLogger("mcpweb")
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    if rich_output:
        console = Console(theme=MCPWEB_THEME, stderr=True)
        handler = McpWebRichHandler(console=console)
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter(
                PLAIN_FORMAT, datefmt=PLAIN_DATE_FORMAT
            )
        )
    root_logger.addHandler(handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter(
                PLAIN_FORMAT, datefmt=PLAIN_DATE_FORMAT
            )
        )
        root_logger.addHandler(file_handler)

    return McpWebLogger("main")


def get_logger(name: str) -> McpWebLogger:
    return McpWebLogger(name)
