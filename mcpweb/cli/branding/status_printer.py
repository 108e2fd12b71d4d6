from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.markup import escape

from ...types import SessionState
from .assets import SESSION_STATE_STATUS, STATUS_ICON_MAP


class StatusPrinter:
    """One-line, icon-prefixed progress messages for CLI commands."""

    def __init__(self, console: Console):
        self._console = console

    def print(self, message: str, status: str = "info"):
        icon = STATUS_ICON_MAP.get(status, STATUS_ICON_MAP["info"])
        self._console.print(f"  {icon} {message}")

    def session_state(
        self,
        session_id: str,
        state: SessionState,
        detail: Optional[str] = None,
    ):
        label = state.value.replace("_", " ")
        suffix = f" [dim]({escape(detail)})[/dim]" if detail else ""
        self.print(
            f"[cyan]{session_id}[/cyan] {label}{suffix}",
            SESSION_STATE_STATUS.get(state, "info"),
        )
