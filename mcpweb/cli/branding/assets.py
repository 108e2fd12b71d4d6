from ...types import SessionState

MCPWEB_LOGO_FULL = """
[bold cyan]
    ╔═══════════════════════════════════════════════════════╗
    ║                                                       ║
    ║    █▀▄▀█ █▀▀ █▀█   █░█░█ █▀▀ █▄▄   [white]MCP Web Client[/white]     ║
    ║    █░▀░█ █▄▄ █▀▀   ▀▄▀▄▀ ██▄ █▄█   [dim]v{version}[/dim]             ║
    ║                                                       ║
    ║    [green]⚡ Live tool & resource explorer[/green]                  ║
    ║                                                       ║
    ╚═══════════════════════════════════════════════════════╝
[/bold cyan]
"""

MCPWEB_LOGO_SMALL = """[bold cyan]
  █▀▄▀█ █▀▀ █▀█   [white]MCP Web Client[/white]
  █░▀░█ █▄▄ █▀▀   [dim]v{version}[/dim]
[/bold cyan]"""

MCPWEB_LOGO_MINI = (
    "[bold cyan]🔌 mcpweb[/bold cyan] [dim]v{version}[/dim]"
)

BANNER_STYLE_MAP = {
    "full": MCPWEB_LOGO_FULL,
    "small": MCPWEB_LOGO_SMALL,
    "mini": MCPWEB_LOGO_MINI,
}

STATUS_ICON_MAP = {
    "info": "[blue]ℹ[/blue]",
    "success": "[green]✓[/green]",
    "warning": "[yellow]⚠[/yellow]",
    "error": "[red]✗[/red]",
    "loading": "[cyan]⟳[/cyan]",
    "server": "[cyan]🔌[/cyan]",
}

SESSION_STATE_STATUS = {
    SessionState.CONNECTING: "loading",
    SessionState.AWAITING_INIT_RESULT: "loading",
    SessionState.AWAITING_INITIALIZED_ACK: "loading",
    SessionState.READY: "success",
    SessionState.FAILED: "error",
    SessionState.CLOSED: "warning",
}
