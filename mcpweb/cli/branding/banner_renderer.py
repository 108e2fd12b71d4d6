from __future__ import annotations

from typing import Optional

from rich.console import Console

from .assets import BANNER_STYLE_MAP, MCPWEB_LOGO_MINI


class BannerRenderer:
    """Prints the mcpweb logo, optionally followed by a dimmed tagline."""

    def __init__(self, console: Console, version: str):
        self._console = console
        self._version = version

    def render(self, style: str = "full", tagline: Optional[str] = None):
        banner = BANNER_STYLE_MAP.get(style, MCPWEB_LOGO_MINI).format(
            version=self._version
        )
        if tagline:
            banner = f"{banner}\n  [dim]{tagline}[/dim]"
        self._console.print(banner)
