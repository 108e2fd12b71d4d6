from .assets import (
    BANNER_STYLE_MAP,
    MCPWEB_LOGO_MINI,
    SESSION_STATE_STATUS,
    STATUS_ICON_MAP,
)
from .banner_renderer import BannerRenderer
from .status_printer import StatusPrinter

__all__ = [
    "BannerRenderer",
    "StatusPrinter",
    "BANNER_STYLE_MAP",
    "MCPWEB_LOGO_MINI",
    "SESSION_STATE_STATUS",
    "STATUS_ICON_MAP",
]
