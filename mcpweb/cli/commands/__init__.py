from . import info_command, probe_command, serve_command

__all__ = [
    "info_command",
    "probe_command",
    "serve_command",
]
