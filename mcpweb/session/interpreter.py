from __future__ import annotations

from pathlib import PurePath
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mcpweb.config import ClientConfig

SCRIPT_EXTENSIONS = (".js",)


def select_interpreter(
    server_path: str, config: ClientConfig
) -> str:
    suffix = PurePath(server_path).suffix.lower()
    if suffix in SCRIPT_EXTENSIONS:
        return config.script_interpreter
    return config.python_interpreter


def build_spawn_args(
    server_path: str, config: ClientConfig
) -> list[str]:
    return [
        select_interpreter(server_path, config),
        server_path,
    ]
