from __future__ import annotations

import os
import sys
from dataclasses import dataclass, fields, replace
from typing import Any

from .exceptions import InvalidConfiguration
from .types import ClientIdentity

ENV_PREFIX = "MCPWEB_"

DEFAULT_PROTOCOL_VERSION = "2024-11-05"
DEFAULT_HANDSHAKE_TIMEOUT = 10.0
DEFAULT_TERMINATION_TIMEOUT = 2.0
DEFAULT_READ_CHUNK_SIZE = 65536
DEFAULT_SUBSCRIBER_QUEUE_SIZE = 256
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000


@dataclass(frozen=True)
class ClientConfig:
    """
    Runtime configuration for the session manager and its HTTP surface.

    Every field can be set from a ``MCPWEB_<FIELD_NAME>`` environment
    variable (see ``from_env``) and overridden from the command line.
    """

    script_interpreter: str = "node"
    python_interpreter: str = sys.executable or "python3"
    protocol_version: str = DEFAULT_PROTOCOL_VERSION
    client_name: str = "mcp-web-client"
    client_version: str = "1.0.0"
    handshake_timeout: float = DEFAULT_HANDSHAKE_TIMEOUT
    termination_timeout: float = (
        DEFAULT_TERMINATION_TIMEOUT
    )
    read_chunk_size: int = DEFAULT_READ_CHUNK_SIZE
    subscriber_queue_size: int = (
        DEFAULT_SUBSCRIBER_QUEUE_SIZE
    )
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    @property
    def client_identity(self) -> ClientIdentity:
        return ClientIdentity(
            name=self.client_name,
            version=self.client_version,
        )

    @classmethod
    def from_env(cls, environ=None) -> ClientConfig:
        environ = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        for config_field in fields(cls):
            env_name = (
                f"{ENV_PREFIX}{config_field.name.upper()}"
            )
            raw = environ.get(env_name)
            if raw is None or raw == "":
                continue
            values[config_field.name] = _coerce(
                env_name, raw, config_field.type
            )

        return cls(**values)

    def with_overrides(self, **overrides) -> ClientConfig:
        """Return a copy with every non-None override applied."""
        applied = {
            key: value
            for key, value in overrides.items()
            if value is not None
        }
        return replace(self, **applied)


def _coerce(env_name: str, raw: str, type_name) -> Any:
    # Field types are strings under postponed annotations
    type_name = getattr(type_name, "__name__", type_name)
    try:
        if type_name == "int":
            return int(raw)
        if type_name == "float":
            return float(raw)
    except ValueError:
        raise InvalidConfiguration(env_name, raw) from None
    return raw
