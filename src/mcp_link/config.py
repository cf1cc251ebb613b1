"""Client configuration.

Values can be set directly or read from the environment:

    MCP_LINK_PROTOCOL_VERSION   protocol version announced in initialize
    MCP_LINK_CLIENT_NAME        client name announced in initialize
    MCP_LINK_REQUEST_TIMEOUT    default per-call timeout, seconds
    MCP_LINK_CLOSE_TIMEOUT      per-step timeout when closing the server process
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Any

from . import __version__
from .protocol.types import DEFAULT_PROTOCOL_VERSION

ENV_PREFIX = "MCP_LINK_"


def _env_float(name: str) -> float | None:
    raw = os.getenv(f"{ENV_PREFIX}{name}")
    if raw is None or not raw.strip():
        return None
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from e


@dataclass
class ClientConfig:
    """Configuration for :class:`~mcp_link.client.McpClient`."""

    # Handshake
    protocol_version: str = DEFAULT_PROTOCOL_VERSION
    client_name: str = "mcp-link"
    client_version: str = __version__
    capabilities: dict[str, Any] = field(default_factory=dict)

    # Timeouts (seconds); None means wait indefinitely
    request_timeout: float | None = None
    shutdown_timeout: float | None = 5.0
    close_timeout: float = 5.0

    # Subprocess settings (stdio transport)
    env: dict[str, str] | None = None
    cwd: str | None = None

    @classmethod
    def from_env(cls, **overrides: Any) -> ClientConfig:
        """Build a config from ``MCP_LINK_*`` variables, then apply overrides.

        Raises:
            ValueError: If a numeric variable does not parse
        """
        config = cls()
        if version := os.getenv(f"{ENV_PREFIX}PROTOCOL_VERSION"):
            config.protocol_version = version
        if name := os.getenv(f"{ENV_PREFIX}CLIENT_NAME"):
            config.client_name = name
        if (request_timeout := _env_float("REQUEST_TIMEOUT")) is not None:
            config.request_timeout = request_timeout
        if (close_timeout := _env_float("CLOSE_TIMEOUT")) is not None:
            config.close_timeout = close_timeout
        return replace(config, **overrides)
