"""Transport factory and initialization."""

from __future__ import annotations

from typing import Optional

import httpx

from ..config import RelayConfig, load_config
from .a2a import A2ATransport
from .base import AgentTransport, build_message
from .http import HttpTransport


def get_transport(
    name: str,
    client: httpx.AsyncClient,
    config: Optional[RelayConfig] = None,
) -> AgentTransport:
    """Factory function to get a transport by name."""

    config = config or load_config()
    name = name.lower()
    if name == "a2a":
        return A2ATransport(client, config.gateway_id)
    elif name == "http":
        return HttpTransport(client, config.gateway_id, config.transport.api_prefix)
    else:
        raise ValueError(f"Unsupported transport: {name}")


__all__ = [
    "AgentTransport",
    "A2ATransport",
    "HttpTransport",
    "build_message",
    "get_transport",
]
