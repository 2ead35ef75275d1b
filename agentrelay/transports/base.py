"""Base transport interface for calls to remote agents."""

from __future__ import annotations

import abc
import json
import uuid
from typing import Any, Dict, Optional

import httpx

from ..config import AgentEndpoint
from ..exceptions import TransportError


def build_message(payload: Any, message_id: Optional[str] = None) -> Dict[str, Any]:
    """Wrap ``payload`` as a single-part user message."""
    text = payload if isinstance(payload, str) else json.dumps(payload, default=str)
    return {
        "role": "user",
        "parts": [{"type": "text", "text": text}],
        "messageId": message_id or str(uuid.uuid4()),
    }


class AgentTransport(metaclass=abc.ABCMeta):
    """Abstract transport to a remote agent.

    Implementations raise :class:`TransportError` for connection failures,
    non-success statuses and malformed bodies.
    """

    name: str = "base"

    def __init__(self, client: httpx.AsyncClient, gateway_id: str) -> None:
        self._client = client
        self._gateway_id = gateway_id

    @abc.abstractmethod
    async def send_message(self, endpoint: AgentEndpoint, payload: Any) -> Any:
        """Send a message and return the decoded response."""
        raise NotImplementedError

    @abc.abstractmethod
    async def create_task(self, endpoint: AgentEndpoint, payload: Any) -> str:
        """Create a remote task and return its id without waiting."""
        raise NotImplementedError

    @abc.abstractmethod
    async def get_task(self, endpoint: AgentEndpoint, task_id: str) -> Any:
        """Fetch the current state of a remote task."""
        raise NotImplementedError

    @abc.abstractmethod
    async def get_card(self, endpoint: AgentEndpoint) -> Optional[Dict[str, Any]]:
        """Fetch the agent's discovery card."""
        raise NotImplementedError

    async def _request(
        self,
        method: str,
        url: str,
        endpoint: AgentEndpoint,
        json_body: Any = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, url, json=json_body)
        except httpx.HTTPError as e:
            raise TransportError(
                f"{method} {url} failed: {e!r}",
                transport=self.name,
                agent_name=endpoint.agent_id,
            ) from e
        return response

    def _raise_for_status(self, response: httpx.Response, endpoint: AgentEndpoint) -> None:
        if response.is_success:
            return
        raise TransportError(
            f"HTTP error {response.status_code} from {response.request.url}: "
            f"{response.text[:200]}",
            transport=self.name,
            agent_name=endpoint.agent_id,
            status_code=response.status_code,
        )

    def _decode(self, response: httpx.Response, endpoint: AgentEndpoint) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(
                f"Malformed response from {response.request.url}: {e}",
                transport=self.name,
                agent_name=endpoint.agent_id,
                status_code=response.status_code,
            ) from e
