"""Raw request/response transport against ``{base_url}{api_prefix}``."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

import httpx

from ..config import AgentEndpoint
from ..contracts import utcnow
from ..exceptions import RemoteTaskNotFoundError, TransportError
from .base import AgentTransport, build_message

logger = logging.getLogger(__name__)


class HttpTransport(AgentTransport):
    """Fallback transport using the plain ``/message``, ``/task`` and ``/agent`` routes."""

    name = "http"

    def __init__(
        self, client: httpx.AsyncClient, gateway_id: str, api_prefix: str = "/api/a2a"
    ) -> None:
        super().__init__(client, gateway_id)
        self._api_prefix = "/" + api_prefix.strip("/") if api_prefix.strip("/") else ""

    def _url(self, endpoint: AgentEndpoint, path: str) -> str:
        return f"{endpoint.base_url.rstrip('/')}{self._api_prefix}{path}"

    async def send_message(self, endpoint: AgentEndpoint, payload: Any) -> Any:
        message_id = str(uuid.uuid4())
        body = {
            "id": message_id,
            "from": self._gateway_id,
            "to": endpoint.agent_id,
            "message": build_message(payload, message_id),
            "timestamp": utcnow().isoformat(),
        }
        response = await self._request("POST", self._url(endpoint, "/message"), endpoint, body)
        self._raise_for_status(response, endpoint)
        result = self._decode(response, endpoint)
        logger.debug(f"HTTP response from {endpoint.agent_id}: {result}")
        return result

    async def create_task(self, endpoint: AgentEndpoint, payload: Any) -> str:
        task_id = f"task-{uuid.uuid4()}"
        content = payload if isinstance(payload, dict) else {"data": payload}
        body = {
            "taskId": task_id,
            "from": self._gateway_id,
            **content,
            "timestamp": utcnow().isoformat(),
        }
        response = await self._request("POST", self._url(endpoint, "/task"), endpoint, body)
        self._raise_for_status(response, endpoint)
        result = self._decode(response, endpoint)
        if isinstance(result, dict):
            return result.get("id") or result.get("taskId") or task_id
        return task_id

    async def get_task(self, endpoint: AgentEndpoint, task_id: str) -> Any:
        response = await self._request(
            "GET", self._url(endpoint, f"/task/{task_id}"), endpoint
        )
        if response.status_code == 404:
            raise RemoteTaskNotFoundError(endpoint.agent_id, task_id)
        self._raise_for_status(response, endpoint)
        return self._decode(response, endpoint)

    async def get_card(self, endpoint: AgentEndpoint) -> Optional[Dict[str, Any]]:
        response = await self._request("GET", self._url(endpoint, "/agent"), endpoint)
        self._raise_for_status(response, endpoint)
        return self._decode(response, endpoint)
