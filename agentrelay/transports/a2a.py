"""Structured A2A transport speaking JSON-RPC to ``/a2a/{agent_id}``."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from ..config import AgentEndpoint
from ..exceptions import RemoteTaskNotFoundError, TransportError
from .base import AgentTransport, build_message

logger = logging.getLogger(__name__)

# JSON-RPC error code the A2A protocol uses for an unknown task id.
TASK_NOT_FOUND_CODE = -32001


class A2ATransport(AgentTransport):
    """Primary transport using the A2A JSON-RPC protocol."""

    name = "a2a"

    def _rpc_url(self, endpoint: AgentEndpoint) -> str:
        return f"{endpoint.base_url.rstrip('/')}/a2a/{endpoint.agent_id}"

    async def _call(self, endpoint: AgentEndpoint, method: str, params: Dict[str, Any]) -> Any:
        request_id = str(uuid.uuid4())
        body = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}
        response = await self._request("POST", self._rpc_url(endpoint), endpoint, body)
        self._raise_for_status(response, endpoint)
        data = self._decode(response, endpoint)
        if not isinstance(data, dict):
            raise TransportError(
                f"Malformed JSON-RPC response for {method}",
                transport=self.name,
                agent_name=endpoint.agent_id,
            )
        error = data.get("error")
        if error is not None:
            code = error.get("code") if isinstance(error, dict) else None
            message = error.get("message") if isinstance(error, dict) else str(error)
            if code == TASK_NOT_FOUND_CODE and method == "tasks/get":
                raise RemoteTaskNotFoundError(endpoint.agent_id, params.get("id", ""))
            raise TransportError(
                f"JSON-RPC error {code} for {method}: {message}",
                transport=self.name,
                agent_name=endpoint.agent_id,
            )
        if "result" not in data:
            raise TransportError(
                f"JSON-RPC response for {method} has no result",
                transport=self.name,
                agent_name=endpoint.agent_id,
            )
        return data["result"]

    @staticmethod
    def _as_task_response(result: Any) -> Any:
        if isinstance(result, dict) and ("status" in result or "artifacts" in result):
            return {"task": result}
        return result

    async def send_message(self, endpoint: AgentEndpoint, payload: Any) -> Any:
        result = await self._call(
            endpoint, "message/send", {"message": build_message(payload)}
        )
        logger.debug(f"A2A response from {endpoint.agent_id}: {result}")
        return self._as_task_response(result)

    async def create_task(self, endpoint: AgentEndpoint, payload: Any) -> str:
        result = await self._call(
            endpoint,
            "message/send",
            {"message": build_message(payload), "configuration": {"blocking": False}},
        )
        task_id = result.get("id") if isinstance(result, dict) else None
        if not task_id:
            raise TransportError(
                "A2A message/send returned no task id",
                transport=self.name,
                agent_name=endpoint.agent_id,
            )
        return task_id

    async def get_task(self, endpoint: AgentEndpoint, task_id: str) -> Any:
        result = await self._call(endpoint, "tasks/get", {"id": task_id})
        return self._as_task_response(result)

    async def get_card(self, endpoint: AgentEndpoint) -> Optional[Dict[str, Any]]:
        url = f"{endpoint.base_url.rstrip('/')}/.well-known/{endpoint.agent_id}/agent.json"
        response = await self._request("GET", url, endpoint)
        self._raise_for_status(response, endpoint)
        return self._decode(response, endpoint)
