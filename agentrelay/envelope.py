"""Normalization of heterogeneous remote agent responses.

Remote agents answer in several shapes: an A2A task wrapped as
``{"task": {...}}``, a bare task object, a worker-style
``{"id", "status", "result"}`` record, or an arbitrary value. Responses are
classified into a tagged :data:`ResultEnvelope` and unwrapped in a fixed order:
artifact/result data first, then the status message text, then the raw value.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from .constants import FAILED_STATES, WORKING_STATES


class ArtifactResult(BaseModel):
    kind: Literal["artifact"] = "artifact"
    artifact_type: Optional[str] = None
    data: Any = None
    metadata: Optional[Dict[str, Any]] = None

    @property
    def payload(self) -> Any:
        return self.data


class StatusMessage(BaseModel):
    kind: Literal["status"] = "status"
    text: str

    @property
    def payload(self) -> Any:
        return self.text


class DirectValue(BaseModel):
    kind: Literal["direct"] = "direct"
    value: Any = None

    @property
    def payload(self) -> Any:
        return self.value


ResultEnvelope = Annotated[
    Union[ArtifactResult, StatusMessage, DirectValue], Field(discriminator="kind")
]


def task_body(response: Any) -> Optional[Dict[str, Any]]:
    """Return the task object carried by ``response``, if any."""
    if not isinstance(response, dict):
        return None
    inner = response.get("task")
    if isinstance(inner, dict):
        return inner
    if "status" in response or "artifacts" in response:
        return response
    return None


def message_text(message: Any) -> Optional[str]:
    """Extract text from a status message that is a string or an A2A message."""
    if isinstance(message, str):
        return message or None
    if isinstance(message, dict):
        parts = message.get("parts") or []
        for part in parts:
            if isinstance(part, dict) and part.get("text"):
                return part["text"]
    return None


def _pick_artifact(
    artifacts: List[Any], artifact_type: Optional[str]
) -> Optional[Dict[str, Any]]:
    candidates = [a for a in artifacts if isinstance(a, dict)]
    if not candidates:
        return None
    if artifact_type:
        for artifact in candidates:
            if artifact.get("type") == artifact_type:
                return artifact
    return candidates[0]


def classify_response(response: Any, artifact_type: Optional[str] = None) -> ResultEnvelope:
    """Classify ``response`` into one of the three envelope shapes."""
    body = task_body(response)
    if body is not None:
        artifact = _pick_artifact(body.get("artifacts") or [], artifact_type)
        if artifact is not None:
            data = artifact.get("data")
            return ArtifactResult(
                artifact_type=artifact.get("type"),
                data=data if data is not None else response,
                metadata=artifact.get("metadata"),
            )
        if body.get("result") is not None:
            return ArtifactResult(data=body["result"])
        status = body.get("status")
        text = message_text(status.get("message")) if isinstance(status, dict) else None
        if text:
            return StatusMessage(text=text)
    return DirectValue(value=response)


def unwrap_result(response: Any, artifact_type: Optional[str] = None) -> Any:
    return classify_response(response, artifact_type).payload


class RemoteTaskStatus(BaseModel):
    """State of a task on a remote agent."""

    task_id: Optional[str] = None
    state: str
    message: Optional[str] = None
    raw: Any = None

    @property
    def is_working(self) -> bool:
        return self.state in WORKING_STATES

    @property
    def is_failed(self) -> bool:
        return self.state in FAILED_STATES

    @property
    def is_terminal(self) -> bool:
        return not self.is_working

    @classmethod
    def from_response(
        cls, response: Any, task_id: Optional[str] = None
    ) -> Optional["RemoteTaskStatus"]:
        """Parse a task status, or ``None`` when ``response`` carries no task."""
        body = task_body(response)
        if body is None:
            return None
        status = body.get("status")
        if isinstance(status, dict):
            state = status.get("state")
            text = message_text(status.get("message"))
        else:
            state = status
            text = None
        if not isinstance(state, str):
            return None
        error = body.get("error")
        return cls(
            task_id=body.get("id") or task_id,
            state=state.lower(),
            message=text or (error if isinstance(error, str) else None),
            raw=response,
        )
