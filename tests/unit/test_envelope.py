"""Tests for remote response classification."""

from agentrelay.envelope import (
    ArtifactResult,
    DirectValue,
    RemoteTaskStatus,
    StatusMessage,
    classify_response,
    unwrap_result,
)


def _task(status="completed", text=None, artifacts=None, **extra):
    status_body = {"state": status}
    if text is not None:
        status_body["message"] = {"role": "agent", "parts": [{"type": "text", "text": text}]}
    body = {"id": "t-1", "status": status_body, **extra}
    if artifacts is not None:
        body["artifacts"] = artifacts
    return {"task": body}


def test_artifact_data_is_preferred():
    response = _task(text="done", artifacts=[{"type": "result", "data": {"rows": 3}}])
    envelope = classify_response(response)
    assert isinstance(envelope, ArtifactResult)
    assert envelope.payload == {"rows": 3}


def test_matching_artifact_type_is_selected():
    response = _task(
        artifacts=[
            {"type": "log", "data": "noise"},
            {"type": "search-result", "data": ["hit"]},
        ]
    )
    assert unwrap_result(response, "search-result") == ["hit"]
    assert unwrap_result(response, "missing-type") == "noise"


def test_artifact_without_data_returns_whole_response():
    response = _task(artifacts=[{"type": "result", "parts": [{"text": "x"}]}])
    envelope = classify_response(response)
    assert isinstance(envelope, ArtifactResult)
    assert envelope.artifact_type == "result"
    assert envelope.payload == response


def test_worker_result_field():
    response = {"id": "w-1", "status": "completed", "result": {"value": 7}}
    assert unwrap_result(response) == {"value": 7}


def test_status_message_text_used_when_no_artifacts():
    envelope = classify_response(_task(text="Summary text", artifacts=[]))
    assert isinstance(envelope, StatusMessage)
    assert envelope.payload == "Summary text"


def test_plain_values_pass_through():
    envelope = classify_response({"answer": 42})
    assert isinstance(envelope, DirectValue)
    assert envelope.payload == {"answer": 42}
    assert unwrap_result("plain text") == "plain text"
    assert unwrap_result(None) is None


def test_status_from_wrapped_task():
    status = RemoteTaskStatus.from_response(_task(status="WORKING", text="busy"))
    assert status.task_id == "t-1"
    assert status.state == "working"
    assert status.message == "busy"
    assert status.is_working
    assert not status.is_terminal


def test_status_from_worker_record():
    response = {"id": "w-2", "status": "failed", "error": "disk full"}
    status = RemoteTaskStatus.from_response(response)
    assert status.is_failed
    assert status.message == "disk full"


def test_submitted_counts_as_working():
    status = RemoteTaskStatus.from_response({"id": "x", "status": {"state": "submitted"}})
    assert status.is_working


def test_status_absent():
    assert RemoteTaskStatus.from_response({"answer": 42}) is None
    assert RemoteTaskStatus.from_response("text") is None
    assert RemoteTaskStatus.from_response({"status": {"code": 1}}) is None


def test_status_uses_fallback_task_id():
    status = RemoteTaskStatus.from_response({"status": {"state": "completed"}}, task_id="t-9")
    assert status.task_id == "t-9"
