"""Transport tests."""

import json

import httpx
import pytest

from agentrelay.config import AgentEndpoint
from agentrelay.exceptions import RemoteTaskNotFoundError, TransportError
from agentrelay.transports import A2ATransport, HttpTransport

ENDPOINT = AgentEndpoint(base_url="http://summarizer:4111/", agent_id="summarizer-agent-01")


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _rpc_result(request, result):
    body = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


@pytest.mark.asyncio
async def test_a2a_send_message_request_shape():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return _rpc_result(
            request,
            {"id": "t-1", "status": {"state": "completed"}, "artifacts": [{"data": 1}]},
        )

    transport = A2ATransport(_client(handler), "gateway-agent-01")
    response = await transport.send_message(ENDPOINT, {"type": "summarize"})

    assert seen["url"] == "http://summarizer:4111/a2a/summarizer-agent-01"
    assert seen["body"]["jsonrpc"] == "2.0"
    assert seen["body"]["method"] == "message/send"
    part = seen["body"]["params"]["message"]["parts"][0]
    assert json.loads(part["text"]) == {"type": "summarize"}
    # bare task results are wrapped so callers see one shape
    assert response["task"]["id"] == "t-1"


@pytest.mark.asyncio
async def test_a2a_plain_result_passes_through():
    transport = A2ATransport(_client(lambda r: _rpc_result(r, "just text")), "gw")
    assert await transport.send_message(ENDPOINT, "hello") == "just text"


@pytest.mark.asyncio
async def test_a2a_task_not_found_error_code():
    def handler(request):
        body = json.loads(request.content)
        return httpx.Response(
            200,
            json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32001, "message": "nope"}},
        )

    transport = A2ATransport(_client(handler), "gw")
    with pytest.raises(RemoteTaskNotFoundError):
        await transport.get_task(ENDPOINT, "t-404")


@pytest.mark.asyncio
async def test_a2a_rpc_error_is_transport_error():
    def handler(request):
        body = json.loads(request.content)
        return httpx.Response(
            200,
            json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32603, "message": "oops"}},
        )

    transport = A2ATransport(_client(handler), "gw")
    with pytest.raises(TransportError) as exc_info:
        await transport.send_message(ENDPOINT, {})
    assert exc_info.value.transport == "a2a"
    assert "oops" in str(exc_info.value)


@pytest.mark.asyncio
async def test_a2a_create_task_non_blocking():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return _rpc_result(request, {"id": "t-5", "status": {"state": "submitted"}})

    transport = A2ATransport(_client(handler), "gw")
    assert await transport.create_task(ENDPOINT, {"type": "analyze"}) == "t-5"
    assert seen["body"]["params"]["configuration"] == {"blocking": False}


@pytest.mark.asyncio
async def test_a2a_card_route():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        return httpx.Response(200, json={"name": "Summarizer"})

    transport = A2ATransport(_client(handler), "gw")
    assert await transport.get_card(ENDPOINT) == {"name": "Summarizer"}
    assert seen["path"] == "/.well-known/summarizer-agent-01/agent.json"


@pytest.mark.asyncio
async def test_http_send_message_envelope():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"task": {"id": "t-1", "status": {"state": "working"}}})

    transport = HttpTransport(_client(handler), "gateway-agent-01", "/api/a2a")
    response = await transport.send_message(ENDPOINT, {"type": "summarize"})

    assert seen["url"] == "http://summarizer:4111/api/a2a/message"
    body = seen["body"]
    assert body["from"] == "gateway-agent-01"
    assert body["to"] == "summarizer-agent-01"
    assert body["message"]["messageId"] == body["id"]
    assert response["task"]["status"]["state"] == "working"


@pytest.mark.asyncio
async def test_http_create_task_uses_returned_id():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "remote-7"})

    transport = HttpTransport(_client(handler), "gw")
    assert await transport.create_task(ENDPOINT, {"type": "analyze", "data": [1]}) == "remote-7"
    assert seen["body"]["type"] == "analyze"
    assert seen["body"]["taskId"].startswith("task-")


@pytest.mark.asyncio
async def test_http_get_task_404_is_not_found():
    transport = HttpTransport(_client(lambda r: httpx.Response(404)), "gw")
    with pytest.raises(RemoteTaskNotFoundError) as exc_info:
        await transport.get_task(ENDPOINT, "t-missing")
    assert exc_info.value.task_id == "t-missing"


@pytest.mark.asyncio
async def test_http_server_error():
    transport = HttpTransport(_client(lambda r: httpx.Response(500, text="kaput")), "gw")
    with pytest.raises(TransportError) as exc_info:
        await transport.send_message(ENDPOINT, {})
    assert exc_info.value.status_code == 500
    assert exc_info.value.transport == "http"


@pytest.mark.asyncio
async def test_http_malformed_body():
    transport = HttpTransport(_client(lambda r: httpx.Response(200, text="<html>")), "gw")
    with pytest.raises(TransportError):
        await transport.get_card(ENDPOINT)


@pytest.mark.asyncio
async def test_connection_error_is_transport_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    transport = HttpTransport(_client(handler), "gw")
    with pytest.raises(TransportError):
        await transport.send_message(ENDPOINT, {})
