import json

from typer.testing import CliRunner

import agentrelay.cli as cli
from agentrelay.cli import app
from agentrelay.client import RemoteAgentClient
from fixtures.fake_agents import FakeAgent, FakeAgentNetwork

runner = CliRunner()


def _use_network(monkeypatch, network):
    def client_factory(config):
        return RemoteAgentClient(config, http_client=network.http_client())

    monkeypatch.setattr(cli, "RemoteAgentClient", client_factory)


def test_config_show_prints_effective_config():
    result = runner.invoke(app, ["config", "show"])
    assert result.exit_code == 0, result.output
    config = json.loads(result.output)
    assert config["gateway_id"] == "gateway-agent-01"
    assert "web-search" in config["agents"]


def test_agent_list():
    result = runner.invoke(app, ["agent", "list"])
    assert result.exit_code == 0, result.output
    assert "summarizer\tsummarizer-agent-01\thttp://summarizer:4111" in result.output


def test_agent_card(monkeypatch, network):
    _use_network(monkeypatch, network)
    result = runner.invoke(app, ["agent", "card", "summarizer"])
    assert result.exit_code == 0, result.output
    assert '"name": "summarizer agent"' in result.output


def test_agent_card_unknown_agent():
    result = runner.invoke(app, ["agent", "card", "translator"])
    assert result.exit_code == 1
    assert "Unknown agent: translator" in result.output


def test_run_invalid_request_exits_2():
    result = runner.invoke(app, ["run", "deep-research"])
    assert result.exit_code == 2
    assert "Invalid request" in result.output


def test_run_process_job(monkeypatch):
    network = FakeAgentNetwork(FakeAgent("data-processor"))
    _use_network(monkeypatch, network)

    result = runner.invoke(
        app, ["run", "process", "--data", '{"rows": [1, 2]}', "--interval", "0.01"]
    )
    assert result.exit_code == 0, result.output
    assert "completed" in result.output
    assert "data-processing: completed" in result.output
    assert network.calls_to("data-processor", "message")[0]["data"] == {"rows": [1, 2]}


def test_run_failed_job_exits_1(monkeypatch):
    network = FakeAgentNetwork(FakeAgent("summarizer", http_enabled=False))
    _use_network(monkeypatch, network)

    result = runner.invoke(app, ["run", "summarize", "--data", "text", "--interval", "0.01"])
    assert result.exit_code == 1
    assert "failed" in result.output
