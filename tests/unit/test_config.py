"""Tests for configuration loading."""

import httpx
import pytest
from pydantic import ValidationError

from agentrelay.config import PollingConfig, RelayConfig, load_config
from agentrelay.exceptions import NotFoundError, UnknownAgentError
from agentrelay.transports import A2ATransport, HttpTransport, get_transport


def test_defaults_without_file():
    config = load_config()
    assert config.gateway_id == "gateway-agent-01"
    assert set(config.agents) == {"data-processor", "summarizer", "web-search"}
    assert config.agents["web-search"].base_url == "http://web-search:4111"
    assert config.transport.primary == "a2a"
    assert config.transport.fallback == "http"
    assert config.polling.max_wait > 0


def test_load_config_from_env(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
gateway_id: gateway-test
transport:
  api_prefix: /rpc
  timeout: 5
polling:
  interval: 0.5
  max_attempts: 3
agents:
  summarizer:
    base_url: http://localhost:9000
"""
    )
    monkeypatch.setenv("AGENTRELAY_CONFIG", str(config_path))

    config = load_config()
    assert config.gateway_id == "gateway-test"
    assert config.transport.api_prefix == "/rpc"
    assert config.polling.max_attempts == 3
    # agent entries are merged, not replaced
    assert config.agents["summarizer"].base_url == "http://localhost:9000"
    assert config.agents["summarizer"].agent_id == "summarizer-agent-01"
    assert "web-search" in config.agents


def test_env_overrides_agent_addresses(monkeypatch):
    monkeypatch.setenv("AGENT_ID", "gateway-from-env")
    monkeypatch.setenv("WEB_SEARCH_URL", "http://search.internal:8080")
    monkeypatch.setenv("WEB_SEARCH_AGENT_ID", "search-02")

    config = load_config()
    assert config.gateway_id == "gateway-from-env"
    assert config.agents["web-search"].base_url == "http://search.internal:8080"
    assert config.agents["web-search"].agent_id == "search-02"


def test_explicit_path_wins_over_env(tmp_path, monkeypatch):
    other = tmp_path / "other.yaml"
    other.write_text("gateway_id: from-env-file\n")
    monkeypatch.setenv("AGENTRELAY_CONFIG", str(other))
    explicit = tmp_path / "explicit.yaml"
    explicit.write_text("gateway_id: from-explicit\n")

    assert load_config(str(explicit)).gateway_id == "from-explicit"


def test_resolve_unknown_agent():
    config = RelayConfig()
    with pytest.raises(UnknownAgentError) as exc_info:
        config.resolve_agent("translator")
    assert isinstance(exc_info.value, NotFoundError)


def test_polling_bounds_are_validated():
    with pytest.raises(ValidationError):
        PollingConfig(max_wait=0)
    with pytest.raises(ValidationError):
        PollingConfig(backoff=0.5)


def test_get_transport_uses_config():
    config = RelayConfig(transport={"api_prefix": "/custom"})

    client = httpx.AsyncClient()
    assert isinstance(get_transport("a2a", client, config), A2ATransport)
    http = get_transport("HTTP", client, config)
    assert isinstance(http, HttpTransport)
    assert http._api_prefix == "/custom"
    with pytest.raises(ValueError):
        get_transport("grpc", client, config)
