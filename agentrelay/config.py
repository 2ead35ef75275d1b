from __future__ import annotations

import os
from typing import Dict, Literal, Optional

import yaml
from pydantic import BaseModel, Field

from .constants import (
    DEFAULT_API_PREFIX,
    DEFAULT_GATEWAY_ID,
    DEFAULT_MAX_CONCURRENT_JOBS,
    DEFAULT_MAX_POLL_INTERVAL,
    DEFAULT_MAX_POLL_WAIT,
    DEFAULT_MAX_RECORDS,
    DEFAULT_POLL_BACKOFF,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_REQUEST_TIMEOUT,
)
from .exceptions import UnknownAgentError

TransportName = Literal["a2a", "http"]


class AgentEndpoint(BaseModel):
    """Address of one remote agent."""

    base_url: str
    agent_id: str
    display_name: Optional[str] = None


def _default_agents() -> Dict[str, AgentEndpoint]:
    return {
        "data-processor": AgentEndpoint(
            base_url="http://data-processor:4111",
            agent_id="data-processor-agent-01",
            display_name="Data Processor Agent",
        ),
        "summarizer": AgentEndpoint(
            base_url="http://summarizer:4111",
            agent_id="summarizer-agent-01",
            display_name="Summarizer Agent",
        ),
        "web-search": AgentEndpoint(
            base_url="http://web-search:4111",
            agent_id="web-search-agent-01",
            display_name="Web Search Agent",
        ),
    }


class TransportConfig(BaseModel):
    """Transport selection for remote agent calls."""

    primary: TransportName = "a2a"
    fallback: Optional[TransportName] = "http"
    api_prefix: str = DEFAULT_API_PREFIX
    timeout: float = DEFAULT_REQUEST_TIMEOUT


class PollingConfig(BaseModel):
    """Bounds for waiting on a remote task that is still working."""

    interval: float = Field(default=DEFAULT_POLL_INTERVAL, ge=0)
    backoff: float = Field(default=DEFAULT_POLL_BACKOFF, ge=1)
    max_interval: float = Field(default=DEFAULT_MAX_POLL_INTERVAL, ge=0)
    max_wait: float = Field(default=DEFAULT_MAX_POLL_WAIT, gt=0)
    max_attempts: Optional[int] = Field(default=None, ge=1)


class PersistenceConfig(BaseModel):
    backend: Literal["inmemory"] = "inmemory"
    max_records: Optional[int] = Field(default=DEFAULT_MAX_RECORDS, ge=1)


class OrchestratorConfig(BaseModel):
    max_concurrent_jobs: int = Field(default=DEFAULT_MAX_CONCURRENT_JOBS, ge=1)


class RelayConfig(BaseModel):
    """Top-level configuration model."""

    gateway_id: str = DEFAULT_GATEWAY_ID
    agents: Dict[str, AgentEndpoint] = Field(default_factory=_default_agents)
    transport: TransportConfig = TransportConfig()
    polling: PollingConfig = PollingConfig()
    persistence: PersistenceConfig = PersistenceConfig()
    orchestrator: OrchestratorConfig = OrchestratorConfig()

    def resolve_agent(self, agent_name: str) -> AgentEndpoint:
        """Return the endpoint registered under ``agent_name``."""
        try:
            return self.agents[agent_name]
        except KeyError:
            raise UnknownAgentError(agent_name) from None


def _env_prefix(agent_name: str) -> str:
    return agent_name.upper().replace("-", "_")


def _apply_env_overrides(config: RelayConfig) -> None:
    gateway_id = os.getenv("AGENT_ID")
    if gateway_id:
        config.gateway_id = gateway_id

    for name, endpoint in config.agents.items():
        prefix = _env_prefix(name)
        base_url = os.getenv(f"{prefix}_URL")
        agent_id = os.getenv(f"{prefix}_AGENT_ID")
        if base_url:
            endpoint.base_url = base_url
        if agent_id:
            endpoint.agent_id = agent_id


def load_config(path: Optional[str] = None) -> RelayConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to AGENTRELAY_CONFIG env
            variable or 'agentrelay.yaml' in the current directory.

    Agent addresses can be overridden per agent with ``<AGENT>_URL`` and
    ``<AGENT>_AGENT_ID`` (e.g. ``WEB_SEARCH_URL``).
    """

    config_path = path or os.getenv("AGENTRELAY_CONFIG", "agentrelay.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        agents = data.pop("agents", None)
        config = RelayConfig(**data)
        if agents:
            # merge so a file can override one agent without restating the rest
            for name, values in agents.items():
                current = config.agents.get(name)
                merged = {**(current.model_dump() if current else {}), **values}
                config.agents[name] = AgentEndpoint(**merged)
    else:
        config = RelayConfig()

    _apply_env_overrides(config)
    return config
