import pytest

from fixtures.fake_agents import FakeAgent, FakeAgentNetwork


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep tests away from any agentrelay.yaml or agent env vars on the host."""
    monkeypatch.setenv("AGENTRELAY_CONFIG", str(tmp_path / "missing.yaml"))
    for name in (
        "AGENT_ID",
        "DATA_PROCESSOR_URL",
        "DATA_PROCESSOR_AGENT_ID",
        "SUMMARIZER_URL",
        "SUMMARIZER_AGENT_ID",
        "WEB_SEARCH_URL",
        "WEB_SEARCH_AGENT_ID",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def network():
    """The three standard agents, reachable only over the HTTP fallback."""
    return FakeAgentNetwork(
        FakeAgent("web-search", artifact_type="search-result"),
        FakeAgent("data-processor"),
        FakeAgent("summarizer"),
    )
