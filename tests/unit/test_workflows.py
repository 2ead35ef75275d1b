"""Tests for the built-in pipeline payloads and result shaping."""

from agentrelay.contracts import OrchestrationRequest
from agentrelay.pipeline import PhaseContext
from agentrelay.workflows import default_pipelines
from agentrelay.workflows.deep_research import (
    extract_key_findings,
    extract_recommendations,
)


def _context(outputs=None, **request):
    return PhaseContext(
        task_id="task-1",
        execution_id="exec-1",
        request=OrchestrationRequest(**request),
        outputs=outputs or {},
    )


SYNTHESIS = """Report

1. The key finding is that costs fell by 40%.
2. Adoption doubled in two years.
- We recommend piloting in one region.
- Teams should improve data collection.
* Another important result concerns safety.
"""


def test_extract_key_findings():
    findings = extract_key_findings(SYNTHESIS)
    assert findings == [
        "1. The key finding is that costs fell by 40%.",
        "* Another important result concerns safety.",
    ]
    assert extract_key_findings({"not": "text"}) == []


def test_extract_recommendations():
    assert extract_recommendations(SYNTHESIS) == [
        "- We recommend piloting in one region.",
        "- Teams should improve data collection.",
    ]


def test_deep_research_result_from_text_synthesis():
    pipeline = default_pipelines()["deep-research"]
    ctx = _context(
        {
            "search": {"search_results": "hits", "sources": ["a.com"]},
            "analyze": {"patterns": []},
            "synthesize": {"summary": SYNTHESIS},
        },
        type="deep-research",
        topic="batteries",
    )
    result = pipeline.build_result(ctx)
    assert result["topic"] == "batteries"
    assert result["methodology"] == "multi-agent-deep-research"
    assert result["executive_summary"] == SYNTHESIS
    assert result["sources"] == ["a.com"]
    assert len(result["key_findings"]) == 2
    assert result["completed_phases"] == ["search", "analyze", "synthesize"]


def test_deep_research_prefers_structured_synthesis():
    pipeline = default_pipelines()["deep-research"]
    ctx = _context(
        {
            "search": {},
            "analyze": {},
            "synthesize": {
                "executiveSummary": "Short",
                "keyFindings": ["k1"],
                "recommendations": ["r1"],
            },
        },
        type="deep-research",
        topic="batteries",
    )
    result = pipeline.build_result(ctx)
    assert result["executive_summary"] == "Short"
    assert result["key_findings"] == ["k1"]
    assert result["recommendations"] == ["r1"]


def test_synthesis_string_is_parsed():
    synthesize = default_pipelines()["deep-research"].phases[2]
    ctx = _context(type="deep-research", topic="x")
    calls = synthesize.resolve_calls(ctx)
    assert synthesize.combine_outputs(ctx, calls, ['{"summary": "s"}']) == {"summary": "s"}
    assert synthesize.combine_outputs(ctx, calls, ["plain words"]) == {"summary": "plain words"}


def test_search_results_are_shaped():
    search = default_pipelines()["deep-research"].phases[0]
    ctx = _context(type="deep-research", topic="x")
    calls = search.resolve_calls(ctx)
    shaped = search.combine_outputs(
        ctx,
        calls,
        [{"summary": "s", "query": "x", "fullResponse": {"sources": ["u"]}}],
    )
    assert shaped == {
        "search_results": "s",
        "full_response": {"sources": ["u"]},
        "query": "x",
        "sources": ["u"],
    }


def test_analyze_summary_payload_carries_processing_output():
    summary = default_pipelines()["analyze"].phases[1]
    ctx = _context(
        {"processing": {"trend": "up"}},
        type="analyze",
        data={"sales": [1, 2]},
        audience_type="board",
    )
    (call,) = summary.resolve_calls(ctx)
    payload = call.payload(ctx)
    assert call.agent_name == "summarizer"
    assert payload["type"] == "executive-summary"
    assert payload["data"] == {"trend": "up"}
    assert payload["audienceType"] == "board"
    assert payload["context"]["previousStep"] == "data-processing"


def test_search_payload_uses_query_and_options():
    pipeline = default_pipelines()["news-search"]
    ctx = _context(
        type="news-search", query="elections", search_options={"max_results": 5}
    )
    (call,) = pipeline.phases[0].resolve_calls(ctx)
    payload = call.payload(ctx)
    assert payload == {
        "type": "news-search",
        "query": "elections",
        "context": None,
        "options": {"max_results": 5},
    }
    assert call.artifact_type == "search-result"
