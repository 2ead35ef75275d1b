"""Three-phase deep research: search, analyze, synthesize."""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List

from ..pipeline import AgentCall, Phase, PhaseContext, Pipeline

DEFAULT_SOURCES = ["web", "news"]
MAX_RESULTS_BY_DEPTH = {"basic": 15, "comprehensive": 30, "expert": 50}

_LIST_ITEM = re.compile(r"^([\d•\-\*]\.|[\d.]+\s|[•\-\*]\s)")
_FINDING_WORDS = ("finding", "result", "important", "key")
_RECOMMENDATION_WORDS = ("recommend", "suggest", "improve", "should")


def _matching_items(text: Any, words: tuple, limit: int = 5) -> List[str]:
    if not isinstance(text, str):
        return []
    items = []
    for line in text.splitlines():
        stripped = line.strip()
        if _LIST_ITEM.match(stripped) and any(w in stripped.lower() for w in words):
            items.append(stripped)
    return items[:limit]


def extract_key_findings(synthesis: Any) -> List[str]:
    """Pull up to five finding bullets out of a free-text synthesis."""
    return _matching_items(synthesis, _FINDING_WORDS)


def extract_recommendations(synthesis: Any) -> List[str]:
    """Pull up to five recommendation bullets out of a free-text synthesis."""
    return _matching_items(synthesis, _RECOMMENDATION_WORDS)


def _sources(ctx: PhaseContext) -> List[str]:
    return list(ctx.request.options.sources or DEFAULT_SOURCES)


def _max_results(ctx: PhaseContext) -> int:
    return MAX_RESULTS_BY_DEPTH.get(ctx.request.options.depth or "basic", 15)


def _search_calls(ctx: PhaseContext) -> List[AgentCall]:
    sources = _sources(ctx)
    topic = ctx.request.research_topic

    def payload_for(selected: List[str]):
        return lambda c: {
            "type": "comprehensive-search",
            "query": topic,
            "options": {"sources": selected, "maxResults": _max_results(c)},
        }

    if ctx.request.options.parallel_tasks and len(sources) > 1:
        return [
            AgentCall(
                "web-search",
                "comprehensive-search",
                payload_for([source]),
                artifact_type="search-result",
                key=source,
            )
            for source in sources
        ]
    return [
        AgentCall(
            "web-search",
            "comprehensive-search",
            payload_for(sources),
            artifact_type="search-result",
        )
    ]


def _shape_search(output: Any) -> Any:
    if isinstance(output, dict) and ("summary" in output or "fullResponse" in output):
        full = output.get("fullResponse")
        return {
            "search_results": output.get("summary"),
            "full_response": full,
            "query": output.get("query"),
            "sources": (full.get("sources") if isinstance(full, dict) else None) or [],
        }
    return output


def _combine_search(ctx: PhaseContext, outputs: List[Any]) -> Any:
    if len(outputs) == 1:
        return _shape_search(outputs[0])
    shaped = [_shape_search(output) for output in outputs]
    sources: List[Any] = []
    for item in shaped:
        if isinstance(item, dict):
            sources.extend(item.get("sources") or [])
    return {
        "search_results": dict(zip(_sources(ctx), shaped)),
        "sources": sources,
    }


def _analysis_payload(ctx: PhaseContext) -> Dict[str, Any]:
    return {
        "type": "research-analysis",
        "data": ctx.output("search"),
        "options": {
            "analyzePatterns": True,
            "extractInsights": True,
            "depth": ctx.request.options.depth or "comprehensive",
        },
    }


def _synthesis_payload(ctx: PhaseContext) -> Dict[str, Any]:
    return {
        "type": "research-synthesis",
        "data": {
            "topic": ctx.request.research_topic,
            "searchResults": ctx.output("search"),
            "analysisResults": ctx.output("analyze"),
        },
        "options": {
            "reportType": "comprehensive",
            "audienceType": ctx.request.audience_type or "technical",
            "includeRecommendations": True,
            "includeSources": True,
        },
    }


def _parse_synthesis(ctx: PhaseContext, outputs: List[Any]) -> Any:
    synthesis = outputs[0]
    if isinstance(synthesis, str):
        try:
            return json.loads(synthesis)
        except ValueError:
            return {"summary": synthesis}
    return synthesis


def _build_result(ctx: PhaseContext) -> Dict[str, Any]:
    search = ctx.output("search")
    analysis = ctx.output("analyze")
    synthesis = ctx.output("synthesize")
    summary_text = synthesis.get("summary") if isinstance(synthesis, dict) else synthesis

    def field(name: str, fallback):
        if isinstance(synthesis, dict) and synthesis.get(name):
            return synthesis[name]
        return fallback(summary_text)

    return {
        "topic": ctx.request.research_topic,
        "methodology": "multi-agent-deep-research",
        "executive_summary": (
            synthesis.get("executiveSummary") or synthesis.get("summary") or synthesis
            if isinstance(synthesis, dict)
            else synthesis
        ),
        "detailed_findings": {
            "search_results": search,
            "analysis": analysis,
            "synthesis": synthesis,
        },
        "key_findings": field("keyFindings", extract_key_findings),
        "recommendations": field("recommendations", extract_recommendations),
        "sources": (search.get("sources") if isinstance(search, dict) else None) or [],
        "completed_phases": list(ctx.outputs),
    }


def deep_research_pipeline() -> Pipeline:
    return Pipeline(
        type="deep-research",
        phases=[
            Phase(
                name="search",
                calls=_search_calls,
                parallel=True,
                progress=10,
                combine=_combine_search,
            ),
            Phase(
                name="analyze",
                calls=[
                    AgentCall("data-processor", "research-analysis", _analysis_payload)
                ],
                progress=33,
                depends_on=("search",),
            ),
            Phase(
                name="synthesize",
                calls=[
                    AgentCall("summarizer", "research-synthesis", _synthesis_payload)
                ],
                progress=66,
                depends_on=("search", "analyze"),
                combine=_parse_synthesis,
            ),
        ],
        estimated_duration="8-10 minutes",
        finalizing_progress=95,
        build_result=_build_result,
    )
