"""Pipelines that route a request to one agent or a short chain of agents."""

from __future__ import annotations

import json
from typing import Any, Dict, List

from ..contracts import SEARCH_JOB_TYPES
from ..pipeline import AgentCall, Phase, PhaseContext, Pipeline


def _process_payload(ctx: PhaseContext) -> Dict[str, Any]:
    return {
        "type": "process",
        "data": ctx.request.data if ctx.request.data is not None else {},
        "context": ctx.request.context,
    }


def _summarize_payload(ctx: PhaseContext) -> Dict[str, Any]:
    return {
        "type": "summarize",
        "data": ctx.request.data if ctx.request.data is not None else {},
        "context": ctx.request.context,
        "audienceType": ctx.request.audience_type or "general",
    }


def _analysis_payload(ctx: PhaseContext) -> Dict[str, Any]:
    return {
        "type": "analyze",
        "data": ctx.request.data if ctx.request.data is not None else {},
        "context": ctx.request.context,
    }


def _executive_summary_payload(ctx: PhaseContext) -> Dict[str, Any]:
    return {
        "type": "executive-summary",
        "data": ctx.output("processing"),
        "context": {
            **(ctx.request.context or {}),
            "workflow": "analyze",
            "previousStep": "data-processing",
        },
        "audienceType": ctx.request.audience_type or "executive",
    }


def _analyze_result(ctx: PhaseContext) -> Dict[str, Any]:
    return {
        "workflow": "analyze",
        "steps": {
            "processing": ctx.output("processing"),
            "summary": ctx.output("summary"),
        },
        "final_result": ctx.output("summary"),
    }


def _search_query(ctx: PhaseContext) -> str:
    if ctx.request.query:
        return ctx.request.query
    if ctx.request.data is None:
        return ""
    return json.dumps(ctx.request.data, default=str)


def _search_pipeline(job_type: str) -> Pipeline:
    def payload(ctx: PhaseContext) -> Dict[str, Any]:
        options = ctx.request.search_options
        return {
            "type": job_type,
            "query": _search_query(ctx),
            "context": ctx.request.context,
            "options": options.model_dump(exclude_none=True) if options else None,
        }

    return Pipeline(
        type=job_type,
        phases=[
            Phase(
                name="search",
                calls=[AgentCall("web-search", job_type, payload, artifact_type="search-result")],
            )
        ],
        estimated_duration="1-2 minutes",
    )


def routing_pipelines() -> List[Pipeline]:
    """Pipelines for the synchronous-style request types."""
    return [
        Pipeline(
            type="process",
            phases=[
                Phase(
                    name="process",
                    calls=[AgentCall("data-processor", "data-processing", _process_payload)],
                )
            ],
            estimated_duration="1-2 minutes",
        ),
        Pipeline(
            type="summarize",
            phases=[
                Phase(
                    name="summarize",
                    calls=[AgentCall("summarizer", "summarization", _summarize_payload)],
                )
            ],
            estimated_duration="1-2 minutes",
        ),
        Pipeline(
            type="analyze",
            phases=[
                Phase(
                    name="processing",
                    calls=[AgentCall("data-processor", "data-analysis", _analysis_payload)],
                ),
                Phase(
                    name="summary",
                    calls=[
                        AgentCall(
                            "summarizer", "executive-summary", _executive_summary_payload
                        )
                    ],
                    depends_on=("processing",),
                ),
            ],
            estimated_duration="2-4 minutes",
            build_result=_analyze_result,
        ),
        *(_search_pipeline(job_type) for job_type in SEARCH_JOB_TYPES),
    ]
