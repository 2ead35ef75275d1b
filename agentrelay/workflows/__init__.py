"""Built-in pipelines, keyed by job type."""

from __future__ import annotations

from typing import Dict

from ..pipeline import Pipeline
from .deep_research import deep_research_pipeline
from .routing import routing_pipelines


def default_pipelines() -> Dict[str, Pipeline]:
    pipelines = [*routing_pipelines(), deep_research_pipeline()]
    return {pipeline.type: pipeline for pipeline in pipelines}


__all__ = ["default_pipelines", "deep_research_pipeline", "routing_pipelines"]
