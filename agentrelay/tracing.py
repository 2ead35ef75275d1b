"""Tracing collaborator interface.

The orchestrator opens one trace per job and one span per phase and step.
Tracing is best effort: :class:`SafeTracer` makes sure a failing trace sink
never aborts a pipeline.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger(__name__)


class Span(Protocol):
    id: str

    def end(self, output: Any = None) -> None: ...


class Trace(Protocol):
    id: str

    def span(self, name: str, metadata: Optional[Dict[str, Any]] = None) -> Span: ...

    def event(self, name: str, metadata: Optional[Dict[str, Any]] = None) -> None: ...


class Tracer(Protocol):
    def trace(
        self,
        name: str,
        *,
        id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Trace: ...


class _NullSpan:
    def __init__(self, span_id: Optional[str] = None) -> None:
        self.id = span_id or f"span-{uuid.uuid4()}"

    def end(self, output: Any = None) -> None:
        pass


class _NullTrace:
    def __init__(self, trace_id: Optional[str] = None) -> None:
        self.id = trace_id or f"trace-{uuid.uuid4()}"

    def span(self, name: str, metadata: Optional[Dict[str, Any]] = None) -> Span:
        return _NullSpan()

    def event(self, name: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        pass


class NullTracer:
    """Tracer that records nothing."""

    def trace(self, name, *, id=None, metadata=None) -> Trace:
        return _NullTrace(id)


class _LoggingSpan:
    def __init__(self, trace_id: str, name: str) -> None:
        self.id = f"span-{uuid.uuid4()}"
        self._trace_id = trace_id
        self._name = name

    def end(self, output: Any = None) -> None:
        logger.debug(f"[{self._trace_id}] span {self._name} ended")


class _LoggingTrace:
    def __init__(self, trace_id: str, name: str) -> None:
        self.id = trace_id
        self._name = name

    def span(self, name: str, metadata: Optional[Dict[str, Any]] = None) -> Span:
        logger.debug(f"[{self.id}] span {name} started {metadata or {}}")
        return _LoggingSpan(self.id, name)

    def event(self, name: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        logger.debug(f"[{self.id}] event {name} {metadata or {}}")


class LoggingTracer:
    """Tracer that writes traces, spans and events to the debug log."""

    def trace(self, name, *, id=None, metadata=None) -> Trace:
        trace_id = id or f"trace-{uuid.uuid4()}"
        logger.debug(f"[{trace_id}] trace {name} started {metadata or {}}")
        return _LoggingTrace(trace_id, name)


class _SafeSpan:
    def __init__(self, span: Span) -> None:
        self._span = span
        self.id = getattr(span, "id", None) or f"span-{uuid.uuid4()}"

    def end(self, output: Any = None) -> None:
        try:
            self._span.end(output)
        except Exception as e:
            logger.warning(f"Tracing span end failed: {e}")


class _SafeTrace:
    def __init__(self, trace: Trace) -> None:
        self._trace = trace
        self.id = getattr(trace, "id", None) or f"trace-{uuid.uuid4()}"

    def span(self, name: str, metadata: Optional[Dict[str, Any]] = None) -> Span:
        try:
            return _SafeSpan(self._trace.span(name, metadata))
        except Exception as e:
            logger.warning(f"Tracing span {name} failed: {e}")
            return _NullSpan()

    def event(self, name: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        try:
            self._trace.event(name, metadata)
        except Exception as e:
            logger.warning(f"Tracing event {name} failed: {e}")


class SafeTracer:
    """Wrap a tracer so collaborator failures are logged, never raised."""

    def __init__(self, tracer: Optional[Tracer] = None) -> None:
        self._tracer = tracer or NullTracer()

    def trace(self, name, *, id=None, metadata=None) -> Trace:
        try:
            return _SafeTrace(self._tracer.trace(name, id=id, metadata=metadata))
        except Exception as e:
            logger.warning(f"Tracing trace {name} failed: {e}")
            return _NullTrace(id)
