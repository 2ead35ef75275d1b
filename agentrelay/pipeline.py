"""Declarative description of a phase pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Literal, Optional, Sequence, Union

from .contracts import OrchestrationRequest
from .exceptions import PipelineDefinitionError

CallMode = Literal["message", "task"]


@dataclass
class PhaseContext:
    """State threaded through the phases of one job."""

    task_id: str
    execution_id: str
    request: OrchestrationRequest
    outputs: Dict[str, Any] = field(default_factory=dict)

    def output(self, phase_name: str) -> Any:
        return self.outputs[phase_name]


@dataclass
class AgentCall:
    """One remote call issued by a phase.

    ``payload`` builds the request body from the context, which is how the
    output of an earlier phase becomes the input of a later one.
    ``mode="message"`` uses ``send_message``; ``mode="task"`` creates a remote
    task and polls it to completion.
    """

    agent_name: str
    operation: str
    payload: Callable[[PhaseContext], Any]
    mode: CallMode = "message"
    artifact_type: Optional[str] = None
    key: Optional[str] = None


CallSource = Union[Sequence[AgentCall], Callable[[PhaseContext], Sequence[AgentCall]]]


@dataclass
class Phase:
    name: str
    calls: CallSource
    parallel: bool = False
    progress: Optional[int] = None
    depends_on: Sequence[str] = ()
    combine: Optional[Callable[[PhaseContext, List[Any]], Any]] = None

    def resolve_calls(self, context: PhaseContext) -> List[AgentCall]:
        calls = list(self.calls(context) if callable(self.calls) else self.calls)
        if not calls:
            raise PipelineDefinitionError(f"Phase {self.name} resolved to no calls")
        return calls

    def combine_outputs(
        self, context: PhaseContext, calls: List[AgentCall], outputs: List[Any]
    ) -> Any:
        if self.combine is not None:
            return self.combine(context, outputs)
        if len(outputs) == 1:
            return outputs[0]
        if all(call.key for call in calls):
            return {call.key: output for call, output in zip(calls, outputs)}
        return outputs


@dataclass
class Pipeline:
    """A named sequence of phases for one job type."""

    type: str
    phases: List[Phase]
    estimated_duration: Optional[str] = None
    finalizing_progress: int = 95
    build_result: Optional[Callable[[PhaseContext], Any]] = None

    def plan(self) -> List[Phase]:
        return resolve_plan(self.phases)

    def checkpoints(self, plan: List[Phase]) -> List[int]:
        """Progress value entered at the start of each planned phase."""
        values: List[int] = []
        floor = 0
        for index, phase in enumerate(plan):
            default = 10 + (self.finalizing_progress - 10) * index // len(plan)
            value = phase.progress if phase.progress is not None else default
            floor = max(floor, min(value, self.finalizing_progress))
            values.append(floor)
        return values


def resolve_plan(phases: Sequence[Phase]) -> List[Phase]:
    """Order phases so each runs after the phases it depends on.

    Phases with no ordering constraint between them keep their declared
    order.

    Raises:
        PipelineDefinitionError: On duplicate names, unknown dependencies or
            dependency cycles.
    """
    by_name: Dict[str, Phase] = {}
    for phase in phases:
        if phase.name in by_name:
            raise PipelineDefinitionError(f"Duplicate phase name: {phase.name}")
        by_name[phase.name] = phase

    for phase in phases:
        for dependency in phase.depends_on:
            if dependency not in by_name:
                raise PipelineDefinitionError(
                    f"Phase {phase.name} depends on unknown phase {dependency}"
                )

    ordered: List[Phase] = []
    placed: set[str] = set()
    remaining = list(phases)
    while remaining:
        ready = next(
            (p for p in remaining if all(d in placed for d in p.depends_on)), None
        )
        if ready is None:
            names = ", ".join(p.name for p in remaining)
            raise PipelineDefinitionError(f"Dependency cycle between phases: {names}")
        ordered.append(ready)
        placed.add(ready.name)
        remaining.remove(ready)
    return ordered
