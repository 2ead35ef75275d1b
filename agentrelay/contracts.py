"""Core records for agentrelay jobs and their audit trail."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .constants import CANCELLED_MESSAGE

JobType = Literal[
    "process",
    "summarize",
    "analyze",
    "web-search",
    "news-search",
    "scholarly-search",
    "deep-research",
]
SEARCH_JOB_TYPES = ("web-search", "news-search", "scholarly-search")

TaskStatus = Literal["initiated", "working", "completed", "failed", "cancelled"]
TERMINAL_TASK_STATUSES = frozenset({"completed", "failed", "cancelled"})

ExecutionStatus = Literal["pending", "in_progress", "completed", "failed", "partial"]
TERMINAL_EXECUTION_STATUSES = frozenset({"completed", "failed", "partial"})

StepStatus = Literal["pending", "in_progress", "completed", "failed"]
TERMINAL_STEP_STATUSES = frozenset({"completed", "failed"})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def elapsed_ms(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() * 1000)


class AsyncTask(BaseModel):
    """Caller-visible handle to one composite job."""

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=lambda: f"task-{uuid.uuid4()}")
    type: JobType
    status: TaskStatus = "initiated"
    progress: int = Field(default=0, ge=0, le=100)
    current_phase: str = "initiation"
    phases: List[str] = Field(default_factory=list)
    result: Any = None
    error: Optional[str] = None
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    estimated_duration: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    workflow_execution_id: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_TASK_STATUSES

    def start(self) -> None:
        self.status = "working"

    def advance(self, phase: str, progress: int) -> None:
        """Enter ``phase`` and move progress forward, never backward.

        100 is reserved for :meth:`mark_completed`.
        """
        if progress >= 100:
            raise ValueError("progress 100 is only reached on completion")
        self.current_phase = phase
        self.progress = max(self.progress, progress)

    def nudge(self, ceiling: int) -> None:
        """Creep progress up by one while waiting, staying below ``ceiling``."""
        if self.progress + 1 < min(ceiling, 100):
            self.progress += 1

    def mark_completed(self, result: Any) -> None:
        self.status = "completed"
        self.progress = 100
        self.current_phase = "completed"
        self.result = result
        self.completed_at = utcnow()

    def mark_failed(self, error: str) -> None:
        self.status = "failed"
        self.error = error
        self.completed_at = utcnow()

    def mark_cancelled(self) -> None:
        self.status = "cancelled"
        self.error = CANCELLED_MESSAGE
        self.completed_at = utcnow()

    def to_a2a(self) -> Dict[str, Any]:
        """Project the task into the A2A task shape served to pollers."""
        if self.status == "working":
            text = f"{self.current_phase} ({self.progress}%)"
        elif self.status == "completed":
            text = f"{self.type} completed"
        elif self.status == "cancelled":
            text = CANCELLED_MESSAGE
        elif self.status == "failed":
            text = f"Failed: {self.error}"
        else:
            text = "Task starting"

        state = self.status if self.status in ("working", "completed") else "failed"
        if self.status == "initiated":
            state = "submitted"

        artifacts = []
        if self.result is not None:
            artifacts.append(
                {
                    "type": "workflow-result",
                    "data": self.result,
                    "metadata": {
                        "progress": self.progress,
                        "currentPhase": self.current_phase,
                        "phases": list(self.phases),
                        "startedAt": self.started_at.isoformat(),
                        "completedAt": (
                            self.completed_at.isoformat() if self.completed_at else None
                        ),
                        "estimatedDuration": self.estimated_duration,
                        "workflowExecutionId": self.workflow_execution_id,
                    },
                }
            )

        return {
            "task": {
                "id": self.id,
                "status": {
                    "state": state,
                    "timestamp": (self.completed_at or self.started_at).isoformat(),
                    "message": {
                        "role": "agent",
                        "parts": [{"type": "text", "text": text}],
                    },
                },
                "artifacts": artifacts,
            }
        }


class WorkflowStep(BaseModel):
    """One dispatched remote call within an execution."""

    model_config = ConfigDict(validate_assignment=True)

    id: str
    step_number: int = Field(ge=1)
    agent_id: str
    agent_name: str
    operation: str
    input: Any = None
    output: Any = None
    status: StepStatus = "pending"
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    duration: Optional[int] = Field(default=None, description="Milliseconds")
    error: Optional[str] = None
    trace_id: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STEP_STATUSES


class ExecutionMetadata(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    initiated_by: str
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    total_duration: Optional[int] = Field(default=None, description="Milliseconds")
    data_size: Optional[int] = None
    audience_type: Optional[str] = None


class WorkflowExecution(BaseModel):
    """Audit record of one orchestration run."""

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=lambda: f"exec-{uuid.uuid4()}")
    request_id: str
    type: JobType
    status: ExecutionStatus = "pending"
    steps: List[WorkflowStep] = Field(default_factory=list)
    metadata: ExecutionMetadata
    result: Any = None
    error: Optional[str] = None
    trace_id: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_EXECUTION_STATUSES

    def find_step(self, step_id: str) -> Optional[WorkflowStep]:
        return next((step for step in self.steps if step.id == step_id), None)


class FlowHistory(BaseModel):
    """One page of execution history."""

    executions: List[WorkflowExecution] = Field(default_factory=list)
    total_executions: int = 0
    completed_executions: int = 0
    failed_executions: int = 0
    page: int = 1
    limit: int = 10
    total_pages: int = 0
    has_next: bool = False
    has_prev: bool = False


class StepSummary(BaseModel):
    execution_id: str
    steps: List[WorkflowStep] = Field(default_factory=list)
    total_steps: int = 0
    completed_steps: int = 0
    failed_steps: int = 0


class ExecutionStats(BaseModel):
    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    by_type: Dict[str, int] = Field(default_factory=dict)
    average_duration: float = 0.0
    recent_executions: List[Dict[str, Any]] = Field(default_factory=list)


class SearchOptions(BaseModel):
    max_results: Optional[int] = Field(default=None, ge=1)
    time_range: Optional[Literal["day", "week", "month", "year", "all"]] = None
    language: Optional[str] = None
    region: Optional[str] = None
    category: Optional[
        Literal["general", "news", "images", "videos", "scholarly"]
    ] = None
    safesearch: Optional[Literal["strict", "moderate", "off"]] = None


class ResearchOptions(BaseModel):
    depth: Optional[Literal["basic", "comprehensive", "expert"]] = None
    sources: Optional[List[Literal["web", "news", "academic", "reports"]]] = None
    max_duration: Optional[str] = None
    parallel_tasks: bool = False


class OrchestrationRequest(BaseModel):
    """Validated input for one orchestration job."""

    type: JobType
    data: Any = None
    context: Optional[Dict[str, Any]] = None
    audience_type: Optional[str] = None
    topic: Optional[str] = None
    query: Optional[str] = None
    options: ResearchOptions = Field(default_factory=ResearchOptions)
    search_options: Optional[SearchOptions] = None

    @model_validator(mode="after")
    def _check_required_fields(self) -> "OrchestrationRequest":
        if self.type == "deep-research" and not (self.topic or self.query):
            raise ValueError("Topic or query is required for deep-research")
        return self

    @property
    def research_topic(self) -> str:
        return self.topic or self.query or ""

    def data_size(self) -> int:
        if self.type == "deep-research":
            return len(
                self.model_dump_json(include={"topic", "query", "options"})
            )
        if self.data is None:
            return 0
        return len(self.model_dump_json(include={"data"}))
