"""Audit trail of how jobs were decomposed into remote calls."""

from __future__ import annotations

import logging
import math
import threading
import uuid
from typing import Any, Optional

from .contracts import (
    ExecutionMetadata,
    ExecutionStats,
    FlowHistory,
    StepSummary,
    WorkflowExecution,
    WorkflowStep,
    elapsed_ms,
    utcnow,
)
from .exceptions import (
    ExecutionFinalizedError,
    ExecutionNotFoundError,
    StepNotFoundError,
)
from .persistence import ExecutionStore, InMemoryExecutionStore

logger = logging.getLogger(__name__)


class WorkflowExecutionRecorder:
    """Record executions and their steps.

    Step numbers are assigned under the recorder lock at append time, so they
    stay gap-free when parallel phases add steps concurrently. Once a step is
    completed or failed further updates to it are ignored; once an execution
    is finalized it rejects new steps and a second finalization.
    """

    def __init__(self, store: Optional[ExecutionStore] = None) -> None:
        self._store = store if store is not None else InMemoryExecutionStore()
        self._lock = threading.RLock()

    def _require(self, execution_id: str) -> WorkflowExecution:
        execution = self._store.get(execution_id)
        if execution is None:
            raise ExecutionNotFoundError(execution_id)
        return execution

    def create_execution(
        self,
        request_id: str,
        type: str,
        initiated_by: str,
        trace_id: Optional[str] = None,
        data_size: Optional[int] = None,
        audience_type: Optional[str] = None,
    ) -> WorkflowExecution:
        execution = WorkflowExecution(
            request_id=request_id,
            type=type,
            metadata=ExecutionMetadata(
                initiated_by=initiated_by,
                data_size=data_size,
                audience_type=audience_type,
            ),
            trace_id=trace_id,
        )
        with self._lock:
            self._store.add(execution)
        logger.debug(f"Created workflow execution {execution.id} for request {request_id}")
        return execution.model_copy(deep=True)

    def add_step(
        self,
        execution_id: str,
        agent_id: str,
        agent_name: str,
        operation: str,
        input: Any,
        trace_id: Optional[str] = None,
    ) -> WorkflowStep:
        with self._lock:
            execution = self._require(execution_id)
            if execution.is_terminal:
                raise ExecutionFinalizedError(execution_id, execution.status)
            step_number = len(execution.steps) + 1
            step = WorkflowStep(
                id=f"step-{step_number}-{uuid.uuid4().hex[:8]}",
                step_number=step_number,
                agent_id=agent_id,
                agent_name=agent_name,
                operation=operation,
                input=input,
                trace_id=trace_id,
            )
            execution.steps.append(step)
            if execution.status == "pending":
                execution.status = "in_progress"
            self._store.save(execution)
            return step.model_copy(deep=True)

    def update_step(self, execution_id: str, step_id: str, **updates: Any) -> WorkflowStep:
        """Merge ``updates`` into a step.

        The first transition to ``completed`` stamps ``completed_at`` and
        ``duration``; later completions leave both untouched.
        """
        with self._lock:
            execution = self._require(execution_id)
            step = execution.find_step(step_id)
            if step is None:
                raise StepNotFoundError(execution_id, step_id)
            if step.is_terminal:
                logger.debug(
                    f"Ignoring update to {step.status} step {step_id} of {execution_id}"
                )
                return step.model_copy(deep=True)
            if execution.is_terminal:
                raise ExecutionFinalizedError(execution_id, execution.status)

            for field, value in updates.items():
                setattr(step, field, value)
            if updates.get("status") == "completed" and step.completed_at is None:
                step.completed_at = utcnow()
                step.duration = elapsed_ms(step.started_at, step.completed_at)
            self._store.save(execution)
            return step.model_copy(deep=True)

    def complete_execution(
        self,
        execution_id: str,
        result: Any = None,
        error: Optional[str] = None,
        partial: bool = False,
    ) -> WorkflowExecution:
        """Finalize an execution exactly once.

        ``error`` marks it failed, or ``partial`` when ``partial`` is set
        (the job stopped early on purpose); otherwise it is completed with
        ``result``.

        Raises:
            ExecutionNotFoundError: If ``execution_id`` is unknown.
            ExecutionFinalizedError: If the execution was already finalized.
        """
        with self._lock:
            execution = self._require(execution_id)
            if execution.is_terminal:
                raise ExecutionFinalizedError(execution_id, execution.status)
            completed_at = utcnow()
            execution.metadata.completed_at = completed_at
            execution.metadata.total_duration = elapsed_ms(
                execution.metadata.started_at, completed_at
            )
            if error:
                execution.status = "partial" if partial else "failed"
                execution.error = error
            else:
                execution.status = "completed"
                execution.result = result
            self._store.save(execution)
            logger.info(f"Workflow execution {execution_id} finished: {execution.status}")
            return execution.model_copy(deep=True)

    def get_execution(self, execution_id: str) -> Optional[WorkflowExecution]:
        with self._lock:
            execution = self._store.get(execution_id)
            return execution.model_copy(deep=True) if execution is not None else None

    def require_execution(self, execution_id: str) -> WorkflowExecution:
        execution = self.get_execution(execution_id)
        if execution is None:
            raise ExecutionNotFoundError(execution_id)
        return execution

    def step_summary(self, execution_id: str) -> StepSummary:
        execution = self.require_execution(execution_id)
        return StepSummary(
            execution_id=execution_id,
            steps=execution.steps,
            total_steps=len(execution.steps),
            completed_steps=sum(1 for s in execution.steps if s.status == "completed"),
            failed_steps=sum(1 for s in execution.steps if s.status == "failed"),
        )

    def list_executions(
        self,
        status: Optional[str] = None,
        type: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> FlowHistory:
        """Return one page of executions, most recent first."""
        page = max(page, 1)
        limit = max(limit, 1)
        with self._lock:
            executions = [
                e.model_copy(deep=True)
                for e in reversed(self._store.list())
                if (status is None or e.status == status)
                and (type is None or e.type == type)
            ]
        executions.sort(key=lambda e: e.metadata.started_at, reverse=True)

        start = (page - 1) * limit
        end = start + limit
        return FlowHistory(
            executions=executions[start:end],
            total_executions=len(executions),
            completed_executions=sum(1 for e in executions if e.status == "completed"),
            failed_executions=sum(1 for e in executions if e.status == "failed"),
            page=page,
            limit=limit,
            total_pages=math.ceil(len(executions) / limit),
            has_next=end < len(executions),
            has_prev=page > 1,
        )

    def stats(self) -> ExecutionStats:
        with self._lock:
            executions = list(reversed(self._store.list()))

        by_status = {s: 0 for s in ("pending", "in_progress", "completed", "failed", "partial")}
        by_type: dict[str, int] = {}
        for execution in executions:
            by_status[execution.status] = by_status.get(execution.status, 0) + 1
            by_type[execution.type] = by_type.get(execution.type, 0) + 1

        durations = [
            e.metadata.total_duration
            for e in executions
            if e.metadata.total_duration is not None
        ]
        recent = sorted(executions, key=lambda e: e.metadata.started_at, reverse=True)[:5]
        return ExecutionStats(
            total=len(executions),
            by_status=by_status,
            by_type=by_type,
            average_duration=sum(durations) / len(durations) if durations else 0.0,
            recent_executions=[
                {
                    "id": e.id,
                    "type": e.type,
                    "status": e.status,
                    "started_at": e.metadata.started_at,
                    "duration": e.metadata.total_duration,
                }
                for e in recent
            ],
        )
