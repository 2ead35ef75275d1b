"""Phase pipeline engine driving composite jobs across remote agents."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .client import PollCallback, RemoteAgentClient
from .config import RelayConfig
from .constants import CANCELLED_MESSAGE, INTERRUPTED_MESSAGE
from .contracts import AsyncTask, OrchestrationRequest, WorkflowExecution
from .envelope import RemoteTaskStatus, unwrap_result
from .exceptions import (
    ExecutionFinalizedError,
    PipelineDefinitionError,
    TaskCancelledError,
    TaskFinalizedError,
)
from .persistence import get_execution_store, get_task_store
from .pipeline import AgentCall, Phase, PhaseContext, Pipeline
from .recorder import WorkflowExecutionRecorder
from .registry import TaskRegistry
from .tracing import SafeTracer, Span, Trace, Tracer
from .workflows import default_pipelines

logger = logging.getLogger(__name__)


@dataclass
class _OpenStep:
    call: AgentCall
    step_id: str
    payload: Any
    span: Span


class Orchestrator:
    """Run pipelines for submitted jobs and keep their records in sync.

    :meth:`submit` creates the :class:`AsyncTask` and its
    :class:`WorkflowExecution`, then starts the pipeline detached and returns
    immediately; callers observe progress through :attr:`registry` and
    :attr:`recorder`. At most ``max_concurrent_jobs`` pipelines run at once;
    the rest wait in ``initiated``.
    """

    def __init__(
        self,
        client: RemoteAgentClient,
        *,
        registry: Optional[TaskRegistry] = None,
        recorder: Optional[WorkflowExecutionRecorder] = None,
        tracer: Optional[Tracer] = None,
        config: Optional[RelayConfig] = None,
        pipelines: Optional[Mapping[str, Pipeline]] = None,
    ) -> None:
        self.client = client
        self.config = config or client.config
        self.registry = registry or TaskRegistry(get_task_store(self.config))
        self.recorder = recorder or WorkflowExecutionRecorder(
            get_execution_store(self.config)
        )
        self.tracer = SafeTracer(tracer)
        self._pipelines: Dict[str, Pipeline] = (
            dict(pipelines) if pipelines is not None else default_pipelines()
        )
        self._slots = asyncio.Semaphore(self.config.orchestrator.max_concurrent_jobs)
        self._jobs: Dict[str, asyncio.Task] = {}
        self._cancel_events: Dict[str, asyncio.Event] = {}

    # ------------------------------------------------------------------
    def register_pipeline(self, pipeline: Pipeline) -> None:
        self._pipelines[pipeline.type] = pipeline

    def prepare(
        self, request: Union[OrchestrationRequest, Mapping[str, Any]]
    ) -> Tuple[OrchestrationRequest, Pipeline, List[Phase]]:
        """Validate ``request`` and resolve its execution plan.

        Raises:
            pydantic.ValidationError: If the request is malformed.
            PipelineDefinitionError: If no pipeline handles the request type or
                its phases cannot be ordered.
        """
        if not isinstance(request, OrchestrationRequest):
            request = OrchestrationRequest.model_validate(request)
        pipeline = self._pipelines.get(request.type)
        if pipeline is None:
            raise PipelineDefinitionError(f"No pipeline registered for {request.type}")
        return request, pipeline, pipeline.plan()

    async def submit(
        self,
        request: Union[OrchestrationRequest, Mapping[str, Any]],
        *,
        initiated_by: str = "anonymous",
        request_id: Optional[str] = None,
        task_id: Optional[str] = None,
    ) -> AsyncTask:
        """Create a job for ``request`` and start it without waiting."""
        request, pipeline, plan = self.prepare(request)
        request_id = request_id or str(uuid.uuid4())

        trace = self.tracer.trace(
            "gateway-request",
            id=request_id,
            metadata={"gateway": self.config.gateway_id, "requestType": request.type},
        )
        execution = self.recorder.create_execution(
            request_id,
            request.type,
            initiated_by,
            trace_id=trace.id,
            data_size=request.data_size(),
            audience_type=request.audience_type,
        )
        task = AsyncTask(
            type=request.type,
            phases=[phase.name for phase in plan],
            estimated_duration=pipeline.estimated_duration,
            metadata={
                "request": request.model_dump(mode="json", exclude_none=True),
                "request_id": request_id,
                "trace_id": trace.id,
            },
            workflow_execution_id=execution.id,
        )
        if task_id:
            task.id = task_id
        task = self.registry.create(task)
        trace.event(
            "request-received",
            {"type": request.type, "taskId": task.id, "workflowExecutionId": execution.id},
        )

        self._cancel_events[task.id] = asyncio.Event()
        job = asyncio.create_task(
            self._run_detached(task.id, pipeline, plan, request, trace),
            name=f"agentrelay-{task.id}",
        )
        self._jobs[task.id] = job
        job.add_done_callback(lambda _: self._forget(task.id))
        logger.info(f"Submitted {request.type} job {task.id} (execution {execution.id})")
        return task

    async def execute(
        self,
        request: Union[OrchestrationRequest, Mapping[str, Any]],
        *,
        initiated_by: str = "anonymous",
        timeout: Optional[float] = None,
    ) -> AsyncTask:
        """Submit ``request`` and wait for the job to finish."""
        task = await self.submit(request, initiated_by=initiated_by)
        return await self.wait(task.id, timeout=timeout)

    async def wait(self, task_id: str, timeout: Optional[float] = None) -> AsyncTask:
        """Wait for a submitted job to finish and return its final record."""
        job = self._jobs.get(task_id)
        if job is not None:
            await asyncio.wait_for(asyncio.shield(job), timeout)
        return self.registry.require(task_id)

    async def cancel(self, task_id: str) -> bool:
        """Cancel a working job; in-flight polls stop at their next sleep."""
        cancelled = self.registry.cancel(task_id)
        if cancelled:
            event = self._cancel_events.get(task_id)
            if event is not None:
                event.set()
        return cancelled

    async def drain(self) -> None:
        """Wait for every running job to finish."""
        jobs = list(self._jobs.values())
        if jobs:
            await asyncio.gather(*jobs, return_exceptions=True)

    def get_task(self, task_id: str) -> AsyncTask:
        return self.registry.require(task_id)

    def get_execution(self, execution_id: str) -> WorkflowExecution:
        return self.recorder.require_execution(execution_id)

    def _forget(self, task_id: str) -> None:
        self._jobs.pop(task_id, None)
        self._cancel_events.pop(task_id, None)

    # ------------------------------------------------------------------
    async def _run_detached(
        self,
        task_id: str,
        pipeline: Pipeline,
        plan: List[Phase],
        request: OrchestrationRequest,
        trace: Trace,
    ) -> None:
        try:
            async with self._slots:
                await self.run(task_id, pipeline, plan, request, trace)
        except asyncio.CancelledError:
            # interrupted while queued for a slot
            execution_id = self.registry.require(task_id).workflow_execution_id
            if not self.recorder.require_execution(execution_id).is_terminal:
                self._settle_interrupted(task_id)
            raise

    async def run(
        self,
        task_id: str,
        pipeline: Pipeline,
        plan: List[Phase],
        request: OrchestrationRequest,
        trace: Trace,
    ) -> AsyncTask:
        """Drive ``task_id`` through ``plan`` to a terminal state.

        Failures are recorded on the task and execution rather than raised.
        """
        task = self.registry.require(task_id)
        execution_id = task.workflow_execution_id
        context = PhaseContext(task_id=task_id, execution_id=execution_id, request=request)
        checkpoints = pipeline.checkpoints(plan)

        try:
            if task.status == "initiated":
                self.registry.update(task_id, lambda t: t.start())
            for index, phase in enumerate(plan):
                self._raise_if_cancelled(task_id)
                ceiling = (
                    checkpoints[index + 1]
                    if index + 1 < len(plan)
                    else pipeline.finalizing_progress
                )
                self.registry.update(
                    task_id, lambda t: t.advance(phase.name, checkpoints[index])
                )
                logger.info(
                    f"{pipeline.type} {task_id}: phase {index + 1}/{len(plan)} {phase.name}"
                )
                context.outputs[phase.name] = await self._run_phase(
                    context, phase, trace, ceiling
                )

            self._raise_if_cancelled(task_id)
            self.registry.update(
                task_id, lambda t: t.advance("finalizing", pipeline.finalizing_progress)
            )
            result = (
                pipeline.build_result(context)
                if pipeline.build_result is not None
                else dict(context.outputs)
            )
            self.registry.update(task_id, lambda t: t.mark_completed(result))
            self.recorder.complete_execution(execution_id, result=result)
            trace.event("request-completed", {"type": pipeline.type, "taskId": task_id})
            logger.info(f"{pipeline.type} job {task_id} completed")
        except (TaskCancelledError, TaskFinalizedError) as e:
            if self.registry.require(task_id).status == "cancelled":
                logger.info(f"{pipeline.type} job {task_id} stopped after cancellation")
                self._finalize_execution(execution_id, CANCELLED_MESSAGE, partial=True)
            else:
                self._fail(task_id, execution_id, str(e))
            trace.event("request-cancelled", {"taskId": task_id})
        except asyncio.CancelledError:
            logger.warning(f"{pipeline.type} job {task_id} interrupted")
            self._settle_interrupted(task_id)
            trace.event("request-interrupted", {"taskId": task_id})
            raise
        except Exception as e:
            logger.exception(f"{pipeline.type} job {task_id} failed")
            self._fail(task_id, execution_id, str(e) or e.__class__.__name__)
            trace.event("request-failed", {"taskId": task_id, "error": str(e)})
        return self.registry.require(task_id)

    def _raise_if_cancelled(self, task_id: str) -> None:
        event = self._cancel_events.get(task_id)
        if event is not None and event.is_set():
            raise TaskCancelledError(CANCELLED_MESSAGE)

    def _fail(self, task_id: str, execution_id: str, message: str) -> None:
        try:
            self.registry.update(task_id, lambda t: t.mark_failed(message))
        except TaskFinalizedError as e:
            logger.warning(f"Could not mark task {task_id} failed: {e}")
        self._finalize_execution(execution_id, message)

    def _settle_interrupted(self, task_id: str) -> None:
        """Finalize the records of a job whose coroutine was cancelled."""
        task = self.registry.require(task_id)
        if task.status == "cancelled":
            self._finalize_execution(
                task.workflow_execution_id, CANCELLED_MESSAGE, partial=True
            )
        else:
            self._fail(task_id, task.workflow_execution_id, INTERRUPTED_MESSAGE)

    def _finalize_execution(self, execution_id: str, error: str, partial: bool = False) -> None:
        try:
            self.recorder.complete_execution(execution_id, error=error, partial=partial)
        except ExecutionFinalizedError as e:
            logger.warning(str(e))

    # ------------------------------------------------------------------
    async def _run_phase(
        self, context: PhaseContext, phase: Phase, trace: Trace, ceiling: int
    ) -> Any:
        calls = phase.resolve_calls(context)
        span = trace.span(
            f"phase-{phase.name}",
            {"calls": len(calls), "parallel": phase.parallel and len(calls) > 1},
        )
        try:
            if phase.parallel and len(calls) > 1:
                # steps are numbered in issue order before any call is awaited
                opened: List[_OpenStep] = []
                try:
                    for call in calls:
                        opened.append(self._open_step(context, call, trace))
                except Exception as e:
                    for step in opened:
                        self._abandon_step(context, step, str(e) or e.__class__.__name__)
                    raise
                outcomes = await asyncio.gather(
                    *(self._execute_step(context, step, ceiling) for step in opened),
                    return_exceptions=True,
                )
                errors = [o for o in outcomes if isinstance(o, BaseException)]
                if errors:
                    raise errors[0]
                outputs = list(outcomes)
            else:
                outputs = []
                for call in calls:
                    step = self._open_step(context, call, trace)
                    outputs.append(await self._execute_step(context, step, ceiling))
            output = phase.combine_outputs(context, calls, outputs)
        except (Exception, asyncio.CancelledError) as e:
            span.end({"error": str(e) or e.__class__.__name__})
            raise
        span.end(output)
        return output

    def _open_step(self, context: PhaseContext, call: AgentCall, trace: Trace) -> _OpenStep:
        endpoint = self.client.endpoint(call.agent_name)
        payload = call.payload(context)
        span = trace.span(
            call.operation, {"targetAgent": call.agent_name, "mode": call.mode}
        )
        step = self.recorder.add_step(
            context.execution_id,
            endpoint.agent_id,
            endpoint.display_name or call.agent_name,
            call.operation,
            payload,
            trace_id=span.id,
        )
        return _OpenStep(call=call, step_id=step.id, payload=payload, span=span)

    async def _execute_step(self, context: PhaseContext, step: _OpenStep, ceiling: int) -> Any:
        self.recorder.update_step(context.execution_id, step.step_id, status="in_progress")
        try:
            response = await self._invoke(context, step.call, step.payload, ceiling)
            output = unwrap_result(response, step.call.artifact_type)
        except asyncio.CancelledError:
            self._abandon_step(context, step, INTERRUPTED_MESSAGE)
            raise
        except Exception as e:
            self._abandon_step(context, step, str(e) or e.__class__.__name__)
            raise
        self.recorder.update_step(
            context.execution_id, step.step_id, status="completed", output=output
        )
        step.span.end(output)
        return output

    def _abandon_step(self, context: PhaseContext, step: _OpenStep, error: str) -> None:
        self.recorder.update_step(
            context.execution_id, step.step_id, status="failed", error=error
        )
        step.span.end({"error": error})

    async def _invoke(
        self, context: PhaseContext, call: AgentCall, payload: Any, ceiling: int
    ) -> Any:
        cancel_event = self._cancel_events.get(context.task_id)
        on_poll = self._progress_callback(context.task_id, ceiling)
        if call.mode == "task":
            remote_id = await self.client.send_task(call.agent_name, payload)
            status = await self.client.wait_for_task(
                call.agent_name, remote_id, cancel_event=cancel_event, on_poll=on_poll
            )
            return status.raw
        return await self.client.send_message(
            call.agent_name, payload, cancel_event=cancel_event, on_poll=on_poll
        )

    def _progress_callback(self, task_id: str, ceiling: int) -> PollCallback:
        def on_poll(attempt: int, status: RemoteTaskStatus) -> None:
            if status.is_working:
                self.registry.update(task_id, lambda t: t.nudge(ceiling))

        return on_poll
