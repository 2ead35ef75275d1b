"""Exception hierarchy for agentrelay."""

from __future__ import annotations

from typing import List, Optional, Tuple


class RelayError(Exception):
    """Base class for all agentrelay errors."""


class NotFoundError(RelayError, LookupError):
    """An identifier did not resolve to a record."""


class TaskNotFoundError(NotFoundError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class ExecutionNotFoundError(NotFoundError):
    def __init__(self, execution_id: str) -> None:
        super().__init__(f"Workflow execution {execution_id} not found")
        self.execution_id = execution_id


class StepNotFoundError(NotFoundError):
    def __init__(self, execution_id: str, step_id: str) -> None:
        super().__init__(f"Step {step_id} not found in execution {execution_id}")
        self.execution_id = execution_id
        self.step_id = step_id


class RemoteTaskNotFoundError(NotFoundError):
    """The remote agent does not know the requested task id."""

    def __init__(self, agent_name: str, task_id: str) -> None:
        super().__init__(f"Task {task_id} not found on agent {agent_name}")
        self.agent_name = agent_name
        self.task_id = task_id


class UnknownAgentError(NotFoundError):
    def __init__(self, agent_name: str) -> None:
        super().__init__(f"Unknown agent: {agent_name}")
        self.agent_name = agent_name


class FinalizedError(RelayError):
    """A terminal record was about to be mutated."""


class TaskFinalizedError(FinalizedError):
    def __init__(self, task_id: str, status: str) -> None:
        super().__init__(f"Task {task_id} is already {status}")
        self.task_id = task_id
        self.status = status


class ExecutionFinalizedError(FinalizedError):
    def __init__(self, execution_id: str, status: str) -> None:
        super().__init__(f"Workflow execution {execution_id} is already {status}")
        self.execution_id = execution_id
        self.status = status


class TransportError(RelayError):
    """A single transport could not deliver a call."""

    def __init__(
        self,
        message: str,
        *,
        transport: Optional[str] = None,
        agent_name: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.transport = transport
        self.agent_name = agent_name
        self.status_code = status_code


class AllTransportsFailedError(TransportError):
    """Every configured transport failed for the same call."""

    def __init__(
        self, agent_name: str, operation: str, attempts: List[Tuple[str, Exception]]
    ) -> None:
        details = "; ".join(f"{name}: {error}" for name, error in attempts)
        super().__init__(
            f"Failed to {operation} to {agent_name} via "
            f"{' and '.join(name for name, _ in attempts)} ({details})",
            agent_name=agent_name,
        )
        self.operation = operation
        self.attempts = attempts


class RemoteTaskFailedError(RelayError):
    """The remote agent reported an explicit failure for a task."""

    def __init__(self, agent_name: str, task_id: Optional[str], message: str) -> None:
        super().__init__(message)
        self.agent_name = agent_name
        self.task_id = task_id


class PollTimeoutError(RelayError):
    def __init__(self, agent_name: str, task_id: Optional[str], waited: float, attempts: int) -> None:
        super().__init__(
            f"Task {task_id} on {agent_name} still working after "
            f"{attempts} polls ({waited:.1f}s)"
        )
        self.agent_name = agent_name
        self.task_id = task_id
        self.waited = waited
        self.attempts = attempts


class TaskCancelledError(RelayError):
    """Cancellation was observed at a suspension point."""


class PipelineDefinitionError(ValueError):
    """A pipeline cannot be resolved into an execution plan."""
