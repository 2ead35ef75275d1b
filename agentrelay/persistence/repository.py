"""Storage abstraction for task and execution records."""

from __future__ import annotations

from typing import List, Optional, Protocol

from ..contracts import AsyncTask, WorkflowExecution


class TaskStore(Protocol):
    """Protocol for AsyncTask storage backends."""

    def add(self, task: AsyncTask) -> None:
        """Persist a new task."""

    def get(self, task_id: str) -> Optional[AsyncTask]:
        """Return the stored task or ``None``."""

    def save(self, task: AsyncTask) -> None:
        """Replace the stored copy of an existing task."""

    def list(self) -> List[AsyncTask]:
        """Return all stored tasks in insertion order."""


class ExecutionStore(Protocol):
    """Protocol for WorkflowExecution storage backends."""

    def add(self, execution: WorkflowExecution) -> None:
        """Persist a new execution."""

    def get(self, execution_id: str) -> Optional[WorkflowExecution]:
        """Return the stored execution or ``None``."""

    def save(self, execution: WorkflowExecution) -> None:
        """Replace the stored copy of an existing execution."""

    def list(self) -> List[WorkflowExecution]:
        """Return all stored executions in insertion order."""
