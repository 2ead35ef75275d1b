"""Process-wide registry of caller-visible jobs."""

from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

from .contracts import AsyncTask
from .exceptions import TaskFinalizedError, TaskNotFoundError
from .persistence import InMemoryTaskStore, TaskStore

logger = logging.getLogger(__name__)

TaskMutator = Callable[[AsyncTask], None]


class TaskRegistry:
    """Create, read and update :class:`AsyncTask` records.

    Readers always receive a copy, so a snapshot taken by a poller never
    changes underneath it. Every mutation runs under one lock, which keeps
    read-modify-write cycles atomic even when several jobs share the registry.
    """

    def __init__(self, store: Optional[TaskStore] = None) -> None:
        self._store = store if store is not None else InMemoryTaskStore()
        self._lock = threading.RLock()

    def create(self, task: AsyncTask) -> AsyncTask:
        with self._lock:
            self._store.add(task.model_copy(deep=True))
        logger.debug(f"Registered task {task.id} ({task.type})")
        return task.model_copy(deep=True)

    def get(self, task_id: str) -> Optional[AsyncTask]:
        with self._lock:
            task = self._store.get(task_id)
            return task.model_copy(deep=True) if task is not None else None

    def require(self, task_id: str) -> AsyncTask:
        task = self.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def update(self, task_id: str, mutator: TaskMutator) -> AsyncTask:
        """Apply ``mutator`` to the task and store the result.

        Raises:
            TaskNotFoundError: If ``task_id`` is unknown.
            TaskFinalizedError: If the task already reached a terminal status.
            ValueError: If the mutation would move progress backwards.
        """
        with self._lock:
            current = self._store.get(task_id)
            if current is None:
                raise TaskNotFoundError(task_id)
            if current.is_terminal:
                raise TaskFinalizedError(task_id, current.status)
            working = current.model_copy(deep=True)
            mutator(working)
            if working.progress < current.progress:
                raise ValueError(
                    f"Task {task_id} progress cannot go from "
                    f"{current.progress} to {working.progress}"
                )
            self._store.save(working)
            return working.model_copy(deep=True)

    def cancel(self, task_id: str) -> bool:
        """Flip a working task to ``cancelled``.

        Returns ``True`` if the task was cancelled, ``False`` if it was not in
        the ``working`` state.
        """
        with self._lock:
            current = self._store.get(task_id)
            if current is None:
                raise TaskNotFoundError(task_id)
            if current.status != "working":
                return False
            working = current.model_copy(deep=True)
            working.mark_cancelled()
            self._store.save(working)
        logger.info(f"Task {task_id} cancelled")
        return True

    def list(
        self, status: Optional[str] = None, type: Optional[str] = None
    ) -> List[AsyncTask]:
        with self._lock:
            tasks = self._store.list()
            return [
                task.model_copy(deep=True)
                for task in tasks
                if (status is None or task.status == status)
                and (type is None or task.type == type)
            ]
