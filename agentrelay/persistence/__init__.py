"""Storage backends for agentrelay records."""

from __future__ import annotations

from typing import Optional

from ..config import RelayConfig, load_config
from .inmemory import InMemoryExecutionStore, InMemoryTaskStore
from .repository import ExecutionStore, TaskStore


def get_task_store(config: Optional[RelayConfig] = None) -> TaskStore:
    """Factory function to obtain the configured task store."""

    config = config or load_config()
    backend = config.persistence.backend
    if backend == "inmemory":
        return InMemoryTaskStore(max_records=config.persistence.max_records)
    raise ValueError(f"Unsupported persistence backend: {backend}")


def get_execution_store(config: Optional[RelayConfig] = None) -> ExecutionStore:
    """Factory function to obtain the configured execution store."""

    config = config or load_config()
    backend = config.persistence.backend
    if backend == "inmemory":
        return InMemoryExecutionStore(max_records=config.persistence.max_records)
    raise ValueError(f"Unsupported persistence backend: {backend}")


__all__ = [
    "TaskStore",
    "ExecutionStore",
    "InMemoryTaskStore",
    "InMemoryExecutionStore",
    "get_task_store",
    "get_execution_store",
]
