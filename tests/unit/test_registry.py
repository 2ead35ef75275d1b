"""Tests for the task registry."""

import pytest

from agentrelay.contracts import AsyncTask
from agentrelay.exceptions import NotFoundError, TaskFinalizedError, TaskNotFoundError
from agentrelay.persistence import InMemoryTaskStore
from agentrelay.registry import TaskRegistry


@pytest.fixture
def registry():
    return TaskRegistry()


def test_create_and_get_returns_copies(registry):
    task = registry.create(AsyncTask(type="analyze"))
    snapshot = registry.get(task.id)
    snapshot.progress = 50
    snapshot.metadata["touched"] = True

    fresh = registry.get(task.id)
    assert fresh.progress == 0
    assert "touched" not in fresh.metadata


def test_get_unknown_returns_none(registry):
    assert registry.get("task-missing") is None
    with pytest.raises(TaskNotFoundError):
        registry.require("task-missing")


def test_update_applies_mutator(registry):
    task = registry.create(AsyncTask(type="deep-research"))
    updated = registry.update(task.id, lambda t: (t.start(), t.advance("search", 10)))
    assert updated.status == "working"
    assert updated.progress == 10
    assert registry.get(task.id).current_phase == "search"


def test_update_unknown_raises_not_found(registry):
    with pytest.raises(NotFoundError):
        registry.update("task-missing", lambda t: t.start())


def test_terminal_task_rejects_updates(registry):
    task = registry.create(AsyncTask(type="process"))
    registry.update(task.id, lambda t: t.mark_completed({"ok": True}))

    with pytest.raises(TaskFinalizedError):
        registry.update(task.id, lambda t: t.mark_failed("late failure"))
    final = registry.get(task.id)
    assert final.status == "completed"
    assert final.error is None


def test_progress_cannot_regress(registry):
    task = registry.create(AsyncTask(type="deep-research"))
    registry.update(task.id, lambda t: t.advance("analyze", 33))

    def rewind(t):
        t.progress = 10

    with pytest.raises(ValueError):
        registry.update(task.id, rewind)
    assert registry.get(task.id).progress == 33


def test_cancel_only_working_tasks(registry):
    task = registry.create(AsyncTask(type="process"))
    assert registry.cancel(task.id) is False

    registry.update(task.id, lambda t: t.start())
    assert registry.cancel(task.id) is True
    cancelled = registry.get(task.id)
    assert cancelled.status == "cancelled"
    assert registry.cancel(task.id) is False
    with pytest.raises(TaskNotFoundError):
        registry.cancel("task-missing")


def test_list_filters(registry):
    first = registry.create(AsyncTask(type="process"))
    registry.create(AsyncTask(type="analyze"))
    registry.update(first.id, lambda t: t.start())

    assert [t.id for t in registry.list(status="working")] == [first.id]
    assert len(registry.list(type="analyze")) == 1
    assert len(registry.list()) == 2


def test_bounded_store_evicts_terminal_tasks_only():
    registry = TaskRegistry(InMemoryTaskStore(max_records=2))
    done = registry.create(AsyncTask(type="process"))
    registry.update(done.id, lambda t: t.mark_completed(None))
    running = registry.create(AsyncTask(type="process"))
    registry.update(running.id, lambda t: t.start())

    newest = registry.create(AsyncTask(type="process"))
    assert registry.get(done.id) is None
    assert registry.get(running.id) is not None
    assert registry.get(newest.id) is not None
