"""Pytest fixtures and configuration for goalcron tests."""

import asyncio
from typing import List, Optional

import pytest

from goalcron.models.task import Task, TaskId, TaskLabel
from goalcron.models.task_collection import TaskCollection
from goalcron.repository.memory import InMemoryTaskRepository


def build_task(task_id: str, content: str, labels: List[str] = (), parent_id: Optional[str] = None) -> Task:
    """Create a Task from plain values."""
    return Task(
        id=TaskId(task_id),
        content=content,
        labels=[TaskLabel(name) for name in labels],
        parent_id=TaskId(parent_id) if parent_id else None,
    )


@pytest.fixture
def make_task():
    """Factory fixture: make_task(id, content, labels, parent_id)."""
    return build_task


@pytest.fixture
def make_collection():
    """Factory fixture building a TaskCollection from tasks."""
    def _make(*tasks: Task) -> TaskCollection:
        return TaskCollection(list(tasks))
    return _make


@pytest.fixture
def make_repository():
    """Factory fixture building an InMemoryTaskRepository."""
    def _make(tasks=(), labels=()) -> InMemoryTaskRepository:
        return InMemoryTaskRepository(tasks, labels)
    return _make


@pytest.fixture
def run():
    """Run a coroutine to completion on a fresh event loop."""
    return asyncio.run
