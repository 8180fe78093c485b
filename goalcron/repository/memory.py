"""In-memory TaskRepository used by tests and dry runs."""

import logging
from typing import Iterable, List, Optional, Set, Tuple

from goalcron.models.task import Task, TaskId, TaskLabel
from goalcron.models.task_collection import TaskCollection
from goalcron.repository.base import LabelNotFoundError, RepositoryError, TaskRepository

logger = logging.getLogger(__name__)


class InMemoryTaskRepository(TaskRepository):
    """Repository backed by plain lists.

    Snapshots are deep copies, so use cases see the same mutate-then-update
    flow as against the live API. Every mutation is recorded in ``calls``.

    Failure injection:
        failing_task_ids: task ids whose update/delete raise RepositoryError
        failing_label_names: label names whose create/delete raise RepositoryError
        fail_create: make every task creation raise RepositoryError
        fail_get_all: make get_all raise RepositoryError
    """

    def __init__(self, tasks: Iterable[Task] = (), labels: Iterable[str] = ()):
        self.tasks: List[Task] = [task.model_copy(deep=True) for task in tasks]
        self.labels: List[TaskLabel] = [TaskLabel(name) for name in labels]
        self.calls: List[Tuple[str, str]] = []
        self.failing_task_ids: Set[str] = set()
        self.failing_label_names: Set[str] = set()
        self.fail_create = False
        self.fail_get_all = False
        self._next_id = 1
        for task in self.tasks:
            if task.id.value.isdigit():
                self._next_id = max(self._next_id, int(task.id.value) + 1)

    def _find_index(self, task_id: TaskId) -> Optional[int]:
        for index, task in enumerate(self.tasks):
            if task.id == task_id:
                return index
        return None

    def get_task(self, task_id: str) -> Optional[Task]:
        """Look up a stored task by raw id (test helper)."""
        index = self._find_index(TaskId(task_id))
        return self.tasks[index] if index is not None else None

    def label_names(self) -> List[str]:
        return [label.title for label in self.labels]

    def mutation_count(self) -> int:
        return len(self.calls)

    async def get_all(self) -> TaskCollection:
        if self.fail_get_all:
            raise RepositoryError("get_all failed")
        return TaskCollection([task.model_copy(deep=True) for task in self.tasks])

    async def update(self, task: Task) -> None:
        if task.id.value in self.failing_task_ids:
            raise RepositoryError(f"update failed for task {task.id}")
        index = self._find_index(task.id)
        if index is None:
            raise RepositoryError(f"Task {task.id} not found")
        self.tasks[index] = task.model_copy(deep=True)
        self.calls.append(("update", task.id.value))
        logger.debug(f"Updated task {task.id}: {task.content[:50]}")

    async def create(self, content: str, parent_id: Optional[TaskId] = None) -> Task:
        if self.fail_create:
            raise RepositoryError(f"create failed for {content[:50]}")
        task = Task(id=TaskId(str(self._next_id)), content=content, labels=[], parent_id=parent_id)
        self._next_id += 1
        self.tasks.append(task)
        self.calls.append(("create", task.id.value))
        logger.debug(f"Created task {task.id}: {content[:50]}")
        return task.model_copy(deep=True)

    async def delete(self, task_id: TaskId) -> None:
        if task_id.value in self.failing_task_ids:
            raise RepositoryError(f"delete failed for task {task_id}")
        index = self._find_index(task_id)
        if index is None:
            raise RepositoryError(f"Task {task_id} not found")
        del self.tasks[index]
        self.calls.append(("delete", task_id.value))

    async def get_labels(self) -> List[TaskLabel]:
        return list(self.labels)

    async def create_label(self, name: str) -> Optional[TaskLabel]:
        if name in self.failing_label_names:
            raise RepositoryError(f"create_label failed for {name}")
        if name in self.label_names():
            return None
        label = TaskLabel(name)
        self.labels.append(label)
        self.calls.append(("create_label", name))
        return label

    async def delete_label(self, title: str) -> None:
        if title in self.failing_label_names:
            raise RepositoryError(f"delete_label failed for {title}")
        if title not in self.label_names():
            raise LabelNotFoundError(title)
        self.labels = [label for label in self.labels if label.title != title]
        self.calls.append(("delete_label", title))
