"""Repository interface consumed by the automation use cases."""

from abc import ABC, abstractmethod
from typing import List, Optional

from goalcron.models.task import Task, TaskId, TaskLabel
from goalcron.models.task_collection import TaskCollection


class RepositoryError(Exception):
    """Any failure talking to the task store (network, auth, rate limit)."""


class LabelNotFoundError(RepositoryError):
    """A label title could not be resolved to a label."""

    def __init__(self, title: str):
        super().__init__(f'Label "{title}" not found')
        self.title = title


class TaskRepository(ABC):
    """Storage for tasks and labels.

    Labels are addressed by title here; implementations keep any
    title-to-id translation to themselves.
    """

    @abstractmethod
    async def get_all(self) -> TaskCollection:
        """Fetch every visible task as one snapshot."""

    @abstractmethod
    async def update(self, task: Task) -> None:
        """Persist the task's labels (and content) back to the store."""

    @abstractmethod
    async def create(self, content: str, parent_id: Optional[TaskId] = None) -> Task:
        """Create a task, optionally nested under ``parent_id``."""

    @abstractmethod
    async def delete(self, task_id: TaskId) -> None:
        """Delete a task."""

    @abstractmethod
    async def get_labels(self) -> List[TaskLabel]:
        """Fetch every label on the account."""

    @abstractmethod
    async def create_label(self, name: str) -> Optional[TaskLabel]:
        """Create a label.

        Returns:
            The created label, or None if a label with that name already exists
        """

    @abstractmethod
    async def delete_label(self, title: str) -> None:
        """Delete a label by title.

        Raises:
            LabelNotFoundError: If no label has that title
        """
