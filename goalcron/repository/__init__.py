"""Task and label storage for goalcron."""

from goalcron.repository.base import TaskRepository, RepositoryError, LabelNotFoundError
from goalcron.repository.cache import SnapshotCache
from goalcron.repository.memory import InMemoryTaskRepository

__all__ = [
    "TaskRepository",
    "RepositoryError",
    "LabelNotFoundError",
    "SnapshotCache",
    "InMemoryTaskRepository",
]
