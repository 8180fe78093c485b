"""Todoist integration for goalcron."""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

import requests
from todoist_api_python.api import TodoistAPI

from goalcron.models.task import Task, TaskId, TaskLabel
from goalcron.models.task_collection import TaskCollection
from goalcron.repository.base import LabelNotFoundError, RepositoryError, TaskRepository
from goalcron.repository.cache import SnapshotCache

logger = logging.getLogger(__name__)

T = TypeVar("T")


def task_from_todoist(todoist_task: Any) -> Task:
    """Normalize a Todoist SDK task to the goalcron Task model.

    Args:
        todoist_task: Task object returned by todoist_api_python

    Returns:
        Normalized Task object
    """
    parent_id = getattr(todoist_task, "parent_id", None)
    is_completed = False
    if hasattr(todoist_task, "is_completed") and todoist_task.is_completed:
        is_completed = True
    if hasattr(todoist_task, "completed_at") and todoist_task.completed_at is not None:
        is_completed = True

    return Task(
        id=TaskId(str(todoist_task.id)),
        content=todoist_task.content or "",
        labels=[TaskLabel(name) for name in (todoist_task.labels or [])],
        parent_id=TaskId(str(parent_id)) if parent_id else None,
        is_completed=is_completed,
    )


def update_payload(task: Task) -> Dict[str, Any]:
    """Fields sent to Todoist when a task is written back (labels only)."""
    return {"labels": task.label_names()}


class TodoistTaskRepository(TaskRepository):
    """TaskRepository backed by the Todoist REST API.

    The SDK is synchronous, so each call runs in a worker thread. Cache and
    label-id state is only touched on the event loop thread. Any mutation
    clears both snapshots, and a fetch that overlapped a mutation is not cached.
    """

    def __init__(self, api: TodoistAPI, cache: Optional[SnapshotCache] = None):
        """Initialize the repository.

        Args:
            api: Authenticated Todoist SDK client
            cache: Snapshot cache owned by this repository. A fresh one with the
                default TTL is created if None.
        """
        self.api = api
        self.cache = cache if cache is not None else SnapshotCache()
        self._label_ids: Dict[str, str] = {}
        self._label_lock_instance: Optional[asyncio.Lock] = None
        self._label_lock_loop: Optional[asyncio.AbstractEventLoop] = None

    async def _call(self, description: str, func: Callable[..., T], *args, **kwargs) -> T:
        """Run a blocking SDK call off the event loop and wrap its failures.

        Raises:
            RepositoryError: If the API call fails
        """
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except requests.exceptions.HTTPError as e:
            raise RepositoryError(f"Todoist API error while trying to {description}: {e}") from e
        except requests.exceptions.RequestException as e:
            raise RepositoryError(f"Network error while trying to {description}: {e}") from e
        except Exception as e:
            raise RepositoryError(f"Failed to {description}: {type(e).__name__}: {e}") from e

    def _invalidate(self) -> None:
        logger.debug("Clearing task and label cache")
        self.cache.clear()

    def _fetch_all_tasks(self) -> List[Any]:
        # get_tasks() returns an iterator of pages; it follows the cursor until exhausted
        all_todoist_tasks: List[Any] = []
        for task_list in self.api.get_tasks():
            all_todoist_tasks.extend(task_list)
        return all_todoist_tasks

    def _fetch_all_labels(self) -> List[Any]:
        all_todoist_labels: List[Any] = []
        for label_list in self.api.get_labels():
            all_todoist_labels.extend(label_list)
        return all_todoist_labels

    async def get_all(self) -> TaskCollection:
        cached = self.cache.get_tasks()
        if cached is not None:
            logger.info("Using cached tasks")
            return TaskCollection([task.model_copy(deep=True) for task in cached])

        generation = self.cache.generation
        todoist_tasks = await self._call("fetch tasks", self._fetch_all_tasks)
        tasks = [task_from_todoist(task) for task in todoist_tasks]
        if not self.cache.set_tasks(tasks, generation):
            logger.debug("Cache was cleared during the task fetch, not caching the result")
        logger.info(f"Retrieved {len(tasks)} tasks from Todoist")
        return TaskCollection([task.model_copy(deep=True) for task in tasks])

    async def _load_labels(self) -> List[TaskLabel]:
        generation = self.cache.generation
        todoist_labels = await self._call("fetch labels", self._fetch_all_labels)
        labels = [TaskLabel(todoist_label.name) for todoist_label in todoist_labels]
        label_ids = {todoist_label.name: str(todoist_label.id) for todoist_label in todoist_labels}
        if self.cache.set_labels(labels, generation):
            self._label_ids = label_ids
        else:
            # A label mutation landed mid-fetch; keep ids it recorded
            logger.debug("Cache was cleared during the label fetch, not caching the result")
            self._label_ids.update(label_ids)
        logger.info(f"Retrieved {len(labels)} labels from Todoist")
        return labels

    async def get_labels(self) -> List[TaskLabel]:
        cached = self.cache.get_labels()
        if cached is not None:
            logger.info("Using cached labels")
            return cached
        return await self._load_labels()

    async def update(self, task: Task) -> None:
        await self._call(f"update task {task.id}", self.api.update_task, task.id.value, **update_payload(task))
        self._invalidate()
        logger.debug(f"Updated task {task.id}: {task.content[:50]}")

    async def create(self, content: str, parent_id: Optional[TaskId] = None) -> Task:
        kwargs: Dict[str, Any] = {"content": content}
        if parent_id is not None:
            kwargs["parent_id"] = parent_id.value
        todoist_task = await self._call(f"create task {content[:50]!r}", self.api.add_task, **kwargs)
        self._invalidate()
        task = task_from_todoist(todoist_task)
        logger.debug(f"Created task {task.id}: {content[:50]}")
        return task

    async def delete(self, task_id: TaskId) -> None:
        await self._call(f"delete task {task_id}", self.api.delete_task, task_id.value)
        self._invalidate()
        logger.debug(f"Deleted task {task_id}")

    def _label_lock(self) -> asyncio.Lock:
        # asyncio.Lock must not be shared across event loops
        loop = asyncio.get_running_loop()
        if self._label_lock_loop is not loop:
            self._label_lock_instance = asyncio.Lock()
            self._label_lock_loop = loop
        return self._label_lock_instance

    async def create_label(self, name: str) -> Optional[TaskLabel]:
        # Serialized so two creates of one name cannot both miss the existing label
        async with self._label_lock():
            existing = await self.get_labels()
            if any(label.title == name for label in existing):
                logger.info(f'Label "{name}" already exists, skipping creation')
                return None

            logger.info(f"Creating new label: {name}")
            todoist_label = await self._call(f"create label {name!r}", self.api.add_label, name=name)
            self._label_ids[todoist_label.name] = str(todoist_label.id)
            self._invalidate()
            return TaskLabel(todoist_label.name)

    async def delete_label(self, title: str) -> None:
        label_id = self._label_ids.get(title)
        if label_id is None:
            # The id map may be stale; refresh it from the API before giving up
            await self._load_labels()
            label_id = self._label_ids.get(title)
        if label_id is None:
            raise LabelNotFoundError(title)

        await self._call(f"delete label {title!r}", self.api.delete_label, label_id)
        self._label_ids.pop(title, None)
        self._invalidate()
        logger.debug(f"Deleted label {title}")
