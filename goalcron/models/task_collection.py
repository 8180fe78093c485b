"""Snapshot index over the tasks fetched in one pass.

All parent/child checks search the complete snapshot held by the collection.
Filtering by label narrows which tasks are evaluated, so graph queries must be
called on the unfiltered collection returned by ``TaskRepository.get_all``.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from goalcron.models.task import Task, TaskId


@dataclass(frozen=True)
class MilestoneCheck:
    """Result of asking whether a milestone marker task may be created.

    A refusal is an expected steady-state outcome, carried as a value with a
    human-readable reason.
    """

    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def ok(cls) -> "MilestoneCheck":
        return cls(allowed=True)

    @classmethod
    def skip(cls, reason: str) -> "MilestoneCheck":
        return cls(allowed=False, reason=reason)


class TaskCollection:
    """Immutable index over a list of tasks."""

    def __init__(self, tasks: List[Task]):
        self._tasks: List[Task] = list(tasks)
        self._by_id: Dict[str, Task] = {task.id.value: task for task in self._tasks}

    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self) -> Iterator[Task]:
        return iter(list(self._tasks))

    def get_all(self) -> List[Task]:
        return list(self._tasks)

    def get_by_id(self, task_id: TaskId) -> Optional[Task]:
        return self._by_id.get(task_id.value)

    def filter_by_label(self, name: str) -> "TaskCollection":
        """Return a sub-collection of the tasks carrying the given label."""
        return TaskCollection([task for task in self._tasks if task.has_label(name)])

    def _has_work_or_goal_child(self, parent: Task) -> bool:
        return any(
            task.is_child_of(parent.id) and (task.is_work_task() or task.is_goal())
            for task in self._tasks
        )

    def find_leaf_goal_tasks(self) -> List[Task]:
        """Find @goal tasks that have no @task or @goal children.

        Goals already marked @non-milestone are excluded. A goal whose only
        child is a milestone marker task still counts as a leaf.
        """
        return [
            task for task in self._tasks
            if task.is_goal() and not task.is_non_milestone() and not self._has_work_or_goal_child(task)
        ]

    def find_non_milestone_parent_tasks(self) -> List[Task]:
        """Find @non-milestone tasks that have since gained a @task or @goal child."""
        return [
            task for task in self._tasks
            if task.is_non_milestone() and self._has_work_or_goal_child(task)
        ]

    def has_milestone_task_for(self, parent_id: TaskId) -> bool:
        return any(
            task.is_child_of(parent_id) and task.is_milestone_marker_task()
            for task in self._tasks
        )

    def find_milestone_tasks(self) -> List[Task]:
        return [task for task in self._tasks if task.is_milestone_marker_task()]

    def can_create_milestone(self, task: Task) -> MilestoneCheck:
        """Check whether a milestone marker task may be created under ``task``.

        Args:
            task: Goal task that would receive the marker

        Returns:
            MilestoneCheck.ok() if creation may proceed, otherwise a skip with the reason
        """
        if self._has_work_or_goal_child(task):
            return MilestoneCheck.skip(f'"{task.content}" has @task or @goal children')

        if self.has_milestone_task_for(task.id):
            return MilestoneCheck.skip(f'milestone task already exists for "{task.content}"')

        return MilestoneCheck.ok()
