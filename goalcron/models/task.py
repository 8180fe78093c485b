"""Task data model for goalcron."""

import re
from typing import List, Optional
from pydantic import BaseModel, Field

from goalcron.models.constants import (
    DEPENDENCY_LABEL_MAX_LENGTH,
    DEPENDENCY_LABEL_PREFIX,
    GOAL_LABEL,
    MILESTONE_MARKER_SUBSTRINGS,
    NON_MILESTONE_LABEL,
    WORK_TASK_LABEL,
)


_WHITESPACE_RUN = re.compile(r"\s+")
_UNDERSCORE_RUN = re.compile(r"_+")


def _normalize_label_part(name: str) -> str:
    """Turn whitespace into single underscores and strip them from both ends."""
    name = _WHITESPACE_RUN.sub("_", name)
    name = _UNDERSCORE_RUN.sub("_", name)
    return name.strip("_")


class TaskId(BaseModel):
    """Opaque Todoist task identifier."""

    value: str = Field(..., min_length=1, description="Todoist task ID")

    class Config:
        """Pydantic configuration."""
        frozen = True

    def __init__(self, value: str, **data):
        super().__init__(value=value, **data)

    def __str__(self) -> str:
        return self.value


class TaskLabel(BaseModel):
    """A Todoist label, addressed by its title."""

    title: str = Field(..., description="Label name as shown in Todoist")

    class Config:
        """Pydantic configuration."""
        frozen = True

    def __init__(self, title: str, **data):
        super().__init__(title=title, **data)

    def __str__(self) -> str:
        return self.title

    def is_dependency_label(self) -> bool:
        return self.title.startswith(DEPENDENCY_LABEL_PREFIX)

    @staticmethod
    def create_dependency_label(child_name: str, parent_name: Optional[str] = None) -> str:
        """Build the dependency label name for a goal.

        Without a parent the name is ``dep-<child>``; with one it is
        ``dep-<parent>-<child>``. Whitespace runs become ``_`` and the result
        is cut at 50 characters with no regard for word boundaries.

        Args:
            child_name: Content of the goal task
            parent_name: Content of the goal's parent task, if any

        Returns:
            The dependency label name
        """
        child = _normalize_label_part(child_name)
        if parent_name:
            label_name = f"{DEPENDENCY_LABEL_PREFIX}{_normalize_label_part(parent_name)}-{child}"
        else:
            label_name = f"{DEPENDENCY_LABEL_PREFIX}{child}"
        return label_name[:DEPENDENCY_LABEL_MAX_LENGTH]


class Task(BaseModel):
    """A Todoist task as seen by the automation.

    Tasks are mutated in place by the use cases and written back through
    ``TaskRepository.update``.
    """

    id: TaskId = Field(..., description="Todoist task ID")
    content: str = Field(..., description="Task title")
    labels: List[TaskLabel] = Field(default_factory=list, description="Labels on the task (unique by title)")
    parent_id: Optional[TaskId] = Field(None, description="Parent task ID for sub-tasks")
    is_completed: bool = Field(False, description="Whether the task is completed")

    def has_label(self, name: str) -> bool:
        return any(label.title == name for label in self.labels)

    def is_goal(self) -> bool:
        return self.has_label(GOAL_LABEL)

    def is_work_task(self) -> bool:
        return self.has_label(WORK_TASK_LABEL)

    def is_non_milestone(self) -> bool:
        return self.has_label(NON_MILESTONE_LABEL)

    def is_milestone_marker_task(self) -> bool:
        """Check if this is a "place the milestone" placeholder task."""
        return any(marker in self.content for marker in MILESTONE_MARKER_SUBSTRINGS)

    def is_child_of(self, parent_id: TaskId) -> bool:
        return self.parent_id is not None and self.parent_id == parent_id

    def add_label(self, label: TaskLabel) -> None:
        if not self.has_label(label.title):
            self.labels = [*self.labels, label]

    def remove_label(self, name: str) -> None:
        self.labels = [label for label in self.labels if label.title != name]

    def label_names(self) -> List[str]:
        return [label.title for label in self.labels]
