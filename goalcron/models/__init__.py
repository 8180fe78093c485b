"""Data models for goalcron."""

from goalcron.models.task import Task, TaskId, TaskLabel
from goalcron.models.task_collection import TaskCollection, MilestoneCheck

__all__ = [
    "Task",
    "TaskId",
    "TaskLabel",
    "TaskCollection",
    "MilestoneCheck",
]
