"""External service integrations for goalcron."""

from goalcron.integrations.todoist import TodoistTaskRepository, task_from_todoist, update_payload
from goalcron.integrations.http_logging import build_logging_session

__all__ = [
    "TodoistTaskRepository",
    "task_from_todoist",
    "update_payload",
    "build_logging_session",
]
