"""One-off cleanup: delete every milestone marker task."""

import logging
from dataclasses import dataclass

from goalcron.engine.batch import run_bounded
from goalcron.models.constants import DEFAULT_CONCURRENCY
from goalcron.models.task import Task
from goalcron.repository.base import TaskRepository

logger = logging.getLogger(__name__)


@dataclass
class RemovalSummary:
    found: int = 0
    deleted: int = 0
    failed: int = 0


class RemoveMilestoneTasksUseCase:
    """Delete all "<goal>のマイルストーンを置く" style placeholder tasks."""

    def __init__(self, repository: TaskRepository, concurrency: int = DEFAULT_CONCURRENCY):
        self.repository = repository
        self.concurrency = concurrency

    async def execute(self) -> RemovalSummary:
        logger.info("=== Remove milestone tasks started ===")

        tasks = await self.repository.get_all()
        milestone_tasks = tasks.find_milestone_tasks()
        logger.info(f"Found {len(milestone_tasks)} milestone tasks to remove")

        async def remove(task: Task) -> RemovalSummary:
            try:
                await self.repository.delete(task.id)
                return RemovalSummary(deleted=1)
            except Exception as e:
                logger.error(f'✗ Failed to remove task "{task.content}" ({task.id}): {type(e).__name__}: {e}')
                return RemovalSummary(failed=1)

        results = await run_bounded(milestone_tasks, remove, self.concurrency)
        summary = RemovalSummary(
            found=len(milestone_tasks),
            deleted=sum(r.deleted for r in results),
            failed=sum(r.failed for r in results),
        )

        if summary.deleted > 0:
            logger.info(f"✓ Removed {summary.deleted} milestone tasks")
        if summary.failed > 0:
            logger.info(f"✗ Failed to remove {summary.failed} milestone tasks")
        if summary.deleted == 0 and summary.failed == 0:
            logger.info("Nothing to do: no milestone tasks removed")

        logger.info("=== Remove milestone tasks completed ===")
        return summary
