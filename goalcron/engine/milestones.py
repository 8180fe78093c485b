"""Milestone lifecycle automation.

A goal task moves through these states across cron runs:

    (no marker, no children)
        -> assign:  gets @non-milestone
        -> create:  gets a "<goal>のマイルストーンを置く" child
        -> (someone adds a real @task/@goal child)
        -> cleanup: loses @non-milestone

Each phase fetches its own snapshot, so a phase sees everything the previous
one wrote.
"""

import logging
from dataclasses import dataclass

from goalcron.engine.batch import run_bounded
from goalcron.models.constants import (
    DEFAULT_CONCURRENCY,
    GOAL_LABEL,
    MILESTONE_TASK_SUFFIX,
    NON_MILESTONE_LABEL,
)
from goalcron.models.task import Task, TaskLabel
from goalcron.repository.base import TaskRepository

logger = logging.getLogger(__name__)


@dataclass
class MilestoneCreationSummary:
    """Outcome counts of the milestone-task creation phase."""

    created: int = 0
    skipped: int = 0
    failed: int = 0


def milestone_task_content(goal: Task) -> str:
    return f"{goal.content}{MILESTONE_TASK_SUFFIX}"


class ManageMilestonesUseCase:
    """Keep @non-milestone labels and milestone marker tasks in sync with goals."""

    def __init__(self, repository: TaskRepository, concurrency: int = DEFAULT_CONCURRENCY):
        self.repository = repository
        self.concurrency = concurrency

    async def execute(self) -> None:
        logger.info("=== Manage milestones started ===")
        await self.assign_non_milestone_labels()
        await self.create_milestone_tasks()
        await self.cleanup_non_milestone_labels()
        logger.info("=== Manage milestones completed ===")

    async def assign_non_milestone_labels(self) -> int:
        """Mark every leaf goal with @non-milestone.

        Returns:
            Number of goals successfully updated
        """
        logger.info("--- Assigning @non-milestone to leaf goals ---")

        tasks = await self.repository.get_all()
        leaf_goals = tasks.find_leaf_goal_tasks()

        async def assign(task: Task) -> int:
            task.add_label(TaskLabel(NON_MILESTONE_LABEL))
            try:
                await self.repository.update(task)
                return 1
            except Exception as e:
                logger.error(f'Failed to assign @non-milestone to "{task.content}" ({task.id}): {type(e).__name__}: {e}')
                return 0

        assigned = sum(await run_bounded(leaf_goals, assign, self.concurrency))

        if assigned > 0:
            logger.info(f"✓ Assigned @non-milestone to {assigned} goal tasks")
        elif leaf_goals:
            logger.info(f"No goal tasks were labelled; all {len(leaf_goals)} updates failed")
        else:
            logger.info("Nothing to do: no leaf goal tasks need @non-milestone")
        return assigned

    async def create_milestone_tasks(self) -> MilestoneCreationSummary:
        """Create a milestone marker task under each @goal @non-milestone task.

        Goals that already have a marker, or have gained real children, are
        skipped.
        """
        logger.info("--- Creating milestone tasks for goals ---")

        tasks = await self.repository.get_all()
        candidates = tasks.filter_by_label(GOAL_LABEL).filter_by_label(NON_MILESTONE_LABEL).get_all()

        async def create(goal: Task) -> MilestoneCreationSummary:
            # Checked against the full snapshot, not the filtered candidates
            check = tasks.can_create_milestone(goal)
            if not check.allowed:
                logger.info(f'Skipping milestone task for "{goal.content}": {check.reason}')
                return MilestoneCreationSummary(skipped=1)
            try:
                await self.repository.create(milestone_task_content(goal), goal.id)
                return MilestoneCreationSummary(created=1)
            except Exception as e:
                logger.error(f'Failed to create milestone task for "{goal.content}" ({goal.id}): {type(e).__name__}: {e}')
                return MilestoneCreationSummary(failed=1)

        results = await run_bounded(candidates, create, self.concurrency)
        summary = MilestoneCreationSummary(
            created=sum(r.created for r in results),
            skipped=sum(r.skipped for r in results),
            failed=sum(r.failed for r in results),
        )

        if summary.created > 0:
            logger.info(f"✓ Created {summary.created} milestone tasks")
        if summary.skipped > 0:
            logger.info(f"ℹ️ Skipped {summary.skipped} milestone tasks")
        if summary.failed > 0:
            logger.info(f"✗ Failed to create {summary.failed} milestone tasks")
        if summary.created == 0 and summary.skipped == 0 and summary.failed == 0:
            logger.info("Nothing to do: no milestone tasks created or skipped")
        return summary

    async def cleanup_non_milestone_labels(self) -> int:
        """Remove @non-milestone from tasks that now have @task or @goal children.

        Returns:
            Number of tasks successfully updated
        """
        logger.info("--- Cleaning up stale @non-milestone labels ---")

        tasks = await self.repository.get_all()
        stale = tasks.find_non_milestone_parent_tasks()

        async def cleanup(task: Task) -> int:
            task.remove_label(NON_MILESTONE_LABEL)
            try:
                await self.repository.update(task)
                return 1
            except Exception as e:
                logger.error(f'Failed to remove @non-milestone from "{task.content}" ({task.id}): {type(e).__name__}: {e}')
                return 0

        processed = sum(await run_bounded(stale, cleanup, self.concurrency))

        if processed > 0:
            logger.info(f"✓ Removed @non-milestone from {processed} tasks")
        elif stale:
            logger.info(f"No @non-milestone labels removed; all {len(stale)} updates failed")
        else:
            logger.info("Nothing to do: no stale @non-milestone labels")
        return processed
