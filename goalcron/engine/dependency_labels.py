"""Dependency label automation.

Every @goal task gets exactly one ``dep-*`` label named after it (and its
parent, if it has one). Labels for goals that no longer exist are deleted.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from goalcron.engine.batch import run_bounded
from goalcron.models.constants import DEFAULT_CONCURRENCY, GOAL_LABEL
from goalcron.models.task import Task, TaskLabel
from goalcron.models.task_collection import TaskCollection
from goalcron.repository.base import TaskRepository

logger = logging.getLogger(__name__)


@dataclass
class LabelGenerationSummary:
    created: int = 0
    skipped: int = 0


@dataclass
class LabelCleanupSummary:
    deleted: int = 0
    failed: int = 0


def dependency_label_for(task: Task, tasks: TaskCollection) -> str:
    """Dependency label name for a goal, using its parent's content if the parent is in the snapshot."""
    parent_name: Optional[str] = None
    if task.parent_id is not None:
        parent = tasks.get_by_id(task.parent_id)
        if parent is not None:
            parent_name = parent.content
    return TaskLabel.create_dependency_label(task.content, parent_name)


def required_dependency_labels(tasks: TaskCollection) -> List[str]:
    """One label name per @goal task, in task order with duplicates collapsed."""
    names: List[str] = []
    for goal in tasks.filter_by_label(GOAL_LABEL):
        name = dependency_label_for(goal, tasks)
        if name not in names:
            names.append(name)
    return names


class ManageDependencyLabelsUseCase:
    """Create missing dependency labels and delete unused ones."""

    def __init__(self, repository: TaskRepository, concurrency: int = DEFAULT_CONCURRENCY):
        self.repository = repository
        self.concurrency = concurrency

    async def execute(self) -> None:
        logger.info("=== Manage dependency labels started ===")
        await self.generate_dependency_labels()
        await self.cleanup_unused_dependency_labels()
        logger.info("=== Manage dependency labels completed ===")

    async def generate_dependency_labels(self) -> LabelGenerationSummary:
        logger.info("--- Generating dependency labels for goals ---")

        tasks = await self.repository.get_all()
        label_names = [dependency_label_for(goal, tasks) for goal in tasks.filter_by_label(GOAL_LABEL)]

        async def create(name: str) -> LabelGenerationSummary:
            try:
                created = await self.repository.create_label(name)
            except Exception as e:
                logger.error(f"Failed to create label {name}: {type(e).__name__}: {e}")
                return LabelGenerationSummary(skipped=1)
            if created is None:
                return LabelGenerationSummary(skipped=1)
            return LabelGenerationSummary(created=1)

        results = await run_bounded(label_names, create, self.concurrency)
        summary = LabelGenerationSummary(
            created=sum(r.created for r in results),
            skipped=sum(r.skipped for r in results),
        )

        if summary.created > 0:
            logger.info(f"✓ Created {summary.created} new dependency labels")
        if summary.skipped > 0:
            logger.info(f"ℹ️ Skipped creating {summary.skipped} existing dependency labels")
        if summary.created == 0 and summary.skipped == 0:
            logger.info("Nothing to do: no dependency labels created or skipped")
        return summary

    async def cleanup_unused_dependency_labels(self) -> LabelCleanupSummary:
        """Delete ``dep-*`` labels that no current goal requires.

        The required set is recomputed from a fresh snapshot. Labels without
        the ``dep-`` prefix are never touched.
        """
        logger.info("--- Cleaning up unused dependency labels ---")

        tasks = await self.repository.get_all()
        required = set(required_dependency_labels(tasks))

        labels = await self.repository.get_labels()
        unused = [label for label in labels if label.is_dependency_label() and label.title not in required]

        async def delete(label: TaskLabel) -> LabelCleanupSummary:
            try:
                await self.repository.delete_label(label.title)
                return LabelCleanupSummary(deleted=1)
            except Exception as e:
                logger.error(f"Failed to delete label {label.title}: {type(e).__name__}: {e}")
                return LabelCleanupSummary(failed=1)

        results = await run_bounded(unused, delete, self.concurrency)
        summary = LabelCleanupSummary(
            deleted=sum(r.deleted for r in results),
            failed=sum(r.failed for r in results),
        )

        if summary.deleted > 0:
            logger.info(f"✓ Deleted {summary.deleted} unused dependency labels")
        if summary.failed > 0:
            logger.info(f"✗ Failed to delete {summary.failed} dependency labels")
        if summary.deleted == 0 and summary.failed == 0:
            logger.info("Nothing to do: no unused dependency labels")
        return summary
