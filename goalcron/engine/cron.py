"""Entry point for the recurring automation job."""

import asyncio
import logging
from datetime import datetime, timezone

from goalcron.engine.dependency_labels import ManageDependencyLabelsUseCase
from goalcron.engine.milestones import ManageMilestonesUseCase
from goalcron.models.constants import DEFAULT_CONCURRENCY
from goalcron.repository.base import TaskRepository

logger = logging.getLogger(__name__)


async def run_automation(repository: TaskRepository, concurrency: int = DEFAULT_CONCURRENCY) -> None:
    """Run both use cases concurrently against one repository.

    Errors propagate; see ``run_cron_job`` for the error-swallowing wrapper.
    """
    milestones = ManageMilestonesUseCase(repository, concurrency)
    dependency_labels = ManageDependencyLabelsUseCase(repository, concurrency)
    await asyncio.gather(milestones.execute(), dependency_labels.execute())


async def run_cron_job(repository: TaskRepository, concurrency: int = DEFAULT_CONCURRENCY) -> bool:
    """Run one automation pass without letting errors escape.

    Returns:
        True if the pass completed, False if it failed (the error is logged)
    """
    logger.info(f"[{datetime.now(timezone.utc).isoformat()}] Starting cron job")
    try:
        await run_automation(repository, concurrency)
    except Exception as e:
        logger.exception(f"Error in cron job: {type(e).__name__}: {e}")
        return False
    logger.info(f"[{datetime.now(timezone.utc).isoformat()}] Cron job completed successfully")
    return True
