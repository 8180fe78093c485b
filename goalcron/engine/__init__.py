"""Automation engine for goalcron."""

from goalcron.engine.batch import run_bounded
from goalcron.engine.milestones import ManageMilestonesUseCase, MilestoneCreationSummary
from goalcron.engine.dependency_labels import (
    ManageDependencyLabelsUseCase,
    LabelGenerationSummary,
    LabelCleanupSummary,
    required_dependency_labels,
)
from goalcron.engine.remove_milestones import RemoveMilestoneTasksUseCase, RemovalSummary
from goalcron.engine.cron import run_automation, run_cron_job

__all__ = [
    "run_bounded",
    "ManageMilestonesUseCase",
    "MilestoneCreationSummary",
    "ManageDependencyLabelsUseCase",
    "LabelGenerationSummary",
    "LabelCleanupSummary",
    "required_dependency_labels",
    "RemoveMilestoneTasksUseCase",
    "RemovalSummary",
    "run_automation",
    "run_cron_job",
]
