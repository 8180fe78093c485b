"""Constants for goalcron.

This module centralizes the label names, content rules and default values used
throughout the automation.
"""


# Labels the automation reads or writes
GOAL_LABEL = "goal"
WORK_TASK_LABEL = "task"
NON_MILESTONE_LABEL = "non-milestone"

# Dependency labels
DEPENDENCY_LABEL_PREFIX = "dep-"
DEPENDENCY_LABEL_MAX_LENGTH = 50

# Milestone marker tasks are detected by substring match on content
MILESTONE_MARKER_SUBSTRINGS = (
    "のマイルストーンを",
    "マイルストーンを置く",
    "マイルストーンを書く",
)
MILESTONE_TASK_SUFFIX = "のマイルストーンを置く"

# Batch processing: keep the Todoist API under its rate limits
DEFAULT_CONCURRENCY = 2

# Repository snapshot cache
DEFAULT_CACHE_TTL_SECONDS = 5 * 60
