"""Todoist goal, milestone and dependency-label automation."""

__version__ = "0.1.0"
