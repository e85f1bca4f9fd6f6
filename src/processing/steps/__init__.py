"""Initialization of the steps module for photo memories.

This module imports and exposes all step functions for easy access.
"""

from .load import load_media
from .memories import detect_runs, score_runs, select_members, summarize_days

__all__ = [
    "detect_runs",
    "load_media",
    "score_runs",
    "select_members",
    "summarize_days",
]
