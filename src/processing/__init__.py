"""Processing engine for photo memories.

Exposes the pipeline step functions; the analytical components live in
the clustering, resolvers and steps subpackages.
"""

from .steps import (
    detect_runs,
    load_media,
    score_runs,
    select_members,
    summarize_days,
)

__all__ = [
    "detect_runs",
    "load_media",
    "score_runs",
    "select_members",
    "summarize_days",
]
