"""Vacation scoring of away runs."""

from .configs import VacationScoreConfig, VacationScoreWeights
from .vacation_score import (
    VacationScoreCalculator,
    build_vacation_draft,
    format_location_component,
)

__all__ = [
    "VacationScoreCalculator",
    "VacationScoreConfig",
    "VacationScoreWeights",
    "build_vacation_draft",
    "format_location_component",
]
