"""Shared builders for the photo memories tests."""

from .media_records import (
    BASE_DATE,
    DEFAULT_COORDS,
    capture_time,
    create_home,
    create_location,
    create_media,
    day_key,
)
from .scenario_builders import (
    create_away_summary,
    create_day_summary,
    create_dominant_staypoint,
    create_stay_day,
    create_staypoint,
    create_trip_scenario,
    summaries_by_date,
)
from .selection_records import create_candidate

__all__ = [
    "BASE_DATE",
    "DEFAULT_COORDS",
    "capture_time",
    "create_away_summary",
    "create_candidate",
    "create_day_summary",
    "create_dominant_staypoint",
    "create_home",
    "create_location",
    "create_media",
    "create_stay_day",
    "create_staypoint",
    "create_trip_scenario",
    "day_key",
    "summaries_by_date",
]
