"""Filters of the staged selection pipeline.

Hard stages enforce quotas and duplicates, soft stages shape diversity.
"""

from .base import SelectionStage
from .day_quota import DayQuotaStage
from .orientation_balance import OrientationBalanceStage
from .people_balance import PeopleBalanceStage
from .phash_diversity import PhashDiversityStage
from .scene_diversity import SceneDiversityStage
from .staypoint_quota import StaypointQuotaStage
from .time_gap import TimeGapStage
from .time_slot import TimeSlotStage

__all__ = [
    "DayQuotaStage",
    "OrientationBalanceStage",
    "PeopleBalanceStage",
    "PhashDiversityStage",
    "SceneDiversityStage",
    "SelectionStage",
    "StaypointQuotaStage",
    "TimeGapStage",
    "TimeSlotStage",
]
