"""Day summary pipeline: per-day aggregates of a media collection."""

from .away_flags import (
    AwayFlagStage,
    fill_distance_runs,
    inherit_synthetic_flags,
    morphological_closing,
)
from .base import DaySummaries, DaySummaryStage
from .cohort_presence import CohortPresenceStage
from .configs import (
    AwayFlagConfig,
    CohortPresenceConfig,
    DaySummaryConfig,
    GpsMetricsConfig,
    StaypointStageConfig,
    TransportSpeedConfig,
)
from .density import DensityStage
from .gps_metrics import GpsMetricsStage, filter_gps_outliers
from .initialization import InitializationStage
from .pipeline import (
    DaySummaryPipeline,
    run_day_summary_pipeline,
    summaries_frame,
)
from .staypoint_stage import StaypointStage
from .transport_speed import TransportSpeedStage

__all__ = [
    "AwayFlagConfig",
    "AwayFlagStage",
    "CohortPresenceConfig",
    "CohortPresenceStage",
    "DaySummaries",
    "DaySummaryConfig",
    "DaySummaryPipeline",
    "DaySummaryStage",
    "DensityStage",
    "GpsMetricsConfig",
    "GpsMetricsStage",
    "InitializationStage",
    "StaypointStage",
    "StaypointStageConfig",
    "TransportSpeedConfig",
    "TransportSpeedStage",
    "fill_distance_runs",
    "filter_gps_outliers",
    "inherit_synthetic_flags",
    "morphological_closing",
    "run_day_summary_pipeline",
    "summaries_frame",
]
