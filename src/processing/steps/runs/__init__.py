"""Away run detection over day summaries."""

from .configs import RunDetectorConfig, TransportDayExtenderConfig
from .run_detector import DayFeatures, RunDetector, detect_vacation_runs
from .transport_extender import (
    TransportDayExtender,
    are_sequential_days,
    is_transit_heavy,
)

__all__ = [
    "DayFeatures",
    "RunDetector",
    "RunDetectorConfig",
    "TransportDayExtender",
    "TransportDayExtenderConfig",
    "are_sequential_days",
    "detect_vacation_runs",
    "is_transit_heavy",
]
