"""Transport speed stage: leg speeds and the high speed transit flag."""

import logging

import polars as pl

from memory_canon.models import DaySummary, HomeDescriptor
from processing.utils.geo import leg_frame

from .base import DaySummaries
from .configs import TransportSpeedConfig

logger = logging.getLogger(__name__)


class TransportSpeedStage:
    """Computes leg speeds over the day's GPS track.

    Only legs lasting at least ``min_leg_seconds`` and covering at least
    ``min_leg_distance_km`` are considered, which filters GPS jitter.
    """

    def __init__(self, config: TransportSpeedConfig | None = None) -> None:
        """Initialize the stage with its leg filters and thresholds."""
        self.config = config or TransportSpeedConfig()

    def process(
        self, days: DaySummaries, home: HomeDescriptor  # noqa: ARG002
    ) -> DaySummaries:
        """Fill speeds and the high speed flag of every day."""
        for summary in days.values():
            self._process_day(summary)
        return days

    def _process_day(self, summary: DaySummary) -> None:
        summary.max_speed_kmh = 0.0
        summary.avg_speed_kmh = 0.0

        if len(summary.gps_members) >= 2:
            speeds = (
                leg_frame(summary.gps_members)
                .filter(
                    (pl.col("leg_seconds") >= self.config.min_leg_seconds)
                    & (pl.col("leg_km") >= self.config.min_leg_distance_km)
                )
                .select(
                    (pl.col("leg_km") / (pl.col("leg_seconds") / 3600.0))
                    .alias("speed_kmh")
                )
                .to_series()
            )
            if speeds.len() > 0:
                summary.max_speed_kmh = float(speeds.max())
                summary.avg_speed_kmh = float(speeds.mean())

        summary.has_high_speed_transit = (
            summary.max_speed_kmh >= self.config.high_speed_threshold_kmh
            or summary.travel_km > self.config.high_speed_travel_km
        )
        if summary.has_high_speed_transit:
            logger.debug(
                "High speed transit on %s (max %.1f km/h, %.1f km)",
                summary.date,
                summary.max_speed_kmh,
                summary.travel_km,
            )
