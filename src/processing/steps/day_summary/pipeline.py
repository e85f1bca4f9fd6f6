"""Ordered execution of the day summary stages."""

import logging
from collections.abc import Sequence

import polars as pl

from memory_canon.models import HomeDescriptor, MediaAsset
from processing.clustering.staypoints import StaypointDetector
from processing.resolvers.poi import KeywordPoiClassifier, PoiClassifier
from processing.resolvers.timezone import (
    DefaultTimezoneResolver,
    TimezoneResolver,
)

from .away_flags import AwayFlagStage
from .base import DaySummaries, DaySummaryStage
from .cohort_presence import CohortPresenceStage
from .configs import DaySummaryConfig
from .density import DensityStage
from .gps_metrics import GpsMetricsStage
from .initialization import InitializationStage
from .staypoint_stage import StaypointStage
from .transport_speed import TransportSpeedStage

logger = logging.getLogger(__name__)


class DaySummaryPipeline:
    """Builds day summaries by running the stages in their fixed order.

    Initialization, GPS metrics, density, staypoint aggregation, transport
    speed, cohort presence and away flags each read fields written by the
    stages before them.
    """

    def __init__(
        self,
        config: DaySummaryConfig | None = None,
        timezone_resolver: TimezoneResolver | None = None,
        poi_classifier: PoiClassifier | None = None,
    ) -> None:
        """Initialize the pipeline and its stages.

        Args:
            config: Stage configuration.
            timezone_resolver: Shared timezone resolver; defaults to one
                using ``config.default_timezone``.
            poi_classifier: Shared POI classifier.
        """
        self.config = config or DaySummaryConfig()
        resolver = timezone_resolver or DefaultTimezoneResolver(
            self.config.default_timezone
        )
        self.initialization = InitializationStage(
            resolver, poi_classifier or KeywordPoiClassifier()
        )
        self.stages: list[DaySummaryStage] = [
            GpsMetricsStage(
                self.config.gps_metrics,
                StaypointDetector(self.config.staypoints),
            ),
            DensityStage(),
            StaypointStage(self.config.staypoint_stage),
            TransportSpeedStage(self.config.transport_speed),
            CohortPresenceStage(self.config.cohort),
            AwayFlagStage(self.config.away_flags, resolver),
        ]

    def run(
        self, media: Sequence[MediaAsset], home: HomeDescriptor
    ) -> DaySummaries:
        """Build the enriched day summaries for ``media``."""
        days = self.initialization.build(media, home)
        for stage in self.stages:
            logger.debug("Running %s", type(stage).__name__)
            days = stage.process(days, home)
        return days


def run_day_summary_pipeline(
    media: Sequence[MediaAsset],
    home: HomeDescriptor,
    config: DaySummaryConfig | None = None,
    timezone_resolver: TimezoneResolver | None = None,
    poi_classifier: PoiClassifier | None = None,
) -> DaySummaries:
    """Build day summaries with a one-off :class:`DaySummaryPipeline`."""
    pipeline = DaySummaryPipeline(config, timezone_resolver, poi_classifier)
    return pipeline.run(media, home)


def summaries_frame(days: DaySummaries) -> pl.DataFrame:
    """Tabular overview of the scalar day summary fields.

    Useful for logging and inspection; one row per day in date order.
    """
    rows = [
        {
            "date": summary.date,
            "photo_count": summary.photo_count,
            "gps_count": len(summary.gps_members),
            "is_synthetic": summary.is_synthetic,
            "travel_km": summary.travel_km,
            "avg_distance_km": summary.avg_distance_km,
            "density_z": summary.density_z,
            "transit_ratio": summary.transit_ratio,
            "max_speed_kmh": summary.max_speed_kmh,
            "tourism_hits": summary.tourism_hits,
            "timezone": summary.local_timezone_identifier,
            "base_away": summary.base_away,
            "away_by_distance": summary.away_by_distance,
        }
        for summary in days.values()
    ]
    schema = {
        "date": pl.String,
        "photo_count": pl.Int64,
        "gps_count": pl.Int64,
        "is_synthetic": pl.Boolean,
        "travel_km": pl.Float64,
        "avg_distance_km": pl.Float64,
        "density_z": pl.Float64,
        "transit_ratio": pl.Float64,
        "max_speed_kmh": pl.Float64,
        "tourism_hits": pl.Int64,
        "timezone": pl.String,
        "base_away": pl.Boolean,
        "away_by_distance": pl.Boolean,
    }
    return pl.DataFrame(rows, schema=schema)
