"""GPS metrics stage: outlier filtering, travel distance and spots."""

import logging
from collections.abc import Sequence

import polars as pl

from memory_canon.models import DaySummary, HomeDescriptor, MediaAsset
from processing.clustering.dbscan import cluster_media
from processing.clustering.staypoints import StaypointDetector
from processing.utils.geo import (
    centroid,
    distances_to_point_km,
    expr_haversine,
    gps_frame,
    leg_frame,
    sort_by_time,
)

from .base import DaySummaries
from .configs import GpsMetricsConfig

logger = logging.getLogger(__name__)


def filter_gps_outliers(
    gps_members: Sequence[MediaAsset], radius_km: float, min_samples: int
) -> list[MediaAsset]:
    """Drop GPS points without enough company.

    A point is kept when at least ``min_samples`` points, itself included,
    lie within ``radius_km``. If no point would survive, the input is
    returned unchanged.
    """
    if len(gps_members) < min_samples:
        return list(gps_members)

    frame = gps_frame(gps_members)
    support = (
        frame.join(frame, how="cross", suffix="_other")
        .with_columns(
            expr_haversine(
                pl.col("lat"),
                pl.col("lon"),
                pl.col("lat_other"),
                pl.col("lon_other"),
                units="km",
            ).alias("distance_km")
        )
        .filter(pl.col("distance_km") <= radius_km)
        .group_by("media_id")
        .agg(pl.len().alias("neighbours"))
        .filter(pl.col("neighbours") >= min_samples)
    )
    keep = set(support["media_id"].to_list())
    kept = [m for m in gps_members if m.id in keep]
    if not kept:
        return list(gps_members)

    if len(kept) < len(gps_members):
        logger.debug(
            "Removed %d GPS outliers", len(gps_members) - len(kept)
        )
    return kept


class GpsMetricsStage:
    """Computes distance metrics, staypoints and spot clusters per day."""

    def __init__(
        self,
        config: GpsMetricsConfig | None = None,
        staypoint_detector: StaypointDetector | None = None,
    ) -> None:
        """Initialize the stage.

        Args:
            config: Outlier and sample thresholds.
            staypoint_detector: Detector applied to each day's GPS track.
        """
        self.config = config or GpsMetricsConfig()
        self.staypoint_detector = staypoint_detector or StaypointDetector()

    def process(
        self, days: DaySummaries, home: HomeDescriptor  # noqa: ARG002
    ) -> DaySummaries:
        """Fill the GPS metrics of every day."""
        for summary in days.values():
            self._process_day(summary)
        return days

    def _process_day(self, summary: DaySummary) -> None:
        radius = self.config.gps_outlier_radius_km
        min_samples = self.config.gps_outlier_min_samples

        gps_members = sort_by_time(
            filter_gps_outliers(summary.gps_members, radius, min_samples)
        )
        summary.gps_members = gps_members
        summary.travel_km = 0.0
        summary.max_distance_km = 0.0
        summary.avg_distance_km = 0.0

        if gps_members:
            legs = leg_frame(gps_members)
            summary.travel_km = float(legs["leg_km"].sum()) if len(legs) else 0.0

            center = centroid(gps_members)
            distances = distances_to_point_km(gps_members, center)
            summary.centroid = center
            summary.max_distance_km = float(distances.max())
            summary.avg_distance_km = float(distances.mean())

            summary.first_gps_media = gps_members[0]
            summary.last_gps_media = gps_members[-1]
            summary.staypoints = self.staypoint_detector.detect(gps_members)
            summary.spot_dwell_seconds = sum(
                staypoint.dwell_seconds for staypoint in summary.staypoints
            )

            spots = cluster_media(
                gps_members,
                self.config.spot_cluster_radius_km,
                self.config.spot_cluster_min_samples,
            )
            summary.spot_clusters = spots.clusters
            summary.spot_noise = spots.noise
            summary.spot_count = len(spots.clusters)
            summary.spot_cluster_count = len(spots.clusters)
            summary.spot_noise_samples = len(spots.noise)

        summary.sufficient_samples = (
            summary.photo_count >= self.config.min_items_per_day
        )
