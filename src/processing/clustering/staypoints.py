"""Staypoint detection on time-ordered GPS tracks."""

import logging
from collections.abc import Sequence

from pydantic import BaseModel, Field

from memory_canon.models import MediaAsset, Staypoint
from processing.utils.geo import centroid, haversine_distance_km

from .dbscan import cluster_media

logger = logging.getLogger(__name__)


class StaypointDetectorConfig(BaseModel):
    """Configuration for the staypoint detector."""

    radius_km: float = Field(
        default=0.2,
        gt=0,
        description="Maximum distance of window points to the start point",
    )
    min_dwell_seconds: int = Field(
        default=3600,
        ge=1,
        description="Minimum elapsed time of a segment to count as a stay",
    )
    fallback_enabled: bool = Field(
        default=False,
        description=(
            "Run a DBSCAN pass when the sequential scan finds no staypoint"
        ),
    )
    fallback_radius_km: float = Field(
        default=0.18,
        ge=0,
        description="DBSCAN radius of the fallback pass",
    )
    fallback_min_samples: int = Field(
        default=3,
        ge=1,
        description="DBSCAN minimum samples of the fallback pass",
    )
    fallback_min_dwell_seconds: int = Field(
        default=1200,
        ge=0,
        description="Minimum dwell of a fallback cluster",
    )


class StaypointDetector:
    """Segments a GPS track into dwell intervals."""

    def __init__(self, config: StaypointDetectorConfig | None = None) -> None:
        """Initialize the detector.

        Args:
            config: Detector configuration, defaults to 200 m / 1 hour.
        """
        self.config = config or StaypointDetectorConfig()

    def detect(self, gps_members: Sequence[MediaAsset]) -> list[Staypoint]:
        """Detect staypoints in media ordered by capture time.

        Args:
            gps_members: GPS-tagged media sorted by capture timestamp.

        Returns:
            Staypoints in track order.
        """
        staypoints = self._detect_sequential(gps_members)
        if staypoints or not self.config.fallback_enabled:
            return staypoints

        return self._detect_with_dbscan(gps_members)

    def _detect_sequential(
        self, gps_members: Sequence[MediaAsset]
    ) -> list[Staypoint]:
        count = len(gps_members)
        if count < 2:
            return []

        radius_km = self.config.radius_km
        staypoints: list[Staypoint] = []
        index = 0
        while index < count - 1:
            start = gps_members[index]
            if not start.has_gps or start.timestamp is None:
                index += 1
                continue

            window_end = index + 1
            while window_end < count:
                candidate = gps_members[window_end]
                if not candidate.has_gps or candidate.timestamp is None:
                    window_end += 1
                    continue
                distance = haversine_distance_km(
                    start.gps_lat,
                    start.gps_lon,
                    candidate.gps_lat,
                    candidate.gps_lon,
                )
                if distance > radius_km:
                    break
                window_end += 1

            end_index = window_end - 1
            if end_index <= index:
                index += 1
                continue

            segment = [
                m
                for m in gps_members[index : end_index + 1]
                if m.has_gps and m.timestamp is not None
            ]
            end = segment[-1]
            dwell = end.timestamp - start.timestamp
            if len(segment) < 2 or dwell < self.config.min_dwell_seconds:
                index += 1
                continue

            point = centroid(segment)
            staypoints.append(
                Staypoint(
                    lat=point.lat,
                    lon=point.lon,
                    start=start.timestamp,
                    end=end.timestamp,
                    dwell_seconds=dwell,
                )
            )
            index = end_index + 1

        return staypoints

    def _detect_with_dbscan(
        self, gps_members: Sequence[MediaAsset]
    ) -> list[Staypoint]:
        if not gps_members or self.config.fallback_radius_km <= 0.0:
            return []

        result = cluster_media(
            gps_members,
            self.config.fallback_radius_km,
            self.config.fallback_min_samples,
        )

        staypoints: list[Staypoint] = []
        for cluster in result.clusters:
            timed = sorted(
                (m for m in cluster if m.timestamp is not None),
                key=lambda m: m.timestamp,
            )
            if not timed:
                continue
            dwell = timed[-1].timestamp - timed[0].timestamp
            if dwell < self.config.fallback_min_dwell_seconds:
                continue
            point = centroid(timed)
            staypoints.append(
                Staypoint(
                    lat=point.lat,
                    lon=point.lon,
                    start=timed[0].timestamp,
                    end=timed[-1].timestamp,
                    dwell_seconds=dwell,
                )
            )

        staypoints.sort(key=lambda s: s.start)
        logger.debug("DBSCAN fallback found %d staypoints", len(staypoints))
        return staypoints


def detect_staypoints(gps_members: Sequence[MediaAsset]) -> list[Staypoint]:
    """Detect staypoints with the default 200 m / 1 hour rule."""
    return StaypointDetector().detect(gps_members)
