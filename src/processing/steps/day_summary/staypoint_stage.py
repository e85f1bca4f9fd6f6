"""Staypoint aggregation stage: index, dominance, transit and POI density."""

import logging

from memory_canon.models import (
    DaySummary,
    DominantStaypoint,
    HomeDescriptor,
    MediaAsset,
    Staypoint,
)

from .base import DaySummaries
from .configs import StaypointStageConfig

logger = logging.getLogger(__name__)


def staypoint_key(day: str, staypoint: Staypoint) -> str:
    """Stable key of a staypoint within a day."""
    return f"{day}:{staypoint.start}:{staypoint.end}"


def build_staypoint_index(
    day: str, staypoints: list[Staypoint], members: list[MediaAsset]
) -> tuple[dict[int, str], dict[str, int]]:
    """Assign members to the staypoint whose interval holds their timestamp.

    Returns:
        The media id to staypoint key mapping and the member count per key.
    """
    index: dict[int, str] = {}
    counts: dict[str, int] = {}
    if not staypoints:
        return index, counts

    for media in members:
        ts = media.timestamp
        if ts is None:
            continue
        for staypoint in staypoints:
            if staypoint.start <= ts <= staypoint.end:
                key = staypoint_key(day, staypoint)
                index[media.id] = key
                counts[key] = counts.get(key, 0) + 1
                break

    return index, counts


def transit_ratio(summary: DaySummary) -> float:
    """Share of the GPS span not spent at staypoints, in [0, 1]."""
    first = summary.first_gps_media
    last = summary.last_gps_media
    if first is None or last is None:
        return 0.0

    span = (last.timestamp or 0) - (first.timestamp or 0)
    if span <= 0:
        return 0.0

    dwell = sum(staypoint.dwell_seconds for staypoint in summary.staypoints)
    if dwell <= 0:
        return 1.0
    if dwell >= span:
        return 0.0
    return min(1.0, max(0.0, (span - dwell) / span))


def poi_density(
    poi_samples: int, photo_count: int, staypoint_count: int
) -> float:
    """POI samples per staypoint (or per photo without staypoints)."""
    if poi_samples <= 0:
        return 0.0
    if staypoint_count > 0:
        density = poi_samples / staypoint_count
    elif photo_count > 0:
        density = poi_samples / photo_count
    else:
        return 0.0
    return min(1.0, max(0.0, density))


class StaypointStage:
    """Ranks each day's staypoints and derives transit metrics."""

    def __init__(self, config: StaypointStageConfig | None = None) -> None:
        """Initialize the stage with the dominant staypoint limit."""
        self.config = config or StaypointStageConfig()

    def process(
        self, days: DaySummaries, home: HomeDescriptor  # noqa: ARG002
    ) -> DaySummaries:
        """Fill the staypoint aggregates of every day."""
        for summary in days.values():
            index, counts = build_staypoint_index(
                summary.date, summary.staypoints, summary.members
            )
            summary.staypoint_index = index
            summary.staypoint_counts = counts
            summary.dominant_staypoints = self._dominant(summary, counts)
            summary.transit_ratio = transit_ratio(summary)
            summary.poi_density = poi_density(
                summary.poi_samples,
                summary.photo_count,
                len(summary.staypoints),
            )
        return days

    def _dominant(
        self, summary: DaySummary, counts: dict[str, int]
    ) -> list[DominantStaypoint]:
        ranked = []
        for staypoint in summary.staypoints:
            key = staypoint_key(summary.date, staypoint)
            ranked.append(
                DominantStaypoint(
                    key=key,
                    lat=staypoint.lat,
                    lon=staypoint.lon,
                    start=staypoint.start,
                    end=staypoint.end,
                    dwell_seconds=staypoint.dwell_seconds,
                    member_count=counts.get(key, 0),
                )
            )

        ranked.sort(key=lambda s: (-s.dwell_seconds, -s.member_count, s.key))
        return ranked[: self.config.dominant_limit]
