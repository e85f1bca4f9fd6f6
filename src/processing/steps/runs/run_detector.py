"""Detection of contiguous away runs from enriched day summaries.

Algorithm Overview:
-------------------
1. Day features
    - Centroid of the GPS members (else the dominant staypoint, else the
      base location) and its distance to the nearest home center
    - Transit heavy (high speed, transit ratio or leg speeds), staypoint
      dwell, hotel signal (tourism hits backed by a stay)
2. Initial candidates
    - Centroid beyond the home radius or the minimum away distance
    - Transport or hotel signals together with distance evidence
    - Any day flagged ``base_away`` by the day summary pipeline
    - A dominant staypoint outside home
3. Streak logic
    - Transit heavy streaks of two or more days are promoted
    - Low sample days strictly between two away days are bridged
    - Transit heavy days next to an away day are absorbed
4. Demotion
    - Candidates whose dominant staypoint is at home, or that have neither
      GPS anchors nor transit or staypoint evidence, are dropped
5. Runs
    - Consecutive candidate days form runs, each extended by adjacent
      transfer days (synthetic gap days count as sequential there)
    - Runs of ten or more days get a second pass that bridges gap days
      with a lower photo threshold
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime, time

from memory_canon.models import DaySummary, GeoPoint, HomeDescriptor
from processing.resolvers.home_boundary import (
    has_coordinate_samples,
    is_beyond_home,
    nearest_center,
)
from processing.resolvers.timezone import zone_from_identifier
from processing.steps.day_summary.base import DaySummaries
from processing.utils.geo import centroid

from .configs import RunDetectorConfig
from .transport_extender import (
    TransportDayExtender,
    are_sequential_days,
    is_transit_heavy,
)

logger = logging.getLogger(__name__)


@dataclass
class DayFeatures:
    """Signals of one day used by the candidate rules."""

    has_gps_anchors: bool
    has_staypoint_dwell: bool
    dominant_outside_home: bool
    dominant_inside_home: bool
    transit_heavy: bool
    transport_signal: bool
    hotel_signal: bool
    sufficient_samples: bool
    photo_count: int
    distance_km: float
    centroid_distance_km: float | None
    centroid_radius_km: float | None
    centroid_beyond_home: bool
    base_away: bool

    @property
    def has_evidence(self) -> bool:
        """GPS, transit or staypoint evidence for being somewhere."""
        return (
            self.has_gps_anchors
            or self.transit_heavy
            or self.has_staypoint_dwell
        )


class RunDetector:
    """Turns day summaries into runs of consecutive away days."""

    def __init__(
        self,
        config: RunDetectorConfig | None = None,
        extender: TransportDayExtender | None = None,
    ) -> None:
        """Initialize the detector.

        Args:
            config: Distance, sample and transit thresholds.
            extender: Transfer day extender applied to every run.
        """
        self.config = config or RunDetectorConfig()
        self.extender = extender or TransportDayExtender(self.config.extender)

    def detect(
        self, days: DaySummaries, home: HomeDescriptor
    ) -> list[list[str]]:
        """Detect away runs.

        Args:
            days: Enriched day summaries keyed by date in ascending order.
            home: Home descriptor.

        Returns:
            Runs as lists of date keys in chronological order.
        """
        if not days:
            return []

        keys = list(days)
        features = {key: self._features(days[key], home) for key in keys}
        threshold = self.config.min_away_distance_km

        away: dict[str, bool] = {}
        for key in keys:
            day = features[key]
            candidate = self._initial_candidate(day)
            if not candidate and day.has_gps_anchors:
                useful = day.sufficient_samples or day.photo_count >= 2
                if (
                    useful
                    and day.centroid_distance_km is not None
                    and day.centroid_radius_km is not None
                    and day.centroid_distance_km > day.centroid_radius_km
                ):
                    candidate = True
                if not candidate and useful and day.distance_km > threshold:
                    candidate = True
            if not candidate and day.dominant_outside_home:
                candidate = True
            if (
                not candidate
                and day.hotel_signal
                and day.has_staypoint_dwell
                and day.distance_km > threshold
            ):
                candidate = True
            away[key] = candidate

        self._promote_transit_streaks(away, keys, features)
        self._bridge_low_samples(
            away, keys, features, lambda key: self.config.min_items_per_day
        )
        self._absorb_transit_neighbours(away, keys, features)
        self._demote(away, keys, features)

        runs = self._collect_runs(keys, away, days)
        long_run_keys = self._long_run_keys(runs, keys, features)
        if long_run_keys:
            self._bridge_low_samples(
                away,
                keys,
                features,
                lambda key: (
                    self.config.long_run_min_items_per_day
                    if key in long_run_keys
                    else self.config.min_items_per_day
                ),
            )
            self._absorb_transit_neighbours(away, keys, features)
            self._demote(away, keys, features)
            runs = self._collect_runs(keys, away, days)

        logger.info("Detected %d away run(s) over %d days", len(runs), len(keys))
        return runs

    # Features ------------------------------------------------------------
    def _features(self, summary: DaySummary, home: HomeDescriptor) -> DayFeatures:
        timestamp = self._summary_timestamp(summary)
        transit_heavy = is_transit_heavy(
            summary,
            self.config.transit_ratio_threshold,
            self.config.transit_speed_threshold_kmh,
        )
        has_dwell = self._has_staypoint_dwell(summary)

        center = self._day_centroid(summary)
        centroid_distance = None
        centroid_radius = None
        distance = summary.max_distance_km
        if center is not None:
            nearest = nearest_center(home, center.lat, center.lon, timestamp)
            centroid_distance = nearest.distance_km
            centroid_radius = nearest.radius_km
            distance = nearest.distance_km

        dominant_outside = False
        dominant_inside = False
        if summary.dominant_staypoints:
            primary = summary.dominant_staypoints[0]
            dominant_outside = is_beyond_home(
                home,
                primary.lat,
                primary.lon,
                treat_secondary_as_home=True,
                timestamp=timestamp,
            )
            dominant_inside = not dominant_outside

        return DayFeatures(
            has_gps_anchors=has_coordinate_samples(summary.gps_members),
            has_staypoint_dwell=has_dwell,
            dominant_outside_home=dominant_outside,
            dominant_inside_home=dominant_inside,
            transit_heavy=transit_heavy,
            transport_signal=(
                transit_heavy
                or summary.has_airport_poi
                or summary.has_high_speed_transit
            ),
            hotel_signal=self._has_hotel_signal(summary, has_dwell),
            sufficient_samples=summary.sufficient_samples,
            photo_count=summary.photo_count,
            distance_km=distance,
            centroid_distance_km=centroid_distance,
            centroid_radius_km=centroid_radius,
            centroid_beyond_home=(
                centroid_distance is not None
                and centroid_distance > centroid_radius
            ),
            base_away=summary.base_away,
        )

    def _initial_candidate(self, day: DayFeatures) -> bool:
        if day.centroid_beyond_home:
            return True

        threshold = self.config.min_away_distance_km
        if day.centroid_distance_km is not None:
            limit = threshold
            if day.centroid_radius_km is not None:
                limit = max(threshold, day.centroid_radius_km)
            if day.centroid_distance_km > limit:
                return True

        if day.transport_signal and day.distance_km > threshold:
            return True
        return day.base_away

    def _has_staypoint_dwell(self, summary: DaySummary) -> bool:
        minimum = self.config.min_staypoint_bridge_dwell_seconds
        return any(
            s.dwell_seconds >= minimum for s in summary.staypoints
        ) or any(s.dwell_seconds >= minimum for s in summary.dominant_staypoints)

    def _has_hotel_signal(self, summary: DaySummary, has_dwell: bool) -> bool:
        if summary.tourism_hits <= 0:
            return False
        return (
            has_dwell
            or bool(summary.staypoint_counts)
            or summary.poi_density >= self.config.hotel_poi_density
        )

    @staticmethod
    def _day_centroid(summary: DaySummary) -> GeoPoint | None:
        if summary.gps_members:
            return centroid(summary.gps_members)
        if summary.dominant_staypoints:
            primary = summary.dominant_staypoints[0]
            return GeoPoint(lat=primary.lat, lon=primary.lon)
        if summary.base_location is not None:
            return GeoPoint(
                lat=summary.base_location.lat, lon=summary.base_location.lon
            )
        return None

    @staticmethod
    def _summary_timestamp(summary: DaySummary) -> int | None:
        for media in summary.gps_members:
            if media.timestamp is not None:
                return media.timestamp
        zone = zone_from_identifier(summary.local_timezone_identifier) or UTC
        noon = datetime.combine(
            date.fromisoformat(summary.date), time(12), tzinfo=zone
        )
        return int(noon.timestamp())

    # Streak passes -------------------------------------------------------
    @staticmethod
    def _promote_transit_streaks(
        away: dict[str, bool],
        keys: list[str],
        features: dict[str, DayFeatures],
    ) -> None:
        streak: list[str] = []
        for key in [*keys, None]:
            if key is not None and features[key].transit_heavy:
                streak.append(key)
                continue
            if len(streak) >= 2:
                for transit_key in streak:
                    away[transit_key] = True
            streak = []

    @staticmethod
    def _bridge_low_samples(
        away: dict[str, bool],
        keys: list[str],
        features: dict[str, DayFeatures],
        threshold: Callable[[str], int],
    ) -> None:
        for i in range(1, len(keys) - 1):
            key = keys[i]
            if away[key]:
                continue
            if not (away[keys[i - 1]] and away[keys[i + 1]]):
                continue
            day = features[key]
            if day.photo_count < threshold(key) and day.has_evidence:
                away[key] = True

    @staticmethod
    def _absorb_transit_neighbours(
        away: dict[str, bool],
        keys: list[str],
        features: dict[str, DayFeatures],
    ) -> None:
        for i, key in enumerate(keys):
            if away[key] or not features[key].transit_heavy:
                continue
            prev_away = i > 0 and away[keys[i - 1]]
            next_away = i + 1 < len(keys) and away[keys[i + 1]]
            if prev_away or next_away:
                away[key] = True

    @staticmethod
    def _demote(
        away: dict[str, bool],
        keys: list[str],
        features: dict[str, DayFeatures],
    ) -> None:
        for key in keys:
            if not away[key]:
                continue
            day = features[key]
            if day.dominant_inside_home or not day.has_evidence:
                away[key] = False

    # Runs ----------------------------------------------------------------
    def _collect_runs(
        self, keys: list[str], away: dict[str, bool], days: DaySummaries
    ) -> list[list[str]]:
        runs: list[list[str]] = []
        run: list[str] = []

        def flush() -> None:
            if run:
                extended = self.extender.extend(run, days)
                if extended:
                    runs.append(extended)
                run.clear()

        for key in keys:
            if not away[key]:
                flush()
                continue
            if run and not are_sequential_days(run[-1], key, days):
                flush()
            run.append(key)
        flush()
        return runs

    def _long_run_keys(
        self,
        runs: list[list[str]],
        keys: list[str],
        features: dict[str, DayFeatures],
    ) -> set[str]:
        index_by_key = {key: index for index, key in enumerate(keys)}
        marked: set[str] = set()
        for run in runs:
            photos = sum(features[key].photo_count for key in run)
            if len(run) < self.config.long_run_min_days:
                continue
            if photos / len(run) < self.config.long_run_min_avg_photos:
                continue
            start = index_by_key[run[0]]
            end = index_by_key[run[-1]]
            marked.update(keys[start : end + 1])
        return marked


def detect_vacation_runs(
    days: DaySummaries,
    home: HomeDescriptor,
    config: RunDetectorConfig | None = None,
) -> list[list[str]]:
    """Detect away runs with a default configured :class:`RunDetector`."""
    return RunDetector(config).detect(days, home)
