"""Away flag stage: base locations and the smoothed away flags.

The stage resolves every day's base location and raises two raw flags:

- ``base_away`` when the base location lies outside the home region,
- ``away_by_distance`` when the day's GPS centroid (or, without GPS, its
  average distance) lies outside the home region.

Both series are smoothed independently, merged with a logical OR, smoothed
again and finally carried onto synthetic gap days. A day whose following day
is dominated by a staypoint far from home, with no home staypoint during the
night in between and no last GPS point at home, is flagged as a night away
regardless of the smoothing.
"""

import logging
from datetime import date, datetime, time, timedelta, tzinfo

from memory_canon.models import DaySummary, HomeDescriptor, Staypoint
from processing.resolvers.base_location import BaseLocationResolver
from processing.resolvers.home_boundary import (
    has_coordinate_samples,
    is_beyond_home,
    nearest_center,
    primary_radius,
)
from processing.resolvers.timezone import (
    DefaultTimezoneResolver,
    TimezoneResolver,
)
from processing.utils.geo import centroid

from .base import DaySummaries
from .configs import AwayFlagConfig

logger = logging.getLogger(__name__)


def morphological_closing(flags: list[bool]) -> list[bool]:
    """Flip every lone ``False`` between two ``True`` neighbours.

    Sequences shorter than three elements are returned unchanged. The
    result does not change when the closing is applied again.
    """
    closed = list(flags)
    if len(closed) < 3:
        return closed
    for i in range(1, len(closed) - 1):
        if not closed[i] and closed[i - 1] and closed[i + 1]:
            closed[i] = True
    return closed


def fill_distance_runs(flags: list[bool]) -> list[bool]:
    """Flag every day from the first to the last flagged day, then close.

    Days with no distance evidence in the middle of a trip are treated
    like the away days around them.
    """
    filled = list(flags)
    true_indexes = [i for i, flag in enumerate(filled) if flag]
    if len(true_indexes) > 1:
        for i in range(true_indexes[0], true_indexes[-1] + 1):
            filled[i] = True
    return morphological_closing(filled)


def inherit_synthetic_flags(
    flags: list[bool], synthetic: list[bool]
) -> list[bool]:
    """Flag synthetic days next to a flagged day.

    Days are visited in order and see the already updated flag of their
    predecessor, so a run of synthetic days after an away day is flagged
    in full.
    """
    inherited = list(flags)
    count = len(inherited)
    for i in range(count):
        if not synthetic[i]:
            continue
        prev_flag = i > 0 and inherited[i - 1]
        next_flag = i + 1 < count and inherited[i + 1]
        if prev_flag or next_flag:
            inherited[i] = True
    return inherited


class AwayFlagStage:
    """Resolves base locations and smooths the per-day away flags."""

    def __init__(
        self,
        config: AwayFlagConfig | None = None,
        timezone_resolver: TimezoneResolver | None = None,
        base_location_resolver: BaseLocationResolver | None = None,
    ) -> None:
        """Initialize the stage.

        Args:
            config: Night window and next-day distance settings.
            timezone_resolver: Resolver of each day's local zone.
            base_location_resolver: Resolver of each day's base location.
        """
        self.config = config or AwayFlagConfig()
        self.timezone_resolver = timezone_resolver or DefaultTimezoneResolver()
        self.base_location_resolver = (
            base_location_resolver or BaseLocationResolver()
        )

    def process(
        self, days: DaySummaries, home: HomeDescriptor
    ) -> DaySummaries:
        """Fill the base location and away flags of every day."""
        if not days:
            return days

        summaries = list(days.values())
        night_away: list[bool] = []

        for index, summary in enumerate(summaries):
            next_summary = (
                summaries[index + 1] if index + 1 < len(summaries) else None
            )
            zone = self.timezone_resolver.resolve_summary_timezone(
                summary, home
            )
            self._flag_base(summary, next_summary, home, zone)
            self._flag_distance(summary, home)
            night_away.append(
                self._is_night_away(summary, next_summary, home, zone)
            )

        base_flags = morphological_closing([s.base_away for s in summaries])
        distance_flags = fill_distance_runs(
            [s.away_by_distance for s in summaries]
        )
        merged = [
            base or distance
            for base, distance in zip(base_flags, distance_flags, strict=True)
        ]
        combined = inherit_synthetic_flags(
            morphological_closing(merged),
            [s.is_synthetic for s in summaries],
        )

        for summary, flag, night in zip(
            summaries, combined, night_away, strict=True
        ):
            summary.base_away = flag or night

        logger.info(
            "Away flags: %d of %d days away",
            sum(1 for s in summaries if s.base_away),
            len(summaries),
        )
        return days

    def _flag_base(
        self,
        summary: DaySummary,
        next_summary: DaySummary | None,
        home: HomeDescriptor,
        zone: tzinfo,
    ) -> None:
        base = self.base_location_resolver.resolve(
            summary, next_summary, home, zone
        )
        summary.base_location = base
        if base is None or not is_beyond_home(
            home, base.lat, base.lon, treat_secondary_as_home=True
        ):
            return

        summary.base_away = True
        if summary.is_away_candidate:
            return
        start, end = self._night_window(summary.date, zone)
        if not self._covers_window(summary.staypoints, start, end):
            summary.is_away_candidate = True

    def _flag_distance(self, summary: DaySummary, home: HomeDescriptor) -> None:
        if summary.gps_members and has_coordinate_samples(summary.gps_members):
            center = centroid(summary.gps_members)
            if is_beyond_home(
                home, center.lat, center.lon, treat_secondary_as_home=True
            ):
                summary.away_by_distance = True
        elif summary.avg_distance_km > primary_radius(home):
            summary.away_by_distance = True

    def _is_night_away(
        self,
        summary: DaySummary,
        next_summary: DaySummary | None,
        home: HomeDescriptor,
        zone: tzinfo,
    ) -> bool:
        if next_summary is None or not next_summary.dominant_staypoints:
            return False

        # The evening ended at home
        last = summary.last_gps_media
        if last is not None and not is_beyond_home(
            home,
            last.gps_lat,
            last.gps_lon,
            treat_secondary_as_home=True,
            timestamp=last.timestamp,
        ):
            return False

        dominant = next_summary.dominant_staypoints[0]
        timestamp = dominant.start if dominant.start > 0 else None
        if timestamp is None and dominant.end > 0:
            timestamp = dominant.end
        nearest = nearest_center(home, dominant.lat, dominant.lon, timestamp)
        factor = self.config.next_day_dominant_distance_factor
        if nearest.distance_km <= nearest.radius_km * factor:
            return False

        start, end = self._night_window(summary.date, zone)
        if self._has_home_staypoint(summary.staypoints, start, end, home):
            return False
        return not self._has_home_staypoint(
            next_summary.staypoints, start, end, home
        )

    def _night_window(self, day: str, zone: tzinfo) -> tuple[int, int]:
        start = datetime.combine(
            date.fromisoformat(day),
            time(self.config.night_window_start_hour),
            tzinfo=zone,
        )
        end = start + timedelta(hours=self.config.night_window_hours)
        return int(start.timestamp()), int(end.timestamp())

    def _covers_window(
        self, staypoints: list[Staypoint], start: int, end: int
    ) -> bool:
        required = int(max(0, end - start) * self.config.night_coverage_ratio)
        for staypoint in staypoints:
            overlap = min(staypoint.end, end) - max(staypoint.start, start)
            if overlap > 0 and overlap >= required:
                return True
        return False

    @staticmethod
    def _has_home_staypoint(
        staypoints: list[Staypoint],
        start: int,
        end: int,
        home: HomeDescriptor,
    ) -> bool:
        for staypoint in staypoints:
            if staypoint.end < start or staypoint.start > end:
                continue
            timestamp = max(staypoint.start, start)
            nearest = nearest_center(
                home, staypoint.lat, staypoint.lon, timestamp
            )
            if nearest.distance_km <= nearest.radius_km:
                return True
        return False
