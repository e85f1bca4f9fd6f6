"""Scoring of away runs into vacation cluster drafts.

The calculator aggregates the day summaries of one run. Most aggregates
only consider ``base_away`` days so that transfer days added by the run
extension do not dilute the signal. The weighted score is classified as a
vacation, a short trip or a day trip; anything below the day trip
threshold yields no draft.
"""

import logging
import math
import re
from collections.abc import Sequence
from datetime import date, timedelta
from typing import Any

from memory_canon.codebook import Classification
from memory_canon.models import (
    ClusterDraft,
    DaySummary,
    HomeDescriptor,
    MediaAsset,
    Staypoint,
)
from processing.resolvers.holidays import HolidayResolver, NoHolidayResolver
from processing.resolvers.location_helper import LocationHelper
from processing.steps.day_summary.base import DaySummaries
from processing.utils.geo import centroid, haversine_distance_km

from .configs import VacationScoreConfig

logger = logging.getLogger(__name__)

ALGORITHM = "vacation"


def format_location_component(value: str) -> str:
    """Title-case a lowercased place component (``baden-württemberg``)."""
    value = re.sub(r"\s+", " ", value.replace("_", " ")).strip()
    parts = []
    for part in value.split("-"):
        words = [word[:1].upper() + word[1:] for word in part.strip().split(" ")]
        parts.append(" ".join(words))
    return "-".join(parts)


def _time_range(members: Sequence[MediaAsset]) -> dict[str, int] | None:
    timestamps = [m.timestamp for m in members if m.timestamp is not None]
    if not timestamps:
        return None
    return {"from": min(timestamps), "to": max(timestamps)}


class VacationScoreCalculator:
    """Builds a scored :class:`ClusterDraft` for a run of days."""

    def __init__(
        self,
        config: VacationScoreConfig | None = None,
        holiday_resolver: HolidayResolver | None = None,
        location_helper: LocationHelper | None = None,
    ) -> None:
        """Initialize the calculator.

        Args:
            config: Weights and thresholds.
            holiday_resolver: Holiday calendar for the weekend bonus.
            location_helper: Place label resolution for the draft.
        """
        self.config = config or VacationScoreConfig()
        self.holiday_resolver = holiday_resolver or NoHolidayResolver()
        self.location_helper = location_helper or LocationHelper()

    def build_draft(
        self,
        day_keys: Sequence[str],
        days: DaySummaries,
        home: HomeDescriptor,
    ) -> ClusterDraft | None:
        """Score the run ``day_keys`` and build its draft.

        Args:
            day_keys: Date keys of the run in chronological order.
            days: All day summaries (neighbours of the run are consulted
                for the weekend bonus).
            home: Home descriptor.

        Returns:
            The draft, or None when the run has no away day, no reliable
            day, no GPS member or scores below the day trip threshold.
        """
        if not day_keys:
            return None

        summaries = [days[key] for key in day_keys]
        members = [m for s in summaries for m in s.members]
        gps_members = [m for s in summaries for m in s.gps_members]
        away = [s for s in summaries if s.base_away]

        reliable_days = sum(
            1 for s in away if s.sufficient_samples and s.gps_members
        )
        if not away or reliable_days == 0 or not gps_members:
            logger.debug(
                "Run %s..%s has no reliable away evidence",
                day_keys[0],
                day_keys[-1],
            )
            return None

        metrics = self._metrics(day_keys, summaries, away, days, home)
        center = centroid(gps_members)
        centroid_distance = haversine_distance_km(
            home.lat, home.lon, center.lat, center.lon
        )
        distance = max(centroid_distance, metrics["max_observed_distance_km"])

        score, terms = self._score(metrics, distance)
        classification = self._classify(score)
        if classification is None:
            logger.debug(
                "Run %s..%s scored %.2f below the day trip threshold",
                day_keys[0],
                day_keys[-1],
                score,
            )
            return None

        params: dict[str, Any] = {
            "classification": classification.value,
            "classification_label": classification.label,
            "score": round(score, 2),
            "score_terms": {name: round(v, 3) for name, v in terms.items()},
            "nights": max(0, len(away) - 1),
            "away_days": len(away),
            "total_days": len(day_keys),
            "day_keys": list(day_keys),
            "reliable_days": reliable_days,
            "time_range": _time_range(members),
            "max_distance_km": centroid_distance,
            "max_observed_distance_km": metrics["max_observed_distance_km"],
            "avg_distance_km": metrics["avg_distance_km"],
            "distance_km": distance,
            **{
                key: metrics[key]
                for key in (
                    "country_change",
                    "timezone_change",
                    "tourism_ratio",
                    "move_days",
                    "photo_density_z",
                    "airport_transfer",
                    "spot_count",
                    "spot_cluster_days",
                    "weekend_holiday_days",
                    "work_day_penalty_days",
                    "cohort_presence_ratio",
                    "cohort_members",
                    "countries",
                    "timezones",
                )
            },
            "spot_dwell_hours": round(metrics["spot_dwell_hours"], 2),
            "spot_exploration_bonus": round(
                terms["multi_spot"] + terms["dwell"], 2
            ),
            "weekend_holiday_bonus": round(terms["weekend_holiday"], 2),
            "work_day_penalty_score": round(-terms["work_day_penalty"], 2),
        }
        params.update(self._place_params(members, summaries, days))

        ordered = sorted(
            members, key=lambda m: (m.timestamp or 0, m.id)
        )
        logger.info(
            "Run %s..%s classified as %s (score %.2f)",
            day_keys[0],
            day_keys[-1],
            classification.value,
            score,
        )
        return ClusterDraft(
            algorithm=ALGORITHM,
            params=params,
            centroid=center,
            members=[m.id for m in ordered],
        )

    # Aggregation ---------------------------------------------------------
    def _metrics(
        self,
        day_keys: Sequence[str],
        summaries: list[DaySummary],
        away: list[DaySummary],
        days: DaySummaries,
        home: HomeDescriptor,
    ) -> dict[str, Any]:
        countries = sorted({code for s in summaries for code in s.country_codes})
        timezones = sorted(
            {offset for s in summaries for offset in s.timezone_offsets}
        )

        tourism_hits = sum(s.tourism_hits for s in away)
        poi_samples = sum(s.poi_samples for s in away)
        tourism_ratio = (
            min(1.0, tourism_hits / poi_samples) if poi_samples > 0 else 0.0
        )

        cohort_members: dict[int, int] = {}
        for summary in away:
            for person_id, count in summary.cohort_members.items():
                cohort_members[person_id] = (
                    cohort_members.get(person_id, 0) + count
                )

        weekend_days = sum(1 for s in away if self._is_weekend_or_holiday(s))
        weekend_days += self._adjacent_weekend_days(day_keys, days)

        return {
            "away_days": len(away),
            "countries": countries,
            "timezones": timezones,
            "country_change": bool(countries)
            and (
                len(countries) > 1
                or (home.country is not None and home.country not in countries)
            ),
            "timezone_change": bool(timezones)
            and (
                len(timezones) > 1
                or (
                    home.timezone_offset is not None
                    and home.timezone_offset not in timezones
                )
            ),
            "tourism_ratio": tourism_ratio,
            "move_days": sum(
                1
                for s in away
                if s.travel_km > self.config.movement_threshold_km
            ),
            "photo_density_z": sum(s.density_z for s in away) / len(away),
            "airport_transfer": summaries[0].has_airport_poi
            or summaries[-1].has_airport_poi,
            "max_observed_distance_km": max(
                s.max_distance_km for s in summaries
            ),
            "avg_distance_km": sum(s.avg_distance_km for s in summaries)
            / len(summaries),
            "spot_count": sum(s.spot_count for s in away),
            "spot_cluster_days": sum(1 for s in away if s.spot_count >= 2),
            "spot_dwell_hours": sum(s.spot_dwell_seconds for s in away) / 3600.0,
            "weekend_holiday_days": weekend_days,
            "work_day_penalty_days": sum(
                1
                for s in away
                if 1 <= s.weekday <= 5
                and s.tourism_ratio < self.config.work_day_tourism_ratio
            ),
            "cohort_presence_ratio": round(
                min(
                    1.0,
                    sum(s.cohort_presence_ratio for s in away) / len(away),
                ),
                3,
            ),
            "cohort_members": dict(sorted(cohort_members.items())),
        }

    def _score(
        self, metrics: dict[str, Any], distance_km: float
    ) -> tuple[float, dict[str, float]]:
        weights = self.config.weights
        away_days = min(weights.away_day_cap, metrics["away_days"])
        terms = {
            "away_days": away_days * weights.away_day,
            "distance": weights.log_distance * math.log1p(max(0.0, distance_km)),
            "country_change": weights.country_change
            if metrics["country_change"]
            else 0.0,
            "timezone_change": weights.timezone_change
            if metrics["timezone_change"]
            else 0.0,
            "tourism": weights.tourism_ratio * metrics["tourism_ratio"],
            "move_days": weights.move_day * metrics["move_days"],
            "airport_transfer": weights.airport_transfer
            if metrics["airport_transfer"]
            else 0.0,
            "density": weights.density_z * metrics["photo_density_z"],
            "multi_spot": min(
                weights.multi_spot_cap,
                weights.multi_spot_day * metrics["spot_cluster_days"],
            ),
            "dwell": min(
                weights.dwell_cap,
                weights.dwell_hour * metrics["spot_dwell_hours"],
            ),
            "weekend_holiday": min(
                weights.weekend_holiday_cap,
                weights.weekend_holiday_day * metrics["weekend_holiday_days"],
            ),
            "work_day_penalty": -weights.work_day_penalty
            * metrics["work_day_penalty_days"],
        }
        return sum(terms.values()), terms

    def _classify(self, score: float) -> Classification | None:
        if score >= self.config.vacation_threshold:
            return Classification.VACATION
        if score >= self.config.short_trip_threshold:
            return Classification.SHORT_TRIP
        if score >= self.config.day_trip_threshold:
            return Classification.DAY_TRIP
        return None

    # Calendar ------------------------------------------------------------
    def _is_weekend_or_holiday(self, summary: DaySummary) -> bool:
        if summary.weekday >= 6:
            return True
        return self.holiday_resolver.is_holiday(date.fromisoformat(summary.date))

    def _adjacent_weekend_days(
        self, day_keys: Sequence[str], days: DaySummaries
    ) -> int:
        extra = 0
        neighbours = (
            date.fromisoformat(day_keys[0]) - timedelta(days=1),
            date.fromisoformat(day_keys[-1]) + timedelta(days=1),
        )
        for neighbour in neighbours:
            key = neighbour.isoformat()
            if key in day_keys or key not in days:
                continue
            if self._is_weekend_or_holiday(days[key]):
                extra += 1
        return extra

    # Places --------------------------------------------------------------
    def _place_params(
        self,
        members: list[MediaAsset],
        summaries: list[DaySummary],
        days: DaySummaries,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {}
        label = self.location_helper.majority_label(members)
        if label:
            params["place"] = label

        components = self.location_helper.majority_location_components(members)
        for component in ("city", "region", "country"):
            value = components.get(component)
            if value:
                params[f"place_{component}"] = format_location_component(value)

        primary = self._primary_staypoint(summaries)
        if primary is not None:
            params["primary_staypoint"] = {
                "lat": primary.lat,
                "lon": primary.lon,
                "start": primary.start,
                "end": primary.end,
                "dwell_seconds": primary.dwell_seconds,
            }
            stay_members = [
                m
                for s in days.values()
                for m in s.members
                if m.timestamp is not None
                and primary.start <= m.timestamp <= primary.end
            ]
            location = self._staypoint_location(stay_members)
            if location:
                params["primary_staypoint_location"] = location
        return params

    @staticmethod
    def _primary_staypoint(summaries: list[DaySummary]) -> Staypoint | None:
        primary: Staypoint | None = None
        for summary in summaries:
            if not summary.base_away:
                continue
            for staypoint in summary.staypoints:
                if (
                    primary is None
                    or staypoint.dwell_seconds > primary.dwell_seconds
                ):
                    primary = staypoint
        return primary

    def _staypoint_location(self, members: list[MediaAsset]) -> str | None:
        if not members:
            return None
        components = self.location_helper.majority_location_components(members)
        parts: list[str] = []
        for component in ("city", "region", "country"):
            value = components.get(component)
            if not value:
                continue
            formatted = format_location_component(value)
            if formatted and formatted not in parts:
                parts.append(formatted)
        if parts:
            return ", ".join(parts)
        return self.location_helper.majority_label(members)


def build_vacation_draft(
    day_keys: Sequence[str],
    days: DaySummaries,
    home: HomeDescriptor,
    config: VacationScoreConfig | None = None,
    holiday_resolver: HolidayResolver | None = None,
) -> ClusterDraft | None:
    """Score one run with a :class:`VacationScoreCalculator`."""
    calculator = VacationScoreCalculator(config, holiday_resolver)
    return calculator.build_draft(day_keys, days, home)
