"""Extension of away runs by adjacent transfer days."""

import logging
from datetime import date, timedelta

from memory_canon.models import DaySummary
from processing.steps.day_summary.base import DaySummaries

from .configs import TransportDayExtenderConfig

logger = logging.getLogger(__name__)


def is_transit_heavy(
    summary: DaySummary, ratio_threshold: float, speed_threshold_kmh: float
) -> bool:
    """Check whether most of a day was spent moving."""
    return (
        summary.has_high_speed_transit
        or summary.transit_ratio >= ratio_threshold
        or summary.avg_speed_kmh >= speed_threshold_kmh
        or summary.max_speed_kmh >= speed_threshold_kmh
    )


def are_sequential_days(previous: str, current: str, days: DaySummaries) -> bool:
    """True when only synthetic days lie between two date keys."""
    start = date.fromisoformat(previous)
    end = date.fromisoformat(current)
    if start >= end:
        return False

    cursor = start + timedelta(days=1)
    while cursor < end:
        summary = days.get(cursor.isoformat())
        if summary is None or not summary.is_synthetic:
            return False
        cursor += timedelta(days=1)
    return True


class TransportDayExtender:
    """Adds one transfer day at each end of a run.

    A neighbouring day qualifies when it shows an airport/transport POI,
    high speed transit or a transit heavy track, or when it is a lean day
    (no staypoints, few photos) next to a transit heavy end of the run.
    """

    def __init__(self, config: TransportDayExtenderConfig | None = None) -> None:
        """Initialize the extender with its transit thresholds."""
        self.config = config or TransportDayExtenderConfig()

    def extend(self, run: list[str], days: DaySummaries) -> list[str]:
        """Return ``run`` extended by qualifying adjacent days."""
        if not run:
            return run

        keys = list(days)
        index_by_key = {key: index for index, key in enumerate(keys)}
        extended = list(run)

        first_index = index_by_key.get(run[0])
        if first_index is not None and first_index > 0:
            candidate = keys[first_index - 1]
            if (
                candidate not in extended
                and self._qualifies(candidate, run[0], days)
                and are_sequential_days(candidate, run[0], days)
            ):
                extended.insert(0, candidate)

        last_index = index_by_key.get(run[-1])
        if last_index is not None and last_index + 1 < len(keys):
            candidate = keys[last_index + 1]
            if (
                candidate not in extended
                and self._qualifies(candidate, run[-1], days)
                and are_sequential_days(run[-1], candidate, days)
            ):
                extended.append(candidate)

        if len(extended) > len(run):
            logger.debug(
                "Extended run %s..%s by %d transfer day(s)",
                run[0],
                run[-1],
                len(extended) - len(run),
            )
        return extended

    def _qualifies(self, candidate: str, anchor: str, days: DaySummaries) -> bool:
        summary = days[candidate]
        if summary.has_airport_poi or summary.has_high_speed_transit:
            return True
        if self._transit_heavy(summary):
            return True
        return self._is_lean(summary) and self._transit_heavy(days[anchor])

    def _transit_heavy(self, summary: DaySummary) -> bool:
        return is_transit_heavy(
            summary,
            self.config.transit_ratio_threshold,
            self.config.transit_speed_threshold_kmh,
        )

    def _is_lean(self, summary: DaySummary) -> bool:
        if summary.dominant_staypoints:
            return False
        return summary.photo_count <= self.config.lean_photo_threshold
