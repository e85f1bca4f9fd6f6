"""Cohort presence stage: share of important persons seen per day."""

import logging

from memory_canon.models import HomeDescriptor

from .base import DaySummaries
from .configs import CohortPresenceConfig

logger = logging.getLogger(__name__)


class CohortPresenceStage:
    """Measures which important persons appear on each day.

    Alias ids from ``fallback_person_ids`` count as their canonical person.
    Canonical ids of the fallback mapping are important persons as well.
    Without any important person the stage leaves the days untouched.
    """

    def __init__(self, config: CohortPresenceConfig | None = None) -> None:
        """Build the alias table from the configuration."""
        self.config = config or CohortPresenceConfig()
        self.alias_to_canonical: dict[int, int] = {}
        for person_id in self.config.important_person_ids:
            self.alias_to_canonical[person_id] = person_id
        for canonical, aliases in self.config.fallback_person_ids.items():
            if not aliases:
                continue
            self.alias_to_canonical.setdefault(canonical, canonical)
            for alias in aliases:
                self.alias_to_canonical[alias] = canonical

        self.important = set(self.alias_to_canonical.values())

    def process(
        self, days: DaySummaries, home: HomeDescriptor  # noqa: ARG002
    ) -> DaySummaries:
        """Fill ``cohort_presence_ratio`` and ``cohort_members``."""
        if not days or not self.important:
            return days

        total = len(self.important)
        for summary in days.values():
            frequency: dict[int, int] = {}
            for media in summary.members:
                for person_id in media.person_ids:
                    canonical = self.alias_to_canonical.get(person_id)
                    if canonical is None:
                        continue
                    frequency[canonical] = frequency.get(canonical, 0) + 1

            summary.cohort_members = dict(sorted(frequency.items()))
            summary.cohort_presence_ratio = min(1.0, len(frequency) / total)

        return days
