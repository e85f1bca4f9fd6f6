"""Shared contract of the day summary stages."""

from typing import Protocol

from memory_canon.models import DaySummary, HomeDescriptor

# Day summaries keyed by local date (YYYY-MM-DD) in ascending order
DaySummaries = dict[str, DaySummary]


class DaySummaryStage(Protocol):
    """A stage reads and enriches the day summaries in place."""

    def process(
        self, days: DaySummaries, home: HomeDescriptor
    ) -> DaySummaries:
        """Enrich ``days`` and return them."""
        ...
