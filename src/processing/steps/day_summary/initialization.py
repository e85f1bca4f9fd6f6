"""First day summary stage: bucket media into local calendar days."""

import logging
from collections.abc import Sequence
from datetime import date, timedelta
from typing import Any

from memory_canon.models import DaySummary, HomeDescriptor, MediaAsset
from processing.resolvers.poi import KeywordPoiClassifier, PoiClassifier
from processing.resolvers.timezone import (
    DefaultTimezoneResolver,
    TimezoneResolver,
    format_offset,
    offset_minutes_at,
    zone_identifier,
)

from .base import DaySummaries

logger = logging.getLogger(__name__)


def _most_voted(votes: dict) -> Any:
    """Key with the highest count; the first inserted key wins ties."""
    best = None
    best_count = 0
    for key, count in votes.items():
        if count > best_count:
            best = key
            best_count = count
    return best


class InitializationStage:
    """Creates one summary per local calendar day.

    Each media item is assigned to the date of its capture time in its own
    resolved timezone. Calendar gaps between the first and last day are
    filled with empty synthetic days so that later stages see a contiguous
    sequence.
    """

    def __init__(
        self,
        timezone_resolver: TimezoneResolver | None = None,
        poi_classifier: PoiClassifier | None = None,
    ) -> None:
        """Initialize the stage.

        Args:
            timezone_resolver: Resolver for media and day zones.
            poi_classifier: Classifier for POI, tourism and transport hits.
        """
        self.timezone_resolver = timezone_resolver or DefaultTimezoneResolver()
        self.poi_classifier = poi_classifier or KeywordPoiClassifier()

    def build(
        self, media: Sequence[MediaAsset], home: HomeDescriptor
    ) -> DaySummaries:
        """Bucket ``media`` into day summaries.

        Args:
            media: Media items in any order. Items without any capture
                time are skipped.
            home: Home descriptor used for timezone fallbacks.

        Returns:
            Summaries keyed by local date in ascending order.
        """
        days: DaySummaries = {}
        skipped = 0

        for item in sorted(media, key=lambda m: (m.timestamp or 0, m.id)):
            moment = item.captured_at
            if moment is None:
                skipped += 1
                continue

            zone = self.timezone_resolver.resolve_media_timezone(item, home)
            local = moment.astimezone(zone)
            key = local.date().isoformat()

            summary = days.get(key)
            if summary is None:
                summary = DaySummary(
                    date=key, weekday=local.date().isoweekday()
                )
                days[key] = summary

            offset = offset_minutes_at(zone, moment)
            summary.timezone_offsets[offset] = (
                summary.timezone_offsets.get(offset, 0) + 1
            )
            identifier = zone_identifier(zone)
            summary.timezone_identifier_votes[identifier] = (
                summary.timezone_identifier_votes.get(identifier, 0) + 1
            )

            summary.members.append(item)
            summary.photo_count += 1
            if item.has_gps:
                summary.gps_members.append(item)

            self._collect_location(summary, item)

        if skipped:
            logger.debug("Skipped %d media without capture time", skipped)

        days = self._fill_gaps(days)
        for summary in days.values():
            self._resolve_day_timezone(summary, home)
            if summary.poi_samples > 0:
                summary.tourism_ratio = min(
                    1.0, summary.tourism_hits / summary.poi_samples
                )

        logger.info("Initialized %d day summaries", len(days))
        return days

    def process(
        self, days: DaySummaries, home: HomeDescriptor
    ) -> DaySummaries:
        """Re-bucket the members of existing summaries."""
        media = [m for summary in days.values() for m in summary.members]
        return self.build(media, home)

    def _collect_location(self, summary: DaySummary, item: MediaAsset) -> None:
        location = item.location
        if location is None:
            return

        code = location.country_code or location.country
        if code and code.strip():
            summary.country_codes.add(code.strip().lower())

        if self.poi_classifier.is_poi_sample(location):
            summary.poi_samples += 1
        if self.poi_classifier.is_tourism_poi(location):
            summary.tourism_hits += 1
        if self.poi_classifier.is_transport_poi(location):
            summary.has_airport_poi = True

    def _fill_gaps(self, days: DaySummaries) -> DaySummaries:
        if not days:
            return days

        first = date.fromisoformat(min(days))
        last = date.fromisoformat(max(days))
        filled: DaySummaries = {}
        current = first
        synthetic = 0
        while current <= last:
            key = current.isoformat()
            summary = days.get(key)
            if summary is None:
                summary = DaySummary(
                    date=key,
                    weekday=current.isoweekday(),
                    is_synthetic=True,
                )
                synthetic += 1
            filled[key] = summary
            current += timedelta(days=1)

        if synthetic:
            logger.debug("Filled %d synthetic days", synthetic)
        return filled

    def _resolve_day_timezone(
        self, summary: DaySummary, home: HomeDescriptor
    ) -> None:
        offset = _most_voted(summary.timezone_offsets)
        if offset is None:
            offset = home.timezone_offset
        summary.local_timezone_offset = offset

        identifier = _most_voted(summary.timezone_identifier_votes)
        if identifier is None and offset is not None:
            identifier = format_offset(offset)
        if identifier is None:
            # Nothing voted and no home offset: the resolver default applies
            summary.local_timezone_identifier = ""
            identifier = zone_identifier(
                self.timezone_resolver.resolve_summary_timezone(summary, home)
            )
        summary.local_timezone_identifier = identifier
