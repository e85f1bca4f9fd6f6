"""Timezone resolution for media items and day summaries.

All resolvers share the same helpers: an explicit offset becomes a fixed
zone, an IANA identifier becomes a ``ZoneInfo``, and every failure falls
back to the next source and finally to the configured default zone.
"""

import logging
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from memory_canon.models import (
    DaySummary,
    GeoLocation,
    HomeDescriptor,
    MediaAsset,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "Europe/Berlin"

POI_TIMEZONE_TAGS = ("timezone", "opening_hours:timezone", "tz")


def zone_from_identifier(identifier: str | None) -> tzinfo | None:
    """Build a zone from an IANA name or a ``+HH:MM`` offset string."""
    if not identifier:
        return None

    if identifier[0] in "+-" and ":" in identifier:
        sign = -1 if identifier[0] == "-" else 1
        hours, _, minutes = identifier[1:].partition(":")
        try:
            total = sign * (int(hours) * 60 + int(minutes))
        except ValueError:
            return None
        return zone_from_offset(total)

    try:
        return ZoneInfo(identifier)
    except (ZoneInfoNotFoundError, ValueError):
        logger.debug("Unknown timezone identifier %r", identifier)
        return None


def zone_from_offset(offset_minutes: int) -> tzinfo:
    """Fixed-offset zone for an offset in minutes east of UTC."""
    return timezone(timedelta(minutes=offset_minutes))


def format_offset(offset_minutes: int) -> str:
    """Render an offset in minutes as ``+HH:MM``."""
    sign = "+" if offset_minutes >= 0 else "-"
    hours, minutes = divmod(abs(offset_minutes), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def offset_minutes_at(zone: tzinfo, moment: datetime) -> int:
    """UTC offset of ``zone`` at ``moment`` in minutes."""
    delta = moment.astimezone(zone).utcoffset() or timedelta(0)
    return int(delta.total_seconds() // 60)


def zone_identifier(zone: tzinfo) -> str:
    """Identifier that :func:`zone_from_identifier` turns back into ``zone``."""
    if isinstance(zone, ZoneInfo):
        return zone.key
    offset = zone.utcoffset(None)
    if offset is None:
        return "UTC"
    return format_offset(int(offset.total_seconds() // 60))


def location_timezone(location: GeoLocation | None) -> str | None:
    """Timezone identifier advertised by a location's POIs."""
    if location is None:
        return None

    for poi in location.pois:
        if poi.timezone:
            return poi.timezone
        for key in POI_TIMEZONE_TAGS:
            value = poi.tags.get(key)
            if value:
                return value

    return None


class TimezoneResolver(Protocol):
    """Resolves the local timezone of media items and days."""

    def resolve_media_timezone(
        self, media: MediaAsset, home: HomeDescriptor
    ) -> tzinfo:
        """Local zone of one media item."""
        ...

    def resolve_summary_timezone(
        self, summary: DaySummary, home: HomeDescriptor
    ) -> tzinfo:
        """Local zone of a day summary."""
        ...


class DefaultTimezoneResolver:
    """Offset and POI based timezone resolution."""

    def __init__(self, default_timezone: str = DEFAULT_TIMEZONE) -> None:
        """Initialize the resolver.

        Args:
            default_timezone: IANA identifier used when nothing else is
                known. Must not be empty.
        """
        if not default_timezone or not default_timezone.strip():
            msg = "default_timezone must not be empty."
            raise ValueError(msg)
        self.default_timezone = default_timezone

    def default_zone(self) -> tzinfo:
        """Zone of the configured default identifier."""
        return zone_from_identifier(self.default_timezone) or timezone.utc

    def zone_for_offset(self, offset_minutes: int | None) -> tzinfo:
        """Fixed zone for an offset, the default zone when unknown."""
        if offset_minutes is None:
            return self.default_zone()
        return zone_from_offset(offset_minutes)

    def resolve_media_timezone(
        self, media: MediaAsset, home: HomeDescriptor
    ) -> tzinfo:
        """Resolve a media item's zone.

        Order: media offset, POI timezone tag, the capture time's own zone,
        home offset, default zone.
        """
        if media.timezone_offset_min is not None:
            return zone_from_offset(media.timezone_offset_min)

        zone = zone_from_identifier(location_timezone(media.location))
        if zone is not None:
            return zone

        moment = media.taken_at or media.created_at
        if moment is not None and moment.tzinfo is not None:
            return moment.tzinfo

        return self.zone_for_offset(home.timezone_offset)

    def resolve_summary_timezone(
        self, summary: DaySummary, home: HomeDescriptor
    ) -> tzinfo:
        """Resolve a day's zone from its winning identifier or offset."""
        zone = zone_from_identifier(summary.local_timezone_identifier)
        if zone is not None:
            return zone

        offset = summary.local_timezone_offset
        if offset is None:
            offset = home.timezone_offset
        return self.zone_for_offset(offset)
