"""Majority place labels for cluster titles."""

from collections import Counter
from collections.abc import Iterable

from memory_canon.models import GeoLocation, MediaAsset


class LocationHelper:
    """Derives display labels and dominant place components."""

    def display_label(self, location: GeoLocation | None) -> str | None:
        """Short label: first named POI, else city, county, state, country."""
        if location is None:
            return None

        for poi in location.pois:
            label = poi.name or poi.category_value
            if label:
                return label

        return (
            location.city or location.county or location.state or location.country
        )

    def majority_label(self, members: Iterable[MediaAsset]) -> str | None:
        """Most frequent display label; ties go to the first seen."""
        counts = Counter(
            label
            for label in (self.display_label(m.location) for m in members)
            if label is not None
        )
        if not counts:
            return None
        return counts.most_common(1)[0][0]

    def majority_location_components(
        self, members: Iterable[MediaAsset]
    ) -> dict[str, str]:
        """Dominant country, region and city across the members.

        Values are counted lowercased; ties resolve to the lexically
        smallest value.
        """
        buckets: dict[str, Counter] = {
            "country": Counter(),
            "region": Counter(),
            "city": Counter(),
        }
        for media in members:
            location = media.location
            if location is None:
                continue
            self._collect(buckets["country"], location.country)
            self._collect(buckets["region"], location.state)
            self._collect(buckets["city"], location.city)

        result = {}
        for component, tallies in buckets.items():
            if not tallies:
                continue
            result[component] = min(
                tallies, key=lambda value: (-tallies[value], value)
            )
        return result

    @staticmethod
    def _collect(bucket: Counter, value: str | None) -> None:
        if value is None:
            return
        normalised = value.strip().lower()
        if normalised:
            bucket[normalised] += 1
