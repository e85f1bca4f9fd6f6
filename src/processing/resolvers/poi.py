"""Keyword based classification of geocoded locations."""

from collections.abc import Iterable
from typing import Protocol

from memory_canon.models import GeoLocation, Poi

TOURISM_KEYWORDS = (
    "tourism",
    "attraction",
    "beach",
    "museum",
    "national_park",
    "viewpoint",
    "hotel",
    "camp_site",
    "ski",
    "marina",
)

TRANSPORT_KEYWORDS = (
    "airport",
    "aerodrome",
    "railway_station",
    "train_station",
    "bus_station",
)


class PoiClassifier(Protocol):
    """Classifies locations as POI samples, tourism or transport."""

    def is_poi_sample(self, location: GeoLocation) -> bool:
        """True if the location carries usable POI information."""
        ...

    def is_tourism_poi(self, location: GeoLocation) -> bool:
        """True if the location is a tourism POI."""
        ...

    def is_transport_poi(self, location: GeoLocation) -> bool:
        """True if the location is a transport hub."""
        ...


def matches_keyword(value: str | None, keywords: Iterable[str]) -> bool:
    """Case-insensitive substring match against a keyword list."""
    if value is None:
        return False
    needle = value.lower()
    return any(keyword in needle for keyword in keywords)


class KeywordPoiClassifier:
    """POI classifier matching category, type and POI tags to keywords."""

    def is_poi_sample(self, location: GeoLocation) -> bool:
        """Check whether a location counts as a POI sample.

        Any POI with a category or tags counts, as does a tourism category
        or type, or any non-empty location type.
        """
        for poi in location.pois:
            if poi.category_key or poi.category_value or poi.tags:
                return True

        if matches_keyword(location.category, TOURISM_KEYWORDS):
            return True

        return location.type is not None

    def is_tourism_poi(self, location: GeoLocation) -> bool:
        """Check the location against the tourism keywords."""
        return self._matches(location, TOURISM_KEYWORDS)

    def is_transport_poi(self, location: GeoLocation) -> bool:
        """Check the location against the transport keywords."""
        return self._matches(location, TRANSPORT_KEYWORDS)

    def _matches(
        self, location: GeoLocation, keywords: tuple[str, ...]
    ) -> bool:
        if matches_keyword(location.category, keywords):
            return True
        if matches_keyword(location.type, keywords):
            return True
        return any(self._poi_matches(poi, keywords) for poi in location.pois)

    @staticmethod
    def _poi_matches(poi: Poi, keywords: tuple[str, ...]) -> bool:
        if matches_keyword(poi.category_key, keywords):
            return True
        if matches_keyword(poi.category_value, keywords):
            return True
        return any(
            matches_keyword(key, keywords) or matches_keyword(value, keywords)
            for key, value in poi.tags.items()
        )
