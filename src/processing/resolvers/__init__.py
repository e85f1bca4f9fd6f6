"""Pluggable lookups used by the day summary and scoring steps."""

from .base_location import BaseLocationResolver
from .holidays import (
    GermanFederalHolidayResolver,
    HolidayResolver,
    NoHolidayResolver,
)
from .home_boundary import (
    NearestCenter,
    has_coordinate_samples,
    home_centers,
    is_beyond_home,
    nearest_center,
    primary_radius,
)
from .location_helper import LocationHelper
from .poi import KeywordPoiClassifier, PoiClassifier
from .quality import MediaQualityAggregator
from .timezone import DefaultTimezoneResolver, TimezoneResolver

__all__ = [
    "BaseLocationResolver",
    "DefaultTimezoneResolver",
    "GermanFederalHolidayResolver",
    "HolidayResolver",
    "KeywordPoiClassifier",
    "LocationHelper",
    "MediaQualityAggregator",
    "NearestCenter",
    "NoHolidayResolver",
    "PoiClassifier",
    "TimezoneResolver",
    "has_coordinate_samples",
    "home_centers",
    "is_beyond_home",
    "nearest_center",
    "primary_radius",
]
