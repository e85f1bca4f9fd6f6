"""Distance checks against the (multi-center) home descriptor."""

from collections.abc import Iterable
from dataclasses import dataclass

from memory_canon.models import HomeCenter, HomeDescriptor, MediaAsset
from processing.utils.geo import haversine_distance_km


@dataclass(frozen=True)
class NearestCenter:
    """Closest home center to a coordinate."""

    distance_km: float
    radius_km: float
    center: HomeCenter
    index: int


def home_centers(
    home: HomeDescriptor, timestamp: int | None = None
) -> list[HomeCenter]:
    """Centers of the home valid at ``timestamp``.

    Without explicit centers the home itself is the only center. When no
    center is valid at the timestamp, all centers are returned.
    """
    if not home.centers:
        return [HomeCenter(lat=home.lat, lon=home.lon, radius_km=home.radius_km)]

    if timestamp is None:
        return list(home.centers)

    valid = [
        center
        for center in home.centers
        if (center.valid_from is None or timestamp >= center.valid_from)
        and (center.valid_until is None or timestamp <= center.valid_until)
    ]
    return valid or list(home.centers)


def nearest_center(
    home: HomeDescriptor,
    lat: float,
    lon: float,
    timestamp: int | None = None,
) -> NearestCenter:
    """Return the closest valid center and its distance."""
    centers = home_centers(home, timestamp)
    best_index = 0
    best_distance = float("inf")
    for index, center in enumerate(centers):
        distance = haversine_distance_km(lat, lon, center.lat, center.lon)
        if distance < best_distance:
            best_distance = distance
            best_index = index

    best = centers[best_index]
    return NearestCenter(
        distance_km=best_distance,
        radius_km=best.radius_km,
        center=best,
        index=best_index,
    )


def is_beyond_home(
    home: HomeDescriptor,
    lat: float,
    lon: float,
    treat_secondary_as_home: bool = False,
    timestamp: int | None = None,
) -> bool:
    """Check whether a coordinate lies outside the home region.

    A coordinate closest to a secondary center counts as away, unless
    secondary centers are treated as home and the center has no recorded
    members or dwell time.
    """
    nearest = nearest_center(home, lat, lon, timestamp)
    if nearest.index > 0:
        if not treat_secondary_as_home:
            return True
        if nearest.center.member_count > 0 or nearest.center.dwell_seconds > 0:
            return True

    return nearest.distance_km > nearest.radius_km


def primary_radius(home: HomeDescriptor, timestamp: int | None = None) -> float:
    """Radius of the first valid center."""
    return home_centers(home, timestamp)[0].radius_km


def has_coordinate_samples(members: Iterable[MediaAsset]) -> bool:
    """True if any member carries GPS coordinates."""
    return any(media.has_gps for media in members)
