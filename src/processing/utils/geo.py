"""Geo helpers: haversine distance, centroids and GPS leg tables."""

import logging
import math
from collections.abc import Iterable, Sequence

import polars as pl

from memory_canon.models import GeoPoint, MediaAsset

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0088


def haversine_distance_m(
    lat1: float, lon1: float, lat2: float, lon2: float
) -> float:
    """Great-circle distance between two coordinates in meters."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * 1000 * math.asin(min(1.0, math.sqrt(a)))


def haversine_distance_km(
    lat1: float, lon1: float, lat2: float, lon2: float
) -> float:
    """Great-circle distance between two coordinates in kilometers."""
    return haversine_distance_m(lat1, lon1, lat2, lon2) / 1000.0


def media_distance_km(a: MediaAsset, b: MediaAsset) -> float:
    """Distance between two GPS-tagged media items in kilometers."""
    return haversine_distance_km(a.gps_lat, a.gps_lon, b.gps_lat, b.gps_lon)


def centroid(points: Iterable[MediaAsset]) -> GeoPoint:
    """Arithmetic mean of the GPS coordinates of the given media.

    Items without coordinates are ignored; an empty input yields (0, 0).
    """
    sum_lat = 0.0
    sum_lon = 0.0
    n = 0
    for media in points:
        if not media.has_gps:
            continue
        sum_lat += media.gps_lat
        sum_lon += media.gps_lon
        n += 1

    if n == 0:
        return GeoPoint(lat=0.0, lon=0.0)

    return GeoPoint(lat=sum_lat / n, lon=sum_lon / n)


def sort_by_time(items: Iterable[MediaAsset]) -> list[MediaAsset]:
    """Order media by capture timestamp, keeping input order on ties."""
    return sorted(
        (m for m in items if m.timestamp is not None),
        key=lambda m: m.timestamp,
    )


def expr_haversine(
    lat1: pl.Expr,
    lon1: pl.Expr,
    lat2: pl.Expr,
    lon2: pl.Expr,
    units: str = "meters",
) -> pl.Expr:
    """Return a Polars expression for Haversine distance."""
    r = EARTH_RADIUS_KM * 1000.0
    dlat = lat2.radians() - lat1.radians()
    dlon = lon2.radians() - lon1.radians()
    a = (dlat / 2).sin().pow(
        2
    ) + lat1.radians().cos() * lat2.radians().cos() * (dlon / 2).sin().pow(2)

    distance = 2 * r * a.sqrt().clip(upper_bound=1.0).arcsin()

    if units in ["kilometers", "km"]:
        distance = distance / 1000.0

    return distance


def gps_frame(media: Sequence[MediaAsset]) -> pl.DataFrame:
    """Build a frame with id, timestamp and coordinates of GPS media.

    Rows keep the order of the input sequence.
    """
    rows = [
        {
            "media_id": m.id,
            "ts": m.timestamp,
            "lat": m.gps_lat,
            "lon": m.gps_lon,
        }
        for m in media
        if m.has_gps and m.timestamp is not None
    ]
    return pl.DataFrame(
        rows,
        schema={
            "media_id": pl.Int64,
            "ts": pl.Int64,
            "lat": pl.Float64,
            "lon": pl.Float64,
        },
    )


def leg_frame(media: Sequence[MediaAsset]) -> pl.DataFrame:
    """Consecutive legs between time-ordered GPS media.

    Args:
        media: GPS media already sorted by capture time.

    Returns:
        DataFrame with one row per leg:
        - leg_km: haversine distance of the leg
        - leg_seconds: elapsed time between both points
    """
    frame = gps_frame(media)
    return (
        frame.with_columns(
            pl.col("lat").shift(1).alias("prev_lat"),
            pl.col("lon").shift(1).alias("prev_lon"),
            pl.col("ts").shift(1).alias("prev_ts"),
        )
        .drop_nulls("prev_lat")
        .with_columns(
            expr_haversine(
                pl.col("prev_lat"),
                pl.col("prev_lon"),
                pl.col("lat"),
                pl.col("lon"),
                units="km",
            ).alias("leg_km"),
            (pl.col("ts") - pl.col("prev_ts")).alias("leg_seconds"),
        )
        .select("media_id", "leg_km", "leg_seconds")
    )


def distances_to_point_km(
    media: Sequence[MediaAsset], point: GeoPoint
) -> pl.Series:
    """Haversine distances of GPS media to a reference point in km."""
    frame = gps_frame(media)
    return frame.select(
        expr_haversine(
            pl.col("lat"),
            pl.col("lon"),
            pl.lit(point.lat),
            pl.lit(point.lon),
            units="km",
        ).alias("distance_km")
    ).to_series()
