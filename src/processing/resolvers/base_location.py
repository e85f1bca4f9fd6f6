"""Inference of a day's sleeping/base location."""

import logging
from datetime import date, datetime, time, timedelta, tzinfo

from memory_canon.codebook import BaseLocationSource
from memory_canon.models import (
    BaseLocation,
    DaySummary,
    HomeDescriptor,
    MediaAsset,
    Staypoint,
)
from processing.utils.geo import centroid, haversine_distance_km

from .home_boundary import is_beyond_home, nearest_center

logger = logging.getLogger(__name__)

# Evening window start and length for the overnight staypoint search
EVENING_START = time(18, 0)
NIGHT_WINDOW = timedelta(hours=16)
# Maximum distance between last and next-first GPS point to average them
SLEEP_PAIR_MAX_KM = 2.0


class BaseLocationResolver:
    """Chooses the most plausible base location for a day.

    Preference order:
    1. an overnight staypoint (18:00 to 10:00 next day) beyond home,
    2. a sleep proxy from the last/next-first GPS points beyond home,
    3. the overnight staypoint even if at home,
    4. the day's largest staypoint,
    5. the day's GPS centroid.
    """

    def resolve(
        self,
        summary: DaySummary,
        next_summary: DaySummary | None,
        home: HomeDescriptor,
        zone: tzinfo,
    ) -> BaseLocation | None:
        """Resolve the base location of ``summary``.

        Args:
            summary: Day to resolve.
            next_summary: Following calendar day, if any.
            home: Home descriptor.
            zone: Local timezone of the day.

        Returns:
            The base location or None for a day without any GPS evidence.
        """
        staypoint_base = self._overnight_staypoint(
            summary, next_summary, home, zone
        )
        sleep_proxy = self._sleep_proxy(summary, next_summary, home)

        if staypoint_base is not None:
            if is_beyond_home(home, staypoint_base.lat, staypoint_base.lon):
                return staypoint_base
            if sleep_proxy is not None and is_beyond_home(
                home, sleep_proxy.lat, sleep_proxy.lon
            ):
                return sleep_proxy
            return staypoint_base

        if sleep_proxy is not None:
            if is_beyond_home(home, sleep_proxy.lat, sleep_proxy.lon):
                return sleep_proxy
            largest = self._largest_staypoint(summary.staypoints, home)
            return largest or sleep_proxy

        largest = self._largest_staypoint(summary.staypoints, home)
        if largest is not None:
            return largest

        if not summary.gps_members:
            return None

        point = centroid(summary.gps_members)
        return self._format(
            point.lat, point.lon, BaseLocationSource.DAY_CENTROID, home
        )

    def _overnight_staypoint(
        self,
        summary: DaySummary,
        next_summary: DaySummary | None,
        home: HomeDescriptor,
        zone: tzinfo,
    ) -> BaseLocation | None:
        window_start = datetime.combine(
            date.fromisoformat(summary.date), EVENING_START, tzinfo=zone
        )
        start_ts = int(window_start.timestamp())
        end_ts = int((window_start + NIGHT_WINDOW).timestamp())

        candidates = [
            staypoint
            for staypoint in summary.staypoints
            if staypoint.end >= start_ts and staypoint.start <= end_ts
        ]
        if next_summary is not None:
            candidates.extend(
                staypoint
                for staypoint in next_summary.staypoints
                if staypoint.end >= start_ts and staypoint.start <= end_ts
            )

        if not candidates:
            return None

        best = max(candidates, key=lambda s: s.dwell_seconds)
        return self._format(
            best.lat, best.lon, BaseLocationSource.STAYPOINT, home
        )

    def _sleep_proxy(
        self,
        summary: DaySummary,
        next_summary: DaySummary | None,
        home: HomeDescriptor,
    ) -> BaseLocation | None:
        last: MediaAsset | None = summary.last_gps_media
        next_first: MediaAsset | None = (
            next_summary.first_gps_media if next_summary is not None else None
        )

        if last is not None and next_first is not None:
            last_nearest = nearest_center(home, last.gps_lat, last.gps_lon)
            next_nearest = nearest_center(
                home, next_first.gps_lat, next_first.gps_lon
            )
            pair_distance = haversine_distance_km(
                last.gps_lat, last.gps_lon, next_first.gps_lat, next_first.gps_lon
            )
            if (
                pair_distance <= SLEEP_PAIR_MAX_KM
                and last_nearest.distance_km > last_nearest.radius_km
                and next_nearest.distance_km > next_nearest.radius_km
            ):
                return self._format(
                    (last.gps_lat + next_first.gps_lat) / 2.0,
                    (last.gps_lon + next_first.gps_lon) / 2.0,
                    BaseLocationSource.SLEEP_PROXY_PAIR,
                    home,
                )
            if last_nearest.distance_km > next_nearest.distance_km:
                return self._format(
                    last.gps_lat,
                    last.gps_lon,
                    BaseLocationSource.SLEEP_PROXY_LAST,
                    home,
                )
            return self._format(
                next_first.gps_lat,
                next_first.gps_lon,
                BaseLocationSource.SLEEP_PROXY_FIRST,
                home,
            )

        if last is not None:
            return self._format(
                last.gps_lat,
                last.gps_lon,
                BaseLocationSource.SLEEP_PROXY_LAST,
                home,
            )

        if next_first is not None:
            return self._format(
                next_first.gps_lat,
                next_first.gps_lon,
                BaseLocationSource.SLEEP_PROXY_FIRST,
                home,
            )

        return None

    def _largest_staypoint(
        self, staypoints: list[Staypoint], home: HomeDescriptor
    ) -> BaseLocation | None:
        if not staypoints:
            return None
        best = max(staypoints, key=lambda s: s.dwell_seconds)
        return self._format(
            best.lat, best.lon, BaseLocationSource.STAYPOINT, home
        )

    @staticmethod
    def _format(
        lat: float,
        lon: float,
        source: BaseLocationSource,
        home: HomeDescriptor,
    ) -> BaseLocation:
        nearest = nearest_center(home, lat, lon)
        return BaseLocation(
            lat=lat, lon=lon, distance_km=nearest.distance_km, source=source
        )
