"""Scenario builders for creating common test patterns.

This module provides pre-built media libraries (home days around a trip)
and direct day summary builders for the run and scoring tests.
"""

from memory_canon.models import (
    DaySummary,
    DominantStaypoint,
    HomeDescriptor,
    MediaAsset,
    Staypoint,
)

from .media_records import (
    capture_time,
    create_home,
    create_media,
    day_key,
    resolve_coords,
)


def create_stay_day(
    day: int,
    coords: str | tuple[float, float],
    start_id: int,
    count: int = 4,
    start_hour: int = 11,
    step_minutes: int = 60,
    jitter: float = 0.0001,
    **overrides,
) -> list[MediaAsset]:
    """Photos taken around one spot over a few hours.

    With the defaults the photos span 11:00 to 14:00, stay within a few
    dozen meters and therefore form one staypoint of three hours. The
    11:00 start keeps the stay out of the previous day's overnight window.
    """
    lat, lon = resolve_coords(coords)
    return [
        create_media(
            media_id=start_id + i,
            taken_at=capture_time(day, start_hour, step_minutes * i),
            coords=(lat + jitter * i, lon + jitter * i),
            **overrides,
        )
        for i in range(count)
    ]


def create_trip_scenario(
    home_days_before: int = 2,
    away_days: int = 4,
    home_days_after: int = 2,
    gap_days: tuple[int, ...] = (),
    away_coords: str = "trip",
) -> tuple[list[MediaAsset], HomeDescriptor]:
    """Home days, a trip and home days again.

    Args:
        home_days_before: Days at home before the trip
        away_days: Days of the trip, gap days included
        home_days_after: Days at home after the trip
        gap_days: Offsets into the trip without any photo
        away_coords: Key of the trip destination

    Returns:
        The media of all days and the home descriptor
    """
    media: list[MediaAsset] = []
    next_id = 1
    day = 0
    plan = (
        [("home", False)] * home_days_before
        + [(away_coords, i in gap_days) for i in range(away_days)]
        + [("home", False)] * home_days_after
    )
    for coords, is_gap in plan:
        if not is_gap:
            photos = create_stay_day(day, coords, next_id)
            media.extend(photos)
            next_id += len(photos)
        day += 1
    return media, create_home()


def create_staypoint(
    day: int,
    coords: str | tuple[float, float],
    start_hour: int,
    end_hour: int,
) -> Staypoint:
    """Staypoint between two hours of a day (hours may exceed 23)."""
    lat, lon = resolve_coords(coords)
    start = int(capture_time(day, start_hour).timestamp())
    end = int(capture_time(day, end_hour).timestamp())
    return Staypoint(
        lat=lat, lon=lon, start=start, end=end, dwell_seconds=end - start
    )


def create_dominant_staypoint(
    day: int,
    coords: str | tuple[float, float],
    start_hour: int = 11,
    end_hour: int = 14,
    member_count: int = 4,
) -> DominantStaypoint:
    """Dominant staypoint between two hours of a day."""
    staypoint = create_staypoint(day, coords, start_hour, end_hour)
    return DominantStaypoint(
        key=f"{day_key(day)}:{staypoint.start}:{staypoint.end}",
        member_count=member_count,
        **staypoint.model_dump(),
    )


def create_day_summary(day: int, **overrides) -> DaySummary:
    """Create a day summary ``day`` days after BASE_DATE.

    ``photo_count`` defaults to the number of members and the weekday is
    derived from the date.
    """
    moment = capture_time(day, 0)
    fields = {
        "date": day_key(day),
        "weekday": moment.isoweekday(),
    }
    fields.update(overrides)
    if "photo_count" not in overrides:
        fields["photo_count"] = len(fields.get("members", []))
    return DaySummary(**fields)


def create_away_summary(
    day: int,
    coords: str | tuple[float, float] = "trip",
    start_id: int = 1,
    count: int = 5,
    **overrides,
) -> DaySummary:
    """Day summary of a day spent at ``coords`` with a long staypoint."""
    members = create_stay_day(day, coords, start_id, count=count)
    fields = {
        "members": members,
        "gps_members": members,
        "first_gps_media": members[0],
        "last_gps_media": members[-1],
        "sufficient_samples": count >= 3,
        "staypoints": [create_staypoint(day, coords, 11, 11 + count - 1)],
        "dominant_staypoints": [
            create_dominant_staypoint(day, coords, 11, 11 + count - 1, count)
        ],
    }
    fields.update(overrides)
    return create_day_summary(day, **fields)


def summaries_by_date(*summaries: DaySummary) -> dict[str, DaySummary]:
    """Key summaries by their date in ascending order."""
    return {s.date: s for s in sorted(summaries, key=lambda s: s.date)}
