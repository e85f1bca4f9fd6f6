"""Enumerations shared by the day summary, run and selection steps."""

from enum import IntEnum, StrEnum


class BaseLocationSource(StrEnum):
    """Where a day's base (sleeping) location was derived from."""

    STAYPOINT = "staypoint"
    SLEEP_PROXY_PAIR = "sleep_proxy_pair"
    SLEEP_PROXY_LAST = "sleep_proxy_last"
    SLEEP_PROXY_FIRST = "sleep_proxy_first"
    DAY_CENTROID = "day_centroid"


class Classification(StrEnum):
    """Vacation draft classifications ordered by score threshold."""

    VACATION = "vacation"
    SHORT_TRIP = "short_trip"
    DAY_TRIP = "day_trip"

    @property
    def label(self) -> str:
        """Human readable label for titles."""
        return {
            Classification.VACATION: "Vacation",
            Classification.SHORT_TRIP: "Short trip",
            Classification.DAY_TRIP: "Day trip",
        }[self]


class CandidateOrigin(StrEnum):
    """Pool a selection candidate was built for."""

    SLOT = "slot"
    BURST = "burst"


class DayCategory(StrEnum):
    """Importance category of a day inside a run."""

    CORE = "core"
    PERIPHERAL = "peripheral"


class OrientationType(StrEnum):
    """Coarse image orientation."""

    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


class SceneBucket(StrEnum):
    """Scene buckets used for scene diversity."""

    PERSON_GROUP = "person_group"
    LANDMARK = "landmark"
    FOOD = "food"
    INDOOR = "indoor"
    OUTDOOR = "outdoor"
    NIGHT = "night"
    PANORAMA = "panorama"


class RejectionReason(StrEnum):
    """Telemetry keys for the staged selection pipeline."""

    TIME_GAP = "time_gap"
    DAY_QUOTA = "day_quota"
    TIME_SLOT = "time_slot"
    STAYPOINT = "staypoint"
    PHASH = "phash_similarity"
    SCENE = "scene_balance"
    ORIENTATION = "orientation_balance"
    PEOPLE = "people_balance"


class Weekday(IntEnum):
    """ISO-8601 weekday numbers."""

    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6
    SUNDAY = 7


# EXIF orientation codes that rotate the image by 90 degrees
PORTRAIT_EXIF_ORIENTATIONS = frozenset({5, 6, 7, 8})
