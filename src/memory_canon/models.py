"""Canonical records for media clustering.

This module uses Pydantic for the records exchanged between the processing
steps. Input records (media, home) are frozen; the day summary is the single
mutable record and is only written by the day summary stages.
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .codebook import BaseLocationSource, DayCategory


# Input records ----------------------------------------------------------------
class Poi(BaseModel):
    """Point of interest attached to a geocoded location."""

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    category_key: str | None = None
    category_value: str | None = None
    tags: dict[str, str] = Field(default_factory=dict)
    timezone: str | None = None


class GeoLocation(BaseModel):
    """Reverse geocoded place of a media item."""

    model_config = ConfigDict(frozen=True)

    suburb: str | None = None
    city: str | None = None
    county: str | None = None
    state: str | None = None
    country: str | None = None
    country_code: str | None = None
    category: str | None = None
    type: str | None = None
    pois: list[Poi] = Field(default_factory=list)


class MediaAsset(BaseModel):
    """Enriched media record as delivered by the media store."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=1)
    taken_at: datetime | None = None
    created_at: datetime | None = None
    timezone_offset_min: int | None = None
    gps_lat: float | None = Field(default=None, ge=-90, le=90)
    gps_lon: float | None = Field(default=None, ge=-180, le=180)
    location: GeoLocation | None = None

    # Quality inputs; quality_score is filled lazily when missing
    quality_score: float | None = None
    sharpness: float | None = None
    brightness: float | None = None
    contrast: float | None = None
    iso: int | None = None

    phash: str | None = None
    camera_make: str | None = None
    camera_model: str | None = None
    camera_body_serial: str | None = None
    burst_uuid: str | None = None
    burst_representative: bool | None = None

    person_ids: list[int] = Field(default_factory=list)
    faces_count: int = Field(default=0, ge=0)
    has_faces: bool = False
    is_video: bool = False
    no_show: bool = False
    low_quality: bool = False
    orientation: int | None = None
    is_panorama: bool | None = None
    scene_tags: list[str] = Field(default_factory=list)

    @property
    def captured_at(self) -> datetime | None:
        """Capture time, falling back to the creation time."""
        moment = self.taken_at or self.created_at
        if moment is None:
            return None
        if moment.tzinfo is None:
            return moment.replace(tzinfo=UTC)
        return moment

    @property
    def timestamp(self) -> int | None:
        """Epoch seconds of the capture time."""
        moment = self.captured_at
        return int(moment.timestamp()) if moment is not None else None

    @property
    def has_gps(self) -> bool:
        """True when both coordinates are present."""
        return self.gps_lat is not None and self.gps_lon is not None

    @property
    def device_fingerprint(self) -> str:
        """Camera make, model and serial joined into one key."""
        return "|".join(
            [
                self.camera_make or "",
                self.camera_model or "",
                self.camera_body_serial or "",
            ]
        )


class HomeCenter(BaseModel):
    """One residence of a (possibly multi-residence) home descriptor."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)
    radius_km: float = Field(gt=0)
    member_count: int = Field(default=0, ge=0)
    dwell_seconds: int = Field(default=0, ge=0)
    valid_from: int | None = None
    valid_until: int | None = None


class HomeDescriptor(BaseModel):
    """Home reference used to decide whether a day is away."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)
    radius_km: float = Field(gt=0)
    country: str | None = None
    timezone_offset: int | None = None
    centers: list[HomeCenter] = Field(default_factory=list)

    @field_validator("country")
    @classmethod
    def normalise_country(cls, value: str | None) -> str | None:
        """Lowercase the country code and drop empty strings."""
        if value is None:
            return None
        value = value.strip().lower()
        return value or None


# Derived records --------------------------------------------------------------
class GeoPoint(BaseModel):
    """Plain coordinate pair."""

    model_config = ConfigDict(frozen=True)

    lat: float
    lon: float


class Staypoint(BaseModel):
    """A GPS dwell segment."""

    model_config = ConfigDict(frozen=True)

    lat: float
    lon: float
    start: int
    end: int
    dwell_seconds: int


class DominantStaypoint(BaseModel):
    """Staypoint ranked by dwell time with its member count."""

    model_config = ConfigDict(frozen=True)

    key: str
    lat: float
    lon: float
    start: int
    end: int
    dwell_seconds: int
    member_count: int


class BaseLocation(BaseModel):
    """Resolved sleeping/base location of a day."""

    model_config = ConfigDict(frozen=True)

    lat: float
    lon: float
    distance_km: float
    source: BaseLocationSource


class DayContext(BaseModel):
    """Selection hints attached to a day of a run."""

    model_config = ConfigDict(frozen=True)

    category: DayCategory = DayCategory.PERIPHERAL
    score: float = 0.0
    duration: int | None = None


class DaySummary(BaseModel):
    """Per-day aggregate written by the day summary stages.

    The initialization stage creates one summary per calendar date. Every
    later stage fills its own group of fields in place.
    """

    date: str
    members: list[MediaAsset] = Field(default_factory=list)
    gps_members: list[MediaAsset] = Field(default_factory=list)
    photo_count: int = 0
    weekday: int = 1
    is_synthetic: bool = False

    # Initialization
    country_codes: set[str] = Field(default_factory=set)
    timezone_offsets: dict[int, int] = Field(default_factory=dict)
    timezone_identifier_votes: dict[str, int] = Field(default_factory=dict)
    local_timezone_identifier: str = "UTC"
    local_timezone_offset: int | None = None
    poi_samples: int = 0
    tourism_hits: int = 0
    has_airport_poi: bool = False
    tourism_ratio: float = 0.0

    # GPS metrics
    travel_km: float = 0.0
    max_distance_km: float = 0.0
    avg_distance_km: float = 0.0
    centroid: GeoPoint | None = None
    first_gps_media: MediaAsset | None = None
    last_gps_media: MediaAsset | None = None
    spot_clusters: list[list[MediaAsset]] = Field(default_factory=list)
    spot_noise: list[MediaAsset] = Field(default_factory=list)
    spot_cluster_count: int = 0
    spot_count: int = 0
    spot_noise_samples: int = 0
    spot_dwell_seconds: int = 0
    staypoints: list[Staypoint] = Field(default_factory=list)
    sufficient_samples: bool = False

    # Density
    density_z: float = 0.0

    # Staypoint aggregation
    staypoint_index: dict[int, str] = Field(default_factory=dict)
    staypoint_counts: dict[str, int] = Field(default_factory=dict)
    dominant_staypoints: list[DominantStaypoint] = Field(default_factory=list)
    transit_ratio: float = 0.0
    poi_density: float = 0.0

    # Transport speed
    max_speed_kmh: float = 0.0
    avg_speed_kmh: float = 0.0
    has_high_speed_transit: bool = False

    # Cohort presence
    cohort_presence_ratio: float = 0.0
    cohort_members: dict[int, int] = Field(default_factory=dict)

    # Away flags
    base_location: BaseLocation | None = None
    base_away: bool = False
    away_by_distance: bool = False
    is_away_candidate: bool = False

    # Selection hints
    selection_context: DayContext | None = None


class ClusterDraft(BaseModel):
    """Scored cluster candidate produced for a qualifying run."""

    model_config = ConfigDict(frozen=True)

    algorithm: str
    params: dict[str, Any]
    centroid: GeoPoint
    members: list[int]


class SelectionResult(BaseModel):
    """Curated members and the telemetry explaining every drop."""

    model_config = ConfigDict(frozen=True)

    members: list[MediaAsset]
    telemetry: dict[str, Any]

    @property
    def member_ids(self) -> list[int]:
        """Identifiers of the curated members in order."""
        return [media.id for media in self.members]
