"""Configuration models for the day summary stages."""

from pydantic import BaseModel, Field, field_validator, model_validator

from processing.clustering.staypoints import StaypointDetectorConfig
from processing.resolvers.timezone import DEFAULT_TIMEZONE


class GpsMetricsConfig(BaseModel):
    """Thresholds for GPS outlier filtering and per-day metrics."""

    gps_outlier_radius_km: float = Field(
        default=1.0,
        gt=0,
        description=(
            "Radius in km of the GPS outlier filter"
        ),
    )
    gps_outlier_min_samples: int = Field(
        default=3,
        ge=2,
        description="Neighbours (self included) needed to keep a GPS point",
    )
    min_items_per_day: int = Field(
        default=3,
        ge=1,
        description="Photo count needed for a day to have sufficient samples",
    )
    spot_cluster_radius_km: float = Field(
        default=0.25,
        gt=0,
        description="DBSCAN radius in km of the spot clustering",
    )
    spot_cluster_min_samples: int = Field(
        default=3,
        ge=1,
        description="DBSCAN core size of the spot clustering",
    )


class StaypointStageConfig(BaseModel):
    """Parameters of the staypoint aggregation stage."""

    dominant_limit: int = Field(
        default=3,
        ge=1,
        description="Number of dominant staypoints kept per day",
    )


class TransportSpeedConfig(BaseModel):
    """Parameters of the transport speed stage."""

    min_leg_seconds: int = Field(
        default=300,
        ge=1,
        description="Shortest leg duration considered for speeds",
    )
    min_leg_distance_km: float = Field(
        default=10.0,
        ge=0,
        description="Shortest leg distance considered for speeds",
    )
    high_speed_threshold_kmh: float = Field(
        default=100.0,
        gt=0,
        description="Maximum leg speed that flags high speed transit",
    )
    high_speed_travel_km: float = Field(
        default=150.0,
        gt=0,
        description="Daily travel distance that flags high speed transit",
    )


class CohortPresenceConfig(BaseModel):
    """Important persons tracked for cohort presence.

    ``fallback_person_ids`` maps a canonical person id to alias ids that
    count as that person.
    """

    important_person_ids: list[int] = Field(
        default_factory=list,
        description="Person ids whose presence is tracked",
    )
    fallback_person_ids: dict[int, list[int]] = Field(
        default_factory=dict,
        description="Canonical person id to alias person ids",
    )

    @field_validator("important_person_ids")
    @classmethod
    def positive_ids(cls, value: list[int]) -> list[int]:
        """Person ids must be positive integers."""
        if any(person_id <= 0 for person_id in value):
            msg = "important_person_ids must contain positive integers."
            raise ValueError(msg)
        return value

    @field_validator("fallback_person_ids")
    @classmethod
    def positive_aliases(
        cls, value: dict[int, list[int]]
    ) -> dict[int, list[int]]:
        """Canonical ids and their aliases must be positive integers."""
        for canonical, aliases in value.items():
            if canonical <= 0:
                msg = "fallback_person_ids keys must be positive integers."
                raise ValueError(msg)
            if any(alias <= 0 for alias in aliases):
                msg = "fallback_person_ids entries must be positive integers."
                raise ValueError(msg)
        return value


class AwayFlagConfig(BaseModel):
    """Parameters of the away flag stage."""

    next_day_dominant_distance_factor: float = Field(
        default=1.5,
        gt=1.0,
        description=(
            "Multiple of the home radius the next day's dominant staypoint "
            "must exceed to mark a night away"
        ),
    )
    night_window_start_hour: int = Field(
        default=22, ge=0, le=23, description="Local hour the night starts"
    )
    night_window_end_hour: int = Field(
        default=6, ge=0, le=23, description="Local hour the night ends"
    )
    night_coverage_ratio: float = Field(
        default=0.75,
        gt=0,
        le=1,
        description="Share of the night a staypoint must cover",
    )

    @property
    def night_window_hours(self) -> int:
        """Length of the night window, wrapping past midnight."""
        duration = self.night_window_end_hour - self.night_window_start_hour
        if duration <= 0:
            duration += 24
        return duration


class DaySummaryConfig(BaseModel):
    """Configuration of the whole day summary pipeline."""

    default_timezone: str = Field(
        default=DEFAULT_TIMEZONE,
        description="IANA zone used when no other zone can be resolved",
    )
    gps_metrics: GpsMetricsConfig = Field(default_factory=GpsMetricsConfig)
    staypoints: StaypointDetectorConfig = Field(
        default_factory=StaypointDetectorConfig
    )
    staypoint_stage: StaypointStageConfig = Field(
        default_factory=StaypointStageConfig
    )
    transport_speed: TransportSpeedConfig = Field(
        default_factory=TransportSpeedConfig
    )
    cohort: CohortPresenceConfig = Field(default_factory=CohortPresenceConfig)
    away_flags: AwayFlagConfig = Field(default_factory=AwayFlagConfig)

    @model_validator(mode="after")
    def non_empty_timezone(self) -> "DaySummaryConfig":
        """The default timezone must not be blank."""
        if not self.default_timezone.strip():
            msg = "default_timezone must not be empty."
            raise ValueError(msg)
        return self
