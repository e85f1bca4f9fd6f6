"""Configuration models for run detection."""

from pydantic import BaseModel, Field


class TransportDayExtenderConfig(BaseModel):
    """Thresholds deciding whether an adjacent day is a transfer day."""

    transit_ratio_threshold: float = Field(
        default=0.6,
        ge=0,
        le=1,
        description="Transit ratio at which a day counts as transit heavy",
    )
    transit_speed_threshold_kmh: float = Field(
        default=90.0,
        gt=0,
        description="Average or max speed at which a day is transit heavy",
    )
    lean_photo_threshold: int = Field(
        default=2,
        ge=0,
        description="Photo count up to which a day without staypoints is lean",
    )


class RunDetectorConfig(BaseModel):
    """Configuration of the vacation run detector."""

    min_away_distance_km: float = Field(
        default=140.0,
        gt=0,
        description="Centroid distance from home that alone marks a day away",
    )
    min_items_per_day: int = Field(
        default=4,
        ge=1,
        description="Photo count below which an away gap day is bridged",
    )
    transit_ratio_threshold: float = Field(
        default=0.6,
        ge=0,
        le=1,
        description="Transit ratio at which a day counts as transit heavy",
    )
    transit_speed_threshold_kmh: float = Field(
        default=90.0,
        gt=0,
        description="Average or max speed at which a day is transit heavy",
    )
    min_staypoint_bridge_dwell_seconds: int = Field(
        default=7200,
        ge=0,
        description="Staypoint dwell that counts as overnight evidence",
    )
    hotel_poi_density: float = Field(
        default=0.25,
        ge=0,
        le=1,
        description="POI density that backs up tourism hits as a hotel stay",
    )
    long_run_min_days: int = Field(
        default=10,
        ge=1,
        description="Run length that enables the relaxed second pass",
    )
    long_run_min_avg_photos: float = Field(
        default=2.0,
        ge=0,
        description="Average photos per day of a run for the second pass",
    )
    long_run_min_items_per_day: int = Field(
        default=2,
        ge=1,
        description="Bridging threshold inside long runs",
    )
    extender: TransportDayExtenderConfig = Field(
        default_factory=TransportDayExtenderConfig
    )
