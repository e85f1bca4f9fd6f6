"""Configuration of the vacation score calculator."""

from pydantic import BaseModel, Field, model_validator


class VacationScoreWeights(BaseModel):
    """Weights of the score terms."""

    away_day: float = Field(default=1.6, description="Per away day")
    away_day_cap: int = Field(
        default=10, ge=1, description="Away days counted at most"
    )
    log_distance: float = Field(
        default=1.2, description="Multiplier of ln(1 + distance km)"
    )
    country_change: float = Field(default=2.5, description="Flat bonus")
    timezone_change: float = Field(default=2.0, description="Flat bonus")
    tourism_ratio: float = Field(default=1.5, description="Per unit ratio")
    move_day: float = Field(default=0.8, description="Per move day")
    airport_transfer: float = Field(default=1.0, description="Flat bonus")
    density_z: float = Field(default=0.6, description="Per unit z-score")
    multi_spot_day: float = Field(default=0.9, description="Per day")
    multi_spot_cap: float = Field(default=3.0, description="Cap")
    dwell_hour: float = Field(default=0.3, description="Per dwell hour")
    dwell_cap: float = Field(default=1.5, description="Cap")
    weekend_holiday_day: float = Field(default=0.35, description="Per day")
    weekend_holiday_cap: float = Field(default=2.0, description="Cap")
    work_day_penalty: float = Field(default=0.4, description="Per work day")


class VacationScoreConfig(BaseModel):
    """Thresholds and weights of the vacation score calculator."""

    movement_threshold_km: float = Field(
        default=35.0,
        gt=0,
        description="Daily travel distance that makes a move day",
    )
    work_day_tourism_ratio: float = Field(
        default=0.2,
        ge=0,
        le=1,
        description="Tourism ratio below which a weekday counts as work",
    )
    vacation_threshold: float = Field(default=8.0, description="Min score")
    short_trip_threshold: float = Field(default=6.0, description="Min score")
    day_trip_threshold: float = Field(default=4.0, description="Min score")
    weights: VacationScoreWeights = Field(
        default_factory=VacationScoreWeights
    )

    @model_validator(mode="after")
    def thresholds_ordered(self) -> "VacationScoreConfig":
        """Classification thresholds must not increase from vacation down."""
        if not (
            self.vacation_threshold
            >= self.short_trip_threshold
            >= self.day_trip_threshold
        ):
            msg = (
                "Thresholds must satisfy vacation_threshold >= "
                "short_trip_threshold >= day_trip_threshold."
            )
            raise ValueError(msg)
        return self
