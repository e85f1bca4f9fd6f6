"""Selection options for the greedy selector and the staged pipeline.

``VacationSelectionOptions`` drives :class:`VacationMemberSelector`.
``SelectionPolicy`` drives :class:`PolicyDrivenMemberSelector` and its
stages. Both are frozen pydantic models; relaxed variants are derived with
``model_copy`` so the caller's instance is never changed.
"""

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from memory_canon.codebook import DayCategory, SceneBucket
from memory_canon.models import DayContext

DEFAULT_SCENE_BUCKET_WEIGHTS: dict[str, float] = {
    SceneBucket.PERSON_GROUP.value: 0.18,
    SceneBucket.LANDMARK.value: 0.16,
    SceneBucket.FOOD.value: 0.14,
    SceneBucket.INDOOR.value: 0.16,
    SceneBucket.OUTDOOR.value: 0.20,
    SceneBucket.NIGHT.value: 0.10,
    SceneBucket.PANORAMA.value: 0.06,
}


class VacationSelectionOptions(BaseModel):
    """Knobs of the greedy vacation member selector."""

    model_config = ConfigDict(frozen=True)

    target_total: int = Field(
        default=40, ge=1, description="Number of members to select"
    )
    minimum_total: int = Field(
        default=24,
        ge=1,
        description="Selection size below which constraints are relaxed",
    )
    max_per_day: int = Field(
        default=6, ge=1, description="Members allowed per day"
    )
    time_slot_hours: int = Field(
        default=3, ge=1, le=24, description="Size of the per-day time slots"
    )
    min_spacing_seconds: int = Field(
        default=1200, ge=0, description="Minimum gap between any two members"
    )
    phash_min_hamming: int = Field(
        default=9,
        ge=0,
        description="Hamming distance at or below which images are duplicates",
    )
    max_per_staypoint: int = Field(
        default=2, ge=1, description="Members allowed per staypoint"
    )
    video_bonus: float = Field(default=0.08, description="Score bonus for videos")
    face_bonus: float = Field(
        default=0.12, description="Score bonus for media with faces"
    )
    selfie_penalty: float = Field(
        default=0.05, ge=0, description="Score penalty for single-face media"
    )
    quality_floor: float = Field(
        default=0.35,
        ge=0,
        le=1,
        description="Quality score below which media are dropped",
    )
    enable_people_balance: bool = Field(
        default=True, description="Limit how often one person appears"
    )
    people_balance_weight: float = Field(
        default=0.35,
        ge=0,
        le=1,
        description="Share of the selection one person may occupy",
    )
    repeat_penalty: float = Field(
        default=0.1,
        ge=0,
        description="Score penalty scaled by person overlap with the selection",
    )
    face_detection_available: bool = Field(
        default=True, description="Whether face data was computed"
    )
    core_day_bonus: int = Field(
        default=1, ge=0, description="Extra members allowed on core days"
    )
    peripheral_day_penalty: int = Field(
        default=1, ge=0, description="Fewer members allowed on peripheral days"
    )
    phash_percentile: float = Field(
        default=0.35,
        ge=0,
        le=1,
        description="Percentile of nearby pair distances used as threshold",
    )
    spacing_progress_factor: float = Field(
        default=0.5,
        ge=0,
        le=1,
        description="Extra spacing share early in the selection",
    )
    cohort_repeat_penalty: float = Field(
        default=0.05, ge=0, description="Penalty per repeated cohort member"
    )
    relax_caps: bool = Field(
        default=False,
        description=(
            "Allow the last relaxation step to raise the per-day and "
            "per-staypoint caps to the target total"
        ),
    )


class SelectionPolicy(BaseModel):
    """Tunable constraints of the staged selection pipeline."""

    model_config = ConfigDict(frozen=True)

    profile_key: str = Field(
        default="vacation",
        min_length=1,
        description="Profile name reported in telemetry",
    )
    target_total: int = Field(default=32, ge=1)
    minimum_total: int = Field(default=12, ge=1)
    max_per_day: int | None = Field(default=6, ge=1)
    time_slot_hours: float | None = Field(default=3.0, gt=0)
    min_spacing_seconds: int = Field(default=1200, ge=0)
    phash_min_hamming: int = Field(default=9, ge=0)
    max_per_staypoint: int | None = Field(default=2, ge=1)
    relaxed_max_per_staypoint: int | None = Field(default=3, ge=0)
    quality_floor: float = Field(default=0.35, ge=0)
    video_bonus: float = 0.08
    face_bonus: float = 0.12
    selfie_penalty: float = Field(default=0.05, ge=0)
    scene_bucket_weights: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_SCENE_BUCKET_WEIGHTS)
    )
    core_day_bonus: int = Field(default=1, ge=0)
    peripheral_day_penalty: int = Field(default=1, ge=0)
    phash_percentile: float = Field(default=0.35, ge=0, le=1)
    spacing_progress_factor: float = Field(default=0.5, ge=0, le=1)
    cohort_penalty: float = Field(default=0.05, ge=0)
    orientation_max_share: float = Field(
        default=0.6,
        gt=0,
        le=1,
        description="Share of the selection one orientation may occupy",
    )
    people_max_share: float = Field(
        default=0.5,
        ge=0.4,
        le=0.5,
        description="Share of the selection one non-cohort person may occupy",
    )
    time_gap_slot_cap: int = Field(
        default=2, ge=1, description="Members per day and time slot"
    )
    day_quotas: dict[str, int] = Field(default_factory=dict)
    day_context: dict[str, DayContext] = Field(default_factory=dict)

    @model_validator(mode="after")
    def minimum_within_target(self) -> "SelectionPolicy":
        """The minimum total must not exceed the target total."""
        if self.minimum_total > self.target_total:
            msg = "minimum_total must not exceed target_total."
            raise ValueError(msg)
        return self

    def with_relaxed_spacing(self, spacing: int) -> "SelectionPolicy":
        """Copy with a different minimum spacing."""
        return self.model_copy(update={"min_spacing_seconds": spacing})

    def with_relaxed_hamming(self, hamming: int) -> "SelectionPolicy":
        """Copy with a different perceptual hash threshold."""
        return self.model_copy(update={"phash_min_hamming": hamming})

    def with_max_per_staypoint(self, cap: int | None) -> "SelectionPolicy":
        """Copy with a different staypoint cap."""
        return self.model_copy(update={"max_per_staypoint": cap})

    def without_caps(self) -> "SelectionPolicy":
        """Copy without day and staypoint caps."""
        return self.model_copy(
            update={
                "max_per_day": None,
                "max_per_staypoint": None,
                "relaxed_max_per_staypoint": None,
                "day_quotas": {},
            }
        )

    def with_day_context(
        self, day_context: dict[str, DayContext]
    ) -> "SelectionPolicy":
        """Copy carrying ``day_context`` and per-day quotas derived from it.

        The base quota spreads the target evenly over the days, bounded by
        ``max_per_day``. Core days get ``core_day_bonus`` more, peripheral
        days ``peripheral_day_penalty`` fewer, never less than one.
        """
        if not day_context:
            return self.model_copy(update={"day_context": {}, "day_quotas": {}})

        base = max(1, math.ceil(self.target_total / len(day_context)))
        if self.max_per_day is not None:
            base = min(base, self.max_per_day)

        quotas: dict[str, int] = {}
        for day, context in sorted(day_context.items()):
            if context.category == DayCategory.CORE:
                quota = base + self.core_day_bonus
            else:
                quota = base - self.peripheral_day_penalty
            if self.max_per_day is not None:
                quota = min(quota, self.max_per_day)
            quotas[day] = max(1, quota)

        return self.model_copy(
            update={"day_context": dict(day_context), "day_quotas": quotas}
        )

    def snapshot(self) -> dict[str, Any]:
        """Plain mapping of the scalar knobs for telemetry."""
        return self.model_dump(exclude={"day_context"})
