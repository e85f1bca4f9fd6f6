"""Scene bucket diversity."""

from collections.abc import Mapping

from memory_canon.codebook import RejectionReason
from processing.steps.selection.candidates import SelectionCandidate
from processing.steps.selection.options import (
    DEFAULT_SCENE_BUCKET_WEIGHTS,
    SelectionPolicy,
)
from processing.steps.selection.telemetry import SelectionTelemetry

from .base import share_limit


def bucket_ratios(weights: Mapping[str, float]) -> dict[str, float]:
    """Normalize bucket weights into shares summing to one.

    Known buckets with a missing or non-positive weight use their default
    weight. Extra buckets with a positive weight are kept.
    """
    merged: dict[str, float] = {}
    for bucket, default in DEFAULT_SCENE_BUCKET_WEIGHTS.items():
        weight = weights.get(bucket, default)
        merged[bucket] = weight if weight > 0.0 else default
    for bucket, weight in weights.items():
        if weight > 0.0 and bucket not in merged:
            merged[bucket] = weight

    total = sum(merged.values())
    return {bucket: weight / total for bucket, weight in merged.items()}


class SceneDiversityStage:
    """Keeps each scene bucket near its weighted share of the selection."""

    name = RejectionReason.SCENE.value

    def apply(
        self,
        candidates: list[SelectionCandidate],
        policy: SelectionPolicy,
        telemetry: SelectionTelemetry,
    ) -> list[SelectionCandidate]:
        if not candidates:
            return []

        ratios = bucket_ratios(policy.scene_bucket_weights)
        fallback_ratio = 1.0 / len(ratios)

        selected: list[SelectionCandidate] = []
        counts: dict[str, int] = {}
        for candidate in candidates:
            bucket = candidate.bucket
            if not bucket:
                selected.append(candidate)
                continue

            limit = share_limit(
                ratios.get(bucket, fallback_ratio), len(selected) + 1
            )
            if counts.get(bucket, 0) >= limit:
                telemetry.increment(RejectionReason.SCENE)
                continue
            selected.append(candidate)
            counts[bucket] = counts.get(bucket, 0) + 1
        return selected
