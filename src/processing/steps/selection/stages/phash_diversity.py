"""Perceptual hash diversity."""

import math

from memory_canon.codebook import RejectionReason
from processing.steps.selection.candidates import SelectionCandidate
from processing.steps.selection.options import SelectionPolicy
from processing.steps.selection.similarity import bits_distance
from processing.steps.selection.telemetry import SelectionTelemetry


def adaptive_threshold(
    candidates: list[SelectionCandidate], percentile: float
) -> int | None:
    """Distance at ``percentile`` over all candidate pairs with a hash."""
    if percentile <= 0.0:
        return None
    hashed = [c.hash_bits for c in candidates if c.hash_bits is not None]
    distances = sorted(
        bits_distance(a, b)
        for i, a in enumerate(hashed)
        for b in hashed[i + 1 :]
    )
    if not distances:
        return None
    index = min(len(distances) - 1, math.floor(percentile * (len(distances) - 1)))
    return distances[max(0, index)]


class PhashDiversityStage:
    """Drops candidates that look too similar to an earlier kept one.

    The threshold is ``phash_min_hamming``, lowered to the adaptive
    percentile of the pair distances when that is smaller, but never
    below one.
    """

    name = RejectionReason.PHASH.value

    def apply(
        self,
        candidates: list[SelectionCandidate],
        policy: SelectionPolicy,
        telemetry: SelectionTelemetry,
    ) -> list[SelectionCandidate]:
        threshold = policy.phash_min_hamming
        if threshold <= 0:
            return list(candidates)

        adaptive = adaptive_threshold(candidates, policy.phash_percentile)
        if adaptive is not None:
            threshold = max(1, min(threshold, adaptive))

        selected: list[SelectionCandidate] = []
        for candidate in candidates:
            if candidate.hash_bits is not None and any(
                kept.hash_bits is not None
                and bits_distance(candidate.hash_bits, kept.hash_bits) < threshold
                for kept in selected
            ):
                telemetry.increment(RejectionReason.PHASH)
                continue
            selected.append(candidate)
        return selected
