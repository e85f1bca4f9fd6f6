"""Adaptive per-day spacing and time slot diversification."""

import math

from memory_canon.codebook import RejectionReason
from processing.steps.selection.candidates import SelectionCandidate
from processing.steps.selection.options import SelectionPolicy
from processing.steps.selection.telemetry import SelectionTelemetry

SLOT_CAP = 2


class TimeSlotStage:
    """Spreads members over the day.

    Each day and time slot keeps at most two members. Consecutive members
    of one day must be apart by the base spacing, widened for long days
    (duration split by the day's quota) and early in the selection (a
    bonus that shrinks as the selection fills up).
    """

    name = RejectionReason.TIME_SLOT.value

    def apply(
        self,
        candidates: list[SelectionCandidate],
        policy: SelectionPolicy,
        telemetry: SelectionTelemetry,
    ) -> list[SelectionCandidate]:
        if not candidates:
            return []

        target = max(1, policy.target_total)
        base_spacing = max(0, policy.min_spacing_seconds)
        progress_factor = min(1.0, max(0.0, policy.spacing_progress_factor))

        days = {c.day for c in candidates} or set(policy.day_quotas) or set(
            policy.day_context
        )
        if policy.max_per_day is not None:
            default_cap = policy.max_per_day
        else:
            default_cap = max(1, math.ceil(target / max(1, len(days))))

        selected: list[SelectionCandidate] = []
        slot_counts: dict[str, int] = {}
        last_timestamp: dict[str, int] = {}

        for candidate in candidates:
            day = candidate.day
            slot_key = (
                f"{day}#{candidate.slot}" if candidate.slot is not None else None
            )
            if slot_key is not None and slot_counts.get(slot_key, 0) >= SLOT_CAP:
                telemetry.increment(RejectionReason.TIME_SLOT)
                continue

            required = self._required_spacing(
                candidate,
                policy,
                base_spacing,
                progress_factor,
                progress=len(selected) / target,
                default_cap=default_cap,
            )
            if (
                required > 0
                and day in last_timestamp
                and abs(candidate.timestamp - last_timestamp[day]) < required
            ):
                telemetry.increment(RejectionReason.TIME_SLOT)
                continue

            selected.append(candidate)
            last_timestamp[day] = candidate.timestamp
            if slot_key is not None:
                slot_counts[slot_key] = slot_counts.get(slot_key, 0) + 1

        return selected

    @staticmethod
    def _required_spacing(
        candidate: SelectionCandidate,
        policy: SelectionPolicy,
        base_spacing: int,
        progress_factor: float,
        progress: float,
        default_cap: int,
    ) -> int:
        required = base_spacing
        per_day_cap = policy.day_quotas.get(candidate.day, default_cap)

        duration = candidate.day_duration
        if duration is None and candidate.day in policy.day_context:
            duration = policy.day_context[candidate.day].duration
        if duration is not None and duration > 0:
            required = max(
                required, math.ceil(duration / max(3, per_day_cap + 1))
            )

        if base_spacing > 0 and progress_factor > 0.0:
            remaining = max(0.0, 1.0 - min(1.0, progress))
            bonus = math.floor(base_spacing * progress_factor * remaining)
            required = max(required, base_spacing + bonus)

        return required
