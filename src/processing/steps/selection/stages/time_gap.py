"""Fixed minimum gap between members and a per-slot cap."""

from memory_canon.codebook import RejectionReason
from processing.steps.selection.candidates import SelectionCandidate
from processing.steps.selection.options import SelectionPolicy
from processing.steps.selection.telemetry import SelectionTelemetry


class TimeGapStage:
    """Rejects candidates closer than ``min_spacing_seconds`` to any kept one.

    Also allows at most ``time_gap_slot_cap`` members per day and time slot.
    """

    name = RejectionReason.TIME_GAP.value

    def apply(
        self,
        candidates: list[SelectionCandidate],
        policy: SelectionPolicy,
        telemetry: SelectionTelemetry,
    ) -> list[SelectionCandidate]:
        spacing = policy.min_spacing_seconds
        selected: list[SelectionCandidate] = []
        slot_counts: dict[str, int] = {}

        for candidate in candidates:
            slot_key = (
                f"{candidate.day}#{candidate.slot}"
                if candidate.slot is not None
                else None
            )
            if (
                slot_key is not None
                and slot_counts.get(slot_key, 0) >= policy.time_gap_slot_cap
            ):
                telemetry.increment(RejectionReason.TIME_GAP)
                continue

            if spacing > 0 and any(
                abs(candidate.timestamp - kept.timestamp) < spacing
                for kept in selected
            ):
                telemetry.increment(RejectionReason.TIME_GAP)
                continue

            selected.append(candidate)
            if slot_key is not None:
                slot_counts[slot_key] = slot_counts.get(slot_key, 0) + 1

        return selected
