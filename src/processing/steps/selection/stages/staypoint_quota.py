"""Per-staypoint member cap."""

from memory_canon.codebook import RejectionReason
from processing.steps.selection.candidates import SelectionCandidate
from processing.steps.selection.options import SelectionPolicy
from processing.steps.selection.telemetry import SelectionTelemetry


class StaypointQuotaStage:
    """Keeps at most ``max_per_staypoint`` members per staypoint."""

    name = RejectionReason.STAYPOINT.value

    def apply(
        self,
        candidates: list[SelectionCandidate],
        policy: SelectionPolicy,
        telemetry: SelectionTelemetry,
    ) -> list[SelectionCandidate]:
        cap = policy.max_per_staypoint
        if cap is None:
            return list(candidates)

        selected: list[SelectionCandidate] = []
        counts: dict[str, int] = {}
        for candidate in candidates:
            key = candidate.staypoint_key
            if key is not None and counts.get(key, 0) >= cap:
                telemetry.increment(RejectionReason.STAYPOINT)
                continue
            selected.append(candidate)
            if key is not None:
                counts[key] = counts.get(key, 0) + 1
        return selected
