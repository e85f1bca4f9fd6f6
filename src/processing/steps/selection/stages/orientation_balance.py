"""Portrait and landscape balance."""

from memory_canon.codebook import RejectionReason
from processing.steps.selection.candidates import SelectionCandidate
from processing.steps.selection.options import SelectionPolicy
from processing.steps.selection.telemetry import SelectionTelemetry

from .base import share_limit


class OrientationBalanceStage:
    """Keeps each orientation within ``orientation_max_share``."""

    name = RejectionReason.ORIENTATION.value

    def apply(
        self,
        candidates: list[SelectionCandidate],
        policy: SelectionPolicy,
        telemetry: SelectionTelemetry,
    ) -> list[SelectionCandidate]:
        selected: list[SelectionCandidate] = []
        counts: dict[str, int] = {}
        for candidate in candidates:
            orientation = candidate.orientation
            if orientation is None:
                selected.append(candidate)
                continue

            limit = share_limit(policy.orientation_max_share, len(selected) + 1)
            if counts.get(orientation, 0) >= limit:
                telemetry.increment(RejectionReason.ORIENTATION)
                continue
            selected.append(candidate)
            counts[orientation] = counts.get(orientation, 0) + 1
        return selected
