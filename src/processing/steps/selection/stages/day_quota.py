"""Per-day quotas with a guard against repeated person groups."""

from memory_canon.codebook import RejectionReason
from processing.steps.selection.candidates import SelectionCandidate
from processing.steps.selection.options import SelectionPolicy
from processing.steps.selection.telemetry import SelectionTelemetry

from .base import person_signature


class DayQuotaStage:
    """Caps members per day using ``policy.day_quotas``.

    When the last two picks of a day show the same people, the next pick of
    that day is swapped with a later candidate of the same day showing
    someone else.
    """

    name = RejectionReason.DAY_QUOTA.value

    def apply(
        self,
        candidates: list[SelectionCandidate],
        policy: SelectionPolicy,
        telemetry: SelectionTelemetry,
    ) -> list[SelectionCandidate]:
        quotas = policy.day_quotas
        if not candidates or not quotas:
            return list(candidates)

        pending = list(candidates)
        selected: list[SelectionCandidate] = []
        counts: dict[str, int] = {}
        history: dict[str, list[str | None]] = {}

        for index in range(len(pending)):
            candidate = pending[index]
            day = candidate.day
            limit = quotas.get(day)
            if limit is not None and counts.get(day, 0) >= limit:
                telemetry.increment(RejectionReason.DAY_QUOTA)
                continue

            repeated = self._repeated_signature(history.get(day, []))
            if repeated is not None and person_signature(candidate) == repeated:
                swap = self._alternative_index(pending, index + 1, day, repeated)
                if swap is not None:
                    pending[index], pending[swap] = pending[swap], candidate
                    candidate = pending[index]

            selected.append(candidate)
            counts[day] = counts.get(day, 0) + 1
            history[day] = [*history.get(day, []), person_signature(candidate)][
                -2:
            ]

        return selected

    @staticmethod
    def _repeated_signature(history: list[str | None]) -> str | None:
        if len(history) < 2 or history[-1] is None:
            return None
        return history[-1] if history[-1] == history[-2] else None

    @staticmethod
    def _alternative_index(
        candidates: list[SelectionCandidate],
        start: int,
        day: str,
        repeated: str,
    ) -> int | None:
        for index in range(start, len(candidates)):
            candidate = candidates[index]
            if candidate.day == day and person_signature(candidate) != repeated:
                return index
        return None
