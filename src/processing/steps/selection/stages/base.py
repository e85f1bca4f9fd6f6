"""Shared contract of the staged selection filters."""

import math
from typing import Protocol

from processing.steps.selection.candidates import SelectionCandidate
from processing.steps.selection.options import SelectionPolicy
from processing.steps.selection.telemetry import SelectionTelemetry


class SelectionStage(Protocol):
    """A stage filters an ordered candidate list.

    Stages keep the relative order of the candidates they pass and count
    every rejection under their own reason.
    """

    name: str

    def apply(
        self,
        candidates: list[SelectionCandidate],
        policy: SelectionPolicy,
        telemetry: SelectionTelemetry,
    ) -> list[SelectionCandidate]:
        """Return the candidates that pass this stage."""
        ...


def person_signature(candidate: SelectionCandidate) -> str | None:
    """Sorted unique person ids joined by dashes, None without persons."""
    if not candidate.persons:
        return None
    return "-".join(str(person) for person in sorted(set(candidate.persons)))


def share_limit(ratio: float, next_total: int) -> int:
    """Members a share of ``ratio`` allows once ``next_total`` are kept."""
    return max(1, math.ceil(next_total * ratio))
