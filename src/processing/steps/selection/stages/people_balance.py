"""Balance of the people shown across the selection."""

from collections.abc import Iterable

from memory_canon.codebook import RejectionReason
from processing.steps.selection.candidates import SelectionCandidate
from processing.steps.selection.options import SelectionPolicy
from processing.steps.selection.telemetry import SelectionTelemetry

from .base import share_limit

GROUP_FACE_COUNT = 3


class PeopleBalanceStage:
    """Keeps one person from dominating the selection.

    A candidate passes when at least one of its persons stays within
    ``people_max_share`` of the selection. Candidates without persons,
    candidates showing an important person, fallback persons and group
    shots always pass.
    """

    name = RejectionReason.PEOPLE.value

    def __init__(
        self,
        important_person_ids: Iterable[int] = (),
        fallback_person_ids: Iterable[int] = (),
    ) -> None:
        """Initialize the stage.

        Args:
            important_person_ids: Persons exempt from the share cap.
            fallback_person_ids: Persons allowed when the cap is reached.
        """
        self.important_person_ids = frozenset(important_person_ids)
        self.fallback_person_ids = frozenset(fallback_person_ids)

    def apply(
        self,
        candidates: list[SelectionCandidate],
        policy: SelectionPolicy,
        telemetry: SelectionTelemetry,
    ) -> list[SelectionCandidate]:
        selected: list[SelectionCandidate] = []
        counts: dict[int, int] = {}

        for candidate in candidates:
            persons = set(candidate.persons)
            if not persons:
                selected.append(candidate)
                continue

            if not persons & self.important_person_ids:
                limit = share_limit(policy.people_max_share, len(selected) + 1)
                allowed = (
                    any(counts.get(p, 0) + 1 <= limit for p in persons)
                    or bool(persons & self.fallback_person_ids)
                    or candidate.media.faces_count >= GROUP_FACE_COUNT
                )
                if not allowed:
                    telemetry.increment(RejectionReason.PEOPLE)
                    continue

            selected.append(candidate)
            for person in persons:
                counts[person] = counts.get(person, 0) + 1

        return selected
