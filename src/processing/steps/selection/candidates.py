"""Selection candidates and the per-day context of a run."""

from collections.abc import Sequence
from dataclasses import dataclass, field

from memory_canon.codebook import CandidateOrigin, DayCategory
from memory_canon.models import DayContext, MediaAsset
from processing.steps.day_summary.base import DaySummaries


@dataclass
class SelectionCandidate:
    """A media item wrapped with everything the selectors rank on.

    Candidates are built fresh for every selection call.
    """

    media: MediaAsset
    day: str
    timestamp: int
    score: float
    quality: float
    slot: int | None = None
    staypoint_key: str | None = None
    burst_id: str | None = None
    origin: CandidateOrigin = CandidateOrigin.SLOT
    persons: tuple[int, ...] = ()
    has_faces: bool = False
    hash_bits: tuple[int, ...] | None = None
    bucket: str | None = None
    orientation: str | None = None
    day_category: DayCategory = DayCategory.PERIPHERAL
    day_duration: int | None = None
    extras: dict[str, float] = field(default_factory=dict)

    @property
    def id(self) -> int:
        """Identifier of the wrapped media item."""
        return self.media.id


def build_day_contexts(
    day_keys: Sequence[str], days: DaySummaries
) -> dict[str, DayContext]:
    """Derive selection hints for the days of a run.

    Away days with photos are core days, everything else is peripheral.
    The score is the day's photo count relative to the busiest day and the
    duration spans the first to the last capture of the day.
    """
    busiest = max((days[key].photo_count for key in day_keys), default=0)
    contexts: dict[str, DayContext] = {}
    for key in day_keys:
        summary = days[key]
        core = (
            summary.base_away
            and not summary.is_synthetic
            and summary.photo_count > 0
        )
        timestamps = [
            m.timestamp for m in summary.members if m.timestamp is not None
        ]
        duration = max(timestamps) - min(timestamps) if timestamps else 0
        contexts[key] = DayContext(
            category=DayCategory.CORE if core else DayCategory.PERIPHERAL,
            score=round(summary.photo_count / busiest, 3) if busiest else 0.0,
            duration=duration if duration > 0 else None,
        )
    return contexts
