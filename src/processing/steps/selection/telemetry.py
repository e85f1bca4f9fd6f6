"""Rejection counters shared by the staged selection pipeline."""

from memory_canon.codebook import RejectionReason


class SelectionTelemetry:
    """Counts rejections per reason.

    Every stage increments its own reason. All reasons are reported, with
    zero counts for stages that rejected nothing.
    """

    def __init__(self) -> None:
        """Initialize all counters to zero."""
        self._counts: dict[str, int] = {
            reason.value: 0 for reason in RejectionReason
        }

    def increment(self, reason: RejectionReason | str, amount: int = 1) -> None:
        """Add ``amount`` rejections for ``reason``."""
        key = RejectionReason(reason).value
        self._counts[key] += amount

    def count(self, reason: RejectionReason | str) -> int:
        """Rejections recorded for ``reason``."""
        return self._counts[RejectionReason(reason).value]

    def reason_counts(self) -> dict[str, int]:
        """Copy of all counters keyed by reason."""
        return dict(self._counts)

    @property
    def total(self) -> int:
        """Total rejections over all reasons."""
        return sum(self._counts.values())
