"""Density stage: photo count z-score of each day."""

import logging

import polars as pl

from memory_canon.models import HomeDescriptor

from .base import DaySummaries

logger = logging.getLogger(__name__)

# Standard deviations at or below this value yield a z-score of zero
MIN_STD_EPSILON = 1e-6


class DensityStage:
    """Scores each day's photo count against all observed days.

    Mean and population standard deviation come from the non-synthetic
    days; every day, synthetic ones included, receives a z-score.
    """

    def process(
        self, days: DaySummaries, home: HomeDescriptor  # noqa: ARG002
    ) -> DaySummaries:
        """Fill ``density_z`` on every day."""
        if not days:
            return days

        counts = pl.Series(
            "photo_count",
            [s.photo_count for s in days.values() if not s.is_synthetic],
            dtype=pl.Float64,
        )
        if counts.len() == 0:
            for summary in days.values():
                summary.density_z = 0.0
            return days

        mean = float(counts.mean())
        std = float(counts.std(ddof=0))
        logger.debug("Photo density mean %.2f std %.2f", mean, std)

        for summary in days.values():
            if std > MIN_STD_EPSILON:
                summary.density_z = (summary.photo_count - mean) / std
            else:
                summary.density_z = 0.0
        return days
