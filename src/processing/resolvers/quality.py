"""Lazy quality scoring of media items without a stored score."""

import logging
import math

from memory_canon.models import MediaAsset

logger = logging.getLogger(__name__)


def _clamp01(value: float | None) -> float | None:
    if value is None:
        return None
    return max(0.0, min(1.0, value))


def _weighted(components: list[tuple[float | None, float]]) -> float | None:
    total = 0.0
    weight_sum = 0.0
    for value, weight in components:
        if value is None:
            continue
        total += value * weight
        weight_sum += weight
    if weight_sum <= 0.0:
        return None
    return _clamp01(total / weight_sum)


class MediaQualityAggregator:
    """Combines sharpness, exposure and noise into a quality score."""

    def __init__(
        self,
        brightness_target: float = 0.55,
        brightness_tolerance: float = 0.35,
        iso_min: float = 50.0,
        iso_max: float = 6400.0,
    ) -> None:
        """Initialize the aggregator.

        Args:
            brightness_target: Ideal normalised brightness.
            brightness_tolerance: Deviation at which brightness scores 0.
            iso_min: ISO value that scores 1.0 for noise.
            iso_max: ISO value that scores 0.0 for noise.
        """
        if brightness_tolerance <= 0.0:
            msg = "brightness_tolerance must be greater than zero."
            raise ValueError(msg)
        if iso_min <= 0.0 or iso_max <= iso_min:
            msg = "iso_max must exceed a positive iso_min."
            raise ValueError(msg)
        self.brightness_target = brightness_target
        self.brightness_tolerance = brightness_tolerance
        self.iso_min = iso_min
        self.iso_max = iso_max

    def aggregate(self, media: MediaAsset) -> float | None:
        """Return the stored quality score or compute one.

        The computed score weighs sharpness 0.5, exposure 0.3 and ISO noise
        0.2 over the components that are present.
        """
        if media.quality_score is not None:
            return media.quality_score

        score = _weighted(
            [
                (_clamp01(media.sharpness), 0.50),
                (self._exposure_score(media), 0.30),
                (self._iso_score(media.iso), 0.20),
            ]
        )
        logger.debug("Computed quality %s for media %d", score, media.id)
        return score

    def _exposure_score(self, media: MediaAsset) -> float | None:
        brightness = _clamp01(media.brightness)
        balanced = None
        if brightness is not None:
            delta = abs(brightness - self.brightness_target)
            balanced = (
                0.0
                if delta >= self.brightness_tolerance
                else 1.0 - delta / self.brightness_tolerance
            )
        return _weighted([(balanced, 0.60), (_clamp01(media.contrast), 0.40)])

    def _iso_score(self, iso: int | None) -> float | None:
        if iso is None or iso <= 0:
            return None
        value = max(self.iso_min, min(self.iso_max, float(iso)))
        return 1.0 - math.log(value / self.iso_min) / math.log(
            self.iso_max / self.iso_min
        )
