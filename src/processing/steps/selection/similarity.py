"""Pairwise similarity between media items with a per-call memo."""

import re

from memory_canon.models import MediaAsset
from processing.utils.geo import haversine_distance_m

_HEX = re.compile(r"^[0-9a-fA-F]+$")


def phash_hamming(hash_a: str | None, hash_b: str | None) -> int | None:
    """Bitwise distance of two hexadecimal perceptual hashes.

    Nibbles are compared over the common length; every extra nibble of the
    longer hash counts as four differing bits. Missing or malformed hashes
    yield None.
    """
    if not hash_a or not hash_b:
        return None
    if not _HEX.match(hash_a) or not _HEX.match(hash_b):
        return None

    length = min(len(hash_a), len(hash_b))
    distance = sum(
        (int(hash_a[i], 16) ^ int(hash_b[i], 16)).bit_count()
        for i in range(length)
    )
    return distance + abs(len(hash_a) - len(hash_b)) * 4


def hash_bits(phash: str | None, max_nibbles: int = 16) -> tuple[int, ...] | None:
    """Decode the first ``max_nibbles`` nibbles of a hash into bits."""
    if not phash or not _HEX.match(phash):
        return None
    bits: list[int] = []
    for char in phash[:max_nibbles].lower():
        nibble = int(char, 16)
        bits.extend((nibble >> shift) & 1 for shift in (3, 2, 1, 0))
    return tuple(bits)


def bits_distance(bits_a: tuple[int, ...], bits_b: tuple[int, ...]) -> int:
    """Hamming distance of two bit vectors, padding the shorter one."""
    length = min(len(bits_a), len(bits_b))
    distance = abs(len(bits_a) - len(bits_b))
    return distance + sum(
        1 for i in range(length) if bits_a[i] != bits_b[i]
    )


class SimilarityMetrics:
    """Memoized pairwise metrics.

    Results are cached under an order independent key of the two media
    ids. Create one instance per selection call; the cache is not shared
    between instances.
    """

    def __init__(self) -> None:
        """Initialize empty caches."""
        self._seconds: dict[tuple[int, int], int] = {}
        self._meters: dict[tuple[int, int], float | None] = {}
        self._phash: dict[tuple[int, int], int | None] = {}
        self._persons: dict[tuple[int, int], float] = {}

    @staticmethod
    def _key(a: MediaAsset, b: MediaAsset) -> tuple[int, int]:
        return (a.id, b.id) if a.id <= b.id else (b.id, a.id)

    def seconds_between(self, a: MediaAsset, b: MediaAsset) -> int:
        """Absolute capture time difference in seconds."""
        key = self._key(a, b)
        if key not in self._seconds:
            self._seconds[key] = abs((a.timestamp or 0) - (b.timestamp or 0))
        return self._seconds[key]

    def geo_distance_meters(self, a: MediaAsset, b: MediaAsset) -> float | None:
        """Great circle distance, or None when either item lacks GPS."""
        key = self._key(a, b)
        if key not in self._meters:
            if not a.has_gps or not b.has_gps:
                self._meters[key] = None
            else:
                self._meters[key] = haversine_distance_m(
                    a.gps_lat, a.gps_lon, b.gps_lat, b.gps_lon
                )
        return self._meters[key]

    def phash_distance(self, a: MediaAsset, b: MediaAsset) -> int | None:
        """Perceptual hash distance, or None when a hash is missing."""
        key = self._key(a, b)
        if key not in self._phash:
            self._phash[key] = phash_hamming(a.phash, b.phash)
        return self._phash[key]

    def person_overlap(self, a: MediaAsset, b: MediaAsset) -> float:
        """Jaccard overlap of the two person sets."""
        key = self._key(a, b)
        if key not in self._persons:
            persons_a = set(a.person_ids)
            persons_b = set(b.person_ids)
            union = persons_a | persons_b
            self._persons[key] = (
                len(persons_a & persons_b) / len(union) if union else 0.0
            )
        return self._persons[key]

    @staticmethod
    def share_same_device(a: MediaAsset, b: MediaAsset) -> bool:
        """True when make, model and serial all match."""
        return a.device_fingerprint == b.device_fingerprint
