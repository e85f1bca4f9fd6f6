"""Density based spatial clustering of GPS-tagged media.

Core points are points with at least ``min_samples`` points (the point
itself included) inside ``eps_km``. Clusters are the connected components
of core points; border points join the cluster of their nearest core point.
Because border assignment does not depend on the visiting order, the
partition is the same for every permutation of the input.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from memory_canon.models import MediaAsset
from processing.utils.geo import media_distance_km

logger = logging.getLogger(__name__)


@dataclass
class ClusterResult:
    """Clusters and noise returned by :func:`cluster_media`."""

    clusters: list[list[MediaAsset]] = field(default_factory=list)
    noise: list[MediaAsset] = field(default_factory=list)


def _stable_key(media: MediaAsset) -> tuple[int, int]:
    return (media.timestamp if media.timestamp is not None else 0, media.id)


def cluster_media(
    items: Sequence[MediaAsset],
    eps_km: float = 0.1,
    min_samples: int = 3,
) -> ClusterResult:
    """Cluster media by GPS proximity.

    Args:
        items: Media to cluster; items without coordinates are ignored.
        eps_km: Neighbourhood radius in kilometers.
        min_samples: Minimum neighbourhood size (point included) of a
            core point. Values below 1 are treated as 1.

    Returns:
        ClusterResult with clusters and noise ordered by capture time then
        id. A non-positive radius returns every item as noise.
    """
    if not items or eps_km <= 0.0:
        return ClusterResult(clusters=[], noise=list(items))

    min_samples = max(1, min_samples)

    points = sorted((m for m in items if m.has_gps), key=_stable_key)
    count = len(points)
    if count == 0:
        return ClusterResult()

    neighbours: list[list[int]] = [[] for _ in range(count)]
    for i in range(count):
        for j in range(i + 1, count):
            if media_distance_km(points[i], points[j]) <= eps_km:
                neighbours[i].append(j)
                neighbours[j].append(i)

    is_core = [len(neighbours[i]) + 1 >= min_samples for i in range(count)]

    # Connected components over core points
    labels = [-1] * count
    cluster_id = -1
    for i in range(count):
        if not is_core[i] or labels[i] != -1:
            continue
        cluster_id += 1
        labels[i] = cluster_id
        stack = [i]
        while stack:
            current = stack.pop()
            for n in neighbours[current]:
                if is_core[n] and labels[n] == -1:
                    labels[n] = cluster_id
                    stack.append(n)

    # Border points join the nearest core point's cluster
    for i in range(count):
        if is_core[i]:
            continue
        best: tuple[float, tuple[int, int]] | None = None
        for n in neighbours[i]:
            if not is_core[n]:
                continue
            candidate = (
                media_distance_km(points[i], points[n]),
                _stable_key(points[n]),
            )
            if best is None or candidate < best:
                best = candidate
                labels[i] = labels[n]

    clusters: list[list[MediaAsset]] = [[] for _ in range(cluster_id + 1)]
    noise: list[MediaAsset] = []
    for index, media in enumerate(points):
        if labels[index] == -1:
            noise.append(media)
        else:
            clusters[labels[index]].append(media)

    logger.debug(
        "DBSCAN on %d points: %d clusters, %d noise",
        count,
        len(clusters),
        len(noise),
    )
    return ClusterResult(clusters=clusters, noise=noise)
