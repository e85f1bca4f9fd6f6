"""Spatial clustering and staypoint detection."""

from .dbscan import ClusterResult, cluster_media
from .staypoints import (
    StaypointDetector,
    StaypointDetectorConfig,
    detect_staypoints,
)

__all__ = [
    "ClusterResult",
    "StaypointDetector",
    "StaypointDetectorConfig",
    "cluster_media",
    "detect_staypoints",
]
