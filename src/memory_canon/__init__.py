"""Canonical records and codebook for photo memory clustering.

Available modules:
- codebook: Enumerations shared across processing steps
- models: Pydantic records (media, home, day summary, drafts, results)
- data: Shared state of the pipeline steps
"""

from . import codebook, models
from .data import MemoryData
from .models import (
    BaseLocation,
    ClusterDraft,
    DayContext,
    DaySummary,
    DominantStaypoint,
    GeoLocation,
    GeoPoint,
    HomeCenter,
    HomeDescriptor,
    MediaAsset,
    Poi,
    SelectionResult,
    Staypoint,
)

__all__ = [
    "BaseLocation",
    "ClusterDraft",
    "DayContext",
    "DaySummary",
    "DominantStaypoint",
    "GeoLocation",
    "GeoPoint",
    "HomeCenter",
    "HomeDescriptor",
    "MediaAsset",
    "MemoryData",
    "Poi",
    "SelectionResult",
    "Staypoint",
    "codebook",
    "models",
]
