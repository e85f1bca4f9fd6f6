"""Scene buckets and orientation of media items.

Buckets are derived from scene tags, the draft's POI parameters and the
capture hour, in this order of precedence:

1. panorama
2. person group (three or more faces)
3. food (POI or scene tags)
4. landmark (POI), unless the shot is a night scene
5. night (scene tags or captured between 21:00 and 05:59)
6. landmark (scene tags or POI label)
7. indoor (scene tags or food POI)
8. outdoor
"""

from collections.abc import Iterable, Mapping
from typing import Any

from memory_canon.codebook import (
    PORTRAIT_EXIF_ORIENTATIONS,
    OrientationType,
    SceneBucket,
)
from memory_canon.models import MediaAsset

GROUP_FACE_COUNT = 3
NIGHT_START_HOUR = 21
NIGHT_END_HOUR = 5

FOOD_TAGS = (
    "food",
    "meal",
    "cuisine",
    "dish",
    "dining",
    "restaurant",
    "kitchen",
    "coffee",
    "drink",
    "dessert",
    "breakfast",
    "lunch",
    "dinner",
    "brunch",
)
LANDMARK_TAGS = (
    "landmark",
    "monument",
    "castle",
    "temple",
    "bridge",
    "tower",
    "cathedral",
    "church",
    "palace",
    "statue",
    "architecture",
    "skyline",
    "historic",
    "museum",
)
LANDMARK_LABELS = (
    "museum",
    "park",
    "castle",
    "cathedral",
    "temple",
    "monument",
    "bridge",
    "square",
    "tower",
    "palace",
)
NIGHT_TAGS = ("night", "evening", "dusk", "aurora", "milky way", "city lights")
INDOOR_TAGS = (
    "indoor",
    "interior",
    "room",
    "kitchen",
    "living room",
    "office",
    "restaurant",
    "cafe",
    "bar",
    "museum",
    "library",
    "store",
    "shop",
    "gallery",
    "hall",
)

FOOD_POI_VALUES = {
    "amenity": {"restaurant", "cafe", "bar", "food_court", "fast_food"},
    "shop": {"bakery", "confectionery"},
}
FOOD_POI_LABELS = (
    "restaurant",
    "café",
    "cafe",
    "diner",
    "kitchen",
    "bistro",
    "bar",
    "coffee",
)
LANDMARK_POI_VALUES = {
    "tourism": {"attraction", "viewpoint", "museum", "gallery", "theme_park"},
    "historic": {"castle", "monument", "ruins", "memorial", "church"},
}
LANDMARK_POI_LABELS = (
    "museum",
    "monument",
    "castle",
    "cathedral",
    "temple",
    "bridge",
    "tower",
    "palace",
    "square",
)


def _has_tag(media: MediaAsset, keywords: Iterable[str]) -> bool:
    tags = [tag.lower() for tag in media.scene_tags if tag]
    return any(keyword in tag for tag in tags for keyword in keywords)


def _label_contains(label: str | None, keywords: Iterable[str]) -> bool:
    if not label:
        return False
    needle = label.lower()
    return any(keyword in needle for keyword in keywords)


def poi_bucket(params: Mapping[str, Any]) -> SceneBucket | None:
    """Food or landmark bucket implied by the draft's POI parameters."""
    key = str(params.get("poi_category_key") or "").lower()
    value = str(params.get("poi_category_value") or "").lower()
    label = params.get("poi_label")
    tags = params.get("poi_tags") or {}

    if (
        value in FOOD_POI_VALUES.get(key, set())
        or "cuisine" in tags
        or _label_contains(label, FOOD_POI_LABELS)
    ):
        return SceneBucket.FOOD
    if (
        value in LANDMARK_POI_VALUES.get(key, set())
        or "historic" in tags
        or "wikidata" in tags
        or _label_contains(label, LANDMARK_POI_LABELS)
    ):
        return SceneBucket.LANDMARK
    return None


def is_night_scene(media: MediaAsset) -> bool:
    """Night tags, or a capture hour between 21:00 and 05:59."""
    if _has_tag(media, NIGHT_TAGS):
        return True
    moment = media.captured_at
    if moment is None:
        return False
    return moment.hour >= NIGHT_START_HOUR or moment.hour <= NIGHT_END_HOUR


def derive_scene_bucket(
    media: MediaAsset, params: Mapping[str, Any] | None = None
) -> SceneBucket:
    """Assign ``media`` to exactly one scene bucket."""
    params = params or {}
    if media.is_panorama:
        return SceneBucket.PANORAMA
    if media.faces_count >= GROUP_FACE_COUNT:
        return SceneBucket.PERSON_GROUP

    from_poi = poi_bucket(params)
    night = is_night_scene(media)

    if from_poi == SceneBucket.FOOD or _has_tag(media, FOOD_TAGS):
        return SceneBucket.FOOD
    if from_poi == SceneBucket.LANDMARK and not night:
        return SceneBucket.LANDMARK
    if night:
        return SceneBucket.NIGHT
    if _has_tag(media, LANDMARK_TAGS) or _label_contains(
        params.get("poi_label"), LANDMARK_LABELS
    ):
        return SceneBucket.LANDMARK
    if _has_tag(media, INDOOR_TAGS):
        return SceneBucket.INDOOR
    return SceneBucket.OUTDOOR


def orientation_type(media: MediaAsset) -> OrientationType:
    """Portrait for EXIF orientations that rotate by 90 degrees."""
    if media.orientation in PORTRAIT_EXIF_ORIENTATIONS:
        return OrientationType.PORTRAIT
    return OrientationType.LANDSCAPE
