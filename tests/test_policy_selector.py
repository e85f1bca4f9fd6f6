"""Tests for the policy driven member selector and scene derivation."""

import pytest
from pydantic import ValidationError

from memory_canon.codebook import DayCategory, OrientationType, SceneBucket
from memory_canon.models import DayContext
from processing.steps.selection import (
    PolicyDrivenMemberSelector,
    SelectionPolicy,
    default_policy_selector,
)
from processing.steps.selection.policy_selector import relaxation_attempts
from processing.steps.selection.scenes import (
    derive_scene_bucket,
    orientation_type,
)
from processing.steps.selection.stages import TimeGapStage
from tests.fixtures import capture_time, create_media, day_key


def shot(media_id: int, day: int, hour: int, minute: int = 0, **overrides):
    """Media item captured on ``day`` at ``hour:minute``."""
    return create_media(
        media_id, taken_at=capture_time(day, hour, minute), **overrides
    )


class TestSelectorSetup:
    """Tests for selector construction and policy validation."""

    def test_requires_hard_stage(self):
        """Should refuse a selector without hard stages."""
        with pytest.raises(ValueError, match="hard selection stage"):
            PolicyDrivenMemberSelector(hard_stages=[])

    def test_minimum_above_target(self):
        """Should reject a minimum above the target."""
        with pytest.raises(ValidationError, match="minimum_total"):
            SelectionPolicy(target_total=4, minimum_total=5)

    def test_day_quotas(self):
        """Should give core days one more member than peripheral days."""
        contexts = {
            day_key(2): DayContext(category=DayCategory.CORE),
            day_key(3): DayContext(category=DayCategory.CORE),
            day_key(4): DayContext(),
            day_key(5): DayContext(),
        }
        policy = SelectionPolicy().with_day_context(contexts)

        assert policy.day_quotas == {
            day_key(2): 6,
            day_key(3): 6,
            day_key(4): 5,
            day_key(5): 5,
        }
        assert "day_context" not in policy.snapshot()

    def test_relaxation_attempts(self):
        """Should relax spacing, hash, staypoint cap and then all caps."""
        policy = SelectionPolicy()
        attempts = relaxation_attempts(policy)

        assert len(attempts) == 5
        assert attempts[0](policy) == policy
        assert attempts[1](policy).min_spacing_seconds == 720
        assert attempts[2](policy).phash_min_hamming == 8
        assert attempts[3](policy).max_per_staypoint == 3
        assert attempts[4](policy).max_per_day is None

    def test_no_staypoint_relaxation_without_headroom(self):
        """Should skip the staypoint step when the relaxed cap is no larger."""
        policy = SelectionPolicy(relaxed_max_per_staypoint=2)
        assert len(relaxation_attempts(policy)) == 4


class TestBuildCandidates:
    """Tests for candidate scoring and filtering."""

    @pytest.fixture
    def selector(self):
        """Selector with the standard stages."""
        return default_policy_selector()

    def test_drops(self, selector):
        """Should count every reason a media item is not eligible."""
        media = [
            shot(1, 2, 9, no_show=True),
            shot(2, 2, 10, low_quality=True),
            shot(3, 2, 11, quality_score=0.2),
            create_media(4, taken_at=None),
            shot(5, 2, 12, burst_uuid="b1", quality_score=0.7),
            shot(6, 2, 12, 1, burst_uuid="b1", quality_score=0.9),
            shot(7, 2, 15),
        ]
        candidates, drops = selector.build_candidates(media, SelectionPolicy())

        assert drops == {
            "no_show": 2,
            "quality": 1,
            "no_timestamp": 1,
            "burst": 1,
        }
        assert [c.id for c in candidates] == [6, 7]

    def test_scores(self, selector):
        """Should add video and face bonuses and a selfie penalty."""
        media = [
            shot(1, 2, 9),
            shot(2, 2, 10, is_video=True),
            shot(3, 2, 11, has_faces=True, person_ids=[1]),
            shot(4, 2, 12, has_faces=True, person_ids=[2, 3]),
        ]
        candidates, _ = selector.build_candidates(media, SelectionPolicy())
        scores = {c.id: c.score for c in candidates}

        assert scores[1] == pytest.approx(0.8)
        assert scores[2] == pytest.approx(0.88)
        assert scores[3] == pytest.approx(0.87)
        assert scores[4] == pytest.approx(0.92)
        assert [c.id for c in candidates] == [4, 2, 3, 1]

    def test_cohort_penalty(self, selector):
        """Should penalize people already seen earlier in the list."""
        media = [
            shot(1, 2, 9, person_ids=[5]),
            shot(2, 2, 10, person_ids=[5]),
        ]
        candidates, _ = selector.build_candidates(media, SelectionPolicy())
        by_id = {c.id: c for c in candidates}

        assert by_id[1].extras["cohort_penalty"] == 0.0
        assert by_id[2].extras["cohort_penalty"] == pytest.approx(0.05)
        assert by_id[2].score == pytest.approx(0.75)

    def test_staypoints(self, selector):
        """Should number positions merged within the merge distance."""
        media = [
            shot(1, 2, 9, coords=(48.137, 11.575)),
            shot(2, 2, 10, coords=(48.1375, 11.575)),
            shot(3, 2, 11, coords="trip_lake"),
            shot(4, 2, 12),
        ]
        candidates, _ = selector.build_candidates(media, SelectionPolicy())
        keys = {c.id: c.staypoint_key for c in candidates}

        assert keys == {1: "1", 2: "1", 3: "2", 4: None}

    def test_slots_and_days(self, selector):
        """Should key candidates by UTC date and three hour slot."""
        candidates, _ = selector.build_candidates(
            [shot(1, 3, 14)], SelectionPolicy()
        )
        assert candidates[0].day == day_key(3)
        assert candidates[0].slot == 4


class TestPolicyDrivenMemberSelector:
    """Tests for the full selection with relaxation and padding."""

    @pytest.fixture
    def selector(self):
        """Selector with the standard stages."""
        return default_policy_selector()

    def test_balanced_selection(self, selector):
        """Should keep four diverse media ordered by time."""
        # (id, day, hour, quality, EXIF orientation, scene tags)
        rows = [
            (4, 3, 12, 0.75, 6, []),
            (3, 3, 9, 0.8, 1, ["room"]),
            (2, 2, 12, 0.85, 6, ["tower"]),
            (1, 2, 9, 0.9, 1, ["food"]),
        ]
        media = [
            shot(
                media_id,
                day,
                hour,
                quality_score=quality,
                orientation=orientation,
                scene_tags=tags,
                is_panorama=media_id == 4,
            )
            for media_id, day, hour, quality, orientation, tags in rows
        ]
        policy = SelectionPolicy(target_total=4, minimum_total=2)

        result = selector.select(media, policy)
        telemetry = result.telemetry

        assert result.member_ids == [1, 2, 3, 4]
        assert telemetry["counts"] == {
            "considered": 4,
            "eligible": 4,
            "selected": 4,
        }
        assert telemetry["distribution"]["per_day"] == {
            day_key(2): 2,
            day_key(3): 2,
        }
        assert telemetry["distribution"]["per_bucket"] == {
            "food": 1,
            "landmark": 1,
            "indoor": 1,
            "panorama": 1,
        }
        assert telemetry["stages"]["hard"] == [
            "day_quota",
            "time_gap",
            "staypoint",
            "phash_similarity",
        ]
        assert "relaxations" not in telemetry
        assert "padding" not in telemetry
        assert telemetry["metrics"]["time_gaps"] == [10800, 75600, 10800]

    def test_relaxation_and_padding(self, selector):
        """Should relax step by step, then pad up to the minimum."""
        media = [
            shot(1, 2, 9, quality_score=0.9),
            shot(2, 2, 9, 5, quality_score=0.85),
            shot(3, 2, 9, 10, quality_score=0.8),
        ]
        policy = SelectionPolicy(target_total=4, minimum_total=2)

        result = selector.select(media, policy)
        telemetry = result.telemetry

        assert result.member_ids == [1, 2]
        assert len(telemetry["relaxations"]) == 4
        relaxed = telemetry["relaxations"][1]["policy"]
        assert relaxed["min_spacing_seconds"] == 720
        assert telemetry["padding"] == {"added": 1, "eligible_pool": 3}
        assert telemetry["counts"]["padded"] == 1
        assert telemetry["counts"]["selected"] == 2
        assert telemetry["rejections"]["time_gap"] == 2

    @pytest.mark.parametrize(
        ("coords", "caps"),
        [
            (None, {"max_per_day": 1}),
            ("trip", {"max_per_staypoint": 1}),
        ],
    )
    def test_padding_respects_caps(self, selector, coords, caps):
        """Should not pad a day or staypoint beyond its cap."""
        media = [
            shot(1, 2, 9, coords=coords, quality_score=0.9),
            shot(2, 2, 9, 5, coords=coords, quality_score=0.85),
        ]
        policy = SelectionPolicy(target_total=2, minimum_total=2, **caps)

        result = selector.select(media, policy)

        assert result.member_ids == [1]
        assert "padding" not in result.telemetry
        assert result.telemetry["counts"]["selected"] == 1

    def test_nothing_eligible(self, selector):
        """Should return no members with the drop counts."""
        media = [shot(1, 2, 9, no_show=True)]
        result = selector.select(media, SelectionPolicy())

        assert result.members == []
        assert result.telemetry["rejections"]["no_show"] == 1
        assert result.telemetry["counts"]["selected"] == 0
        assert "metrics" not in result.telemetry

    def test_custom_stages(self):
        """Should run only the configured stages."""
        selector = PolicyDrivenMemberSelector(hard_stages=[TimeGapStage()])
        media = [shot(i, 2, 9 + i) for i in range(1, 4)]
        policy = SelectionPolicy(target_total=2, minimum_total=1)

        result = selector.select(media, policy)

        assert len(result.members) == 2
        assert result.telemetry["stages"] == {"hard": ["time_gap"], "soft": []}


class TestSceneBucket:
    """Tests for derive_scene_bucket and orientation_type."""

    MUSEUM = {"poi_category_key": "tourism", "poi_category_value": "museum"}

    @pytest.mark.parametrize(
        ("overrides", "params", "expected"),
        [
            ({"is_panorama": True, "faces_count": 4}, {}, SceneBucket.PANORAMA),
            ({"faces_count": 3}, {}, SceneBucket.PERSON_GROUP),
            ({"scene_tags": ["Food"]}, {}, SceneBucket.FOOD),
            ({}, {"poi_label": "Café Central"}, SceneBucket.FOOD),
            ({}, MUSEUM, SceneBucket.LANDMARK),
            ({"scene_tags": ["night"]}, {}, SceneBucket.NIGHT),
            ({"scene_tags": ["castle"]}, {}, SceneBucket.LANDMARK),
            ({"scene_tags": ["living room"]}, {}, SceneBucket.INDOOR),
            ({"scene_tags": ["beach"]}, {}, SceneBucket.OUTDOOR),
        ],
    )
    def test_bucket(self, overrides, params, expected):
        """Should assign the bucket by precedence."""
        media = shot(1, 2, 12, **overrides)
        assert derive_scene_bucket(media, params) == expected

    def test_landmark_poi_at_night(self):
        """Should prefer the night bucket over a landmark POI late at night."""
        media = shot(1, 2, 22)
        assert derive_scene_bucket(media, self.MUSEUM) == SceneBucket.NIGHT

    @pytest.mark.parametrize(
        ("orientation", "expected"),
        [
            (6, OrientationType.PORTRAIT),
            (1, OrientationType.LANDSCAPE),
            (None, OrientationType.LANDSCAPE),
        ],
    )
    def test_orientation(self, orientation, expected):
        """Should treat rotated EXIF orientations as portrait."""
        media = shot(1, 2, 12, orientation=orientation)
        assert orientation_type(media) == expected
