"""Tests for the filter stages of the staged selection pipeline."""

import pytest

from memory_canon.codebook import RejectionReason
from processing.steps.selection import SelectionPolicy, SelectionTelemetry
from processing.steps.selection.stages import (
    DayQuotaStage,
    OrientationBalanceStage,
    PeopleBalanceStage,
    PhashDiversityStage,
    SceneDiversityStage,
    StaypointQuotaStage,
    TimeGapStage,
    TimeSlotStage,
)
from processing.steps.selection.stages.phash_diversity import adaptive_threshold
from processing.steps.selection.stages.scene_diversity import bucket_ratios
from tests.fixtures import create_candidate, day_key


@pytest.fixture
def telemetry():
    """Fresh rejection counters."""
    return SelectionTelemetry()


def ids(candidates):
    """Media ids of a candidate list."""
    return [c.id for c in candidates]


class TestSelectionTelemetry:
    """Tests for the rejection counters."""

    def test_reports_every_reason(self, telemetry):
        """Should list every reason with a zero count."""
        counts = telemetry.reason_counts()
        assert set(counts) == {reason.value for reason in RejectionReason}
        assert telemetry.total == 0

    def test_increment(self, telemetry):
        """Should count by enum or by value."""
        telemetry.increment(RejectionReason.PHASH)
        telemetry.increment("phash_similarity", 2)
        assert telemetry.count(RejectionReason.PHASH) == 3
        assert telemetry.total == 3

    def test_unknown_reason(self, telemetry):
        """Should reject an unknown reason."""
        with pytest.raises(ValueError, match="not_a_reason"):
            telemetry.increment("not_a_reason")


class TestDayQuotaStage:
    """Tests for DayQuotaStage."""

    def test_quota(self, telemetry):
        """Should keep at most the quota per day."""
        candidates = [create_candidate(i, hour=8 + i) for i in range(1, 4)]
        policy = SelectionPolicy(day_quotas={day_key(2): 2})

        kept = DayQuotaStage().apply(candidates, policy, telemetry)

        assert ids(kept) == [1, 2]
        assert telemetry.count(RejectionReason.DAY_QUOTA) == 1

    def test_without_quotas(self, telemetry):
        """Should pass everything without quotas."""
        candidates = [create_candidate(i, hour=8 + i) for i in range(1, 4)]
        kept = DayQuotaStage().apply(candidates, SelectionPolicy(), telemetry)
        assert ids(kept) == [1, 2, 3]

    def test_swaps_repeated_people(self, telemetry):
        """Should swap in a later shot of someone else after two repeats."""
        candidates = [
            create_candidate(1, hour=9, persons=(1,)),
            create_candidate(2, hour=10, persons=(1,)),
            create_candidate(3, hour=11, persons=(1,)),
            create_candidate(4, hour=12, persons=(2,)),
        ]
        policy = SelectionPolicy(day_quotas={day_key(2): 3})

        kept = DayQuotaStage().apply(candidates, policy, telemetry)

        assert ids(kept) == [1, 2, 4]
        assert ids(candidates) == [1, 2, 3, 4]


class TestTimeGapStage:
    """Tests for TimeGapStage."""

    def test_minimum_gap(self, telemetry):
        """Should drop candidates closer than the minimum spacing."""
        candidates = [
            create_candidate(1, hour=9),
            create_candidate(2, hour=9, minute=10),
            create_candidate(3, hour=9, minute=30),
        ]
        kept = TimeGapStage().apply(candidates, SelectionPolicy(), telemetry)

        assert ids(kept) == [1, 3]
        assert telemetry.count(RejectionReason.TIME_GAP) == 1

    def test_slot_cap(self, telemetry):
        """Should keep at most the slot cap per day and slot."""
        candidates = [
            create_candidate(i, hour=9, minute=10 * i, slot=3)
            for i in range(1, 4)
        ]
        policy = SelectionPolicy(min_spacing_seconds=0)

        kept = TimeGapStage().apply(candidates, policy, telemetry)

        assert ids(kept) == [1, 2]
        assert telemetry.count(RejectionReason.TIME_GAP) == 1


class TestStaypointQuotaStage:
    """Tests for StaypointQuotaStage."""

    def test_cap(self, telemetry):
        """Should cap candidates sharing a staypoint."""
        candidates = [
            create_candidate(i, hour=8 + i, staypoint_key="1")
            for i in range(1, 4)
        ]
        candidates.append(create_candidate(4, hour=13))

        kept = StaypointQuotaStage().apply(
            candidates, SelectionPolicy(), telemetry
        )

        assert ids(kept) == [1, 2, 4]
        assert telemetry.count(RejectionReason.STAYPOINT) == 1

    def test_without_cap(self, telemetry):
        """Should pass everything when the cap is lifted."""
        candidates = [
            create_candidate(i, hour=8 + i, staypoint_key="1")
            for i in range(1, 4)
        ]
        policy = SelectionPolicy().without_caps()
        kept = StaypointQuotaStage().apply(candidates, policy, telemetry)
        assert len(kept) == 3


class TestPhashDiversityStage:
    """Tests for PhashDiversityStage."""

    @pytest.fixture
    def hashed(self):
        """Two near identical hashes and a very different one."""
        return [
            create_candidate(1, hour=9, phash="ffff"),
            create_candidate(2, hour=10, phash="fffe"),
            create_candidate(3, hour=11, phash="0000"),
        ]

    def test_adaptive_threshold(self, hashed):
        """Should pick the pair distance at the percentile."""
        assert adaptive_threshold(hashed, 1.0) == 16
        assert adaptive_threshold(hashed, 0.35) == 1
        assert adaptive_threshold(hashed, 0.0) is None

    def test_drops_near_duplicate(self, hashed, telemetry):
        """Should drop the near duplicate at the policy threshold."""
        policy = SelectionPolicy(phash_percentile=1.0)
        kept = PhashDiversityStage().apply(hashed, policy, telemetry)

        assert ids(kept) == [1, 3]
        assert telemetry.count(RejectionReason.PHASH) == 1

    def test_adaptive_threshold_lowers_cutoff(self, hashed, telemetry):
        """Should keep all when the percentile distance is tiny."""
        kept = PhashDiversityStage().apply(hashed, SelectionPolicy(), telemetry)
        assert ids(kept) == [1, 2, 3]

    def test_disabled(self, hashed, telemetry):
        """Should pass everything with a zero threshold."""
        policy = SelectionPolicy(phash_min_hamming=0)
        kept = PhashDiversityStage().apply(hashed, policy, telemetry)
        assert len(kept) == 3


class TestTimeSlotStage:
    """Tests for TimeSlotStage."""

    def test_progress_spacing(self, telemetry):
        """Should demand extra spacing early in the selection."""
        candidates = [
            create_candidate(1, hour=9),
            create_candidate(2, hour=9, minute=25),
            create_candidate(3, hour=9, minute=34),
        ]
        kept = TimeSlotStage().apply(candidates, SelectionPolicy(), telemetry)

        assert ids(kept) == [1, 3]
        assert telemetry.count(RejectionReason.TIME_SLOT) == 1

    def test_long_day_spacing(self, telemetry):
        """Should split a long day by its quota."""
        candidates = [
            create_candidate(1, hour=9, day_duration=36000),
            create_candidate(2, hour=9, minute=40, day_duration=36000),
            create_candidate(3, hour=10, minute=40, day_duration=36000),
        ]
        kept = TimeSlotStage().apply(candidates, SelectionPolicy(), telemetry)
        assert ids(kept) == [1, 3]

    def test_slot_cap(self, telemetry):
        """Should keep two members per slot."""
        candidates = [
            create_candidate(i, hour=9, minute=i, slot=3) for i in range(1, 4)
        ]
        policy = SelectionPolicy(min_spacing_seconds=0)

        kept = TimeSlotStage().apply(candidates, policy, telemetry)
        assert ids(kept) == [1, 2]

    def test_days_are_independent(self, telemetry):
        """Should only compare with the last member of the same day."""
        candidates = [
            create_candidate(1, day=2, hour=9),
            create_candidate(2, day=3, hour=9),
        ]
        kept = TimeSlotStage().apply(candidates, SelectionPolicy(), telemetry)
        assert ids(kept) == [1, 2]


class TestSceneDiversityStage:
    """Tests for SceneDiversityStage."""

    def test_bucket_ratios(self):
        """Should restore defaults and keep extra positive buckets."""
        ratios = bucket_ratios({"night": 0.0, "custom": 1.0})

        assert ratios["custom"] == pytest.approx(0.5)
        assert ratios["night"] == pytest.approx(0.05)
        assert sum(ratios.values()) == pytest.approx(1.0)

    def test_rare_bucket_capped(self, telemetry):
        """Should keep one panorama among few members."""
        candidates = [
            create_candidate(i, hour=8 + i, bucket="panorama")
            for i in range(1, 4)
        ]
        kept = SceneDiversityStage().apply(
            candidates, SelectionPolicy(), telemetry
        )

        assert ids(kept) == [1]
        assert telemetry.count(RejectionReason.SCENE) == 2

    def test_without_bucket(self, telemetry):
        """Should pass candidates without a bucket."""
        candidates = [create_candidate(i, hour=8 + i) for i in range(1, 4)]
        kept = SceneDiversityStage().apply(
            candidates, SelectionPolicy(), telemetry
        )
        assert len(kept) == 3


class TestOrientationBalanceStage:
    """Tests for OrientationBalanceStage."""

    def test_share(self, telemetry):
        """Should cap one orientation at its share."""
        candidates = [
            create_candidate(i, hour=8 + i, orientation="landscape")
            for i in range(1, 5)
        ]
        kept = OrientationBalanceStage().apply(
            candidates, SelectionPolicy(), telemetry
        )

        assert ids(kept) == [1, 2]
        assert telemetry.count(RejectionReason.ORIENTATION) == 2

    def test_mixed(self, telemetry):
        """Should accept alternating orientations."""
        candidates = [
            create_candidate(
                i,
                hour=8 + i,
                orientation="portrait" if i % 2 else "landscape",
            )
            for i in range(1, 5)
        ]
        kept = OrientationBalanceStage().apply(
            candidates, SelectionPolicy(), telemetry
        )
        assert len(kept) == 4


class TestPeopleBalanceStage:
    """Tests for PeopleBalanceStage."""

    @pytest.fixture
    def same_person(self):
        """Three shots of the same person."""
        return [
            create_candidate(i, hour=8 + i, persons=(7,)) for i in range(1, 4)
        ]

    def test_share(self, same_person, telemetry):
        """Should keep one person within the share limit."""
        kept = PeopleBalanceStage().apply(
            same_person, SelectionPolicy(), telemetry
        )

        assert ids(kept) == [1]
        assert telemetry.count(RejectionReason.PEOPLE) == 2

    @pytest.mark.parametrize(
        "stage",
        [
            PeopleBalanceStage(important_person_ids=[7]),
            PeopleBalanceStage(fallback_person_ids=[7]),
        ],
    )
    def test_exempt_persons(self, stage, same_person, telemetry):
        """Should let important and fallback persons pass."""
        kept = stage.apply(same_person, SelectionPolicy(), telemetry)
        assert len(kept) == 3

    def test_group_shots(self, telemetry):
        """Should let group shots pass."""
        candidates = [
            create_candidate(i, hour=8 + i, persons=(7,), faces_count=3)
            for i in range(1, 4)
        ]
        kept = PeopleBalanceStage().apply(
            candidates, SelectionPolicy(), telemetry
        )
        assert len(kept) == 3
