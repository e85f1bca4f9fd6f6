"""Tests for away run detection and the transfer day extender."""

import pytest

from processing.steps.day_summary import DaySummaryPipeline
from processing.steps.runs import (
    RunDetector,
    TransportDayExtender,
    are_sequential_days,
    detect_vacation_runs,
    is_transit_heavy,
)
from tests.fixtures import (
    create_away_summary,
    create_day_summary,
    create_home,
    create_media,
    create_staypoint,
    create_trip_scenario,
    day_key,
    summaries_by_date,
)


def home_day(day: int, start_id: int):
    """Day spent at home with a dominant home staypoint."""
    return create_away_summary(day, coords="home", start_id=start_id)


class TestSequentialDays:
    """Tests for are_sequential_days."""

    @pytest.fixture
    def days(self):
        """Four days where the second and third are synthetic."""
        return summaries_by_date(
            create_day_summary(0),
            create_day_summary(1, is_synthetic=True),
            create_day_summary(2, is_synthetic=True),
            create_day_summary(3),
            create_day_summary(5),
        )

    def test_consecutive(self, days):
        """Should accept consecutive dates."""
        assert are_sequential_days(day_key(0), day_key(1), days)

    def test_synthetic_gap(self, days):
        """Should accept synthetic days in between."""
        assert are_sequential_days(day_key(0), day_key(3), days)

    def test_missing_or_real_day_between(self, days):
        """Should reject a real or a missing day in between."""
        assert not are_sequential_days(day_key(3), day_key(5), days)
        assert not are_sequential_days(day_key(0), day_key(5), days)

    def test_reverse_order(self, days):
        """Should reject keys in reverse order."""
        assert not are_sequential_days(day_key(3), day_key(0), days)


class TestTransitHeavy:
    """Tests for is_transit_heavy."""

    @pytest.mark.parametrize(
        ("overrides", "expected"),
        [
            ({}, False),
            ({"transit_ratio": 0.7}, True),
            ({"avg_speed_kmh": 95.0}, True),
            ({"max_speed_kmh": 120.0}, True),
            ({"has_high_speed_transit": True}, True),
            ({"transit_ratio": 0.5, "max_speed_kmh": 60.0}, False),
        ],
    )
    def test_thresholds(self, overrides, expected):
        """Should flag days by transit ratio, speed or the high speed flag."""
        summary = create_day_summary(0, **overrides)
        assert is_transit_heavy(summary, 0.6, 90.0) is expected


class TestTransportDayExtender:
    """Tests for extending runs by transfer days."""

    def test_airport_day_prepended(self):
        """Should add a preceding day with an airport POI."""
        days = summaries_by_date(
            create_day_summary(1, photo_count=6, has_airport_poi=True),
            create_away_summary(2, start_id=1),
            create_away_summary(3, start_id=10),
        )
        run = [day_key(2), day_key(3)]
        assert TransportDayExtender().extend(run, days) == [
            day_key(1),
            day_key(2),
            day_key(3),
        ]

    def test_lean_day_next_to_transit_anchor(self):
        """Should add a lean day after a transit heavy run end."""
        days = summaries_by_date(
            create_away_summary(2, start_id=1),
            create_away_summary(3, start_id=10, transit_ratio=0.8),
            create_day_summary(4, photo_count=1),
        )
        extended = TransportDayExtender().extend(
            [day_key(2), day_key(3)], days
        )
        assert extended[-1] == day_key(4)

    def test_lean_day_without_transit_anchor(self):
        """Should leave the run alone when the anchor did not travel."""
        days = summaries_by_date(
            create_away_summary(2, start_id=1),
            create_away_summary(3, start_id=10),
            create_day_summary(4, photo_count=1),
        )
        run = [day_key(2), day_key(3)]
        assert TransportDayExtender().extend(run, days) == run

    def test_empty_run(self):
        """Should return an empty run unchanged."""
        assert TransportDayExtender().extend([], {}) == []


class TestRunDetector:
    """Tests for the run detector on direct and pipeline summaries."""

    def test_trip_scenario(self):
        """Should detect the four trip days as one run."""
        media, home = create_trip_scenario()
        days = DaySummaryPipeline().run(media, home)

        assert detect_vacation_runs(days, home) == [
            [day_key(2), day_key(3), day_key(4), day_key(5)]
        ]

    def test_synthetic_gap_splits_run(self):
        """Should end a run at a photo-less day that is not away."""
        media, home = create_trip_scenario(gap_days=(2,))
        days = DaySummaryPipeline().run(media, home)

        assert RunDetector().detect(days, home) == [
            [day_key(2), day_key(3)],
            [day_key(5)],
        ]

    def test_synthetic_day_between_trips(self):
        """Should keep two trips apart across a demoted synthetic day."""
        days = summaries_by_date(
            home_day(0, 1),
            create_away_summary(1, start_id=10),
            create_day_summary(2, is_synthetic=True, base_away=True),
            create_away_summary(3, start_id=40),
            home_day(4, 50),
        )
        assert RunDetector().detect(days, create_home()) == [
            [day_key(1)],
            [day_key(3)],
        ]

    def test_no_trip(self):
        """Should detect nothing when every day is spent at home."""
        media, home = create_trip_scenario(away_days=0)
        days = DaySummaryPipeline().run(media, home)
        assert RunDetector().detect(days, home) == []

    def test_empty_input(self):
        """Should return no runs for no days."""
        assert RunDetector().detect({}, create_home()) == []

    def test_transit_streak_promoted(self):
        """Should promote two transit heavy days in a row."""
        days = summaries_by_date(
            home_day(0, 1),
            create_day_summary(1, photo_count=2, transit_ratio=0.8),
            create_day_summary(2, photo_count=2, transit_ratio=0.8),
            home_day(3, 20),
        )
        assert RunDetector().detect(days, create_home()) == [
            [day_key(1), day_key(2)]
        ]

    def test_single_transit_day_ignored(self):
        """Should not promote a lone transit heavy day between home days."""
        days = summaries_by_date(
            home_day(0, 1),
            create_day_summary(1, photo_count=2, transit_ratio=0.8),
            home_day(2, 20),
        )
        assert RunDetector().detect(days, create_home()) == []

    def test_low_sample_day_bridged(self):
        """Should bridge a sparse day with evidence between away days."""
        sparse = create_day_summary(
            2,
            members=[create_media(30), create_media(31)],
            staypoints=[create_staypoint(2, "trip", 9, 12)],
        )
        days = summaries_by_date(
            home_day(0, 1),
            create_away_summary(1, start_id=10),
            sparse,
            create_away_summary(3, start_id=40),
            home_day(4, 50),
        )
        assert RunDetector().detect(days, create_home()) == [
            [day_key(1), day_key(2), day_key(3)]
        ]

    def test_busy_day_splits_runs(self):
        """Should not bridge a day with enough photos and no away signal."""
        busy = create_day_summary(
            2,
            photo_count=6,
            staypoints=[create_staypoint(2, "trip", 9, 12)],
        )
        days = summaries_by_date(
            home_day(0, 1),
            create_away_summary(1, start_id=10),
            busy,
            create_away_summary(3, start_id=40),
            home_day(4, 50),
        )
        assert RunDetector().detect(days, create_home()) == [
            [day_key(1)],
            [day_key(3)],
        ]

    def test_home_dominant_day_demoted(self):
        """Should drop a flagged day whose main stay is at home."""
        days = summaries_by_date(
            home_day(0, 1),
            create_away_summary(1, coords="home", start_id=10, base_away=True),
            home_day(2, 20),
        )
        assert RunDetector().detect(days, create_home()) == []

    def test_long_run(self):
        """Should keep a run of more than ten away days intact."""
        summaries = [home_day(0, 1)]
        summaries += [
            create_away_summary(day, start_id=10 * day) for day in range(1, 12)
        ]
        summaries.append(home_day(12, 200))
        days = summaries_by_date(*summaries)

        runs = RunDetector().detect(days, create_home())
        assert runs == [[day_key(day) for day in range(1, 12)]]
