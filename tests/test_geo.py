"""Tests for geo helpers, spatial clustering and staypoint detection."""

import pytest

from processing.clustering import (
    StaypointDetector,
    StaypointDetectorConfig,
    cluster_media,
    detect_staypoints,
)
from processing.utils.geo import (
    centroid,
    haversine_distance_km,
    haversine_distance_m,
    leg_frame,
    sort_by_time,
)
from tests.fixtures import (
    DEFAULT_COORDS,
    capture_time,
    create_media,
    create_stay_day,
)


class TestHaversine:
    """Tests for the great-circle distance helpers."""

    def test_berlin_to_munich(self):
        """Should measure roughly 504 km between Berlin and Munich."""
        distance = haversine_distance_km(
            *DEFAULT_COORDS["home"], *DEFAULT_COORDS["trip"]
        )
        assert 500 < distance < 510

    def test_identical_points(self):
        """Should return zero for identical coordinates."""
        assert haversine_distance_m(52.52, 13.405, 52.52, 13.405) == 0.0

    def test_symmetric(self):
        """Should not depend on the argument order."""
        a = haversine_distance_km(*DEFAULT_COORDS["home"], 48.0, 11.0)
        b = haversine_distance_km(48.0, 11.0, *DEFAULT_COORDS["home"])
        assert a == pytest.approx(b)


class TestCentroid:
    """Tests for centroid."""

    def test_ignores_media_without_gps(self):
        """Should average only the GPS-tagged media."""
        media = [
            create_media(1, coords=(10.0, 20.0)),
            create_media(2, coords=(20.0, 40.0)),
            create_media(3),
        ]
        point = centroid(media)
        assert point.lat == pytest.approx(15.0)
        assert point.lon == pytest.approx(30.0)

    def test_empty_input(self):
        """Should return the origin without any GPS media."""
        point = centroid([create_media(1)])
        assert (point.lat, point.lon) == (0.0, 0.0)


class TestLegFrame:
    """Tests for sort_by_time and leg_frame."""

    def test_sort_drops_media_without_time(self):
        """Should order by capture time and skip untimed media."""
        late = create_media(1, taken_at=capture_time(0, 15))
        early = create_media(2, taken_at=capture_time(0, 9))
        untimed = create_media(3, taken_at=None)
        assert [m.id for m in sort_by_time([late, untimed, early])] == [2, 1]

    def test_legs_between_consecutive_points(self):
        """Should produce one leg per consecutive pair."""
        media = [
            create_media(1, capture_time(0, 9), coords="home"),
            create_media(2, capture_time(0, 11), coords="hamburg"),
            create_media(3, capture_time(0, 12), coords="hamburg"),
        ]
        legs = leg_frame(media)

        assert legs.height == 2
        assert legs["leg_seconds"].to_list() == [7200, 3600]
        assert 250 < legs["leg_km"][0] < 260
        assert legs["leg_km"][1] == pytest.approx(0.0)


class TestClusterMedia:
    """Tests for the DBSCAN clustering of media."""

    @pytest.fixture
    def spread_media(self):
        """Three photos within 30 m of each other and one far away."""
        return [
            create_media(1, capture_time(0, 9), coords=(52.5200, 13.4050)),
            create_media(2, capture_time(0, 10), coords=(52.5201, 13.4051)),
            create_media(3, capture_time(0, 11), coords=(52.5202, 13.4052)),
            create_media(4, capture_time(0, 12), coords="hamburg"),
        ]

    def test_cluster_and_noise(self, spread_media):
        """Should cluster the dense photos and flag the far one as noise."""
        result = cluster_media(spread_media, eps_km=0.1, min_samples=3)

        assert len(result.clusters) == 1
        assert [m.id for m in result.clusters[0]] == [1, 2, 3]
        assert [m.id for m in result.noise] == [4]

    def test_order_independent(self, spread_media):
        """Should partition any permutation of the input identically."""
        forward = cluster_media(spread_media, eps_km=0.1, min_samples=3)
        backward = cluster_media(
            list(reversed(spread_media)), eps_km=0.1, min_samples=3
        )

        def partition(result):
            return sorted(tuple(m.id for m in c) for c in result.clusters)

        assert partition(forward) == partition(backward)
        assert [m.id for m in forward.noise] == [m.id for m in backward.noise]

    def test_non_positive_radius(self, spread_media):
        """Should return every item as noise for a radius of zero."""
        result = cluster_media(spread_media, eps_km=0.0)
        assert result.clusters == []
        assert len(result.noise) == 4

    def test_single_point_clusters(self, spread_media):
        """Should make every point a core point with min_samples of one."""
        result = cluster_media(spread_media, eps_km=0.01, min_samples=1)
        assert len(result.clusters) == 4
        assert result.noise == []

    def test_media_without_gps_ignored(self):
        """Should ignore media without coordinates."""
        result = cluster_media([create_media(1), create_media(2)])
        assert result.clusters == []
        assert result.noise == []


class TestStaypointDetector:
    """Tests for sequential staypoint detection and the DBSCAN fallback."""

    def test_single_stay(self):
        """Should detect one three hour stay."""
        media = create_stay_day(0, "trip", start_id=1)
        staypoints = detect_staypoints(media)

        assert len(staypoints) == 1
        assert staypoints[0].dwell_seconds == 3 * 3600
        assert staypoints[0].start == media[0].timestamp
        assert staypoints[0].end == media[-1].timestamp

    def test_short_stay_ignored(self):
        """Should ignore stays shorter than an hour."""
        media = create_stay_day(0, "trip", start_id=1, step_minutes=15)
        assert detect_staypoints(media) == []

    def test_two_stays(self):
        """Should split the track where it leaves the first spot."""
        media = create_stay_day(0, "trip", start_id=1, start_hour=8)
        media += create_stay_day(0, "trip_lake", start_id=10, start_hour=13)

        staypoints = detect_staypoints(media)

        assert len(staypoints) == 2
        assert staypoints[0].end < staypoints[1].start

    def test_single_point(self):
        """Should need at least two points."""
        assert detect_staypoints([create_media(1, coords="trip")]) == []

    def test_fallback_finds_interleaved_stay(self):
        """Should find a stay interrupted by excursions only with fallback."""
        spot = DEFAULT_COORDS["trip"]
        away = (spot[0] + 0.01, spot[1])
        media = [
            create_media(i + 1, capture_time(0, 9, 30 * i), coords=coords)
            for i, coords in enumerate([spot, away, spot, away, spot])
        ]

        assert StaypointDetector().detect(media) == []

        detector = StaypointDetector(
            StaypointDetectorConfig(fallback_enabled=True)
        )
        staypoints = detector.detect(media)
        assert len(staypoints) == 1
        assert staypoints[0].dwell_seconds == 2 * 3600
