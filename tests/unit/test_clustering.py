"""Unit tests for ride location clustering."""

from __future__ import annotations

from datetime import date

import pytest

from ridelog.models.ride import Location, Ride
from ridelog.services.clustering import DEFAULT_TOLERANCE, cluster_rides


def _ride(name: str, lat: float, lng: float) -> Ride:
    return Ride(id=name, name=name, date=date(2024, 5, 1), location=Location(lat, lng))


def _names(clusters) -> list[list[str]]:
    return [[r.name for r in c.members] for c in clusters]


class TestClusterRides:
    """Tests for greedy single-pass clustering."""

    def test_default_tolerance(self) -> None:
        assert DEFAULT_TOLERANCE == 0.001

    def test_no_rides(self) -> None:
        assert cluster_rides([]) == []

    def test_order_sensitive_grouping(self) -> None:
        """A joins B's cluster or vice versa depending on which came first."""
        a = _ride("A", 0.0, 0.0)
        b = _ride("B", 0.0, 0.0005)
        c = _ride("C", 0.0, 0.002)

        assert _names(cluster_rides([a, b, c])) == [["A", "B"], ["C"]]
        assert _names(cluster_rides([c, b, a])) == [["C"], ["B", "A"]]

    def test_identical_coordinates_form_one_cluster(self) -> None:
        rides = [_ride(str(i), 47.0, 8.5) for i in range(4)]

        clusters = cluster_rides(rides)

        assert len(clusters) == 1
        assert clusters[0].count == 4
        assert not clusters[0].is_single

    def test_distance_equal_to_tolerance_starts_new_cluster(self) -> None:
        """Only rides strictly closer than the tolerance join."""
        clusters = cluster_rides([_ride("A", 0.0, 0.0), _ride("B", 0.0, 0.001)])

        assert _names(clusters) == [["A"], ["B"]]

    def test_first_cluster_wins_over_nearest(self) -> None:
        """A ride joins the earliest qualifying cluster, not the closest."""
        rides = [
            _ride("A", 0.0, 0.0),
            _ride("B", 0.0, 0.0015),
            # 0.0008 from A, 0.0007 from B
            _ride("C", 0.0, 0.0008),
        ]

        assert _names(cluster_rides(rides)) == [["A", "C"], ["B"]]

    def test_centroid_stays_at_first_member(self) -> None:
        rides = [
            _ride("A", 0.0, 0.0),
            _ride("B", 0.0, 0.0009),
            _ride("C", 0.0, 0.0012),
        ]

        clusters = cluster_rides(rides)

        assert _names(clusters) == [["A", "B"], ["C"]]
        assert clusters[0].centroid == Location(0.0, 0.0)

    def test_custom_tolerance(self) -> None:
        rides = [_ride("A", 0.0, 0.0), _ride("B", 0.0, 0.002)]

        assert len(cluster_rides(rides, tolerance=0.01)) == 1

    def test_input_not_modified(self) -> None:
        rides = [_ride("A", 0.0, 0.0), _ride("B", 0.0, 0.0001)]

        cluster_rides(rides)

        assert [r.name for r in rides] == ["A", "B"]

    @pytest.mark.parametrize("tolerance", [0, -0.001, float("nan")])
    def test_invalid_tolerance(self, tolerance: float) -> None:
        with pytest.raises(ValueError, match="Tolerance must be positive"):
            cluster_rides([_ride("A", 0.0, 0.0)], tolerance=tolerance)
