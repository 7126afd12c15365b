from __future__ import annotations

import pytest

from quvo.geo import haversine_miles, within_radius


def test_haversine_is_zero_for_same_point() -> None:
    assert haversine_miles(28.6, -82.4, 28.6, -82.4) == pytest.approx(0.0)


def test_haversine_returns_miles() -> None:
    # New York City to Los Angeles is about 2,445 statute miles.
    assert haversine_miles(40.7128, -74.0060, 34.0522, -118.2437) == pytest.approx(2445, rel=0.01)


def test_one_degree_of_latitude_is_about_69_miles() -> None:
    assert haversine_miles(0, 0, 1, 0) == pytest.approx(69.1, abs=0.1)


def test_within_radius_handles_missing_point() -> None:
    assert within_radius((0.0, 0.0), (0.0, 0.5), 50)
    assert not within_radius((0.0, 0.0), (0.0, 1.0), 50)
    assert not within_radius((0.0, 0.0), None, 50)
