import math

import pytest

from floatsearch.filters import BoundingBox
from floatsearch.geo import (
    EARTH_RADIUS_KM,
    GeoPoint,
    bounding_box_predicate,
    distance_expression,
    haversine_distance_km,
    nearest_within_radius,
    radius_predicate,
)


def test_quarter_equator():
    d = haversine_distance_km(GeoPoint(0, 0), GeoPoint(0, 90))
    assert d == pytest.approx(math.pi / 2 * 6371, rel=1e-9)
    assert d == pytest.approx(10007.5, abs=0.1)


def test_antipodes():
    assert haversine_distance_km(GeoPoint(0, 0), GeoPoint(0, 180)) == pytest.approx(math.pi * EARTH_RADIUS_KM)


@pytest.mark.parametrize(
    "a, b",
    [
        (GeoPoint(12.5, 70.1), GeoPoint(-33.9, 18.4)),
        (GeoPoint(89.9, -179.9), GeoPoint(-89.9, 179.9)),
        (GeoPoint(15.0, 65.0), GeoPoint(15.1, 65.2)),
    ],
)
def test_symmetry(a, b):
    assert haversine_distance_km(a, b) == pytest.approx(haversine_distance_km(b, a))


@pytest.mark.parametrize(
    "p",
    [GeoPoint(0, 0), GeoPoint(45.123456789, -120.987654321), GeoPoint(-89.99999, 0.1), GeoPoint(17.3, 72.81)],
)
def test_same_point_is_zero_not_nan(p):
    d = haversine_distance_km(p, p)
    assert not math.isnan(d)
    assert d == pytest.approx(0.0, abs=1e-3)


def test_bounding_box_predicate_order():
    clauses = bounding_box_predicate(BoundingBox(min_lat=0, max_lat=25, min_lon=50, max_lon=75))
    assert len(clauses) == 2
    assert clauses[0].sql == "p.latitude BETWEEN ? AND ?"
    assert clauses[1].sql == "p.longitude BETWEEN ? AND ?"
    params = [v for c in clauses for v in c.params]
    assert params == [0, 25, 50, 75]


def test_radius_predicate_repeats_center_latitude():
    clause = radius_predicate(GeoPoint(10.0, 60.0), 250.0)
    assert clause.params == (10.0, 60.0, 10.0, 250.0)
    assert clause.sql.endswith("<= ?")
    assert "ACOS(LEAST(1, GREATEST(-1," in clause.sql
    assert clause.sql.count("?") == 4


def test_distance_expression_columns():
    expr = distance_expression(GeoPoint(1, 2), lat_column="lat", lon_column="lon")
    assert "RADIANS(lat)" in expr.sql and "RADIANS(lon - ?)" in expr.sql
    assert expr.params == (1, 2, 1)


def test_nearest_within_radius_filters_sorts_and_truncates():
    center = GeoPoint(0, 0)
    far = GeoPoint(0, 10)
    near = GeoPoint(0, 1)
    mid = GeoPoint(0, 2)
    ranked = nearest_within_radius([far, mid, near], center, 500, limit=2)
    assert [p for p, _ in ranked] == [near, mid]
    assert ranked[0][1] < ranked[1][1]


def test_nearest_within_radius_is_stable_on_ties():
    center = GeoPoint(0, 0)
    east = {"name": "east", "pt": GeoPoint(0, 1)}
    west = {"name": "west", "pt": GeoPoint(0, -1)}
    north = {"name": "north", "pt": GeoPoint(1, 0)}
    ranked = nearest_within_radius([east, west, north], center, 1000, point=lambda c: c["pt"])
    assert [c["name"] for c, _ in ranked[:2]] == ["east", "west"]


@pytest.mark.parametrize("radius", [0, 0.5, 100])
def test_center_is_always_included(radius):
    center = GeoPoint(-12.25, 97.5)
    ranked = nearest_within_radius([center], center, radius)
    assert len(ranked) == 1
    assert ranked[0][1] == 0.0


def test_near_identical_points_stay_finite():
    d = haversine_distance_km(GeoPoint(45.0, 7.0), GeoPoint(45.0, 7.0 + 1e-12))
    assert not math.isnan(d)
    assert d == pytest.approx(0.0, abs=1e-3)
