"""Tests for geo math."""

import math
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from geo import (
    GeoPoint,
    bounding_box,
    destination_point,
    distance_m,
    haversine,
    offset_point,
    offset_polar,
    sample_evenly,
)


def test_offset_moves_east():
    lat, lon = 38.9072, -77.0369
    new_lat, new_lon = offset_point(lat, lon, 200, 0)
    # Latitude should barely change
    assert abs(new_lat - lat) < 1e-6
    # Longitude should increase (moved east)
    assert new_lon > lon


def test_offset_moves_north():
    lat, lon = 38.9072, -77.0369
    new_lat, new_lon = offset_point(lat, lon, 0, 200)
    assert abs(new_lon - lon) < 1e-6
    assert new_lat > lat


def test_haversine_zero_distance():
    assert haversine(38.9, -77.0, 38.9, -77.0) == 0.0


def test_haversine_known_distance():
    lat1, lon1 = 38.9072, -77.0369
    lat2, lon2 = offset_point(lat1, lon1, 200, 0)
    d = haversine(lat1, lon1, lat2, lon2)
    assert 195 < d < 205, f"Expected ~200m, got {d}"


def test_offset_polar_bearing():
    start = GeoPoint(38.9072, -77.0369)
    north = offset_polar(start, 0.0, 300)
    east = offset_polar(start, math.pi / 2, 300)
    assert north.lat > start.lat and abs(north.lon - start.lon) < 1e-9
    assert east.lon > start.lon and abs(east.lat - start.lat) < 1e-9
    assert 295 < distance_m(start, north) < 305


def test_destination_point_distance():
    start = GeoPoint(38.9072, -77.0369)
    for bearing in (0.0, 1.0, math.pi, 4.0):
        end = destination_point(start, bearing, 750)
        assert 745 < distance_m(start, end) < 755


def test_bounding_box_pads_all_points():
    points = [GeoPoint(38.90, -77.04), GeoPoint(38.91, -77.03)]
    box = bounding_box(points, 0.5)
    assert box.south < 38.90 and box.north > 38.91
    assert box.west < -77.04 and box.east > -77.03
    assert all(box.contains(p) for p in points)
    # padding is at least the radius in every direction
    assert haversine(38.90, -77.04, box.south, -77.04) >= 495
    assert haversine(38.90, -77.04, 38.90, box.west) >= 495


def test_bounding_box_requires_points():
    try:
        bounding_box([], 1.0)
    except ValueError:
        return
    raise AssertionError("expected ValueError")


def test_sample_evenly_caps_size():
    points = [GeoPoint(38.9 + i * 1e-4, -77.0) for i in range(37)]
    samples = sample_evenly(points, 10)
    assert len(samples) == 10
    assert samples[0] == points[0]


def test_sample_evenly_short_route():
    points = [GeoPoint(38.9, -77.0), GeoPoint(38.91, -77.0)]
    assert sample_evenly(points, 10) == points
    assert sample_evenly([], 10) == []


def test_sample_evenly_spans_whole_route():
    points = [GeoPoint(float(i), 0.0) for i in range(19)]
    samples = sample_evenly(points, 10)
    assert len(samples) == 10
    assert samples[0] == points[0]
    assert samples[-1] == points[-1]
    assert [p.lat for p in samples] == [0.0, 2.0, 4.0, 6.0, 8.0, 10.0, 12.0, 14.0, 16.0, 18.0]
