"""Tests for waypoint radius, placement and synthesis."""

import asyncio
import math
import random
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import config
from geo import distance_m
from models import Topology
from waypoints import base_radius_m, placement, synthesize

from fakes import START, FakeMaps, make_services

THREE_MILES_M = 3 * config.METERS_PER_MILE


def test_loop_radius_spreads_target_over_circumference():
    assert math.isclose(base_radius_m(3.0, Topology.LOOP), THREE_MILES_M * 0.8 / (2 * math.pi))


def test_out_and_back_radius_is_half_the_target():
    assert math.isclose(base_radius_m(3.0, Topology.OUT_AND_BACK), THREE_MILES_M * 0.8 / 2)


def test_point_to_point_radius_is_the_whole_target():
    assert math.isclose(base_radius_m(3.0, Topology.POINT_TO_POINT), THREE_MILES_M * 0.8)


def test_radius_grows_ten_percent_per_attempt():
    first = base_radius_m(3.0, Topology.LOOP)
    assert math.isclose(base_radius_m(3.0, Topology.LOOP, attempt=2), first * 1.2)


def test_loop_placement_spreads_around_start():
    bearings = [placement(Topology.LOOP, 0.5, i, 4) for i in range(4)]
    assert [f for _, f in bearings] == [1.0] * 4
    assert math.isclose(bearings[1][0] - bearings[0][0], math.pi / 2)


def test_linear_placement_marches_outward():
    assert placement(Topology.POINT_TO_POINT, 1.0, 0, 2) == (1.0, 0.5)
    assert placement(Topology.OUT_AND_BACK, 1.0, 1, 2) == (1.0, 1.0)


def test_synthesize_is_reproducible_with_seeded_rng():
    def run(seed):
        return asyncio.run(synthesize(
            START, 3.0, Topology.LOOP, 3, 0, 0.0, make_services(), random.Random(seed),
        ))

    first = run(5)
    assert len(first) == 3
    assert first == run(5)
    radius = base_radius_m(3.0, Topology.LOOP)
    for p in first:
        assert abs(distance_m(START, p) - radius) <= radius * 0.06


def test_synthesize_stops_when_no_waypoint_is_walkable():
    maps = FakeMaps(walkable=lambda p: False, blocked=lambda p: p != START)
    found = asyncio.run(synthesize(
        START, 3.0, Topology.LOOP, 2, 0, 0.0, make_services(maps=maps), random.Random(1),
    ))
    assert found == []


def test_synthesize_jitter_fallback_is_opt_in():
    maps = FakeMaps(walkable=lambda p: False, blocked=lambda p: p != START)
    found = asyncio.run(synthesize(
        START, 3.0, Topology.LOOP, 2, 0, 0.0, make_services(maps=maps), random.Random(1),
        allow_jitter=True,
    ))
    assert len(found) == 2
