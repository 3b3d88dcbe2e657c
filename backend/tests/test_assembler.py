"""Tests for route assembly and its attempt budget."""

import asyncio
import random
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import config
from assembler import CandidateRoute, assemble, build_candidate, route_points, within_tolerance
from errors import ExternalServiceError, NoRouteFound
from geo import GeoPoint, offset_polar
from maps_client import DirectionsRoute, RouteLeg, RouteStep
from models import Topology

from fakes import START, FakeMaps, make_services


def _straight_route(length_m: float = 1000.0) -> DirectionsRoute:
    mid = offset_polar(START, 0.0, length_m / 2)
    end = offset_polar(START, 0.0, length_m)
    steps = (
        RouteStep(start=START, end=mid, distance_m=length_m / 2),
        RouteStep(start=mid, end=end, distance_m=length_m / 2),
    )
    return DirectionsRoute(legs=(RouteLeg(distance_m=length_m, start=START, end=end, steps=steps),))


def test_route_points_fall_back_to_overview_polyline():
    end = GeoPoint(43.252, -126.453)
    leg = RouteLeg(distance_m=800_000, start=GeoPoint(38.5, -120.2), end=end)
    route = DirectionsRoute(legs=(leg,), overview_polyline="_p~iF~ps|U_ulLnnqC_mqNvxq`@")
    assert route_points(route) == [GeoPoint(38.5, -120.2), GeoPoint(40.7, -120.95), end]


def test_route_points_without_steps_or_polyline():
    end = offset_polar(START, 0.0, 500)
    route = DirectionsRoute(legs=(RouteLeg(distance_m=500, start=START, end=end),))
    assert route_points(route) == [START, end]


def test_route_points_follow_steps():
    points = route_points(_straight_route())
    assert len(points) == 3
    assert points[0] == START


def test_out_and_back_mirrors_path():
    candidate = build_candidate(_straight_route(1000.0), Topology.OUT_AND_BACK, attempts=1, base_angle=0.0)
    assert candidate.distance_m == 2000.0
    assert candidate.points[0] == candidate.points[-1] == START
    assert len(candidate.points) == 5


def test_candidate_invariants():
    try:
        CandidateRoute(points=(START,), distance_m=10.0, geometry="", topology=Topology.LOOP,
                       attempts=1, base_angle=0.0)
    except ValueError:
        return
    raise AssertionError("expected ValueError")


def test_within_tolerance():
    assert within_tolerance(2.1, 3.0, 0.3)
    assert within_tolerance(3.9, 3.0, 0.3)
    assert not within_tolerance(4.0, 3.0, 0.3)


def test_assemble_loop_within_tolerance():
    candidate = asyncio.run(assemble(START, 3.0, Topology.LOOP, 0.0, make_services(), random.Random(3)))
    assert within_tolerance(candidate.distance_miles, 3.0, 0.3)
    assert candidate.points[0] == START
    assert candidate.points[-1] == START
    assert candidate.attempts >= 1


def test_assemble_point_to_point():
    candidate = asyncio.run(assemble(START, 2.0, Topology.POINT_TO_POINT, 1.0, make_services(), random.Random(3)))
    assert within_tolerance(candidate.distance_miles, 2.0, 0.3)
    assert candidate.points[-1] != START


def test_assemble_out_and_back():
    candidate = asyncio.run(assemble(START, 2.0, Topology.OUT_AND_BACK, 2.0, make_services(), random.Random(3)))
    assert within_tolerance(candidate.distance_miles, 2.0, 0.3)
    assert candidate.points[0] == candidate.points[-1] == START


def test_assemble_zero_results_exhausts_budget():
    # waypoints are walkable but no route ever connects them
    maps = FakeMaps(blocked=lambda p: p != START)
    try:
        asyncio.run(assemble(START, 3.0, Topology.LOOP, 0.0, make_services(maps=maps), random.Random(3)))
    except NoRouteFound as exc:
        assert exc.attempts == config.MAX_ASSEMBLY_ATTEMPTS
        assert "zero results" in exc.last_error
    else:
        raise AssertionError("expected NoRouteFound")
    assert maps.calls["route"] == config.MAX_ASSEMBLY_ATTEMPTS


def test_assemble_unreachable_distance():
    # none of the synthetic loop lengths lands within 0.1% of the target
    try:
        asyncio.run(assemble(START, 3.0, Topology.LOOP, 0.0, make_services(), random.Random(3),
                             tolerance=0.001, max_attempts=4))
    except NoRouteFound as exc:
        assert exc.attempts == 4
        assert "outside" in exc.last_error
    else:
        raise AssertionError("expected NoRouteFound")


def test_assemble_propagates_service_error():
    maps = FakeMaps(fail_directions=True)
    try:
        asyncio.run(assemble(START, 3.0, Topology.LOOP, 0.0, make_services(maps=maps), random.Random(3)))
    except ExternalServiceError:
        return
    raise AssertionError("expected ExternalServiceError")
