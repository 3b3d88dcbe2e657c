"""Route assembly: waypoints -> directions request -> distance-checked candidate."""

import logging
import math
import random
from dataclasses import dataclass

import config
from errors import NoRouteFound
from geo import GeoPoint
from maps_client import DirectionsRoute, DirectionsStatus, decode_polyline
from models import Topology
from services import Services, bounded
from waypoints import synthesize

logger = logging.getLogger(__name__)

ANGLE_STEP = math.pi / 6


@dataclass(frozen=True)
class CandidateRoute:
    points: tuple[GeoPoint, ...]
    distance_m: float
    geometry: str
    topology: Topology
    attempts: int
    base_angle: float
    instructions: tuple[str, ...] = ()

    def __post_init__(self):
        if len(self.points) < 2:
            raise ValueError("a route needs at least two points")
        if self.distance_m <= 0:
            raise ValueError("a route needs a positive distance")

    @property
    def distance_miles(self) -> float:
        return self.distance_m / config.METERS_PER_MILE


def route_points(route: DirectionsRoute) -> list[GeoPoint]:
    """Step start points in travel order plus the final end point.

    Falls back to the decoded overview polyline when the legs carry no steps.
    """
    points = [step.start for leg in route.legs for step in leg.steps]
    if not points and route.overview_polyline:
        points = decode_polyline(route.overview_polyline)
    if not points:
        points = [leg.start for leg in route.legs]
    points.append(route.end)

    deduped = [points[0]]
    for p in points[1:]:
        if p != deduped[-1]:
            deduped.append(p)
    return deduped


def build_candidate(
    route: DirectionsRoute,
    topology: Topology,
    attempts: int,
    base_angle: float,
) -> CandidateRoute | None:
    points = route_points(route)
    distance = route.distance_m
    if topology is Topology.OUT_AND_BACK:
        points = points + points[-2::-1]
        distance *= 2
    if len(points) < 2 or distance <= 0:
        return None
    return CandidateRoute(
        points=tuple(points),
        distance_m=distance,
        geometry=route.overview_polyline,
        topology=topology,
        attempts=attempts,
        base_angle=base_angle,
        instructions=tuple(step.instruction for leg in route.legs for step in leg.steps),
    )


def within_tolerance(distance_miles: float, target_miles: float, tolerance: float) -> bool:
    return abs(distance_miles - target_miles) / target_miles <= tolerance


async def assemble(
    start: GeoPoint,
    target_miles: float,
    topology: Topology,
    base_angle: float,
    services: Services,
    rng: random.Random,
    tolerance: float = config.DEFAULT_DISTANCE_TOLERANCE,
    max_attempts: int = config.MAX_ASSEMBLY_ATTEMPTS,
    allow_jitter: bool = False,
) -> CandidateRoute:
    """Search for one in-tolerance route.

    Each round walks the waypoint counts for the topology; between rounds the
    angle is rotated towards a longer or shorter route depending on the last
    miss. ZERO_RESULTS only costs an attempt; any other directions failure
    propagates as ExternalServiceError. Raises NoRouteFound when the attempt
    budget is spent.
    """
    attempt = 0
    angle = base_angle
    last_error: str | None = None

    while attempt < max_attempts:
        too_short = True
        for count in range(topology.initial_waypoints, topology.max_waypoints + 1):
            if attempt >= max_attempts:
                break
            waypoints = await synthesize(
                start, target_miles, topology, count, attempt, angle,
                services, rng, allow_jitter=allow_jitter,
            )
            attempt += 1
            if not waypoints:
                last_error = "no walkable waypoints"
                continue

            if topology is Topology.LOOP:
                destination, intermediates = start, waypoints
            else:
                destination, intermediates = waypoints[-1], waypoints[:-1]

            logger.debug(
                "Attempt %d: %d waypoints at %.1f deg",
                attempt, len(waypoints), math.degrees(angle),
            )
            outcome = await bounded(
                services.maps.route(start, destination, intermediates),
                "directions", services.timeout,
            )
            if outcome.status is DirectionsStatus.ZERO_RESULTS:
                last_error = f"zero results with {len(waypoints)} waypoints"
                continue
            outcome.raise_for_error()

            candidate = build_candidate(outcome.route, topology, attempt, angle)
            if candidate is None:
                last_error = "degenerate route"
                continue
            if within_tolerance(candidate.distance_miles, target_miles, tolerance):
                logger.info(
                    "Found %.2f mi %s (target %.2f) after %d attempts",
                    candidate.distance_miles, topology.value, target_miles, attempt,
                )
                return candidate

            too_short = candidate.distance_miles < target_miles
            last_error = (
                f"distance {candidate.distance_miles:.2f} mi outside "
                f"{tolerance:.0%} of {target_miles:.2f} mi"
            )
            logger.debug(last_error)

        angle += ANGLE_STEP if too_short else -ANGLE_STEP

    raise NoRouteFound(attempt, last_error)
