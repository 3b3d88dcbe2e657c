"""Waypoint synthesis around a start point."""

import logging
import math
import random

import config
from errors import Unwalkable
from geo import GeoPoint, destination_point
from models import Topology
from prober import jitter, probe
from services import Services

logger = logging.getLogger(__name__)

ANGLE_VARIATIONS = [math.radians(d) for d in config.WAYPOINT_ANGLE_VARIATIONS]


def base_radius_m(target_miles: float, topology: Topology, attempt: int = 0) -> float:
    """Synthesis radius: 80% of the target over the shape divisor, grown 10% per attempt.

    Loops divide by 2*pi (the walked circumference), out-and-back by 2 (there
    and back again) and point-to-point by 1 (a single outward leg).
    """
    radius = target_miles * config.METERS_PER_MILE * config.CIRCUMFERENCE_FACTOR / topology.radius_divisor
    return radius * (1 + config.RADIUS_GROWTH_PER_ATTEMPT * attempt)


def placement(topology: Topology, base_angle: float, index: int, count: int) -> tuple[float, float]:
    """(bearing, fraction of radius) for waypoint `index` of `count`.

    Loops spread waypoints evenly around the start; linear shapes march
    outwards along the base bearing.
    """
    if topology is Topology.LOOP:
        return base_angle + index * (2 * math.pi / count), 1.0
    return base_angle, (index + 1) / count


async def synthesize(
    start: GeoPoint,
    target_miles: float,
    topology: Topology,
    desired_count: int,
    attempt: int,
    base_angle: float,
    services: Services,
    rng: random.Random,
    allow_jitter: bool = False,
) -> list[GeoPoint]:
    """Ordered, street-snapped waypoints; may return fewer than desired_count."""
    radius = base_radius_m(target_miles, topology, attempt)
    waypoints: list[GeoPoint] = []

    for i in range(desired_count):
        bearing, fraction = placement(topology, base_angle, i, desired_count)
        ideal = None
        found = None
        for variation in ANGLE_VARIATIONS:
            spread = 1 + (rng.random() - 0.5) * config.WAYPOINT_JITTER
            ideal = destination_point(start, bearing + variation, radius * fraction * spread)
            try:
                found = await probe(ideal, services)
                break
            except Unwalkable:
                logger.debug("Waypoint %d unwalkable at %s, trying next angle", i + 1, ideal)

        if found is None and allow_jitter and ideal is not None:
            found = jitter(ideal, rng)
            logger.warning("Waypoint %d: no walkable way found, using jittered point %s", i + 1, found)

        if found is None:
            logger.warning(
                "Could not place waypoint %d of %d, continuing with %d",
                i + 1, desired_count, len(waypoints),
            )
            break
        waypoints.append(found)

    return waypoints
