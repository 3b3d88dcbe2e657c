"""Walkability prober: snap a candidate point onto a walkable way or fail."""

import logging
import math
import random

import config
from errors import ExternalServiceError, Unwalkable
from geo import GeoPoint, offset_polar
from maps_client import DirectionsStatus
from services import Services, bounded

logger = logging.getLogger(__name__)

PROBE_ANGLES = [i * 2 * math.pi / config.PROBE_ANGLE_COUNT for i in range(config.PROBE_ANGLE_COUNT)]


async def _reverse_lookup(point: GeoPoint, services: Services) -> GeoPoint | None:
    try:
        result = await bounded(services.maps.reverse_geocode(point), "reverse-geocode", services.timeout)
    except ExternalServiceError as exc:
        logger.warning("Reverse lookup failed at %s, falling back to radius search: %s", point, exc)
        return None
    if not config.WALKABLE_PLACE_TYPES.intersection(result.place_types):
        return None
    return result.location or point


async def _radius_search(point: GeoPoint, services: Services) -> tuple[GeoPoint | None, int]:
    tried = 0
    for radius in config.PROBE_RADII_M:
        for angle in PROBE_ANGLES:
            target = offset_polar(point, angle, radius)
            tried += 1
            outcome = await bounded(services.maps.route(point, target), "directions", services.timeout)
            if outcome.status is DirectionsStatus.ZERO_RESULTS:
                continue
            outcome.raise_for_error()
            return outcome.route.end, tried
    return None, tried


async def probe(point: GeoPoint, services: Services) -> GeoPoint:
    """Return a street-snapped point near `point`.

    Tries a reverse lookup first, then trial routes towards offsets at
    increasing radii. Raises Unwalkable when nothing answers; a directions
    failure other than ZERO_RESULTS propagates as ExternalServiceError.
    """
    snapped = await _reverse_lookup(point, services)
    if snapped is not None:
        return snapped

    snapped, tried = await _radius_search(point, services)
    if snapped is not None:
        logger.debug("Snapped %s to %s via radius search", point, snapped)
        return snapped
    raise Unwalkable(point, tried=tried + 1)


def jitter(point: GeoPoint, rng: random.Random) -> GeoPoint:
    """Last-resort random offset (~100 m box). Only for callers that opt in."""
    return GeoPoint(
        point.lat + (rng.random() - 0.5) * config.JITTER_FALLBACK_DEG,
        point.lon + (rng.random() - 0.5) * config.JITTER_FALLBACK_DEG,
    )
