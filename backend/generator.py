"""Route generation: N diverse, distance-matched, safety-scored routes.

Candidate slots search concurrently (the maps client's semaphore bounds
external calls); acceptance into the batch is serialized under a lock so
each candidate is compared against everything accepted before it. Each
accepted route is scored as soon as it is accepted.
"""

import asyncio
import logging
import math
import random
import uuid
from datetime import datetime
from typing import Sequence

import config
from assembler import CandidateRoute, assemble
from diversity import is_too_similar
from errors import (
    ExternalServiceError,
    InvalidRequest,
    NoRouteFound,
    RouteGenerationFailed,
    SlotDiagnostics,
)
from geo import GeoPoint, sample_evenly
from maps_client import ReverseGeocodeResult
from models import GenerationProvenance, RouteRequest, RunRoute, Topology
from news_risk import label_for
from safety import score_points
from services import Services, bounded

logger = logging.getLogger(__name__)

SLOT_ANGLE_STEP = math.pi / 4


def validate_request(request: RouteRequest) -> None:
    for name in ("distance_miles", "tolerance", "similarity_threshold"):
        if not math.isfinite(getattr(request, name)):
            raise InvalidRequest(f"{name} must be a finite number")
    if not request.distance_miles or request.distance_miles <= 0:
        raise InvalidRequest("distance_miles must be positive")
    if not 1 <= request.num_routes <= config.MAX_ROUTES_PER_REQUEST:
        raise InvalidRequest(f"num_routes must be between 1 and {config.MAX_ROUTES_PER_REQUEST}")
    if not 0 < request.tolerance < 1:
        raise InvalidRequest("tolerance must be between 0 and 1")
    if not 0 <= request.similarity_threshold <= 1:
        raise InvalidRequest("similarity_threshold must be between 0 and 1")
    if request.start is None and not (request.start_address or "").strip():
        raise InvalidRequest("a start location or start_address is required")
    if request.start is not None and not (
        -90 <= request.start.lat <= 90 and -180 <= request.start.lon <= 180
    ):
        raise InvalidRequest("start coordinates out of range")


async def resolve_start(request: RouteRequest, services: Services) -> GeoPoint:
    if request.start is not None:
        return GeoPoint(request.start.lat, request.start.lon)
    point = await bounded(services.maps.geocode(request.start_address), "geocode", services.timeout)
    if point is None:
        raise InvalidRequest(f"could not resolve start location {request.start_address!r}")
    return point


# ---------- Display metadata ----------

def classify_difficulty(distance_miles: float, elevation_ft: float | None) -> str:
    elevation = elevation_ft or 0.0
    if distance_miles > config.CHALLENGING_DISTANCE_MI or elevation > config.CHALLENGING_ELEVATION_FT:
        return "Challenging"
    if distance_miles > config.MODERATE_DISTANCE_MI or elevation > config.MODERATE_ELEVATION_FT:
        return "Moderate"
    return "Easy"


def classify_terrain(instructions: Sequence[str]) -> str:
    if not instructions:
        return "Mixed"
    lowered = [text.lower() for text in instructions]
    if all("track" in text for text in lowered):
        return "Track"
    off_road = sum(1 for text in lowered if any(k in text for k in config.TRAIL_KEYWORDS))
    if off_road == 0:
        return "Road"
    if off_road * 2 > len(lowered):
        return "Trail"
    return "Mixed"


def route_kind(elevation_ft: float | None, score: float, topology: Topology) -> str:
    if elevation_ft is not None and elevation_ft > config.HILL_ELEVATION_FT:
        return "Hill"
    if score >= 4.5:
        return "Safe"
    if score <= 2.5:
        return "Urban"
    return topology.label


async def elevation_gain_ft(points: Sequence[GeoPoint], services: Services) -> float | None:
    samples = sample_evenly(points, config.ELEVATION_SAMPLE_SIZE)
    try:
        elevations = await bounded(services.maps.elevations(samples), "elevation", services.timeout)
    except ExternalServiceError as exc:
        logger.warning("Elevation lookup failed: %s", exc)
        return None
    if len(elevations) < 2:
        return None
    gain_m = sum(max(0.0, b - a) for a, b in zip(elevations, elevations[1:]))
    return round(gain_m * config.FEET_PER_METER)


async def describe(
    candidate: CandidateRoute,
    place: ReverseGeocodeResult | None,
    news_label: str,
    services: Services,
    now: datetime | None = None,
) -> RunRoute:
    safety, elevation = await asyncio.gather(
        score_points(candidate.points, services, news_label, now=now),
        elevation_gain_ft(candidate.points, services),
    )
    distance = round(candidate.distance_miles, 1)
    neighborhood = (place.neighborhood if place else None) or "Local"
    kind = route_kind(elevation, safety.score, candidate.topology)
    return RunRoute(
        id=f"gen-{uuid.uuid4().hex[:12]}",
        name=f"{neighborhood} {kind} Route",
        location=(place.formatted_address if place else "") or "Custom Route",
        distance_miles=distance,
        elevation_ft=elevation,
        difficulty=classify_difficulty(distance, elevation),
        terrain=classify_terrain(candidate.instructions),
        points=[p.as_pair() for p in candidate.points],
        geometry=candidate.geometry,
        safety=safety,
        provenance=GenerationProvenance(
            topology=candidate.topology,
            attempts=candidate.attempts,
            base_angle_deg=round(math.degrees(candidate.base_angle) % 360, 1),
        ),
    )


# ---------- Generation ----------

async def _search_slot(
    diag: SlotDiagnostics,
    base_angle: float,
    start: GeoPoint,
    request: RouteRequest,
    services: Services,
    rng: random.Random,
    accepted: list[CandidateRoute],
    accept_lock: asyncio.Lock,
) -> CandidateRoute | None:
    for attempt in range(config.MAX_SLOT_ATTEMPTS):
        angle = base_angle + attempt * SLOT_ANGLE_STEP
        diag.attempts += 1
        try:
            candidate = await assemble(
                start, request.distance_miles, request.topology, angle, services, rng,
                tolerance=request.tolerance, allow_jitter=request.allow_jitter,
            )
        except NoRouteFound as exc:
            diag.record("no-route", exc.last_error or str(exc))
            logger.warning("Route %d attempt %d: %s", diag.slot + 1, attempt + 1, exc)
            continue
        except ExternalServiceError as exc:
            diag.record("service", str(exc))
            logger.error("Route %d aborted: %s", diag.slot + 1, exc)
            return None

        async with accept_lock:
            if is_too_similar(
                candidate.points, [c.points for c in accepted], request.similarity_threshold
            ):
                diag.rejected_similar += 1
                diag.record("similar", "too similar to an accepted route")
                continue
            accepted.append(candidate)
        return candidate

    logger.warning("Failed to generate route %d after %d attempts", diag.slot + 1, diag.attempts)
    return None


async def generate_routes(
    request: RouteRequest,
    services: Services,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> list[RunRoute]:
    """Generate up to request.num_routes routes; raises only if none succeed."""
    validate_request(request)
    rng = rng or random.Random()
    start = await resolve_start(request, services)

    try:
        place = await bounded(services.maps.reverse_geocode(start), "reverse-geocode", services.timeout)
    except ExternalServiceError as exc:
        logger.warning("Reverse geocode of start failed: %s", exc)
        place = None
    news_label = label_for(start, place)

    n = request.num_routes
    accepted: list[CandidateRoute] = []
    accept_lock = asyncio.Lock()
    diagnostics = [SlotDiagnostics(slot=i) for i in range(n)]
    # One seeded generator per slot keeps runs reproducible under concurrency
    slot_rngs = [random.Random(rng.random()) for _ in range(n)]

    async def run_slot(i: int) -> RunRoute | None:
        base_angle = i * 2 * math.pi / n
        candidate = await _search_slot(
            diagnostics[i], base_angle, start, request, services,
            slot_rngs[i], accepted, accept_lock,
        )
        if candidate is None:
            return None
        return await describe(candidate, place, news_label, services, now=now)

    logger.info(
        "Generating %d %s route(s) of %.2f mi from %s",
        n, request.topology.value, request.distance_miles, start,
    )
    results = await asyncio.gather(*(run_slot(i) for i in range(n)))
    routes = [r for r in results if r is not None]
    if not routes:
        raise RouteGenerationFailed(diagnostics)
    logger.info("Generated %d/%d routes", len(routes), n)
    return routes
