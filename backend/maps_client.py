"""Google Maps web-service client (Directions, Geocoding, Elevation).

- One shared httpx.AsyncClient, concurrency bounded by a semaphore.
- OVER_QUERY_LIMIT is retried with exponential backoff, timeouts after a 1s pause.
- Directions results come back as a tagged DirectionsOutcome so callers can
  tell a retryable ZERO_RESULTS from a real service failure.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

import httpx

import config
from errors import ExternalServiceError
from geo import GeoPoint

logger = logging.getLogger(__name__)

SERVICE = "google-maps"
_TAG_RE = re.compile(r"<[^>]+>")


class DirectionsStatus(str, Enum):
    OK = "OK"
    ZERO_RESULTS = "ZERO_RESULTS"
    ERROR = "ERROR"


@dataclass(frozen=True)
class RouteStep:
    start: GeoPoint
    end: GeoPoint
    distance_m: float
    instruction: str = ""


@dataclass(frozen=True)
class RouteLeg:
    distance_m: float
    start: GeoPoint
    end: GeoPoint
    steps: tuple[RouteStep, ...] = ()


@dataclass(frozen=True)
class DirectionsRoute:
    legs: tuple[RouteLeg, ...]
    overview_polyline: str = ""

    @property
    def distance_m(self) -> float:
        return sum(leg.distance_m for leg in self.legs)

    @property
    def end(self) -> GeoPoint:
        return self.legs[-1].end


@dataclass(frozen=True)
class DirectionsOutcome:
    status: DirectionsStatus
    route: DirectionsRoute | None = None
    error: str | None = None

    @classmethod
    def ok(cls, route: DirectionsRoute) -> "DirectionsOutcome":
        return cls(DirectionsStatus.OK, route=route)

    @classmethod
    def zero_results(cls) -> "DirectionsOutcome":
        return cls(DirectionsStatus.ZERO_RESULTS)

    @classmethod
    def failed(cls, error: str) -> "DirectionsOutcome":
        return cls(DirectionsStatus.ERROR, error=error)

    def raise_for_error(self) -> None:
        if self.status is DirectionsStatus.ERROR:
            raise ExternalServiceError(SERVICE, self.error or "directions request failed")


@dataclass(frozen=True)
class ReverseGeocodeResult:
    formatted_address: str = ""
    place_types: tuple[str, ...] = ()
    location: GeoPoint | None = None
    neighborhood: str | None = None
    locality: str | None = None


@dataclass
class _Response:
    status: str
    data: dict = field(default_factory=dict)
    error: str | None = None


def _latlng(loc: dict) -> GeoPoint:
    return GeoPoint(float(loc.get("lat", 0.0)), float(loc.get("lng", 0.0)))


def _strip_html(text: str) -> str:
    return _TAG_RE.sub("", text or "")


def decode_polyline(encoded: str) -> list[GeoPoint]:
    """Decode Google's encoded polyline format."""
    points = []
    index = 0
    lat = 0
    lng = 0
    while index < len(encoded):
        for coord in range(2):
            shift = 0
            result = 0
            while True:
                b = ord(encoded[index]) - 63
                index += 1
                result |= (b & 0x1F) << shift
                shift += 5
                if b < 0x20:
                    break
            delta = ~(result >> 1) if (result & 1) else (result >> 1)
            if coord == 0:
                lat += delta
            else:
                lng += delta
        points.append(GeoPoint(lat / 1e5, lng / 1e5))
    return points


def _parse_route(route: dict) -> DirectionsRoute:
    legs = []
    for leg in route.get("legs", []):
        steps = tuple(
            RouteStep(
                start=_latlng(s.get("start_location", {})),
                end=_latlng(s.get("end_location", {})),
                distance_m=float(s.get("distance", {}).get("value", 0)),
                instruction=_strip_html(s.get("html_instructions", "")),
            )
            for s in leg.get("steps", [])
        )
        legs.append(RouteLeg(
            distance_m=float(leg.get("distance", {}).get("value", 0)),
            start=_latlng(leg.get("start_location", {})),
            end=_latlng(leg.get("end_location", {})),
            steps=steps,
        ))
    return DirectionsRoute(
        legs=tuple(legs),
        overview_polyline=route.get("overview_polyline", {}).get("points", ""),
    )


def _component(result: dict, kind: str) -> str | None:
    for comp in result.get("address_components", []):
        if kind in comp.get("types", []):
            return comp.get("long_name")
    return None


class GoogleMapsClient:
    """Routing/geocoding collaborator backed by the Google Maps web services."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str = config.GOOGLE_MAPS_API_KEY,
        base_url: str = config.GOOGLE_MAPS_BASE_URL,
        concurrency: int = config.MAPS_CONCURRENCY,
        timeout: float = config.EXTERNAL_CALL_TIMEOUT_S,
    ):
        self._client = client
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._semaphore = asyncio.Semaphore(concurrency)
        self._timeout = timeout

    async def _get(self, endpoint: str, params: dict) -> _Response:
        url = f"{self._base_url}/{endpoint}/json"
        params = {**params, "key": self._api_key}
        retries = 0
        while retries <= config.MAPS_RETRY_MAX:
            async with self._semaphore:
                try:
                    resp = await self._client.get(url, params=params, timeout=self._timeout)
                except httpx.TimeoutException:
                    logger.warning("%s timed out (try %d)", endpoint, retries + 1)
                    retries += 1
                    await asyncio.sleep(1)
                    continue
                except httpx.HTTPError as exc:
                    return _Response("ERROR", error=f"{endpoint} transport error: {exc}")
            if resp.status_code != 200:
                return _Response("ERROR", error=f"{endpoint} HTTP {resp.status_code}")
            try:
                data = resp.json()
                status = data.get("status", "")
            except (ValueError, AttributeError) as exc:
                return _Response("ERROR", error=f"{endpoint} malformed response: {exc}")
            if status == "OVER_QUERY_LIMIT":
                wait = 2 ** retries
                logger.warning("Rate limited on %s, waiting %ds", endpoint, wait)
                await asyncio.sleep(wait)
                retries += 1
                continue
            if status in ("OK", "ZERO_RESULTS"):
                return _Response(status, data=data)
            logger.error("%s status=%s: %s", endpoint, status, data.get("error_message", ""))
            return _Response("ERROR", data=data, error=f"{endpoint} status={status}")
        return _Response("ERROR", error=f"{endpoint} gave up after {config.MAPS_RETRY_MAX} retries")

    async def route(
        self,
        origin: GeoPoint,
        destination: GeoPoint,
        waypoints: Sequence[GeoPoint] = (),
        mode: str = "walking",
    ) -> DirectionsOutcome:
        params = {
            "origin": str(origin),
            "destination": str(destination),
            "mode": mode,
        }
        if waypoints:
            # via: keeps waypoints as pass-through points rather than stopovers
            params["waypoints"] = "|".join(f"via:{p}" for p in waypoints)
        resp = await self._get("directions", params)
        if resp.status == "ZERO_RESULTS":
            return DirectionsOutcome.zero_results()
        if resp.status != "OK":
            return DirectionsOutcome.failed(resp.error or "directions failed")
        routes = resp.data.get("routes", [])
        if not routes or not routes[0].get("legs"):
            return DirectionsOutcome.zero_results()
        return DirectionsOutcome.ok(_parse_route(routes[0]))

    async def reverse_geocode(self, point: GeoPoint) -> ReverseGeocodeResult:
        resp = await self._get("geocode", {"latlng": str(point)})
        if resp.status == "ERROR":
            raise ExternalServiceError(SERVICE, resp.error or "reverse geocode failed")
        results = resp.data.get("results", [])
        if not results:
            return ReverseGeocodeResult()
        first = results[0]
        types: list[str] = []
        for r in results:
            for t in r.get("types", []):
                if t not in types:
                    types.append(t)
        neighborhood = next((n for n in (_component(r, "neighborhood") for r in results) if n), None)
        locality = next((n for n in (_component(r, "locality") for r in results) if n), None)
        return ReverseGeocodeResult(
            formatted_address=first.get("formatted_address", ""),
            place_types=tuple(types),
            location=_latlng(first.get("geometry", {}).get("location", {})),
            neighborhood=neighborhood,
            locality=locality,
        )

    async def geocode(self, address: str) -> GeoPoint | None:
        resp = await self._get("geocode", {"address": address})
        if resp.status == "ERROR":
            raise ExternalServiceError(SERVICE, resp.error or "geocode failed")
        results = resp.data.get("results", [])
        if not results:
            return None
        return _latlng(results[0].get("geometry", {}).get("location", {}))

    async def elevations(self, points: Sequence[GeoPoint]) -> list[float]:
        if not points:
            return []
        resp = await self._get("elevation", {"locations": "|".join(str(p) for p in points)})
        if resp.status == "ERROR":
            raise ExternalServiceError(SERVICE, resp.error or "elevation failed")
        return [float(r.get("elevation", 0.0)) for r in resp.data.get("results", [])]
