"""In-memory collaborators: a synthetic walkable world for deterministic tests."""

import math
from collections import Counter
from datetime import datetime, timedelta, timezone

from crime_client import CrimeIncident
from errors import ExternalServiceError
from geo import GeoPoint, distance_m
from maps_client import (
    DirectionsOutcome,
    DirectionsRoute,
    ReverseGeocodeResult,
    RouteLeg,
    RouteStep,
)
from news_client import NewsArticle
from services import Services

DETOUR = 1.2      # walked distance / straight-line distance
STEP_M = 150.0

START = GeoPoint(38.9072, -77.0369)
NOW = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)


def _interpolate(a: GeoPoint, b: GeoPoint) -> list[GeoPoint]:
    n = max(1, math.ceil(distance_m(a, b) / STEP_M))
    return [
        GeoPoint(a.lat + (b.lat - a.lat) * k / n, a.lon + (b.lon - a.lon) * k / n)
        for k in range(n + 1)
    ]


class FakeMaps:
    def __init__(
        self,
        walkable=lambda p: True,
        blocked=lambda p: False,
        fail_directions: bool = False,
        geocode_result: GeoPoint | None = START,
        locality: str | None = "Washington",
        instruction: str = "Head north on 16th St NW",
    ):
        self.walkable = walkable
        self.blocked = blocked
        self.fail_directions = fail_directions
        self.geocode_result = geocode_result
        self.locality = locality
        self.instruction = instruction
        self.calls: Counter[str] = Counter()

    async def route(self, origin, destination, waypoints=(), mode="walking"):
        self.calls["route"] += 1
        if self.fail_directions:
            return DirectionsOutcome.failed("directions status=REQUEST_DENIED")
        stops = [origin, *waypoints, destination]
        if any(self.blocked(p) for p in stops):
            return DirectionsOutcome.zero_results()

        steps = []
        for a, b in zip(stops, stops[1:]):
            path = _interpolate(a, b)
            for s, e in zip(path, path[1:]):
                d = distance_m(s, e)
                if d > 0:
                    steps.append(RouteStep(start=s, end=e, distance_m=d * DETOUR, instruction=self.instruction))
        leg = RouteLeg(
            distance_m=sum(s.distance_m for s in steps),
            start=origin,
            end=destination,
            steps=tuple(steps),
        )
        return DirectionsOutcome.ok(DirectionsRoute(legs=(leg,), overview_polyline="fake_polyline"))

    async def reverse_geocode(self, point):
        self.calls["reverse_geocode"] += 1
        types = ("route", "street_address") if self.walkable(point) else ("natural_feature",)
        return ReverseGeocodeResult(
            formatted_address="1600 16th St NW, Washington, DC 20009, USA",
            place_types=types,
            location=point,
            neighborhood="Dupont Circle",
            locality=self.locality,
        )

    async def geocode(self, address):
        self.calls["geocode"] += 1
        return self.geocode_result

    async def elevations(self, points):
        self.calls["elevations"] += 1
        return [10.0 for _ in points]


class FakeCrime:
    def __init__(self, incidents=(), error: Exception | None = None):
        self.incidents = list(incidents)
        self.error = error
        self.calls = 0

    async def query_incidents(self, bbox, start, end):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.incidents)


class FakeNews:
    def __init__(self, articles=(), error: Exception | None = None):
        self.articles = list(articles)
        self.error = error
        self.labels: list[str] = []

    async def query_articles(self, location_label, start, end):
        self.labels.append(location_label)
        if self.error is not None:
            raise self.error
        return list(self.articles)


def make_services(maps=None, crime=None, news=None) -> Services:
    return Services(
        maps=maps or FakeMaps(),
        crime=crime or FakeCrime(),
        news=news or FakeNews(),
    )


def incident(i: int, offense: str = "ROBBERY", method: str = "OTHERS", days_ago: float = 1.0,
             location: GeoPoint = START) -> CrimeIncident:
    return CrimeIncident(
        id=f"2400{i:04d}",
        offense=offense,
        method=method,
        occurred_at=NOW - timedelta(days=days_ago, minutes=i),
        location=location,
    )


def article(title: str, days_ago: float = 1.0, description: str | None = None,
            source: str = "Metro Daily") -> NewsArticle:
    return NewsArticle(
        title=title,
        description=description,
        published_at=NOW - timedelta(days=days_ago),
        source=source,
    )


SERVICE_DOWN = ExternalServiceError("test", "service unavailable")
