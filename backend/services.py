"""Collaborator interfaces and the container passed into generation/scoring."""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Protocol, Sequence, TypeVar

import httpx

import config
from crime_client import ArcGISCrimeClient, CrimeIncident
from errors import ExternalServiceError
from geo import BoundingBox, GeoPoint
from maps_client import DirectionsOutcome, GoogleMapsClient, ReverseGeocodeResult
from news_client import NewsAPIClient, NewsArticle

T = TypeVar("T")


class RoutingService(Protocol):
    async def route(
        self,
        origin: GeoPoint,
        destination: GeoPoint,
        waypoints: Sequence[GeoPoint] = (),
        mode: str = "walking",
    ) -> DirectionsOutcome: ...

    async def reverse_geocode(self, point: GeoPoint) -> ReverseGeocodeResult: ...

    async def geocode(self, address: str) -> GeoPoint | None: ...

    async def elevations(self, points: Sequence[GeoPoint]) -> list[float]: ...


class CrimeService(Protocol):
    async def query_incidents(
        self, bbox: BoundingBox, start: datetime, end: datetime
    ) -> list[CrimeIncident]: ...


class NewsService(Protocol):
    async def query_articles(
        self, location_label: str, start: datetime, end: datetime
    ) -> list[NewsArticle]: ...


@dataclass
class Services:
    maps: RoutingService
    crime: CrimeService
    news: NewsService
    timeout: float = config.EXTERNAL_CALL_TIMEOUT_S


def build_services(client: httpx.AsyncClient) -> Services:
    return Services(
        maps=GoogleMapsClient(client),
        crime=ArcGISCrimeClient(client),
        news=NewsAPIClient(client),
    )


async def bounded(call: Awaitable[T], service: str, timeout: float = config.EXTERNAL_CALL_TIMEOUT_S) -> T:
    """Await a collaborator call, turning a timeout into ExternalServiceError."""
    try:
        return await asyncio.wait_for(call, timeout)
    except asyncio.TimeoutError as exc:
        raise ExternalServiceError(service, f"timed out after {timeout:.0f}s") from exc
