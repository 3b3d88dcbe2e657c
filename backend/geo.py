"""Geo primitives: points, great-circle distance, offsets and bounding boxes."""

import math
from dataclasses import dataclass
from typing import Sequence

import config

R = 6_378_137.0  # Earth radius in meters (WGS84)


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lon: float

    def as_pair(self) -> tuple[float, float]:
        return (self.lat, self.lon)

    def __str__(self) -> str:
        return f"{self.lat:.6f},{self.lon:.6f}"


@dataclass(frozen=True)
class BoundingBox:
    south: float
    west: float
    north: float
    east: float

    def contains(self, point: GeoPoint) -> bool:
        return self.south <= point.lat <= self.north and self.west <= point.lon <= self.east


def offset_point(lat: float, lon: float, dx: float, dy: float) -> tuple[float, float]:
    """Compute new lat/lon by shifting dx meters east and dy meters north."""
    new_lat = lat + (dy / R) * (180.0 / math.pi)
    new_lon = lon + (dx / (R * math.cos(math.radians(lat)))) * (180.0 / math.pi)
    return new_lat, new_lon


def offset_polar(point: GeoPoint, bearing: float, distance_m: float) -> GeoPoint:
    """Shift a point distance_m along bearing (radians clockwise from north)."""
    lat, lon = offset_point(
        point.lat, point.lon,
        math.sin(bearing) * distance_m,
        math.cos(bearing) * distance_m,
    )
    return GeoPoint(lat, lon)


def destination_point(point: GeoPoint, bearing: float, distance_m: float) -> GeoPoint:
    """Great-circle destination from point along bearing (radians) for distance_m."""
    phi1 = math.radians(point.lat)
    lam1 = math.radians(point.lon)
    delta = distance_m / R

    phi2 = math.asin(
        math.sin(phi1) * math.cos(delta)
        + math.cos(phi1) * math.sin(delta) * math.cos(bearing)
    )
    lam2 = lam1 + math.atan2(
        math.sin(bearing) * math.sin(delta) * math.cos(phi1),
        math.cos(delta) - math.sin(phi1) * math.sin(phi2),
    )
    return GeoPoint(math.degrees(phi2), math.degrees(lam2))


def haversine(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distance in meters between two lat/lon points (haversine formula)."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlam = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlam / 2) ** 2
    return 2 * R * math.asin(math.sqrt(a))


def distance_m(a: GeoPoint, b: GeoPoint) -> float:
    return haversine(a.lat, a.lon, b.lat, b.lon)


def bounding_box(points: Sequence[GeoPoint], radius_km: float) -> BoundingBox:
    """Box around all points, padded by radius_km converted to degree deltas.

    The longitude delta uses the latitude furthest from the equator so the
    padding never shrinks below radius_km.
    """
    if not points:
        raise ValueError("bounding_box needs at least one point")
    south = min(p.lat for p in points)
    north = max(p.lat for p in points)
    west = min(p.lon for p in points)
    east = max(p.lon for p in points)

    widest_lat = max(abs(south), abs(north))
    dlat = radius_km / config.KM_PER_DEGREE
    dlon = radius_km / (config.KM_PER_DEGREE * max(math.cos(math.radians(widest_lat)), 1e-6))
    return BoundingBox(south=south - dlat, west=west - dlon, north=north + dlat, east=east + dlon)


def sample_evenly(points: Sequence[GeoPoint], size: int) -> list[GeoPoint]:
    """Pick up to `size` evenly spaced points spanning the first to the last."""
    if not points or size <= 0:
        return []
    n = len(points)
    if n <= size:
        return list(points)
    if size == 1:
        return [points[0]]
    return [points[round(i * (n - 1) / (size - 1))] for i in range(size)]
