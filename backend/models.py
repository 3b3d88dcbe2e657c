"""Pydantic models for requests and responses, plus the shared route vocabulary."""

import math
from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

import config


class Topology(str, Enum):
    LOOP = "loop"
    OUT_AND_BACK = "out-and-back"
    POINT_TO_POINT = "point-to-point"

    @property
    def label(self) -> str:
        return {
            Topology.LOOP: "Loop",
            Topology.OUT_AND_BACK: "Out-and-Back",
            Topology.POINT_TO_POINT: "Point-to-Point",
        }[self]

    @property
    def initial_waypoints(self) -> int:
        return 2 if self is Topology.LOOP else 1

    @property
    def max_waypoints(self) -> int:
        return 4 if self is Topology.LOOP else 2

    @property
    def radius_divisor(self) -> float:
        """Ratio between walked distance and synthesis radius for this shape."""
        if self is Topology.LOOP:
            return 2 * math.pi
        if self is Topology.OUT_AND_BACK:
            return 2.0
        return 1.0


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def weight(self) -> int:
        return config.SEVERITY_WEIGHTS[self.value]


PredictionSource = Literal["crime", "crime+news"]
Trend = Literal["improving", "stable", "worsening", "unknown"]
Difficulty = Literal["Easy", "Moderate", "Challenging"]
Terrain = Literal["Road", "Trail", "Track", "Mixed"]


class LatLon(BaseModel):
    lat: float
    lon: float


# ---------- Requests ----------

class RouteRequest(BaseModel):
    start: LatLon | None = None
    start_address: str | None = None
    distance_miles: float
    topology: Topology = Topology.LOOP
    num_routes: int = 3
    similarity_threshold: float = config.DEFAULT_SIMILARITY_THRESHOLD
    tolerance: float = config.DEFAULT_DISTANCE_TOLERANCE
    allow_jitter: bool = False


class ScoreRequest(BaseModel):
    points: list[LatLon]
    crime_window_days: int = config.CRIME_WINDOW_DAYS
    news_window_days: int = config.NEWS_WINDOW_DAYS


# ---------- Safety score ----------

class SeverityCounts(BaseModel):
    high: int = 0
    medium: int = 0
    low: int = 0


class IncidentSummary(BaseModel):
    id: str
    offense: str
    severity: Severity
    occurred_at: datetime
    lat: float
    lon: float


class CrimeFactors(BaseModel):
    crime_count: int
    severity_counts: SeverityCounts
    weighted_risk: int
    recent_incidents: list[IncidentSummary]


class NewsEvent(BaseModel):
    title: str
    source: str
    published_at: datetime


class NewsFactors(BaseModel):
    impact: float
    confidence: float = Field(ge=0.0, le=1.0)
    reasons: list[str]
    recent_events: list[NewsEvent]


class PredictionDetails(BaseModel):
    source: PredictionSource
    confidence: float = Field(ge=0.0, le=1.0)
    trend: Trend
    explanation: str


class SafetyScoreDetails(BaseModel):
    score: float = Field(ge=1.0, le=5.0)
    crime_factors: CrimeFactors
    news_factors: NewsFactors | None = None
    prediction_details: PredictionDetails


# ---------- Generated routes ----------

class GenerationProvenance(BaseModel):
    topology: Topology
    attempts: int
    base_angle_deg: float


class RunRoute(BaseModel):
    id: str
    name: str
    location: str
    distance_miles: float
    elevation_ft: float | None = None
    difficulty: Difficulty
    terrain: Terrain
    points: list[tuple[float, float]]
    geometry: str
    safety: SafetyScoreDetails
    provenance: GenerationProvenance


class RoutesResponse(BaseModel):
    count: int
    routes: list[RunRoute]
