"""Crime risk aggregation: historical incidents near a route -> 1..5 base score.

Incidents are classified by keyword match on offense/method text and
weighted low=1, medium=2, high=3. The base score is
    clamp(5 - min(4, weighted_risk / 10), 1, 5)
rounded to one decimal; no incidents means exactly 5.0.
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Sequence

import config
from crime_client import CrimeIncident
from errors import ExternalServiceError
from geo import GeoPoint, bounding_box
from models import Severity, SeverityCounts
from services import Services, bounded

logger = logging.getLogger(__name__)

MAX_SCORE = 5.0
MIN_SCORE = 1.0


def classify_severity(text: str) -> Severity:
    lowered = text.lower()
    if any(k in lowered for k in config.HIGH_SEVERITY_KEYWORDS):
        return Severity.HIGH
    if any(k in lowered for k in config.MEDIUM_SEVERITY_KEYWORDS):
        return Severity.MEDIUM
    return Severity.LOW


def score_from_risk(weighted_risk: float) -> float:
    score = MAX_SCORE - min(4.0, weighted_risk / 10)
    return round(min(MAX_SCORE, max(MIN_SCORE, score)), 1)


@dataclass(frozen=True)
class CrimeRiskSummary:
    score: float = MAX_SCORE
    incident_count: int = 0
    severity_counts: SeverityCounts = field(default_factory=SeverityCounts)
    weighted_risk: int = 0
    recent_incidents: tuple[CrimeIncident, ...] = ()
    window_days: int = config.CRIME_WINDOW_DAYS
    degraded: bool = False


def summarize(incidents: Sequence[CrimeIncident], window_days: int = config.CRIME_WINDOW_DAYS) -> CrimeRiskSummary:
    classified = [
        inc if inc.severity is not None else dataclasses.replace(inc, severity=classify_severity(inc.text))
        for inc in incidents
    ]
    counts = {s: 0 for s in Severity}
    for inc in classified:
        counts[inc.severity] += 1
    weighted = sum(inc.severity.weight for inc in classified)
    recent = sorted(classified, key=lambda inc: (inc.occurred_at, inc.id), reverse=True)

    return CrimeRiskSummary(
        score=score_from_risk(weighted) if classified else MAX_SCORE,
        incident_count=len(classified),
        severity_counts=SeverityCounts(
            high=counts[Severity.HIGH],
            medium=counts[Severity.MEDIUM],
            low=counts[Severity.LOW],
        ),
        weighted_risk=weighted,
        recent_incidents=tuple(recent[:config.RECENT_INCIDENT_LIMIT]),
        window_days=window_days,
    )


async def aggregate(
    points: Sequence[GeoPoint],
    services: Services,
    time_window_days: int = config.CRIME_WINDOW_DAYS,
    radius_km: float = config.CRIME_SEARCH_RADIUS_KM,
    now: datetime | None = None,
) -> CrimeRiskSummary:
    """Historical risk for a route. Never raises on collaborator failure."""
    if not points:
        return CrimeRiskSummary(window_days=time_window_days)

    now = now or datetime.now(timezone.utc)
    start = now - timedelta(days=time_window_days)
    bbox = bounding_box(points, radius_km)

    try:
        incidents = await bounded(services.crime.query_incidents(bbox, start, now), "crime-records", services.timeout)
    except ExternalServiceError as exc:
        logger.warning("Crime lookup failed, using default score: %s", exc)
        return CrimeRiskSummary(window_days=time_window_days, degraded=True)
    except Exception:
        logger.exception("Crime lookup raised unexpectedly, using default score")
        return CrimeRiskSummary(window_days=time_window_days, degraded=True)

    in_scope = [
        inc for inc in incidents
        if start <= inc.occurred_at <= now and bbox.contains(inc.location)
    ]
    if len(in_scope) != len(incidents):
        logger.debug("Dropped %d incidents outside window/box", len(incidents) - len(in_scope))

    summary = summarize(in_scope, time_window_days)
    logger.info(
        "Crime risk: %d incidents, weighted %d, score %.1f",
        summary.incident_count, summary.weighted_risk, summary.score,
    )
    return summary
