"""Safety score composition and the standalone route-scoring entry point."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Sequence

import config
from crime_risk import CrimeRiskSummary, aggregate
from errors import InvalidRequest
from geo import GeoPoint
from models import (
    CrimeFactors,
    IncidentSummary,
    NewsEvent,
    NewsFactors,
    PredictionDetails,
    SafetyScoreDetails,
)
from news_risk import NewsAdjustment, adjust, location_label
from services import Services

logger = logging.getLogger(__name__)


def _clamp_score(score: float) -> float:
    return min(5.0, max(1.0, score))


def confidence_qualifier(confidence: float) -> str:
    if confidence >= config.HIGH_CONFIDENCE:
        return "high"
    if confidence >= config.MODERATE_CONFIDENCE:
        return "moderate"
    return "low"


def crime_sentence(crime: CrimeRiskSummary) -> str:
    if crime.degraded:
        return "Crime data was unavailable, so this score assumes no recent incidents."
    if crime.score >= 4.5:
        lead = "This area appears very safe"
    elif crime.score >= 3.5:
        lead = "This area has good safety conditions"
    elif crime.score >= 2.5:
        lead = "Exercise normal caution in this area"
    elif crime.score >= 1.5:
        lead = "Consider running with a partner in this area"
    else:
        lead = "This is a high crime area; consider a different route or time of day"
    counts = crime.severity_counts
    return (
        f"{lead} ({crime.incident_count} reported incident(s) in the past "
        f"{crime.window_days} days, {counts.high} high severity)."
    )


def news_sentence(news: NewsAdjustment) -> str:
    keywords = ", ".join(news.top_keywords) or "safety concerns"
    return f"Recent news mentions {keywords} ({confidence_qualifier(news.confidence)} confidence)."


def _trend(news: NewsAdjustment | None) -> str:
    if news is None:
        return "unknown"
    if news.adjustment < 0:
        return "worsening"
    if news.adjustment > 0:
        return "improving"
    return "stable"


def _crime_factors(crime: CrimeRiskSummary) -> CrimeFactors:
    return CrimeFactors(
        crime_count=crime.incident_count,
        severity_counts=crime.severity_counts,
        weighted_risk=crime.weighted_risk,
        recent_incidents=[
            IncidentSummary(
                id=inc.id,
                offense=f"{inc.offense} ({inc.method})" if inc.method else inc.offense,
                severity=inc.severity,
                occurred_at=inc.occurred_at,
                lat=inc.location.lat,
                lon=inc.location.lon,
            )
            for inc in crime.recent_incidents
        ],
    )


def _news_factors(news: NewsAdjustment) -> NewsFactors:
    return NewsFactors(
        impact=news.impact,
        confidence=news.confidence,
        reasons=list(news.reasons),
        recent_events=[
            NewsEvent(title=a.title, source=a.source, published_at=a.published_at)
            for a in news.recent_events
        ],
    )


def compose(crime: CrimeRiskSummary, news: NewsAdjustment | None = None) -> SafetyScoreDetails:
    """Merge historical and predictive signals into one 1..5 score."""
    adjustment = news.adjustment if news is not None else 0.0
    score = _clamp_score(round(crime.score + adjustment, 1))

    confidence = config.DEGRADED_CRIME_CONFIDENCE if crime.degraded else config.CRIME_ONLY_CONFIDENCE
    explanation = crime_sentence(crime)
    if news is not None:
        confidence = min(1.0, confidence + 0.4 * news.confidence)
        explanation = f"{explanation} {news_sentence(news)}"

    return SafetyScoreDetails(
        score=score,
        crime_factors=_crime_factors(crime),
        news_factors=_news_factors(news) if news is not None else None,
        prediction_details=PredictionDetails(
            source="crime+news" if news is not None else "crime",
            confidence=round(confidence, 2),
            trend=_trend(news),
            explanation=explanation,
        ),
    )


async def score_points(
    points: Sequence[GeoPoint],
    services: Services,
    label: str | None,
    crime_window_days: int = config.CRIME_WINDOW_DAYS,
    news_window_days: int = config.NEWS_WINDOW_DAYS,
    now: datetime | None = None,
) -> SafetyScoreDetails:
    now = now or datetime.now(timezone.utc)
    if label is None:
        crime = await aggregate(points, services, crime_window_days, now=now)
        return compose(crime)
    crime, news = await asyncio.gather(
        aggregate(points, services, crime_window_days, now=now),
        adjust(label, services, news_window_days, now=now),
    )
    return compose(crime, news)


async def score_route(
    points: Sequence[GeoPoint],
    services: Services,
    crime_window_days: int = config.CRIME_WINDOW_DAYS,
    news_window_days: int = config.NEWS_WINDOW_DAYS,
    now: datetime | None = None,
) -> SafetyScoreDetails:
    """Best-effort safety score for any point sequence (e.g. a user-drawn route)."""
    if crime_window_days <= 0 or news_window_days <= 0:
        raise InvalidRequest("time windows must be positive")
    label = await location_label(points[0], services) if points else None
    return await score_points(points, services, label, crime_window_days, news_window_days, now)
