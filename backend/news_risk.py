"""News risk adjustment: recent local coverage can only lower a route's score."""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Sequence

import config
from errors import ExternalServiceError
from geo import GeoPoint, haversine
from maps_client import ReverseGeocodeResult
from news_client import NewsArticle
from services import Services, bounded

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NewsAdjustment:
    adjustment: float
    impact: float
    confidence: float
    reasons: tuple[str, ...] = ()
    top_keywords: tuple[str, ...] = ()
    recent_events: tuple[NewsArticle, ...] = ()


def match_keywords(text: str) -> list[str]:
    lowered = text.lower()
    return [k for k in config.NEWS_KEYWORD_WEIGHTS if k in lowered]


def recency_factor(published_at: datetime, now: datetime) -> float:
    days_ago = (now - published_at).total_seconds() / 86400
    return max(0.0, min(1.0, 1 - days_ago / config.NEWS_RECENCY_HORIZON_DAYS))


def analyze(articles: Sequence[NewsArticle], now: datetime) -> NewsAdjustment | None:
    """Score a batch of articles; None when none of them is safety-related."""
    impacts: list[float] = []
    keyword_hits: Counter[str] = Counter()
    relevant: list[NewsArticle] = []

    for article in articles:
        matches = match_keywords(article.text)
        if not matches:
            continue
        relevant.append(article)
        keyword_hits.update(matches)
        severity = sum(config.NEWS_KEYWORD_WEIGHTS[k] for k in matches) / len(matches)
        impacts.append(severity * recency_factor(article.published_at, now))

    if not relevant:
        return None

    impact = min(1.0, max(0.0, sum(impacts) / len(impacts)))
    relevant_ratio = len(relevant) / len(articles)
    diversity = len(keyword_hits) / len(config.NEWS_KEYWORD_WEIGHTS)
    confidence = min(1.0, 0.5 * relevant_ratio + 0.5 * diversity)
    adjustment = -min(1.0, impact * config.NEWS_ADJUSTMENT_SCALE)

    top = sorted(keyword_hits, key=lambda k: (-keyword_hits[k], -config.NEWS_KEYWORD_WEIGHTS[k], k))[:3]
    reasons = [f"{keyword_hits[k]} recent article(s) mention {k}" for k in top]
    reasons.append(f"{len(relevant)} of {len(articles)} local articles are safety-related")
    recent = sorted(relevant, key=lambda a: (a.published_at, a.title), reverse=True)

    return NewsAdjustment(
        adjustment=round(adjustment, 3) or 0.0,
        impact=round(impact, 3),
        confidence=round(confidence, 2),
        reasons=tuple(reasons),
        top_keywords=tuple(top),
        recent_events=tuple(recent[:config.RECENT_NEWS_EVENT_LIMIT]),
    )


async def adjust(
    location_label: str,
    services: Services,
    time_window_days: int = config.NEWS_WINDOW_DAYS,
    now: datetime | None = None,
) -> NewsAdjustment | None:
    """Predictive adjustment for a location; None when news is missing or failed."""
    now = now or datetime.now(timezone.utc)
    start = now - timedelta(days=time_window_days)
    try:
        articles = await bounded(
            services.news.query_articles(location_label, start, now), "news-search", services.timeout
        )
    except ExternalServiceError as exc:
        logger.warning("News lookup failed, skipping adjustment: %s", exc)
        return None
    except Exception:
        logger.exception("News lookup raised unexpectedly, skipping adjustment")
        return None

    articles = [a for a in articles if start <= a.published_at <= now]
    if not articles:
        return None
    result = analyze(articles, now)
    if result is not None:
        logger.info(
            "News adjustment for %r: %.2f (confidence %.2f)",
            location_label, result.adjustment, result.confidence,
        )
    return result


def nearest_known_location(point: GeoPoint) -> str | None:
    best, best_km = None, config.KNOWN_LOCATION_RADIUS_KM
    for name, (lat, lon) in config.KNOWN_LOCATIONS.items():
        km = haversine(point.lat, point.lon, lat, lon) / 1000
        if km < best_km:
            best, best_km = name, km
    return best


def label_for(point: GeoPoint, place: ReverseGeocodeResult | None) -> str:
    """Name to search news for: locality, known metro, or raw coordinates."""
    if place is not None and place.locality:
        return place.locality
    return nearest_known_location(point) or f"area near {point.lat:.2f},{point.lon:.2f}"


async def location_label(point: GeoPoint, services: Services) -> str:
    try:
        place = await bounded(services.maps.reverse_geocode(point), "reverse-geocode", services.timeout)
    except ExternalServiceError as exc:
        logger.warning("Reverse geocode for news label failed: %s", exc)
        place = None
    except Exception:
        logger.exception("Reverse geocode for news label raised unexpectedly")
        place = None
    return label_for(point, place)
