"""News-search collaborator backed by the NewsAPI `everything` endpoint."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

import httpx

import config
from errors import ExternalServiceError

logger = logging.getLogger(__name__)

SERVICE = "news-search"


@dataclass(frozen=True)
class NewsArticle:
    title: str
    published_at: datetime
    source: str
    description: str | None = None

    @property
    def text(self) -> str:
        return f"{self.title} {self.description or ''}".lower()


def _parse_article(raw: dict) -> NewsArticle | None:
    published = raw.get("publishedAt")
    if not raw.get("title") or not published:
        return None
    try:
        published_at = datetime.fromisoformat(published.replace("Z", "+00:00"))
    except ValueError:
        return None
    if published_at.tzinfo is None:
        published_at = published_at.replace(tzinfo=timezone.utc)
    return NewsArticle(
        title=raw["title"],
        description=raw.get("description"),
        published_at=published_at,
        source=(raw.get("source") or {}).get("name") or "unknown",
    )


class NewsAPIClient:
    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str = config.NEWS_API_KEY,
        url: str = config.NEWS_API_URL,
        timeout: float = config.EXTERNAL_CALL_TIMEOUT_S,
    ):
        self._client = client
        self._api_key = api_key
        self._url = url
        self._timeout = timeout

    async def query_articles(
        self, location_label: str, start: datetime, end: datetime
    ) -> list[NewsArticle]:
        if not self._api_key:
            raise ExternalServiceError(SERVICE, "NEWS_API_KEY not configured")
        params = {
            "q": location_label,
            "from": start.date().isoformat(),
            "to": end.date().isoformat(),
            "sortBy": "relevancy",
            "apiKey": self._api_key,
        }
        try:
            resp = await self._client.get(self._url, params=params, timeout=self._timeout)
        except httpx.HTTPError as exc:
            raise ExternalServiceError(SERVICE, f"transport error: {exc}") from exc
        if resp.status_code != 200:
            raise ExternalServiceError(SERVICE, f"HTTP {resp.status_code}: {resp.text[:200]}")
        try:
            data = resp.json()
            status = data.get("status")
            articles = [] if status != "ok" else [
                a for a in (_parse_article(raw) for raw in data.get("articles") or []) if a is not None
            ]
        except (ValueError, KeyError, AttributeError, TypeError) as exc:
            raise ExternalServiceError(SERVICE, f"malformed response: {exc}") from exc
        if status != "ok":
            raise ExternalServiceError(SERVICE, data.get("message", "unexpected response"))
        logger.info("News query %r returned %d articles", location_label, len(articles))
        return articles
