"""Crime-record collaborator backed by an ArcGIS feature layer (DC MPD incidents)."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

import httpx

import config
from errors import ExternalServiceError
from geo import BoundingBox, GeoPoint
from models import Severity

logger = logging.getLogger(__name__)

SERVICE = "crime-records"
OUT_FIELDS = "CCN,OFFENSE,METHOD,REPORT_DAT,LATITUDE,LONGITUDE"


@dataclass(frozen=True)
class CrimeIncident:
    id: str
    offense: str
    method: str
    occurred_at: datetime
    location: GeoPoint
    severity: Severity | None = None  # derived by the aggregator

    @property
    def text(self) -> str:
        return f"{self.offense} {self.method}".strip()


def _arcgis_timestamp(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def _parse_date(raw) -> datetime | None:
    # ArcGIS returns epoch milliseconds
    if isinstance(raw, (int, float)):
        return datetime.fromtimestamp(raw / 1000, tz=timezone.utc)
    if isinstance(raw, str) and raw:
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def _parse_feature(feature: dict) -> CrimeIncident | None:
    rec = feature.get("attributes", {})
    lat, lon = rec.get("LATITUDE"), rec.get("LONGITUDE")
    occurred = _parse_date(rec.get("REPORT_DAT"))
    if lat is None or lon is None or occurred is None:
        return None
    return CrimeIncident(
        id=str(rec.get("CCN") or ""),
        offense=str(rec.get("OFFENSE") or ""),
        method=str(rec.get("METHOD") or ""),
        occurred_at=occurred,
        location=GeoPoint(float(lat), float(lon)),
    )


class ArcGISCrimeClient:
    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str = config.CRIME_API_URL,
        timeout: float = config.EXTERNAL_CALL_TIMEOUT_S,
    ):
        self._client = client
        self._url = url
        self._timeout = timeout

    async def query_incidents(
        self, bbox: BoundingBox, start: datetime, end: datetime
    ) -> list[CrimeIncident]:
        params = {
            "where": (
                f"REPORT_DAT >= TIMESTAMP '{_arcgis_timestamp(start)}' "
                f"AND REPORT_DAT <= TIMESTAMP '{_arcgis_timestamp(end)}'"
            ),
            "geometry": f"{bbox.west},{bbox.south},{bbox.east},{bbox.north}",
            "geometryType": "esriGeometryEnvelope",
            "inSR": 4326,
            "spatialRel": "esriSpatialRelIntersects",
            "outFields": OUT_FIELDS,
            "outSR": 4326,
            "orderByFields": "REPORT_DAT DESC",
            "resultRecordCount": config.CRIME_RESULT_LIMIT,
            "f": "json",
        }
        try:
            resp = await self._client.get(self._url, params=params, timeout=self._timeout)
        except httpx.HTTPError as exc:
            raise ExternalServiceError(SERVICE, f"transport error: {exc}") from exc
        if resp.status_code != 200:
            raise ExternalServiceError(SERVICE, f"HTTP {resp.status_code}")
        try:
            data = resp.json()
            error = data.get("error")
            incidents = [] if error else [
                inc for inc in (_parse_feature(f) for f in data.get("features") or []) if inc is not None
            ]
        except (ValueError, KeyError, AttributeError, TypeError) as exc:
            raise ExternalServiceError(SERVICE, f"malformed response: {exc}") from exc
        if error:
            detail = error.get("message", error) if isinstance(error, dict) else error
            raise ExternalServiceError(SERVICE, str(detail))
        logger.debug("Fetched %d incidents in %s", len(incidents), bbox)
        return incidents
