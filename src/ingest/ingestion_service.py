"""Fetch incidents, PDQs and the home profile from the incidents backend."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

import aiohttp

from src.common.errors import DataSourceError, NotAuthenticated
from src.common.models import DatasetSource, HomeProfile, IncidentPoint, PoliceStationPoint
from src.ingest.records import clean_incidents, clean_stations, parse_profile

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Optional[str]]


class IngestionService:
    """Thin async wrapper around the incidents REST API."""

    def __init__(
        self,
        base_url: str,
        token_provider: Optional[TokenProvider] = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    def _auth_headers(self) -> Dict[str, str]:
        token = self.token_provider() if self.token_provider else None
        if not token:
            raise NotAuthenticated("No bearer token (not signed in)")
        return {"Authorization": f"Bearer {token}", "Accept": "application/json"}

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, str]] = None,
        authed: bool = False,
    ) -> Any:
        headers = self._auth_headers() if authed else {"Accept": "application/json"}
        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method, url)
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.request(
                    method, url, params=params, headers=headers
                ) as resp:
                    if resp.status >= 400:
                        text = await resp.text()
                        raise DataSourceError(f"{method} {path} failed: {resp.status} {text}".strip())
                    if resp.content_length == 0:
                        return None
                    return await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise DataSourceError(f"{method} {path} failed: {exc}") from exc

    async def fetch_incidents(
        self,
        limit: Optional[int] = None,
        time_period: Optional[str] = None,
        pdq_id: Optional[int] = None,
    ) -> List[IncidentPoint]:
        """Global incident feed (``GET /api/incidents``)."""

        params: Dict[str, str] = {}
        if time_period:
            params["timePeriod"] = time_period
        if pdq_id is not None:
            params["pdqId"] = str(pdq_id)
        if limit is not None:
            params["limit"] = str(limit)
        payload = await self._request("GET", "/api/incidents", params=params)
        return _parsed("/api/incidents", clean_incidents, _data(payload), DatasetSource.LATEST)

    async def fetch_pdqs(self) -> List[PoliceStationPoint]:
        payload = await self._request("GET", "/api/pdq")
        return _parsed("/api/pdq", clean_stations, _data(payload))

    async def fetch_home_profile(self) -> Optional[HomeProfile]:
        payload = await self._request("GET", "/api/me", authed=True)
        return parse_profile(payload)

    async def fetch_near_incidents(self, profile: HomeProfile, limit: Optional[int] = None) -> List[IncidentPoint]:
        """Incidents within the user's home radius (``GET /api/me/incidents``).

        The backend centres the query on the stored home; only the radius and
        limit travel with the request.
        """

        params = {"mode": "home", "radiusM": f"{profile.effective_radius_m:g}"}
        if limit is not None:
            params["limit"] = str(limit)
        payload = await self._request("GET", "/api/me/incidents", params=params, authed=True)
        items = payload.get("items") if isinstance(payload, Mapping) else None
        records = items if isinstance(items, list) else []
        return _parsed("/api/me/incidents", clean_incidents, records, DatasetSource.NEAR)


def _parsed(path: str, parse: Callable[..., List[Any]], *args: Any) -> List[Any]:
    """Run a record parser, reporting a malformed payload as a DataSourceError."""

    try:
        return parse(*args)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise DataSourceError(f"GET {path} returned malformed records: {exc}") from exc


def _data(payload: Any) -> List[Mapping[str, Any]]:
    if isinstance(payload, Mapping) and isinstance(payload.get("data"), list):
        return payload["data"]
    if isinstance(payload, list):
        return payload
    raise DataSourceError("Unexpected response shape: expected {success, data}.")
