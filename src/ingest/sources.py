"""Incident and PDQ sources consumed by the dataset selector and the dashboard."""

from __future__ import annotations

from typing import List, Optional

from src.common.config import LATEST_FETCH_LIMIT, NEAR_FETCH_LIMIT
from src.common.models import HomeProfile, IncidentPoint, PoliceStationPoint
from src.ingest.ingestion_service import IngestionService


class LatestIncidentSource:
    """Loads the global incident feed."""

    def __init__(self, ingestion: IngestionService, limit: int = LATEST_FETCH_LIMIT) -> None:
        self.ingestion = ingestion
        self.limit = limit

    async def load(self) -> List[IncidentPoint]:
        return await self.ingestion.fetch_incidents(limit=self.limit)


class NearIncidentSource:
    """Loads the signed-in user's home profile and the incidents around it."""

    def __init__(self, ingestion: IngestionService, limit: int = NEAR_FETCH_LIMIT) -> None:
        self.ingestion = ingestion
        self.limit = limit

    async def load_profile(self) -> Optional[HomeProfile]:
        return await self.ingestion.fetch_home_profile()

    async def load(self, profile: HomeProfile) -> List[IncidentPoint]:
        return await self.ingestion.fetch_near_incidents(profile, limit=self.limit)


class PoliceStationSource:
    def __init__(self, ingestion: IngestionService) -> None:
        self.ingestion = ingestion

    async def load(self) -> List[PoliceStationPoint]:
        return await self.ingestion.fetch_pdqs()
