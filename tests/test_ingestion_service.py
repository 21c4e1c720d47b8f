import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from src.common.errors import DataSourceError, NotAuthenticated
from src.common.models import DatasetSource, HomeProfile
from src.ingest.ingestion_service import IngestionService, _parsed
from src.ingest.sources import LatestIncidentSource, NearIncidentSource, PoliceStationSource
from src.pipeline.selector import DatasetSelector

TOKEN = "test-token"


def _app(seen):
    def authorised(request):
        return request.headers.get("Authorization") == f"Bearer {TOKEN}"

    async def incidents(request):
        seen.append(("incidents", dict(request.query)))
        return web.json_response(
            {
                "success": True,
                "data": [
                    {"id": 1, "latitude": "45.5017", "longitude": -73.5673, "category": "Vol", "date": "2024-01-02"},
                    {"id": 2, "latitude": None, "longitude": -73.5673},
                ],
            }
        )

    async def pdqs(request):
        return web.json_response({"success": True, "data": [{"id": 21, "latitude": 45.52, "longitude": -73.58}]})

    async def me(request):
        if not authorised(request):
            return web.Response(status=401, text="Unauthorized")
        return web.json_response(
            {
                "success": True,
                "user": {
                    "id": 1,
                    "clerkId": "user_1",
                    "email": None,
                    "profile": {"id": 1, "homeLat": 45.5, "homeLng": -73.6, "homeRadiusM": 750},
                },
            }
        )

    async def near(request):
        if not authorised(request):
            return web.Response(status=401, text="Unauthorized")
        seen.append(("near", dict(request.query)))
        return web.json_response(
            {"success": True, "mode": "home", "items": [{"id": "n1", "latitude": 45.501, "longitude": -73.601}]}
        )

    app = web.Application()
    app.router.add_get("/api/incidents", incidents)
    app.router.add_get("/api/pdq", pdqs)
    app.router.add_get("/api/me", me)
    app.router.add_get("/api/me/incidents", near)
    return app


def _run(scenario, token=TOKEN):
    seen = []

    async def runner():
        async with TestServer(_app(seen)) as server:
            service = IngestionService(f"http://{server.host}:{server.port}/", token_provider=lambda: token)
            return await scenario(service)

    return asyncio.run(runner()), seen


def test_fetch_incidents_passes_limit_and_drops_bad_rows():
    async def scenario(service):
        return await LatestIncidentSource(service, limit=5).load()

    points, seen = _run(scenario)

    assert [p.id for p in points] == [1]
    assert points[0].latitude == 45.5017
    assert points[0].source is DatasetSource.LATEST
    assert seen == [("incidents", {"limit": "5"})]


def test_fetch_pdqs():
    async def scenario(service):
        return await PoliceStationSource(service).load()

    stations, _ = _run(scenario)

    assert [s.id for s in stations] == [21]


def test_near_source_loads_profile_then_scoped_incidents():
    async def scenario(service):
        source = NearIncidentSource(service, limit=200)
        profile = await source.load_profile()
        return profile, await source.load(profile)

    (profile, points), seen = _run(scenario)

    assert profile == HomeProfile(45.5, -73.6, 750.0)
    assert [p.id for p in points] == ["n1"]
    assert points[0].source is DatasetSource.NEAR
    assert seen == [("near", {"mode": "home", "radiusM": "750", "limit": "200"})]


def test_missing_token_raises_not_authenticated():
    async def scenario(service):
        return await service.fetch_home_profile()

    with pytest.raises(NotAuthenticated):
        _run(scenario, token=None)


def test_http_errors_become_data_source_errors():
    async def scenario(service):
        return await service.fetch_home_profile()

    with pytest.raises(DataSourceError) as excinfo:
        _run(scenario, token="wrong")

    assert "401" in str(excinfo.value)


def test_unreachable_backend_becomes_data_source_error():
    async def scenario():
        service = IngestionService("http://127.0.0.1:9", timeout_seconds=2)
        return await service.fetch_incidents()

    with pytest.raises(DataSourceError):
        asyncio.run(scenario())


def test_null_records_in_the_feed_are_dropped_and_loading_finishes():
    async def incidents(request):
        return web.json_response(
            {"success": True, "data": [{"id": 1, "latitude": 45.5017, "longitude": -73.5673}, None, "junk"]}
        )

    app = web.Application()
    app.router.add_get("/api/incidents", incidents)

    async def runner():
        async with TestServer(app) as server:
            service = IngestionService(f"http://{server.host}:{server.port}")
            selector = DatasetSelector(LatestIncidentSource(service), NearIncidentSource(service))
            await selector.load_latest()
            return selector.state

    state = asyncio.run(runner())

    assert [p.id for p in state.latest] == [1]
    assert not state.latest_loading
    assert state.latest_error is None


def test_parser_failures_become_data_source_errors():
    def broken(records):
        raise TypeError("unexpected record shape")

    with pytest.raises(DataSourceError) as excinfo:
        _parsed("/api/incidents", broken, [])

    assert "/api/incidents" in str(excinfo.value)
