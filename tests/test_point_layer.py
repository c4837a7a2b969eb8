import asyncio

import httpx

from skytrade_explorer.common.models import AIR_SPACE, GeoBounds
from skytrade_explorer.ingest.point_source import PointSource
from skytrade_explorer.viewport.point_layer import PointLayerView

FIRST = GeoBounds(north=40.0, south=30.0, east=-100.0, west=-110.0)
NUDGED = GeoBounds(north=41.0, south=31.0, east=-99.0, west=-109.0)
MOVED = GeoBounds(north=46.0, south=36.0, east=-94.0, west=-104.0)


def _layer(handler) -> PointLayerView:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PointLayerView(PointSource("https://api.example.com", client=client), AIR_SPACE, debounce_seconds=0.01)


def _properties(request: httpx.Request) -> httpx.Response:
    lat = float(request.url.params["minLatitude"]) + 1
    lng = float(request.url.params["minLongitude"]) + 1
    return httpx.Response(
        200,
        json=[
            {"id": f"p-{lat}", "address": "1 Main St", "latitude": lat, "longitude": lng, "price": 99, "isRentableAirspace": True},
            {"id": "nowhere", "address": "Unknown"},
        ],
    )


def test_fetch_points_replaces_collection_only_after_real_movement():
    layer = _layer(_properties)

    async def scenario():
        try:
            return [
                await layer.fetch_points(FIRST),
                await layer.fetch_points(NUDGED),
                await layer.fetch_points(MOVED),
            ]
        finally:
            await layer.source.aclose()

    outcomes = asyncio.run(scenario())

    assert outcomes == [True, False, True]
    assert layer.last_bounds == MOVED
    features = layer.collection["features"]
    assert len(features) == 1
    assert features[0]["geometry"]["coordinates"] == [-103.0, 37.0]
    assert features[0]["properties"] == {"id": "p-37.0", "name": "1 Main St", "price": 99.0, "isRentableAirspace": True}


def test_failed_fetch_sets_banner_and_keeps_old_collection():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) > 1:
            return httpx.Response(502)
        return _properties(request)

    layer = _layer(handler)

    async def scenario():
        try:
            await layer.fetch_points(FIRST)
            return await layer.fetch_points(MOVED)
        finally:
            await layer.source.aclose()

    assert asyncio.run(scenario()) is False
    assert layer.error.retryable
    assert layer.error.bounds == MOVED
    assert not layer.loading
    assert len(layer.collection["features"]) == 1


def test_move_end_is_debounced():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return _properties(request)

    layer = _layer(handler)

    async def scenario():
        try:
            layer.move_end(FIRST)
            layer.move_end(MOVED)
            await layer.debouncer.wait()
        finally:
            await layer.source.aclose()

    asyncio.run(scenario())

    assert len(calls) == 1
    assert layer.last_bounds == MOVED


def test_tall_viewport_is_never_fetched():
    calls = []
    layer = _layer(lambda request: calls.append(request) or _properties(request))
    tall = GeoBounds(north=70.0, south=20.0, east=-90.0, west=-100.0)

    async def scenario():
        try:
            return await layer.fetch_points(tall)
        finally:
            await layer.source.aclose()

    assert asyncio.run(scenario()) is False
    assert calls == []
    assert layer.collection["features"] == []


def test_point_requests_leave_page_size_to_the_server():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return _properties(request)

    layer = _layer(handler)

    async def scenario():
        try:
            await layer.fetch_points(FIRST)
        finally:
            await layer.source.aclose()

    asyncio.run(scenario())

    params = dict(calls[0].url.params)
    assert "limit" not in params
    assert params["minLatitude"] == "30.0"
