import asyncio
import json
import sys

import httpx

import skytrade_explorer.viewport.controller as controller_module
from skytrade_explorer.common.config import load_config
from skytrade_explorer.common.models import DRONE, GeoBounds
from skytrade_explorer.ingest.point_source import PointSource
from skytrade_explorer.viewport.explore import main, run_session

MEXICO = GeoBounds(north=22.0, south=17.0, east=-97.0, west=-102.0)


class _DroneApi:
    def __init__(self) -> None:
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        params = request.url.params
        lat = (float(params["maxLatitude"]) + float(params["minLatitude"])) / 2
        lng = (float(params["maxLongitude"]) + float(params["minLongitude"])) / 2
        return httpx.Response(
            200, json=[{"id": f"d-{lat:.3f}-{lng:.3f}", "deviceLocationLat": lat, "deviceLocationLng": lng}]
        )


def _write_config(tmp_path) -> str:
    path = tmp_path / "local.yaml"
    path.write_text(
        f"""
viewport:
  tab: drone
  debounce_seconds: 0.01
output:
  base_path: {tmp_path / "out"}
""",
        encoding="utf-8",
    )
    return str(path)


def test_run_session_loads_initial_view_then_settles(tmp_path):
    api = _DroneApi()
    config = load_config(_write_config(tmp_path))
    source = PointSource("https://api.example.com", client=httpx.AsyncClient(transport=httpx.MockTransport(api)))

    controller = asyncio.run(run_session(config, MEXICO, 6, source=source))
    asyncio.run(source.aclose())

    # four quadrants for the initial view plus the settled box
    assert len(api.requests) == 5
    assert controller.bounds == MEXICO
    assert controller.zoom == 6
    assert controller.error is None
    assert [p.id for p in controller.visible_points(DRONE)] == ["d-19.500--99.500"]


def test_main_exports_hex_and_point_layers(tmp_path, monkeypatch, capsys):
    api = _DroneApi()

    def point_source(base_url, **kwargs):
        return PointSource(base_url, client=httpx.AsyncClient(transport=httpx.MockTransport(api)), **kwargs)

    monkeypatch.setattr(controller_module, "PointSource", point_source)
    monkeypatch.setenv("SKYTRADE_API_URL", "https://api.example.com/")
    monkeypatch.setattr(
        sys,
        "argv",
        ["skytrade-explore", "--config", _write_config(tmp_path), "--bounds", "22", "17", "-97", "-102", "--zoom", "6"],
    )

    main()

    out_dir = tmp_path / "out"
    hexes = json.loads((out_dir / "drone_hexes.geojson").read_text(encoding="utf-8"))
    points = json.loads((out_dir / "drone_points.geojson").read_text(encoding="utf-8"))
    assert [f["properties"]["count"] for f in hexes["features"]] == [1]
    assert hexes["features"][0]["properties"]["resolution"] == 5
    assert points["features"][0]["geometry"]["coordinates"] == [-99.5, 19.5]
    assert str(api.requests[0].url).startswith("https://api.example.com/droneRadar/?")
    assert "Wrote 2 layers" in capsys.readouterr().out
