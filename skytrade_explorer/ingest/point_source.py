"""Load drone and property points from the SkyTrade API."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from skytrade_explorer.common.errors import FetchError
from skytrade_explorer.common.models import DATA_TYPES, GeoBounds, Point
from skytrade_explorer.ingest.parsing import parse_points

logger = logging.getLogger(__name__)

ENDPOINTS = {
    "drone": "droneRadar",
    "air_space": "properties",
}
MAX_POINTS_PER_REQUEST = 500


class PointSource:
    """Async wrapper around the bounding-box point endpoints."""

    def __init__(
        self,
        base_url: str,
        limit: int = MAX_POINTS_PER_REQUEST,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.limit = limit
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def fetch_area(
        self, data_type: str, bounds: GeoBounds, high_detail: bool = False, limited: bool = True
    ) -> List[Point]:
        """Return the points of ``data_type`` inside ``bounds``.

        Raises FetchError on a non-2xx status, a transport failure or a body
        that is not a JSON list. ``limited=False`` leaves the page size to the
        server.
        """

        url = self.endpoint_url(data_type)
        params = self.query_params(bounds, high_detail, limited)
        try:
            response = await self._client.get(url, params=params)
        except httpx.HTTPError as exc:
            raise FetchError(f"Request to {url} failed: {exc}", bounds=bounds) from exc

        if not 200 <= response.status_code < 300:
            raise FetchError(
                f"HTTP error! status: {response.status_code}",
                bounds=bounds,
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchError(f"Invalid JSON from {url}", bounds=bounds, status_code=response.status_code) from exc
        if not isinstance(payload, list):
            raise FetchError(f"Expected a list of points from {url}", bounds=bounds, status_code=response.status_code)

        points = parse_points(data_type, payload)
        logger.debug("Fetched %d %s points for %s", len(points), data_type, bounds)
        return points

    def endpoint_url(self, data_type: str) -> str:
        if data_type not in DATA_TYPES:
            raise ValueError(f"Unknown data type: {data_type}")
        return f"{self.base_url}/{ENDPOINTS[data_type]}/"

    def query_params(self, bounds: GeoBounds, high_detail: bool = False, limited: bool = True) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "maxLatitude": bounds.north,
            "minLatitude": bounds.south,
            "maxLongitude": bounds.east,
            "minLongitude": bounds.west,
        }
        if limited:
            params["limit"] = self.limit
        if high_detail:
            params["detailLevel"] = "high"
        return params

    async def aclose(self) -> None:
        await self._client.aclose()
