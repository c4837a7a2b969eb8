"""Geospatial helpers for hex-based aggregations."""

from __future__ import annotations

import math
from typing import List

import h3

from .errors import GeometryError

MIN_RESOLUTION = 0
MAX_RESOLUTION = 15

_H3_ERRORS = (h3.H3BaseException, ValueError, TypeError)


class HexIndexer:
    """Maps latitude/longitude pairs into deterministic H3 cells.

    Boundaries and centers come back in ``[lng, lat]`` order so they can be
    dropped straight into GeoJSON geometries.
    """

    def cell_for(self, latitude: float, longitude: float, resolution: int) -> str:
        _check_coordinate(latitude, -90.0, 90.0, "latitude")
        _check_coordinate(longitude, -180.0, 180.0, "longitude")
        _check_resolution(resolution)
        try:
            return h3.latlng_to_cell(latitude, longitude, resolution)
        except _H3_ERRORS as exc:
            raise GeometryError(f"Cannot index ({latitude}, {longitude}) at resolution {resolution}: {exc}") from exc

    def boundary_of(self, cell_id: str) -> List[List[float]]:
        """Closed ring of ``[lng, lat]`` vertices; the first vertex is repeated last."""

        _check_cell(cell_id)
        try:
            vertices = h3.cell_to_boundary(cell_id)
        except _H3_ERRORS as exc:
            raise GeometryError(f"Cannot compute boundary of {cell_id!r}: {exc}") from exc
        ring = [[float(lng), float(lat)] for lat, lng in vertices]
        if ring:
            ring.append(list(ring[0]))
        return ring

    def center_of(self, cell_id: str) -> List[float]:
        _check_cell(cell_id)
        try:
            lat, lng = h3.cell_to_latlng(cell_id)
        except _H3_ERRORS as exc:
            raise GeometryError(f"Cannot compute center of {cell_id!r}: {exc}") from exc
        return [float(lng), float(lat)]

    def resolution_of(self, cell_id: str) -> int:
        _check_cell(cell_id)
        try:
            return int(h3.get_resolution(cell_id))
        except _H3_ERRORS as exc:
            raise GeometryError(f"Cannot read resolution of {cell_id!r}: {exc}") from exc


def _check_coordinate(value: float, low: float, high: float, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise GeometryError(f"{name} must be numeric, got {value!r}")
    if math.isnan(value) or not low <= value <= high:
        raise GeometryError(f"{name} {value!r} outside [{low}, {high}]")


def _check_resolution(resolution: int) -> None:
    if isinstance(resolution, bool) or not isinstance(resolution, int):
        raise GeometryError(f"resolution must be an integer, got {resolution!r}")
    if not MIN_RESOLUTION <= resolution <= MAX_RESOLUTION:
        raise GeometryError(f"resolution {resolution} outside [{MIN_RESOLUTION}, {MAX_RESOLUTION}]")


def _check_cell(cell_id: str) -> None:
    if not isinstance(cell_id, str):
        raise GeometryError(f"cell id must be a string, got {cell_id!r}")
    try:
        valid = h3.is_valid_cell(cell_id)
    except _H3_ERRORS:
        valid = False
    if not valid:
        raise GeometryError(f"{cell_id!r} is not a valid H3 cell")
