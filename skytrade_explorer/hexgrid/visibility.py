"""Viewport filtering of cached points before binning."""

from __future__ import annotations

from typing import List, Optional, Sequence, Set

from skytrade_explorer.common.errors import GeometryError
from skytrade_explorer.common.geo import HexIndexer
from skytrade_explorer.common.models import GeoBounds, Point, points_with_coordinates

HEX_FILTER_THRESHOLD = 10000
BUFFER_RATIO = 0.1
SAMPLE_STEPS = 10


def visible_points(
    points: Sequence[Point],
    bounds: Optional[GeoBounds],
    zoom: float,
    threshold: int = HEX_FILTER_THRESHOLD,
    indexer: Optional[HexIndexer] = None,
) -> List[Point]:
    """Points inside the viewport.

    Large sets are matched against a coarse hex cover of the buffered
    viewport instead of a plain box test, which keeps points in cells that
    straddle the edge.
    """

    if bounds is None:
        return list(points)
    if len(points) > threshold:
        return _hex_cover_filter(points, bounds, zoom, indexer or HexIndexer())
    return [point for point, lat, lng in points_with_coordinates(list(points)) if bounds.contains(lat, lng)]


def cover_resolution(zoom: float) -> int:
    return max(3, min(6, int(zoom // 2)))


def hex_cover(bounds: GeoBounds, resolution: int, indexer: HexIndexer, steps: int = SAMPLE_STEPS) -> Set[str]:
    """Cells hit by a ``steps`` x ``steps`` lattice over ``bounds`` plus its edges."""

    cells: Set[str] = set()
    lat_step = bounds.lat_span / steps
    lng_step = bounds.lng_span / steps

    def add(lat: float, lng: float) -> None:
        try:
            cells.add(indexer.cell_for(lat, lng, resolution))
        except GeometryError:
            pass

    for i in range(steps + 1):
        lat = bounds.south + i * lat_step
        add(lat, bounds.west)
        add(lat, bounds.east)
        for j in range(steps + 1):
            add(lat, bounds.west + j * lng_step)
    for j in range(steps + 1):
        lng = bounds.west + j * lng_step
        add(bounds.south, lng)
        add(bounds.north, lng)
    return cells


def _hex_cover_filter(points: Sequence[Point], bounds: GeoBounds, zoom: float, indexer: HexIndexer) -> List[Point]:
    resolution = cover_resolution(zoom)
    cells = hex_cover(bounds.buffered(BUFFER_RATIO), resolution, indexer)
    visible = []
    for point, lat, lng in points_with_coordinates(list(points)):
        try:
            if indexer.cell_for(lat, lng, resolution) in cells:
                visible.append(point)
        except GeometryError:
            continue
    return visible
