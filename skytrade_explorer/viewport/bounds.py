"""Split oversized viewports into fetchable chunks."""

from __future__ import annotations

from typing import List

from skytrade_explorer.common.models import GeoBounds

MIN_ZOOM_FOR_FULL_DETAIL = 10


def split_if_needed(bounds: GeoBounds, zoom: float, full_detail_zoom: float = MIN_ZOOM_FOR_FULL_DETAIL) -> List[GeoBounds]:
    """Return the boxes to request for ``bounds`` at ``zoom``.

    World-scale views (zoom < 4, area > 400 square degrees) become a 3x3 grid,
    continental ones (zoom < 6, area > 100) become quadrants. Once zoomed to
    ``full_detail_zoom`` the box is never split.
    """

    if zoom >= full_detail_zoom:
        return [bounds]
    area = bounds.area
    if zoom < 4 and area > 400:
        return split_grid(bounds, 3)
    if zoom < 6 and area > 100:
        return split_grid(bounds, 2)
    return [bounds]


def split_grid(bounds: GeoBounds, divisions: int) -> List[GeoBounds]:
    """Equal ``divisions`` x ``divisions`` tiles, south-west first, sharing edges exactly."""

    lat_edges = _edges(bounds.south, bounds.north, divisions)
    lng_edges = _edges(bounds.west, bounds.east, divisions)
    tiles = []
    for lat_idx in range(divisions):
        for lng_idx in range(divisions):
            tiles.append(
                GeoBounds(
                    north=lat_edges[lat_idx + 1],
                    south=lat_edges[lat_idx],
                    east=lng_edges[lng_idx + 1],
                    west=lng_edges[lng_idx],
                )
            )
    return tiles


def _edges(start: float, end: float, divisions: int) -> List[float]:
    step = (end - start) / divisions
    edges = [start + i * step for i in range(divisions)]
    edges.append(end)
    return edges
