"""Hex binning that powers the map layers."""

from __future__ import annotations

import logging
import random
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from skytrade_explorer.common.errors import GeometryError
from skytrade_explorer.common.geo import HexIndexer
from skytrade_explorer.common.models import HexCell, Point, points_with_coordinates

logger = logging.getLogger(__name__)

FeatureCollection = Dict[str, Any]

MAX_FEATURES_PER_LAYER = 2000
SAMPLING_THRESHOLD = 5000
GRID_CACHE_SIZE = 10

# (upper zoom bound, resolution); zooms past the last bound use FINEST_RESOLUTION.
_ZOOM_STEPS: Tuple[Tuple[float, int], ...] = (
    (3, 2),
    (4, 3),
    (5.5, 4),
    (7, 5),
    (9, 6),
    (11, 7),
    (13, 8),
    (15, 9),
)
FINEST_RESOLUTION = 10


def empty_collection() -> FeatureCollection:
    return {"type": "FeatureCollection", "features": []}


def resolution_for_zoom(zoom: float, performance_mode: bool = False) -> int:
    """Pick the H3 resolution for a map zoom.

    Every bracket is floored at its own resolution, so the performance offset
    never moves a bracket; performance mode thins the grid through
    ``max_features_for`` instead.
    """

    offset = -1 if performance_mode else 0
    for upper, step_resolution in _ZOOM_STEPS:
        if zoom < upper:
            return max(step_resolution, step_resolution + offset)
    return max(FINEST_RESOLUTION, FINEST_RESOLUTION + offset)


def max_features_for(performance_mode: bool, max_visible_points: int) -> int:
    if performance_mode:
        return max(int(max_visible_points // 2), 1)
    return MAX_FEATURES_PER_LAYER


def bin_points(points: Sequence[Point], resolution: int, indexer: HexIndexer) -> "OrderedDict[str, int]":
    """Count usable points per cell, in first-seen cell order."""

    bins: "OrderedDict[str, int]" = OrderedDict()
    for _, lat, lng in points_with_coordinates(list(points)):
        try:
            cell_id = indexer.cell_for(lat, lng, resolution)
        except GeometryError:
            continue
        bins[cell_id] = bins.get(cell_id, 0) + 1
    return bins


def points_to_hex_grid(
    points: Sequence[Point],
    resolution: int,
    tag: str,
    max_features: int = MAX_FEATURES_PER_LAYER,
    indexer: Optional[HexIndexer] = None,
) -> FeatureCollection:
    """Bin points into hex cells and emit one polygon feature per cell.

    Past ``max_features`` cells only the densest survive; equal counts keep
    first-seen order. Cells whose boundary cannot be computed are dropped.
    """

    if not points:
        return empty_collection()
    indexer = indexer or HexIndexer()

    entries = list(bin_points(points, resolution, indexer).items())
    if len(entries) > max_features:
        entries.sort(key=lambda item: item[1], reverse=True)
        entries = entries[: max(int(max_features), 0)]

    features = []
    for cell_id, count in entries:
        try:
            boundary = indexer.boundary_of(cell_id)
        except GeometryError:
            logger.debug("Skipping cell %s without a boundary", cell_id)
            continue
        cell = HexCell(
            cell_id=cell_id,
            resolution=resolution,
            count=count,
            boundary=tuple(tuple(vertex) for vertex in boundary),
        )
        features.append(cell_to_feature(cell, tag))
    return {"type": "FeatureCollection", "features": features}


def cell_to_feature(cell: HexCell, tag: str) -> Dict[str, Any]:
    return {
        "type": "Feature",
        "properties": {
            "cellId": cell.cell_id,
            "count": cell.count,
            "resolution": cell.resolution,
            "tag": tag,
        },
        "geometry": {
            "type": "Polygon",
            "coordinates": [[list(vertex) for vertex in cell.boundary]],
        },
    }


def points_in_cell(points: Sequence[Point], cell_id: str, indexer: Optional[HexIndexer] = None) -> List[Point]:
    """Points that index into ``cell_id`` at that cell's own resolution."""

    indexer = indexer or HexIndexer()
    try:
        resolution = indexer.resolution_of(cell_id)
    except GeometryError:
        logger.warning("Cannot look up points for invalid cell %r", cell_id)
        return []
    matched = []
    for point, lat, lng in points_with_coordinates(list(points)):
        try:
            if indexer.cell_for(lat, lng, resolution) == cell_id:
                matched.append(point)
        except GeometryError:
            continue
    return matched


@dataclass(frozen=True)
class GridStats:
    hex_cells: int
    points_processed: int
    generation_ms: float
    cached: bool


class HexAggregator:
    """Builds hex layers for a viewport and memoizes them.

    The cache key is (tag, resolution, number of points aggregated), not a
    content hash: two different point sets of the same size at the same
    resolution share an entry. A hit also ignores the ``max_features`` of the
    current call, so a grid built under a larger budget comes back unchanged
    after the budget shrinks.
    """

    def __init__(
        self,
        indexer: Optional[HexIndexer] = None,
        max_features: int = MAX_FEATURES_PER_LAYER,
        sampling_threshold: int = SAMPLING_THRESHOLD,
        cache_size: int = GRID_CACHE_SIZE,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.indexer = indexer or HexIndexer()
        self.max_features = max(int(max_features), 1)
        self.sampling_threshold = max(int(sampling_threshold), 1)
        self.cache_size = max(int(cache_size), 1)
        self.rng = rng or random.Random()
        self._cache: "OrderedDict[Tuple[str, int, int], FeatureCollection]" = OrderedDict()
        self.last_stats: Optional[GridStats] = None

    @property
    def cache_keys(self) -> List[Tuple[str, int, int]]:
        return list(self._cache.keys())

    def clear_cache(self) -> None:
        self._cache.clear()

    def downsample(self, points: Sequence[Point]) -> List[Point]:
        """Uniform random sample at ``threshold / len(points)`` above the threshold."""

        if len(points) <= self.sampling_threshold:
            return list(points)
        rate = min(1.0, self.sampling_threshold / len(points))
        return [point for point in points if self.rng.random() < rate]

    def hex_grid(
        self,
        points: Sequence[Point],
        zoom: float,
        tag: str,
        performance_mode: bool = False,
        max_features: Optional[int] = None,
    ) -> FeatureCollection:
        resolution = resolution_for_zoom(zoom, performance_mode)
        limit = self.max_features if max_features is None else max(int(max_features), 1)
        sampled = self.downsample(points)
        if not sampled:
            self.last_stats = GridStats(hex_cells=0, points_processed=0, generation_ms=0.0, cached=False)
            return empty_collection()

        key = (tag, resolution, len(sampled))
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Hex grid cache hit for %s", key)
            self.last_stats = GridStats(
                hex_cells=len(cached["features"]),
                points_processed=len(sampled),
                generation_ms=0.0,
                cached=True,
            )
            return cached

        started = time.perf_counter()
        grid = points_to_hex_grid(sampled, resolution, tag, limit, self.indexer)
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        self._cache[key] = grid
        self._evict()
        self.last_stats = GridStats(
            hex_cells=len(grid["features"]),
            points_processed=len(sampled),
            generation_ms=round(elapsed_ms, 2),
            cached=False,
        )
        logger.debug(
            "Built %d %s cells from %d points at resolution %d in %.1fms",
            len(grid["features"]),
            tag,
            len(sampled),
            resolution,
            elapsed_ms,
        )
        return grid

    def _evict(self) -> None:
        # Finer grids are kept; among equal resolutions the oldest entry goes first.
        while len(self._cache) > self.cache_size:
            victim = min(self._cache.keys(), key=lambda key: key[1])
            del self._cache[victim]
