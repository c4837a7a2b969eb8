"""Viewport session: owns bounds/zoom, plans fetches and feeds the point cache."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Set, Tuple

from skytrade_explorer.common.config import AppConfig, resolve_api_base_url
from skytrade_explorer.common.errors import ConfigurationError, FetchError, GeometryError
from skytrade_explorer.common.models import (
    CachedArea,
    FetchBanner,
    FlyTo,
    GeoBounds,
    Point,
    SidebarSelection,
    data_types_for_tab,
)
from skytrade_explorer.hexgrid.aggregator import FeatureCollection, HexAggregator, max_features_for, points_in_cell
from skytrade_explorer.hexgrid.performance import PerformanceMonitor
from skytrade_explorer.hexgrid.visibility import visible_points
from skytrade_explorer.ingest.point_source import PointSource
from skytrade_explorer.ingest.store import PointStore
from skytrade_explorer.viewport.debounce import Debouncer
from skytrade_explorer.viewport.planner import FetchAreaPlanner, OverlapPolicy

logger = logging.getLogger(__name__)

IDLE = "idle"
MOVING = "moving"

FETCH_FAILED_MESSAGE = "Failed to load map data. Please try again."
MAX_FLY_TO_ZOOM = 14
MIN_LOCAL_POINTS_IN_HEX = 5
DETAIL_RESOLUTION = 7


@dataclass(frozen=True)
class CycleResult:
    """Outcome of one fetch-planning cycle."""

    bounds: GeoBounds
    zoom: float
    skipped: bool = False
    areas_requested: int = 0
    points_received: int = 0
    failures: Tuple[FetchError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.failures


class ViewportController:
    """Idle/moving state machine around the fetch planner, cache and hex layers.

    Every mutation happens on the event loop thread in response to a viewport
    event, a fetch completing, or a sampler tick. In-flight requests are never
    cancelled, so a response for an older viewport still lands in the cache.
    """

    def __init__(
        self,
        config: AppConfig,
        store: Optional[PointStore] = None,
        source: Optional[PointSource] = None,
        aggregator: Optional[HexAggregator] = None,
        monitor: Optional[PerformanceMonitor] = None,
        environ: Optional[Mapping[str, str]] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self.tab = config.viewport.tab
        self.store = store or PointStore()
        self.bounds = config.viewport.initial_bounds
        self.zoom = config.viewport.initial_zoom
        self.prev_zoom = self.zoom
        self.state = IDLE
        self.loading = False
        self.error: Optional[FetchBanner] = None
        self.selection: Optional[SidebarSelection] = None
        self.clock = clock

        self.planner = FetchAreaPlanner(full_detail_zoom=config.viewport.full_detail_zoom)
        self.overlap_policy = OverlapPolicy(
            threshold=config.viewport.overlap_threshold,
            history=config.viewport.overlap_history,
        )
        self.aggregator = aggregator or HexAggregator(
            max_features=config.hexgrid.max_features,
            sampling_threshold=config.hexgrid.sampling_threshold,
            cache_size=config.hexgrid.cache_size,
        )
        self.indexer = self.aggregator.indexer
        self.monitor = monitor or PerformanceMonitor(
            sample_interval=config.performance.sample_interval_seconds,
            enter_fps=config.performance.enter_fps,
            exit_fps=config.performance.exit_fps,
        )
        self.debouncer = Debouncer(self._on_settled, delay=config.viewport.debounce_seconds)

        self._source = source
        self._owns_source = source is None
        self._environ = environ
        self._empty_cells: Set[str] = set()

    async def start(self) -> CycleResult:
        """Start frame sampling and load the initial view."""

        self.monitor.start()
        return await self.refresh(self.bounds)

    async def close(self) -> None:
        self.debouncer.cancel()
        in_flight = self.debouncer.in_flight
        if in_flight is not None:
            await in_flight
        await self.monitor.stop()
        if self._source is not None and self._owns_source:
            await self._source.aclose()
            self._source = None

    def move_start(self) -> None:
        self.state = MOVING

    def zoom_changed(self, zoom: float) -> None:
        self.zoom = zoom

    def move_end(self, bounds: GeoBounds, zoom: Optional[float] = None) -> None:
        """Commit the settled viewport and schedule a debounced planning cycle."""

        if zoom is not None:
            self.zoom = zoom
        self.bounds = bounds
        self.state = IDLE
        self.debouncer.trigger(bounds)

    async def _on_settled(self, bounds: GeoBounds) -> None:
        if self.state != IDLE:
            return
        await self.refresh(bounds)

    async def refresh(self, bounds: Optional[GeoBounds] = None, force: bool = False) -> CycleResult:
        """Run one planning cycle for ``bounds``.

        ``force`` bypasses the overlap check (used by retry).
        """

        bounds = bounds or self.bounds
        zoom = self.zoom
        try:
            source = self._point_source()
        except ConfigurationError as exc:
            logger.error("Cannot fetch map data: %s", exc)
            self.error = FetchBanner(message=str(exc), bounds=bounds, retryable=False)
            return CycleResult(bounds=bounds, zoom=zoom, skipped=True)

        history = [area.bounds for area in self.store.recent_areas(self.overlap_policy.history)]
        if not force and not self.overlap_policy.should_fetch(bounds, history):
            logger.debug("Viewport %s already covered by a recent fetch", bounds)
            return CycleResult(bounds=bounds, zoom=zoom, skipped=True)
        self.store.record_fetched_area(CachedArea(bounds=bounds, zoom_level=zoom, timestamp=self.clock()))

        jobs: List[Tuple[str, GeoBounds]] = []
        for data_type in data_types_for_tab(self.tab):
            areas = self.planner.plan_fetch(bounds, zoom, data_type, self.prev_zoom, self.store.count(data_type))
            jobs.extend((data_type, area) for area in areas)
        if not jobs:
            self.prev_zoom = zoom
            return CycleResult(bounds=bounds, zoom=zoom, skipped=True)

        high_detail = self.planner.is_high_detail(zoom)
        self.loading = True
        self.error = None
        try:
            outcomes = await asyncio.gather(
                *(self._fetch_and_commit(source, data_type, area, high_detail) for data_type, area in jobs)
            )
        finally:
            self.loading = False
        self.prev_zoom = zoom

        failures = tuple(outcome for outcome in outcomes if isinstance(outcome, FetchError))
        received = sum(outcome for outcome in outcomes if isinstance(outcome, int))
        if failures:
            self.error = FetchBanner(message=FETCH_FAILED_MESSAGE, bounds=bounds)
        logger.info(
            "Fetched %d points across %d areas at zoom %.1f (%d failed)",
            received,
            len(jobs),
            zoom,
            len(failures),
        )
        return CycleResult(
            bounds=bounds,
            zoom=zoom,
            areas_requested=len(jobs),
            points_received=received,
            failures=failures,
        )

    async def retry(self) -> Optional[CycleResult]:
        """Re-run the cycle that raised the current banner."""

        banner = self.error
        if banner is None or not banner.retryable:
            return None
        return await self.refresh(banner.bounds or self.bounds, force=True)

    async def _fetch_and_commit(self, source: PointSource, data_type: str, area: GeoBounds, high_detail: bool):
        try:
            points = await source.fetch_area(data_type, area, high_detail=high_detail)
        except FetchError as exc:
            logger.warning("Error fetching %s data for %s: %s", data_type, area, exc)
            return exc
        return self.store.add_points(data_type, points)

    def _point_source(self) -> PointSource:
        if self._source is None:
            base_url = resolve_api_base_url(self.config, self._environ)
            self._source = PointSource(
                base_url,
                limit=self.config.api.max_points_per_request,
                timeout=self.config.api.timeout_seconds,
            )
        return self._source

    def visible_points(self, data_type: str) -> List[Point]:
        return visible_points(
            self.store.all_points(data_type),
            self.bounds,
            self.zoom,
            threshold=self.config.hexgrid.visibility_threshold,
            indexer=self.indexer,
        )

    def hex_grid(self, data_type: str) -> FeatureCollection:
        performance_mode = self.monitor.performance_mode
        budget = self.monitor.recommendations()
        return self.aggregator.hex_grid(
            self.visible_points(data_type),
            self.zoom,
            data_type,
            performance_mode=performance_mode,
            max_features=max_features_for(performance_mode, budget.max_visible_points),
        )

    def layers(self) -> Dict[str, FeatureCollection]:
        return {data_type: self.hex_grid(data_type) for data_type in data_types_for_tab(self.tab)}

    def stats(self) -> Dict[str, object]:
        stats: Dict[str, object] = {}
        for data_type in data_types_for_tab(self.tab):
            stats[f"visible_{data_type}"] = len(self.visible_points(data_type))
            stats[f"total_{data_type}"] = self.store.count(data_type)
        stats["zoom"] = round(self.zoom, 1)
        stats["status"] = "Loading data..." if self.loading else "Ready"
        return stats

    def select_hex(self, cell_id: str, data_type: str, count: int = 0) -> SidebarSelection:
        """Open the sidebar on a clicked cell with the points already cached."""

        local = points_in_cell(self.visible_points(data_type), cell_id, self.indexer)
        fly_to = None
        if count > 1 and self.zoom < MAX_FLY_TO_ZOOM:
            try:
                lng, lat = self.indexer.center_of(cell_id)
                fly_to = FlyTo(longitude=lng, latitude=lat, zoom=min(self.zoom + 2, MAX_FLY_TO_ZOOM))
            except GeometryError:
                logger.warning("No center for clicked cell %r", cell_id)
        self.selection = SidebarSelection(
            hex_id=cell_id,
            point_data=tuple(local),
            point_type=data_type,
            fly_to=fly_to,
        )
        return self.selection

    async def open_hex(self, cell_id: str, data_type: str, count: int = 0) -> SidebarSelection:
        """Select a cell and pull its full contents when the cache looks thin."""

        selection = self.select_hex(cell_id, data_type, count)
        try:
            resolution = self.indexer.resolution_of(cell_id)
        except GeometryError:
            return selection
        thin = count > MIN_LOCAL_POINTS_IN_HEX and selection.point_count < count / 2
        if thin or resolution >= DETAIL_RESOLUTION:
            points = await self.load_hex_points(cell_id, data_type)
            self.selection = SidebarSelection(
                hex_id=cell_id,
                point_data=tuple(points),
                point_type=data_type,
                fly_to=selection.fly_to,
            )
        return self.selection

    def close_sidebar(self) -> None:
        self.selection = None

    async def load_hex_points(self, cell_id: str, data_type: str) -> List[Point]:
        """Cached points of a cell, topped up from the API over the cell's bounding box."""

        memo_key = f"{cell_id}-{data_type}"
        if memo_key in self._empty_cells:
            return []
        local = points_in_cell(self.visible_points(data_type), cell_id, self.indexer)
        if len(local) >= MIN_LOCAL_POINTS_IN_HEX:
            return local
        try:
            source = self._point_source()
        except ConfigurationError as exc:
            logger.error("Cannot load hex %s: %s", cell_id, exc)
            self.error = FetchBanner(message=str(exc), bounds=self.bounds, retryable=False)
            return local
        try:
            ring = self.indexer.boundary_of(cell_id)
        except GeometryError:
            return local
        lngs = [vertex[0] for vertex in ring]
        lats = [vertex[1] for vertex in ring]
        cell_bounds = GeoBounds(north=max(lats), south=min(lats), east=max(lngs), west=min(lngs))
        try:
            fetched = await source.fetch_area(data_type, cell_bounds)
        except FetchError as exc:
            logger.warning("Error fetching hex data for %s: %s", cell_id, exc)
            return local

        in_cell = points_in_cell(fetched, cell_id, self.indexer)
        if not in_cell:
            self._empty_cells.add(memo_key)
        merged = list(local)
        seen = {point.id for point in merged}
        for point in in_cell:
            if point.id not in seen:
                merged.append(point)
                seen.add(point.id)
        return merged
