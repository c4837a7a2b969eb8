"""Decide whether, and where, a viewport change needs new data."""

from __future__ import annotations

from typing import Iterable, List, Optional

from skytrade_explorer.common.models import GeoBounds
from skytrade_explorer.viewport.bounds import MIN_ZOOM_FOR_FULL_DETAIL, split_if_needed

SMALL_ZOOM_STEP = 1.5


class FetchAreaPlanner:
    """Turns a settled viewport into the list of boxes to request."""

    def __init__(self, full_detail_zoom: float = MIN_ZOOM_FOR_FULL_DETAIL, small_zoom_step: float = SMALL_ZOOM_STEP) -> None:
        self.full_detail_zoom = full_detail_zoom
        self.small_zoom_step = small_zoom_step

    def plan_fetch(
        self,
        new_bounds: GeoBounds,
        zoom: float,
        data_type: str,
        prev_zoom: float,
        cached_count: int,
    ) -> List[GeoBounds]:
        # A small zoom-in over data we already hold shows nothing new.
        if abs(zoom - prev_zoom) < self.small_zoom_step and cached_count > 0 and zoom > prev_zoom:
            return []
        return split_if_needed(new_bounds, zoom, self.full_detail_zoom)

    def is_high_detail(self, zoom: float) -> bool:
        return zoom >= self.full_detail_zoom


class OverlapPolicy:
    """Skip a viewport that one recently fetched box already mostly covers.

    Each remembered box is compared on its own, not their union.
    """

    def __init__(self, threshold: float = 0.85, history: int = 10) -> None:
        self.threshold = threshold
        self.history = history

    def should_fetch(self, new_bounds: GeoBounds, previous: Iterable[GeoBounds]) -> bool:
        recent = list(previous)[-self.history :] if self.history > 0 else []
        new_area = new_bounds.area
        if new_area <= 0:
            return True
        for old_bounds in recent:
            if new_bounds.overlap_area(old_bounds) / new_area > self.threshold:
                return False
        return True


class MovementPolicy:
    """Fetch only after the viewport has genuinely moved away from the last box.

    Requires the overlap to be at most half of the previous box and at least
    two edges of the new box to sit outside it. Boxes taller than
    ``max_lat_span`` degrees are never fetched.
    """

    def __init__(self, max_lat_span: float = 30.0, min_edges_outside: int = 2) -> None:
        self.max_lat_span = max_lat_span
        self.min_edges_outside = min_edges_outside

    def should_fetch(self, new_bounds: GeoBounds, old_bounds: Optional[GeoBounds]) -> bool:
        if new_bounds.lat_span > self.max_lat_span:
            return False
        if old_bounds is None:
            return True
        moved_enough = new_bounds.overlap_area(old_bounds) <= old_bounds.area / 2
        return moved_enough and edges_outside(new_bounds, old_bounds) >= self.min_edges_outside


def edges_outside(new_bounds: GeoBounds, old_bounds: GeoBounds) -> int:
    count = 0
    if new_bounds.north > old_bounds.north or new_bounds.north < old_bounds.south:
        count += 1
    if new_bounds.south < old_bounds.south or new_bounds.south > old_bounds.north:
        count += 1
    if new_bounds.east > old_bounds.east or new_bounds.east < old_bounds.west:
        count += 1
    if new_bounds.west < old_bounds.west or new_bounds.west > old_bounds.east:
        count += 1
    return count
