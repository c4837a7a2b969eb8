"""In-memory normalized cache of fetched points."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from skytrade_explorer.common.models import DATA_TYPES, CachedArea, Point

FETCH_LOG_LIMIT = 100


class PointStore:
    """Keeps one id -> point map per data type plus a bounded fetch log.

    Meant to be owned by a single viewport session; nothing here locks.
    """

    def __init__(self, fetch_log_limit: int = FETCH_LOG_LIMIT) -> None:
        self.fetch_log_limit = max(int(fetch_log_limit), 1)
        self._points: Dict[str, Dict[str, Point]] = {data_type: {} for data_type in DATA_TYPES}
        self._fetch_log: List[CachedArea] = []

    def add_points(self, data_type: str, points: Iterable[Point]) -> int:
        """Upsert by id. Returns how many points were handed in."""

        bucket = self._bucket(data_type)
        added = 0
        for point in points:
            bucket[point.id] = point
            added += 1
        return added

    def all_points(self, data_type: str) -> List[Point]:
        return list(self._bucket(data_type).values())

    def get(self, data_type: str, point_id: str) -> Optional[Point]:
        return self._bucket(data_type).get(point_id)

    def count(self, data_type: str) -> int:
        return len(self._bucket(data_type))

    def record_fetched_area(self, area: CachedArea) -> None:
        self._fetch_log.append(area)
        if len(self._fetch_log) > self.fetch_log_limit:
            self._fetch_log = self._fetch_log[-self.fetch_log_limit :]

    def recent_areas(self, limit: Optional[int] = None) -> List[CachedArea]:
        if limit is None:
            return list(self._fetch_log)
        if limit <= 0:
            return []
        return self._fetch_log[-limit:]

    def clear(self) -> None:
        for bucket in self._points.values():
            bucket.clear()
        self._fetch_log = []

    def _bucket(self, data_type: str) -> Dict[str, Point]:
        try:
            return self._points[data_type]
        except KeyError as exc:
            raise ValueError(f"Unknown data type: {data_type}") from exc
