"""Point/cluster layer for the non-hex map view."""

from __future__ import annotations

import logging
from typing import Optional

from skytrade_explorer.common.errors import FetchError
from skytrade_explorer.common.models import FetchBanner, GeoBounds
from skytrade_explorer.hexgrid.aggregator import FeatureCollection, empty_collection
from skytrade_explorer.hexgrid.export import points_to_feature_collection
from skytrade_explorer.ingest.point_source import PointSource
from skytrade_explorer.viewport.controller import FETCH_FAILED_MESSAGE
from skytrade_explorer.viewport.debounce import Debouncer
from skytrade_explorer.viewport.planner import MovementPolicy

logger = logging.getLogger(__name__)


class PointLayerView:
    """Fetches one data type for the current viewport and keeps it as points.

    Unlike the hex view it replaces its collection on every fetch and only
    refetches once the viewport has moved well away from the last box.
    """

    def __init__(
        self,
        source: PointSource,
        data_type: str,
        policy: Optional[MovementPolicy] = None,
        debounce_seconds: float = 0.3,
    ) -> None:
        self.source = source
        self.data_type = data_type
        self.policy = policy or MovementPolicy()
        self.last_bounds: Optional[GeoBounds] = None
        self.collection: FeatureCollection = empty_collection()
        self.loading = False
        self.error: Optional[FetchBanner] = None
        self.debouncer = Debouncer(self.fetch_points, delay=debounce_seconds)

    def move_end(self, bounds: GeoBounds) -> None:
        self.debouncer.trigger(bounds)

    async def fetch_points(self, bounds: GeoBounds) -> bool:
        """Replace the collection with the points in ``bounds``; False when skipped or failed."""

        if not self.policy.should_fetch(bounds, self.last_bounds):
            return False
        self.last_bounds = bounds
        self.loading = True
        self.error = None
        try:
            points = await self.source.fetch_area(self.data_type, bounds, limited=False)
        except FetchError as exc:
            logger.warning("Error fetching %s points: %s", self.data_type, exc)
            self.error = FetchBanner(message=FETCH_FAILED_MESSAGE, bounds=bounds)
            return False
        finally:
            self.loading = False
        self.collection = points_to_feature_collection(points, self.data_type)
        return True
