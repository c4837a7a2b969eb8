"""Persist renderable FeatureCollections for the dashboard."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence

from skytrade_explorer.common.models import DRONE, Point, points_with_coordinates

FeatureCollection = Dict[str, Any]


class GeoJSONWriter:
    """Write FeatureCollections into a folder, one ``<name>.geojson`` each."""

    def __init__(self, base_path: str) -> None:
        self.base_path = Path(base_path)

    def write(self, collections: Mapping[str, FeatureCollection]) -> List[Path]:
        self.base_path.mkdir(parents=True, exist_ok=True)
        written = []
        for name, collection in collections.items():
            target = self.base_path / f"{name}.geojson"
            with open(target, "w", encoding="utf-8") as handle:
                json.dump(collection, handle)
            written.append(target)
        return written


def points_to_feature_collection(points: Sequence[Point], data_type: str) -> FeatureCollection:
    """Point layer for the non-hex view; points without coordinates are left out."""

    features = []
    for point, lat, lng in points_with_coordinates(list(points)):
        properties: Dict[str, Any] = {"id": point.id, "name": point.display_name}
        if data_type != DRONE:
            properties["price"] = getattr(point, "price", None)
            properties["isRentableAirspace"] = getattr(point, "is_rentable_airspace", False)
        features.append(
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [lng, lat]},
                "properties": properties,
            }
        )
    return {"type": "FeatureCollection", "features": features}
