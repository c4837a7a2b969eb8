"""Dataclasses shared between the ingest, hexgrid and viewport layers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

DRONE = "drone"
AIR_SPACE = "air_space"
DATA_TYPES: Tuple[str, ...] = (DRONE, AIR_SPACE)

BOTH = "both"
TABS: Tuple[str, ...] = (DRONE, AIR_SPACE, BOTH)


def data_types_for_tab(tab: str) -> Tuple[str, ...]:
    """Data types a map tab displays."""

    if tab == BOTH:
        return DATA_TYPES
    if tab in DATA_TYPES:
        return (tab,)
    raise ValueError(f"Unknown tab: {tab}")


@dataclass(frozen=True)
class GeoBounds:
    """Axis-aligned box in degrees. East is not normalised across the dateline."""

    north: float
    south: float
    east: float
    west: float

    @property
    def lat_span(self) -> float:
        return self.north - self.south

    @property
    def lng_span(self) -> float:
        return self.east - self.west

    @property
    def area(self) -> float:
        return self.lat_span * self.lng_span

    def overlap_area(self, other: "GeoBounds") -> float:
        lat_overlap = max(0.0, min(self.north, other.north) - max(self.south, other.south))
        lng_overlap = max(0.0, min(self.east, other.east) - max(self.west, other.west))
        return lat_overlap * lng_overlap

    def contains(self, latitude: float, longitude: float) -> bool:
        return self.south <= latitude <= self.north and self.west <= longitude <= self.east

    def buffered(self, ratio: float) -> "GeoBounds":
        """Grow every edge outward by ``ratio`` of the matching span."""

        lat_pad = self.lat_span * ratio
        lng_pad = self.lng_span * ratio
        return GeoBounds(
            north=self.north + lat_pad,
            south=self.south - lat_pad,
            east=self.east + lng_pad,
            west=self.west - lng_pad,
        )


@dataclass(frozen=True)
class RemoteData:
    """Telemetry reported by a drone's remote."""

    name: Optional[str] = None
    model: Optional[str] = None
    status: Optional[str] = None
    battery: Optional[float] = None
    last_update: Optional[str] = None


@dataclass(frozen=True)
class DronePoint:
    id: str
    user_id: str
    device_location_lat: Optional[float]
    device_location_lng: Optional[float]
    ip_address: str
    is_test: bool
    created_at: str
    remote_data: Optional[RemoteData] = None

    @property
    def coordinates(self) -> Optional[Tuple[float, float]]:
        if self.device_location_lat is None or self.device_location_lng is None:
            return None
        return (self.device_location_lat, self.device_location_lng)

    @property
    def display_name(self) -> str:
        if self.remote_data and self.remote_data.name:
            return self.remote_data.name
        return self.id


@dataclass(frozen=True)
class PropertyPoint:
    id: str
    title: str
    address: str
    latitude: Optional[float]
    longitude: Optional[float]
    has_landing_deck: bool = False
    has_charging_station: bool = False
    has_storage_hub: bool = False
    is_rentable_airspace: bool = False
    no_fly_zone: bool = False
    is_boosted_area: bool = False
    transit_fee: str = "Unknown"
    owner_id: str = "unknown"
    price: Optional[float] = None

    @property
    def coordinates(self) -> Optional[Tuple[float, float]]:
        if self.latitude is None or self.longitude is None:
            return None
        return (self.latitude, self.longitude)

    @property
    def display_name(self) -> str:
        return self.address or "Property"


Point = Union[DronePoint, PropertyPoint]


@dataclass(frozen=True)
class HexCell:
    """One populated cell of the hexagonal partition."""

    cell_id: str
    resolution: int
    count: int
    boundary: Tuple[Tuple[float, float], ...]


@dataclass(frozen=True)
class CachedArea:
    """A fetch log entry."""

    bounds: GeoBounds
    zoom_level: float
    timestamp: float


@dataclass(frozen=True)
class FetchBanner:
    """User-visible error state, remembering the bounds a retry should target."""

    message: str
    bounds: Optional[GeoBounds] = None
    retryable: bool = True


@dataclass(frozen=True)
class FlyTo:
    longitude: float
    latitude: float
    zoom: float


@dataclass(frozen=True)
class SidebarSelection:
    hex_id: str
    point_data: Tuple[Point, ...]
    point_type: str
    fly_to: Optional[FlyTo] = None

    @property
    def point_count(self) -> int:
        return len(self.point_data)

    def to_payload(self) -> dict:
        return {
            "hexId": self.hex_id,
            "pointData": list(self.point_data),
            "pointCount": self.point_count,
            "pointType": self.point_type,
        }


def points_with_coordinates(points: List[Point]) -> List[Tuple[Point, float, float]]:
    """Pair each usable point with its coordinates, dropping the rest."""

    usable = []
    for point in points:
        coords = point.coordinates
        if coords is None:
            continue
        usable.append((point, coords[0], coords[1]))
    return usable
