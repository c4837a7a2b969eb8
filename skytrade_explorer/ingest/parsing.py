"""Turn raw API JSON into immutable point records."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional

from skytrade_explorer.common.models import DRONE, DronePoint, Point, PropertyPoint, RemoteData

logger = logging.getLogger(__name__)


def parse_points(data_type: str, payload: Iterable[Any]) -> List[Point]:
    """Parse a response body; records without an id are dropped."""

    parser = parse_drone_point if data_type == DRONE else parse_property_point
    points: List[Point] = []
    skipped = 0
    for raw in payload:
        if not isinstance(raw, Mapping) or raw.get("id") in (None, ""):
            skipped += 1
            continue
        points.append(parser(raw))
    if skipped:
        logger.debug("Skipped %d %s records without an id", skipped, data_type)
    return points


def parse_drone_point(raw: Mapping[str, Any]) -> DronePoint:
    return DronePoint(
        id=str(raw["id"]),
        user_id=str(raw.get("userId") or "unknown"),
        device_location_lat=parse_coordinate(raw.get("deviceLocationLat")),
        device_location_lng=parse_coordinate(raw.get("deviceLocationLng")),
        ip_address=str(raw.get("ipAddress") or "0.0.0.0"),
        is_test=bool(raw.get("isTest") or False),
        created_at=str(raw.get("createdAt") or datetime.now(timezone.utc).isoformat()),
        remote_data=parse_remote_data(raw.get("remoteData")),
    )


def parse_property_point(raw: Mapping[str, Any]) -> PropertyPoint:
    return PropertyPoint(
        id=str(raw["id"]),
        title=str(raw.get("title") or "Untitled Property"),
        address=str(raw.get("address") or "No address provided"),
        latitude=parse_coordinate(raw.get("latitude")),
        longitude=parse_coordinate(raw.get("longitude")),
        has_landing_deck=bool(raw.get("hasLandingDeck") or False),
        has_charging_station=bool(raw.get("hasChargingStation") or False),
        has_storage_hub=bool(raw.get("hasStorageHub") or False),
        is_rentable_airspace=bool(raw.get("isRentableAirspace") or False),
        no_fly_zone=bool(raw.get("noFlyZone") or False),
        is_boosted_area=bool(raw.get("isBoostedArea") or False),
        transit_fee=str(raw.get("transitFee") or "Unknown"),
        owner_id=str(raw.get("ownerId") or "unknown"),
        price=parse_coordinate(raw.get("price")),
    )


def parse_remote_data(raw: Any) -> Optional[RemoteData]:
    if not isinstance(raw, Mapping) or not raw:
        return None
    battery = raw.get("battery")
    return RemoteData(
        name=raw.get("name"),
        model=raw.get("model"),
        status=raw.get("status"),
        battery=float(battery) if isinstance(battery, (int, float)) and not isinstance(battery, bool) else None,
        last_update=raw.get("lastUpdate"),
    )


def parse_coordinate(value: Any) -> Optional[float]:
    """Coerce a JSON number (or numeric string) to float; anything else is None."""

    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number
