from skytrade_explorer.common.models import AIR_SPACE, DRONE
from skytrade_explorer.ingest.parsing import parse_coordinate, parse_drone_point, parse_points, parse_property_point


def test_parse_drone_point_fills_defaults():
    point = parse_drone_point({"id": "d1", "deviceLocationLat": 36.1, "deviceLocationLng": -115.2})

    assert point.user_id == "unknown"
    assert point.ip_address == "0.0.0.0"
    assert point.is_test is False
    assert point.created_at
    assert point.remote_data is None
    assert point.coordinates == (36.1, -115.2)
    assert point.display_name == "d1"


def test_parse_drone_point_reads_remote_data():
    point = parse_drone_point(
        {
            "id": "d2",
            "userId": "owner",
            "remoteData": {"name": "Falcon", "model": "X1", "status": "active", "battery": 87, "lastUpdate": "2024-05-01"},
        }
    )

    assert point.remote_data.name == "Falcon"
    assert point.remote_data.battery == 87.0
    assert point.display_name == "Falcon"
    assert point.coordinates is None


def test_parse_property_point_stringifies_ids_and_keeps_missing_coordinates():
    point = parse_property_point({"id": 42, "latitude": "40.5", "hasLandingDeck": True, "price": 120})

    assert point.id == "42"
    assert point.title == "Untitled Property"
    assert point.address == "No address provided"
    assert point.latitude == 40.5
    assert point.longitude is None
    assert point.coordinates is None
    assert point.has_landing_deck is True
    assert point.transit_fee == "Unknown"
    assert point.price == 120.0


def test_parse_points_drops_records_without_ids():
    payload = [{"id": "a"}, {"title": "no id"}, "junk", {"id": ""}, {"id": 7}]

    assert [p.id for p in parse_points(DRONE, payload)] == ["a", "7"]
    assert [p.id for p in parse_points(AIR_SPACE, payload)] == ["a", "7"]


def test_parse_coordinate_rejects_non_numbers():
    assert parse_coordinate(None) is None
    assert parse_coordinate(True) is None
    assert parse_coordinate("abc") is None
    assert parse_coordinate(float("nan")) is None
    assert parse_coordinate("1.5") == 1.5
    assert parse_coordinate(0) == 0.0
