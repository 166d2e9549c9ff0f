"""Builders for MBTA v3 prediction documents used across the tests."""

from datetime import datetime, timedelta, timezone

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


def at(minutes: float = 0, seconds: float = 0) -> str:
    """ISO-8601 timestamp relative to NOW."""
    return (NOW + timedelta(minutes=minutes, seconds=seconds)).isoformat()


def prediction(pred_id, departure=None, arrival=None, vehicle_id=None, trip_id=None,
               direction_id=0, stop_sequence=130, status=None):
    relationships = {"stop": {"data": {"id": "70095", "type": "stop"}}}
    if vehicle_id:
        relationships["vehicle"] = {"data": {"id": vehicle_id, "type": "vehicle"}}
    else:
        relationships["vehicle"] = {"data": None}
    if trip_id:
        relationships["trip"] = {"data": {"id": trip_id, "type": "trip"}}
    return {
        "id": pred_id,
        "type": "prediction",
        "attributes": {
            "arrival_time": arrival,
            "departure_time": departure,
            "direction_id": direction_id,
            "status": status,
            "stop_sequence": stop_sequence,
        },
        "relationships": relationships,
    }


def vehicle(vehicle_id, stop_sequence, status="STOPPED_AT"):
    return {
        "id": vehicle_id,
        "type": "vehicle",
        "attributes": {"current_stop_sequence": stop_sequence, "current_status": status},
    }


def trip(trip_id, headsign):
    return {"id": trip_id, "type": "trip", "attributes": {"headsign": headsign}}


def stop(stop_id, name="JFK/UMass"):
    return {"id": stop_id, "type": "stop", "attributes": {"name": name}}


def document(data, included=None):
    return {"data": list(data), "included": list(included or [])}
