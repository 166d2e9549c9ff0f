"""Normalization of MBTA v3 prediction documents."""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from google.transit import gtfs_realtime_pb2

from .models import NormalizedPrediction

logger = logging.getLogger(__name__)

# INCOMING_AT, STOPPED_AT, IN_TRANSIT_TO
VehicleStopStatus = gtfs_realtime_pb2.VehiclePosition.VehicleStopStatus

INCOMING_AT = VehicleStopStatus.Name(gtfs_realtime_pb2.VehiclePosition.INCOMING_AT)
STOPPED_AT = VehicleStopStatus.Name(gtfs_realtime_pb2.VehiclePosition.STOPPED_AT)
IN_TRANSIT_TO = VehicleStopStatus.Name(gtfs_realtime_pb2.VehiclePosition.IN_TRANSIT_TO)

# Checked in this order, first substring match wins. A crude heuristic:
# a headsign naming two of these resolves to whichever is listed first.
BRANCH_NAMES = ("Ashmont", "Braintree", "Alewife")


class RelatedRecordTable:
    """
    Lookup of the `included` side records of one feed response.

    Built fresh for every poll and discarded once the poll is normalized, so a
    vehicle or trip that drops out of the feed can never be resolved from a
    previous response.
    """

    def __init__(self, stops: Dict[str, dict] = None, vehicles: Dict[str, dict] = None,
                 trips: Dict[str, dict] = None):
        self.stops: Dict[str, dict] = dict(stops or {})
        self.vehicles: Dict[str, dict] = dict(vehicles or {})
        self.trips: Dict[str, dict] = dict(trips or {})

    @classmethod
    def from_included(cls, included: Optional[List[dict]]) -> "RelatedRecordTable":
        """
        Index included records by type and id.

        Args:
            included: The document's `included` list (may be None).

        Returns:
            RelatedRecordTable with stop, vehicle and trip records.
        """
        table = cls()
        buckets = {"stop": table.stops, "vehicle": table.vehicles, "trip": table.trips}
        for item in included or []:
            bucket = buckets.get(item.get("type"))
            if bucket is not None and item.get("id") is not None:
                bucket[item["id"]] = item
        return table

    def vehicle(self, vehicle_id: Optional[str]) -> Optional[dict]:
        return self.vehicles.get(vehicle_id) if vehicle_id else None

    def trip(self, trip_id: Optional[str]) -> Optional[dict]:
        return self.trips.get(trip_id) if trip_id else None


def resolve_branch(headsign: Optional[str]) -> Optional[str]:
    """
    Derive the Red Line branch from a trip headsign.

    Case-sensitive substring match against Ashmont, Braintree and Alewife, in
    that order. Returns None for no headsign or no match.
    """
    if not headsign:
        return None
    for name in BRANCH_NAMES:
        if name in headsign:
            return name
    return None


def parse_vehicle_status(value: Optional[str]) -> Optional[str]:
    """Return the status name if it is a known VehicleStopStatus, else None."""
    if value is None:
        return None
    try:
        return VehicleStopStatus.Name(VehicleStopStatus.Value(value))
    except ValueError:
        logger.debug(f"Ignoring unknown vehicle status {value!r}")
        return None


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 feed timestamp.

    None, non-strings, garbage and times without a UTC offset all yield None.
    """
    if not value or not isinstance(value, str):
        if value:
            logger.debug(f"Unparseable timestamp {value!r}")
        return None
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Unparseable timestamp {value!r}")
        return None
    if parsed.tzinfo is None:
        logger.debug(f"Timestamp {value!r} has no UTC offset")
        return None
    return parsed


def _relationship_id(record: dict, name: str) -> Optional[str]:
    relationship = (record.get("relationships") or {}).get(name) or {}
    data = relationship.get("data") or {}
    return data.get("id")


def normalize_prediction(record: dict, table: RelatedRecordTable) -> Optional[NormalizedPrediction]:
    """
    Resolve one raw prediction against the related records.

    Args:
        record: A single item of the document's `data` list.
        table: Related records from the same response.

    Returns:
        NormalizedPrediction, or None when the record has neither an arrival
        nor a departure time.
    """
    attributes = record.get("attributes") or {}
    arrival_time = parse_timestamp(attributes.get("arrival_time"))
    departure_time = parse_timestamp(attributes.get("departure_time"))

    if arrival_time is None and departure_time is None:
        logger.debug(f"Dropping prediction {record.get('id')}: no arrival or departure time")
        return None

    vehicle_id = _relationship_id(record, "vehicle")
    vehicle = table.vehicle(vehicle_id)
    vehicle_attributes = (vehicle or {}).get("attributes") or {}

    trip = table.trip(_relationship_id(record, "trip"))
    headsign = ((trip or {}).get("attributes") or {}).get("headsign")

    return NormalizedPrediction(
        id=record.get("id"),
        arrival_time=arrival_time,
        departure_time=departure_time,
        direction_id=attributes.get("direction_id"),
        status=attributes.get("status"),
        vehicle_id=vehicle_id,
        vehicle_stop_sequence=vehicle_attributes.get("current_stop_sequence"),
        vehicle_status=parse_vehicle_status(vehicle_attributes.get("current_status")),
        branch=resolve_branch(headsign),
        prediction_stop_sequence=attributes.get("stop_sequence"),
    )


def normalize_feed(document: dict) -> List[NormalizedPrediction]:
    """
    Normalize a full predictions document, preserving feed order.

    Records without any usable time are dropped; the rest of the batch is
    unaffected.
    """
    table = RelatedRecordTable.from_included(document.get("included"))
    predictions: List[NormalizedPrediction] = []

    for record in document.get("data") or []:
        prediction = normalize_prediction(record, table)
        if prediction is not None:
            predictions.append(prediction)

    logger.debug(f"Normalized {len(predictions)} of {len(document.get('data') or [])} predictions")
    return predictions
