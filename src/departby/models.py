"""Data models for the departure advisor."""

from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Tuple
from datetime import datetime


class Urgency:
    """Urgency bands derived from a countdown."""
    NORMAL = "normal"
    LEAVING_SOON = "leaving-soon"
    NOW = "now"
    MISSED = "missed"


@dataclass(frozen=True)
class Stop:
    """A station on the route topology."""
    id: str
    name: str
    short_name: str
    sequence: int  # Branch-relative ordinal, matches vehicle current_stop_sequence


@dataclass(frozen=True)
class NormalizedPrediction:
    """One train candidate with vehicle and trip attributes resolved inline."""
    id: str
    arrival_time: Optional[datetime] = None
    departure_time: Optional[datetime] = None
    direction_id: Optional[int] = None
    status: Optional[str] = None
    vehicle_id: Optional[str] = None
    vehicle_stop_sequence: Optional[int] = None  # Where the train is now
    vehicle_status: Optional[str] = None  # INCOMING_AT, STOPPED_AT, IN_TRANSIT_TO
    branch: Optional[str] = None
    prediction_stop_sequence: Optional[int] = None  # Sequence of the rider's station on this trip

    @property
    def target_time(self) -> Optional[datetime]:
        """Departure time if known, otherwise arrival time."""
        return self.departure_time or self.arrival_time


@dataclass(frozen=True)
class RankedPrediction(NormalizedPrediction):
    """A prediction with its walk-adjusted deadline."""
    depart_by_time: Optional[datetime] = None
    minutes_until_departure: Optional[int] = None

    def to_dict(self) -> Dict[str, object]:
        """Serialize to the camelCase shape consumers expect."""
        return {
            "id": self.id,
            "arrivalTime": _isoformat(self.arrival_time),
            "departureTime": _isoformat(self.departure_time),
            "directionId": self.direction_id,
            "status": self.status,
            "vehicleId": self.vehicle_id,
            "stopSequence": self.vehicle_stop_sequence,
            "vehicleStatus": self.vehicle_status,
            "branch": self.branch,
            "predictionStopSequence": self.prediction_stop_sequence,
            "departByTime": _isoformat(self.depart_by_time),
            "minutesUntilDeparture": self.minutes_until_departure,
        }


@dataclass(frozen=True)
class CountdownState:
    """Live countdown to a depart-by instant."""
    minutes: int
    seconds: int
    total_seconds: int  # Goes negative once the target has passed
    is_expired: bool


@dataclass
class RoutePosition:
    """A rider-centered window of the route and where the train sits in it."""
    stops: List[Stop]  # In the rider's direction of travel
    station_index: int  # -1 when the station is not on this branch
    train_index: Optional[int] = None  # None when the train is not shown
    train_position: Optional[float] = None  # Fractional index in the full topology
    in_transit: bool = False
    between: Optional[Tuple[int, int]] = None  # Display indices the train sits between
    passed: List[bool] = field(default_factory=list)
    window: Tuple[int, int] = (0, 0)  # Slice of the full topology shown
    branch: Optional[str] = None
    direction_id: int = 0

    @property
    def has_train(self) -> bool:
        return self.train_index is not None


@dataclass(frozen=True)
class Settings:
    """Rider preferences consumed by the pipeline."""
    walk_time_minutes: int = 6
    station_id: str = "place-jfk"
    route_id: str = "Red"
    direction_id: int = 0  # 0 = southbound (Ashmont/Braintree), 1 = northbound (Alewife)

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)

    @property
    def key(self) -> Tuple[str, str, int, int]:
        """Identity used to match fetched data to the settings it was requested for."""
        return (self.station_id, self.route_id, self.direction_id, self.walk_time_minutes)


@dataclass
class Advisory:
    """Everything a display needs for one refresh of the dashboard."""
    status: str  # "ok", "empty", "loading" or "unavailable"
    predictions: List[RankedPrediction]
    hero: Optional[RankedPrediction] = None
    upcoming: List[RankedPrediction] = field(default_factory=list)
    route_maps: Dict[str, RoutePosition] = field(default_factory=dict)
    countdown: Optional[CountdownState] = None
    urgency: Optional[str] = None
    last_updated: Optional[datetime] = None
    error: Optional[str] = None  # Set while polls fail; predictions are then last known good


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None
