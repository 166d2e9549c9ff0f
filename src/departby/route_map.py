"""Projection of a train's reported position onto a rider-centered route window."""

import logging
from typing import List, Optional

from .feed import IN_TRANSIT_TO
from .models import RoutePosition, Stop
from .topology import get_stops_for_branch

logger = logging.getLogger(__name__)

STOPS_RANGE = 5  # Stops shown on each side of the rider's station
PASSED_STOP_THRESHOLD_MINUTES = 3.5


def _index_of_station(stops: List[Stop], station_id: str) -> int:
    for index, stop in enumerate(stops):
        if stop.id == station_id:
            return index
    return -1


def _index_of_sequence(stops: List[Stop], stop_sequence: Optional[int]) -> int:
    # Vehicle sequences are sparse branch ordinals, not list positions
    if stop_sequence is None:
        return -1
    for index, stop in enumerate(stops):
        if stop.sequence == stop_sequence:
            return index
    return -1


def map_route_position(
    station_id: str,
    direction_id: int,
    branch: Optional[str] = None,
    stop_sequence: Optional[int] = None,
    vehicle_status: Optional[str] = None,
    minutes_until_departure: Optional[float] = None,
) -> RoutePosition:
    """
    Place a train on the stretch of route around the rider's station.

    Args:
        station_id: Rider's station (e.g., "place-jfk"). Must be on the branch's
            topology; otherwise the window degenerates to the start of the line.
        direction_id: 0 southbound from the trunk into a branch, 1 northbound.
        branch: "Ashmont" or "Braintree"; anything else uses the default branch.
        stop_sequence: Vehicle's current_stop_sequence.
        vehicle_status: Vehicle's current_status.
        minutes_until_departure: Gates "passed" marking (below 3.5 minutes only).

    Returns:
        RoutePosition whose stops run in the direction of travel. Indices are
        positions within that window; a train outside it has train_index None.
    """
    stops = get_stops_for_branch(branch)
    station_actual = _index_of_station(stops, station_id)
    train_actual = _index_of_sequence(stops, stop_sequence)
    step = 1 if direction_id == 0 else -1

    in_transit = vehicle_status == IN_TRANSIT_TO
    train_position = None
    if train_actual >= 0:
        # Halfway to the next stop in the direction of travel
        train_position = train_actual + 0.5 * step if in_transit else float(train_actual)

    start = max(0, station_actual - STOPS_RANGE)
    end = min(len(stops), station_actual + STOPS_RANGE + 1)
    window = stops[start:end]
    display = list(reversed(window)) if direction_id == 1 else window

    def to_display(actual: int) -> Optional[int]:
        local = actual - start
        if actual < 0 or not 0 <= local < len(window):
            return None
        return len(window) - 1 - local if direction_id == 1 else local

    station_index = to_display(station_actual)
    if station_index is None:
        station_index = -1
    train_index = to_display(train_actual)

    between = None
    if in_transit and train_index is not None and train_index + 1 < len(display):
        # Display order follows the direction of travel, so the next stop is always +1
        between = (train_index, train_index + 1)

    show_passed = (
        minutes_until_departure is not None
        and minutes_until_departure < PASSED_STOP_THRESHOLD_MINUTES
        and train_index is not None
        and station_index >= 0
    )
    passed = []
    for index in range(len(display)):
        actual = start + (len(window) - 1 - index if direction_id == 1 else index)
        if direction_id == 0:
            is_between = train_actual < actual < station_actual
        else:
            is_between = station_actual < actual < train_actual
        passed.append(show_passed and is_between)

    if stop_sequence is not None and train_index is None:
        logger.debug(f"Train at sequence {stop_sequence} is outside the window around {station_id}")

    return RoutePosition(
        stops=display,
        station_index=station_index,
        train_index=train_index,
        train_position=train_position,
        in_transit=in_transit,
        between=between,
        passed=passed,
        window=(start, end),
        branch=branch,
        direction_id=direction_id,
    )


def render_route(position: RoutePosition) -> str:
    """
    Render a one-line text strip of the route window.

    [*] marks the rider's station, T a train at a stop, >T< a train between
    stops, a lowercase x a stop between the train and the rider.
    """
    cells = []
    for index, stop in enumerate(position.stops):
        if index == position.station_index:
            cell = f"[{stop.short_name}]"
        elif position.passed and position.passed[index]:
            cell = f"x {stop.short_name}"
        else:
            cell = stop.short_name

        if position.has_train and index == position.train_index and position.between is None:
            cell = f"T {cell}"
        cells.append(cell)
        if position.between is not None and index == position.between[0]:
            cells.append(">T<")
    return " - ".join(cells)
