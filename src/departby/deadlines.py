"""Walk-adjusted deadlines and ranking of predictions."""

import logging
import math
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from .models import NormalizedPrediction, RankedPrediction

logger = logging.getLogger(__name__)

RESULT_LIMIT = 5
MISSED_GRACE_MINUTES = -1  # Drop trains missed by more than this
HERO_CUTOFF_MINUTES = -5  # Looser than the grace filter: only picks the primary train
UPCOMING_LIMIT = 3


def depart_by(target_time: datetime, walk_time_minutes: int) -> datetime:
    """Latest instant to leave home and still make a train at target_time."""
    return target_time - timedelta(minutes=walk_time_minutes)


def minutes_until(deadline: datetime, now: datetime) -> int:
    """Whole minutes from now to deadline, floored (negative once past)."""
    return math.floor((deadline - now).total_seconds() / 60)


def rank_prediction(prediction: NormalizedPrediction, walk_time_minutes: int,
                    now: datetime) -> RankedPrediction:
    """
    Attach the depart-by time and minutes remaining to a prediction.

    Args:
        prediction: Normalized prediction with at least one time set.
        walk_time_minutes: Rider's walk to the station.
        now: Current time, timezone-aware like the feed timestamps.

    Returns:
        RankedPrediction carrying every field of the input.
    """
    deadline = depart_by(prediction.target_time, walk_time_minutes)
    return RankedPrediction(
        id=prediction.id,
        arrival_time=prediction.arrival_time,
        departure_time=prediction.departure_time,
        direction_id=prediction.direction_id,
        status=prediction.status,
        vehicle_id=prediction.vehicle_id,
        vehicle_stop_sequence=prediction.vehicle_stop_sequence,
        vehicle_status=prediction.vehicle_status,
        branch=prediction.branch,
        prediction_stop_sequence=prediction.prediction_stop_sequence,
        depart_by_time=deadline,
        minutes_until_departure=minutes_until(deadline, now),
    )


def rank_predictions(predictions: Iterable[NormalizedPrediction], walk_time_minutes: int,
                     now: datetime) -> List[RankedPrediction]:
    """Rank every prediction, keeping feed order."""
    return [rank_prediction(p, walk_time_minutes, now) for p in predictions]


def filter_and_sort(candidates: Iterable[RankedPrediction],
                    grace_minutes: int = MISSED_GRACE_MINUTES,
                    limit: int = RESULT_LIMIT) -> List[RankedPrediction]:
    """
    Drop missed trains, order by urgency and cap the list.

    Python's sort is stable, so trains with equal minutes keep the feed's
    (time-sorted) order.
    """
    kept = [c for c in candidates if c.minutes_until_departure >= grace_minutes]
    kept.sort(key=lambda c: c.minutes_until_departure)
    if len(kept) > limit:
        logger.debug(f"Truncating {len(kept)} predictions to {limit}")
    return kept[:limit]


def _is_catchable(prediction: RankedPrediction) -> bool:
    minutes = prediction.minutes_until_departure
    return (minutes if minutes is not None else -1) > HERO_CUTOFF_MINUTES


def select_hero_index(predictions: List[RankedPrediction]) -> int:
    """Index of the first catchable prediction, or -1 if none is."""
    for index, prediction in enumerate(predictions):
        if _is_catchable(prediction):
            return index
    return -1


def select_hero(predictions: List[RankedPrediction]) -> Optional[RankedPrediction]:
    """
    Pick the train to promote as the primary display.

    The first prediction more than five minutes from being missed, falling
    back to the first prediction when none qualifies.
    """
    if not predictions:
        return None
    index = select_hero_index(predictions)
    return predictions[index] if index >= 0 else predictions[0]


def select_upcoming(predictions: List[RankedPrediction],
                    limit: int = UPCOMING_LIMIT) -> List[RankedPrediction]:
    """The predictions listed after the hero as later departures."""
    # With no catchable train the hero falls back to the first entry
    start = max(select_hero_index(predictions), 0) + 1
    return predictions[start:start + limit]


def next_for_branch(predictions: List[RankedPrediction], branch: str) -> Optional[RankedPrediction]:
    """Hero selection restricted to one branch."""
    return select_hero([p for p in predictions if p.branch == branch])
