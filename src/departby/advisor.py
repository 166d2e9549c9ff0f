"""Main departure advisor class."""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional

from .countdown import TICK_SECONDS, CountdownTimer, classify_urgency, utcnow
from .deadlines import (
    filter_and_sort,
    next_for_branch,
    rank_predictions,
    select_hero,
    select_upcoming,
)
from .feed import normalize_feed
from .mbta_client import FeedUnavailableError, MBTAClient
from .models import Advisory, RankedPrediction, RoutePosition, Settings
from .route_map import map_route_position
from .settings import SettingsStore
from .topology import BRANCHES, DEFAULT_BRANCH, branches_serving

logger = logging.getLogger(__name__)

MIN_POLL_SECONDS = 15
MAX_POLL_SECONDS = 30
DEFAULT_POLL_SECONDS = 30


def process_feed(document: dict, settings: Settings, now: datetime) -> List[RankedPrediction]:
    """
    Turn a raw predictions document into the ranked list for a rider.

    Pure: the same document, settings and now always give the same result.
    """
    predictions = normalize_feed(document)
    ranked = rank_predictions(predictions, settings.walk_time_minutes, now)
    return filter_and_sort(ranked)


def build_route_maps(predictions: List[RankedPrediction], settings: Settings,
                     hero: Optional[RankedPrediction]) -> Dict[str, RoutePosition]:
    """
    Route maps for the dashboard.

    Southbound riders get one map per branch serving their station, each
    following that branch's next train. Northbound riders get a single map
    following the hero.
    """
    maps: Dict[str, RoutePosition] = {}

    if settings.direction_id == 0:
        serving = branches_serving(settings.station_id)
        for branch in BRANCHES:
            if branch not in serving:
                continue
            train = next_for_branch(predictions, branch)
            if train is None:
                continue
            maps[branch] = map_route_position(
                settings.station_id,
                settings.direction_id,
                branch=branch,
                stop_sequence=train.vehicle_stop_sequence,
                vehicle_status=train.vehicle_status,
                minutes_until_departure=train.minutes_until_departure,
            )
    elif hero is not None:
        # Alewife-bound and unknown trips are drawn on the default topology
        branch = hero.branch if hero.branch in BRANCHES else DEFAULT_BRANCH
        maps[branch] = map_route_position(
            settings.station_id,
            settings.direction_id,
            branch=branch,
            stop_sequence=hero.vehicle_stop_sequence,
            vehicle_status=hero.vehicle_status,
            minutes_until_departure=hero.minutes_until_departure,
        )

    return maps


@dataclass(frozen=True)
class RefreshTicket:
    """Identifies one feed request and the settings it was made for."""
    sequence: int
    settings: Settings


class DepartureAdvisor:
    """
    Tells a rider when to leave for the next trains at their station.

    This class provides methods to:
    - Fetch and rank predictions for the current settings
    - Keep the last good result set when a poll fails
    - Ignore responses to requests made under older settings, or overtaken
      by a newer response
    - Assemble the hero train, later departures, route maps and countdown
    """

    def __init__(
        self,
        settings_store: Optional[SettingsStore] = None,
        client: Optional[MBTAClient] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the advisor.

        Args:
            settings_store: Source of rider settings. Defaults to in-memory defaults.
            client: Feed client. Defaults to a new MBTAClient.
            clock: Returns the current timezone-aware time.
        """
        self.settings_store = settings_store or SettingsStore()
        self.client = client or MBTAClient()
        self.countdown = CountdownTimer(clock=clock)
        self._clock = clock

        self._next_sequence = 0
        self._completed_sequence = -1
        self._predictions: List[RankedPrediction] = []
        self._predictions_key = None
        self._last_updated: Optional[datetime] = None
        self._last_error: Optional[Exception] = None
        self._error_key = None

    @property
    def settings(self) -> Settings:
        return self.settings_store.get()

    def update_settings(self, updates: Dict[str, object]) -> Settings:
        """
        Update rider settings.

        Raises:
            SettingsValidationError: If the update is out of bounds. Settings
                and held predictions are left untouched.
        """
        return self.settings_store.update(updates)

    def get_predictions(self, settings: Optional[Settings] = None) -> List[RankedPrediction]:
        """
        Fetch and rank predictions without touching held state.

        Raises:
            FeedUnavailableError: If the feed cannot be fetched.
        """
        settings = settings or self.settings
        document = self.client.get_predictions(
            settings.station_id, settings.route_id, settings.direction_id
        )
        return process_feed(document, settings, self._clock())

    @property
    def predictions(self) -> List[RankedPrediction]:
        """Last good result set, if it still matches the current settings."""
        if self._predictions_key != self.settings.key:
            return []
        return list(self._predictions)

    def begin_refresh(self) -> RefreshTicket:
        ticket = RefreshTicket(sequence=self._next_sequence, settings=self.settings)
        self._next_sequence += 1
        return ticket

    def _is_stale(self, ticket: RefreshTicket) -> bool:
        if ticket.settings.key != self.settings.key:
            logger.warning(f"Discarding response #{ticket.sequence}: settings changed while in flight")
            return True
        if ticket.sequence < self._completed_sequence:
            logger.warning(f"Discarding response #{ticket.sequence}: a newer response already arrived")
            return True
        return False

    def complete_refresh(self, ticket: RefreshTicket, document: dict) -> bool:
        """
        Apply a fetched document.

        Returns:
            True if applied, False if it was discarded as stale.
        """
        if self._is_stale(ticket):
            return False

        now = self._clock()
        self._predictions = process_feed(document, ticket.settings, now)
        self._predictions_key = ticket.settings.key
        self._completed_sequence = ticket.sequence
        self._last_updated = now
        self._last_error = None
        logger.info(f"Loaded {len(self._predictions)} predictions for {ticket.settings.station_id}")
        return True

    def fail_refresh(self, ticket: RefreshTicket, error: Exception) -> bool:
        """
        Record a failed fetch, keeping whatever results are held.

        Returns:
            True if recorded, False if the request was already stale.
        """
        if self._is_stale(ticket):
            return False

        self._completed_sequence = ticket.sequence
        self._last_error = error
        self._error_key = ticket.settings.key
        logger.warning(f"Predictions unavailable: {error}")
        return True

    def refresh(self) -> bool:
        """Fetch and apply predictions for the current settings."""
        ticket = self.begin_refresh()
        try:
            document = self.client.get_predictions(
                ticket.settings.station_id, ticket.settings.route_id, ticket.settings.direction_id
            )
        except FeedUnavailableError as e:
            self.fail_refresh(ticket, e)
            return False
        return self.complete_refresh(ticket, document)

    def _status(self, predictions: List[RankedPrediction]) -> str:
        if predictions:
            return "ok"
        if self._last_error is not None and self._error_key == self.settings.key:
            return "unavailable"
        if self._predictions_key != self.settings.key:
            return "loading"
        return "empty"

    def build_advisory(self) -> Advisory:
        """
        Assemble the dashboard from the held predictions.

        Returns:
            Advisory. The countdown is recomputed against the clock on every
            call; minutes on the predictions are as of the last poll.
        """
        settings = self.settings
        predictions = self.predictions
        hero = select_hero(predictions)
        failing = self._last_error is not None and self._error_key == settings.key

        countdown = self.countdown.set_target(hero.depart_by_time if hero else None)

        return Advisory(
            status=self._status(predictions),
            predictions=predictions,
            hero=hero,
            upcoming=select_upcoming(predictions),
            route_maps=build_route_maps(predictions, settings, hero),
            countdown=countdown,
            urgency=classify_urgency(countdown.total_seconds) if hero else None,
            last_updated=self._last_updated if self._predictions_key == settings.key else None,
            error=str(self._last_error) if failing else None,
        )

    def run(
        self,
        on_update: Callable[[Advisory], None],
        poll_interval: int = DEFAULT_POLL_SECONDS,
        max_ticks: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Poll the feed and tick the countdown until interrupted.

        One cooperative loop drives both timers: the countdown every second,
        the feed every poll_interval seconds.

        Args:
            on_update: Called with a fresh Advisory every tick.
            poll_interval: Seconds between feed polls (15 to 30).
            max_ticks: Stop after this many ticks (None runs forever).
            sleep: Sleep function, replaceable in tests.

        Raises:
            ValueError: If poll_interval is out of range.
        """
        if not MIN_POLL_SECONDS <= poll_interval <= MAX_POLL_SECONDS:
            raise ValueError(
                f"poll_interval must be between {MIN_POLL_SECONDS} and {MAX_POLL_SECONDS} seconds"
            )

        logger.info(f"Starting advisor loop, polling every {poll_interval}s")
        ticks = 0
        next_poll = 0
        polled_key = None
        while max_ticks is None or ticks < max_ticks:
            # Poll on schedule, or straight away once the settings change
            if ticks >= next_poll or polled_key != self.settings.key:
                polled_key = self.settings.key
                self.refresh()
                next_poll = ticks + poll_interval

            on_update(self.build_advisory())
            sleep(TICK_SECONDS)
            ticks += 1
