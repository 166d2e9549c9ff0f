"""Live countdown to a depart-by time."""

import logging
import math
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from .models import CountdownState, Urgency

logger = logging.getLogger(__name__)

TICK_SECONDS = 1
NOW_WINDOW_SECONDS = 60  # "Leave now" persists this long after the deadline
LEAVING_SOON_SECONDS = 120

EXPIRED_WITHOUT_TARGET = CountdownState(minutes=0, seconds=0, total_seconds=0, is_expired=True)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def compute_countdown(target: Optional[datetime], now: datetime) -> CountdownState:
    """
    Countdown from now to target.

    With no target the countdown is zeroed and expired. Once the target has
    passed minutes and seconds stay at zero while total_seconds keeps going
    negative.
    """
    if target is None:
        return EXPIRED_WITHOUT_TARGET

    total_seconds = math.floor((target - now).total_seconds())
    if total_seconds <= 0:
        return CountdownState(minutes=0, seconds=0, total_seconds=total_seconds, is_expired=True)

    return CountdownState(
        minutes=total_seconds // 60,
        seconds=total_seconds % 60,
        total_seconds=total_seconds,
        is_expired=False,
    )


def classify_urgency(total_seconds: int) -> str:
    """
    Map seconds remaining to an urgency band.

    "now" is checked before "missed", so zero remaining is "now".
    """
    if 0 < total_seconds <= LEAVING_SOON_SECONDS:
        return Urgency.LEAVING_SOON
    if -NOW_WINDOW_SECONDS <= total_seconds <= 0:
        return Urgency.NOW
    if total_seconds < -NOW_WINDOW_SECONDS:
        return Urgency.MISSED
    return Urgency.NORMAL


class CountdownTimer:
    """
    Re-evaluates the countdown once per tick for a single target.

    The state is a pure function of (clock(), target); the timer only decides
    when to recompute and who to tell.
    """

    def __init__(
        self,
        target: Optional[datetime] = None,
        on_tick: Optional[Callable[[CountdownState], None]] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the timer.

        Args:
            target: Depart-by instant, or None for no target.
            on_tick: Called with every recomputed state.
            clock: Returns the current timezone-aware time.
        """
        self._target = target
        self._on_tick = on_tick
        self._clock = clock
        self._running = False
        self.state = self.tick()

    @property
    def target(self) -> Optional[datetime]:
        return self._target

    @property
    def ticking(self) -> bool:
        """Whether there is anything to count down to."""
        return self._target is not None

    def set_target(self, target: Optional[datetime]) -> CountdownState:
        """Switch targets and recompute right away instead of on the next tick."""
        if target != self._target:
            logger.debug(f"Countdown target changed to {target}")
        self._target = target
        return self.tick()

    def tick(self) -> CountdownState:
        self.state = compute_countdown(self._target, self._clock())
        if self._on_tick is not None:
            self._on_tick(self.state)
        return self.state

    @property
    def urgency(self) -> str:
        return classify_urgency(self.state.total_seconds)

    def run(self, max_ticks: Optional[int] = None,
            sleep: Callable[[float], None] = time.sleep) -> None:
        """
        Tick every second until stop() is called or max_ticks is reached.

        Without a target there is nothing to count, so the loop returns
        immediately.
        """
        self._running = True
        ticks = 0
        while self._running and self.ticking:
            if max_ticks is not None and ticks >= max_ticks:
                break
            sleep(TICK_SECONDS)
            self.tick()
            ticks += 1
        self._running = False

    def stop(self) -> None:
        self._running = False
