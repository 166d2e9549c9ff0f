"""Tests for the countdown engine and urgency bands."""

import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock
import sys
from pathlib import Path

# Add src to path so we can import departby
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from departby.countdown import CountdownTimer, classify_urgency, compute_countdown
from departby.models import CountdownState, Urgency

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Clock that only moves when slept on."""

    def __init__(self, now: datetime):
        self.now = now
        self.sleeps = []

    def __call__(self) -> datetime:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += timedelta(seconds=seconds)


class TestComputeCountdown(unittest.TestCase):
    """Test the countdown as a function of (target, now)."""

    def test_no_target(self):
        self.assertEqual(
            compute_countdown(None, NOW),
            CountdownState(minutes=0, seconds=0, total_seconds=0, is_expired=True),
        )

    def test_counting(self):
        state = compute_countdown(NOW + timedelta(seconds=125), NOW)
        self.assertEqual((state.minutes, state.seconds), (2, 5))
        self.assertEqual(state.total_seconds, 125)
        self.assertFalse(state.is_expired)

    def test_partial_seconds_floor(self):
        state = compute_countdown(NOW + timedelta(seconds=59, milliseconds=500), NOW)
        self.assertEqual(state.total_seconds, 59)
        self.assertEqual((state.minutes, state.seconds), (0, 59))

    def test_expired_keeps_negative_total(self):
        state = compute_countdown(NOW - timedelta(seconds=42), NOW)
        self.assertTrue(state.is_expired)
        self.assertEqual((state.minutes, state.seconds), (0, 0))
        self.assertEqual(state.total_seconds, -42)

    def test_zero_is_expired(self):
        state = compute_countdown(NOW, NOW)
        self.assertTrue(state.is_expired)
        self.assertEqual(state.total_seconds, 0)


class TestUrgency(unittest.TestCase):
    """Test urgency band boundaries."""

    def test_boundaries(self):
        cases = [
            (121, Urgency.NORMAL),
            (120, Urgency.LEAVING_SOON),
            (1, Urgency.LEAVING_SOON),
            (0, Urgency.NOW),
            (-60, Urgency.NOW),
            (-61, Urgency.MISSED),
        ]
        for total_seconds, expected in cases:
            with self.subTest(total_seconds=total_seconds):
                self.assertEqual(classify_urgency(total_seconds), expected)

    def test_sixty_seconds_past_is_now(self):
        state = compute_countdown(NOW - timedelta(seconds=60), NOW)
        self.assertTrue(state.is_expired)
        self.assertEqual(classify_urgency(state.total_seconds), Urgency.NOW)

    def test_sixty_one_seconds_past_is_missed(self):
        state = compute_countdown(NOW - timedelta(seconds=61), NOW)
        self.assertEqual(classify_urgency(state.total_seconds), Urgency.MISSED)


class TestCountdownTimer(unittest.TestCase):
    """Test the ticking timer."""

    def test_starts_computed(self):
        clock = FakeClock(NOW)
        timer = CountdownTimer(NOW + timedelta(seconds=90), clock=clock)
        self.assertEqual(timer.state.total_seconds, 90)
        self.assertEqual(timer.urgency, Urgency.LEAVING_SOON)

    def test_set_target_recomputes_immediately(self):
        clock = FakeClock(NOW)
        on_tick = MagicMock()
        timer = CountdownTimer(NOW + timedelta(minutes=10), on_tick=on_tick, clock=clock)
        on_tick.reset_mock()

        state = timer.set_target(NOW + timedelta(seconds=30))

        self.assertEqual(state.total_seconds, 30)
        self.assertEqual(timer.state, state)
        on_tick.assert_called_once_with(state)
        self.assertEqual(clock.sleeps, [])

    def test_clearing_target(self):
        clock = FakeClock(NOW)
        timer = CountdownTimer(NOW + timedelta(minutes=10), clock=clock)
        state = timer.set_target(None)
        self.assertTrue(state.is_expired)
        self.assertFalse(timer.ticking)

    def test_run_ticks_every_second(self):
        clock = FakeClock(NOW)
        seen = []
        timer = CountdownTimer(NOW + timedelta(seconds=10), on_tick=seen.append, clock=clock)

        timer.run(max_ticks=3, sleep=clock.sleep)

        self.assertEqual(clock.sleeps, [1, 1, 1])
        self.assertEqual([s.total_seconds for s in seen], [10, 9, 8, 7])
        self.assertEqual(timer.state.total_seconds, 7)

    def test_run_continues_past_expiry(self):
        clock = FakeClock(NOW)
        timer = CountdownTimer(NOW + timedelta(seconds=1), clock=clock)

        timer.run(max_ticks=3, sleep=clock.sleep)

        self.assertTrue(timer.state.is_expired)
        self.assertEqual(timer.state.total_seconds, -2)

    def test_run_without_target_does_not_tick(self):
        clock = FakeClock(NOW)
        timer = CountdownTimer(clock=clock)
        timer.run(max_ticks=5, sleep=clock.sleep)
        self.assertEqual(clock.sleeps, [])

    def test_stop_from_callback(self):
        clock = FakeClock(NOW)
        timer = None

        def on_tick(state):
            if state.total_seconds <= 8:
                timer.stop()

        timer = CountdownTimer(NOW + timedelta(seconds=10), on_tick=on_tick, clock=clock)
        timer.run(sleep=clock.sleep)

        self.assertEqual(timer.state.total_seconds, 8)
        self.assertEqual(len(clock.sleeps), 2)


if __name__ == "__main__":
    unittest.main()
