"""Tests for the timer engine and duration formatting."""

from datetime import datetime, timedelta
from datetime import timezone as dt_timezone

from django.test import SimpleTestCase

from .engine import (
    NO_DATA_DISPLAY,
    TimerMode,
    TimerStatus,
    compute_timer_state,
    format_duration,
)

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=dt_timezone.utc)
TWO_HOURS = timedelta(hours=2)


class FormatDurationTests(SimpleTestCase):
    def test_under_one_minute(self):
        self.assertEqual(format_duration(timedelta(seconds=59)), "0:59")

    def test_minutes(self):
        self.assertEqual(format_duration(timedelta(minutes=30)), "30:00")

    def test_just_under_one_hour(self):
        self.assertEqual(format_duration(timedelta(minutes=59, seconds=59)), "59:59")

    def test_exactly_one_hour_uses_hours(self):
        self.assertEqual(format_duration(timedelta(hours=1)), "1:00:00")

    def test_hours_are_not_wrapped_at_a_day(self):
        self.assertEqual(
            format_duration(timedelta(hours=26, minutes=3, seconds=7)), "26:03:07"
        )

    def test_fractional_seconds_truncated(self):
        self.assertEqual(format_duration(timedelta(seconds=61, milliseconds=999)), "1:01")

    def test_negative_uses_absolute_value(self):
        self.assertEqual(format_duration(timedelta(minutes=-10)), "10:00")

    def test_zero(self):
        self.assertEqual(format_duration(timedelta(0)), "0:00")


class ComputeTimerStateTests(SimpleTestCase):
    def test_no_data(self):
        state = compute_timer_state(None, NOW, TWO_HOURS)
        self.assertEqual(state.status, TimerStatus.NO_DATA)
        self.assertFalse(state.has_data)
        self.assertFalse(state.overdue)
        self.assertIsNone(state.elapsed)
        self.assertIsNone(state.remaining)
        self.assertIsNone(state.due_at)
        self.assertEqual(state.display, NO_DATA_DISPLAY)

    def test_no_data_in_stopwatch_mode(self):
        state = compute_timer_state(None, NOW, TWO_HOURS, TimerMode.STOPWATCH)
        self.assertEqual(state.status, TimerStatus.NO_DATA)
        self.assertEqual(state.display, NO_DATA_DISPLAY)

    def test_countdown_pending(self):
        """Last feed 90 minutes ago with a 2h interval leaves 30 minutes."""
        state = compute_timer_state(NOW - timedelta(minutes=90), NOW, TWO_HOURS)
        self.assertEqual(state.status, TimerStatus.PENDING)
        self.assertFalse(state.overdue)
        self.assertEqual(state.remaining, timedelta(minutes=30))
        self.assertEqual(state.elapsed, timedelta(minutes=90))
        self.assertEqual(state.due_at, NOW + timedelta(minutes=30))
        self.assertIsNone(state.overdue_duration)
        self.assertEqual(state.display, "30:00")

    def test_countdown_overdue(self):
        """Last feed 2h10m ago with a 2h interval is 10 minutes overdue."""
        state = compute_timer_state(
            NOW - timedelta(hours=2, minutes=10), NOW, TWO_HOURS
        )
        self.assertEqual(state.status, TimerStatus.OVERDUE)
        self.assertTrue(state.overdue)
        self.assertEqual(state.overdue_duration, timedelta(minutes=10))
        self.assertEqual(state.remaining, timedelta(minutes=-10))
        self.assertEqual(state.display, "+10:00")

    def test_countdown_exactly_due_is_overdue(self):
        state = compute_timer_state(NOW - TWO_HOURS, NOW, TWO_HOURS)
        self.assertTrue(state.overdue)
        self.assertEqual(state.overdue_duration, timedelta(0))
        self.assertEqual(state.display, "+0:00")

    def test_countdown_one_second_before_due(self):
        state = compute_timer_state(
            NOW - TWO_HOURS + timedelta(seconds=1), NOW, TWO_HOURS
        )
        self.assertEqual(state.status, TimerStatus.PENDING)
        self.assertEqual(state.display, "0:01")

    def test_countdown_long_remaining_uses_hours(self):
        state = compute_timer_state(NOW, NOW, timedelta(hours=3))
        self.assertEqual(state.display, "3:00:00")

    def test_stopwatch(self):
        state = compute_timer_state(
            NOW - timedelta(hours=2, minutes=10), NOW, TWO_HOURS, TimerMode.STOPWATCH
        )
        self.assertEqual(state.status, TimerStatus.RUNNING)
        self.assertEqual(state.elapsed, timedelta(hours=2, minutes=10))
        self.assertIsNone(state.remaining)
        self.assertFalse(state.overdue)
        self.assertEqual(state.display, "2:10:00")

    def test_mode_switch_projects_same_reference(self):
        reference = NOW - timedelta(minutes=45)
        countdown = compute_timer_state(reference, NOW, TWO_HOURS, TimerMode.COUNTDOWN)
        stopwatch = compute_timer_state(reference, NOW, TWO_HOURS, TimerMode.STOPWATCH)
        self.assertEqual(countdown.reference, stopwatch.reference)
        self.assertEqual(countdown.due_at, stopwatch.due_at)
        self.assertEqual(countdown.display, "1:15:00")
        self.assertEqual(stopwatch.display, "45:00")

    def test_mode_accepts_string(self):
        state = compute_timer_state(NOW, NOW, TWO_HOURS, "stopwatch")
        self.assertEqual(state.mode, TimerMode.STOPWATCH)

    def test_future_reference_is_pending_beyond_interval(self):
        state = compute_timer_state(NOW + timedelta(minutes=30), NOW, TWO_HOURS)
        self.assertEqual(state.remaining, timedelta(hours=2, minutes=30))
