"""Tests for tracker.datetime_utils (clock and subtitle formatting)."""

from datetime import datetime, timedelta
from unittest.mock import patch
from zoneinfo import ZoneInfo

from django.test import SimpleTestCase, override_settings
from django.utils import timezone as django_tz

from timers.engine import TimerMode, compute_timer_state

from .datetime_utils import format_clock, format_relative, subtitle_for

NOW = datetime(2025, 2, 15, 18, 30, tzinfo=ZoneInfo("UTC"))
TWO_HOURS = timedelta(hours=2)


class FormatClockTests(SimpleTestCase):
    def test_none(self):
        """None input returns empty string."""
        self.assertEqual(format_clock(None), "")

    def test_explicit_timezone(self):
        self.assertEqual(format_clock(NOW, "America/New_York"), "13:30")

    @override_settings(TIME_ZONE="Europe/Berlin")
    def test_defaults_to_settings_timezone(self):
        self.assertEqual(format_clock(NOW), "19:30")

    def test_custom_format(self):
        self.assertEqual(format_clock(NOW, "UTC", "%I:%M %p"), "06:30 PM")


class FormatRelativeTests(SimpleTestCase):
    def test_none(self):
        self.assertEqual(format_relative(None), "")

    def test_just_now(self):
        self.assertEqual(format_relative(NOW - timedelta(seconds=30), NOW), "just now")

    def test_minutes(self):
        self.assertEqual(format_relative(NOW - timedelta(minutes=1), NOW), "1 min ago")
        self.assertEqual(format_relative(NOW - timedelta(minutes=5), NOW), "5 mins ago")

    def test_hours(self):
        self.assertEqual(format_relative(NOW - timedelta(hours=1), NOW), "1 hour ago")
        self.assertEqual(format_relative(NOW - timedelta(hours=3), NOW), "3 hours ago")

    def test_days(self):
        self.assertEqual(format_relative(NOW - timedelta(days=2), NOW), "2 days ago")

    def test_defaults_to_current_time(self):
        with patch.object(django_tz, "now", return_value=NOW):
            result = format_relative(NOW - timedelta(minutes=10))
        self.assertEqual(result, "10 mins ago")


class SubtitleTests(SimpleTestCase):
    def test_no_data(self):
        state = compute_timer_state(None, NOW, TWO_HOURS)
        self.assertEqual(subtitle_for(state), "No feeds recorded yet")

    def test_pending_shows_due_time(self):
        state = compute_timer_state(NOW - timedelta(minutes=30), NOW, TWO_HOURS)
        self.assertEqual(subtitle_for(state, "UTC"), "Due at 20:00")

    def test_overdue(self):
        state = compute_timer_state(NOW - timedelta(hours=3), NOW, TWO_HOURS)
        self.assertEqual(subtitle_for(state), "Feed overdue")

    def test_stopwatch_shows_last_feed(self):
        state = compute_timer_state(
            NOW - timedelta(minutes=30), NOW, TWO_HOURS, TimerMode.STOPWATCH
        )
        self.assertEqual(subtitle_for(state, "UTC"), "Last feed: 18:00")
