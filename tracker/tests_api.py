"""API tests for settings, timer, analytics and reminder endpoints."""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from rest_framework import status

from feedings.models import FeedKind
from timers.engine import TimerMode

from .exceptions import PersistenceFailure
from .models import ReminderSource, Theme
from .tests_base import T0, TrackerAPITestCase


class SettingsAPITests(TrackerAPITestCase):
    def test_get_defaults(self):
        response = self.client.get(self.url("settings/"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            response.data,
            {
                "intervalHours": 2.0,
                "theme": "default",
                "darkMode": False,
                "viewMode": "countdown",
            },
        )

    def test_patch_saves_settings(self):
        response = self.client.patch(
            self.url("settings/"),
            {"intervalHours": 3, "theme": "ocean", "darkMode": True},
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["intervalHours"], 3.0)
        self.assertEqual(response.data["theme"], "ocean")
        self.assertTrue(response.data["darkMode"])
        self.assertIsNone(response.data["warning"])

        self.assertEqual(self.tracker.settings.interval, timedelta(hours=3))
        self.assertEqual(self.tracker.settings.theme, Theme.OCEAN)
        self.assertTrue(self.path.exists())

    def test_patch_fractional_interval(self):
        response = self.client.patch(self.url("settings/"), {"intervalHours": 2.5})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            self.tracker.settings.interval, timedelta(hours=2, minutes=30)
        )

    def test_patch_rejects_non_positive_interval(self):
        for value in (0, -1):
            with self.subTest(value=value):
                response = self.client.patch(
                    self.url("settings/"), {"intervalHours": value}
                )
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertIn("intervalHours", response.data)
        self.assertEqual(self.tracker.settings.interval, timedelta(hours=2))

    def test_patch_rejects_interval_over_a_day(self):
        response = self.client.patch(self.url("settings/"), {"intervalHours": 25})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_patch_rejects_unknown_theme(self):
        response = self.client.patch(self.url("settings/"), {"theme": "neon"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("theme", response.data)

    def test_patch_view_mode_is_not_saved(self):
        response = self.client.patch(self.url("settings/"), {"viewMode": "stopwatch"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["viewMode"], "stopwatch")
        self.assertEqual(self.tracker.settings.view_mode, TimerMode.STOPWATCH)
        self.assertFalse(self.path.exists())

    def test_patch_reports_save_failure(self):
        with patch.object(
            self.tracker.store, "save", side_effect=PersistenceFailure("read-only")
        ):
            response = self.client.patch(self.url("settings/"), {"theme": "sage"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("read-only", response.data["warning"])
        self.assertEqual(self.tracker.settings.theme, Theme.SAGE)


class TimerAPITests(TrackerAPITestCase):
    def test_no_feeds(self):
        response = self.client.get(self.url("timer/"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "no_data")
        self.assertEqual(response.data["display"], "--:--")
        self.assertEqual(response.data["subtitle"], "No feeds recorded yet")
        self.assertEqual(response.data["last_feed_relative"], "")
        self.assertIsNone(response.data["reference"])
        self.assertIsNone(response.data["remaining_seconds"])
        self.assertEqual(response.data["reminder"], {"phase": "idle", "fired": False})

    def test_pending_countdown(self):
        self.tracker.start_feed(T0)
        self.set_now(T0 + timedelta(minutes=90))

        response = self.client.get(self.url("timer/"))

        self.assertEqual(response.data["mode"], "countdown")
        self.assertEqual(response.data["status"], "pending")
        self.assertEqual(response.data["display"], "30:00")
        self.assertFalse(response.data["overdue"])
        self.assertEqual(response.data["reference"], "2025-01-15T08:00:00Z")
        self.assertEqual(response.data["due_at"], "2025-01-15T10:00:00Z")
        self.assertEqual(response.data["interval_seconds"], 7200)
        self.assertEqual(response.data["elapsed_seconds"], 5400)
        self.assertEqual(response.data["remaining_seconds"], 1800)
        self.assertIsNone(response.data["overdue_seconds"])
        self.assertEqual(response.data["reminder"]["phase"], "armed")
        self.assertEqual(response.data["last_feed_relative"], "1 hour ago")

    @patch("notifications.tasks.deliver_feed_reminder")
    def test_overdue_fires_reminder_once(self, mock_task):
        self.tracker.start_feed(T0)
        self.set_now(T0 + timedelta(hours=2, minutes=10))

        first = self.client.get(self.url("timer/"))
        second = self.client.get(self.url("timer/"))

        self.assertEqual(first.data["display"], "+10:00")
        self.assertTrue(first.data["overdue"])
        self.assertEqual(first.data["overdue_seconds"], 600)
        self.assertEqual(first.data["subtitle"], "Feed overdue")
        self.assertTrue(first.data["reminder"]["fired"])
        self.assertFalse(second.data["reminder"]["fired"])
        self.assertEqual(second.data["reminder"]["phase"], "fired")
        mock_task.delay.assert_called_once()

    @patch("notifications.tasks.deliver_feed_reminder")
    def test_overdue_leaves_reminder_to_terminal(self, mock_task):
        self.tracker.reminder_source = ReminderSource.TERMINAL
        self.tracker.start_feed(T0)
        self.set_now(T0 + timedelta(hours=2, minutes=10))

        response = self.client.get(self.url("timer/"))

        self.assertTrue(response.data["overdue"])
        self.assertFalse(response.data["reminder"]["fired"])
        mock_task.delay.assert_not_called()

    def test_stopwatch_mode(self):
        self.tracker.start_feed(T0)
        self.client.patch(self.url("settings/"), {"viewMode": "stopwatch"})
        self.set_now(T0 + timedelta(minutes=45))

        response = self.client.get(self.url("timer/"))

        self.assertEqual(response.data["mode"], "stopwatch")
        self.assertEqual(response.data["status"], "running")
        self.assertEqual(response.data["display"], "45:00")
        self.assertEqual(response.data["subtitle"], "Last feed: 08:00")
        self.assertEqual(response.data["last_feed_relative"], "45 mins ago")

    def test_responses_are_not_cached(self):
        response = self.client.get(self.url("timer/"))
        self.assertEqual(
            response["Cache-Control"], "no-cache, no-store, must-revalidate"
        )
        self.assertEqual(response["Pragma"], "no-cache")


class AnalyticsAPITests(TrackerAPITestCase):
    def add_feed(self, hours_before_now, kind=FeedKind.LEFT, amount=None):
        record = self.tracker.start_feed(T0 - timedelta(hours=hours_before_now), kind)
        if amount is not None:
            self.tracker.edit_feed(record.value.id, {"amount": Decimal(amount)}, T0)

    def test_summary_empty_log(self):
        response = self.client.get(self.url("analytics/summary/"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["window_hours"], 24.0)
        self.assertEqual(response.data["count"], 0)
        self.assertEqual(response.data["total_feeds"], 0)
        self.assertIsNone(response.data["average_gap_seconds"])
        self.assertIsNone(response.data["average_gap_hours"])
        self.assertIsNone(response.data["last_feed_at"])
        self.assertEqual(response.data["total_amount"], "0.0")

    def test_summary(self):
        self.add_feed(30)
        self.add_feed(9, FeedKind.BOTTLE, "120")
        self.add_feed(5, FeedKind.FORMULA, "90.5")
        self.add_feed(2)

        response = self.client.get(self.url("analytics/summary/"))

        self.assertEqual(response.data["count"], 3)
        self.assertEqual(response.data["total_feeds"], 4)
        # Gaps 3h, 4h, 21h
        self.assertEqual(response.data["average_gap_seconds"], 28 * 3600 // 3)
        self.assertEqual(response.data["average_gap_hours"], 9.3)
        self.assertEqual(response.data["last_feed_at"], "2025-01-15T06:00:00Z")
        self.assertEqual(response.data["total_amount"], "210.5")
        self.assertEqual(
            response.data["by_kind"],
            {"breast-l": 1, "breast-r": 0, "bottle": 1, "formula": 1},
        )

    def test_summary_custom_window_and_sample(self):
        self.add_feed(30)
        self.add_feed(9)
        self.add_feed(5)

        response = self.client.get(
            self.url("analytics/summary/"), {"hours": 48, "sample": 1}
        )

        self.assertEqual(response.data["window_hours"], 48.0)
        self.assertEqual(response.data["count"], 3)
        self.assertEqual(response.data["average_gap_hours"], 4.0)

    def test_summary_rejects_invalid_query(self):
        for params in ({"hours": 0}, {"hours": "abc"}, {"sample": 0}):
            with self.subTest(params=params):
                response = self.client.get(self.url("analytics/summary/"), params)
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ReminderStatusAPITests(TrackerAPITestCase):
    def test_idle(self):
        response = self.client.get(self.url("notifications/reminder/"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            response.data,
            {"phase": "idle", "epoch_start": None, "epoch_interval_hours": None},
        )

    def test_armed_after_feed(self):
        self.tracker.start_feed(T0)
        response = self.client.get(self.url("notifications/reminder/"))
        self.assertEqual(response.data["phase"], "armed")
        self.assertEqual(response.data["epoch_start"], "2025-01-15T08:00:00Z")
        self.assertEqual(response.data["epoch_interval_hours"], 2.0)
