"""Tests for the run_timer management command."""

from datetime import timedelta
from io import StringIO
from unittest.mock import patch

from django.core.management import call_command

from .models import ReminderSource
from .tests_base import T0, TrackerAPITestCase


class RunTimerCommandTests(TrackerAPITestCase):
    def run_timer(self, *args):
        out, err = StringIO(), StringIO()
        call_command("run_timer", *args, stdout=out, stderr=err)
        return out.getvalue(), err.getvalue()

    def test_once_without_feeds(self):
        out, err = self.run_timer("--once")
        self.assertIn("--:--", out)
        self.assertIn("No feeds recorded yet", out)
        self.assertEqual(err, "")

    def test_once_pending(self):
        self.tracker.start_feed(T0)
        self.set_now(T0 + timedelta(minutes=90))

        out, _ = self.run_timer("--once")

        self.assertIn("09:30", out)
        self.assertIn("30:00", out)
        self.assertIn("Due at 10:00", out)

    @patch("notifications.tasks.deliver_feed_reminder")
    def test_overdue_tick_announces_reminder(self, mock_task):
        self.tracker.reminder_source = ReminderSource.TERMINAL
        self.tracker.start_feed(T0)
        self.run_timer("--once")
        self.set_now(T0 + timedelta(hours=2, minutes=10))

        out, _ = self.run_timer("--once")

        self.assertIn("+10:00", out)
        self.assertIn("Time to feed!", out)
        mock_task.delay.assert_called_once()

    @patch("notifications.tasks.deliver_feed_reminder")
    def test_overdue_tick_leaves_reminder_to_api(self, mock_task):
        self.tracker.start_feed(T0)
        self.set_now(T0 + timedelta(hours=2, minutes=10))

        out, _ = self.run_timer("--once")

        self.assertIn("+10:00", out)
        self.assertNotIn("Time to feed!", out)
        mock_task.delay.assert_not_called()

    def test_load_warning_is_shown(self):
        self.tracker.load_warning = "Saved data could not be loaded: bad JSON"
        _, err = self.run_timer("--once")
        self.assertIn("Saved data could not be loaded", err)

    @patch("tracker.management.commands.run_timer.time.sleep")
    def test_loop_stops_on_keyboard_interrupt(self, mock_sleep):
        mock_sleep.side_effect = [None, KeyboardInterrupt]

        out, _ = self.run_timer("--interval", "0.5")

        self.assertEqual(out.count("--:--"), 2)
        mock_sleep.assert_called_with(0.5)

    def test_picks_up_changes_written_by_another_process(self):
        from .service import Tracker
        from .storage import DocumentStore

        other = Tracker(DocumentStore(self.path))
        other.load()
        other.start_feed(T0)

        out, _ = self.run_timer("--once")

        self.assertIn("2:00:00", out)
