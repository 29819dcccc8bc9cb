"""Tests for the Tracker application state."""

import json
import shutil
import tempfile
from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from pathlib import Path
from unittest.mock import patch

from django.core.exceptions import ImproperlyConfigured
from django.test import SimpleTestCase, override_settings

from feedings.exceptions import FeedNotFound, InvalidRange
from feedings.models import FeedKind
from notifications.scheduler import ReminderPhase
from timers.engine import TimerMode, TimerStatus

from .exceptions import InvalidSettings, PersistenceFailure
from .models import ReminderSource, Theme
from .service import Tracker
from .storage import DocumentStore

T0 = datetime(2025, 1, 15, 8, 0, tzinfo=dt_timezone.utc)


def minutes(n):
    return timedelta(minutes=n)


class TrackerTestCase(SimpleTestCase):
    """Tracker backed by a data file in a throwaway directory."""

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.tmpdir, ignore_errors=True)
        self.path = Path(self.tmpdir) / "nurture_data.json"
        self.tracker = self.make_tracker()

    def make_tracker(self):
        tracker = Tracker(DocumentStore(self.path))
        tracker.load()
        return tracker


class TrackerPersistenceTests(TrackerTestCase):
    def test_missing_file_starts_empty(self):
        self.assertEqual(len(self.tracker.feeds()), 0)
        self.assertIsNone(self.tracker.load_warning)
        self.assertFalse(self.path.exists())

    def test_start_feed_is_saved(self):
        result = self.tracker.start_feed(T0, FeedKind.BOTTLE)

        self.assertIsNone(result.warning)
        reloaded = self.make_tracker()
        self.assertEqual(reloaded.feeds(), (result.value,))

    def test_edit_feed_is_saved(self):
        record = self.tracker.start_feed(T0).value
        self.tracker.edit_feed(record.id, {"notes": "fussy"}, T0 + minutes(5))

        reloaded = self.make_tracker()
        self.assertEqual(reloaded.get_feed(record.id).notes, "fussy")

    def test_delete_feed_is_saved(self):
        record = self.tracker.start_feed(T0).value
        self.tracker.delete_feed(record.id, T0 + minutes(5))

        with self.assertRaises(FeedNotFound):
            self.make_tracker().get_feed(record.id)

    def test_clear_feeds(self):
        self.tracker.start_feed(T0 - minutes(180))
        self.tracker.start_feed(T0)

        result = self.tracker.clear_feeds(T0 + minutes(1))

        self.assertEqual(result.value, 2)
        self.assertEqual(len(self.make_tracker().feeds()), 0)
        self.assertEqual(self.tracker.scheduler.phase, ReminderPhase.IDLE)

    def test_rejected_edit_changes_nothing(self):
        record = self.tracker.start_feed(T0).value
        before = self.path.read_text(encoding="utf-8")

        with self.assertRaises(InvalidRange):
            self.tracker.edit_feed(record.id, {"end": T0 - minutes(1)}, T0)

        self.assertEqual(self.tracker.get_feed(record.id), record)
        self.assertEqual(self.path.read_text(encoding="utf-8"), before)

    def test_save_failure_is_reported_as_warning(self):
        with patch.object(
            self.tracker.store, "save", side_effect=PersistenceFailure("disk full")
        ):
            result = self.tracker.start_feed(T0)

        self.assertIn("disk full", result.warning)
        # In-memory state stays authoritative
        self.assertEqual(self.tracker.get_feed(result.value.id), result.value)
        self.assertEqual(self.tracker.timer_state(T0).reference, T0)

    def test_corrupt_file_is_moved_aside(self):
        self.path.write_text("{not json", encoding="utf-8")

        warning = self.tracker.load()

        self.assertIn("could not be loaded", warning)
        self.assertEqual(len(self.tracker.feeds()), 0)
        self.assertFalse(self.path.exists())
        moved = list(Path(self.tmpdir).glob("nurture_data.json.corrupt-*"))
        self.assertEqual(len(moved), 1)
        self.assertEqual(moved[0].read_text(encoding="utf-8"), "{not json")

    def test_save_after_corrupt_load_keeps_quarantined_copy(self):
        self.path.write_text('{"feeds": "nope"}', encoding="utf-8")
        self.tracker.load()

        self.tracker.start_feed(T0)

        self.assertTrue(self.path.exists())
        self.assertEqual(
            len(list(Path(self.tmpdir).glob("nurture_data.json.corrupt-*"))), 1
        )

    def test_reload_if_changed(self):
        other = self.make_tracker()
        self.tracker.start_feed(T0)

        self.assertTrue(other.reload_if_changed())
        self.assertEqual(len(other.feeds()), 1)
        self.assertFalse(other.reload_if_changed())

    def test_own_saves_do_not_trigger_reload(self):
        self.tracker.start_feed(T0)
        self.assertFalse(self.tracker.reload_if_changed())

    def test_export(self):
        first = self.tracker.start_feed(T0 - minutes(120)).value
        second = self.tracker.start_feed(T0, FeedKind.FORMULA).value

        exported = json.loads(self.tracker.export())

        self.assertEqual([feed["id"] for feed in exported], [second.id, first.id])
        self.assertEqual(exported[0]["type"], "formula")
        self.assertEqual(exported[0]["start"], "2025-01-15T08:00:00Z")

    def test_export_empty_log(self):
        self.assertEqual(json.loads(self.tracker.export()), [])

    @override_settings(
        NURTURE_REMINDER_GRACE_SECONDS=30,
        NURTURE_STATS_WINDOW_HOURS=12,
        NURTURE_STATS_SAMPLE_SIZE=3,
        NURTURE_REMINDER_SOURCE="terminal",
    )
    def test_from_settings(self):
        with override_settings(NURTURE_DATA_FILE=str(self.path)):
            tracker = Tracker.from_settings()
        self.assertEqual(tracker.store.path, self.path)
        self.assertEqual(tracker.scheduler.grace, timedelta(seconds=30))
        self.assertEqual(tracker.stats_window, timedelta(hours=12))
        self.assertEqual(tracker.stats_sample_size, 3)
        self.assertEqual(tracker.reminder_source, ReminderSource.TERMINAL)

    @override_settings(NURTURE_REMINDER_SOURCE="browser")
    def test_from_settings_rejects_unknown_reminder_source(self):
        with override_settings(NURTURE_DATA_FILE=str(self.path)):
            with self.assertRaises(ImproperlyConfigured):
                Tracker.from_settings()


class TrackerTimerTests(TrackerTestCase):
    def test_no_feeds(self):
        state = self.tracker.timer_state(T0)
        self.assertEqual(state.status, TimerStatus.NO_DATA)

    def test_timer_follows_latest_start(self):
        self.tracker.start_feed(T0)
        state = self.tracker.timer_state(T0 + minutes(90))
        self.assertEqual(state.display, "30:00")

    def test_editing_older_feed_moves_timer_reference(self):
        older = self.tracker.start_feed(T0 - minutes(180)).value
        self.tracker.start_feed(T0)

        self.tracker.edit_feed(older.id, {"start": T0 + minutes(10)}, T0 + minutes(15))

        state = self.tracker.timer_state(T0 + minutes(15))
        self.assertEqual(state.reference, T0 + minutes(10))

    def test_deleting_only_feed_returns_to_no_data(self):
        record = self.tracker.start_feed(T0).value
        self.assertEqual(self.tracker.scheduler.phase, ReminderPhase.ARMED)

        self.tracker.delete_feed(record.id, T0 + minutes(1))

        self.assertEqual(
            self.tracker.timer_state(T0 + minutes(1)).status, TimerStatus.NO_DATA
        )
        self.assertEqual(self.tracker.scheduler.phase, ReminderPhase.IDLE)


@patch("notifications.tasks.deliver_feed_reminder")
class TrackerReminderTests(TrackerTestCase):
    def test_reminder_fires_once_when_overdue(self, mock_task):
        self.tracker.start_feed(T0)

        results = [
            self.tracker.tick(T0 + minutes(m)).reminder for m in range(100, 140)
        ]

        self.assertEqual(results.count(True), 1)
        self.assertTrue(results[20])
        mock_task.delay.assert_called_once_with(
            due_at="2025-01-15T10:00:00+00:00", interval_hours=2.0
        )

    def test_new_feed_after_reminder_rearms(self, mock_task):
        self.tracker.start_feed(T0)
        self.tracker.tick(T0 + minutes(125))
        self.assertEqual(self.tracker.scheduler.phase, ReminderPhase.FIRED)

        self.tracker.start_feed(T0 + minutes(126))

        self.assertEqual(self.tracker.scheduler.phase, ReminderPhase.ARMED)
        self.assertTrue(self.tracker.tick(T0 + minutes(246)).reminder)
        self.assertEqual(mock_task.delay.call_count, 2)

    def test_interval_change_starts_new_epoch(self, mock_task):
        self.tracker.start_feed(T0)
        self.tracker.tick(T0 + minutes(125))

        self.tracker.update_settings(T0 + minutes(126), interval=timedelta(hours=3))

        self.assertEqual(self.tracker.scheduler.phase, ReminderPhase.ARMED)
        self.assertTrue(self.tracker.tick(T0 + minutes(181)).reminder)

    def test_stale_overdue_feed_on_startup_does_not_remind(self, mock_task):
        self.tracker.start_feed(T0)

        restarted = self.make_tracker()
        result = restarted.tick(T0 + minutes(300))

        self.assertFalse(result.reminder)
        self.assertEqual(result.phase, ReminderPhase.FIRED)
        mock_task.delay.assert_not_called()

    def test_stopwatch_mode_does_not_remind(self, mock_task):
        self.tracker.set_view_mode(TimerMode.STOPWATCH, T0 - minutes(1))
        self.tracker.start_feed(T0)

        self.assertFalse(self.tracker.tick(T0 + minutes(130)).reminder)
        mock_task.delay.assert_not_called()

    def test_delivery_failure_does_not_break_tick(self, mock_task):
        mock_task.delay.side_effect = RuntimeError("broker down")
        self.tracker.start_feed(T0)

        result = self.tracker.tick(T0 + minutes(121))

        self.assertTrue(result.reminder)
        self.assertEqual(result.phase, ReminderPhase.FIRED)


@patch("notifications.tasks.deliver_feed_reminder")
class ReminderOwnerTests(TrackerTestCase):
    """The API server and run_timer each hold a tracker over one data file."""

    def make_tracker(self, reminder_source=ReminderSource.API):
        tracker = Tracker(DocumentStore(self.path), reminder_source=reminder_source)
        tracker.load()
        return tracker

    def tick_both(self, api, terminal, until):
        """Tick both renderers once a second from T0; count reminders per source."""
        fired = {ReminderSource.API: 0, ReminderSource.TERMINAL: 0}
        now = T0
        while now <= until:
            terminal.reload_if_changed()
            if api.tick(now, ReminderSource.API).reminder:
                fired[ReminderSource.API] += 1
            if terminal.tick(now, ReminderSource.TERMINAL).reminder:
                fired[ReminderSource.TERMINAL] += 1
            now += timedelta(seconds=1)
        return fired

    def test_api_owner_sends_single_reminder(self, mock_task):
        api = self.make_tracker()
        terminal = self.make_tracker()
        api.start_feed(T0)

        fired = self.tick_both(api, terminal, T0 + timedelta(hours=2, seconds=30))

        self.assertEqual(fired[ReminderSource.API], 1)
        self.assertEqual(fired[ReminderSource.TERMINAL], 0)
        self.assertEqual(mock_task.delay.call_count, 1)

    def test_terminal_owner_sends_single_reminder(self, mock_task):
        api = self.make_tracker(ReminderSource.TERMINAL)
        terminal = self.make_tracker(ReminderSource.TERMINAL)
        api.start_feed(T0)

        fired = self.tick_both(api, terminal, T0 + timedelta(hours=2, seconds=30))

        self.assertEqual(fired[ReminderSource.API], 0)
        self.assertEqual(fired[ReminderSource.TERMINAL], 1)
        self.assertEqual(mock_task.delay.call_count, 1)

    def test_other_source_does_not_advance_latch(self, mock_task):
        tracker = self.make_tracker(ReminderSource.TERMINAL)
        tracker.start_feed(T0)
        self.assertEqual(tracker.scheduler.phase, ReminderPhase.IDLE)

        tracker.tick(T0 + minutes(1), ReminderSource.TERMINAL)
        api_result = tracker.tick(T0 + minutes(121), ReminderSource.API)
        terminal_result = tracker.tick(T0 + minutes(121), ReminderSource.TERMINAL)

        self.assertFalse(api_result.reminder)
        self.assertEqual(api_result.phase, ReminderPhase.ARMED)
        self.assertTrue(terminal_result.reminder)
        mock_task.delay.assert_called_once()


class TrackerSettingsTests(TrackerTestCase):
    def test_defaults(self):
        settings = self.tracker.settings
        self.assertEqual(settings.interval, timedelta(hours=2))
        self.assertEqual(settings.theme, Theme.DEFAULT)
        self.assertFalse(settings.dark_mode)
        self.assertEqual(settings.view_mode, TimerMode.COUNTDOWN)

    def test_settings_are_saved(self):
        result = self.tracker.update_settings(
            T0, interval=timedelta(hours=3), theme=Theme.OCEAN, dark_mode=True
        )

        self.assertIsNone(result.warning)
        settings = self.make_tracker().settings
        self.assertEqual(settings.interval, timedelta(hours=3))
        self.assertEqual(settings.theme, Theme.OCEAN)
        self.assertTrue(settings.dark_mode)

    def test_interval_change_applies_to_timer(self):
        self.tracker.start_feed(T0)
        self.tracker.update_settings(T0, interval=timedelta(hours=3))
        self.assertEqual(
            self.tracker.timer_state(T0 + minutes(90)).display, "1:30:00"
        )

    def test_invalid_interval_rejected(self):
        for interval in (timedelta(0), timedelta(hours=-1), timedelta(hours=25)):
            with self.subTest(interval=interval):
                with self.assertRaises(InvalidSettings):
                    self.tracker.update_settings(T0, interval=interval)
        self.assertEqual(self.tracker.settings.interval, timedelta(hours=2))
        self.assertFalse(self.path.exists())

    def test_view_mode_is_not_saved(self):
        self.tracker.set_view_mode(TimerMode.STOPWATCH, T0)

        self.assertEqual(self.tracker.settings.view_mode, TimerMode.STOPWATCH)
        self.assertFalse(self.path.exists())
        self.assertEqual(self.make_tracker().settings.view_mode, TimerMode.COUNTDOWN)

    def test_view_mode_survives_reload(self):
        self.tracker.set_view_mode(TimerMode.STOPWATCH, T0)
        self.tracker.load()
        self.assertEqual(self.tracker.settings.view_mode, TimerMode.STOPWATCH)

    def test_view_mode_switch_keeps_reference(self):
        self.tracker.start_feed(T0)
        countdown = self.tracker.timer_state(T0 + minutes(45))
        self.tracker.set_view_mode(TimerMode.STOPWATCH, T0 + minutes(45))
        stopwatch = self.tracker.timer_state(T0 + minutes(45))

        self.assertEqual(countdown.reference, stopwatch.reference)
        self.assertEqual(countdown.display, "1:15:00")
        self.assertEqual(stopwatch.display, "45:00")


class TrackerStatsTests(TrackerTestCase):
    def test_stats_use_configured_window(self):
        for offset in (-30, -20, -10, 0):
            self.tracker.start_feed(T0 + timedelta(hours=offset))

        summary = self.tracker.stats(T0)

        self.assertEqual(summary["count"], 3)
        self.assertEqual(summary["average_gap"], timedelta(hours=10))

    def test_stats_overrides(self):
        for offset in (-30, -20, -10, 0):
            self.tracker.start_feed(T0 + timedelta(hours=offset))

        summary = self.tracker.stats(T0, window=timedelta(hours=48), sample_size=1)

        self.assertEqual(summary["count"], 4)
        self.assertEqual(summary["average_gap"], timedelta(hours=10))
