"""Scheduler, signal and task tests for the notifications app."""

from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from unittest.mock import patch

from django.core import mail
from django.test import SimpleTestCase, override_settings

from timers.engine import TimerMode, compute_timer_state

from .scheduler import ReminderPhase, ReminderScheduler
from .signals import feed_reminder_due
from .tasks import build_reminder_message, deliver_feed_reminder

T0 = datetime(2025, 1, 15, 8, 0, tzinfo=dt_timezone.utc)
TWO_HOURS = timedelta(hours=2)


def countdown(reference, now, interval=TWO_HOURS):
    return compute_timer_state(reference, now, interval, TimerMode.COUNTDOWN)


def stopwatch(reference, now, interval=TWO_HOURS):
    return compute_timer_state(reference, now, interval, TimerMode.STOPWATCH)


class ReminderSchedulerTests(SimpleTestCase):
    def setUp(self):
        self.scheduler = ReminderScheduler()

    def test_starts_idle(self):
        self.assertEqual(self.scheduler.phase, ReminderPhase.IDLE)

    def test_pending_arms(self):
        fired = self.scheduler.observe(countdown(T0, T0 + timedelta(minutes=90)))
        self.assertFalse(fired)
        self.assertEqual(self.scheduler.phase, ReminderPhase.ARMED)

    def test_fires_exactly_once_per_overdue_episode(self):
        self.scheduler.observe(countdown(T0, T0 + timedelta(minutes=90)))

        fired = [
            self.scheduler.observe(countdown(T0, T0 + TWO_HOURS + timedelta(minutes=m)))
            for m in range(10, 70)
        ]

        self.assertEqual(fired.count(True), 1)
        self.assertTrue(fired[0])
        self.assertEqual(self.scheduler.phase, ReminderPhase.FIRED)

    def test_stays_armed_while_pending(self):
        for minutes in range(0, 120, 10):
            self.assertFalse(
                self.scheduler.observe(countdown(T0, T0 + timedelta(minutes=minutes)))
            )
        self.assertEqual(self.scheduler.phase, ReminderPhase.ARMED)

    def test_fires_at_exact_due_instant(self):
        self.scheduler.observe(countdown(T0, T0 + timedelta(minutes=119)))
        self.assertTrue(self.scheduler.observe(countdown(T0, T0 + TWO_HOURS)))

    def test_new_feed_while_fired_rearms(self):
        self.scheduler.observe(countdown(T0, T0 + timedelta(minutes=90)))
        self.scheduler.observe(countdown(T0, T0 + timedelta(minutes=130)))
        self.assertEqual(self.scheduler.phase, ReminderPhase.FIRED)

        new_feed = T0 + timedelta(minutes=131)
        self.assertFalse(self.scheduler.observe(countdown(new_feed, new_feed)))
        self.assertEqual(self.scheduler.phase, ReminderPhase.ARMED)

        self.assertTrue(
            self.scheduler.observe(countdown(new_feed, new_feed + TWO_HOURS))
        )

    def test_no_data_returns_to_idle(self):
        self.scheduler.observe(countdown(T0, T0 + timedelta(minutes=90)))
        self.scheduler.observe(countdown(None, T0 + timedelta(minutes=91)))
        self.assertEqual(self.scheduler.phase, ReminderPhase.IDLE)
        self.assertIsNone(self.scheduler.epoch)

    def test_stopwatch_never_arms_or_fires(self):
        for minutes in (30, 130, 300):
            self.assertFalse(
                self.scheduler.observe(stopwatch(T0, T0 + timedelta(minutes=minutes)))
            )
        self.assertEqual(self.scheduler.phase, ReminderPhase.IDLE)

    def test_stopwatch_leaves_armed_state_untouched(self):
        self.scheduler.observe(countdown(T0, T0 + timedelta(minutes=30)))
        self.scheduler.observe(stopwatch(T0, T0 + timedelta(minutes=130)))
        self.assertEqual(self.scheduler.phase, ReminderPhase.ARMED)

    def test_epoch_first_seen_long_overdue_latches_silently(self):
        """A reload long after the due time does not re-alert."""
        fired = self.scheduler.observe(countdown(T0, T0 + timedelta(hours=5)))
        self.assertFalse(fired)
        self.assertEqual(self.scheduler.phase, ReminderPhase.FIRED)
        self.assertFalse(self.scheduler.observe(countdown(T0, T0 + timedelta(hours=6))))

    def test_epoch_first_seen_within_grace_fires(self):
        fired = self.scheduler.observe(
            countdown(T0, T0 + TWO_HOURS + timedelta(seconds=3))
        )
        self.assertTrue(fired)
        self.assertEqual(self.scheduler.phase, ReminderPhase.FIRED)

    def test_custom_grace(self):
        scheduler = ReminderScheduler(grace=timedelta(0))
        self.assertFalse(
            scheduler.observe(countdown(T0, T0 + TWO_HOURS + timedelta(seconds=1)))
        )

    def test_interval_change_starts_new_epoch(self):
        self.scheduler.observe(countdown(T0, T0 + timedelta(minutes=90)))
        self.scheduler.observe(countdown(T0, T0 + timedelta(minutes=125)))
        self.assertEqual(self.scheduler.phase, ReminderPhase.FIRED)

        longer = timedelta(hours=3)
        self.assertFalse(
            self.scheduler.observe(countdown(T0, T0 + timedelta(minutes=126), longer))
        )
        self.assertEqual(self.scheduler.phase, ReminderPhase.ARMED)
        self.assertTrue(
            self.scheduler.observe(countdown(T0, T0 + timedelta(minutes=181), longer))
        )

    def test_reset(self):
        self.scheduler.observe(countdown(T0, T0 + timedelta(minutes=90)))
        self.scheduler.reset()
        self.assertEqual(self.scheduler.phase, ReminderPhase.IDLE)
        self.assertIsNone(self.scheduler.epoch)


class ReminderSignalTests(SimpleTestCase):
    @patch("notifications.tasks.deliver_feed_reminder")
    def test_signal_queues_delivery_task(self, mock_task):
        """feed_reminder_due signal should call the Celery task."""
        feed_reminder_due.send(
            sender=self.__class__,
            due_at=T0 + TWO_HOURS,
            interval=timedelta(hours=2, minutes=30),
        )
        mock_task.delay.assert_called_once_with(
            due_at="2025-01-15T10:00:00+00:00",
            interval_hours=2.5,
        )


class DeliverFeedReminderTaskTests(SimpleTestCase):
    def test_build_reminder_message(self):
        title, body = build_reminder_message(2.5)
        self.assertEqual(title, "Time to Feed!")
        self.assertEqual(body, "2.5 hours have passed since the last feed.")

    @override_settings(NURTURE_REMINDER_EMAIL="")
    def test_logs_without_email(self):
        with self.assertLogs("notifications.tasks", level="INFO") as logs:
            result = deliver_feed_reminder.delay(
                due_at="2025-01-15T10:00:00+00:00", interval_hours=2.0
            )
        self.assertEqual(result.get(), "Logged reminder")
        self.assertIn("Time to Feed!", logs.output[0])

    @override_settings(NURTURE_REMINDER_EMAIL="parent@example.com")
    def test_emails_configured_recipient(self):
        mail.outbox = []
        result = deliver_feed_reminder.delay(
            due_at="2025-01-15T10:00:00+00:00", interval_hours=2.0
        )
        self.assertEqual(result.get(), "Sent reminder to parent@example.com")
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].subject, "Time to Feed!")
        self.assertEqual(mail.outbox[0].to, ["parent@example.com"])

    @override_settings(NURTURE_REMINDER_EMAIL="parent@example.com")
    @patch("notifications.tasks.send_mail", side_effect=OSError("smtp down"))
    def test_email_failure_is_reported_not_raised(self, mock_send):
        result = deliver_feed_reminder.delay(
            due_at="2025-01-15T10:00:00+00:00", interval_hours=2.0
        )
        self.assertEqual(result.get(), "Reminder e-mail failed")
