"""
Tests for Celery configuration and reminder task registration.

Verifies:
- Celery app is properly configured
- Task serialization is JSON
- The reminder delivery task is registered and runs eagerly in tests
"""

from django.test import SimpleTestCase, override_settings

from django_project.celery import app
from notifications.tasks import deliver_feed_reminder


class CeleryConfigurationTests(SimpleTestCase):
    """Test Celery app configuration."""

    def test_celery_app_exists(self):
        """Verify Celery app is initialized."""
        self.assertIsNotNone(app)
        self.assertEqual(app.main, "nurture")

    def test_celery_broker_url_configured(self):
        """Tests run against the in-memory broker."""
        self.assertEqual(app.conf.broker_url, "memory://")

    def test_celery_accepts_json_only(self):
        self.assertEqual(list(app.conf.accept_content), ["json"])

    def test_celery_task_serializer_is_json(self):
        self.assertEqual(app.conf.task_serializer, "json")

    def test_celery_result_serializer_is_json(self):
        self.assertEqual(app.conf.result_serializer, "json")

    def test_celery_timezone_configured(self):
        self.assertEqual(app.conf.timezone, "UTC")

    def test_task_soft_limit_less_than_hard_limit(self):
        self.assertLess(app.conf.task_soft_time_limit, app.conf.task_time_limit)


class CeleryTaskTests(SimpleTestCase):
    """Reminder task registration and eager execution."""

    def test_reminder_task_name(self):
        self.assertEqual(
            deliver_feed_reminder.name, "notifications.tasks.deliver_feed_reminder"
        )

    def test_reminder_task_is_registered(self):
        self.assertIn(deliver_feed_reminder.name, app.tasks)

    def test_reminder_task_time_limit(self):
        """Delivery gives up well before the app-wide hard limit."""
        self.assertEqual(deliver_feed_reminder.time_limit, 60)

    @override_settings(NURTURE_REMINDER_EMAIL="")
    def test_reminder_task_runs_eagerly(self):
        result = deliver_feed_reminder.delay(
            due_at="2025-01-15T10:00:00+00:00", interval_hours=2.0
        )
        self.assertTrue(result.successful())
        self.assertEqual(result.get(), "Logged reminder")
