"""Signal definitions and handlers for the notifications app.

Defines a custom `feed_reminder_due` signal sent by the tracker when the
reminder scheduler fires. The handler queues the Celery delivery task; the
tracker only decides when a reminder is due, never how it is delivered.
"""

from django.dispatch import Signal, receiver

feed_reminder_due = Signal()


@receiver(feed_reminder_due)
def queue_feed_reminder(sender, due_at, interval, **kwargs):
    """Queue reminder delivery when the scheduler fires."""
    from .tasks import deliver_feed_reminder

    deliver_feed_reminder.delay(
        due_at=due_at.isoformat(),
        interval_hours=interval.total_seconds() / 3600,
    )
