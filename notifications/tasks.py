"""Celery tasks for feed reminder delivery."""

import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)

REMINDER_TITLE = "Time to Feed!"


def build_reminder_message(interval_hours):
    """Return (title, body) for a feed reminder."""
    return (
        REMINDER_TITLE,
        f"{interval_hours:.1f} hours have passed since the last feed.",
    )


@shared_task(bind=True, time_limit=60)
def deliver_feed_reminder(self, due_at, interval_hours):
    """Deliver one feed reminder.

    Always logs the reminder. When NURTURE_REMINDER_EMAIL is set it is also
    e-mailed to that address. Delivery is best effort: failures are logged
    and reported in the task result, never retried.
    """
    title, body = build_reminder_message(interval_hours)
    logger.info(
        f"{title} {body}",
        extra={"due_at": due_at, "interval_hours": interval_hours},
    )

    recipient = getattr(settings, "NURTURE_REMINDER_EMAIL", "")
    if not recipient:
        return "Logged reminder"

    try:
        send_mail(
            subject=title,
            message=body,
            from_email=None,
            recipient_list=[recipient],
        )
    except OSError as e:
        logger.error(
            f"Failed to e-mail feed reminder: {e}",
            extra={"recipient": recipient},
            exc_info=True,
        )
        return "Reminder e-mail failed"
    return f"Sent reminder to {recipient}"
