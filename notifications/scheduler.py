"""Reminder scheduler: decides when a feed reminder fires.

Watches successive timer states and fires at most one reminder per overdue
episode. An epoch is one (reference instant, interval) pair: starting a
feed, an edit or deletion that moves the latest start, or a change of the
reminder interval begins a new epoch and clears the latch.

    idle   -> armed  first pending countdown of an epoch
    armed  -> fired  first overdue countdown (reminder fires)
    fired  -> armed  new epoch observed pending
    any    -> idle   no feeds left

Stopwatch observations carry no due time: they never arm or fire and leave
the scheduler as it was.
"""

import logging
from datetime import timedelta

from django.db import models

from timers.engine import TimerMode, TimerState

logger = logging.getLogger(__name__)

DEFAULT_GRACE = timedelta(seconds=5)


class ReminderPhase(models.TextChoices):
    IDLE = "idle", "Idle"
    ARMED = "armed", "Armed"
    FIRED = "fired", "Fired"


class ReminderScheduler:
    """Idempotent reminder latch driven by timer state transitions.

    Args:
        grace: An epoch first seen already overdue fires only if it has been
            overdue for at most this long; otherwise it latches silently.
            This avoids a reminder on every reload long after the due time.
    """

    def __init__(self, grace: timedelta = DEFAULT_GRACE):
        self.grace = grace
        self.phase = ReminderPhase.IDLE
        self.epoch = None

    def __repr__(self):
        return f"<ReminderScheduler phase={self.phase.value} epoch={self.epoch!r}>"

    def reset(self):
        self.phase = ReminderPhase.IDLE
        self.epoch = None

    def observe(self, state: TimerState) -> bool:
        """Advance the latch for one timer observation.

        Returns:
            True exactly when a reminder should be delivered now
        """
        if not state.has_data:
            if self.phase != ReminderPhase.IDLE:
                logger.debug("Reminder scheduler idle: no feeds")
            self.reset()
            return False

        if state.mode != TimerMode.COUNTDOWN:
            return False

        epoch = (state.reference, state.interval)
        if epoch != self.epoch:
            self.epoch = epoch
            return self._begin_epoch(state)

        if self.phase == ReminderPhase.ARMED and state.overdue:
            self.phase = ReminderPhase.FIRED
            logger.info(
                "Feed reminder due",
                extra={"due_at": state.due_at.isoformat()},
            )
            return True
        return False

    def _begin_epoch(self, state):
        if not state.overdue:
            self.phase = ReminderPhase.ARMED
            return False

        self.phase = ReminderPhase.FIRED
        if state.overdue_duration <= self.grace:
            logger.info(
                "Feed reminder due",
                extra={"due_at": state.due_at.isoformat()},
            )
            return True
        logger.debug(
            "New epoch already overdue; latching without reminder",
            extra={"overdue_seconds": int(state.overdue_duration.total_seconds())},
        )
        return False
