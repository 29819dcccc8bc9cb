"""Timer engine: projects the most recent feed onto the current instant.

Nothing here keeps state or schedules anything. The timer is recomputed
from scratch on every tick, which keeps it correct after any edit or
deletion without cancelling or rescheduling timers.

Display contract: durations are truncated to whole seconds and rendered as
``M:SS`` below one hour and ``H:MM:SS`` from exactly one hour upwards.
An overdue countdown shows the overdue time with a leading ``+``.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from django.db import models

NO_DATA_DISPLAY = "--:--"


class TimerMode(models.TextChoices):
    COUNTDOWN = "countdown", "Countdown"
    STOPWATCH = "stopwatch", "Stopwatch"


class TimerStatus(models.TextChoices):
    NO_DATA = "no_data", "No feeds recorded yet"
    PENDING = "pending", "Next feed pending"
    OVERDUE = "overdue", "Feed overdue"
    RUNNING = "running", "Since last feed"


@dataclass(frozen=True)
class TimerState:
    """Timer display state at one instant. Never persisted."""

    mode: TimerMode
    status: TimerStatus
    reference: Optional[datetime]
    interval: timedelta
    due_at: Optional[datetime] = None
    elapsed: Optional[timedelta] = None
    remaining: Optional[timedelta] = None
    overdue_duration: Optional[timedelta] = None

    @property
    def overdue(self) -> bool:
        return self.status == TimerStatus.OVERDUE

    @property
    def has_data(self) -> bool:
        return self.status != TimerStatus.NO_DATA

    @property
    def display(self) -> str:
        if self.status == TimerStatus.NO_DATA:
            return NO_DATA_DISPLAY
        if self.status == TimerStatus.OVERDUE:
            return "+" + format_duration(self.overdue_duration)
        if self.status == TimerStatus.PENDING:
            return format_duration(self.remaining)
        return format_duration(self.elapsed)


def format_duration(duration: timedelta) -> str:
    """Format a duration as M:SS, or H:MM:SS once it reaches one hour.

    >>> format_duration(timedelta(minutes=30))
    '30:00'
    >>> format_duration(timedelta(hours=1, seconds=5))
    '1:00:05'
    """
    total_seconds = int(abs(duration.total_seconds()))
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def compute_timer_state(
    reference: Optional[datetime],
    now: datetime,
    interval: timedelta,
    mode: TimerMode = TimerMode.COUNTDOWN,
) -> TimerState:
    """Compute the timer for `now` from the most recent feed start.

    Args:
        reference: Start of the most recent feed, or None when there is none
        now: The query instant
        interval: Expected time between feeds
        mode: Countdown or stopwatch projection

    Returns:
        TimerState. Countdown reports remaining time until
        ``reference + interval`` and turns overdue once that is <= 0.
        Stopwatch reports elapsed time and is never overdue.
    """
    mode = TimerMode(mode)
    if reference is None:
        return TimerState(
            mode=mode,
            status=TimerStatus.NO_DATA,
            reference=None,
            interval=interval,
        )

    due_at = reference + interval
    elapsed = now - reference

    if mode == TimerMode.STOPWATCH:
        return TimerState(
            mode=mode,
            status=TimerStatus.RUNNING,
            reference=reference,
            interval=interval,
            due_at=due_at,
            elapsed=elapsed,
        )

    remaining = due_at - now
    if remaining <= timedelta(0):
        return TimerState(
            mode=mode,
            status=TimerStatus.OVERDUE,
            reference=reference,
            interval=interval,
            due_at=due_at,
            elapsed=elapsed,
            remaining=remaining,
            overdue_duration=-remaining,
        )
    return TimerState(
        mode=mode,
        status=TimerStatus.PENDING,
        reference=reference,
        interval=interval,
        due_at=due_at,
        elapsed=elapsed,
        remaining=remaining,
    )
