"""User settings for the tracker.

Settings are loaded once at startup from the data file merged over the
defaults below and persisted on every change. The timer view mode is a
session toggle and is not written to the file.
"""

from dataclasses import dataclass, replace
from datetime import timedelta

from django.db import models

from timers.engine import TimerMode

from .exceptions import InvalidSettings

DEFAULT_INTERVAL = timedelta(hours=2)
MAX_INTERVAL = timedelta(hours=24)


class Theme(models.TextChoices):
    DEFAULT = "default", "Default"
    OCEAN = "ocean", "Ocean"
    SAGE = "sage", "Sage"
    LAVENDER = "lavender", "Lavender"


class ReminderSource(models.TextChoices):
    """Which renderer's ticks may send feed reminders."""

    API = "api", "API server"
    TERMINAL = "terminal", "Terminal timer"


@dataclass(frozen=True)
class TrackerSettings:
    """Reminder interval, appearance and timer view mode."""

    interval: timedelta = DEFAULT_INTERVAL
    theme: Theme = Theme.DEFAULT
    dark_mode: bool = False
    view_mode: TimerMode = TimerMode.COUNTDOWN

    def __post_init__(self):
        if self.interval <= timedelta(0):
            raise InvalidSettings("Reminder interval must be positive.")
        if self.interval > MAX_INTERVAL:
            raise InvalidSettings("Reminder interval cannot exceed 24 hours.")
        try:
            object.__setattr__(self, "theme", Theme(self.theme))
            object.__setattr__(self, "view_mode", TimerMode(self.view_mode))
        except ValueError as e:
            raise InvalidSettings(str(e)) from e

    @property
    def interval_hours(self) -> float:
        return self.interval.total_seconds() / 3600

    def updated(self, **changes) -> "TrackerSettings":
        return replace(self, **changes)
