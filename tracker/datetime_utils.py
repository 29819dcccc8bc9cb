"""Datetime helpers for rendering tracker times in the configured timezone."""

from zoneinfo import ZoneInfo

from django.conf import settings
from django.utils import timezone as django_tz

from timers.engine import TimerStatus


def _display_tz(tz_name=None):
    """Return ZoneInfo for tz_name, defaulting to settings.TIME_ZONE."""
    return ZoneInfo(tz_name or settings.TIME_ZONE or "UTC")


def format_clock(utc_dt, tz_name=None, fmt="%H:%M"):
    """Format an aware datetime as a wall-clock time (e.g. '14:05').

    Args:
        utc_dt: timezone-aware datetime
        tz_name: IANA timezone name (default: settings.TIME_ZONE)
        fmt: strftime format

    Returns:
        str: Formatted time, or "" for None
    """
    if utc_dt is None:
        return ""
    return utc_dt.astimezone(_display_tz(tz_name)).strftime(fmt)


def format_relative(utc_dt, now=None):
    """Format an aware datetime as relative time (e.g. '2 hours ago')."""
    if utc_dt is None:
        return ""
    now = now or django_tz.now()
    total_seconds = int((now - utc_dt).total_seconds())
    if total_seconds < 60:
        return "just now"
    if total_seconds < 3600:
        m = total_seconds // 60
        return f"{m} min{'s' if m != 1 else ''} ago"
    if total_seconds < 86400:
        h = total_seconds // 3600
        return f"{h} hour{'s' if h != 1 else ''} ago"
    d = total_seconds // 86400
    return f"{d} day{'s' if d != 1 else ''} ago"


def subtitle_for(state, tz_name=None):
    """Sub-line shown under the main timer display."""
    if state.status == TimerStatus.NO_DATA:
        return "No feeds recorded yet"
    if state.status == TimerStatus.OVERDUE:
        return "Feed overdue"
    if state.status == TimerStatus.PENDING:
        return f"Due at {format_clock(state.due_at, tz_name)}"
    return f"Last feed: {format_clock(state.reference, tz_name)}"
