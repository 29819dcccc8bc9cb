"""Application state for the feed tracker.

`Tracker` owns the feed log, the settings, the reminder scheduler and the
document store. Every public operation runs under one lock, and every
mutation is followed within the same call by a save and a tick, so the next
observer never sees a stale timer, reminder latch or most-recent feed.

Validation errors (FeedNotFound, InvalidRange, InvalidAmount,
InvalidSettings) propagate to the caller before anything changes. Save
failures do not: they are logged and reported as the `warning` of the
returned `MutationResult`, and the in-memory state stays authoritative.
"""

import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from django.conf import settings as django_settings
from django.core.exceptions import ImproperlyConfigured

from analytics.utils import DEFAULT_SAMPLE_SIZE, DEFAULT_WINDOW, get_feed_summary
from feedings.log import FeedLog
from feedings.models import DEFAULT_KIND, FeedKind
from notifications.scheduler import DEFAULT_GRACE, ReminderPhase, ReminderScheduler
from notifications.signals import feed_reminder_due
from timers.engine import TimerMode, TimerState, compute_timer_state

from .document import decode_document, encode_document, encode_feeds
from .exceptions import PersistenceFailure
from .models import ReminderSource, TrackerSettings
from .storage import DocumentStore

logger = logging.getLogger(__name__)

# Settings that live only for the session and are never written out
SESSION_ONLY_SETTINGS = {"view_mode"}


@dataclass(frozen=True)
class MutationResult:
    """Outcome of a successful mutation.

    Attributes:
        value: The record (or count) the operation produced
        warning: Why the change could not be saved, or None if it was
    """

    value: Any
    warning: Optional[str] = None


@dataclass(frozen=True)
class TickResult:
    state: TimerState
    reminder: bool
    phase: ReminderPhase


class Tracker:
    """Single owned application state shared by the API and the tick loop."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        reminder_grace: timedelta = DEFAULT_GRACE,
        stats_window: timedelta = DEFAULT_WINDOW,
        stats_sample_size: int = DEFAULT_SAMPLE_SIZE,
        reminder_source: ReminderSource = ReminderSource.API,
    ):
        self.store = store
        self.reminder_source = ReminderSource(reminder_source)
        self.log = FeedLog()
        self.settings = TrackerSettings()
        self.scheduler = ReminderScheduler(grace=reminder_grace)
        self.stats_window = stats_window
        self.stats_sample_size = stats_sample_size
        self.load_warning: Optional[str] = None
        self._loaded_mtime = None
        self._lock = threading.RLock()

    def __repr__(self):
        return f"<Tracker feeds={len(self.log)} store={self.store.path}>"

    @classmethod
    def from_settings(cls) -> "Tracker":
        """Build and load a tracker configured from Django settings."""
        try:
            reminder_source = ReminderSource(django_settings.NURTURE_REMINDER_SOURCE)
        except ValueError as e:
            raise ImproperlyConfigured(
                f"NURTURE_REMINDER_SOURCE must be one of {ReminderSource.values}"
            ) from e
        tracker = cls(
            DocumentStore(django_settings.NURTURE_DATA_FILE),
            reminder_grace=timedelta(
                seconds=django_settings.NURTURE_REMINDER_GRACE_SECONDS
            ),
            stats_window=timedelta(hours=django_settings.NURTURE_STATS_WINDOW_HOURS),
            stats_sample_size=django_settings.NURTURE_STATS_SAMPLE_SIZE,
            reminder_source=reminder_source,
        )
        tracker.load()
        return tracker

    # Persistence

    def load(self) -> Optional[str]:
        """Load the document, falling back to an empty log and defaults.

        Returns:
            A warning if the stored document could not be used, else None
        """
        with self._lock:
            self.load_warning = None
            try:
                data = self.store.load()
                if data is None:
                    records, settings = [], TrackerSettings()
                else:
                    records, settings = decode_document(data)
            except PersistenceFailure as e:
                logger.warning(
                    f"Could not load tracker data, starting empty: {e}",
                    extra={"path": str(self.store.path)},
                )
                self.store.quarantine()
                records, settings = [], TrackerSettings()
                self.load_warning = f"Saved data could not be loaded: {e}"

            self.log = FeedLog(records)
            self.settings = settings.updated(view_mode=self.settings.view_mode)
            self._loaded_mtime = self.store.mtime()
            logger.info(
                "Loaded tracker data",
                extra={"feeds": len(self.log), "path": str(self.store.path)},
            )
            return self.load_warning

    def reload_if_changed(self) -> bool:
        """Reload when another process has rewritten the data file."""
        with self._lock:
            if self.store.mtime() == self._loaded_mtime:
                return False
            self.load()
            return True

    def export(self) -> str:
        """Full feed list as pretty-printed JSON, in the stored format."""
        with self._lock:
            return json.dumps(encode_feeds(self.log), indent=2)

    def _persist(self) -> Optional[str]:
        try:
            self.store.save(encode_document(self.log, self.settings))
        except PersistenceFailure as e:
            logger.warning(
                f"Could not save tracker data: {e}",
                extra={"path": str(self.store.path)},
                exc_info=True,
            )
            return f"Changes could not be saved: {e}"
        self._loaded_mtime = self.store.mtime()
        return None

    def _commit(self, value, now: datetime, persist: bool = True) -> MutationResult:
        warning = self._persist() if persist else None
        self.tick(now, ReminderSource.API)
        return MutationResult(value=value, warning=warning)

    # Feed log

    def start_feed(self, now: datetime, kind: FeedKind = DEFAULT_KIND) -> MutationResult:
        with self._lock:
            record = self.log.start_feed(now, kind)
            return self._commit(record, now)

    def edit_feed(self, feed_id, patch: dict, now: datetime) -> MutationResult:
        with self._lock:
            record = self.log.edit_feed(feed_id, patch)
            return self._commit(record, now)

    def delete_feed(self, feed_id, now: datetime) -> MutationResult:
        with self._lock:
            record = self.log.delete_feed(feed_id)
            return self._commit(record, now)

    def clear_feeds(self, now: datetime) -> MutationResult:
        with self._lock:
            count = self.log.clear()
            return self._commit(count, now)

    def get_feed(self, feed_id):
        with self._lock:
            return self.log.get(feed_id)

    def feeds(self):
        with self._lock:
            return self.log.records

    # Settings

    def update_settings(self, now: datetime, **changes) -> MutationResult:
        """Apply settings changes; raises InvalidSettings before changing anything."""
        with self._lock:
            self.settings = self.settings.updated(**changes)
            persist = bool(set(changes) - SESSION_ONLY_SETTINGS)
            logger.info("Updated settings", extra={"fields": sorted(changes)})
            return self._commit(self.settings, now, persist=persist)

    def set_view_mode(self, mode: TimerMode, now: datetime) -> MutationResult:
        return self.update_settings(now, view_mode=TimerMode(mode))

    # Derived state

    def timer_state(self, now: datetime) -> TimerState:
        with self._lock:
            return compute_timer_state(
                self.log.reference,
                now,
                self.settings.interval,
                self.settings.view_mode,
            )

    def tick(
        self, now: datetime, source: ReminderSource = ReminderSource.API
    ) -> TickResult:
        """Recompute the timer and let the reminder scheduler observe it.

        The API server and the terminal timer each keep their own tracker
        over the same data file, and the reminder latch is not shared
        between them. Only ticks from `reminder_source` advance the
        scheduler, so one overdue episode sends one reminder however many
        renderers are running.
        """
        with self._lock:
            state = self.timer_state(now)
            reminder = False
            if ReminderSource(source) == self.reminder_source:
                reminder = self.scheduler.observe(state)
            if reminder:
                self._send_reminder(state)
            return TickResult(state=state, reminder=reminder, phase=self.scheduler.phase)

    def stats(
        self,
        now: datetime,
        window: Optional[timedelta] = None,
        sample_size: Optional[int] = None,
    ) -> dict:
        with self._lock:
            return get_feed_summary(
                self.log,
                now,
                window=window or self.stats_window,
                sample_size=sample_size or self.stats_sample_size,
            )

    def _send_reminder(self, state):
        responses = feed_reminder_due.send_robust(
            sender=self.__class__,
            due_at=state.due_at,
            interval=state.interval,
        )
        for receiver, response in responses:
            if isinstance(response, Exception):
                logger.error(
                    f"Feed reminder delivery failed: {response}",
                    extra={"receiver": getattr(receiver, "__name__", repr(receiver))},
                    exc_info=response,
                )
