"""In-memory feed log.

The log is the only owner of feed records. It keeps them sorted newest
first by start time and re-derives the most recent feed from that order on
every access, so an edit that moves an older feed past the latest one is
visible to the timer immediately. Persisting the log is the caller's job.
"""

import logging
from datetime import datetime
from typing import Iterable, Iterator, Optional

from .constants import EDITABLE_FIELDS
from .exceptions import FeedNotFound
from .models import DEFAULT_KIND, FeedKind, FeedRecord

logger = logging.getLogger(__name__)


def _sort_key(record):
    # Equal starts fall back to id so the order is total and deterministic
    return (record.start, int(record.id))


class FeedQuery:
    """Restartable view over the feeds that started inside a time window.

    The matching records are snapshotted when the query is made; each
    iteration walks that snapshot again, so later log mutations do not
    leak into a query already handed out.
    """

    def __init__(self, records, window_start, window_end):
        self.window_start = window_start
        self.window_end = window_end
        self._records = tuple(records)

    def __iter__(self) -> Iterator[FeedRecord]:
        return (
            record
            for record in self._records
            if self.window_start <= record.start <= self.window_end
        )

    def count(self):
        return sum(1 for _ in self)


class FeedLog:
    """Feed records sorted descending by start, unique by id."""

    def __init__(self, records: Iterable[FeedRecord] = ()):
        self._records: list[FeedRecord] = []
        seen = set()
        for record in records:
            if record.id in seen:
                logger.warning(
                    "Dropping duplicate feed id while loading log",
                    extra={"feed_id": record.id},
                )
                continue
            seen.add(record.id)
            self._records.append(record)
        self._resort()

    def __len__(self):
        return len(self._records)

    def __iter__(self):
        return iter(tuple(self._records))

    def __bool__(self):
        return bool(self._records)

    @property
    def records(self) -> tuple[FeedRecord, ...]:
        """All records, newest start first."""
        return tuple(self._records)

    @property
    def most_recent(self) -> Optional[FeedRecord]:
        """The feed with the latest start, or None for an empty log."""
        return self._records[0] if self._records else None

    @property
    def reference(self) -> Optional[datetime]:
        """Start of the most recent feed: the zero point of the timer."""
        latest = self.most_recent
        return latest.start if latest else None

    def get(self, feed_id) -> FeedRecord:
        return self._records[self._index_of(feed_id)]

    def start_feed(self, now: datetime, kind: FeedKind = DEFAULT_KIND) -> FeedRecord:
        """Create a feed starting at `now` and insert it in order."""
        record = FeedRecord(id=self._next_id(now), start=now, kind=kind)
        self._records.append(record)
        self._resort()
        logger.info(
            "Started feed",
            extra={"feed_id": record.id, "kind": record.kind.value},
        )
        return record

    def edit_feed(self, feed_id, patch: dict) -> FeedRecord:
        """Apply a partial update to one record.

        Args:
            feed_id: Id of the record to change
            patch: Mapping of field name to new value; only start, end,
                kind, amount, brand and notes may be changed

        Returns:
            The replacement record

        Raises:
            FeedNotFound: No record has this id
            InvalidRange: The edited record would end before it starts
            InvalidAmount: The edited amount is negative
            ValueError: The patch names a field that cannot be edited
        """
        unknown = set(patch) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot edit fields: {', '.join(sorted(unknown))}")

        index = self._index_of(feed_id)
        updated = self._records[index].updated(**patch)
        self._records[index] = updated
        self._resort()
        logger.info(
            "Edited feed",
            extra={"feed_id": feed_id, "fields": sorted(patch)},
        )
        return updated

    def delete_feed(self, feed_id) -> FeedRecord:
        index = self._index_of(feed_id)
        removed = self._records.pop(index)
        logger.info("Deleted feed", extra={"feed_id": feed_id})
        return removed

    def clear(self) -> int:
        """Remove every record. Returns how many were removed."""
        count = len(self._records)
        self._records.clear()
        logger.info("Cleared feed log", extra={"count": count})
        return count

    def query(self, window_start: datetime, window_end: datetime) -> FeedQuery:
        """Feeds whose start lies in [window_start, window_end]."""
        return FeedQuery(self._records, window_start, window_end)

    def _index_of(self, feed_id):
        feed_id = str(feed_id)
        for index, record in enumerate(self._records):
            if record.id == feed_id:
                return index
        raise FeedNotFound(feed_id)

    def _next_id(self, now):
        candidate = int(now.timestamp() * 1000)
        if self._records:
            highest = max(int(record.id) for record in self._records)
            candidate = max(candidate, highest + 1)
        return str(candidate)

    def _resort(self):
        self._records.sort(key=_sort_key, reverse=True)
