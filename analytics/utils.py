"""Aggregation utilities for feed statistics.

Rolling-window counts and moving averages computed straight from the feed
log. Nothing is cached: every call reflects the log as it is now.
"""

from collections import Counter
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Optional

from feedings.log import FeedLog
from feedings.models import FeedKind

DEFAULT_WINDOW = timedelta(hours=24)
DEFAULT_SAMPLE_SIZE = 10


def count_since(log: FeedLog, now: datetime, window: timedelta = DEFAULT_WINDOW) -> int:
    """Count feeds that started within ``[now - window, now]``.

    A feed exactly `window` ago is counted. Feeds dated after `now` are not.

    Args:
        log: The feed log
        now: End of the window
        window: Length of the window (default 24 hours)

    Returns:
        Number of feeds in the window
    """
    return log.query(now - window, now).count()


def average_gap(log: FeedLog, sample_size: int = DEFAULT_SAMPLE_SIZE) -> Optional[timedelta]:
    """Average start-to-start gap over the most recent feeds.

    Uses the ``min(sample_size, count - 1)`` most recent consecutive pairs
    of the newest-first order, so each gap is non-negative.

    Args:
        log: The feed log
        sample_size: Maximum number of gaps to average

    Returns:
        Average gap, or None with fewer than two feeds
    """
    starts = sorted((record.start for record in log), reverse=True)
    pairs = min(sample_size, len(starts) - 1)
    if pairs < 1:
        return None

    total = sum(
        (starts[i] - starts[i + 1] for i in range(pairs)),
        timedelta(0),
    )
    return total / pairs


def _kind_breakdown(records) -> dict[str, int]:
    counts = Counter(record.kind.value for record in records)
    return {kind.value: counts.get(kind.value, 0) for kind in FeedKind}


def _total_amount(records) -> Decimal:
    return sum(
        (record.amount for record in records if record.amount is not None),
        Decimal("0"),
    )


def get_feed_summary(
    log: FeedLog,
    now: datetime,
    window: timedelta = DEFAULT_WINDOW,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
) -> dict[str, Any]:
    """Summary shown on the stats view.

    Args:
        log: The feed log
        now: Query instant
        window: Rolling window for counts and totals
        sample_size: Gap sample for the moving average

    Returns:
        Dict with window, count, average_gap, last_feed_at, total_feeds,
        by_kind and total_amount
    """
    in_window = list(log.query(now - window, now))
    latest = log.most_recent

    return {
        "window": window,
        "count": len(in_window),
        "average_gap": average_gap(log, sample_size),
        "last_feed_at": latest.start if latest else None,
        "total_feeds": len(log),
        "by_kind": _kind_breakdown(in_window),
        "total_amount": _total_amount(in_window),
    }
