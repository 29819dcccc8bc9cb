"""Errors raised by the feed log.

All of them are raised before the log is touched, so a failed operation
never leaves a half-applied change behind.
"""


class TrackerError(Exception):
    """Base class for every error the tracker reports to its callers."""


class FeedNotFound(TrackerError):
    """An operation referenced a feed id that is not in the log."""

    def __init__(self, feed_id):
        self.feed_id = feed_id
        super().__init__(f"Feed {feed_id} not found")


class InvalidRange(TrackerError):
    """A feed would end before it started."""

    def __init__(self, start, end):
        self.start = start
        self.end = end
        super().__init__("End time cannot be before start time.")


class InvalidAmount(TrackerError):
    """A bottle or formula amount was negative."""

    def __init__(self, amount):
        self.amount = amount
        super().__init__("Amount cannot be negative.")
