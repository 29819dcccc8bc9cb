"""Errors raised by the tracker's persistence and settings layers."""

from feedings.exceptions import TrackerError


class PersistenceFailure(TrackerError):
    """The data file could not be read or written, or held malformed data."""

    def __init__(self, message, path=None):
        self.path = path
        super().__init__(message)


class InvalidSettings(TrackerError):
    """A settings change was rejected (e.g. a non-positive interval)."""
