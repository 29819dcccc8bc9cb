import threading

from django.apps import AppConfig


class TrackerConfig(AppConfig):
    """Owns the process's single Tracker instance.

    The tracker is built lazily on first use so management commands that
    never touch it do not read the data file.
    """

    name = "tracker"

    def ready(self):
        self._tracker = None
        self._tracker_lock = threading.Lock()

    def get_tracker(self):
        with self._tracker_lock:
            if self._tracker is None:
                from .service import Tracker

                self._tracker = Tracker.from_settings()
            return self._tracker

    def use_tracker(self, tracker):
        """Install a tracker built elsewhere, or None to rebuild lazily from settings.

        Test cases use this to serve requests from a tracker over a temporary
        data file.
        """
        with self._tracker_lock:
            self._tracker = tracker
