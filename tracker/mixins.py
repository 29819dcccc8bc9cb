"""View mixins giving API views access to the process tracker."""

from django.apps import apps
from django.utils import timezone


class TrackerMixin:
    """Resolve the shared Tracker and the request's query instant.

    Every request uses a single `now` so all derived values in one response
    agree with each other.
    """

    def get_tracker(self):
        return apps.get_app_config("tracker").get_tracker()

    def get_now(self):
        if not hasattr(self, "_now"):
            self._now = timezone.now()
        return self._now
