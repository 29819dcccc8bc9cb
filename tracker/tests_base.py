"""Base test class for API tests that drive the tracker over HTTP.

Each test gets its own Tracker backed by a data file in a throwaway
directory, installed as the process tracker for the duration of the test.
The request clock is pinned so timer values are deterministic.
"""

import shutil
import tempfile
from datetime import datetime
from datetime import timezone as dt_timezone
from pathlib import Path
from unittest.mock import patch

from django.apps import apps
from django.utils import timezone as django_tz
from rest_framework.test import APISimpleTestCase

from .service import Tracker
from .storage import DocumentStore

API_ROOT = "/api/v1"
T0 = datetime(2025, 1, 15, 8, 0, tzinfo=dt_timezone.utc)


class TrackerAPITestCase(APISimpleTestCase):
    """APIClient test case with an isolated tracker and a pinned clock.

    Attributes:
        tracker: The Tracker serving requests in this test
        path: Its data file
        now: The instant every request observes; change it with set_now()
    """

    def setUp(self):
        super().setUp()
        self.tmpdir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.tmpdir, ignore_errors=True)
        self.path = Path(self.tmpdir) / "nurture_data.json"

        self.tracker = Tracker(DocumentStore(self.path))
        self.tracker.load()
        config = apps.get_app_config("tracker")
        self.addCleanup(config.use_tracker, None)
        config.use_tracker(self.tracker)

        self.now = T0
        clock = patch.object(django_tz, "now", side_effect=lambda: self.now)
        clock.start()
        self.addCleanup(clock.stop)

    def set_now(self, now):
        self.now = now

    def url(self, path):
        return f"{API_ROOT}/{path}"
