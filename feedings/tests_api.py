"""API tests for feedings app."""

import json
from datetime import timedelta
from unittest.mock import patch

from rest_framework import status

from tracker.exceptions import PersistenceFailure
from tracker.tests_base import T0, TrackerAPITestCase

from .constants import ENCOURAGEMENTS
from .models import FeedKind


class FeedAPITests(TrackerAPITestCase):
    """Tests for the feed log endpoints."""

    def detail_url(self, feed_id):
        return self.url(f"feeds/{feed_id}/")

    def start_feed(self, data=None):
        return self.client.post(self.url("feeds/start/"), data or {})

    def test_list_empty(self):
        response = self.client.get(self.url("feeds/"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, [])

    def test_start_feed(self):
        response = self.start_feed()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        feed = response.data["feed"]
        self.assertEqual(feed["start"], "2025-01-15T08:00:00Z")
        self.assertIsNone(feed["end"])
        self.assertEqual(feed["type"], "breast-l")
        self.assertEqual(feed["type_display"], "Left")
        self.assertIsNone(feed["duration_seconds"])
        self.assertIsNone(response.data["warning"])
        self.assertIn(response.data["encouragement"], ENCOURAGEMENTS)

    def test_start_feed_with_type(self):
        response = self.start_feed({"type": "bottle"})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["feed"]["type"], "bottle")

    def test_start_feed_unknown_type(self):
        response = self.start_feed({"type": "juice"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("type", response.data)
        self.assertEqual(len(self.tracker.feeds()), 0)

    def test_start_feed_is_saved(self):
        feed_id = self.start_feed().data["feed"]["id"]
        stored = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual([feed["id"] for feed in stored["feeds"]], [feed_id])

    def test_start_feed_resets_timer(self):
        self.start_feed()
        self.set_now(T0 + timedelta(minutes=30))
        response = self.client.get(self.url("timer/"))
        self.assertEqual(response.data["display"], "1:30:00")

    def test_list_newest_first(self):
        first = self.start_feed().data["feed"]["id"]
        self.set_now(T0 + timedelta(hours=2))
        second = self.start_feed().data["feed"]["id"]

        response = self.client.get(self.url("feeds/"))

        self.assertEqual([feed["id"] for feed in response.data], [second, first])

    def test_list_limit(self):
        for hour in range(3):
            self.set_now(T0 + timedelta(hours=hour))
            self.start_feed()

        response = self.client.get(self.url("feeds/"), {"limit": 2})

        self.assertEqual(len(response.data), 2)
        self.assertEqual(response.data[0]["start"], "2025-01-15T10:00:00Z")

    def test_list_invalid_limit(self):
        response = self.client.get(self.url("feeds/"), {"limit": "many"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_retrieve(self):
        feed_id = self.start_feed().data["feed"]["id"]
        response = self.client.get(self.detail_url(feed_id))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["id"], feed_id)

    def test_retrieve_unknown_id(self):
        response = self.client.get(self.detail_url("12345"))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_patch_feed(self):
        feed_id = self.start_feed().data["feed"]["id"]

        response = self.client.patch(
            self.detail_url(feed_id),
            {
                "end": "2025-01-15T08:25:00Z",
                "type": "formula",
                "amount": "120.5",
                "brand": "Acme",
                "notes": "finished the bottle",
            },
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        feed = response.data["feed"]
        self.assertEqual(feed["end"], "2025-01-15T08:25:00Z")
        self.assertEqual(feed["type"], "formula")
        self.assertEqual(feed["amount"], "120.5")
        self.assertEqual(feed["brand"], "Acme")
        self.assertEqual(feed["notes"], "finished the bottle")
        self.assertEqual(feed["duration_seconds"], 25 * 60)
        self.assertEqual(self.tracker.get_feed(feed_id).kind, FeedKind.FORMULA)

    def test_patch_end_before_start(self):
        feed_id = self.start_feed().data["feed"]["id"]

        response = self.client.patch(
            self.detail_url(feed_id), {"end": "2025-01-15T07:59:00Z"}
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("end", response.data)
        self.assertIsNone(self.tracker.get_feed(feed_id).end)

    def test_patch_start_after_end(self):
        feed_id = self.start_feed().data["feed"]["id"]
        self.client.patch(self.detail_url(feed_id), {"end": "2025-01-15T08:20:00Z"})

        response = self.client.patch(
            self.detail_url(feed_id), {"start": "2025-01-15T08:30:00Z"}
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_patch_negative_amount(self):
        feed_id = self.start_feed({"type": "bottle"}).data["feed"]["id"]
        response = self.client.patch(self.detail_url(feed_id), {"amount": "-1"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("amount", response.data)

    def test_patch_unknown_id(self):
        response = self.client.patch(self.detail_url("12345"), {"notes": "x"})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_patch_start_moves_timer(self):
        """Editing the latest feed's start time re-bases the countdown."""
        feed_id = self.start_feed().data["feed"]["id"]
        self.client.patch(self.detail_url(feed_id), {"start": "2025-01-15T07:00:00Z"})

        response = self.client.get(self.url("timer/"))

        self.assertEqual(response.data["reference"], "2025-01-15T07:00:00Z")
        self.assertEqual(response.data["display"], "1:00:00")

    def test_patch_reports_save_failure(self):
        feed_id = self.start_feed().data["feed"]["id"]
        with patch.object(
            self.tracker.store, "save", side_effect=PersistenceFailure("disk full")
        ):
            response = self.client.patch(self.detail_url(feed_id), {"notes": "x"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("disk full", response.data["warning"])
        self.assertEqual(self.tracker.get_feed(feed_id).notes, "x")

    def test_delete_feed(self):
        feed_id = self.start_feed().data["feed"]["id"]

        response = self.client.delete(self.detail_url(feed_id))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {"deleted": feed_id, "warning": None})
        self.assertEqual(
            self.client.get(self.detail_url(feed_id)).status_code,
            status.HTTP_404_NOT_FOUND,
        )

    def test_delete_only_feed_clears_timer(self):
        feed_id = self.start_feed().data["feed"]["id"]
        self.client.delete(self.detail_url(feed_id))

        response = self.client.get(self.url("timer/"))

        self.assertEqual(response.data["display"], "--:--")
        self.assertEqual(response.data["reminder"]["phase"], "idle")

    def test_delete_unknown_id(self):
        response = self.client.delete(self.detail_url("12345"))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_clear(self):
        self.start_feed()
        self.set_now(T0 + timedelta(hours=1))
        self.start_feed()

        response = self.client.post(self.url("feeds/clear/"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {"deleted": 2, "warning": None})
        self.assertEqual(self.client.get(self.url("feeds/")).data, [])

    def test_export(self):
        self.start_feed({"type": "bottle"})

        response = self.client.get(self.url("feeds/export/"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response["Content-Type"], "application/json")
        self.assertEqual(
            response["Content-Disposition"],
            'attachment; filename="feed_history.json"',
        )
        exported = json.loads(response.content)
        self.assertEqual(len(exported), 1)
        self.assertEqual(exported[0]["type"], "bottle")
        self.assertEqual(exported[0]["start"], "2025-01-15T08:00:00Z")
