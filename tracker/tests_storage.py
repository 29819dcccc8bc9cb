"""Tests for the data document encoding and the JSON file store."""

import json
import os
import shutil
import tempfile
from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from decimal import Decimal
from pathlib import Path
from unittest.mock import patch

from django.test import SimpleTestCase

from feedings.models import FeedKind, FeedRecord
from timers.engine import TimerMode

from .document import (
    decode_document,
    decode_feeds,
    decode_settings,
    encode_document,
    encode_feed,
)
from .exceptions import PersistenceFailure
from .models import Theme, TrackerSettings
from .storage import DocumentStore

T0 = datetime(2025, 1, 15, 10, 0, tzinfo=dt_timezone.utc)


class EncodeDocumentTests(SimpleTestCase):
    def test_encode_feed(self):
        record = FeedRecord(
            id="1736935200000",
            start=T0,
            end=T0 + timedelta(minutes=20),
            kind=FeedKind.BOTTLE,
            amount=Decimal("120"),
            brand="Acme",
            notes="burped twice",
        )
        self.assertEqual(
            encode_feed(record),
            {
                "id": "1736935200000",
                "start": "2025-01-15T10:00:00Z",
                "end": "2025-01-15T10:20:00Z",
                "type": "bottle",
                "amount": "120",
                "brand": "Acme",
                "notes": "burped twice",
            },
        )

    def test_encode_feed_without_end_or_amount(self):
        encoded = encode_feed(FeedRecord(id="1", start=T0))
        self.assertIsNone(encoded["end"])
        self.assertIsNone(encoded["amount"])
        self.assertEqual(encoded["type"], "breast-l")

    def test_encode_converts_to_utc(self):
        eastern = dt_timezone(timedelta(hours=-5))
        encoded = encode_feed(FeedRecord(id="1", start=T0.astimezone(eastern)))
        self.assertEqual(encoded["start"], "2025-01-15T10:00:00Z")

    def test_encode_document_shape(self):
        settings = TrackerSettings(
            interval=timedelta(hours=2, minutes=30), theme=Theme.OCEAN, dark_mode=True
        )
        document = encode_document([FeedRecord(id="1", start=T0)], settings)
        self.assertEqual(set(document), {"feeds", "settings"})
        self.assertEqual(
            document["settings"],
            {"theme": "ocean", "darkMode": True, "intervalHours": 2.5},
        )

    def test_view_mode_is_not_written(self):
        settings = TrackerSettings(view_mode=TimerMode.STOPWATCH)
        document = encode_document([], settings)
        self.assertNotIn("viewMode", document["settings"])


class DecodeDocumentTests(SimpleTestCase):
    def test_decode_encoded_document(self):
        records = [
            FeedRecord(id="2", start=T0, kind=FeedKind.FORMULA, amount=Decimal("90.5")),
            FeedRecord(id="1", start=T0 - timedelta(hours=3), notes="night feed"),
        ]
        settings = TrackerSettings(interval=timedelta(hours=3), theme=Theme.SAGE)

        decoded_records, decoded_settings = decode_document(
            json.loads(json.dumps(encode_document(records, settings)))
        )

        self.assertEqual(decoded_records, records)
        self.assertEqual(decoded_settings, settings)

    def test_missing_sections_use_defaults(self):
        records, settings = decode_document({})
        self.assertEqual(records, [])
        self.assertEqual(settings, TrackerSettings())

    def test_not_an_object(self):
        with self.assertRaises(PersistenceFailure):
            decode_document([])

    def test_feeds_not_a_list(self):
        with self.assertRaises(PersistenceFailure):
            decode_feeds({"id": "1"})

    def test_malformed_feed(self):
        with self.assertRaises(PersistenceFailure):
            decode_feeds([{"id": "1", "start": "yesterday", "type": "bottle"}])

    def test_unknown_type(self):
        with self.assertRaises(PersistenceFailure):
            decode_feeds([{"id": "1", "start": "2025-01-15T10:00:00Z", "type": "juice"}])

    def test_end_before_start(self):
        with self.assertRaises(PersistenceFailure):
            decode_feeds(
                [
                    {
                        "id": "1",
                        "start": "2025-01-15T10:00:00Z",
                        "end": "2025-01-15T09:00:00Z",
                        "type": "bottle",
                    }
                ]
            )

    def test_negative_amount(self):
        with self.assertRaises(PersistenceFailure):
            decode_feeds(
                [
                    {
                        "id": "1",
                        "start": "2025-01-15T10:00:00Z",
                        "type": "bottle",
                        "amount": "-5",
                    }
                ]
            )

    def test_non_numeric_id(self):
        with self.assertRaises(PersistenceFailure):
            decode_feeds([{"id": "abc", "start": "2025-01-15T10:00:00Z", "type": "bottle"}])

    def test_original_app_document_is_upgraded(self):
        """Documents written by the browser app use older keys and labels."""
        records, settings = decode_document(
            {
                "feeds": [
                    {
                        "id": "1736935200000",
                        "timestamp": "2025-01-15T10:00:00.000Z",
                        "type": "Left",
                        "amount": "",
                        "notes": "",
                    },
                    {
                        "id": "1736928000000",
                        "timestamp": "2025-01-15T08:00:00.000Z",
                        "type": "Bottle",
                        "amount": "120",
                        "notes": "good feed",
                    },
                ],
                "settings": {"intervalMinutes": 150, "theme": "ocean"},
            }
        )
        self.assertEqual(records[0].start, T0)
        self.assertEqual(records[0].kind, FeedKind.LEFT)
        self.assertIsNone(records[0].amount)
        self.assertEqual(records[1].kind, FeedKind.BOTTLE)
        self.assertEqual(records[1].amount, Decimal("120"))
        self.assertEqual(settings.interval, timedelta(hours=2, minutes=30))
        self.assertEqual(settings.theme, Theme.OCEAN)

    def test_original_default_document_keeps_dark_mode(self):
        records, settings = decode_document(
            {"feeds": [], "settings": {"intervalMinutes": 150, "theme": "dark"}}
        )
        self.assertEqual(records, [])
        self.assertEqual(settings.theme, Theme.DEFAULT)
        self.assertTrue(settings.dark_mode)
        self.assertEqual(settings.interval, timedelta(hours=2, minutes=30))

    def test_legacy_light_theme(self):
        settings = decode_settings({"theme": "light"})
        self.assertEqual(settings.theme, Theme.DEFAULT)
        self.assertFalse(settings.dark_mode)

    def test_explicit_dark_mode_wins_over_legacy_theme(self):
        settings = decode_settings({"theme": "dark", "darkMode": False})
        self.assertFalse(settings.dark_mode)

    def test_invalid_settings_fall_back_individually(self):
        settings = decode_settings(
            {"theme": "neon", "darkMode": True, "intervalHours": -1}
        )
        self.assertEqual(settings.theme, Theme.DEFAULT)
        self.assertTrue(settings.dark_mode)
        self.assertEqual(settings.interval, timedelta(hours=2))

    def test_zero_interval_falls_back(self):
        self.assertEqual(
            decode_settings({"intervalHours": 0}).interval, timedelta(hours=2)
        )

    def test_settings_not_an_object(self):
        self.assertEqual(decode_settings("dark"), TrackerSettings())


class DocumentStoreTests(SimpleTestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.tmpdir, ignore_errors=True)
        self.path = Path(self.tmpdir) / "data.json"
        self.store = DocumentStore(self.path)

    def test_load_missing_file(self):
        self.assertIsNone(self.store.load())
        self.assertIsNone(self.store.mtime())

    def test_save_and_load(self):
        document = {"feeds": [], "settings": {"theme": "sage"}}
        self.store.save(document)
        self.assertEqual(self.store.load(), document)
        self.assertIsNotNone(self.store.mtime())

    def test_save_is_pretty_printed(self):
        self.store.save({"feeds": []})
        self.assertIn('\n  "feeds"', self.path.read_text(encoding="utf-8"))

    def test_save_creates_parent_directory(self):
        store = DocumentStore(Path(self.tmpdir) / "nested" / "data.json")
        store.save({"feeds": []})
        self.assertTrue(store.path.exists())

    def test_save_leaves_no_temp_files(self):
        self.store.save({"feeds": []})
        self.assertEqual(os.listdir(self.tmpdir), ["data.json"])

    def test_load_invalid_json(self):
        self.path.write_text("{not json", encoding="utf-8")
        with self.assertRaises(PersistenceFailure) as ctx:
            self.store.load()
        self.assertEqual(ctx.exception.path, self.path)

    def test_load_non_object(self):
        self.path.write_text("[1, 2, 3]", encoding="utf-8")
        with self.assertRaises(PersistenceFailure):
            self.store.load()

    def test_save_failure_keeps_previous_document(self):
        self.store.save({"feeds": [], "settings": {}})
        with patch("tracker.storage.os.replace", side_effect=OSError("disk full")):
            with self.assertRaises(PersistenceFailure):
                self.store.save({"feeds": [{"id": "1"}]})
        self.assertEqual(self.store.load(), {"feeds": [], "settings": {}})
        self.assertEqual(os.listdir(self.tmpdir), ["data.json"])

    def test_save_unserializable_document(self):
        with self.assertRaises(PersistenceFailure):
            self.store.save({"feeds": object()})

    def test_quarantine_moves_file_aside(self):
        self.path.write_text("{not json", encoding="utf-8")
        moved = self.store.quarantine()
        self.assertFalse(self.path.exists())
        self.assertTrue(moved.exists())
        self.assertTrue(moved.name.startswith("data.json.corrupt-"))

    def test_quarantine_without_file(self):
        self.assertIsNone(self.store.quarantine())
