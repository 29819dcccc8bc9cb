import itertools
import random
from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from decimal import Decimal

from django.test import SimpleTestCase

from .exceptions import FeedNotFound, InvalidAmount, InvalidRange
from .log import FeedLog
from .models import FeedKind, FeedRecord

T0 = datetime(2025, 1, 15, 10, 0, tzinfo=dt_timezone.utc)


def hours(n):
    return timedelta(hours=n)


class FeedRecordTests(SimpleTestCase):
    def test_defaults(self):
        record = FeedRecord(id="1", start=T0)
        self.assertIsNone(record.end)
        self.assertEqual(record.kind, FeedKind.LEFT)
        self.assertIsNone(record.amount)
        self.assertEqual(record.brand, "")
        self.assertEqual(record.notes, "")

    def test_kind_choices(self):
        self.assertEqual(FeedKind.LEFT, "breast-l")
        self.assertEqual(FeedKind.RIGHT, "breast-r")
        self.assertEqual(FeedKind.BOTTLE, "bottle")
        self.assertEqual(FeedKind.FORMULA, "formula")

    def test_kind_coerced_from_string(self):
        record = FeedRecord(id="1", start=T0, kind="bottle")
        self.assertIs(record.kind, FeedKind.BOTTLE)

    def test_end_before_start_rejected(self):
        with self.assertRaises(InvalidRange):
            FeedRecord(id="1", start=T0, end=T0 - timedelta(minutes=1))

    def test_end_equal_to_start_allowed(self):
        record = FeedRecord(id="1", start=T0, end=T0)
        self.assertEqual(record.duration, timedelta(0))

    def test_duration(self):
        record = FeedRecord(id="1", start=T0, end=T0 + timedelta(minutes=25))
        self.assertEqual(record.duration, timedelta(minutes=25))

    def test_duration_none_without_end(self):
        self.assertIsNone(FeedRecord(id="1", start=T0).duration)

    def test_negative_amount_rejected(self):
        with self.assertRaises(InvalidAmount):
            FeedRecord(id="1", start=T0, kind=FeedKind.BOTTLE, amount=Decimal("-1"))

    def test_breast_feed_drops_amount_and_brand(self):
        """Amount and brand only apply to bottle and formula feeds."""
        record = FeedRecord(
            id="1", start=T0, kind=FeedKind.RIGHT, amount=Decimal("90"), brand="Acme"
        )
        self.assertIsNone(record.amount)
        self.assertEqual(record.brand, "")

    def test_formula_keeps_amount_and_brand(self):
        record = FeedRecord(
            id="1", start=T0, kind=FeedKind.FORMULA, amount=Decimal("120"), brand="Acme"
        )
        self.assertEqual(record.amount, Decimal("120"))
        self.assertEqual(record.brand, "Acme")

    def test_str(self):
        record = FeedRecord(id="1", start=T0, kind=FeedKind.BOTTLE)
        self.assertEqual(str(record), "Bottle at 2025-01-15T10:00:00+00:00")


class FeedLogTests(SimpleTestCase):
    def setUp(self):
        self.log = FeedLog()

    def assertSortedAndUnique(self, log):
        starts = [record.start for record in log.records]
        self.assertEqual(starts, sorted(starts, reverse=True))
        ids = [record.id for record in log.records]
        self.assertEqual(len(ids), len(set(ids)))

    def test_empty_log(self):
        self.assertEqual(len(self.log), 0)
        self.assertIsNone(self.log.most_recent)
        self.assertIsNone(self.log.reference)

    def test_start_feed(self):
        record = self.log.start_feed(T0)
        self.assertEqual(record.start, T0)
        self.assertIsNone(record.end)
        self.assertEqual(record.kind, FeedKind.LEFT)
        self.assertEqual(record.id, str(int(T0.timestamp() * 1000)))
        self.assertEqual(self.log.most_recent, record)

    def test_start_feed_with_kind(self):
        record = self.log.start_feed(T0, FeedKind.BOTTLE)
        self.assertEqual(record.kind, FeedKind.BOTTLE)

    def test_ids_unique_within_same_millisecond(self):
        first = self.log.start_feed(T0)
        second = self.log.start_feed(T0)
        self.assertNotEqual(first.id, second.id)
        self.assertGreater(int(second.id), int(first.id))

    def test_ids_monotonic_when_clock_goes_back(self):
        first = self.log.start_feed(T0)
        second = self.log.start_feed(T0 - hours(1))
        self.assertGreater(int(second.id), int(first.id))

    def test_out_of_order_insert_keeps_descending_order(self):
        self.log.start_feed(T0)
        older = self.log.start_feed(T0 - hours(3))
        self.log.start_feed(T0 - hours(1))
        self.assertEqual(self.log.records[-1], older)
        self.assertSortedAndUnique(self.log)

    def test_most_recent_is_max_start_not_last_inserted(self):
        latest = self.log.start_feed(T0)
        self.log.start_feed(T0 - hours(2))
        self.assertEqual(self.log.most_recent, latest)

    def test_edit_feed(self):
        record = self.log.start_feed(T0)
        updated = self.log.edit_feed(
            record.id,
            {"kind": FeedKind.BOTTLE, "amount": Decimal("120"), "notes": "sleepy"},
        )
        self.assertEqual(updated.id, record.id)
        self.assertEqual(updated.kind, FeedKind.BOTTLE)
        self.assertEqual(updated.amount, Decimal("120"))
        self.assertEqual(updated.notes, "sleepy")
        self.assertEqual(self.log.get(record.id), updated)

    def test_edit_unknown_id(self):
        self.log.start_feed(T0)
        with self.assertRaises(FeedNotFound) as ctx:
            self.log.edit_feed("42", {"notes": "x"})
        self.assertEqual(ctx.exception.feed_id, "42")

    def test_edit_invalid_range_leaves_log_untouched(self):
        record = self.log.start_feed(T0)
        with self.assertRaises(InvalidRange):
            self.log.edit_feed(record.id, {"end": T0 - timedelta(minutes=5)})
        self.assertEqual(self.log.get(record.id), record)

    def test_edit_start_past_end_is_invalid_range(self):
        record = self.log.start_feed(T0)
        self.log.edit_feed(record.id, {"end": T0 + timedelta(minutes=20)})
        with self.assertRaises(InvalidRange):
            self.log.edit_feed(record.id, {"start": T0 + timedelta(minutes=30)})

    def test_edit_rejects_unknown_fields(self):
        record = self.log.start_feed(T0)
        with self.assertRaises(ValueError):
            self.log.edit_feed(record.id, {"id": "1"})

    def test_edit_to_breast_clears_amount(self):
        record = self.log.start_feed(T0, FeedKind.BOTTLE)
        self.log.edit_feed(record.id, {"amount": Decimal("60"), "brand": "Acme"})
        updated = self.log.edit_feed(record.id, {"kind": FeedKind.RIGHT})
        self.assertIsNone(updated.amount)
        self.assertEqual(updated.brand, "")

    def test_editing_older_feed_past_latest_changes_reference(self):
        """No stale most-recent pointer after an edit reorders the log."""
        older = self.log.start_feed(T0 - hours(3))
        self.log.start_feed(T0)
        self.assertEqual(self.log.reference, T0)

        self.log.edit_feed(older.id, {"start": T0 + timedelta(minutes=10)})

        self.assertEqual(self.log.most_recent.id, older.id)
        self.assertEqual(self.log.reference, T0 + timedelta(minutes=10))
        self.assertSortedAndUnique(self.log)

    def test_editing_latest_feed_back_in_time_changes_reference(self):
        self.log.start_feed(T0 - hours(3))
        latest = self.log.start_feed(T0)
        self.log.edit_feed(latest.id, {"start": T0 - hours(5)})
        self.assertEqual(self.log.reference, T0 - hours(3))

    def test_delete_feed(self):
        first = self.log.start_feed(T0 - hours(2))
        second = self.log.start_feed(T0)
        removed = self.log.delete_feed(second.id)
        self.assertEqual(removed, second)
        self.assertEqual(self.log.most_recent, first)

    def test_delete_only_feed_empties_reference(self):
        record = self.log.start_feed(T0)
        self.log.delete_feed(record.id)
        self.assertIsNone(self.log.reference)

    def test_delete_unknown_id(self):
        with self.assertRaises(FeedNotFound):
            self.log.delete_feed("123")

    def test_clear(self):
        self.log.start_feed(T0)
        self.log.start_feed(T0 + hours(1))
        self.assertEqual(self.log.clear(), 2)
        self.assertEqual(len(self.log), 0)

    def test_load_drops_duplicate_ids(self):
        log = FeedLog(
            [
                FeedRecord(id="1", start=T0),
                FeedRecord(id="1", start=T0 + hours(1)),
                FeedRecord(id="2", start=T0 - hours(1)),
            ]
        )
        self.assertEqual([r.id for r in log.records], ["1", "2"])

    def test_load_sorts_records(self):
        log = FeedLog(
            [
                FeedRecord(id="1", start=T0 - hours(2)),
                FeedRecord(id="2", start=T0),
                FeedRecord(id="3", start=T0 - hours(1)),
            ]
        )
        self.assertEqual([r.id for r in log.records], ["2", "3", "1"])

    def test_equal_starts_ordered_by_id(self):
        log = FeedLog([FeedRecord(id="5", start=T0), FeedRecord(id="9", start=T0)])
        self.assertEqual([r.id for r in log.records], ["9", "5"])

    def test_random_operations_keep_order_and_unique_ids(self):
        rng = random.Random(1234)
        for step in range(200):
            action = rng.choice(["start", "edit", "delete"])
            if action == "start" or not self.log:
                self.log.start_feed(T0 + timedelta(minutes=rng.randint(-600, 600)))
            elif action == "edit":
                record = rng.choice(self.log.records)
                new_start = T0 + timedelta(minutes=rng.randint(-600, 600))
                self.log.edit_feed(record.id, {"start": new_start, "end": None})
            else:
                self.log.delete_feed(rng.choice(self.log.records).id)
            self.assertSortedAndUnique(self.log)
            if self.log:
                self.assertEqual(
                    self.log.reference, max(r.start for r in self.log.records)
                )


class FeedQueryTests(SimpleTestCase):
    def setUp(self):
        self.log = FeedLog()
        for offset in (0, 2, 5, 9):
            self.log.start_feed(T0 + hours(offset))

    def test_window_is_inclusive(self):
        starts = {r.start for r in self.log.query(T0 + hours(2), T0 + hours(5))}
        self.assertEqual(starts, {T0 + hours(2), T0 + hours(5)})

    def test_query_is_restartable(self):
        query = self.log.query(T0, T0 + hours(9))
        self.assertEqual(len(list(query)), 4)
        self.assertEqual(len(list(query)), 4)
        self.assertEqual(query.count(), 4)

    def test_query_is_lazy_iterable(self):
        query = self.log.query(T0, T0 + hours(9))
        first_two = list(itertools.islice(query, 2))
        self.assertEqual(len(first_two), 2)

    def test_query_snapshot_ignores_later_mutation(self):
        query = self.log.query(T0, T0 + hours(9))
        self.log.clear()
        self.assertEqual(query.count(), 4)

    def test_empty_window(self):
        self.assertEqual(self.log.query(T0 + hours(20), T0 + hours(30)).count(), 0)
