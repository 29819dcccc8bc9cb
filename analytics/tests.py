"""Tests for feed statistics."""

from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from decimal import Decimal

from django.test import SimpleTestCase

from feedings.log import FeedLog
from feedings.models import FeedKind, FeedRecord

from .utils import average_gap, count_since, get_feed_summary

T0 = datetime(2025, 1, 15, 0, 0, tzinfo=dt_timezone.utc)
DAY = timedelta(hours=24)


def log_at(*hour_offsets):
    return FeedLog(
        FeedRecord(id=str(i + 1), start=T0 + timedelta(hours=h))
        for i, h in enumerate(hour_offsets)
    )


class CountSinceTests(SimpleTestCase):
    def test_empty_log(self):
        self.assertEqual(count_since(FeedLog(), T0, DAY), 0)

    def test_counts_only_trailing_window(self):
        log = log_at(0, 10, 20, 30, 40)
        self.assertEqual(count_since(log, T0 + timedelta(hours=40), DAY), 3)

    def test_exactly_window_ago_is_included(self):
        log = log_at(0, 12)
        self.assertEqual(count_since(log, T0 + DAY, DAY), 2)

    def test_just_outside_window_is_excluded(self):
        log = log_at(0, 12)
        now = T0 + DAY + timedelta(seconds=1)
        self.assertEqual(count_since(log, now, DAY), 1)

    def test_feed_at_now_is_included(self):
        log = log_at(5)
        self.assertEqual(count_since(log, T0 + timedelta(hours=5), DAY), 1)

    def test_future_feeds_are_excluded(self):
        log = log_at(0, 30)
        self.assertEqual(count_since(log, T0 + timedelta(hours=6), DAY), 1)

    def test_default_window_is_24_hours(self):
        log = log_at(0, 23, 25)
        self.assertEqual(count_since(log, T0 + timedelta(hours=25)), 2)


class AverageGapTests(SimpleTestCase):
    def test_fewer_than_two_feeds(self):
        self.assertIsNone(average_gap(FeedLog()))
        self.assertIsNone(average_gap(log_at(3)))

    def test_gaps_between_consecutive_feeds(self):
        """Feeds at 0, 2, 5, 9h give gaps 4h, 3h, 2h averaging 3h."""
        self.assertEqual(average_gap(log_at(0, 2, 5, 9)), timedelta(hours=3))

    def test_sample_size_limits_pairs(self):
        log = log_at(0, 2, 5, 9)
        self.assertEqual(average_gap(log, sample_size=1), timedelta(hours=4))
        self.assertEqual(average_gap(log, sample_size=2), timedelta(hours=3.5))

    def test_sample_larger_than_log(self):
        self.assertEqual(average_gap(log_at(0, 2), sample_size=10), timedelta(hours=2))

    def test_insertion_order_does_not_matter(self):
        self.assertEqual(average_gap(log_at(9, 0, 5, 2)), timedelta(hours=3))

    def test_default_sample_uses_ten_most_recent_gaps(self):
        # First gap is 100h; the ten most recent gaps are all 1h
        log = log_at(0, *range(100, 111))
        self.assertEqual(average_gap(log), timedelta(hours=1))


class FeedSummaryTests(SimpleTestCase):
    def setUp(self):
        self.log = FeedLog(
            [
                FeedRecord(id="1", start=T0, kind=FeedKind.LEFT),
                FeedRecord(
                    id="2",
                    start=T0 + timedelta(hours=3),
                    kind=FeedKind.BOTTLE,
                    amount=Decimal("90"),
                ),
                FeedRecord(
                    id="3",
                    start=T0 + timedelta(hours=6),
                    kind=FeedKind.FORMULA,
                    amount=Decimal("120.5"),
                ),
                FeedRecord(id="4", start=T0 + timedelta(hours=30), kind=FeedKind.RIGHT),
            ]
        )
        self.now = T0 + timedelta(hours=30)

    def test_summary(self):
        summary = get_feed_summary(self.log, self.now)
        self.assertEqual(summary["window"], DAY)
        self.assertEqual(summary["count"], 2)
        self.assertEqual(summary["total_feeds"], 4)
        self.assertEqual(summary["last_feed_at"], T0 + timedelta(hours=30))
        self.assertEqual(summary["average_gap"], timedelta(hours=10))
        self.assertEqual(summary["total_amount"], Decimal("120.5"))

    def test_breakdown_lists_every_kind(self):
        summary = get_feed_summary(self.log, self.now)
        self.assertEqual(
            summary["by_kind"],
            {"breast-l": 0, "breast-r": 1, "bottle": 0, "formula": 1},
        )

    def test_empty_log(self):
        summary = get_feed_summary(FeedLog(), self.now)
        self.assertEqual(summary["count"], 0)
        self.assertIsNone(summary["average_gap"])
        self.assertIsNone(summary["last_feed_at"])
        self.assertEqual(summary["total_amount"], Decimal("0"))

    def test_custom_window_and_sample(self):
        summary = get_feed_summary(
            self.log, self.now, window=timedelta(hours=48), sample_size=1
        )
        self.assertEqual(summary["count"], 4)
        self.assertEqual(summary["average_gap"], timedelta(hours=24))
