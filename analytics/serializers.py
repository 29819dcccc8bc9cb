"""Serializers for analytics endpoints.

Request validation and response formatting for feed statistics.
"""

from rest_framework import serializers

from timers.api import SecondsField
from tracker.document import UTCDateTimeField


class SummaryQuerySerializer(serializers.Serializer):
    """Validate the query parameters of the summary endpoint."""

    hours = serializers.IntegerField(
        required=False,
        min_value=1,
        max_value=24 * 30,
        help_text="Rolling window in hours (default 24)",
    )
    sample = serializers.IntegerField(
        required=False,
        min_value=1,
        max_value=100,
        help_text="Number of recent gaps to average (default 10)",
    )


class FeedSummaryResponseSerializer(serializers.Serializer):
    """Response for the feed summary endpoint."""

    window_hours = serializers.SerializerMethodField()
    count = serializers.IntegerField()
    average_gap_seconds = SecondsField(source="average_gap", allow_null=True)
    average_gap_hours = serializers.SerializerMethodField()
    last_feed_at = UTCDateTimeField(allow_null=True)
    total_feeds = serializers.IntegerField()
    by_kind = serializers.DictField(child=serializers.IntegerField())
    total_amount = serializers.DecimalField(max_digits=None, decimal_places=1)

    def get_window_hours(self, summary):
        return summary["window"].total_seconds() / 3600

    def get_average_gap_hours(self, summary):
        """Average gap in hours to one decimal, as shown on the stats view."""
        if summary["average_gap"] is None:
            return None
        return round(summary["average_gap"].total_seconds() / 3600, 1)
