"""REST API views for analytics endpoints.

Rolling statistics over the feed log, computed fresh on every request.
"""

from datetime import timedelta

from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from tracker.mixins import TrackerMixin

from .serializers import FeedSummaryResponseSerializer, SummaryQuerySerializer


class AnalyticsViewSet(TrackerMixin, viewsets.ViewSet):
    """ViewSet for analytics endpoints.

    GET /api/v1/analytics/summary/ - Feed count, average gap and totals
    """

    @action(detail=False, methods=["get"])
    def summary(self, request):
        """Summary over a rolling window (?hours=24) and gap sample (?sample=10)."""
        query = SummaryQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        hours = query.validated_data.get("hours")
        summary = self.get_tracker().stats(
            self.get_now(),
            window=timedelta(hours=hours) if hours else None,
            sample_size=query.validated_data.get("sample"),
        )
        return Response(FeedSummaryResponseSerializer(summary).data)
