"""REST API for feedings app: the feed log."""

import random

from django.http import HttpResponse
from rest_framework import serializers, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.response import Response

from tracker.document import UTCDateTimeField
from tracker.mixins import TrackerMixin

from .constants import (
    AMOUNT_DECIMAL_PLACES,
    AMOUNT_MAX_DIGITS,
    ENCOURAGEMENTS,
    MAX_BRAND_LENGTH,
    MAX_NOTES_LENGTH,
    MIN_AMOUNT,
)
from .exceptions import FeedNotFound, InvalidAmount, InvalidRange
from .models import DEFAULT_KIND, FeedKind

EXPORT_FILENAME = "feed_history.json"


class FeedSerializer(serializers.Serializer):
    """Feed record with end-after-start validation."""

    id = serializers.CharField(read_only=True)
    start = UTCDateTimeField()
    end = UTCDateTimeField(required=False, allow_null=True)
    type = serializers.ChoiceField(choices=FeedKind.choices, source="kind")
    type_display = serializers.CharField(source="kind.label", read_only=True)
    amount = serializers.DecimalField(
        max_digits=AMOUNT_MAX_DIGITS,
        decimal_places=AMOUNT_DECIMAL_PLACES,
        min_value=MIN_AMOUNT,
        required=False,
        allow_null=True,
    )
    brand = serializers.CharField(
        max_length=MAX_BRAND_LENGTH, required=False, allow_blank=True
    )
    notes = serializers.CharField(
        max_length=MAX_NOTES_LENGTH, required=False, allow_blank=True
    )
    duration_seconds = serializers.SerializerMethodField()

    def get_duration_seconds(self, record):
        if record.duration is None:
            return None
        return int(record.duration.total_seconds())

    def _current(self, data, field_name):
        """Submitted value, or the existing record's value for partial edits."""
        if field_name in data:
            return data[field_name]
        return getattr(self.instance, field_name, None)

    def validate(self, data):
        """Reject an end before the start."""
        start = self._current(data, "start")
        end = self._current(data, "end")
        if start is not None and end is not None and end < start:
            raise serializers.ValidationError(
                {"end": "End time cannot be before start time."}
            )
        return data


class StartFeedSerializer(serializers.Serializer):
    type = serializers.ChoiceField(
        choices=FeedKind.choices, default=DEFAULT_KIND.value
    )


class FeedViewSet(TrackerMixin, viewsets.ViewSet):
    """Feed log endpoints.

    GET    /api/v1/feeds/         - List feeds, newest first (?limit=N)
    POST   /api/v1/feeds/start/   - Start a feed now
    GET    /api/v1/feeds/{id}/    - Retrieve a feed
    PATCH  /api/v1/feeds/{id}/    - Edit a feed
    DELETE /api/v1/feeds/{id}/    - Delete a feed
    POST   /api/v1/feeds/clear/   - Delete all history
    GET    /api/v1/feeds/export/  - Download the feed history as JSON
    """

    lookup_value_regex = r"\d+"

    def _get_record(self, pk):
        try:
            return self.get_tracker().get_feed(pk)
        except FeedNotFound:
            raise NotFound("Feed not found")

    def _mutation_response(self, result, status_code=status.HTTP_200_OK, **extra):
        data = {"feed": FeedSerializer(result.value).data, "warning": result.warning}
        data.update(extra)
        return Response(data, status=status_code)

    def list(self, request):
        records = self.get_tracker().feeds()
        limit = request.query_params.get("limit")
        if limit is not None:
            try:
                records = records[: max(int(limit), 0)]
            except ValueError:
                raise ValidationError({"limit": "A valid integer is required."})
        return Response(FeedSerializer(records, many=True).data)

    def retrieve(self, request, pk=None):
        return Response(FeedSerializer(self._get_record(pk)).data)

    def partial_update(self, request, pk=None):
        record = self._get_record(pk)
        serializer = FeedSerializer(record, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        try:
            result = self.get_tracker().edit_feed(
                pk, dict(serializer.validated_data), self.get_now()
            )
        except FeedNotFound:
            raise NotFound("Feed not found")
        except InvalidRange as e:
            raise ValidationError({"end": str(e)})
        except InvalidAmount as e:
            raise ValidationError({"amount": str(e)})
        return self._mutation_response(result)

    def destroy(self, request, pk=None):
        try:
            result = self.get_tracker().delete_feed(pk, self.get_now())
        except FeedNotFound:
            raise NotFound("Feed not found")
        return Response({"deleted": result.value.id, "warning": result.warning})

    @action(detail=False, methods=["post"])
    def start(self, request):
        """Start a feed at the current instant."""
        serializer = StartFeedSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.get_tracker().start_feed(
            self.get_now(), FeedKind(serializer.validated_data["type"])
        )
        return self._mutation_response(
            result,
            status.HTTP_201_CREATED,
            encouragement=random.choice(ENCOURAGEMENTS),
        )

    @action(detail=False, methods=["post"])
    def clear(self, request):
        """Delete every feed in the log."""
        result = self.get_tracker().clear_feeds(self.get_now())
        return Response({"deleted": result.value, "warning": result.warning})

    @action(detail=False, methods=["get"])
    def export(self, request):
        """Download the full feed list as a pretty-printed JSON document."""
        response = HttpResponse(
            self.get_tracker().export(), content_type="application/json"
        )
        response["Content-Disposition"] = f'attachment; filename="{EXPORT_FILENAME}"'
        return response
