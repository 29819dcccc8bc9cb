"""REST API for the timer: one tick per request."""

from rest_framework import serializers
from rest_framework.response import Response
from rest_framework.views import APIView

from tracker.datetime_utils import format_relative, subtitle_for
from tracker.document import UTCDateTimeField
from tracker.mixins import TrackerMixin
from tracker.models import ReminderSource


class SecondsField(serializers.Field):
    """timedelta rendered as whole seconds (truncated toward zero)."""

    def to_representation(self, value):
        return int(value.total_seconds())


class TimerStateSerializer(serializers.Serializer):
    """Response for the timer endpoint."""

    mode = serializers.CharField()
    status = serializers.CharField()
    display = serializers.CharField()
    overdue = serializers.BooleanField()
    reference = UTCDateTimeField(allow_null=True)
    due_at = UTCDateTimeField(allow_null=True)
    interval_seconds = SecondsField(source="interval")
    elapsed_seconds = SecondsField(source="elapsed", allow_null=True)
    remaining_seconds = SecondsField(source="remaining", allow_null=True)
    overdue_seconds = SecondsField(source="overdue_duration", allow_null=True)


class TimerView(TrackerMixin, APIView):
    """Current timer state.

    GET /api/v1/timer/ - Tick the tracker and return the timer display state

    Clients poll this once a second. When NURTURE_REMINDER_SOURCE is "api"
    each call also advances the reminder scheduler, so a reminder fires from
    the first poll that sees the feed overdue.
    """

    def get(self, request):
        now = self.get_now()
        result = self.get_tracker().tick(now, ReminderSource.API)
        data = dict(TimerStateSerializer(result.state).data)
        data["subtitle"] = subtitle_for(result.state)
        data["last_feed_relative"] = format_relative(result.state.reference, now)
        data["reminder"] = {"phase": result.phase.value, "fired": result.reminder}
        return Response(data)
