"""API views for the notifications system."""

from rest_framework import serializers
from rest_framework.response import Response
from rest_framework.views import APIView

from tracker.document import UTCDateTimeField
from tracker.mixins import TrackerMixin


class ReminderStatusSerializer(serializers.Serializer):
    phase = serializers.CharField()
    epoch_start = UTCDateTimeField(allow_null=True)
    epoch_interval_hours = serializers.FloatField(allow_null=True)


class ReminderStatusView(TrackerMixin, APIView):
    """Reminder scheduler state.

    GET /api/v1/notifications/reminder/ - Current phase and the reference
    instant and interval of the reminder epoch being watched
    """

    def get(self, request):
        scheduler = self.get_tracker().scheduler
        reference, interval = scheduler.epoch or (None, None)
        return Response(
            ReminderStatusSerializer(
                {
                    "phase": scheduler.phase.value,
                    "epoch_start": reference,
                    "epoch_interval_hours": (
                        interval.total_seconds() / 3600 if interval else None
                    ),
                }
            ).data
        )
