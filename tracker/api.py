"""REST API for tracker settings."""

from datetime import timedelta

from rest_framework import serializers
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from timers.engine import TimerMode

from .exceptions import InvalidSettings
from .mixins import TrackerMixin
from .models import MAX_INTERVAL, Theme

# API field name -> TrackerSettings attribute
SETTINGS_FIELD_MAP = {
    "theme": "theme",
    "darkMode": "dark_mode",
    "viewMode": "view_mode",
}


class SettingsSerializer(serializers.Serializer):
    """Tracker settings as exposed to the front end."""

    intervalHours = serializers.FloatField(
        min_value=0.01,
        max_value=MAX_INTERVAL.total_seconds() / 3600,
        required=False,
    )
    theme = serializers.ChoiceField(choices=Theme.choices, required=False)
    darkMode = serializers.BooleanField(required=False)
    viewMode = serializers.ChoiceField(choices=TimerMode.choices, required=False)

    def to_representation(self, settings):
        return {
            "intervalHours": settings.interval_hours,
            "theme": settings.theme.value,
            "darkMode": settings.dark_mode,
            "viewMode": settings.view_mode.value,
        }

    def to_changes(self):
        """Validated data as TrackerSettings keyword arguments."""
        changes = {}
        for field, value in self.validated_data.items():
            if field == "intervalHours":
                changes["interval"] = timedelta(hours=value)
            else:
                changes[SETTINGS_FIELD_MAP[field]] = value
        return changes


class SettingsView(TrackerMixin, APIView):
    """Tracker settings.

    GET   /api/v1/settings/ - Current settings
    PATCH /api/v1/settings/ - Update settings (saved immediately)
    """

    def get(self, request):
        return Response(SettingsSerializer(self.get_tracker().settings).data)

    def patch(self, request):
        serializer = SettingsSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        try:
            result = self.get_tracker().update_settings(
                self.get_now(), **serializer.to_changes()
            )
        except InvalidSettings as e:
            raise ValidationError({"settings": str(e)})
        data = dict(SettingsSerializer(result.value).data)
        data["warning"] = result.warning
        return Response(data)
