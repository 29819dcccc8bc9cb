"""Encoding of the persisted data document.

The document is a single JSON object::

    {
      "feeds": [{"id", "start", "end", "type", "amount", "brand", "notes"}],
      "settings": {"theme", "darkMode", "intervalHours"}
    }

Instants are ISO-8601 strings in UTC with a ``Z`` suffix; the same encoding
is used by the export and the REST API. Documents written by the original
browser app (``timestamp``, ``intervalMinutes``, capitalised feed types)
are upgraded on load.
"""

import logging
from datetime import timedelta
from datetime import timezone as dt_timezone

from rest_framework import serializers

from feedings.constants import MAX_BRAND_LENGTH, MAX_NOTES_LENGTH, MIN_AMOUNT
from feedings.exceptions import TrackerError
from feedings.models import FeedKind, FeedRecord

from .exceptions import PersistenceFailure
from .models import MAX_INTERVAL, Theme, TrackerSettings

logger = logging.getLogger(__name__)

LEGACY_KINDS = {
    "left": FeedKind.LEFT,
    "right": FeedKind.RIGHT,
    "bottle": FeedKind.BOTTLE,
    "formula": FeedKind.FORMULA,
}

# theme value -> darkMode
LEGACY_DARK_THEMES = {"dark": True, "light": False}


class UTCDateTimeField(serializers.DateTimeField):
    """ISO-8601 datetime, always rendered and interpreted in UTC."""

    def __init__(self, **kwargs):
        kwargs.setdefault("default_timezone", dt_timezone.utc)
        super().__init__(**kwargs)


class StoredFeedSerializer(serializers.Serializer):
    """One entry of the document's ``feeds`` list."""

    id = serializers.RegexField(r"^\d+$")
    start = UTCDateTimeField()
    end = UTCDateTimeField(required=False, allow_null=True, default=None)
    type = serializers.ChoiceField(choices=FeedKind.choices)
    amount = serializers.DecimalField(
        max_digits=None,
        decimal_places=None,
        min_value=MIN_AMOUNT,
        required=False,
        allow_null=True,
        default=None,
    )
    brand = serializers.CharField(
        max_length=MAX_BRAND_LENGTH,
        required=False,
        allow_blank=True,
        default="",
        trim_whitespace=False,
    )
    notes = serializers.CharField(
        max_length=MAX_NOTES_LENGTH,
        required=False,
        allow_blank=True,
        default="",
        trim_whitespace=False,
    )

    def validate(self, data):
        if data["end"] is not None and data["end"] < data["start"]:
            raise serializers.ValidationError(
                {"end": "End time cannot be before start time."}
            )
        return data


class StoredSettingsSerializer(serializers.Serializer):
    """The document's ``settings`` object. Every key is optional."""

    theme = serializers.ChoiceField(choices=Theme.choices, required=False)
    darkMode = serializers.BooleanField(required=False)
    intervalHours = serializers.FloatField(
        min_value=0,
        max_value=MAX_INTERVAL.total_seconds() / 3600,
        required=False,
    )


def _upgrade_feed(raw):
    """Map a feed written by the original browser app onto current keys."""
    if not isinstance(raw, dict):
        return raw
    feed = dict(raw)
    if "start" not in feed and "timestamp" in feed:
        feed["start"] = feed.pop("timestamp")
    legacy_kind = LEGACY_KINDS.get(str(feed.get("type", "")).strip().lower())
    if legacy_kind is not None:
        feed["type"] = legacy_kind.value
    for key in ("amount", "end"):
        if feed.get(key) == "":
            feed[key] = None
    for key in ("brand", "notes"):
        if feed.get(key) is None:
            feed.pop(key, None)
    return feed


def _upgrade_settings(raw):
    settings = dict(raw)
    if "intervalHours" not in settings and "intervalMinutes" in settings:
        try:
            settings["intervalHours"] = float(settings.pop("intervalMinutes")) / 60
        except (TypeError, ValueError):
            settings.pop("intervalMinutes", None)
    # Older documents store light/dark as the theme itself
    legacy_theme = str(settings.get("theme", "")).strip().lower()
    if legacy_theme in LEGACY_DARK_THEMES:
        settings.pop("theme")
        settings.setdefault("darkMode", LEGACY_DARK_THEMES[legacy_theme])
    return settings


def decode_feeds(raw_feeds) -> list[FeedRecord]:
    """Validate and build feed records from the document's ``feeds`` list.

    Raises:
        PersistenceFailure: The list or any entry in it is malformed
    """
    if not isinstance(raw_feeds, list):
        raise PersistenceFailure("Stored feeds must be a list.")

    serializer = StoredFeedSerializer(
        data=[_upgrade_feed(raw) for raw in raw_feeds], many=True
    )
    if not serializer.is_valid():
        raise PersistenceFailure(f"Stored feeds are malformed: {serializer.errors}")

    try:
        return [
            FeedRecord(
                id=item["id"],
                start=item["start"],
                end=item["end"],
                kind=FeedKind(item["type"]),
                amount=item["amount"],
                brand=item["brand"],
                notes=item["notes"],
            )
            for item in serializer.validated_data
        ]
    except TrackerError as e:
        raise PersistenceFailure(f"Stored feed is invalid: {e}") from e


def decode_settings(raw_settings) -> TrackerSettings:
    """Merge stored settings over the defaults.

    Keys that fail validation are dropped individually and fall back to
    their default rather than discarding the whole document.
    """
    defaults = TrackerSettings()
    if not isinstance(raw_settings, dict):
        if raw_settings is not None:
            logger.warning("Ignoring stored settings that are not an object")
        return defaults

    raw_settings = _upgrade_settings(raw_settings)
    changes = {}
    for key, value in raw_settings.items():
        if key not in StoredSettingsSerializer().fields:
            continue
        serializer = StoredSettingsSerializer(data={key: value}, partial=True)
        if not serializer.is_valid():
            logger.warning(
                "Ignoring invalid stored setting",
                extra={"setting": key, "errors": serializer.errors},
            )
            continue
        changes[key] = serializer.validated_data[key]

    if "intervalHours" in changes and changes["intervalHours"] > 0:
        defaults = defaults.updated(interval=timedelta(hours=changes["intervalHours"]))
    if "theme" in changes:
        defaults = defaults.updated(theme=Theme(changes["theme"]))
    if "darkMode" in changes:
        defaults = defaults.updated(dark_mode=changes["darkMode"])
    return defaults


def decode_document(data):
    """Decode a loaded document into ``(records, settings)``.

    Raises:
        PersistenceFailure: The document or its feeds are malformed
    """
    if not isinstance(data, dict):
        raise PersistenceFailure("Stored document must be a JSON object.")
    records = decode_feeds(data.get("feeds", []))
    settings = decode_settings(data.get("settings"))
    return records, settings


def encode_feed(record: FeedRecord) -> dict:
    return dict(
        StoredFeedSerializer(
            {
                "id": record.id,
                "start": record.start,
                "end": record.end,
                "type": record.kind.value,
                "amount": record.amount,
                "brand": record.brand,
                "notes": record.notes,
            }
        ).data
    )


def encode_feeds(records) -> list[dict]:
    return [encode_feed(record) for record in records]


def encode_settings(settings: TrackerSettings) -> dict:
    return {
        "theme": settings.theme.value,
        "darkMode": settings.dark_mode,
        "intervalHours": settings.interval_hours,
    }


def encode_document(records, settings: TrackerSettings) -> dict:
    return {
        "feeds": encode_feeds(records),
        "settings": encode_settings(settings),
    }
