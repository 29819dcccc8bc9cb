"""API URL configuration for Nurture.

All API endpoints are prefixed with /api/v1/.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from analytics.views import AnalyticsViewSet
from feedings.api import FeedViewSet
from notifications.views import ReminderStatusView
from timers.api import TimerView
from tracker.api import SettingsView

router = DefaultRouter()
router.register("feeds", FeedViewSet, basename="feed")
router.register("analytics", AnalyticsViewSet, basename="analytics")

urlpatterns = [
    path("timer/", TimerView.as_view(), name="timer"),
    path("settings/", SettingsView.as_view(), name="settings"),
    path(
        "notifications/reminder/",
        ReminderStatusView.as_view(),
        name="reminder-status",
    ),
    path("", include(router.urls)),
]
