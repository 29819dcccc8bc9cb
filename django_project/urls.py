"""URL configuration for Nurture."""

from django.urls import include, path

urlpatterns = [
    path("api/v1/", include("django_project.api_urls")),
]
