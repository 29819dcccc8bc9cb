"""Celery app for Nurture.

Only reminder delivery runs as a task. The tracker decides when a reminder
is due; a worker (or eager execution in tests) delivers it.
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "django_project.settings")

app = Celery("nurture")

# CELERY_* names in the Django settings configure the app
app.config_from_object("django.conf:settings", namespace="CELERY")

# Picks up notifications.tasks
app.autodiscover_tasks()
