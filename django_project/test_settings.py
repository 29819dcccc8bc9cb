"""
Test settings for Nurture.

Overrides local settings for the test environment:
- Writes the data file to a throwaway temporary directory
- Enables eager task execution for Celery
- Captures reminder e-mail in memory
"""

import tempfile
from pathlib import Path

from django_project.settings import *  # noqa: F401, F403

# Execute Celery tasks synchronously in tests
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

ALLOWED_HOSTS = ["testserver", "localhost", "127.0.0.1"]

EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"

NURTURE_DATA_FILE = str(
    Path(tempfile.mkdtemp(prefix="nurture-tests-")) / "nurture_data.json"
)
NURTURE_REMINDER_EMAIL = ""

LOG_LEVEL = "WARNING"
LOGGING["loggers"] = {  # noqa: F405
    name: {"handlers": ["console"], "level": "CRITICAL", "propagate": False}
    for name in ("feedings", "timers", "analytics", "notifications", "tracker")
}
