"""
Pytest configuration for Django tests.

Points Django at the test settings (temporary data file, eager Celery,
in-memory e-mail) before any test module imports application code.
"""

import os

import django


def pytest_configure():
    """Configure pytest with Django test settings."""
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "django_project.test_settings")
    django.setup()


def pytest_collection_modifyitems(config, items):
    """Mark tests that drive the tracker through the HTTP API."""
    for item in items:
        if "tests_api" in item.nodeid:
            item.add_marker("api")
