"""
Test settings for Django project.

Optimized for fast, isolated testing without external dependencies.
Uses a file-backed SQLite database so that worker threads spawned by the
search service see rows committed by the test, and runs Celery eagerly.
"""

import os
import tempfile

from .base import *  # noqa: F401,F403

# Database: file-backed SQLite so separate thread connections share state
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.path.join(tempfile.gettempdir(), "fuel_prices.sqlite3"),
        "OPTIONS": {
            "timeout": 20,
        },
        "TEST": {
            "NAME": os.path.join(tempfile.gettempdir(), "test_fuel_prices.sqlite3"),
        },
    }
}

SECRET_KEY = "test-secret-key"

# Celery: Execute tasks synchronously in tests
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

# Upstream API: never hit the real service from tests
FUEL_FINDER_BASE_URL = "https://fuel-finder.test/api/v1"
FUEL_FINDER_CLIENT_ID = "test-client-id"
FUEL_FINDER_CLIENT_SECRET = "test-client-secret"
FUEL_FINDER_HTTP_RETRIES = 0

# Logging: Quiet logging during tests
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {
        "console": {
            "level": "ERROR",
            "class": "logging.StreamHandler",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "ERROR",
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "ERROR",
            "propagate": False,
        },
        "django.db.backends": {
            "handlers": [],
            "level": "ERROR",
            "propagate": False,
        },
    },
}
