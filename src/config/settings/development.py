# mypy: ignore-errors
"""Local development settings."""

from .base import *  # noqa: F403, F401
from .base import LOGGING

DEBUG = True
ALLOWED_HOSTS = ["*"]

LOGGING["loggers"]["fuel_prices"]["level"] = "DEBUG"

# Run tasks in-process when no broker is available
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
