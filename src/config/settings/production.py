# mypy: ignore-errors
from decouple import Csv, config

import logging  # noqa: F401
import sentry_sdk  # noqa: F401
from sentry_sdk.integrations.django import DjangoIntegration  # noqa: F401
from sentry_sdk.integrations.logging import LoggingIntegration  # noqa: F401
from sentry_sdk.integrations.celery import CeleryIntegration  # noqa: F401


from .base import *  # noqa: F403, F401

# Import specific symbols to avoid F405 errors
from .base import (
    BASE_DIR,
    DATABASES,
    LOGGING,
    VERSION,  # noqa: F401
)

# GENERAL
# ------------------------------------------------------------------------------
DEBUG = False
ALLOWED_HOSTS = config("ALLOWED_HOSTS", cast=Csv())

# SECURITY
# ------------------------------------------------------------------------------
SECURE_SSL_REDIRECT = config("SECURE_SSL_REDIRECT", default=False, cast=bool)
SECURE_CONTENT_TYPE_NOSNIFF = True
SECURE_REFERRER_POLICY = "strict-origin-when-cross-origin"
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

# Database
# ------------------------------------------------------------------------------
# Busy timeout long enough for a reader to outwait a price batch commit
DATABASES["default"]["OPTIONS"]["timeout"] = config("DATABASE_BUSY_TIMEOUT", default=20, cast=int)

# Logging for Production
# ------------------------------------------------------------------------------
LOGGING["handlers"]["console"]["formatter"] = "json"
LOGGING["handlers"]["file"] = {
    "level": "WARNING",
    "class": "logging.handlers.RotatingFileHandler",
    "filename": config("LOG_FILE", default=str(BASE_DIR / "logs" / "production.log")),
    "maxBytes": 1024 * 1024 * 15,  # 15MB
    "backupCount": 10,
    "formatter": "json",
}

# Add file handler to root logger
root_handlers = LOGGING["root"]["handlers"]  # type: ignore[index]
root_handlers.append("file")
LOGGING["loggers"]["fuel_prices"]["handlers"].append("file")  # type: ignore[index]

# Error Monitoring with Sentry
# ------------------------------------------------------------------------------
SENTRY_DSN = config("SENTRY_DSN", default="")
if SENTRY_DSN:
    sentry_logging = LoggingIntegration(
        level=logging.INFO,  # Capture info and above as breadcrumbs
        event_level=logging.ERROR,  # Send errors as events
    )

    sentry_sdk.init(
        dsn=SENTRY_DSN,
        integrations=[
            DjangoIntegration(
                transaction_style="url",
                middleware_spans=True,
                signals_spans=False,
            ),
            CeleryIntegration(
                monitor_beat_tasks=True,
                propagate_traces=True,
            ),
            sentry_logging,
        ],
        traces_sample_rate=config("SENTRY_TRACES_SAMPLE_RATE", default=0.1, cast=float),
        send_default_pii=False,
        environment=config("ENVIRONMENT", default="production"),
        release=VERSION,
        max_breadcrumbs=50,
        attach_stacktrace=True,
    )


# Celery Production Settings
# ------------------------------------------------------------------------------
CELERY_TASK_ALWAYS_EAGER = False
CELERY_TASK_EAGER_PROPAGATES = False
CELERY_WORKER_PREFETCH_MULTIPLIER = 1
CELERY_TASK_ACKS_LATE = True
CELERY_WORKER_MAX_TASKS_PER_CHILD = 1000
# A single worker process keeps ingestion writers strictly sequential
CELERY_WORKER_CONCURRENCY = 1

# Health Check Configuration
HEALTH_CHECK = {
    "DISK_USAGE_MAX": 90,  # percent
}
