# mypy: ignore-errors
"""
Base settings shared by every environment.

Deployment-varying values are read with python-decouple from the
environment or a ``.env`` file.
"""

from pathlib import Path

from celery.schedules import crontab
from decouple import Csv, config

BASE_DIR = Path(__file__).resolve().parent.parent.parent

VERSION = "1.0.0"
ENVIRONMENT = config("ENVIRONMENT", default="development")

# GENERAL
# ------------------------------------------------------------------------------
SECRET_KEY = config("SECRET_KEY", default="insecure-development-key")
DEBUG = config("DEBUG", default=False, cast=bool)
ALLOWED_HOSTS = config("ALLOWED_HOSTS", default="localhost,127.0.0.1", cast=Csv())

TIME_ZONE = "UTC"
USE_TZ = True
LANGUAGE_CODE = "en-gb"

ROOT_URLCONF = "config.urls"
WSGI_APPLICATION = "config.wsgi.application"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# APPS
# ------------------------------------------------------------------------------
INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "django.contrib.staticfiles",
    "rest_framework",
    "drf_spectacular",
    "apps.core",
    "fuel_prices",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "apps.core.middleware.RequestLoggingMiddleware",
]

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {"context_processors": ["django.template.context_processors.request"]},
    }
]

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

# DATABASE
# ------------------------------------------------------------------------------
# SQLite in WAL mode: one writer at a time, readers never blocked. Ingestion
# cycles serialize through the database lock rather than application locks.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": config("DATABASE_PATH", default=str(BASE_DIR / "fuel_prices.db")),
        "OPTIONS": {
            "timeout": 5,
            "transaction_mode": "IMMEDIATE",
            "init_command": "PRAGMA journal_mode=WAL;PRAGMA synchronous=NORMAL;",
        },
    }
}

# REST FRAMEWORK
# ------------------------------------------------------------------------------
REST_FRAMEWORK = {
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
    "DEFAULT_THROTTLE_CLASSES": [],
    "UNAUTHENTICATED_USER": None,
    "COERCE_DECIMAL_TO_STRING": False,
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Fuel Prices API",
    "DESCRIPTION": "Bounded-box search over UK forecourt fuel prices",
    "VERSION": VERSION,
}

# FUEL FINDER UPSTREAM
# ------------------------------------------------------------------------------
FUEL_FINDER_BASE_URL = config(
    "FUEL_FINDER_BASE_URL", default="https://www.fuel-finder.service.gov.uk/api/v1"
)
FUEL_FINDER_CLIENT_ID = config("FUEL_FINDER_CLIENT_ID", default="")
FUEL_FINDER_CLIENT_SECRET = config("FUEL_FINDER_CLIENT_SECRET", default="")
FUEL_FINDER_TIMEOUT = config("FUEL_FINDER_TIMEOUT", default=30, cast=int)
FUEL_FINDER_HTTP_RETRIES = config("FUEL_FINDER_HTTP_RETRIES", default=0, cast=int)
FUEL_FINDER_TOKEN_REFRESH_MARGIN = config(
    "FUEL_FINDER_TOKEN_REFRESH_MARGIN", default=300, cast=int
)

# SEARCH
# ------------------------------------------------------------------------------
SEARCH_MAX_BBOX_SPAN_METERS = config("SEARCH_MAX_BBOX_SPAN_METERS", default=50_000, cast=int)
SEARCH_PRICE_BUCKET_WIDTH = config("SEARCH_PRICE_BUCKET_WIDTH", default=3, cast=int)
SEARCH_ATTRIBUTION = [
    "Fuel price data from the GOV.UK Fuel Finder service",
    "Contains public sector information licensed under the Open Government Licence v3.0",
]

# INGESTION
# ------------------------------------------------------------------------------
INGESTION_STATIONS_CRON = config("INGESTION_STATIONS_CRON", default="0 */6 * * *")
INGESTION_PRICES_CRON = config("INGESTION_PRICES_CRON", default="10 */1 * * *")
INGESTION_STALE_AFTER_HOURS = config("INGESTION_STALE_AFTER_HOURS", default=3, cast=int)


def _crontab(expression: str) -> crontab:
    minute, hour, day_of_month, month_of_year, day_of_week = expression.split()
    return crontab(
        minute=minute,
        hour=hour,
        day_of_month=day_of_month,
        month_of_year=month_of_year,
        day_of_week=day_of_week,
    )


# CELERY
# ------------------------------------------------------------------------------
CELERY_BROKER_URL = config("CELERY_BROKER_URL", default="redis://localhost:6379/0")
CELERY_RESULT_BACKEND = config("CELERY_RESULT_BACKEND", default="redis://localhost:6379/1")
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_SERIALIZER = "json"
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_BEAT_SCHEDULE = {
    "import-filling-stations": {
        "task": "fuel_prices.tasks.import_filling_stations",
        "schedule": _crontab(INGESTION_STATIONS_CRON),
    },
    "import-fuel-prices": {
        "task": "fuel_prices.tasks.import_fuel_prices",
        "schedule": _crontab(INGESTION_PRICES_CRON),
    },
}

# HEALTH
# ------------------------------------------------------------------------------
HEALTH_CHECK = {
    "DISK_USAGE_MAX": 90,  # percent
}

# LOGGING
# ------------------------------------------------------------------------------
LOG_LEVEL = config("LOG_LEVEL", default="INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{asctime} {levelname} {name} {message}",
            "style": "{",
        },
        "json": {
            "()": "pythonjsonlogger.json.JsonFormatter",
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "level": "DEBUG",
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "fuel_prices": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
    },
}
