import os

from celery.app.base import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.development")

app = Celery("fuel-prices-api")

app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
