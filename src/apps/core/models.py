"""Base models shared across the application."""

from django.db import models


class TimestampedModel(models.Model):
    """Abstract base model with created/updated timestamps.

    ``updated_at`` is refreshed on every save, including upserts issued
    through ``bulk_create(update_conflicts=True)`` when it is listed in
    ``update_fields``.
    """

    created_at = models.DateTimeField(
        auto_now_add=True, help_text="Timestamp when the record was first stored"
    )
    updated_at = models.DateTimeField(
        auto_now=True, help_text="Timestamp when the record was last refreshed"
    )

    class Meta:
        abstract = True
