"""Fuel Prices Django App Configuration."""

from datetime import timedelta
from typing import Any

from django.apps import AppConfig
from django.conf import settings
from django.utils import timezone


def check_price_ingestion() -> dict[str, Any]:
    """Degraded until the first price import; unhealthy once imports go stale."""
    from apps.core.health import HealthCheckStatus
    from fuel_prices.models import FetchWatermark
    from fuel_prices.repositories import DatabaseWatermarkStore

    now = timezone.now()
    fetched_at = DatabaseWatermarkStore().get(FetchWatermark.PRICES)
    if fetched_at is None:
        return {
            "status": HealthCheckStatus.DEGRADED,
            "message": "No fuel prices imported yet",
            "timestamp": now.isoformat(),
        }

    age = now - fetched_at
    stale_after = timedelta(hours=settings.INGESTION_STALE_AFTER_HOURS)
    if age > stale_after:
        status = HealthCheckStatus.UNHEALTHY
        message = f"Last fuel price import {age} ago"
    else:
        status = HealthCheckStatus.HEALTHY
        message = f"Fuel prices imported at {fetched_at.isoformat()}"

    return {
        "status": status,
        "message": message,
        "last_import": fetched_at.isoformat(),
        "timestamp": now.isoformat(),
    }


class FuelPricesConfig(AppConfig):
    """Configuration for the fuel_prices app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "fuel_prices"
    verbose_name = "Fuel Prices"

    def ready(self) -> None:
        from apps.core.health import health_checker

        health_checker.register("ingestion", check_price_ingestion)
