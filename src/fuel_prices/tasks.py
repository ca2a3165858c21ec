"""Scheduled Fuel Finder imports, run by Celery beat (see CELERY_BEAT_SCHEDULE)."""

import logging

from celery import shared_task

from fuel_prices.services.ingestion import IngestionService

logger = logging.getLogger(__name__)


@shared_task(name="fuel_prices.tasks.import_filling_stations", ignore_result=True)
def import_filling_stations() -> int:
    try:
        return IngestionService().import_stations()
    except Exception:
        logger.exception("Filling station import failed")
        raise


@shared_task(name="fuel_prices.tasks.import_fuel_prices", ignore_result=True)
def import_fuel_prices() -> int:
    try:
        return IngestionService().import_prices()
    except Exception:
        logger.exception("Fuel price import failed")
        raise
