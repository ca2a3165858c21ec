"""Fetch-and-store cycles shared by the Celery tasks and the import command."""

import logging
from typing import Any, Optional

from fuel_prices.clients.fuel_finder import FuelFinderClient
from fuel_prices.repositories import DatabaseWatermarkStore, FuelPricesRepository

logger = logging.getLogger(__name__)


class IngestionService:
    """
    Streams Fuel Finder batches into the repository.

    The client is created lazily (it authenticates on construction) and
    uses database-backed watermarks, so every run after the first only asks
    for records changed since the previous successful run.
    """

    def __init__(
        self,
        client: Optional[FuelFinderClient] = None,
        repository: Optional[FuelPricesRepository] = None,
    ) -> None:
        self._client = client
        self.repository = repository or FuelPricesRepository()

    @property
    def client(self) -> FuelFinderClient:
        if self._client is None:
            self._client = FuelFinderClient.from_settings(watermarks=DatabaseWatermarkStore())
        return self._client

    def import_stations(self) -> int:
        """Fetch changed stations and upsert them; returns stations processed."""
        total = self.client.fetch_stations(self._store_stations)
        logger.info("Imported %d filling stations", total)
        return total

    def import_prices(self) -> int:
        """Fetch changed forecourt prices and upsert them; returns forecourts processed."""
        total = self.client.fetch_prices(self._store_prices)
        logger.info("Imported fuel prices for %d forecourts", total)
        return total

    def _store_stations(self, batch: list[dict[str, Any]]) -> int:
        self.repository.insert_stations(batch)
        return len(batch)

    def _store_prices(self, batch: list[dict[str, Any]]) -> int:
        rows = self.repository.insert_prices(batch)
        logger.debug("Stored %d price observations from %d forecourts", rows, len(batch))
        return len(batch)
