"""Bounding-box search over stations and their recent price history."""

import logging
from collections.abc import Callable
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Any, Optional, TypeVar

from django.db import connection

from fuel_prices.repositories import FuelPricesRepository
from fuel_prices.retailers import match_retailer
from fuel_prices.types import SearchResult
from fuel_prices.utils.geo import BoundingBox

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _run_query(query: Callable[..., T], *args: Any) -> T:
    """Run ``query`` on a worker thread, releasing that thread's DB connection."""
    try:
        return query(*args)
    finally:
        connection.close()


class SearchService:
    """
    Joins the stations inside a bounding box with their price history.

    The station query and the price history query run concurrently; the
    search returns only when both have finished, and the first failure
    cancels whatever has not started and is re-raised.

    Example:
        >>> service = SearchService()
        >>> results = service.search(BoundingBox(-0.2, 51.4, 0.0, 51.6), limit=1)
        >>> results[0].fuel_prices["E10"][0].price
        142.9
    """

    def __init__(self, repository: Optional[FuelPricesRepository] = None) -> None:
        self.repository = repository or FuelPricesRepository()

    def search(self, bbox: BoundingBox, limit: int = 1) -> list[SearchResult]:
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="fuel-search") as executor:
            stations_future = executor.submit(
                _run_query, lambda box: list(self.repository.find_stations(box)), bbox
            )
            history_future = executor.submit(
                _run_query, self.repository.find_price_history, bbox, limit
            )
            futures = [stations_future, history_future]

            done, pending = wait(futures, return_when=FIRST_EXCEPTION)
            for future in done:
                error = future.exception()
                if error is not None:
                    for other in pending:
                        other.cancel()
                    logger.error("Search query failed for %s: %s", bbox, error)
                    raise error

            stations = stations_future.result()
            history = history_future.result()

        results = []
        for station in stations:
            brand = station.brand_name or station.trading_name
            results.append(
                SearchResult(
                    station=station,
                    fuel_prices=history.get(station.node_id, {}),
                    retailer=match_retailer(brand),
                )
            )

        logger.debug("Search in %s with limit %d matched %d stations", bbox, limit, len(results))
        return results
