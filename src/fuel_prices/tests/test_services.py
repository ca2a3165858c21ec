"""Unit tests for the search, statistics and ingestion services."""

import threading
from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from unittest.mock import MagicMock, patch

from django.db import DatabaseError
from django.test import SimpleTestCase, TestCase, TransactionTestCase

from fuel_prices.models import Station
from fuel_prices.repositories import FuelPricesRepository
from fuel_prices.services.ingestion import IngestionService
from fuel_prices.services.search import SearchService
from fuel_prices.services.statistics import derive_statistics
from fuel_prices.tests.factories import build_price_record, build_station_record
from fuel_prices.types import PricePoint, Retailer, SearchResult
from fuel_prices.utils.geo import BoundingBox

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=dt_timezone.utc)
LEEDS = BoundingBox(-1.6, 53.7, -1.4, 53.9)


def result(node_id: str, retailer: str = "", **prices: list[float]) -> SearchResult:
    return SearchResult(
        station=Station(node_id=node_id),
        fuel_prices={
            fuel_type: [
                PricePoint(price=p, updated_on=NOW - timedelta(hours=i))
                for i, p in enumerate(history)
            ]
            for fuel_type, history in prices.items()
        },
        retailer=Retailer(name=retailer, website_url="https://example.com") if retailer else None,
    )


class DeriveStatisticsTest(SimpleTestCase):
    """Test cases for per-fuel-type statistics."""

    def test_uses_most_recent_price_per_station(self) -> None:
        stats = derive_statistics(
            [
                result("a", E10=[139.9, 150.0]),
                result("b", E10=[141.2]),
                result("c", E10=[145.9]),
            ]
        )

        self.assertEqual(stats.lowest_price["E10"], 139.9)
        self.assertEqual(stats.highest_price["E10"], 145.9)
        self.assertEqual(stats.average_price["E10"], 142.3)
        self.assertEqual(stats.cheapest_stations["E10"], ["a"])

    def test_price_distribution_buckets(self) -> None:
        stats = derive_statistics(
            [result("a", E10=[139.9]), result("b", E10=[141.2]), result("c", E10=[145.9])],
            bucket_width=3,
        )

        self.assertEqual(stats.price_distribution["E10"], {"139-141": 2, "145-147": 1})

    def test_adjacent_whole_prices_share_a_bucket(self) -> None:
        stats = derive_statistics(
            [result("a", E10=[139.0]), result("b", E10=[140.0]), result("c", E10=[141.0])],
            bucket_width=3,
        )

        self.assertEqual(stats.price_distribution["E10"], {"139-141": 3})

    def test_bucket_grid_follows_lowest_price(self) -> None:
        with_cheaper = derive_statistics(
            [result("a", E10=[139.0]), result("b", E10=[141.0])], bucket_width=3
        )
        without = derive_statistics([result("b", E10=[141.0])], bucket_width=3)

        self.assertEqual(with_cheaper.price_distribution["E10"], {"139-141": 2})
        self.assertEqual(without.price_distribution["E10"], {"141-143": 1})

    def test_non_positive_bucket_width_defaults_to_three(self) -> None:
        stats = derive_statistics([result("a", E10=[139.9])], bucket_width=0)

        self.assertEqual(stats.price_distribution["E10"], {"139-141": 1})

    def test_ties_for_cheapest(self) -> None:
        stats = derive_statistics(
            [result("a", B7=[150.9]), result("b", B7=[150.9]), result("c", B7=[152.9])]
        )

        self.assertEqual(stats.cheapest_stations["B7"], ["a", "b"])

    def test_standard_deviation_needs_two_samples(self) -> None:
        stats = derive_statistics([result("a", E10=[140.0]), result("b", E10=[144.0])])
        single = derive_statistics([result("a", E10=[140.0])])

        self.assertAlmostEqual(stats.standard_deviation["E10"], 2.0)
        self.assertNotIn("E10", single.standard_deviation)

    def test_average_rounds_half_up(self) -> None:
        stats = derive_statistics([result("a", E10=[140.0]), result("b", E10=[140.5])])

        self.assertEqual(stats.average_price["E10"], 140.3)

    def test_stations_without_prices_are_ignored(self) -> None:
        stats = derive_statistics([result("a"), result("b", E10=[])])

        self.assertEqual(stats.lowest_price, {})
        self.assertEqual(stats.price_distribution, {})

    def test_brand_distribution_skips_unresolved(self) -> None:
        stats = derive_statistics(
            [result("a", "SHELL"), result("b", "SHELL"), result("c", "BP"), result("d")]
        )

        self.assertEqual(stats.brand_distribution, {"SHELL": 2, "BP": 1})


class SearchServiceTest(TransactionTestCase):
    """Concurrent station and price history queries joined per station."""

    def setUp(self) -> None:
        repo = FuelPricesRepository()
        repo.insert_stations(
            [
                build_station_record(
                    node_id="pfs-1",
                    brand_name="Shell",
                    location={"latitude": 53.80, "longitude": -1.55},
                ),
                build_station_record(
                    node_id="pfs-2",
                    brand_name="",
                    trading_name="ASDA EXPRESS LEEDS",
                    location={"latitude": 53.81, "longitude": -1.50},
                ),
                build_station_record(
                    node_id="pfs-3",
                    brand_name="",
                    trading_name="VILLAGE GARAGE",
                    location={"latitude": 53.82, "longitude": -1.45},
                ),
                build_station_record(
                    node_id="far-away", location={"latitude": 51.5, "longitude": -0.1}
                ),
            ]
        )
        repo.insert_prices(
            [
                build_price_record(
                    "pfs-1",
                    ("E10", 142.9, NOW - timedelta(hours=1)),
                    ("E10", 141.9, NOW),
                ),
                build_price_record("pfs-2", ("E10", 139.9, NOW), ("B7", 149.9, NOW)),
            ]
        )

    def test_joins_stations_with_history(self) -> None:
        results = SearchService().search(LEEDS, limit=1)

        self.assertEqual([r.node_id for r in results], ["pfs-1", "pfs-2", "pfs-3"])
        by_id = {r.node_id: r for r in results}
        self.assertEqual([p.price for p in by_id["pfs-1"].fuel_prices["E10"]], [141.9])
        self.assertEqual(set(by_id["pfs-2"].fuel_prices), {"E10", "B7"})
        self.assertEqual(by_id["pfs-3"].fuel_prices, {})

    def test_history_limit_is_passed_through(self) -> None:
        results = SearchService().search(LEEDS, limit=5)

        self.assertEqual([p.price for p in results[0].fuel_prices["E10"]], [141.9, 142.9])

    def test_retailer_resolved_from_brand_then_trading_name(self) -> None:
        results = {r.node_id: r for r in SearchService().search(LEEDS)}

        self.assertEqual(results["pfs-1"].retailer.name, "SHELL")
        self.assertEqual(results["pfs-2"].retailer.name, "ASDA EXPRESS")
        self.assertIsNone(results["pfs-3"].retailer)

    def test_empty_box(self) -> None:
        self.assertEqual(SearchService().search(BoundingBox(10.0, 10.0, 10.1, 10.1)), [])

    def test_queries_run_concurrently(self) -> None:
        barrier = threading.Barrier(2, timeout=5)
        repo = FuelPricesRepository()

        def find_stations(bbox):
            barrier.wait()
            return Station.objects.none()

        def find_price_history(bbox, limit):
            barrier.wait()
            return {}

        with patch.object(repo, "find_stations", side_effect=find_stations), patch.object(
            repo, "find_price_history", side_effect=find_price_history
        ):
            # Both queries must be in flight at once for the barrier to release
            self.assertEqual(SearchService(repo).search(LEEDS), [])

    def test_failing_query_fails_search(self) -> None:
        repo = FuelPricesRepository()

        with patch.object(repo, "find_price_history", side_effect=DatabaseError("locked")):
            with self.assertRaises(DatabaseError):
                SearchService(repo).search(LEEDS)


class IngestionServiceTest(TestCase):
    """Fetch results are stored through the repository."""

    def test_import_stations(self) -> None:
        client = MagicMock()
        records = [build_station_record(node_id="pfs-1"), build_station_record(node_id="pfs-2")]

        def fetch_stations(sink):
            return sink(records)

        client.fetch_stations.side_effect = fetch_stations

        count = IngestionService(client=client).import_stations()

        self.assertEqual(count, 2)
        self.assertEqual(Station.objects.count(), 2)

    def test_import_prices_counts_forecourts(self) -> None:
        client = MagicMock()
        batch = [build_price_record("pfs-1", ("E10", 142.9, NOW), ("B7", 150.9, NOW))]
        client.fetch_prices.side_effect = lambda sink: sink(batch)

        count = IngestionService(client=client).import_prices()

        self.assertEqual(count, 1)

    @patch("fuel_prices.services.ingestion.FuelFinderClient")
    def test_client_created_from_settings_with_database_watermarks(
        self, mock_client_class: MagicMock
    ) -> None:
        mock_client_class.from_settings.return_value.fetch_stations.return_value = 0

        IngestionService().import_stations()

        kwargs = mock_client_class.from_settings.call_args.kwargs
        self.assertEqual(type(kwargs["watermarks"]).__name__, "DatabaseWatermarkStore")
