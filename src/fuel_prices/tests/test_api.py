"""API integration tests for the fuel price search endpoint."""

from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from typing import Any, Protocol, cast
from unittest.mock import MagicMock, patch

from django.db import DatabaseError
from django.test import TestCase, TransactionTestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from fuel_prices.models import FetchWatermark
from fuel_prices.repositories import FuelPricesRepository
from fuel_prices.tests.factories import build_price_record, build_station_record

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=dt_timezone.utc)
LEEDS = "-1.6,53.7,-1.4,53.9"


class DRFResponse(Protocol):
    """Protocol for DRF response objects in tests."""

    data: Any
    status_code: int


class FuelPriceSearchValidationTest(TestCase):
    """Query parameter validation."""

    def setUp(self) -> None:
        self.client = APIClient()
        self.url = reverse("fuel_prices:search")

    def get(self, **params: Any) -> DRFResponse:
        return cast(DRFResponse, self.client.get(self.url, params))

    def test_url(self) -> None:
        self.assertEqual(self.url, "/v1/fuel-prices/search")

    def test_missing_bbox(self) -> None:
        response = self.get()

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data, {"error": "bbox must have 4 comma-separated values"})

    def test_wrong_number_of_values(self) -> None:
        response = self.get(bbox="-1.6,53.7,-1.4")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"], "bbox must have 4 comma-separated values")

    def test_non_numeric_value(self) -> None:
        response = self.get(bbox="-1.6,north,-1.4,53.9")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"], "invalid bbox value 'north': not a valid float")

    def test_non_finite_value(self) -> None:
        response = self.get(bbox="-1.6,nan,-1.4,53.9")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_oversized_box(self) -> None:
        response = self.get(bbox="-1.6,53.0,-1.4,53.9")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(
            response.data["error"],
            "bbox must define a valid area (no more than 50 KM in either dimension)",
        )

    def test_invalid_limit(self) -> None:
        for limit in ("-1", "two"):
            with self.subTest(limit=limit):
                response = self.get(bbox=LEEDS, limit=limit)

                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertEqual(response.data["error"], "invalid limit parameter")

    @patch("fuel_prices.views.SearchService")
    def test_store_failure_is_generic_500(self, mock_service_class: MagicMock) -> None:
        mock_service_class.return_value.search.side_effect = DatabaseError("database is locked")

        with self.assertLogs("fuel_prices.views", level="ERROR"):
            response = self.get(bbox=LEEDS)

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data, {"error": "An internal server error occurred"})

    @patch("fuel_prices.views.SearchService")
    def test_default_limit_is_one(self, mock_service_class: MagicMock) -> None:
        mock_service_class.return_value.search.return_value = []

        response = self.get(bbox=LEEDS)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        bbox, limit = mock_service_class.return_value.search.call_args.args
        self.assertEqual(limit, 1)
        self.assertEqual(tuple(bbox), (-1.6, 53.7, -1.4, 53.9))


class FuelPriceSearchAPITest(TransactionTestCase):
    """End-to-end search over stored stations and prices."""

    def setUp(self) -> None:
        self.client = APIClient()
        self.url = reverse("fuel_prices:search")
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
                    brand_name="Tesco",
                    location={"latitude": 53.81, "longitude": -1.50},
                ),
            ]
        )
        repo.insert_prices(
            [
                build_price_record(
                    "pfs-1",
                    ("E10", 142.9, NOW - timedelta(hours=2)),
                    ("E10", 141.9, NOW),
                    ("B7", 150.9, NOW),
                ),
                build_price_record("pfs-2", ("E10", 139.9, NOW)),
            ]
        )
        FetchWatermark.objects.create(resource=FetchWatermark.PRICES, fetched_at=NOW)

    def test_search_response(self) -> None:
        response = cast(DRFResponse, self.client.get(self.url, {"bbox": LEEDS, "limit": 2}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data
        self.assertEqual(set(data), {"results", "attribution", "statistics", "last_updated"})
        self.assertTrue(data["attribution"])
        self.assertTrue(data["last_updated"].startswith("2026-03-01T12:00:00"))

        first = data["results"][0]
        self.assertEqual(first["node_id"], "pfs-1")
        self.assertEqual(first["retailer"]["name"], "SHELL")
        self.assertEqual(first["location"]["latitude"], 53.8)
        self.assertEqual([p["price"] for p in first["fuel_prices"]["E10"]], [141.9, 142.9])
        self.assertIn("updated_on", first["fuel_prices"]["B7"][0])

        stats = data["statistics"]
        self.assertEqual(stats["lowest_price"]["E10"], 139.9)
        self.assertEqual(stats["cheapest_stations"]["E10"], ["pfs-2"])
        self.assertEqual(stats["brand_distribution"], {"SHELL": 1, "TESCO": 1})

    def test_no_watermark_yet(self) -> None:
        FetchWatermark.objects.all().delete()

        response = cast(DRFResponse, self.client.get(self.url, {"bbox": LEEDS}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data["last_updated"])

    def test_request_id_header(self) -> None:
        response = self.client.get(self.url, {"bbox": LEEDS}, HTTP_X_REQUEST_ID="abc123")

        self.assertEqual(response["X-Request-ID"], "abc123")
