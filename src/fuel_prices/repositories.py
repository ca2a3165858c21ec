"""
Data access for stations, price observations and fetch watermarks.

Writes normalize upstream values before storage and run each batch in a
single transaction: a failing row rolls back the whole batch. Reads answer
the two halves of a bounding-box search.
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Any, Optional

from django.db import transaction
from django.db.models import F, Q, Window
from django.db.models.functions import Lead, RowNumber
from django.db.models.query import QuerySet

from fuel_prices.models import FetchWatermark, PriceObservation, Station
from fuel_prices.types import PricePoint
from fuel_prices.utils.geo import BoundingBox
from fuel_prices.utils.normalization import cleanse_address_line, normalize_price

logger = logging.getLogger(__name__)

PriceHistory = dict[str, dict[str, list[PricePoint]]]

STATION_UPDATE_FIELDS = [
    "mft_organisation_name",
    "public_phone_number",
    "trading_name",
    "is_same_trading_and_brand_name",
    "brand_name",
    "temporary_closure",
    "permanent_closure",
    "permanent_closure_date",
    "is_motorway_service_station",
    "is_supermarket_service_station",
    "address_line_1",
    "address_line_2",
    "city",
    "country",
    "county",
    "postcode",
    "latitude",
    "longitude",
    "opening_times",
    "amenities",
    "fuel_types",
    "updated_at",
]


def _in_bbox(bbox: BoundingBox) -> dict[str, float]:
    return {
        "latitude__gte": bbox.south,
        "latitude__lte": bbox.north,
        "longitude__gte": bbox.west,
        "longitude__lte": bbox.east,
    }


class FuelPricesRepository:
    """
    Persistence for the Fuel Finder data set.

    ``insert_stations`` and ``insert_prices`` accept the validated records
    produced by the upstream serializers and upsert them: a station is keyed
    by ``node_id``, a price observation by (station, fuel type, last updated).
    """

    def insert_stations(self, stations: list[dict[str, Any]]) -> int:
        """
        Upsert a batch of stations.

        Returns:
            Number of rows written (0 for an empty batch)
        """
        if not stations:
            return 0

        rows = {}
        for record in stations:
            rows[record["node_id"]] = self._build_station(record)

        with transaction.atomic():
            Station.objects.bulk_create(
                list(rows.values()),
                update_conflicts=True,
                unique_fields=["node_id"],
                update_fields=STATION_UPDATE_FIELDS,
            )

        logger.debug("Upserted %d stations", len(rows))
        return len(rows)

    def insert_prices(self, forecourts: list[dict[str, Any]]) -> int:
        """
        Upsert the price observations of a batch of forecourt price groups.

        Every (station, fuel type) entry of every group is one row; prices are
        normalized to pence first.

        Returns:
            Number of rows written (0 for an empty batch)
        """
        if not forecourts:
            return 0

        rows = {}
        for forecourt in forecourts:
            node_id = forecourt["node_id"]
            for entry in forecourt.get("fuel_prices", []):
                key = (node_id, entry["fuel_type"], entry["price_last_updated"])
                rows[key] = PriceObservation(
                    station_id=node_id,
                    fuel_type=entry["fuel_type"],
                    price=normalize_price(entry["price"]),
                    price_last_updated=entry["price_last_updated"],
                    effective_from=entry.get("price_change_effective_timestamp"),
                )

        if not rows:
            return 0

        with transaction.atomic():
            PriceObservation.objects.bulk_create(
                list(rows.values()),
                update_conflicts=True,
                unique_fields=["station", "fuel_type", "price_last_updated"],
                update_fields=["price", "effective_from"],
            )

        logger.debug("Upserted %d price observations", len(rows))
        return len(rows)

    def _build_station(self, record: dict[str, Any]) -> Station:
        location = record["location"]
        return Station(
            node_id=record["node_id"],
            mft_organisation_name=record.get("mft_organisation_name", ""),
            public_phone_number=record.get("public_phone_number", ""),
            trading_name=record.get("trading_name", ""),
            is_same_trading_and_brand_name=record.get("is_same_trading_and_brand_name", False),
            brand_name=record.get("brand_name", ""),
            temporary_closure=record.get("temporary_closure", False),
            permanent_closure=record.get("permanent_closure", False),
            permanent_closure_date=record.get("permanent_closure_date"),
            is_motorway_service_station=record.get("is_motorway_service_station", False),
            is_supermarket_service_station=record.get("is_supermarket_service_station", False),
            address_line_1=cleanse_address_line(
                location.get("address_line_1", ""),
                location.get("city", ""),
                location.get("postcode", ""),
            ),
            address_line_2=location.get("address_line_2", ""),
            city=location.get("city", ""),
            country=location.get("country", ""),
            county=location.get("county", ""),
            postcode=location.get("postcode", ""),
            latitude=round(location["latitude"], 6),
            longitude=round(location["longitude"], 6),
            opening_times=record.get("opening_times") or {},
            amenities=record.get("amenities") or [],
            fuel_types=record.get("fuel_types") or [],
        )

    def find_stations(self, bbox: BoundingBox) -> QuerySet[Station]:
        """Stations located inside ``bbox``, ordered by node id."""
        return Station.objects.filter(**_in_bbox(bbox)).order_by("node_id")

    def find_price_history(self, bbox: BoundingBox, limit: int) -> PriceHistory:
        """
        Recent price history of every station inside ``bbox``.

        Observations are read newest first per (station, fuel type). A run of
        consecutive equal prices is reported once, as the observation at
        which that price took effect (the oldest of the run), so only a price
        change consumes one of the ``limit`` slots. Both the run collapse and
        the limit are applied in the database.

        Example:
            Observations 140.9 (-4h), 142.9 (-3h), 142.9 (-2h), 142.9 (-1h)
            and 141.9 (now) with limit 5 yield 141.9 (now), 142.9 (-3h),
            140.9 (-4h).

        Returns:
            ``{node_id: {fuel_type: [PricePoint, ...]}}``, newest first
        """
        if limit <= 0:
            return {}

        history: PriceHistory = defaultdict(lambda: defaultdict(list))
        for node_id, fuel_type, price, updated_on, effective_from in self._price_history_rows(
            bbox, limit
        ):
            history[node_id][fuel_type].append(
                PricePoint(price=float(price), updated_on=updated_on, effective_from=effective_from)
            )

        return {node_id: dict(by_fuel) for node_id, by_fuel in history.items()}

    def _price_history_rows(self, bbox: BoundingBox, limit: int) -> QuerySet[Any]:
        """The newest ``limit`` run-start observations per (station, fuel type)."""
        pair = [F("station_id"), F("fuel_type")]
        newest_first = F("price_last_updated").desc()

        # An observation starts a run unless the next older one has the same price
        run_starts = (
            PriceObservation.objects.filter(
                station_id__in=Station.objects.filter(**_in_bbox(bbox)).values("node_id")
            )
            .annotate(
                older_price=Window(expression=Lead("price"), partition_by=pair, order_by=newest_first)
            )
            .filter(Q(older_price__isnull=True) | ~Q(older_price=F("price")))
            .values("pk")
        )

        return (
            PriceObservation.objects.filter(pk__in=run_starts)
            .annotate(rank=Window(expression=RowNumber(), partition_by=pair, order_by=newest_first))
            .filter(rank__lte=limit)
            .order_by("station_id", "fuel_type", "-price_last_updated")
            .values_list("station_id", "fuel_type", "price", "price_last_updated", "effective_from")
        )


class DatabaseWatermarkStore:
    """Fetch watermarks persisted in ``FetchWatermark`` so they survive restarts."""

    def get(self, resource: str) -> Optional[datetime]:
        watermark = FetchWatermark.objects.filter(resource=resource).first()
        return watermark.fetched_at if watermark else None

    def set(self, resource: str, fetched_at: datetime) -> None:
        FetchWatermark.objects.update_or_create(
            resource=resource, defaults={"fetched_at": fetched_at}
        )
