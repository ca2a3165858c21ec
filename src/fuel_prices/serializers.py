"""
Serializers for the fuel prices app.

Two directions:
- Upstream input: validate one Fuel Finder record at a time so that a single
  malformed station or price group is skipped instead of failing its batch.
- API output: render search results, statistics and the query parameters of
  the search endpoint.
"""

import math
from typing import Any

from django.conf import settings
from rest_framework import serializers

from fuel_prices.utils.geo import BoundingBox, exceeds_span

UPSTREAM_DATETIME_FORMATS = ["iso-8601", "%Y-%m-%d"]


# ---------------------------------------------------------------------------
# Upstream (Fuel Finder) records
# ---------------------------------------------------------------------------


class UpstreamLocationSerializer(serializers.Serializer[dict[str, Any]]):  # type: ignore[misc]
    address_line_1 = serializers.CharField(allow_blank=True, required=False, default="")
    address_line_2 = serializers.CharField(
        allow_blank=True, allow_null=True, required=False, default=""
    )
    city = serializers.CharField(allow_blank=True, required=False, default="")
    country = serializers.CharField(allow_blank=True, required=False, default="")
    county = serializers.CharField(
        allow_blank=True, allow_null=True, required=False, default=""
    )
    postcode = serializers.CharField(allow_blank=True, required=False, default="")
    latitude = serializers.FloatField(min_value=-90.0, max_value=90.0)
    longitude = serializers.FloatField(min_value=-180.0, max_value=180.0)


class UpstreamStationSerializer(serializers.Serializer[dict[str, Any]]):  # type: ignore[misc]
    """One petrol filling station from ``GET /pfs``."""

    node_id = serializers.CharField(max_length=128)
    mft_organisation_name = serializers.CharField(
        allow_blank=True, allow_null=True, required=False, default=""
    )
    public_phone_number = serializers.CharField(
        allow_blank=True, allow_null=True, required=False, default=""
    )
    trading_name = serializers.CharField(
        allow_blank=True, allow_null=True, required=False, default=""
    )
    is_same_trading_and_brand_name = serializers.BooleanField(required=False, default=False)
    brand_name = serializers.CharField(
        allow_blank=True, allow_null=True, required=False, default=""
    )
    temporary_closure = serializers.BooleanField(required=False, default=False)
    permanent_closure = serializers.BooleanField(required=False, default=False)
    permanent_closure_date = serializers.DateTimeField(
        input_formats=UPSTREAM_DATETIME_FORMATS, allow_null=True, required=False, default=None
    )
    is_motorway_service_station = serializers.BooleanField(required=False, default=False)
    is_supermarket_service_station = serializers.BooleanField(required=False, default=False)
    location = UpstreamLocationSerializer()
    amenities = serializers.ListField(
        child=serializers.CharField(),
        allow_empty=True,
        allow_null=True,
        required=False,
        default=list,
    )
    opening_times = serializers.JSONField(allow_null=True, required=False, default=dict)
    fuel_types = serializers.ListField(
        child=serializers.CharField(),
        allow_empty=True,
        allow_null=True,
        required=False,
        default=list,
    )

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        # Upstream sends explicit nulls for optional fields
        for key in ("mft_organisation_name", "public_phone_number", "trading_name", "brand_name"):
            attrs[key] = attrs.get(key) or ""
        location = attrs["location"]
        for key in ("address_line_2", "county"):
            location[key] = location.get(key) or ""
        attrs["opening_times"] = attrs.get("opening_times") or {}
        attrs["amenities"] = attrs.get("amenities") or []
        attrs["fuel_types"] = attrs.get("fuel_types") or []
        return attrs


class UpstreamFuelPriceSerializer(serializers.Serializer[dict[str, Any]]):  # type: ignore[misc]
    fuel_type = serializers.CharField(max_length=32)
    price = serializers.FloatField(min_value=0.0, max_value=1_000_000.0)
    price_last_updated = serializers.DateTimeField(input_formats=UPSTREAM_DATETIME_FORMATS)
    price_change_effective_timestamp = serializers.DateTimeField(
        input_formats=UPSTREAM_DATETIME_FORMATS, allow_null=True, required=False, default=None
    )


class UpstreamForecourtPricesSerializer(serializers.Serializer[dict[str, Any]]):  # type: ignore[misc]
    """The fuel prices of one forecourt from ``GET /pfs/fuel-prices``."""

    node_id = serializers.CharField(max_length=128)
    mft_organisation_name = serializers.CharField(
        allow_blank=True, allow_null=True, required=False, default=""
    )
    public_phone_number = serializers.CharField(
        allow_blank=True, allow_null=True, required=False, default=""
    )
    trading_name = serializers.CharField(
        allow_blank=True, allow_null=True, required=False, default=""
    )
    fuel_prices = UpstreamFuelPriceSerializer(many=True, allow_empty=True)


# ---------------------------------------------------------------------------
# Search API
# ---------------------------------------------------------------------------


class SearchQuerySerializer(serializers.Serializer[dict[str, Any]]):  # type: ignore[misc]
    """Query parameters of the search endpoint."""

    bbox = serializers.CharField(
        help_text="west,south,east,north in decimal degrees",
        error_messages={
            "required": "bbox must have 4 comma-separated values",
            "blank": "bbox must have 4 comma-separated values",
        },
    )
    limit = serializers.IntegerField(
        min_value=0,
        required=False,
        default=1,
        error_messages={
            "invalid": "invalid limit parameter",
            "min_value": "invalid limit parameter",
            "max_string_length": "invalid limit parameter",
        },
        help_text="Price history entries per fuel type (default 1, most recent only)",
    )

    def validate_bbox(self, value: str) -> BoundingBox:
        parts = value.split(",")
        if len(parts) != 4:
            raise serializers.ValidationError("bbox must have 4 comma-separated values")

        coords = []
        for part in parts:
            try:
                coord = float(part.strip())
            except ValueError:
                raise serializers.ValidationError(
                    f"invalid bbox value '{part}': not a valid float"
                ) from None
            if not math.isfinite(coord):
                raise serializers.ValidationError(
                    f"invalid bbox value '{part}': not a finite number"
                )
            coords.append(coord)

        bbox = BoundingBox(*coords)
        max_span = settings.SEARCH_MAX_BBOX_SPAN_METERS
        if exceeds_span(bbox, max_span):
            raise serializers.ValidationError(
                "bbox must define a valid area "
                f"(no more than {max_span // 1000} KM in either dimension)"
            )
        return bbox


class PricePointSerializer(serializers.Serializer[dict[str, Any]]):  # type: ignore[misc]
    price = serializers.FloatField(read_only=True)
    updated_on = serializers.DateTimeField(read_only=True)
    effective_from = serializers.DateTimeField(read_only=True, allow_null=True)


class RetailerSerializer(serializers.Serializer[dict[str, Any]]):  # type: ignore[misc]
    name = serializers.CharField(read_only=True)
    website_url = serializers.CharField(read_only=True)
    logo_url = serializers.CharField(read_only=True, allow_null=True)


class LocationSerializer(serializers.Serializer[dict[str, Any]]):  # type: ignore[misc]
    address_line_1 = serializers.CharField(read_only=True)
    address_line_2 = serializers.CharField(read_only=True)
    city = serializers.CharField(read_only=True)
    country = serializers.CharField(read_only=True)
    county = serializers.CharField(read_only=True)
    postcode = serializers.CharField(read_only=True)
    latitude = serializers.FloatField(read_only=True)
    longitude = serializers.FloatField(read_only=True)


class SearchResultSerializer(serializers.Serializer[dict[str, Any]]):  # type: ignore[misc]
    """A station with its price history and resolved retailer."""

    node_id = serializers.CharField(source="station.node_id", read_only=True)
    mft_organisation_name = serializers.CharField(
        source="station.mft_organisation_name", read_only=True
    )
    public_phone_number = serializers.CharField(
        source="station.public_phone_number", read_only=True
    )
    trading_name = serializers.CharField(source="station.trading_name", read_only=True)
    is_same_trading_and_brand_name = serializers.BooleanField(
        source="station.is_same_trading_and_brand_name", read_only=True
    )
    brand_name = serializers.CharField(source="station.brand_name", read_only=True)
    temporary_closure = serializers.BooleanField(
        source="station.temporary_closure", read_only=True
    )
    permanent_closure = serializers.BooleanField(
        source="station.permanent_closure", read_only=True
    )
    permanent_closure_date = serializers.DateTimeField(
        source="station.permanent_closure_date", read_only=True, allow_null=True
    )
    is_motorway_service_station = serializers.BooleanField(
        source="station.is_motorway_service_station", read_only=True
    )
    is_supermarket_service_station = serializers.BooleanField(
        source="station.is_supermarket_service_station", read_only=True
    )
    location = LocationSerializer(source="station", read_only=True)
    amenities = serializers.ListField(
        source="station.amenities", child=serializers.CharField(), read_only=True
    )
    opening_times = serializers.JSONField(source="station.opening_times", read_only=True)
    fuel_types = serializers.ListField(
        source="station.fuel_types", child=serializers.CharField(), read_only=True
    )
    fuel_prices = serializers.DictField(
        child=PricePointSerializer(many=True), read_only=True
    )
    retailer = RetailerSerializer(read_only=True, allow_null=True)


class SearchStatisticsSerializer(serializers.Serializer[dict[str, Any]]):  # type: ignore[misc]
    cheapest_stations = serializers.DictField(
        child=serializers.ListField(child=serializers.CharField()), read_only=True
    )
    lowest_price = serializers.DictField(child=serializers.FloatField(), read_only=True)
    average_price = serializers.DictField(child=serializers.FloatField(), read_only=True)
    highest_price = serializers.DictField(child=serializers.FloatField(), read_only=True)
    standard_deviation = serializers.DictField(
        child=serializers.FloatField(), read_only=True
    )
    price_distribution = serializers.DictField(
        child=serializers.DictField(child=serializers.IntegerField()), read_only=True
    )
    brand_distribution = serializers.DictField(
        child=serializers.IntegerField(), read_only=True
    )


class SearchResponseSerializer(serializers.Serializer[dict[str, Any]]):  # type: ignore[misc]
    results = SearchResultSerializer(many=True, read_only=True)
    attribution = serializers.ListField(child=serializers.CharField(), read_only=True)
    statistics = SearchStatisticsSerializer(read_only=True)
    last_updated = serializers.DateTimeField(read_only=True, allow_null=True)
