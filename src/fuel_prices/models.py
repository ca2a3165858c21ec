"""Models for petrol filling stations, their price history and fetch watermarks."""

from django.db import models

from apps.core.models import TimestampedModel


class Station(TimestampedModel):
    """
    A petrol filling station (PFS) as published by the Fuel Finder service.

    ``node_id`` is the upstream natural key: re-ingesting a station overwrites
    its row rather than adding another.

    Attributes:
        node_id: Globally unique upstream identifier
        mft_organisation_name: Registered organisation operating the site
        trading_name: Name shown on the forecourt
        brand_name: Fuel brand (matched against the retailer table)
        address_line_1: First address line, cleansed of duplicated city/postcode
        latitude: Decimal degrees (indexed with longitude for bbox queries)
        longitude: Decimal degrees
        opening_times: ``{"usual_days": {...}, "bank_holiday": {...}}``
        amenities: List of amenity tags
        fuel_types: List of fuel type codes sold on site
    """

    node_id = models.CharField(max_length=128, primary_key=True)
    mft_organisation_name = models.CharField(max_length=255, blank=True, default="")
    public_phone_number = models.CharField(max_length=64, blank=True, default="")
    trading_name = models.CharField(max_length=255, blank=True, default="")
    is_same_trading_and_brand_name = models.BooleanField(default=False)
    brand_name = models.CharField(max_length=255, blank=True, default="")
    temporary_closure = models.BooleanField(default=False)
    permanent_closure = models.BooleanField(default=False)
    permanent_closure_date = models.DateTimeField(null=True, blank=True)
    is_motorway_service_station = models.BooleanField(default=False)
    is_supermarket_service_station = models.BooleanField(default=False)

    address_line_1 = models.CharField(max_length=255, blank=True, default="")
    address_line_2 = models.CharField(max_length=255, blank=True, default="")
    city = models.CharField(max_length=100, blank=True, default="")
    country = models.CharField(max_length=100, blank=True, default="")
    county = models.CharField(max_length=100, blank=True, default="")
    postcode = models.CharField(max_length=16, blank=True, default="")
    latitude = models.DecimalField(max_digits=9, decimal_places=6)
    longitude = models.DecimalField(max_digits=9, decimal_places=6)

    opening_times = models.JSONField(default=dict, blank=True)
    amenities = models.JSONField(default=list, blank=True)
    fuel_types = models.JSONField(default=list, blank=True)

    class Meta:
        indexes = [
            # Composite index for bounding box queries
            models.Index(fields=["latitude", "longitude"], name="idx_station_location"),
        ]
        verbose_name = "Station"
        verbose_name_plural = "Stations"

    def __str__(self) -> str:
        return f"{self.trading_name or self.node_id} - {self.postcode}"


class PriceObservation(models.Model):
    """
    One upstream price report for a (station, fuel type) pair.

    Observations accumulate as an append-only history; the unique constraint
    on ``(station, fuel_type, price_last_updated)`` makes re-ingestion of the
    same report an update instead of a duplicate. ``price`` is always pence.

    The station reference carries no database constraint: the prices feed can
    mention stations that the stations feed has not delivered yet.
    """

    station = models.ForeignKey(
        Station,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name="price_observations",
        db_column="node_id",
    )
    fuel_type = models.CharField(max_length=32)
    price = models.DecimalField(max_digits=10, decimal_places=3)
    price_last_updated = models.DateTimeField()
    effective_from = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["station", "fuel_type", "price_last_updated"],
                name="uniq_price_observation",
            ),
        ]
        indexes = [
            # Most-recent-N per (station, fuel type)
            models.Index(
                fields=["station", "fuel_type", "-price_last_updated"],
                name="idx_price_history",
            ),
        ]
        verbose_name = "Price Observation"
        verbose_name_plural = "Price Observations"

    def __str__(self) -> str:
        return f"{self.station_id} {self.fuel_type} {self.price}p @ {self.price_last_updated}"


class FetchWatermark(models.Model):
    """End of the last fully completed fetch window for one upstream resource."""

    STATIONS = "stations"
    PRICES = "prices"
    RESOURCE_CHOICES = [
        (STATIONS, "Filling stations"),
        (PRICES, "Fuel prices"),
    ]

    resource = models.CharField(max_length=32, choices=RESOURCE_CHOICES, unique=True)
    fetched_at = models.DateTimeField()

    def __str__(self) -> str:
        return f"{self.resource} @ {self.fetched_at.isoformat()}"
