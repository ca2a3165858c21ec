import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="FetchWatermark",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("resource", models.CharField(choices=[("stations", "Filling stations"), ("prices", "Fuel prices")], max_length=32, unique=True)),
                ("fetched_at", models.DateTimeField()),
            ],
        ),
        migrations.CreateModel(
            name="Station",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, help_text="Timestamp when the record was first stored")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when the record was last refreshed")),
                ("node_id", models.CharField(max_length=128, primary_key=True, serialize=False)),
                ("mft_organisation_name", models.CharField(blank=True, default="", max_length=255)),
                ("public_phone_number", models.CharField(blank=True, default="", max_length=64)),
                ("trading_name", models.CharField(blank=True, default="", max_length=255)),
                ("is_same_trading_and_brand_name", models.BooleanField(default=False)),
                ("brand_name", models.CharField(blank=True, default="", max_length=255)),
                ("temporary_closure", models.BooleanField(default=False)),
                ("permanent_closure", models.BooleanField(default=False)),
                ("permanent_closure_date", models.DateTimeField(blank=True, null=True)),
                ("is_motorway_service_station", models.BooleanField(default=False)),
                ("is_supermarket_service_station", models.BooleanField(default=False)),
                ("address_line_1", models.CharField(blank=True, default="", max_length=255)),
                ("address_line_2", models.CharField(blank=True, default="", max_length=255)),
                ("city", models.CharField(blank=True, default="", max_length=100)),
                ("country", models.CharField(blank=True, default="", max_length=100)),
                ("county", models.CharField(blank=True, default="", max_length=100)),
                ("postcode", models.CharField(blank=True, default="", max_length=16)),
                ("latitude", models.DecimalField(decimal_places=6, max_digits=9)),
                ("longitude", models.DecimalField(decimal_places=6, max_digits=9)),
                ("opening_times", models.JSONField(blank=True, default=dict)),
                ("amenities", models.JSONField(blank=True, default=list)),
                ("fuel_types", models.JSONField(blank=True, default=list)),
            ],
            options={
                "verbose_name": "Station",
                "verbose_name_plural": "Stations",
                "indexes": [models.Index(fields=["latitude", "longitude"], name="idx_station_location")],
            },
        ),
        migrations.CreateModel(
            name="PriceObservation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("fuel_type", models.CharField(max_length=32)),
                ("price", models.DecimalField(decimal_places=3, max_digits=10)),
                ("price_last_updated", models.DateTimeField()),
                ("effective_from", models.DateTimeField(blank=True, null=True)),
                (
                    "station",
                    models.ForeignKey(
                        db_column="node_id",
                        db_constraint=False,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="price_observations",
                        to="fuel_prices.station",
                    ),
                ),
            ],
            options={
                "verbose_name": "Price Observation",
                "verbose_name_plural": "Price Observations",
                "indexes": [
                    models.Index(fields=["station", "fuel_type", "-price_last_updated"], name="idx_price_history")
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("station", "fuel_type", "price_last_updated"), name="uniq_price_observation"
                    )
                ],
            },
        ),
    ]
