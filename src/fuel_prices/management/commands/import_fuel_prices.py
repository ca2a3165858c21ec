"""Django management command to import stations and prices from Fuel Finder."""

from typing import Any

from django.core.management.base import BaseCommand, CommandError, CommandParser

from fuel_prices.clients.fuel_finder import FuelFinderError
from fuel_prices.services.ingestion import IngestionService


class Command(BaseCommand):
    """
    One-shot import from the Fuel Finder API.

    Stations are imported before prices so that a fresh database can show
    prices against their stations straight away. Each resource resumes from
    its stored watermark, exactly like the scheduled tasks.

    Usage:
        python manage.py import_fuel_prices
        python manage.py import_fuel_prices --prices
    """

    help = "Import filling stations and fuel prices from the Fuel Finder API"

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument(
            "--stations", action="store_true", help="Only import filling stations"
        )
        parser.add_argument("--prices", action="store_true", help="Only import fuel prices")

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the management command."""
        do_stations = options["stations"] or not options["prices"]
        do_prices = options["prices"] or not options["stations"]

        try:
            service = IngestionService()
            if do_stations:
                self.stdout.write("Importing filling stations...")
                count = service.import_stations()
                self.stdout.write(self.style.SUCCESS(f"Imported {count} filling stations"))
            if do_prices:
                self.stdout.write("Importing fuel prices...")
                count = service.import_prices()
                self.stdout.write(
                    self.style.SUCCESS(f"Imported fuel prices for {count} forecourts")
                )
        except FuelFinderError as e:
            raise CommandError(f"Import failed: {e}") from e
