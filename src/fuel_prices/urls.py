"""URL configuration for fuel_prices app."""

from django.urls import path

from fuel_prices.views import FuelPriceSearchView

app_name = "fuel_prices"

urlpatterns = [
    path("v1/fuel-prices/search", FuelPriceSearchView.as_view(), name="search"),
]
