"""
Pytest configuration and global fixtures.

Defines common fixtures and settings for the entire test suite.
"""

from datetime import timedelta
from typing import Any, Callable

import pytest
from django.utils import timezone

from fuel_prices.tests.factories import build_price_record, build_station_record


@pytest.fixture
def station_record() -> Callable[..., dict[str, Any]]:
    """Factory for station records with Faker-generated details."""
    return build_station_record


@pytest.fixture
def price_record() -> Callable[..., dict[str, Any]]:
    """Factory for forecourt price groups."""
    return build_price_record


@pytest.fixture
def now() -> Any:
    """Current time truncated to whole seconds, as upstream timestamps are."""
    return timezone.now().replace(microsecond=0)


@pytest.fixture
def hours_ago(now: Any) -> Callable[[int], Any]:
    return lambda hours: now - timedelta(hours=hours)
