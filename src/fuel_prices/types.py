"""Read-side value types produced by the search path."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from fuel_prices.models import Station


@dataclass(frozen=True)
class Retailer:
    name: str
    website_url: str
    logo_url: Optional[str] = None


@dataclass(frozen=True)
class PricePoint:
    """One entry in a station's price history for a fuel type, in pence."""

    price: float
    updated_on: datetime
    effective_from: Optional[datetime] = None


@dataclass
class SearchResult:
    """A station joined with its recent price history per fuel type."""

    station: "Station"
    fuel_prices: dict[str, list[PricePoint]] = field(default_factory=dict)
    retailer: Optional[Retailer] = None

    @property
    def node_id(self) -> str:
        return self.station.node_id


@dataclass
class SearchStatistics:
    cheapest_stations: dict[str, list[str]] = field(default_factory=dict)
    lowest_price: dict[str, float] = field(default_factory=dict)
    average_price: dict[str, float] = field(default_factory=dict)
    highest_price: dict[str, float] = field(default_factory=dict)
    standard_deviation: dict[str, float] = field(default_factory=dict)
    price_distribution: dict[str, dict[str, int]] = field(default_factory=dict)
    brand_distribution: dict[str, int] = field(default_factory=dict)
