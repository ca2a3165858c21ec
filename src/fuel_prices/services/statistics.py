"""Descriptive price statistics over a set of search results."""

import math
from collections import Counter, defaultdict
from collections.abc import Iterable

from fuel_prices.types import SearchResult, SearchStatistics

DEFAULT_BUCKET_WIDTH = 3


def derive_statistics(
    results: Iterable[SearchResult], bucket_width: int = DEFAULT_BUCKET_WIDTH
) -> SearchStatistics:
    """
    Summarize prices per fuel type.

    Each station contributes one sample per fuel type: its most recent
    price. Stations without a price for a fuel type are left out of that
    fuel type's figures.

    - lowest/highest price, and every station sharing the lowest price
    - mean, rounded half-up to one decimal place
    - population standard deviation, only when there is more than one sample
    - histogram of whole-pence buckets ``"<start>-<end>"``, both inclusive;
      the grid starts at the truncated lowest price, so a bucket starts at
      ``floor + (int(price) - floor) // bucket_width * bucket_width``.
      Bucket labels therefore depend on the lowest price in the result
      set and are not comparable across searches.

    Brand distribution counts stations per resolved retailer; stations with
    no retailer are not counted.

    Example:
        With a bucket width of 3, prices 139, 140 and 141 all land in
        ``"139-141"``.
    """
    if bucket_width <= 0:
        bucket_width = DEFAULT_BUCKET_WIDTH

    results = list(results)
    stats = SearchStatistics()

    samples: dict[str, list[tuple[float, str]]] = defaultdict(list)
    for result in results:
        for fuel_type, points in result.fuel_prices.items():
            if points:
                samples[fuel_type].append((points[0].price, result.node_id))

    for fuel_type, entries in samples.items():
        prices = [price for price, _ in entries]
        lowest = min(prices)
        mean = sum(prices) / len(prices)

        stats.lowest_price[fuel_type] = lowest
        stats.highest_price[fuel_type] = max(prices)
        stats.average_price[fuel_type] = math.floor(mean * 10 + 0.5) / 10
        stats.cheapest_stations[fuel_type] = [
            node_id for price, node_id in entries if price == lowest
        ]

        if len(prices) > 1:
            variance = sum((p - mean) ** 2 for p in prices) / len(prices)
            stats.standard_deviation[fuel_type] = math.sqrt(variance)

        floor = int(lowest)
        buckets: Counter[str] = Counter()
        for price in prices:
            start = floor + (int(price) - floor) // bucket_width * bucket_width
            buckets[f"{start}-{start + bucket_width - 1}"] += 1
        stats.price_distribution[fuel_type] = dict(buckets)

    brands = Counter(result.retailer.name for result in results if result.retailer is not None)
    stats.brand_distribution = dict(brands)

    return stats
