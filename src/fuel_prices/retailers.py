"""
Canonical retailer (brand) reference table.

The table ships with the package as ``data/retailers.csv`` and is loaded once
per process; changing it requires a restart.
"""

import csv
import logging
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

from fuel_prices.types import Retailer

logger = logging.getLogger(__name__)

RETAILERS_CSV = Path(__file__).resolve().parent / "data" / "retailers.csv"


class RetailerTableError(Exception):
    """Raised when the retailer reference table cannot be loaded."""

    pass


def load_retailers(csv_path: Path = RETAILERS_CSV) -> Mapping[str, Retailer]:
    """
    Read the retailer table into an immutable mapping keyed by upper-case name.

    Raises:
        RetailerTableError: If the file is missing a column or repeats a name
    """
    retailers: dict[str, Retailer] = {}
    with open(csv_path, encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        for line_no, row in enumerate(reader, start=2):
            try:
                name = row["name"].strip().upper()
                website_url = row["website_url"].strip()
            except (KeyError, AttributeError) as e:
                raise RetailerTableError(f"{csv_path}:{line_no}: malformed row") from e
            if name in retailers:
                raise RetailerTableError(f"{csv_path}:{line_no}: duplicate retailer {name!r}")
            logo_url = (row.get("logo_url") or "").strip() or None
            retailers[name] = Retailer(name=name, website_url=website_url, logo_url=logo_url)

    logger.debug("Loaded %d retailers from %s", len(retailers), csv_path)
    return MappingProxyType(retailers)


@lru_cache(maxsize=1)
def get_retailers() -> Mapping[str, Retailer]:
    """Process-wide retailer table, loaded on first use."""
    return load_retailers()


def match_retailer(
    brand_name: str, retailers: Optional[Mapping[str, Retailer]] = None
) -> Optional[Retailer]:
    """
    Resolve a free-text brand or trading name to a canonical retailer.

    The longest retailer name that prefixes the upper-cased input wins, so
    ``"ASDA EXPRESS PETROL"`` resolves to ``ASDA EXPRESS`` rather than ``ASDA``.
    Equal-length matches are resolved by table order.

    Returns:
        The matching Retailer, or None when nothing matches
    """
    if not brand_name:
        return None
    if retailers is None:
        retailers = get_retailers()

    normalized = brand_name.strip().upper()
    best_match: Optional[Retailer] = None
    best_length = 0
    for name, retailer in retailers.items():
        if len(name) > best_length and normalized.startswith(name):
            best_match = retailer
            best_length = len(name)
    return best_match
