"""Value clean-up applied to upstream records before they are stored."""

from decimal import Decimal
from typing import Union

Number = Union[int, float, Decimal, str]

POUNDS_THRESHOLD = Decimal("10")
TENTHS_OF_PENCE_THRESHOLD = Decimal("1000")


def normalize_price(raw: Number) -> Decimal:
    """
    Coerce an upstream price into pence.

    Upstream prices are nominally pence, but some forecourts report pounds
    (``1.429``) and some tenths of a penny (``1429``). There is no unit tag on
    the wire, so this is a magnitude heuristic, not a conversion:

    - below 10: assumed pounds, multiplied by 100
    - above 1000: assumed tenths of pence, divided by 10
    - otherwise: already pence

    Example:
        >>> normalize_price(1.429)
        Decimal('142.900')
        >>> normalize_price(1429)
        Decimal('142.9')
    """
    price = raw if isinstance(raw, Decimal) else Decimal(str(raw))
    if price < POUNDS_THRESHOLD:
        return price * 100
    if price > TENTHS_OF_PENCE_THRESHOLD:
        return price / 10
    return price


def cleanse_address_line(address_line: str, city: str, postcode: str) -> str:
    """
    Strip a city/postcode tail that upstream sometimes copies into address line 1.

    Suffixes are tried longest first so that ``"1 High St, Leeds, LS1 1AA"``
    loses the whole ``", Leeds, LS1 1AA"`` rather than just the postcode.
    """
    if not address_line or not postcode:
        return address_line

    suffixes = (
        f", {city}, {postcode}",
        f"{city}, {postcode}",
        f", {postcode}",
        postcode,
    )
    for suffix in suffixes:
        if address_line.endswith(suffix):
            return address_line[: -len(suffix)]
    return address_line
