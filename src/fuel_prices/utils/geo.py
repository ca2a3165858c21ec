"""Geospatial helpers for bounding box validation."""

from math import cos, radians
from typing import NamedTuple

# Length of one degree of latitude; also one degree of longitude at the equator
METERS_PER_DEGREE = 111_132


class BoundingBox(NamedTuple):
    """Geographic box in decimal degrees, ordered west, south, east, north."""

    west: float
    south: float
    east: float
    north: float

    def contains(self, lat: float, lon: float) -> bool:
        return self.south <= lat <= self.north and self.west <= lon <= self.east


def bbox_span_meters(bbox: BoundingBox) -> tuple[float, float]:
    """
    Approximate the extent of a bounding box in meters.

    Flat-earth approximation: latitude degrees are a fixed length, longitude
    degrees are scaled by the cosine of the box's mean latitude. Good to well
    under 1% at the box sizes the search endpoint accepts.

    Returns:
        Tuple of (latitude span, longitude span) in meters

    Example:
        >>> lat_m, lon_m = bbox_span_meters(BoundingBox(-0.2, 51.4, 0.0, 51.6))
        >>> round(lat_m)
        22226
    """
    lat_span = abs(bbox.north - bbox.south)
    lon_span = abs(bbox.east - bbox.west)
    mean_lat = radians((bbox.south + bbox.north) / 2)

    return (
        lat_span * METERS_PER_DEGREE,
        lon_span * METERS_PER_DEGREE * cos(mean_lat),
    )


def exceeds_span(bbox: BoundingBox, max_span_meters: float) -> bool:
    """Return True when either axis of the box is longer than ``max_span_meters``."""
    lat_m, lon_m = bbox_span_meters(bbox)
    return lat_m > max_span_meters or lon_m > max_span_meters
