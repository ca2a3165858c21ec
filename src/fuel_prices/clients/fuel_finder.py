"""
Fuel Finder API client.

Retrieves petrol filling stations and their fuel prices in numbered batches
and hands every decoded batch to a caller-supplied sink. Each resource keeps
a watermark: the start time of the last completed fetch, sent back as
``effective-start-timestamp`` so that later fetches are incremental.
"""

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from datetime import timezone as dt_timezone
from typing import Any, Optional, Protocol

import requests  # type: ignore[import-untyped]
from django.conf import settings
from django.utils import timezone
from requests.adapters import HTTPAdapter  # type: ignore[import-untyped]
from rest_framework import serializers
from urllib3.util.retry import Retry

from fuel_prices.clients.exceptions import (
    AuthenticationError,
    FetchError,
    FuelFinderError,
    SinkError,
    UpstreamStatusError,
)
from fuel_prices.clients.tokens import TokenStore
from fuel_prices.serializers import (
    UpstreamForecourtPricesSerializer,
    UpstreamStationSerializer,
)

__all__ = [
    "AuthenticationError",
    "Batch",
    "FetchError",
    "FuelFinderClient",
    "FuelFinderError",
    "InMemoryWatermarkStore",
    "PRICES",
    "Resource",
    "STATIONS",
    "SinkError",
    "UpstreamStatusError",
    "decode_batch",
]

logger = logging.getLogger(__name__)

WATERMARK_FORMAT = "%Y-%m-%d %H:%M:%S"

Sink = Callable[[list[dict[str, Any]]], int]


@dataclass(frozen=True)
class Resource:
    """A paginated upstream collection."""

    name: str
    path: str
    serializer_class: type[serializers.Serializer]
    # Bare arrays of this resource are the quirk, not the norm
    expects_envelope: bool


STATIONS = Resource("stations", "/pfs", UpstreamStationSerializer, expects_envelope=False)
PRICES = Resource(
    "prices", "/pfs/fuel-prices", UpstreamForecourtPricesSerializer, expects_envelope=True
)


@dataclass
class Batch:
    """One decoded page: validated records plus what pagination needs to know."""

    number: int
    records: list[dict[str, Any]]
    rejected: int
    total_batches: Optional[int]


class WatermarkStore(Protocol):
    def get(self, resource: str) -> Optional[datetime]: ...

    def set(self, resource: str, fetched_at: datetime) -> None: ...


class InMemoryWatermarkStore:
    """Watermarks that live as long as the client instance."""

    def __init__(self) -> None:
        self._values: dict[str, datetime] = {}

    def get(self, resource: str) -> Optional[datetime]:
        return self._values.get(resource)

    def set(self, resource: str, fetched_at: datetime) -> None:
        self._values[resource] = fetched_at


def decode_batch(resource: Resource, content: bytes, batch_number: int, url: str = "") -> Batch:
    """
    Decode one batch response body.

    The shape is chosen from the first significant byte: ``{`` is the
    documented envelope ``{success, data, message, metadata}``, ``[`` a bare
    array of records. A bare array carries no batch count; for a resource
    that normally sends the envelope a count of ``batch_number + 2`` is
    assumed so that the next page is still requested, and the anomaly is
    logged.

    Records are validated one at a time; invalid records are logged and
    dropped, the rest of the batch is kept.

    Raises:
        FetchError: Undecodable JSON, an unexpected top-level type, or an
            envelope with ``success: false``
    """
    stripped = content.lstrip()
    first = stripped[:1]
    if first not in (b"{", b"["):
        raise FetchError(
            f"Unexpected {resource.name} payload in batch {batch_number}: {stripped[:64]!r}",
            url=url,
            batch_number=batch_number,
        )

    try:
        payload = json.loads(stripped)
    except ValueError as e:
        raise FetchError(
            f"Failed to decode {resource.name} batch {batch_number}: {e}",
            url=url,
            batch_number=batch_number,
        ) from e

    total_batches: Optional[int]
    if first == b"{":
        if not payload.get("success"):
            raise FetchError(
                f"API error: {payload.get('message', '')}", url=url, batch_number=batch_number
            )
        raw_records = payload.get("data") or []
        if not isinstance(raw_records, list):
            raise FetchError(
                f"Envelope data of {resource.name} batch {batch_number} is not a list",
                url=url,
                batch_number=batch_number,
            )
        metadata = payload.get("metadata") or {}
        total_batches = _as_int(metadata.get("total_batches"))
    else:
        raw_records = payload
        total_batches = None
        if resource.expects_envelope:
            total_batches = batch_number + 2
            logger.warning(
                "%s batch %d arrived as a bare array of %d records, assuming more batches follow",
                resource.name,
                batch_number,
                len(raw_records),
            )

    records, rejected = _validate_records(resource, raw_records, batch_number)
    return Batch(
        number=batch_number, records=records, rejected=rejected, total_batches=total_batches
    )


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _validate_records(
    resource: Resource, raw_records: list[Any], batch_number: int
) -> tuple[list[dict[str, Any]], int]:
    records = []
    rejected = 0
    for index, raw in enumerate(raw_records):
        if not isinstance(raw, dict):
            rejected += 1
            logger.warning(
                "Skipping %s record %d of batch %d: not an object",
                resource.name,
                index,
                batch_number,
            )
            continue

        serializer = resource.serializer_class(data=raw)
        if serializer.is_valid():
            records.append(serializer.validated_data)
        else:
            rejected += 1
            logger.warning(
                "Skipping %s record %s of batch %d: %s",
                resource.name,
                raw.get("node_id", index),
                batch_number,
                serializer.errors,
            )
    return records, rejected


class FuelFinderClient:
    """
    Client for the Fuel Finder batch API.

    Authenticates on construction; an ``AuthenticationError`` here means the
    client is unusable. Batches are fetched strictly in sequence and are not
    retried: any transport, status or decode failure aborts the fetch and
    leaves the watermark untouched, so the next run covers the same window.

    Pagination ends on whichever comes first:
    - HTTP 400 (the upstream's "no more batches" signal)
    - a batch the sink reports as zero records processed
    - the batch counter passing ``metadata.total_batches``
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        *,
        base_url: str,
        timeout: int = 30,
        retries: int = 0,
        refresh_margin: int = 300,
        watermarks: Optional[WatermarkStore] = None,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = self._create_session(retries)
        self.watermarks = watermarks if watermarks is not None else InMemoryWatermarkStore()
        self._clock = clock
        self.tokens = TokenStore(
            self.session,
            self.base_url,
            client_id,
            client_secret,
            timeout=timeout,
            refresh_margin=refresh_margin,
            clock=clock,
        )
        self.tokens.authenticate()

    @classmethod
    def from_settings(cls, watermarks: Optional[WatermarkStore] = None) -> "FuelFinderClient":
        return cls(
            settings.FUEL_FINDER_CLIENT_ID,
            settings.FUEL_FINDER_CLIENT_SECRET,
            base_url=settings.FUEL_FINDER_BASE_URL,
            timeout=settings.FUEL_FINDER_TIMEOUT,
            retries=settings.FUEL_FINDER_HTTP_RETRIES,
            refresh_margin=settings.FUEL_FINDER_TOKEN_REFRESH_MARGIN,
            watermarks=watermarks,
        )

    def _create_session(self, retries: int) -> requests.Session:
        """
        Create a requests session, optionally retrying transient failures.

        With ``retries=0`` (the default) nothing is retried: a failed batch
        fails the fetch. Operators may opt in to transport-level retries on
        429/502/503/504 with exponential backoff.
        """
        session = requests.Session()
        retry_strategy = Retry(
            total=retries,
            status_forcelist=[429, 502, 503, 504],
            backoff_factor=0.5,
            allowed_methods=["GET"],
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    def last_updated(self, resource: Resource = PRICES) -> Optional[datetime]:
        return self.watermarks.get(resource.name)

    def fetch_stations(self, sink: Sink) -> int:
        """Stream every changed filling station to ``sink``; returns records processed."""
        return self.fetch(STATIONS, sink)

    def fetch_prices(self, sink: Sink) -> int:
        """Stream every changed forecourt price group to ``sink``; returns records processed."""
        return self.fetch(PRICES, sink)

    def fetch(self, resource: Resource, sink: Sink) -> int:
        """
        Fetch ``resource`` batch by batch, starting from its watermark.

        Args:
            resource: ``STATIONS`` or ``PRICES``
            sink: Called with each batch's validated records, returns how
                many it processed

        Returns:
            Total records processed by the sink

        Raises:
            AuthenticationError: Token refresh failed
            UpstreamStatusError: Non-2xx status other than 400
            FetchError: Transport or decode failure
            SinkError: The sink raised
        """
        started_at = self._clock()
        since = self.watermarks.get(resource.name)
        logger.info(
            "Fetching %s since %s", resource.name, since.isoformat() if since else "the beginning"
        )

        batch_number = 1
        total = 0
        while True:
            response = self._get_batch(resource, batch_number, since)
            if response is None:
                logger.info(
                    "No more %s batches available, stopping at batch %d",
                    resource.name,
                    batch_number - 1,
                )
                break

            batch = decode_batch(resource, response.content, batch_number, url=response.url)
            try:
                processed = sink(batch.records)
            except Exception as e:
                raise SinkError(resource.name, batch_number, e) from e

            total += processed
            logger.info(
                "Processed %s batch %d/%s: %d records (%d rejected)",
                resource.name,
                batch_number,
                batch.total_batches if batch.total_batches is not None else "?",
                processed,
                batch.rejected,
            )

            if processed == 0 and batch.rejected == 0:
                break
            batch_number += 1
            if batch.total_batches is not None and batch_number > batch.total_batches:
                break

        self.watermarks.set(resource.name, started_at)
        logger.info(
            "Fetched %d %s records, watermark now %s", total, resource.name, started_at.isoformat()
        )
        return total

    def _get_batch(
        self, resource: Resource, batch_number: int, since: Optional[datetime]
    ) -> Optional[requests.Response]:
        """GET one batch; ``None`` means the upstream has no batch with this number."""
        url = self.base_url + resource.path
        params: dict[str, Any] = {"batch-number": batch_number}
        if since is not None:
            params["effective-start-timestamp"] = since.astimezone(dt_timezone.utc).strftime(
                WATERMARK_FORMAT
            )

        headers = {"Accept": "application/json", **self.tokens.authorization_header()}
        logger.debug("GET %s %s", url, params)
        try:
            response = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise FetchError(
                f"Failed to fetch {resource.name} batch {batch_number} from {url}: {e}",
                url=url,
                batch_number=batch_number,
            ) from e

        if response.status_code == 400:
            return None
        if not 200 <= response.status_code < 300:
            raise UpstreamStatusError(
                url, response.status_code, response.reason or "", batch_number=batch_number
            )
        return response
