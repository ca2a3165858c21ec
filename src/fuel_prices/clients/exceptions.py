"""Errors raised by the Fuel Finder client."""

from typing import Optional


class FuelFinderError(Exception):
    """Base class for every Fuel Finder client failure."""

    pass


class AuthenticationError(FuelFinderError):
    """Credential exchange or token refresh failed. Not retried."""

    pass


class FetchError(FuelFinderError):
    """Transport or decode failure while retrieving one batch."""

    def __init__(
        self, message: str, *, url: Optional[str] = None, batch_number: Optional[int] = None
    ) -> None:
        super().__init__(message)
        self.url = url
        self.batch_number = batch_number


class UpstreamStatusError(FetchError):
    """The upstream API answered a batch request with a non-2xx status."""

    def __init__(self, url: str, status_code: int, reason: str = "", *, batch_number: int) -> None:
        status = f"{status_code} {reason}".strip()
        super().__init__(
            f"HTTP {status} from {url} (batch {batch_number})",
            url=url,
            batch_number=batch_number,
        )
        self.status_code = status_code


class SinkError(FuelFinderError):
    """The caller-supplied batch sink raised; the original error is chained."""

    def __init__(self, resource: str, batch_number: int, cause: Exception) -> None:
        super().__init__(f"Failed to process {resource} batch {batch_number}: {cause}")
        self.resource = resource
        self.batch_number = batch_number
