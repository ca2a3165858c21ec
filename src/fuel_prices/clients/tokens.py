"""OAuth token handling for the Fuel Finder API."""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

import requests  # type: ignore[import-untyped]
from django.utils import timezone

from fuel_prices.clients.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_IN = 3600


@dataclass(frozen=True)
class TokenState:
    access_token: str
    refresh_token: str
    token_type: str
    expires_in: int
    captured_at: datetime

    @property
    def expires_at(self) -> datetime:
        return self.captured_at + timedelta(seconds=self.expires_in)


class TokenStore:
    """
    Access/refresh credentials for one client instance.

    Every read and write of the token state happens under a lock, so a
    proactive refresh is performed once even if two ingestion cycles share
    the store. Callers only ever see an ``Authorization`` header, never the
    raw token fields.

    Example:
        >>> store = TokenStore(session, base_url, "id", "secret")
        >>> store.authenticate()
        >>> session.get(url, headers=store.authorization_header())
    """

    GENERATE_PATH = "/oauth/generate_access_token"
    REGENERATE_PATH = "/oauth/regenerate_access_token"

    def __init__(
        self,
        session: requests.Session,
        base_url: str,
        client_id: str,
        client_secret: str,
        *,
        timeout: int = 30,
        refresh_margin: int = 300,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout = timeout
        self.refresh_margin = timedelta(seconds=refresh_margin)
        self._clock = clock
        self._lock = threading.Lock()
        self._state: Optional[TokenState] = None

    @property
    def expires_at(self) -> Optional[datetime]:
        with self._lock:
            return self._state.expires_at if self._state else None

    def authenticate(self) -> None:
        """Exchange the client credentials for a fresh token pair."""
        with self._lock:
            self._authenticate()

    def refresh(self) -> None:
        """Exchange the refresh token for a new access token."""
        with self._lock:
            self._refresh()

    def ensure_valid(self) -> None:
        """Authenticate or refresh if the token is missing or close to expiry."""
        with self._lock:
            self._ensure_valid()

    def authorization_header(self) -> dict[str, str]:
        with self._lock:
            state = self._ensure_valid()
        return {"Authorization": f"Bearer {state.access_token}"}

    def _ensure_valid(self) -> TokenState:
        if self._state is None:
            return self._authenticate()
        remaining = self._state.expires_at - self._clock()
        if remaining < self.refresh_margin:
            logger.info("Access token expires in %ds, refreshing", remaining.total_seconds())
            return self._refresh()
        return self._state

    def _authenticate(self) -> TokenState:
        data = self._exchange(
            self.GENERATE_PATH,
            {"client_id": self.client_id, "client_secret": self.client_secret},
        )
        self._state = self._build_state(data, previous_refresh_token="")
        logger.info("Authenticated with Fuel Finder, token expires at %s", self._state.expires_at)
        return self._state

    def _refresh(self) -> TokenState:
        if self._state is None or not self._state.refresh_token:
            return self._authenticate()
        data = self._exchange(
            self.REGENERATE_PATH,
            {"client_id": self.client_id, "refresh_token": self._state.refresh_token},
        )
        self._state = self._build_state(data, previous_refresh_token=self._state.refresh_token)
        logger.info("Refreshed Fuel Finder access token, expires at %s", self._state.expires_at)
        return self._state

    def _exchange(self, path: str, payload: dict[str, str]) -> dict[str, Any]:
        url = self.base_url + path
        logger.debug("POST %s", url)
        try:
            response = self.session.post(
                url,
                json=payload,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise AuthenticationError(f"Token request to {url} failed: {e}") from e

        if response.status_code != 200:
            raise AuthenticationError(
                f"Token request to {url} returned HTTP {response.status_code}"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise AuthenticationError(f"Token response from {url} is not JSON: {e}") from e

        if not isinstance(body, dict) or not body.get("success"):
            message = body.get("message", "") if isinstance(body, dict) else ""
            raise AuthenticationError(f"authentication failed: {message}")

        data = body.get("data") or {}
        if not data.get("access_token"):
            raise AuthenticationError(f"Token response from {url} has no access token")
        return data

    def _build_state(self, data: dict[str, Any], previous_refresh_token: str) -> TokenState:
        try:
            expires_in = int(data.get("expires_in") or DEFAULT_EXPIRES_IN)
        except (TypeError, ValueError) as e:
            raise AuthenticationError(f"Invalid expires_in in token response: {e}") from e

        # The regenerate endpoint may omit the refresh token; keep the current one
        return TokenState(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or previous_refresh_token,
            token_type=data.get("token_type") or "Bearer",
            expires_in=expires_in,
            captured_at=self._clock(),
        )
