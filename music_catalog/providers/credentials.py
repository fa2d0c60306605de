from __future__ import annotations

import logging
import time
import urllib.parse
from dataclasses import dataclass
from typing import Callable, Optional

from ..errors import CatalogAPIError, ErrorType, coerce_error
from .transport import Transport

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RemoteCredential:
    token: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


TokenFetcher = Callable[[], RemoteCredential]


class CredentialStore:
    """
    Bearer credential held in memory for one client.

    Tokens come from a trusted intermediary through ``token_fetcher``. The
    client secret is never exchanged from here, so a store without a fetcher
    cannot produce a token and fails with a non-retryable auth error.
    """

    def __init__(
        self,
        client_id: Optional[str],
        token_fetcher: Optional[TokenFetcher] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.client_id = client_id
        self._fetcher = token_fetcher
        self._clock = clock
        self._credential: Optional[RemoteCredential] = None

    @property
    def credential(self) -> Optional[RemoteCredential]:
        return self._credential

    def get(self) -> str:
        credential = self._credential
        if credential is None or credential.is_expired(self._clock()):
            credential = self.refresh()
        return credential.token

    def refresh(self) -> RemoteCredential:
        if not self.client_id:
            raise CatalogAPIError(
                ErrorType.AUTH,
                "No client id configured for the music catalog API",
                status=500,
                code="MISSING_CREDENTIALS",
                retryable=False,
            )
        if self._fetcher is None:
            raise CatalogAPIError(
                ErrorType.AUTH,
                "Direct client-side token requests are disabled; configure a token intermediary or the proxy",
                status=500,
                code="DIRECT_AUTH_DISABLED",
                retryable=False,
            )
        self._credential = self._fetcher()
        logger.debug("Acquired catalog credential valid until %.0f", self._credential.expires_at)
        return self._credential

    def clear(self) -> None:
        self._credential = None


class IntermediaryTokenFetcher:
    """Fetch tokens from an intermediary that holds the client secret."""

    def __init__(
        self,
        url: str,
        transport: Transport,
        client_id: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.url = url
        self.transport = transport
        self.client_id = client_id
        self._clock = clock

    def __call__(self) -> RemoteCredential:
        url = self.url
        if self.client_id:
            url = f"{url}?{urllib.parse.urlencode({'client_id': self.client_id})}"
        try:
            response = self.transport.request("GET", url, headers={"Accept": "application/json"})
        except OSError as exc:
            raise coerce_error(exc, url=url) from exc
        if response.status >= 400:
            raise CatalogAPIError(
                ErrorType.AUTH,
                f"Token request failed with HTTP {response.status}",
                status=response.status,
                code=f"HTTP_{response.status}",
                retryable=False,
                context={"url": url},
            )
        try:
            body = response.json() or {}
            token = body["access_token"]
            expires_in = float(body.get("expires_in", 3600))
        except (KeyError, TypeError, ValueError) as exc:
            raise CatalogAPIError(
                ErrorType.AUTH,
                f"Malformed token response: {exc}",
                status=500,
                code="INVALID_TOKEN_RESPONSE",
                retryable=False,
            ) from exc
        return RemoteCredential(token=str(token), expires_at=self._clock() + expires_in)
