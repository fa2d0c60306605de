from __future__ import annotations

import asyncio
import functools
import http.client
import logging
import random
import urllib.parse
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..cache import CacheTTL, ResponseCache
from ..config import Settings
from ..errors import CatalogAPIError, ErrorType, coerce_error, data_error, http_error
from ..models import Album, Artist, Playlist, Track
from .credentials import CredentialStore, IntermediaryTokenFetcher
from .transform import (
    KINDS,
    Domain,
    RemotePayload,
    transform,
    unpack_listing,
    unpack_search,
)
from .transport import HttpResponse, Transport, UrllibTransport

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class RemoteClient:
    """
    Catalog API client with bounded retry and cache-assisted degradation.

    Retryable failures (network, timeout, 5xx, 429) are retried with
    exponential backoff. Once retries run out the last good payload for the
    same logical request is served from the response cache, if any.
    """

    def __init__(
        self,
        settings: Settings,
        cache: ResponseCache,
        transport: Optional[Transport] = None,
        credentials: Optional[CredentialStore] = None,
        sleep: Sleep = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self.settings = settings
        self.providers = settings.providers
        self.retry = settings.retry
        self.cache = cache
        self.transport = transport or UrllibTransport(
            timeout=self.providers.timeout_seconds, useragent=self.providers.useragent
        )
        if credentials is None:
            fetcher = None
            if self.providers.token_url:
                fetcher = IntermediaryTokenFetcher(
                    self.providers.token_url, self.transport, client_id=self.providers.client_id
                )
            credentials = CredentialStore(self.providers.client_id, token_fetcher=fetcher)
        self.credentials = credentials
        self._sleep = sleep
        self._rng = rng

    async def search(
        self, query: str, kind: str = "track", limit: int = 20, offset: int = 0
    ) -> List[Domain]:
        if kind not in KINDS:
            raise CatalogAPIError(
                ErrorType.CLIENT,
                f"Unsupported search type {kind!r}",
                status=400,
                code="INVALID_TYPE",
                retryable=False,
            )
        params = {"q": query, "type": kind, "limit": limit, "offset": offset}
        return await self._fetch(
            "search",
            params,
            cache_key=f"search_{kind}_{query}",
            ttl=CacheTTL.SEARCH,
            convert=lambda body: unpack_search(body, kind),
        )

    async def get_track(self, track_id: str) -> Track:
        return await self._fetch_item("track", track_id, CacheTTL.TRACK)

    async def get_album(self, album_id: str) -> Album:
        return await self._fetch_item("album", album_id, CacheTTL.ALBUM)

    async def get_artist(self, artist_id: str) -> Artist:
        return await self._fetch_item("artist", artist_id, CacheTTL.ARTIST)

    async def get_new_releases(self, limit: int = 20) -> List[Album]:
        return await self._fetch(
            "browse/new-releases",
            {"limit": limit},
            cache_key="new_releases",
            ttl=CacheTTL.NEW_RELEASES,
            convert=lambda body: unpack_listing(body, "albums", "album"),
        )

    async def get_featured_playlists(self, limit: int = 20) -> List[Playlist]:
        return await self._fetch(
            "browse/featured-playlists",
            {"limit": limit},
            cache_key="featured_playlists",
            ttl=CacheTTL.FEATURED_PLAYLISTS,
            convert=lambda body: unpack_listing(body, "playlists", "playlist"),
        )

    async def _fetch_item(self, kind: str, item_id: str, ttl: float) -> Any:
        item_id = str(item_id if item_id is not None else "").strip()
        if not item_id:
            raise CatalogAPIError(
                ErrorType.CLIENT,
                f"A {kind} id is required",
                status=400,
                code="MISSING_ID",
                retryable=False,
            )
        return await self._fetch(
            f"{kind}s/{urllib.parse.quote(item_id, safe='')}",
            {},
            cache_key=f"{kind}_{item_id}",
            ttl=ttl,
            convert=lambda body: transform(RemotePayload(kind, body)),
        )

    async def _fetch(
        self,
        path: str,
        params: Dict[str, Any],
        *,
        cache_key: str,
        ttl: float,
        convert: Callable[[Any], Any],
    ) -> Any:
        attempts = max(1, self.retry.max_retries + 1)
        last_error: Optional[CatalogAPIError] = None
        for attempt in range(1, attempts + 1):
            try:
                body = await self._request(path, params)
            except CatalogAPIError as exc:
                if not exc.retryable:
                    raise
                last_error = exc
                if attempt >= attempts:
                    break
                delay = self.backoff_delay(attempt, exc)
                logger.debug(
                    "Attempt %d/%d for %s failed (%s); retrying in %.2fs",
                    attempt,
                    attempts,
                    path,
                    exc.code,
                    delay,
                )
                await self._sleep(delay)
                continue
            result = convert(body)
            self._store_later(cache_key, body, ttl)
            return result

        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.warning(
                "Serving cached %s after %s: %s", cache_key, last_error.code, last_error.message
            )
            return convert(cached)
        logger.warning("Request for %s failed after %d attempts: %s", path, attempts, last_error.message)
        raise last_error

    def backoff_delay(self, attempt: int, error: Optional[CatalogAPIError] = None) -> float:
        if error is not None and error.type is ErrorType.RATE_LIMIT and error.retry_after is not None:
            return error.retry_after
        base = self.retry.base_delay_seconds * (self.retry.backoff_factor ** (attempt - 1))
        delay = min(base, self.retry.max_delay_seconds)
        return delay + delay * self.retry.jitter_ratio * self._rng()

    def _store_later(self, cache_key: str, body: Any, ttl: float) -> None:
        loop = asyncio.get_running_loop()
        loop.call_soon(self.cache.set, cache_key, body, ttl)

    async def _request(self, path: str, params: Dict[str, Any]) -> Any:
        loop = asyncio.get_running_loop()
        headers = {"Accept": "application/json"}
        if not self.providers.use_proxy:
            token = await loop.run_in_executor(None, self.credentials.get)
            headers["Authorization"] = f"Bearer {token}"
        query = dict(params)
        query.setdefault("market", self.providers.market)
        url = f"{self.providers.base_url}{path}?{urllib.parse.urlencode(query)}"
        call = functools.partial(self.transport.request, "GET", url, headers)
        try:
            response = await loop.run_in_executor(None, call)
        except (OSError, http.client.HTTPException) as exc:
            raise coerce_error(exc, url=url) from exc
        if response.status >= 400:
            if response.status == 401:
                self.credentials.clear()
            raise self._classify(response)
        try:
            return response.json()
        except ValueError as exc:
            raise data_error(f"Malformed JSON from {path}: {exc}", url=url) from exc

    @staticmethod
    def _classify(response: HttpResponse) -> CatalogAPIError:
        message = f"HTTP {response.status}"
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            detail = body.get("error")
            if isinstance(detail, dict) and detail.get("message"):
                message = str(detail["message"])
            elif isinstance(detail, str):
                message = detail
        retry_after = None
        header = response.header("retry-after")
        if header:
            try:
                retry_after = float(header)
            except ValueError:
                retry_after = None
        return http_error(
            response.status,
            message,
            retry_after=retry_after,
            context={"url": response.url},
        )
