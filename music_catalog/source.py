from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Dict, List, Optional, Union

from .config import Settings
from .errors import CatalogAPIError, ErrorType
from .listing import ListingPolicy, process_listing
from .local_catalog import LocalCatalog
from .models import ResponseEnvelope, SearchResult, Track
from .providers.spotify import RemoteClient
from .providers.transform import as_track
from .ranking import INTERACTIVE_LIMIT, rank, rank_tracks

logger = logging.getLogger(__name__)

INVALID_IDS = frozenset({"", "undefined", "null"})
SIMILAR_QUERY = "recommended"

SettingsSource = Callable[[], Settings]
RemoteFactory = Callable[[Settings], RemoteClient]


@dataclass(slots=True, frozen=True)
class ContentStrategy:
    kind: str
    label: str


CONTENT_STRATEGIES: Dict[str, ContentStrategy] = {
    "tracks-latest": ContentStrategy("track", "latest hits"),
    "tracks-popular": ContentStrategy("track", "popular tracks"),
    "tracks-throwback": ContentStrategy("track", "throwback hits"),
    "tracks-classic": ContentStrategy("track", "classic hits"),
    "tracks-rnb-classic": ContentStrategy("track", "r&b classics"),
    "tracks-chill": ContentStrategy("track", "chill tracks"),
    "albums-new_releases": ContentStrategy("album", "new album releases"),
    "albums-popular": ContentStrategy("album", "popular albums"),
    "albums-classic": ContentStrategy("album", "classic albums"),
    "albums-indie": ContentStrategy("album", "independent albums"),
    "playlists-toplists": ContentStrategy("track", "top lists"),
}

_SEARCH_KINDS = {"tracks": "track", "albums": "album", "artists": "artist"}


class SourceSelector:
    """
    Single entry point for track listings, searches and lookups.

    The local catalog serves every call while neither a client id/secret
    pair nor the proxy is configured. The choice is re-made on each call.
    """

    def __init__(
        self,
        settings_source: Union[Settings, SettingsSource],
        local: Optional[LocalCatalog] = None,
        remote_factory: Optional[RemoteFactory] = None,
    ) -> None:
        if isinstance(settings_source, Settings):
            fixed = settings_source

            def settings_source() -> Settings:
                return fixed

        self._settings_source = settings_source
        self.local = local or LocalCatalog()
        self._remote_factory = remote_factory
        self._remote: Optional[RemoteClient] = None
        self._remote_key: Optional[object] = None

    def settings(self) -> Settings:
        return self._settings_source()

    def uses_local_catalog(self, settings: Optional[Settings] = None) -> bool:
        providers = (settings or self.settings()).providers
        return not providers.has_credentials and not providers.use_proxy

    def remote(self, settings: Optional[Settings] = None) -> RemoteClient:
        settings = settings or self.settings()
        key = settings.providers.model_dump_json()
        if self._remote is None or key != self._remote_key:
            if self._remote_factory is None:
                raise CatalogAPIError(
                    ErrorType.AUTH,
                    "No remote client configured",
                    status=500,
                    code="MISSING_CREDENTIALS",
                    retryable=False,
                )
            self._remote = self._remote_factory(settings)
            self._remote_key = key
        return self._remote

    async def get_tracks(
        self,
        category: Optional[str],
        type_: Optional[str] = None,
        search_query: Optional[str] = None,
        show_similar: bool = False,
    ) -> ResponseEnvelope:
        settings = self.settings()
        query = (search_query or "").strip()
        if self.uses_local_catalog(settings):
            return self._local_tracks(settings, category, type_, query, show_similar)
        try:
            results = await self._remote_tracks(settings, category, type_, query, show_similar)
        except CatalogAPIError as exc:
            logger.warning("Remote listing for %s-%s failed: %s", category, type_, exc.code)
            return ResponseEnvelope.failure(exc)
        return ResponseEnvelope.success({"results": results})

    def _local_tracks(
        self,
        settings: Settings,
        category: Optional[str],
        type_: Optional[str],
        query: str,
        show_similar: bool,
    ) -> ResponseEnvelope:
        if query:
            results = rank_tracks(self.local.all_tracks(), query)
            logger.debug("Local search for %r matched %d tracks", query, len(results))
            return ResponseEnvelope.success({"results": results})
        if show_similar:
            return ResponseEnvelope.success(
                {"results": self.local.popular[: settings.listing.similar_limit]}
            )
        return ResponseEnvelope.success(self.local.get_bucket(category or "tracks", type_ or "popular"))

    async def _remote_tracks(
        self,
        settings: Settings,
        category: Optional[str],
        type_: Optional[str],
        query: str,
        show_similar: bool,
    ) -> List[Track]:
        remote = self.remote(settings)
        listing = settings.listing
        if query:
            kind = _SEARCH_KINDS.get(category or "", "track")
            items = await remote.search(query, kind, limit=listing.search_limit)
            return _tracks(items)
        if show_similar:
            items = await remote.search(SIMILAR_QUERY, "track", limit=listing.similar_limit)
            return _tracks(items)

        key = f"{category}-{type_}"
        strategy = CONTENT_STRATEGIES.get(key)
        if strategy is None:
            logger.debug("No content strategy for %s", key)
            return []
        pages = await asyncio.gather(
            *(
                remote.search(f"year:{year}", strategy.kind, limit=listing.query_limit)
                for year in listing.years
            )
        )
        combined: List[Track] = []
        for page in pages:
            combined.extend(_tracks(page))
        result = process_listing(combined, self.policy_for(strategy, settings), label=key)
        return result.tracks

    @staticmethod
    def policy_for(strategy: ContentStrategy, settings: Settings) -> ListingPolicy:
        listing = settings.listing
        # Album search results carry no popularity, so the floor would empty them.
        floor = 0 if strategy.kind == "album" else listing.min_popularity
        return ListingPolicy(
            min_popularity=floor,
            max_per_artist=listing.max_per_artist,
            max_per_album=listing.max_per_album,
        )

    async def get_track(self, category: Optional[str], track_id: Union[str, int, None]) -> ResponseEnvelope:
        item_id = "" if track_id is None else str(track_id).strip()
        if item_id in INVALID_IDS:
            return ResponseEnvelope.failure(
                CatalogAPIError(
                    ErrorType.CLIENT,
                    "Invalid ID provided",
                    status=400,
                    code="INVALID_ID",
                    retryable=False,
                    context={"id": track_id},
                )
            )
        settings = self.settings()
        if self.uses_local_catalog(settings):
            track = self.local.find_by_id(item_id)
            if track is None:
                return ResponseEnvelope.failure(_not_found(item_id, "Track not found in local catalog"))
            return ResponseEnvelope.success(track)
        try:
            track = await self._remote_track(settings, category, item_id)
        except CatalogAPIError as exc:
            logger.warning("Remote lookup for %s %s failed: %s", category, item_id, exc.code)
            return ResponseEnvelope.failure(exc)
        return ResponseEnvelope.success(track)

    async def _remote_track(self, settings: Settings, category: Optional[str], item_id: str) -> Track:
        remote = self.remote(settings)
        if category == "tracks":
            return await remote.get_track(item_id)
        if category == "albums":
            album = await remote.get_album(item_id)
            return album.as_track()
        if category == "artists":
            artist = await remote.get_artist(item_id)
            return artist.as_track()
        items = await remote.search(item_id, "track", limit=settings.listing.query_limit)
        for track in _tracks(items):
            if track.id == item_id:
                return track
        raise _not_found(item_id, "Track not found")

    async def stream_tracks(
        self,
        category: Optional[str],
        type_: Optional[str] = None,
        search_query: Optional[str] = None,
        show_similar: bool = False,
    ) -> AsyncIterator[ResponseEnvelope]:
        """Yield a loading envelope before remote work, then the result."""
        if not self.uses_local_catalog():
            yield ResponseEnvelope.pending()
        yield await self.get_tracks(category, type_, search_query, show_similar)

    async def palette_search(self, query: Optional[str], limit: int = INTERACTIVE_LIMIT) -> List[SearchResult]:
        query = (query or "").strip()
        if not query:
            return []
        settings = self.settings()
        if self.uses_local_catalog(settings):
            results = [
                SearchResult.from_track(entry.item, entry.is_exact_match)
                for entry in rank(self.local.all_tracks(), query, limit)
            ]
        else:
            items = await self.remote(settings).search(query, "track", limit=limit)
            results = [SearchResult.from_track(track) for track in _tracks(items)]
        exact = [result for result in results if result.is_exact_match]
        rest = [result for result in results if not result.is_exact_match]
        return exact + rest


def _tracks(items) -> List[Track]:
    tracks = []
    for item in items:
        track = as_track(item)
        if track is not None:
            tracks.append(track)
    return tracks


def _not_found(item_id: str, message: str) -> CatalogAPIError:
    return CatalogAPIError(
        ErrorType.NOT_FOUND,
        message,
        status=404,
        code="NOT_FOUND",
        retryable=False,
        context={"id": item_id},
    )
