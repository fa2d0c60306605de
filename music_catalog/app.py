from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .cache import MemoryStorage, ResponseCache, SqliteStorage, StorageAdapter
from .config import Settings
from .local_catalog import LocalCatalog
from .providers.spotify import RemoteClient
from .source import SourceSelector

logger = logging.getLogger(__name__)


@dataclass
class CatalogApp:
    settings: Settings
    storage: Optional[StorageAdapter]
    cache: ResponseCache
    local: LocalCatalog
    selector: SourceSelector

    @classmethod
    def create(cls, settings: Settings) -> "CatalogApp":
        storage: Optional[StorageAdapter] = None
        if settings.cache.enabled:
            if settings.cache.path is not None:
                storage = SqliteStorage(settings.cache.path, max_bytes=settings.cache.max_bytes)
            else:
                storage = MemoryStorage(capacity=settings.cache.max_bytes)
        cache = ResponseCache(
            storage,
            enabled=settings.cache.enabled,
            prefix=settings.cache.prefix,
            version=settings.cache.version,
        )
        local = LocalCatalog()

        def remote_factory(current: Settings) -> RemoteClient:
            return RemoteClient(current, cache)

        selector = SourceSelector(settings, local=local, remote_factory=remote_factory)
        if selector.uses_local_catalog():
            logger.info("No catalog credentials or proxy configured; serving the local catalog")
        return cls(settings=settings, storage=storage, cache=cache, local=local, selector=selector)

    def close(self) -> None:
        if self.storage is not None:
            self.storage.close()
