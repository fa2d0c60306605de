from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "MUSIC_CATALOG_"

_TRUE_VALUES = {"1", "true", "yes", "on"}


class ProviderSettings(BaseModel):
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    use_proxy: bool = False
    api_base_url: str = "https://api.spotify.com/v1/"
    proxy_base_url: str = "http://localhost:3001/api/spotify/"
    token_url: Optional[str] = None
    market: str = "US"
    timeout_seconds: float = 10.0
    useragent: str = "music-catalog/0.1 +https://example.com"

    @field_validator("api_base_url", "proxy_base_url", mode="after")
    @classmethod
    def _trailing_slash(cls, value: str) -> str:
        return value if value.endswith("/") else value + "/"

    @property
    def has_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)

    @property
    def base_url(self) -> str:
        return self.proxy_base_url if self.use_proxy else self.api_base_url


class RetrySettings(BaseModel):
    max_retries: int = 3
    base_delay_seconds: float = 1.0
    backoff_factor: float = 2.0
    max_delay_seconds: float = 10.0
    jitter_ratio: float = 0.1


class CacheSettings(BaseModel):
    enabled: bool = True
    path: Optional[Path] = Path("./cache/offline.sqlite3")
    prefix: str = "music_catalog_cache_"
    version: str = "v1"
    max_bytes: Optional[int] = None

    @field_validator("path", mode="before")
    @classmethod
    def _expand_path(cls, value: Optional[str | Path]) -> Optional[Path]:
        if value is None or value == "":
            return None
        return Path(value).expanduser().resolve()


class ListingSettings(BaseModel):
    years: List[int] = Field(default_factory=lambda: [2024, 2025])
    query_limit: int = 50
    search_limit: int = 20
    similar_limit: int = 10
    min_popularity: int = 75
    max_per_artist: int = 1
    max_per_album: int = 2


class Settings(BaseModel):
    providers: ProviderSettings = Field(default_factory=ProviderSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    listing: ListingSettings = Field(default_factory=ListingSettings)

    @classmethod
    def load(cls, path: Path, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
        _apply_env_overrides(raw, os.environ if environ is None else environ)
        return cls.model_validate(raw)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        raw: Dict[str, Any] = {}
        _apply_env_overrides(raw, os.environ if environ is None else environ)
        return cls.model_validate(raw)


def _apply_env_overrides(raw: Dict[str, Any], environ: Mapping[str, str]) -> None:
    providers = raw.setdefault("providers", {}) or {}
    cache = raw.setdefault("cache", {}) or {}
    raw["providers"] = providers
    raw["cache"] = cache

    def env(name: str) -> Optional[str]:
        value = environ.get(ENV_PREFIX + name)
        if value is None or not value.strip():
            return None
        return value.strip()

    if env("CLIENT_ID") is not None:
        providers["client_id"] = env("CLIENT_ID")
    if env("CLIENT_SECRET") is not None:
        providers["client_secret"] = env("CLIENT_SECRET")
    if env("USE_PROXY") is not None:
        providers["use_proxy"] = env("USE_PROXY").lower() in _TRUE_VALUES
    if env("PROXY_URL") is not None:
        providers["proxy_base_url"] = env("PROXY_URL")
    if env("TOKEN_URL") is not None:
        providers["token_url"] = env("TOKEN_URL")
    if env("ENABLE_OFFLINE_CACHE") is not None:
        cache["enabled"] = env("ENABLE_OFFLINE_CACHE").lower() in _TRUE_VALUES
    if env("CACHE_PATH") is not None:
        cache["path"] = env("CACHE_PATH")


def find_config(explicit_path: Optional[Path]) -> Optional[Path]:
    if explicit_path:
        return explicit_path
    cwd = Path.cwd()
    for candidate in (cwd / "config.yaml", cwd / "config.yml"):
        if candidate.exists():
            return candidate
    return None


def load_settings(explicit_path: Optional[Path] = None) -> Settings:
    path = find_config(explicit_path)
    if path is None:
        return Settings.from_env()
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    return Settings.load(path)
