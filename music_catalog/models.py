from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

UNKNOWN_TRACK = "Unknown Track"
UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_ALBUM = "Unknown Album"


@dataclass(slots=True)
class Track:
    id: str
    name: Optional[str] = None
    title: Optional[str] = None
    original_title: Optional[str] = None
    external_id: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None
    genre: Optional[str] = None
    release_year: Optional[int] = None
    overview: Optional[str] = None
    image_url: str = ""
    backdrop_url: str = ""
    preview_url: Optional[str] = None
    duration_ms: int = 0
    popularity: Optional[int] = None
    external_urls: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.id = str(self.id)
        self.title = resolve_title(self.title, self.name, self.original_title)
        self.duration_ms = max(0, _parse_int(self.duration_ms) or 0)
        if self.popularity is not None:
            parsed = _parse_int(self.popularity)
            self.popularity = None if parsed is None else min(100, max(0, parsed))
        if self.release_year is not None:
            self.release_year = _parse_int(self.release_year)

    @property
    def popularity_score(self) -> int:
        return self.popularity or 0

    def to_record(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "external_id": self.external_id,
            "title": self.title,
            "name": self.name,
            "original_title": self.original_title,
            "artist": self.artist,
            "album": self.album,
            "genre": self.genre,
            "release_year": self.release_year,
            "overview": self.overview,
            "image_url": self.image_url,
            "backdrop_url": self.backdrop_url,
            "preview_url": self.preview_url,
            "duration_ms": self.duration_ms,
            "popularity": self.popularity,
            "external_urls": dict(self.external_urls),
        }


@dataclass(slots=True)
class Album:
    id: str
    title: str
    artists: List[str] = field(default_factory=list)
    release_date: Optional[str] = None
    total_tracks: int = 0
    image_url: str = ""
    album_type: Optional[str] = None
    popularity: Optional[int] = None
    external_urls: Dict[str, str] = field(default_factory=dict)

    @property
    def overview(self) -> str:
        kind = (self.album_type or "album").capitalize()
        return f"{kind} by {', '.join(self.artists)}"

    @property
    def release_year(self) -> Optional[int]:
        if not self.release_date:
            return None
        return _parse_int(self.release_date[:4])

    def as_track(self) -> Track:
        return Track(
            id=self.id,
            external_id=self.id,
            name=self.title,
            title=self.title,
            original_title=self.title,
            artist=self.artists[0] if self.artists else "",
            album=self.title,
            release_year=self.release_year,
            overview=self.overview,
            image_url=self.image_url,
            backdrop_url=self.image_url,
            duration_ms=0,
            popularity=self.popularity,
            external_urls=dict(self.external_urls),
        )

    def to_record(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "artists": list(self.artists),
            "release_date": self.release_date,
            "total_tracks": self.total_tracks,
            "image_url": self.image_url,
            "album_type": self.album_type,
            "popularity": self.popularity,
        }


@dataclass(slots=True)
class Artist:
    id: str
    name: str
    image_url: str = ""
    genres: List[str] = field(default_factory=list)
    followers: Optional[int] = None
    popularity: Optional[int] = None
    external_urls: Dict[str, str] = field(default_factory=dict)

    def as_track(self) -> Track:
        return Track(
            id=self.id,
            external_id=self.id,
            name=self.name,
            title=self.name,
            original_title=self.name,
            artist=self.name,
            album="",
            genre=self.genres[0] if self.genres else None,
            overview=", ".join(self.genres) or "Artist",
            image_url=self.image_url,
            backdrop_url=self.image_url,
            popularity=self.popularity,
            external_urls=dict(self.external_urls),
        )

    def to_record(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "image_url": self.image_url,
            "genres": list(self.genres),
            "followers": self.followers,
            "popularity": self.popularity,
        }


@dataclass(slots=True)
class Playlist:
    id: str
    name: str
    description: str = ""
    owner: Optional[str] = None
    image_url: str = ""
    total_tracks: int = 0

    def to_record(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "owner": self.owner,
            "image_url": self.image_url,
            "total_tracks": self.total_tracks,
        }


@dataclass(slots=True)
class ResponseEnvelope:
    """Uniform result shape handed to UI consumers regardless of data source."""

    data: Any = None
    is_loading: bool = False
    is_fetching: bool = False
    is_error: bool = False
    error: Optional[Exception] = None

    @classmethod
    def success(cls, data: Any) -> "ResponseEnvelope":
        return cls(data=data)

    @classmethod
    def failure(cls, error: Exception) -> "ResponseEnvelope":
        return cls(data=None, is_error=True, error=error)

    @classmethod
    def pending(cls) -> "ResponseEnvelope":
        return cls(data=None, is_loading=True, is_fetching=True)

    @property
    def results(self) -> List[Track]:
        if isinstance(self.data, dict):
            return list(self.data.get("results") or [])
        return []


@dataclass(slots=True)
class SearchResult:
    id: str
    type: str
    title: str
    subtitle: str
    data: Any = None
    image: Optional[str] = None
    action: Optional[Callable[[], None]] = None
    is_exact_match: bool = False

    @classmethod
    def from_track(cls, track: Track, is_exact_match: bool = False) -> "SearchResult":
        return cls(
            id=track.external_id or track.id,
            type="track",
            title=track.title or UNKNOWN_TRACK,
            subtitle=f"{track.artist or UNKNOWN_ARTIST} • {track.album or UNKNOWN_ALBUM}",
            image=track.image_url or None,
            data=track,
            is_exact_match=is_exact_match,
        )


def resolve_title(*candidates: Optional[str]) -> str:
    for value in candidates:
        if isinstance(value, str) and value.strip():
            return value
    return UNKNOWN_TRACK


def _parse_int(value: object) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        cleaned = value.strip()
        if cleaned.lstrip("-").isdigit():
            return int(cleaned)
        return None
    return None
