"""Mapping from remote catalog JSON into domain objects."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from ..errors import CatalogAPIError, data_error
from ..models import Album, Artist, Playlist, Track

logger = logging.getLogger(__name__)

Domain = Union[Track, Album, Artist, Playlist]

KINDS = ("track", "album", "artist", "playlist")


@dataclass(slots=True, frozen=True)
class RemotePayload:
    kind: str
    body: Dict[str, Any]


def _first_image(images: Optional[List[Dict[str, Any]]]) -> str:
    if not images:
        return ""
    return images[0].get("url") or ""


def _artist_names(artists: Optional[List[Dict[str, Any]]]) -> List[str]:
    return [artist["name"] for artist in artists or [] if artist and artist.get("name")]


def _year(release_date: Optional[str]) -> Optional[int]:
    if not release_date or len(release_date) < 4 or not release_date[:4].isdigit():
        return None
    return int(release_date[:4])


def transform_track(body: Dict[str, Any]) -> Track:
    album = body.get("album") or {}
    names = _artist_names(body.get("artists"))
    image = _first_image(album.get("images"))
    return Track(
        id=body["id"],
        external_id=body["id"],
        name=body.get("name"),
        title=body.get("name"),
        original_title=body.get("name"),
        artist=names[0] if names else None,
        album=album.get("name"),
        release_year=_year(album.get("release_date")),
        overview=", ".join(names),
        image_url=image,
        backdrop_url=image,
        preview_url=body.get("preview_url"),
        duration_ms=body.get("duration_ms") or 0,
        popularity=body.get("popularity"),
        external_urls=dict(body.get("external_urls") or {}),
    )


def transform_album(body: Dict[str, Any]) -> Album:
    return Album(
        id=str(body["id"]),
        title=body.get("name") or "",
        artists=_artist_names(body.get("artists")),
        release_date=body.get("release_date"),
        total_tracks=int(body.get("total_tracks") or 0),
        image_url=_first_image(body.get("images")),
        album_type=body.get("album_type"),
        popularity=body.get("popularity"),
        external_urls=dict(body.get("external_urls") or {}),
    )


def transform_artist(body: Dict[str, Any]) -> Artist:
    followers = body.get("followers") or {}
    return Artist(
        id=str(body["id"]),
        name=body.get("name") or "",
        image_url=_first_image(body.get("images")),
        genres=list(body.get("genres") or []),
        followers=followers.get("total"),
        popularity=body.get("popularity"),
        external_urls=dict(body.get("external_urls") or {}),
    )


def transform_playlist(body: Dict[str, Any]) -> Playlist:
    owner = body.get("owner") or {}
    tracks = body.get("tracks") or {}
    return Playlist(
        id=str(body["id"]),
        name=body.get("name") or "",
        description=body.get("description") or "",
        owner=owner.get("display_name") or owner.get("id"),
        image_url=_first_image(body.get("images")),
        total_tracks=int(tracks.get("total") or 0),
    )


TRANSFORMERS: Dict[str, Callable[[Dict[str, Any]], Domain]] = {
    "track": transform_track,
    "album": transform_album,
    "artist": transform_artist,
    "playlist": transform_playlist,
}


def transform(payload: RemotePayload) -> Domain:
    transformer = TRANSFORMERS.get(payload.kind)
    if transformer is None:
        raise data_error(f"Unsupported payload kind {payload.kind!r}", kind=payload.kind)
    try:
        return transformer(payload.body)
    except CatalogAPIError:
        raise
    except (KeyError, TypeError, ValueError, AttributeError, IndexError) as exc:
        logger.warning("Failed to transform %s payload: %s", payload.kind, exc)
        raise data_error(
            f"Failed to transform {payload.kind} payload: {exc!r}", kind=payload.kind
        ) from exc


def transform_items(kind: str, items: Optional[List[Any]]) -> List[Domain]:
    # Search pages can contain null placeholders.
    return [transform(RemotePayload(kind, item)) for item in items or [] if item]


def unpack_search(body: Any, kind: str) -> List[Domain]:
    section = f"{kind}s"
    try:
        items = body[section]["items"]
    except (KeyError, TypeError) as exc:
        raise data_error(f"Search response has no {section} section", kind=kind) from exc
    return transform_items(kind, items)


def unpack_listing(body: Any, section: str, kind: str) -> List[Domain]:
    try:
        items = body[section]["items"]
    except (KeyError, TypeError) as exc:
        raise data_error(f"Listing response has no {section} section", kind=kind) from exc
    return transform_items(kind, items)


def as_track(item: Domain) -> Optional[Track]:
    if isinstance(item, Track):
        return item
    if isinstance(item, (Album, Artist)):
        return item.as_track()
    return None
