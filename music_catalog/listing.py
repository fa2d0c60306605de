"""
Post-processing for remote bucketed listings.

Stages run in a fixed order (dedupe, ambient filter, popularity sort,
diversity caps, popularity floor) and each one keeps the relative order of
what it lets through. Local catalog buckets never go through here.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .models import Track

logger = logging.getLogger(__name__)

AMBIENT_PATTERN = re.compile(
    r"sleep|white noise|rain|nature sounds|meditation|relax|ambient|loopable|asmr"
    r"|calm|peaceful|gentle|soothing",
    re.IGNORECASE,
)
LOW_QUALITY_WARN_SHARE = 0.2


@dataclass(slots=True, frozen=True)
class ListingPolicy:
    min_popularity: int = 75
    max_per_artist: int = 1
    max_per_album: int = 2


DEFAULT_POLICY = ListingPolicy()


@dataclass(slots=True)
class ListingAudit:
    input_count: int = 0
    duplicates_removed: int = 0
    ambient_removed: int = 0
    diversity_removed: int = 0
    below_floor_removed: int = 0
    output_count: int = 0
    low_quality_share: float = 0.0
    average_popularity: float = 0.0
    repeated_artists: Dict[str, int] = field(default_factory=dict)


@dataclass(slots=True)
class ListingResult:
    tracks: List[Track]
    audit: ListingAudit


def _norm(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def dedupe(tracks: Iterable[Track]) -> List[Track]:
    seen = set()
    unique: List[Track] = []
    for track in tracks:
        key = (_norm(track.title), _norm(track.artist))
        if key in seen:
            continue
        seen.add(key)
        unique.append(track)
    return unique


def is_ambient(track: Track) -> bool:
    return bool(AMBIENT_PATTERN.search(track.title or ""))


def sort_by_popularity(tracks: Iterable[Track]) -> List[Track]:
    return sorted(tracks, key=lambda track: -track.popularity_score)


def enforce_diversity(tracks: Iterable[Track], policy: ListingPolicy = DEFAULT_POLICY) -> List[Track]:
    per_artist: Counter = Counter()
    per_album: Counter = Counter()
    kept: List[Track] = []
    for track in tracks:
        artist = _norm(track.artist)
        if not artist:
            continue
        if per_artist[artist] >= policy.max_per_artist:
            continue
        album = _norm(track.album)
        if album and per_album[album] >= policy.max_per_album:
            continue
        per_artist[artist] += 1
        if album:
            per_album[album] += 1
        kept.append(track)
    return kept


def process_listing(
    tracks: Iterable[Track],
    policy: ListingPolicy = DEFAULT_POLICY,
    label: str = "listing",
) -> ListingResult:
    items = list(tracks)
    audit = ListingAudit(input_count=len(items))

    unique = dedupe(items)
    audit.duplicates_removed = len(items) - len(unique)

    musical = [track for track in unique if not is_ambient(track)]
    audit.ambient_removed = len(unique) - len(musical)

    ordered = sort_by_popularity(musical)
    diverse = enforce_diversity(ordered, policy)
    audit.diversity_removed = len(ordered) - len(diverse)

    below = [track for track in diverse if track.popularity_score < policy.min_popularity]
    if diverse:
        audit.low_quality_share = len(below) / len(diverse)
    final = [track for track in diverse if track.popularity_score >= policy.min_popularity]
    audit.below_floor_removed = len(diverse) - len(final)
    audit.output_count = len(final)

    _audit(final, audit, label, policy)
    return ListingResult(tracks=final, audit=audit)


def _audit(tracks: List[Track], audit: ListingAudit, label: str, policy: ListingPolicy) -> None:
    counts = Counter(_norm(track.artist) for track in tracks if track.artist)
    audit.repeated_artists = {artist: count for artist, count in counts.items() if count > 1}
    if tracks:
        audit.average_popularity = sum(track.popularity_score for track in tracks) / len(tracks)

    if audit.low_quality_share > LOW_QUALITY_WARN_SHARE:
        logger.warning(
            "%s: %.0f%% of diversified items fell below popularity %d",
            label,
            audit.low_quality_share * 100,
            policy.min_popularity,
        )
    if audit.repeated_artists:
        logger.warning("%s: repeated artists %s", label, audit.repeated_artists)
    logger.info(
        "%s: %d -> %d items (dupes=%d ambient=%d diversity=%d floor=%d) avg popularity %.1f",
        label,
        audit.input_count,
        audit.output_count,
        audit.duplicates_removed,
        audit.ambient_removed,
        audit.diversity_removed,
        audit.below_floor_removed,
        audit.average_popularity,
    )
