"""
Relevance ranking for free-text queries over in-memory tracks.

The scoring tiers intentionally overlap (an exact-match value is re-counted
as substring credit for non-exact items, terms are credited per field and
again as partial words). Keep the weights and their order stable: search
results shown by clients depend on this exact ordering.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from .models import Track

logger = logging.getLogger(__name__)

INTERACTIVE_LIMIT = 8

YEAR_PATTERN = re.compile(r"\b(19|20)\d{2}\b")

EXACT_TITLE = 100
EXACT_ARTIST = 90
EXACT_ALBUM = 80
EXACT_GENRE = 70
YEAR_BOOST = 85
GENRE_FAMILY_BOOST = 75
TERM_TITLE = 50
TERM_ORIGINAL_TITLE = 45
TERM_ARTIST = 40
TERM_ALBUM = 30
TERM_GENRE = 35
TERM_OVERVIEW = 15
TERM_YEAR = 25
PARTIAL_WORD = 20
PARTIAL_WORD_MIN_LENGTH = 3
POPULAR_BOOST = 10
VERY_POPULAR_BOOST = 5

GENRE_FAMILIES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("pop", ("pop", "alternative pop", "dance pop", "synthpop")),
    ("rock", ("rock", "pop rock", "alternative rock", "classic rock")),
    ("hip hop", ("hip hop", "hip-hop", "rap", "latin trap")),
    ("r&b", ("r&b", "rnb", "soul")),
    ("electronic", ("electronic", "dance", "edm", "synthpop")),
    ("country", ("country",)),
    ("indie", ("indie", "indie folk", "indie rock")),
    ("folk", ("folk", "indie folk")),
    ("punk", ("punk", "pop punk")),
    ("garage", ("garage", "uk garage")),
    ("k-pop", ("k-pop", "kpop")),
    ("latin", ("latin", "latin trap")),
)


@dataclass(slots=True)
class ScoredTrack:
    item: Track
    score: int
    is_exact_match: bool = False


@dataclass(slots=True)
class _TrackText:
    name: str
    title: str
    original_title: str
    artist: str
    album: str
    overview: str
    genre: str
    year: str

    @classmethod
    def of(cls, track: Track) -> "_TrackText":
        def low(value: Optional[str]) -> str:
            return value.lower() if isinstance(value, str) else ""

        return cls(
            name=low(track.name),
            title=low(track.title),
            original_title=low(track.original_title),
            artist=low(track.artist),
            album=low(track.album),
            overview=low(track.overview),
            genre=low(track.genre),
            year=str(track.release_year) if track.release_year is not None else "",
        )


def normalize_query(query: Optional[str]) -> str:
    return (query or "").lower().strip()


def detect_year(query: str) -> Optional[int]:
    match = YEAR_PATTERN.search(query)
    return int(match.group(0)) if match else None


def score_track(track: Track, query: str, year: Optional[int] = None) -> ScoredTrack:
    """Score one track against an already normalized query."""
    text = _TrackText.of(track)
    terms = query.split()
    score = 0
    exact = False

    if query in (text.name, text.title, text.original_title):
        exact = True
        score += EXACT_TITLE
    elif text.artist == query:
        exact = True
        score += EXACT_ARTIST
    elif text.album == query:
        exact = True
        score += EXACT_ALBUM
    elif text.genre == query:
        exact = True
        score += EXACT_GENRE

    if not exact:
        if query in text.name or query in text.title:
            score += EXACT_TITLE
        if query in text.artist:
            score += EXACT_ARTIST
        if query in text.album:
            score += EXACT_ALBUM
        if query in text.genre:
            score += EXACT_GENRE

    if year is not None and track.release_year == year:
        score += YEAR_BOOST

    for family, aliases in GENRE_FAMILIES:
        if family in query and any(alias in text.genre for alias in aliases):
            score += GENRE_FAMILY_BOOST
            break

    if not exact:
        for term in terms:
            if term in text.name or term in text.title:
                score += TERM_TITLE
            if term in text.original_title:
                score += TERM_ORIGINAL_TITLE
            if term in text.artist:
                score += TERM_ARTIST
            if term in text.album:
                score += TERM_ALBUM
            if term in text.genre:
                score += TERM_GENRE
            if term in text.overview:
                score += TERM_OVERVIEW
            if term in text.year:
                score += TERM_YEAR
        for term in terms:
            if len(term) < PARTIAL_WORD_MIN_LENGTH:
                continue
            if term in text.name or term in text.title or term in text.artist:
                score += PARTIAL_WORD
        popularity = track.popularity_score
        if popularity > 85:
            score += POPULAR_BOOST
        if popularity > 90:
            score += VERY_POPULAR_BOOST

    return ScoredTrack(item=track, score=score, is_exact_match=exact)


def rank(
    tracks: Sequence[Track],
    query: Optional[str],
    limit: Optional[int] = None,
) -> List[ScoredTrack]:
    normalized = normalize_query(query)
    if not normalized or not tracks:
        return []
    year = detect_year(normalized)
    scored = [score_track(track, normalized, year) for track in tracks]
    kept = [entry for entry in scored if entry.score > 0]
    # sorted() is stable, so equal keys keep input order.
    ordered = sorted(kept, key=lambda entry: (not entry.is_exact_match, -entry.score))
    if limit is not None:
        ordered = ordered[: max(0, limit)]
    logger.debug(
        "Ranked %d/%d candidates for %r (year=%s)", len(ordered), len(tracks), normalized, year
    )
    return ordered


def rank_tracks(
    tracks: Iterable[Track], query: Optional[str], limit: Optional[int] = None
) -> List[Track]:
    return [entry.item for entry in rank(list(tracks), query, limit)]
