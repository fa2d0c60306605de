from __future__ import annotations

import logging
from typing import Dict, List, Optional

from .models import Track

logger = logging.getLogger(__name__)

DEFAULT_BUCKET_LIMIT = 20
_IMAGE_BASE = "https://i.scdn.co/image/"


def _track(
    track_id: str,
    image: str,
    title: str,
    artist: str,
    album: str,
    overview: str,
    duration_ms: int,
    popularity: int,
    genre: str,
    year: int,
) -> Track:
    url = _IMAGE_BASE + image
    return Track(
        id=track_id,
        external_id=track_id,
        name=title,
        title=title,
        original_title=title,
        artist=artist,
        album=album,
        genre=genre,
        release_year=year,
        overview=overview,
        image_url=url,
        backdrop_url=url,
        preview_url=None,
        duration_ms=duration_ms,
        popularity=popularity,
        external_urls={"spotify": f"https://open.spotify.com/track/{track_id}"},
    )


# No artist appears twice within a bucket.
LATEST_HITS: List[Track] = [
    _track(
        "2plbrEY59IikOBgBGLjaoe", "ab67616d0000b2734bac5946590406d6ffb7ed6a",
        "Die With A Smile", "Bruno Mars, Lady Gaga", "Die With A Smile",
        "Bruno Mars & Lady Gaga - Most-shared song on social media 2024",
        251000, 93, "Pop", 2024,
    ),
    _track(
        "1Qrg8KqiBpW07V7PNxwwwL", "ab67616d0000b2730c471c36970b9406233842a5",
        "Kill Bill", "SZA", "SOS",
        "SZA - R&B chart dominator from SOS album",
        153000, 92, "R&B", 2022,
    ),
    _track(
        "4ZtFanR9U6ndgddUvNcjcG", "ab67616d0000b273a91c10fe9472d9bd89802e5a",
        "good 4 u", "Olivia Rodrigo", "SOUR",
        "Olivia Rodrigo - Pop-punk anthem from SOUR",
        178000, 91, "Pop Punk", 2021,
    ),
    _track(
        "39LLxExYz6ewLAcYrzQQyP", "ab67616d0000b2734bc66095f8a70bc4e6593f4f",
        "Levitating", "Dua Lipa", "Future Nostalgia",
        "Dua Lipa - Disco-pop hit from Future Nostalgia",
        203000, 90, "Dance Pop", 2020,
    ),
    _track(
        "2dHHgzDwk4BJdRwy9uXhTO", "ab67616d0000b273c4fee55d7b51479627c31f89",
        "Creepin'", "Metro Boomin ft. The Weeknd & 21 Savage", "Heroes & Villains",
        "Metro Boomin, The Weeknd, 21 Savage - Dark R&B collaboration",
        221000, 89, "Hip Hop", 2022,
    ),
    _track(
        "7qiZfU4dY1lWllzX7mPBI3", "ab67616d0000b273ba5db46f4b838ef6027e6f96",
        "Shape of You", "Ed Sheeran", "÷ (Divide)",
        "Ed Sheeran - 6+ billion streams, global chart-topper",
        233000, 88, "Pop", 2017,
    ),
    _track(
        "0yLdNVWF3Srea0uzk55zFn", "ab67616d0000b273f429549123dbe8552764ba1d",
        "Flowers", "Miley Cyrus", "Endless Summer Vacation",
        "Miley Cyrus - Self-empowerment anthem, Grammy winner",
        200000, 87, "Pop", 2023,
    ),
    _track(
        "3a1lNhkSLSkpJE4MSHpDu9", "ab67616d0000b273b1c4b76e23414c9f20242268",
        "Sunflower", "Post Malone & Swae Lee", "Spider-Man: Into the Spider-Verse",
        "Post Malone & Swae Lee - Spider-Verse soundtrack phenomenon",
        158000, 86, "Hip Hop", 2018,
    ),
    _track(
        "17phhZDn6oGtzMe56NuWvj", "ab67616d0000b2731a0323cc23419360a34a3ace",
        "Lose Control", "Teddy Swims", "I've Tried Everything But Therapy (Part 1)",
        "Teddy Swims - 2+ billion streams, #1 Billboard Hot 100 hit",
        210000, 95, "Soul", 2023,
    ),
    _track(
        "3vkCueOmm7xQDoJ17W1Pm3", "ab67616d0000b27334f21d3047d85440dfa37f10",
        "My Love Mine All Mine", "Mitski", "The Land Is Inhospitable and So Are We",
        "Mitski - First Billboard Hot 100 hit, indie folk masterpiece",
        137000, 88, "Indie Folk", 2023,
    ),
    _track(
        "7K3BhSpAxZBznislvUMVtn", "ab67616d0000b273705079df9a25a28b452c1fc9",
        "Last Night", "Morgan Wallen", "One Thing At A Time",
        "Morgan Wallen - 16 weeks at #1, longest-running solo #1 in Hot 100 history",
        163000, 94, "Country", 2023,
    ),
    _track(
        "4dKa5ZzlGqUy3Wo0yaXKNI", "ab67616d0000b273f6019075623d95de7e64fa33",
        "Cupid", "FIFTY FIFTY", "The Beginning: Cupid",
        "FIFTY FIFTY - K-pop global breakthrough, Billboard Global 200 #2",
        174000, 87, "K-Pop", 2023,
    ),
    _track(
        "6Sq7ltF9oHo0f0L7Qm5IGV", "ab67616d0000b27349d694203245f241a1bcaa72",
        "Me Porto Bonito", "Bad Bunny ft. Chencho Corleone", "Un Verano Sin Ti",
        "Bad Bunny ft. Chencho Corleone - Latin trap hit from Un Verano Sin Ti",
        167000, 83, "Latin Trap", 2022,
    ),
    _track(
        "1bDbXMyjaUIooNwFE9wn0N", "ab67616d0000b2739567e1aa41657425d046733b",
        "Boy's a liar", "PinkPantheress", "Boy's a liar",
        "PinkPantheress - Viral UK breakbeat and garage-influenced track",
        132000, 82, "UK Garage", 2023,
    ),
]

POPULAR_TRACKS: List[Track] = [
    _track(
        "4u7EnebtmKWzUH433cf5Qv", "ab67616d0000b273508b4bdfc39c5b3b9fbad6de",
        "Mr. Brightside", "The Killers", "Hot Fuss",
        "The Killers - Alternative rock anthem from Hot Fuss",
        222000, 83, "Alternative Rock", 2004,
    ),
    _track(
        "60nZcImufyMA1MKQY3dcCH", "ab67616d0000b273aeb62b5d30c4b5dbd5e77f98",
        "Here Comes the Sun", "The Beatles", "Abbey Road",
        "The Beatles - Timeless classic from Abbey Road",
        185000, 81, "Classic Rock", 1969,
    ),
    _track(
        "2ye2Wgw4gimLv2eAKyk1NB", "ab67616d0000b273396b81e76c911f6e0b6d6b6e",
        "Watermelon Sugar", "Harry Styles", "Fine Line",
        "Harry Styles - Summer hit from Fine Line album",
        174000, 86, "Pop Rock", 2019,
    ),
    _track(
        "6f70bfcAe3BPKCljHvBw66", "ab67616d0000b273c9b294a88d8537e8dbc13b85",
        "Someone Like You", "Adele", "21",
        "Adele - Emotional ballad masterpiece from 21",
        285000, 84, "Soul", 2011,
    ),
    _track(
        "4uLU6hMCjMI75M1A2tKUQC", "ab67616d0000b273ba5db46f4b838ef6027e6f96",
        "Never Gonna Give You Up", "Rick Astley", "Whenever You Need Somebody",
        "Rick Astley - Iconic 80s hit and internet phenomenon",
        213000, 79, "Synthpop", 1987,
    ),
]

HERO_TRACKS: List[Track] = [*LATEST_HITS[:5], *POPULAR_TRACKS[:3]]


class LocalCatalog:
    """Static in-process catalog used when no live backend is reachable."""

    def __init__(
        self,
        latest: Optional[List[Track]] = None,
        popular: Optional[List[Track]] = None,
        hero: Optional[List[Track]] = None,
    ) -> None:
        self.latest = list(LATEST_HITS if latest is None else latest)
        self.popular = list(POPULAR_TRACKS if popular is None else popular)
        if hero is None:
            hero = [*self.latest[:5], *self.popular[:3]]
        self.hero = list(hero)
        self._buckets: Dict[str, List[Track]] = {
            "tracks-latest": self.latest,
            # The lofi section was retired; it keeps serving latest hits.
            "tracks-lofi": self.latest,
            "tracks-popular": self.popular,
            "tracks-hero": self.hero,
        }

    def get_bucket(self, category: Optional[str], type_: Optional[str]) -> Dict[str, List[Track]]:
        key = f"{category}-{type_}"
        bucket = self._buckets.get(key)
        if bucket is not None:
            return {"results": list(bucket)}
        logger.debug("No local bucket for %s; serving default mix", key)
        return {"results": self.all_tracks()[:DEFAULT_BUCKET_LIMIT]}

    def all_tracks(self) -> List[Track]:
        return [*self.latest, *self.popular]

    def find_by_id(self, track_id: str) -> Optional[Track]:
        for track in self.all_tracks():
            if track.id == track_id or track.external_id == track_id:
                return track
        return None
