import unittest

from music_catalog.local_catalog import LocalCatalog
from music_catalog.models import Track
from music_catalog.ranking import (
    INTERACTIVE_LIMIT,
    detect_year,
    rank,
    rank_tracks,
    score_track,
)


def _track(track_id: str, title: str, **kwargs) -> Track:
    return Track(id=track_id, name=title, title=title, **kwargs)


LEVITATING = _track(
    "lev",
    "Levitating",
    artist="Dua Lipa",
    album="Future Nostalgia",
    genre="Dance Pop",
    release_year=2020,
    overview="Disco-pop hit",
    popularity=90,
)


class TestScoreTrack(unittest.TestCase):
    def test_artist_substring_with_partial_word_and_popularity(self) -> None:
        entry = score_track(LEVITATING, "dua")
        # 90 artist substring + 40 artist term + 20 partial word + 10 popularity
        self.assertEqual(entry.score, 160)
        self.assertFalse(entry.is_exact_match)

    def test_year_and_genre_family_boosts(self) -> None:
        entry = score_track(LEVITATING, "pop 2020", detect_year("pop 2020"))
        # 85 year + 75 genre family + 35 genre term + 15 overview + 25 year term + 10 popularity
        self.assertEqual(entry.score, 245)

    def test_exact_title_skips_term_scoring(self) -> None:
        entry = score_track(LEVITATING, "levitating")
        self.assertTrue(entry.is_exact_match)
        self.assertEqual(entry.score, 100)

    def test_exact_artist_tier(self) -> None:
        entry = score_track(LEVITATING, "dua lipa")
        self.assertTrue(entry.is_exact_match)
        self.assertEqual(entry.score, 90)

    def test_detect_year_uses_first_match(self) -> None:
        self.assertEqual(detect_year("best of 1999 and 2024"), 1999)
        self.assertIsNone(detect_year("top 100 hits"))


class TestRank(unittest.TestCase):
    def test_empty_query_or_candidates(self) -> None:
        self.assertEqual(rank([LEVITATING], ""), [])
        self.assertEqual(rank([LEVITATING], "   "), [])
        self.assertEqual(rank([], "dua"), [])

    def test_year_query_ranks_matching_year_first(self) -> None:
        target = _track(
            "espresso",
            "Espresso",
            artist="Sabrina Carpenter",
            album="Hits 2024",
            release_year=2024,
            popularity=70,
        )
        others = [
            _track("a", "Yesterday", artist="The Beatles", release_year=1965, popularity=88),
            _track("b", "Hey Ya!", artist="OutKast", release_year=2003, popularity=95),
            _track("c", "Blue", artist="Eiffel 65", release_year=1999, popularity=60),
        ]
        ranked = rank([*others, target], "2024")
        self.assertIs(ranked[0].item, target)
        self.assertGreaterEqual(ranked[0].score, 185)

    def test_exact_matches_precede_higher_scores(self) -> None:
        exact = _track("sun", "Sun", popularity=10)
        partial = _track("sun3", "Sun Sun Sun", artist="Sunny", popularity=95)
        ranked = rank([partial, exact], "sun")
        self.assertIs(ranked[0].item, exact)
        self.assertGreater(ranked[1].score, ranked[0].score)
        seen_partial = False
        for entry in ranked:
            if not entry.is_exact_match:
                seen_partial = True
            self.assertFalse(seen_partial and entry.is_exact_match)

    def test_zero_scores_are_dropped(self) -> None:
        quiet = _track("q", "Quiet", popularity=10)
        self.assertEqual(rank([quiet], "thunder"), [])

    def test_ties_keep_input_order(self) -> None:
        first = _track("1", "Golden Hour", artist="JVKE", popularity=50)
        second = _track("2", "Golden Hour", artist="JVKE", popularity=50)
        ranked = rank([first, second], "golden hour")
        self.assertEqual([entry.item.id for entry in ranked], ["1", "2"])

    def test_ranking_is_deterministic(self) -> None:
        tracks = LocalCatalog().all_tracks()
        first = [(entry.item.id, entry.score) for entry in rank(tracks, "pop love")]
        second = [(entry.item.id, entry.score) for entry in rank(tracks, "pop love")]
        self.assertEqual(first, second)

    def test_adding_query_to_title_never_lowers_score(self) -> None:
        query = "midnight train"
        base = _track("x", "Blue", artist="Someone", popularity=40)
        boosted = _track("x", "Blue midnight train", artist="Someone", popularity=40)
        self.assertGreaterEqual(score_track(boosted, query).score, score_track(base, query).score)

    def test_limit_truncates(self) -> None:
        tracks = LocalCatalog().all_tracks()
        self.assertLessEqual(len(rank(tracks, "the", INTERACTIVE_LIMIT)), INTERACTIVE_LIMIT)
        self.assertEqual(rank(tracks, "the", 0), [])

    def test_local_catalog_year_search(self) -> None:
        results = rank_tracks(LocalCatalog().all_tracks(), "2024")
        self.assertEqual(results[0].title, "Die With A Smile")


if __name__ == "__main__":
    unittest.main()
