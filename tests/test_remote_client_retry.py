import asyncio
import json
import unittest
from unittest.mock import AsyncMock

from music_catalog.cache import MemoryStorage, ResponseCache
from music_catalog.config import ProviderSettings, Settings
from music_catalog.errors import CatalogAPIError, ErrorType
from music_catalog.models import Album, Track
from music_catalog.providers.credentials import CredentialStore, RemoteCredential
from music_catalog.providers.spotify import RemoteClient
from music_catalog.providers.transport import HttpResponse

TRACK_BODY = {
    "id": "123",
    "name": "Espresso",
    "artists": [{"name": "Sabrina Carpenter"}],
    "album": {"name": "Short n' Sweet", "images": [{"url": "https://i.scdn.co/image/e"}], "release_date": "2024-08-23"},
    "duration_ms": 175000,
    "popularity": 91,
}


def _ok(body) -> HttpResponse:
    return HttpResponse(200, {"content-type": "application/json"}, json.dumps(body).encode())


class _Transport:
    """Replays scripted responses; exceptions in the script are raised."""

    def __init__(self, *script) -> None:
        self.script = list(script)
        self.calls = []

    def request(self, method, url, headers=None, data=None):
        self.calls.append({"method": method, "url": url, "headers": dict(headers or {})})
        outcome = self.script[0] if len(self.script) == 1 else self.script.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def _proxy_settings() -> Settings:
    return Settings(providers=ProviderSettings(use_proxy=True))


class TestRemoteClientRetry(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.cache = ResponseCache(MemoryStorage())
        self.sleep = AsyncMock()

    def _client(self, transport, settings=None, **kwargs) -> RemoteClient:
        return RemoteClient(
            settings or _proxy_settings(),
            self.cache,
            transport=transport,
            sleep=self.sleep,
            rng=lambda: 0.0,
            **kwargs,
        )

    async def test_network_failure_on_every_attempt(self) -> None:
        transport = _Transport(ConnectionError("connection refused"))
        client = self._client(transport)

        with self.assertRaises(CatalogAPIError) as ctx:
            await client.get_track("123")

        self.assertEqual(ctx.exception.type, ErrorType.NETWORK)
        self.assertEqual(ctx.exception.code, "NETWORK_ERROR")
        self.assertEqual(len(transport.calls), 4)
        delays = [call.args[0] for call in self.sleep.await_args_list]
        self.assertEqual(delays, [1.0, 2.0, 4.0])

    async def test_server_errors_fall_back_to_cached_payload(self) -> None:
        self.cache.set("track_123", TRACK_BODY, 3600)
        transport = _Transport(HttpResponse(503, body=b'{"error": {"status": 503, "message": "down"}}'))
        client = self._client(transport)

        track = await client.get_track("123")

        self.assertIsInstance(track, Track)
        self.assertEqual(track.title, "Espresso")
        self.assertEqual(len(transport.calls), 4)

    async def test_recovers_after_transient_failure(self) -> None:
        transport = _Transport(TimeoutError("read timed out"), _ok(TRACK_BODY))
        client = self._client(transport)

        track = await client.get_track("123")

        self.assertEqual(track.id, "123")
        self.assertEqual(len(transport.calls), 2)
        self.sleep.assert_awaited_once_with(1.0)

    async def test_rate_limit_uses_retry_after(self) -> None:
        limited = HttpResponse(429, {"retry-after": "7"}, b"")
        transport = _Transport(limited, _ok(TRACK_BODY))
        client = self._client(transport)

        await client.get_track("123")

        self.sleep.assert_awaited_once_with(7.0)

    async def test_client_errors_are_not_retried_or_served_from_cache(self) -> None:
        self.cache.set("track_404", TRACK_BODY, 3600)
        transport = _Transport(HttpResponse(404, body=b'{"error": {"status": 404, "message": "Not found"}}'))
        client = self._client(transport)

        with self.assertRaises(CatalogAPIError) as ctx:
            await client.get_track("404")

        self.assertEqual(ctx.exception.type, ErrorType.CLIENT)
        self.assertEqual(ctx.exception.message, "Not found")
        self.assertEqual(len(transport.calls), 1)
        self.sleep.assert_not_awaited()

    async def test_transform_failure_is_a_data_error(self) -> None:
        transport = _Transport(_ok({"name": "no id"}))
        client = self._client(transport)

        with self.assertRaises(CatalogAPIError) as ctx:
            await client.get_track("123")

        self.assertEqual(ctx.exception.code, "TRANSFORM_ERROR")
        self.assertEqual(len(transport.calls), 1)
        await asyncio.sleep(0)
        self.assertIsNone(self.cache.get("track_123"))

    async def test_empty_id_fails_without_request(self) -> None:
        transport = _Transport(_ok(TRACK_BODY))
        client = self._client(transport)

        with self.assertRaises(CatalogAPIError) as ctx:
            await client.get_album("  ")

        self.assertEqual(ctx.exception.code, "MISSING_ID")
        self.assertEqual(ctx.exception.status, 400)
        self.assertEqual(transport.calls, [])

    async def test_success_is_written_to_cache(self) -> None:
        transport = _Transport(_ok({"tracks": {"items": [TRACK_BODY]}}))
        client = self._client(transport)

        results = await client.search("espresso", "track", limit=5)
        await asyncio.sleep(0)

        self.assertEqual([track.title for track in results], ["Espresso"])
        self.assertEqual(self.cache.get("search_track_espresso"), {"tracks": {"items": [TRACK_BODY]}})

    async def test_proxy_requests_carry_no_authorization(self) -> None:
        transport = _Transport(_ok({"albums": {"items": []}}))
        client = self._client(transport)

        await client.get_new_releases(limit=10)

        call = transport.calls[0]
        self.assertNotIn("Authorization", call["headers"])
        self.assertTrue(call["url"].startswith("http://localhost:3001/api/spotify/browse/new-releases?"))
        self.assertIn("market=US", call["url"])
        self.assertIn("limit=10", call["url"])

    async def test_featured_playlists_served_from_cache_when_offline(self) -> None:
        body = {"playlists": {"items": [{"id": "p1", "name": "Today's Top Hits"}]}}
        self.cache.set("featured_playlists", body, 1800)
        transport = _Transport(OSError("network unreachable"))
        client = self._client(transport)

        playlists = await client.get_featured_playlists()

        self.assertEqual([playlist.name for playlist in playlists], ["Today's Top Hits"])
        self.assertEqual(len(transport.calls), 4)

    async def test_direct_mode_uses_bearer_token(self) -> None:
        settings = Settings(providers=ProviderSettings(client_id="id", client_secret="secret"))
        credentials = CredentialStore("id", token_fetcher=lambda: RemoteCredential("tok", 10**12))
        album = {"id": "alb", "name": "GNX", "artists": [{"name": "Kendrick Lamar"}]}
        transport = _Transport(_ok(album))
        client = self._client(transport, settings=settings, credentials=credentials)

        result = await client.get_album("alb")

        self.assertIsInstance(result, Album)
        call = transport.calls[0]
        self.assertEqual(call["headers"]["Authorization"], "Bearer tok")
        self.assertTrue(call["url"].startswith("https://api.spotify.com/v1/albums/alb?"))

    async def test_direct_mode_without_intermediary_is_fatal(self) -> None:
        settings = Settings(providers=ProviderSettings(client_id="id", client_secret="secret"))
        transport = _Transport(_ok(TRACK_BODY))
        client = self._client(transport, settings=settings)

        with self.assertRaises(CatalogAPIError) as ctx:
            await client.get_track("123")

        self.assertEqual(ctx.exception.code, "DIRECT_AUTH_DISABLED")
        self.assertEqual(transport.calls, [])
        self.sleep.assert_not_awaited()


class TestBackoffDelay(unittest.TestCase):
    def test_exponential_with_cap_and_additive_jitter(self) -> None:
        client = RemoteClient(_proxy_settings(), ResponseCache(None), transport=_Transport(), rng=lambda: 1.0)
        self.assertAlmostEqual(client.backoff_delay(1), 1.1)
        self.assertAlmostEqual(client.backoff_delay(3), 4.4)
        self.assertAlmostEqual(client.backoff_delay(10), 11.0)

    def test_rate_limit_hint_wins(self) -> None:
        client = RemoteClient(_proxy_settings(), ResponseCache(None), transport=_Transport(), rng=lambda: 1.0)
        error = CatalogAPIError(ErrorType.RATE_LIMIT, "slow", status=429, retry_after=3)
        self.assertEqual(client.backoff_delay(1, error), 3)


if __name__ == "__main__":
    unittest.main()
