import io
import json
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import patch

from music_catalog.app import CatalogApp
from music_catalog.cache import MemoryStorage, SqliteStorage
from music_catalog.cli import main
from music_catalog.config import CacheSettings, Settings


def _settings(tmp: str) -> Settings:
    return Settings(cache=CacheSettings(path=Path(tmp) / "offline.sqlite3"))


class TestCatalogApp(unittest.TestCase):
    def test_create_wires_sqlite_cache_and_local_catalog(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            app = CatalogApp.create(_settings(tmp))
            try:
                self.assertIsInstance(app.storage, SqliteStorage)
                self.assertTrue(app.cache.enabled)
                self.assertTrue(app.selector.uses_local_catalog())
            finally:
                app.close()

    def test_memory_storage_without_path(self) -> None:
        app = CatalogApp.create(Settings(cache=CacheSettings(path=None)))
        self.assertIsInstance(app.storage, MemoryStorage)
        app.close()

    def test_disabled_cache(self) -> None:
        app = CatalogApp.create(Settings(cache=CacheSettings(enabled=False)))
        self.assertIsNone(app.storage)
        self.assertFalse(app.cache.get_stats().enabled)
        app.close()


class TestCli(unittest.TestCase):
    def _run(self, argv, settings):
        out = io.StringIO()
        with patch("music_catalog.cli.load_settings", return_value=settings), redirect_stdout(out):
            with self.assertRaises(SystemExit) as ctx:
                main(argv)
        return ctx.exception.code, out.getvalue()

    def test_bucket_prints_json(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            code, output = self._run(["bucket", "tracks", "latest"], _settings(tmp))
        payload = json.loads(output)
        self.assertEqual(code, 0)
        self.assertFalse(payload["is_error"])
        self.assertEqual(payload["data"]["results"][0]["title"], "Die With A Smile")

    def test_missing_track_exits_non_zero(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            code, output = self._run(["track", "tracks", "nope"], _settings(tmp))
        payload = json.loads(output)
        self.assertEqual(code, 1)
        self.assertEqual(payload["error"]["type"], "not_found")

    def test_palette_search(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            code, output = self._run(["search", "flowers", "--palette"], _settings(tmp))
        results = json.loads(output)
        self.assertEqual(code, 0)
        self.assertTrue(results[0]["is_exact_match"])

    def test_cache_stats(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            code, output = self._run(["cache-stats"], _settings(tmp))
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(output), {"size": 0, "items": 0, "enabled": True})


if __name__ == "__main__":
    unittest.main()
