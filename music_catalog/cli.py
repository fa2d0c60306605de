from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, List

from .app import CatalogApp
from .config import load_settings
from .errors import CatalogAPIError
from .models import ResponseEnvelope, SearchResult

LOG_FORMAT = "%(levelname).1s | %(name)s | %(message)s"

C_RESET = "\033[0m"
LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",  # Cyan
    logging.INFO: "\033[37m",  # Light gray
    logging.WARNING: "\033[33m",  # Yellow
    logging.ERROR: "\033[31m",  # Red
    logging.CRITICAL: "\033[35m",  # Magenta
}


class ColorFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = LEVEL_COLORS.get(record.levelno)
        if not color:
            return message
        return f"{color}{message}{C_RESET}"


def _record(value: Any) -> Any:
    to_record = getattr(value, "to_record", None)
    if callable(to_record):
        return to_record()
    if isinstance(value, dict):
        return {key: _record(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_record(item) for item in value]
    return value


def envelope_record(envelope: ResponseEnvelope) -> dict:
    return {
        "data": _record(envelope.data),
        "is_error": envelope.is_error,
        "error": _record(envelope.error) if envelope.error is not None else None,
    }


def palette_record(results: List[SearchResult]) -> list:
    return [
        {
            "id": result.id,
            "type": result.type,
            "title": result.title,
            "subtitle": result.subtitle,
            "image": result.image,
            "is_exact_match": result.is_exact_match,
        }
        for result in results
    ]


def _print(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Music catalog data access")
    parser.add_argument("--config", type=Path, help="Path to config.yaml")
    parser.add_argument("--log-level", default="WARNING", help="Python logging level")

    subparsers = parser.add_subparsers(dest="command", required=True)
    bucket_parser = subparsers.add_parser("bucket", help="List a bucketed section")
    bucket_parser.add_argument("category", help="Section category, e.g. tracks or albums")
    bucket_parser.add_argument("type", help="Section type, e.g. latest or popular")

    search_parser = subparsers.add_parser("search", help="Free-text search")
    search_parser.add_argument("query")
    search_parser.add_argument("--category", default="tracks")
    search_parser.add_argument(
        "--palette",
        action="store_true",
        help="Use the interactive command-palette search (exact matches first, 8 results)",
    )

    similar_parser = subparsers.add_parser("similar", help="List similar tracks")
    similar_parser.add_argument("--category", default="tracks")

    track_parser = subparsers.add_parser("track", help="Look up one item by id")
    track_parser.add_argument("category", help="tracks, albums or artists")
    track_parser.add_argument("id")

    subparsers.add_parser("cache-stats", help="Show offline cache statistics")
    subparsers.add_parser("cache-clear", help="Remove every offline cache entry")
    return parser


async def _run(app: CatalogApp, args: argparse.Namespace) -> int:
    selector = app.selector
    match args.command:
        case "bucket":
            envelope = await selector.get_tracks(args.category, args.type)
        case "search":
            if args.palette:
                try:
                    results = await selector.palette_search(args.query)
                except CatalogAPIError as exc:
                    _print({"error": exc.to_record()})
                    return 1
                _print(palette_record(results))
                return 0
            envelope = await selector.get_tracks(args.category, search_query=args.query)
        case "similar":
            envelope = await selector.get_tracks(args.category, show_similar=True)
        case "track":
            envelope = await selector.get_track(args.category, args.id)
        case "cache-stats":
            stats = app.cache.get_stats()
            _print({"size": stats.size, "items": stats.items, "enabled": stats.enabled})
            return 0
        case "cache-clear":
            app.cache.clear()
            print("Cleared offline cache.")
            return 0
        case _:
            raise ValueError(f"Unknown command {args.command}")
    _print(envelope_record(envelope))
    return 1 if envelope.is_error else 0


def main(argv: List[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    log_level = getattr(logging, args.log_level.upper(), logging.WARNING)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)
    handler = logging.StreamHandler()
    handler.setFormatter(ColorFormatter(LOG_FORMAT))
    root_logger.addHandler(handler)

    settings = load_settings(args.config)
    app = CatalogApp.create(settings)
    try:
        code = asyncio.run(_run(app, args))
    finally:
        app.close()
    sys.exit(code)


if __name__ == "__main__":
    main()
