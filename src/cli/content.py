# =============================================================================
# src/cli/content.py - CLI Content Command (Cached Admin Feeds)
# =============================================================================
#
# Standalone CLI for reading the admin content feeds (members, departments,
# devotionals, testimonies, events, sermons) through the same cached data
# accessor the portal uses.  Useful for checking what the cache holds and
# for warming it before a service starts.
#
# Behaviour per invocation:
#   default    - cache-first read: a fresh entry is printed without any
#                network call; a stale one is printed, then refetched.
#   --refresh  - skip the cache and fetch from the backend.
#   --clear    - delete the persisted entry for the feed and exit.
#
# Log lines go to stderr, feed rows to stdout, so --json output can be
# piped straight into jq.
#
# Usage examples:
#   python -m src.cli.content members --token "$CHURCH_API_TOKEN"
#   python -m src.cli.content departments --token T --refresh --json
#   python -m src.cli.content sermons --clear
# =============================================================================

"""Standalone CLI for the cached admin content feeds.

Usage::

    python -m src.cli.content members --token T
    python -m src.cli.content devotionals --token T --refresh
    python -m src.cli.content testimonies --token T --json
    python -m src.cli.content departments --clear

Exit codes: ``0`` success, ``1`` the feed could not be loaded, ``2`` bad
arguments or configuration.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

import httpx

from src.config.loader import load_config
from src.config.settings import Settings
from src.interfaces.storage_provider import IStorageProvider
from src.models.cache import AccessorState
from src.providers.backend.church_api_client import ChurchApiClient
from src.providers.storage import build_storage
from src.services.content_feeds import ContentFeedService, FeedConfig, feeds_from_config
from src.utils.errors import ChurchPortalError
from src.utils.logging import configure_logging

_TOKEN_ENV_VAR = "CHURCH_API_TOKEN"

# Fields tried, in order, to label a row in text output.
_LABEL_FIELDS = ("name", "title", "text", "email")


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def _row_label(item: Any) -> str:
    if not isinstance(item, dict):
        return str(item)
    first, last = item.get("first_name"), item.get("last_name")
    if first or last:
        return " ".join(part for part in (first, last) if part)
    for field in _LABEL_FIELDS:
        value = item.get(field)
        if value:
            text = str(value)
            return text if len(text) <= 80 else text[:77] + "..."
    return json.dumps(item, default=str)[:80]


def _format_text_output(feed: FeedConfig, state: AccessorState[Any]) -> str:
    """Human-readable listing: one header line, then one line per row."""
    rows = state.data or []
    lines: list[str] = []

    header = f"{feed.name}: {len(rows)} item(s)"
    if state.timestamp:
        fetched = datetime.fromtimestamp(state.timestamp / 1000, tz=timezone.utc)  # noqa: UP017
        header += f"  |  cached at {fetched.strftime('%Y-%m-%d %H:%M:%S UTC')}"
    if state.is_stale:
        header += "  |  STALE"
    lines.append(header)
    lines.append("-" * 40)

    for item in rows:
        item_id = item.get("id", "?") if isinstance(item, dict) else "-"
        lines.append(f"  [{item_id}] {_row_label(item)}")

    return "\n".join(lines)


def _format_json_output(feed: FeedConfig, state: AccessorState[Any]) -> str:
    output = {"feed": feed.name, "cache_key": feed.cache_key, **state.to_dict()}
    return json.dumps(output, indent=2, default=str)


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


async def _run(
    args: argparse.Namespace,
    service: ContentFeedService,
    out: TextIO,
) -> int:
    feed = service.get_feed(args.feed)
    accessor = service.accessor(args.feed, args.token)

    if args.clear:
        await accessor.clear_cache()
        print(f"Cleared cached {feed.name} ({feed.cache_key})", file=out)
        return 0

    if args.refresh:
        await accessor.refresh()
    else:
        await accessor.start()

    state = accessor.state
    await accessor.stop()

    text = _format_json_output(feed, state) if args.json else _format_text_output(feed, state)
    print(text, file=out)

    if state.error:
        print(f"Error: {state.error}", file=sys.stderr)
        return 1
    return 0


async def _run_with_resources(
    args: argparse.Namespace,
    app_settings: Settings,
    feeds: dict[str, FeedConfig],
    storage: IStorageProvider,
    out: TextIO,
) -> int:
    async with httpx.AsyncClient(
        base_url=app_settings.api_base_url,
        timeout=app_settings.backend_timeout_seconds,
    ) as http_client:
        service = ContentFeedService(
            api_client=ChurchApiClient(http_client=http_client),
            storage=storage,
            feeds=feeds,
        )
        return await _run(args, service, out)


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m src.cli.content",
        description="Read a cached admin content feed (cache first, backend on miss).",
    )
    parser.add_argument("feed", help="Feed name, e.g. members, departments, devotionals")
    parser.add_argument(
        "--token",
        default=os.environ.get(_TOKEN_ENV_VAR),
        help=f"Backend access token (default: ${_TOKEN_ENV_VAR})",
    )
    parser.add_argument(
        "--refresh",
        action="store_true",
        help="Ignore the cached entry and fetch from the backend",
    )
    parser.add_argument(
        "--clear",
        action="store_true",
        help="Delete the cached entry for this feed and exit",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the accessor state as JSON",
    )
    return parser


def main(argv: list[str] | None = None, out: TextIO | None = None) -> int:
    """CLI entry point.  Returns the process exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    out = out or sys.stdout

    app_settings = Settings()
    configure_logging(
        log_level=app_settings.log_level,
        json_output=(app_settings.app_env == "production"),
        stream=sys.stderr,
    )

    if args.refresh and args.clear:
        parser.error("--refresh and --clear are mutually exclusive")
    if not args.clear and not args.token:
        parser.error(f"--token is required (or set {_TOKEN_ENV_VAR})")

    try:
        feeds = feeds_from_config(load_config(settings=app_settings))
        storage = build_storage(app_settings)
    except ChurchPortalError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 2
    if args.feed not in feeds:
        parser.error(f"unknown feed {args.feed!r} (choose from: {', '.join(sorted(feeds))})")

    try:
        return asyncio.run(_run_with_resources(args, app_settings, feeds, storage, out))
    except ChurchPortalError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
