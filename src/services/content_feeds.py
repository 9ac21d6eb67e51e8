"""Cached admin content feeds.

Each feed (members, departments, devotionals, ...) is one backend
collection served through a :class:`CachedDataAccessor`: the admin tools
show the last fetched list immediately and revalidate it once it is older
than the feed's freshness window.  Departments change rarely and get a
longer window than members.

The feed table comes from ``config/config.yaml`` (``cache.feeds``); the
defaults below apply when the YAML file is absent.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import structlog

from src.interfaces.storage_provider import IStorageProvider
from src.providers.backend.church_api_client import ChurchApiClient
from src.services.cached_data_accessor import (
    DEFAULT_CACHE_DURATION_MS,
    CachedDataAccessor,
    wall_clock_ms,
)
from src.utils.errors import ConfigurationError
from src.utils.logging import get_logger


@dataclass(frozen=True)
class FeedConfig:
    """Cache key, freshness window and backend path of one feed."""

    name: str
    cache_key: str
    duration_ms: int
    path: str


DEFAULT_FEEDS: dict[str, FeedConfig] = {
    "members": FeedConfig("members", "admin-members", 5 * 60 * 1000, "/admin-panel/members/"),
    "departments": FeedConfig(
        "departments", "admin-departments", 10 * 60 * 1000, "/admin-panel/departments/"
    ),
    "devotionals": FeedConfig(
        "devotionals", "admin-devotionals", 5 * 60 * 1000, "/admin-panel/devotionals/"
    ),
    "testimonies": FeedConfig(
        "testimonies", "admin-testimonies", 5 * 60 * 1000, "/admin-panel/testimonies/"
    ),
    "events": FeedConfig("events", "admin-events", 5 * 60 * 1000, "/admin-panel/events/"),
    "sermons": FeedConfig("sermons", "admin-sermons", 5 * 60 * 1000, "/admin-panel/sermons/"),
}


def feeds_from_config(config: Mapping[str, Any]) -> dict[str, FeedConfig]:
    """Build the feed table from the resolved config dict.

    Feeds missing from ``cache.feeds`` keep their defaults; a feed entry
    may override any subset of ``cache_key``, ``duration_ms`` and ``path``.
    Feeds without an explicit duration use ``cache.default_duration_ms``
    when the feed is not one of the defaults.
    """
    cache_section = config.get("cache", {}) or {}
    default_duration = int(cache_section.get("default_duration_ms", DEFAULT_CACHE_DURATION_MS))
    feeds = dict(DEFAULT_FEEDS)

    for name, raw in (cache_section.get("feeds") or {}).items():
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Feed {name!r} must be a mapping")
        base = feeds.get(name)
        try:
            feeds[name] = FeedConfig(
                name=name,
                cache_key=str(raw.get("cache_key") or (base.cache_key if base else name)),
                duration_ms=int(
                    raw.get("duration_ms", base.duration_ms if base else default_duration)
                ),
                path=str(raw.get("path") or (base.path if base else f"/admin-panel/{name}/")),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid settings for feed {name!r}: {exc}") from exc
    return feeds


class ContentFeedService:
    """Builds cached accessors over the backend's admin collections.

    Parameters
    ----------
    api_client:
        Backend client the feeds fetch through.
    storage:
        Where the accessors persist their envelopes.
    feeds:
        Feed table; defaults to :data:`DEFAULT_FEEDS`.
    clock:
        Epoch-millisecond clock handed to every accessor.
    """

    def __init__(
        self,
        api_client: ChurchApiClient,
        storage: IStorageProvider,
        feeds: Mapping[str, FeedConfig] | None = None,
        clock: Callable[[], int] = wall_clock_ms,
    ) -> None:
        self._api = api_client
        self._storage = storage
        self._feeds = dict(feeds or DEFAULT_FEEDS)
        self._clock = clock
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def feed_names(self) -> list[str]:
        return sorted(self._feeds)

    def get_feed(self, name: str) -> FeedConfig:
        try:
            return self._feeds[name]
        except KeyError:
            raise ConfigurationError(f"Unknown content feed: {name}") from None

    def accessor(self, name: str, token: str | None) -> CachedDataAccessor[list[Any]]:
        """Return a new, inactive accessor for feed *name*.

        Without a token the accessor is created disabled: it holds its
        empty state until a token is available, instead of failing.
        """
        feed = self.get_feed(name)
        authorization = f"Bearer {token}" if token else None

        async def _fetch() -> list[Any]:
            return await self._api.fetch_collection(feed.path, authorization, label=feed.name)

        self._logger.debug("feed_accessor_created", feed=name, cache_key=feed.cache_key)
        return CachedDataAccessor(
            _fetch,
            self._storage,
            cache_key=feed.cache_key,
            cache_duration=feed.duration_ms,
            enabled=bool(token),
            clock=self._clock,
        )
