"""Unit tests for ContentFeedService and the YAML feed table."""

from __future__ import annotations

import json

import pytest

from src.services.cached_data_accessor import CachedDataAccessor
from src.services.content_feeds import (
    DEFAULT_FEEDS,
    ContentFeedService,
    FeedConfig,
    feeds_from_config,
)
from src.utils.errors import ConfigurationError


class TestFeedsFromConfig:
    def test_defaults_without_config(self) -> None:
        feeds = feeds_from_config({})
        assert feeds == DEFAULT_FEEDS
        assert feeds["members"].duration_ms == 5 * 60 * 1000
        assert feeds["departments"].duration_ms == 10 * 60 * 1000

    def test_overrides_and_new_feeds(self, mock_config) -> None:
        feeds = feeds_from_config(mock_config)

        assert feeds["members"] == FeedConfig(
            "members", "test-members", 1000, "/admin-panel/members/"
        )
        # New feed: key defaults to its name, duration to the global default.
        assert feeds["announcements"] == FeedConfig(
            "announcements", "announcements", 120000, "/admin-panel/announcements/"
        )
        assert feeds["sermons"] == DEFAULT_FEEDS["sermons"]

    def test_non_mapping_entry_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="must be a mapping"):
            feeds_from_config({"cache": {"feeds": {"members": "admin-members"}}})

    def test_bad_duration_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="Invalid settings for feed 'events'"):
            feeds_from_config({"cache": {"feeds": {"events": {"duration_ms": "soon"}}}})

    def test_project_config_file_matches_defaults(self, project_root) -> None:
        import yaml

        with open(project_root / "config" / "config.yaml") as f:
            raw = yaml.safe_load(f)
        assert feeds_from_config(raw) == DEFAULT_FEEDS


class TestContentFeedService:
    def test_feed_names_sorted(self, api_client, memory_storage) -> None:
        service = ContentFeedService(api_client, memory_storage)
        assert service.feed_names == sorted(DEFAULT_FEEDS)

    def test_unknown_feed(self, api_client, memory_storage) -> None:
        service = ContentFeedService(api_client, memory_storage)
        with pytest.raises(ConfigurationError, match="Unknown content feed: hymns"):
            service.accessor("hymns", "t")

    def test_accessor_uses_feed_settings(self, api_client, memory_storage) -> None:
        service = ContentFeedService(api_client, memory_storage)
        accessor = service.accessor("departments", "t")

        assert isinstance(accessor, CachedDataAccessor)
        assert accessor.cache_key == "admin-departments"
        assert accessor.cache_duration == 600000
        assert accessor.enabled is True
        assert accessor.active is False

    @pytest.mark.parametrize("token", [None, ""])
    def test_accessor_without_token_is_disabled(self, api_client, memory_storage, token) -> None:
        service = ContentFeedService(api_client, memory_storage)
        assert service.accessor("members", token).enabled is False

    @pytest.mark.asyncio
    async def test_accessor_fetches_with_bearer_token(
        self, api_client, backend, memory_storage, clock
    ) -> None:
        backend.add("GET", "/admin-panel/members/", 200, {"results": [{"id": 1}]})
        service = ContentFeedService(api_client, memory_storage, clock=clock)

        async with service.accessor("members", "tok") as accessor:
            assert accessor.data == [{"id": 1}]

        assert backend.calls[0].headers["Authorization"] == "Bearer tok"
        stored = json.loads(await memory_storage.get("admin-members"))
        assert stored == {"data": [{"id": 1}], "timestamp": clock.now}

    @pytest.mark.asyncio
    async def test_backend_error_surfaces_in_state(
        self, api_client, backend, memory_storage, clock
    ) -> None:
        backend.add("GET", "/admin-panel/events/", 401, {"detail": "expired"})
        service = ContentFeedService(api_client, memory_storage, clock=clock)
        accessor = service.accessor("events", "old")

        await accessor.start()

        assert accessor.error == "Authentication failed"
        assert accessor.data is None
        assert await memory_storage.get("admin-events") is None

    @pytest.mark.asyncio
    async def test_accessors_for_same_feed_share_storage(
        self, api_client, backend, memory_storage, clock
    ) -> None:
        backend.add("GET", "/admin-panel/sermons/", 200, [{"id": 5}])
        service = ContentFeedService(api_client, memory_storage, clock=clock)

        await service.accessor("sermons", "a").start()
        second = service.accessor("sermons", "b")
        await second.start()

        assert second.data == [{"id": 5}]
        assert len(backend.calls) == 1
