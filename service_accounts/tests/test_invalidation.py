"""
Unit tests for cache invalidation.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from service_accounts.app.caching.accounts_cache import AccountsCache, NullAccountsCache
from service_accounts.app.caching.cache_store import RedisCacheStore
from service_accounts.app.domain.invalidation import CacheInvalidator
from service_accounts.app.domain.models import ListQuery

from .conftest import make_account


class DummyMetrics:
    """Minimal metrics collector stub."""

    def __init__(self):
        self.counters = []

    def increment_counter(self, metric_name: str, **labels):
        self.counters.append((metric_name, labels))


class TestCacheInvalidator:
    """Test cases for CacheInvalidator."""

    @pytest.fixture
    def metrics(self):
        return DummyMetrics()

    @pytest.fixture
    def broken_cache(self):
        cache = AsyncMock(spec=AccountsCache)
        cache.generate_account_key.return_value = "account:1"
        return cache

    @pytest.mark.asyncio
    async def test_drops_account_then_flushes(self, accounts_cache, cache_store, metrics):
        """Test the full drop: own key first, then lists and counts."""
        await accounts_cache.set_accounts([make_account(1), make_account(2)])
        await accounts_cache.set_list_metadata(ListQuery.normalize("active", default_page_size=20), [1, 2], {})
        await accounts_cache.set_by_key("count:active", 2)

        result = await CacheInvalidator(accounts_cache, metrics).invalidate(1, "approval")

        assert result is True
        assert cache_store.dropped == ["account:1"]
        assert cache_store.flushed == [("list", "count")]
        # Other accounts survive the flush
        assert cache_store.keys() == ["accounts:account:2"]
        assert metrics.counters == [("cache_invalidations_total", {"action": "approval"})]

    @pytest.mark.asyncio
    async def test_flushes_lists_for_every_filter(self, accounts_cache, cache_store):
        for search in ("", "smith", "a:b"):
            query = ListQuery.normalize("pending", search=search, default_page_size=20)
            await accounts_cache.set_list_metadata(query, [1], {})

        await CacheInvalidator(accounts_cache).invalidate(99, "deletion")

        assert cache_store.keys() == []

    @pytest.mark.asyncio
    async def test_flush_attempted_when_drop_fails(self, broken_cache, metrics):
        broken_cache.drop_by_key.side_effect = ConnectionError("redis down")

        result = await CacheInvalidator(broken_cache, metrics).invalidate(1, "approval")

        assert result is False
        broken_cache.invalidate_all.assert_awaited_once()
        assert metrics.counters == []

    @pytest.mark.asyncio
    async def test_flush_failure_is_not_raised(self, broken_cache):
        broken_cache.invalidate_all.side_effect = ConnectionError("redis down")

        assert await CacheInvalidator(broken_cache).invalidate(1, "reactivation") is False
        broken_cache.drop_by_key.assert_awaited_once_with("account:1")

    @pytest.mark.asyncio
    async def test_disabled_cache(self):
        assert await CacheInvalidator(NullAccountsCache()).invalidate(1, "approval") is True

    @pytest.mark.asyncio
    async def test_invalidate_on_auth(self, accounts_cache, cache_store, metrics):
        await accounts_cache.set_accounts([make_account(1)])
        await accounts_cache.set_by_key("count:pending", 1)

        result = await CacheInvalidator(accounts_cache, metrics).invalidate_on_auth("login")

        assert result is True
        assert cache_store.dropped == []
        assert cache_store.keys() == ["accounts:account:1"]
        assert metrics.counters == [("cache_invalidations_total", {"action": "login"})]

    @pytest.mark.asyncio
    async def test_invalidate_on_auth_failure(self, broken_cache, metrics):
        broken_cache.invalidate_all.side_effect = ConnectionError("redis down")

        assert await CacheInvalidator(broken_cache, metrics).invalidate_on_auth() is False
        assert metrics.counters == []


class TestInvalidationWithUnreachableRedis:
    """Test cases for invalidation through a Redis store that cannot connect."""

    @pytest.fixture
    def metrics(self):
        return DummyMetrics()

    @pytest.fixture
    def unreachable_cache(self, metrics):
        client = MagicMock()
        client.delete = AsyncMock(side_effect=ConnectionError("redis down"))
        client.scan_iter = MagicMock(side_effect=ConnectionError("redis down"))
        store = RedisCacheStore("redis://localhost:6379/0", segment="accounts", metrics=metrics, client=client)
        return AccountsCache(store)

    @pytest.mark.asyncio
    async def test_invalidate_reports_failure(self, unreachable_cache, metrics):
        result = await CacheInvalidator(unreachable_cache, metrics).invalidate(101, "approval")

        assert result is False
        assert metrics.counters == [
            ("cache_errors_total", {"operation": "drop"}),
            ("cache_errors_total", {"operation": "drop_namespaces"}),
        ]

    @pytest.mark.asyncio
    async def test_invalidate_on_auth_reports_failure(self, unreachable_cache, metrics):
        result = await CacheInvalidator(unreachable_cache, metrics).invalidate_on_auth("login")

        assert result is False
        assert ("cache_invalidations_total", {"action": "login"}) not in metrics.counters
