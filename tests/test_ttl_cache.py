"""Tests for the metadata TTL cache."""

import asyncio
from unittest.mock import patch

import pytest

from zoho_suite.utils.ttl_cache import TTLCache, ttl_cache


class TestTTLCache:
    """Test the TTLCache class."""

    @pytest.mark.asyncio
    async def test_get_set_basic(self):
        cache = TTLCache(ttl=60)

        await cache.set(("modules",), ["Leads"])
        assert await cache.get(("modules",)) == ["Leads"]

        assert await cache.get(("fields", "Leads")) is None

    @pytest.mark.asyncio
    async def test_ttl_expiration(self):
        """Test that entries expire after TTL."""
        cache = TTLCache(ttl=0.1)  # 100ms TTL

        await cache.set(("key1",), "value1")
        assert await cache.get(("key1",)) == "value1"

        await asyncio.sleep(0.2)

        assert await cache.get(("key1",)) is None

    @pytest.mark.asyncio
    async def test_clear(self):
        cache = TTLCache(ttl=60)

        await cache.set(("key1",), "value1")
        await cache.set(("key2",), "value2")

        await cache.clear()

        assert await cache.get(("key1",)) is None
        assert await cache.get(("key2",)) is None

    @pytest.mark.asyncio
    async def test_cleanup_expired(self):
        """Test cleanup of expired entries."""
        cache = TTLCache(ttl=0.2)

        await cache.set(("key1",), "value1")
        await asyncio.sleep(0.1)
        await cache.set(("key2",), "value2")
        await asyncio.sleep(0.15)  # key1 should be expired, key2 still valid
        await cache.set(("key3",), "value3")

        # Before cleanup, expired entry still in cache dict
        assert len(cache.cache) == 3

        assert await cache.cleanup_expired() == 1

        assert len(cache.cache) == 2
        assert await cache.get(("key2",)) == "value2"
        assert await cache.get(("key3",)) == "value3"


class TestTTLCacheDecorator:
    """Test the ttl_cache decorator."""

    @pytest.mark.asyncio
    async def test_method_caching(self):
        call_count = 0

        class FakeClient:
            @ttl_cache(ttl=60)
            async def get_fields(self, module):
                nonlocal call_count
                call_count += 1
                await asyncio.sleep(0.01)
                return f"fields_{module}_{call_count}"

        client = FakeClient()

        assert await client.get_fields("Leads") == "fields_Leads_1"
        assert await client.get_fields("Leads") == "fields_Leads_1"
        assert call_count == 1

        assert await client.get_fields("Deals") == "fields_Deals_2"
        assert call_count == 2

    @pytest.mark.asyncio
    async def test_ttl_expiration(self):
        call_count = 0

        class FakeClient:
            @ttl_cache(ttl=0.1)
            async def get_modules(self):
                nonlocal call_count
                call_count += 1
                return f"modules_{call_count}"

        client = FakeClient()

        assert await client.get_modules() == "modules_1"
        await asyncio.sleep(0.2)
        assert await client.get_modules() == "modules_2"

    @pytest.mark.asyncio
    async def test_multiple_instances(self):
        """Each client instance has its own cache."""

        class FakeClient:
            def __init__(self, org):
                self.org = org

            @ttl_cache(ttl=60)
            async def get_departments(self):
                return [f"{self.org}_support"]

        first = FakeClient("acme")
        second = FakeClient("globex")

        assert await first.get_departments() == ["acme_support"]
        assert await second.get_departments() == ["globex_support"]

    @pytest.mark.asyncio
    async def test_function_with_kwargs(self):
        call_count = 0

        class FakeClient:
            @ttl_cache(ttl=60)
            async def get_fields(self, module, layout="standard"):
                nonlocal call_count
                call_count += 1
                return f"{layout}_{module}_{call_count}"

        client = FakeClient()

        assert await client.get_fields("Leads", layout="a") == "a_Leads_1"
        assert await client.get_fields("Leads", layout="b") == "b_Leads_2"
        assert await client.get_fields("Leads", layout="a") == "a_Leads_1"
        assert call_count == 2

    @pytest.mark.asyncio
    async def test_empty_results_are_cached(self):
        call_count = 0

        class FakeClient:
            @ttl_cache(ttl=60)
            async def get_forms(self):
                nonlocal call_count
                call_count += 1
                return []

        client = FakeClient()

        await client.get_forms()
        await client.get_forms()

        assert call_count == 1

    @pytest.mark.asyncio
    @patch("zoho_suite.utils.ttl_cache.logger")
    async def test_logging(self, mock_logger):
        """Test that cache hits and misses are logged."""

        class FakeClient:
            @ttl_cache(ttl=60)
            async def get_fields(self, module):
                return [module]

        client = FakeClient()

        await client.get_fields("Leads")
        mock_logger.debug.assert_called_with("Cached metadata", function="get_fields", args=("Leads",), ttl=60)

        await client.get_fields("Leads")
        mock_logger.debug.assert_called_with("Metadata cache hit", function="get_fields", args=("Leads",))
