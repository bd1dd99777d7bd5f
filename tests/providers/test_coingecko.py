import asyncio
from decimal import Decimal

import httpx
import pytest
from unittest.mock import AsyncMock

from evmbridge.cache import TTLCache
from evmbridge.config import settings
from evmbridge.providers.coingecko import CoingeckoProvider


@pytest.fixture
def coingecko_enabled(monkeypatch):
    monkeypatch.setattr(settings, "enable_coingecko", True)


class TestNativePrices:

    @pytest.mark.asyncio
    async def test_cached_price_skips_network(self, coingecko_enabled):
        cache = TTLCache(default_ttl=60)
        await cache.set("polygon-ecosystem-token", Decimal("0.42"))
        provider = CoingeckoProvider(cache=cache)

        assert await provider.get_native_price_usd("matic") == Decimal("0.42")

    @pytest.mark.asyncio
    async def test_l2s_share_the_ether_price(self, coingecko_enabled):
        cache = TTLCache(default_ttl=60)
        await cache.set("ethereum", Decimal("3100"))
        provider = CoingeckoProvider(cache=cache)

        assert await provider.get_native_price_usd("base") == Decimal("3100")
        assert await provider.get_native_price_usd("arbitrum") == Decimal("3100")

    @pytest.mark.asyncio
    async def test_http_failure_uses_static_fallback(self, coingecko_enabled):
        provider = CoingeckoProvider()
        provider._fetch_price = AsyncMock(side_effect=httpx.ConnectError("offline"))

        price = await provider.get_native_price_usd("avalanche")

        assert price == settings.native_price_fallbacks_usd["avalanche"]

    @pytest.mark.asyncio
    async def test_disabled_without_fallbacks_is_none(self, monkeypatch):
        monkeypatch.setattr(settings, "enable_coingecko", False)
        provider = CoingeckoProvider(use_fallbacks=False)
        provider._fetch_price = AsyncMock()

        assert await provider.get_native_price_usd("ethereum") is None
        provider._fetch_price.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_disabled_health(self, monkeypatch):
        monkeypatch.setattr(settings, "enable_coingecko", False)
        assert (await CoingeckoProvider().health_check())["status"] == "unavailable"


class TestTTLCache:

    @pytest.mark.asyncio
    async def test_lru_eviction(self):
        cache = TTLCache(default_ttl=60, max_size=2)
        await cache.set("a", 1)
        await cache.set("b", 2)
        await cache.get("a")
        await cache.set("c", 3)

        assert await cache.get("a") == 1
        assert await cache.get("b") is None
        assert await cache.get("c") == 3

    @pytest.mark.asyncio
    async def test_expired_entries_are_dropped(self):
        now = [1000.0]
        cache = TTLCache(default_ttl=10, clock=lambda: now[0])
        await cache.set("price", Decimal("1"))

        now[0] += 9
        assert await cache.get("price") == Decimal("1")
        now[0] += 1
        assert await cache.get("price") is None
        assert cache.stats() == {"size": 0, "hits": 1, "misses": 1}

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_load(self):
        cache = TTLCache(default_ttl=60)
        calls = []

        async def loader():
            calls.append(1)
            await asyncio.sleep(0.01)
            return Decimal("3000")

        results = await asyncio.gather(*(cache.get_or_load("ethereum", loader) for _ in range(5)))

        assert results == [Decimal("3000")] * 5
        assert len(calls) == 1
        assert await cache.get_or_load("ethereum", loader) == Decimal("3000")
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_failed_load_is_not_cached(self):
        cache = TTLCache(default_ttl=60)
        failing = AsyncMock(side_effect=httpx.ConnectError("offline"))

        with pytest.raises(httpx.ConnectError):
            await cache.get_or_load("ethereum", failing)

        assert cache.size() == 0
        assert await cache.get_or_load("ethereum", AsyncMock(return_value=Decimal("1"))) == Decimal("1")

    @pytest.mark.asyncio
    async def test_none_is_not_cached(self):
        cache = TTLCache(default_ttl=60)
        loader = AsyncMock(return_value=None)

        assert await cache.get_or_load("unknown-coin", loader) is None
        assert await cache.get_or_load("unknown-coin", loader) is None
        assert loader.await_count == 2
