import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import httpx

from ..cache import TTLCache
from ..config import settings
from ..core.chain_types import chain_metadata, normalize_chain
from .base import PriceProvider


class CoingeckoProvider(PriceProvider):
    """Coingecko simple-price lookups for native gas tokens.

    Falls back to the configured static prices when the API is disabled or
    unreachable, so fee estimates degrade to approximate USD values rather
    than disappearing.
    """

    name = "coingecko"
    timeout_s = 15

    def __init__(
        self,
        *,
        cache: Optional[TTLCache] = None,
        use_fallbacks: bool = True,
        logger: Optional[logging.Logger] = None,
    ):
        self.api_key = settings.coingecko_api_key
        self.base_url = "https://api.coingecko.com/api/v3"
        self._cache = cache or TTLCache(default_ttl=settings.price_cache_ttl_seconds, max_size=64)
        self._use_fallbacks = use_fallbacks
        self._logger = logger or logging.getLogger(__name__)

    def _build_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self.api_key:
            headers["X-CG-Demo-API-Key"] = self.api_key
        return headers

    async def ready(self) -> bool:
        return settings.enable_coingecko  # API key is optional for basic tier

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "Provider disabled"}

        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    f"{self.base_url}/ping",
                    headers=self._build_headers(),
                    timeout=self.timeout_s,
                )
                response.raise_for_status()
                return {
                    "status": "healthy",
                    "latency_ms": int(response.elapsed.total_seconds() * 1000),
                    "cache": self._cache.stats(),
                }
        except httpx.HTTPError as e:
            return {"status": "error", "reason": str(e)}

    async def _request_price(self, coin_id: str) -> Optional[Decimal]:
        params = {"ids": coin_id, "vs_currencies": "usd"}
        async with httpx.AsyncClient() as client:
            response = await client.get(
                f"{self.base_url}/simple/price",
                headers=self._build_headers(),
                params=params,
                timeout=self.timeout_s,
            )
            response.raise_for_status()
            data = response.json()

        raw = (data.get(coin_id) or {}).get("usd")
        if raw is None:
            return None
        try:
            return Decimal(str(raw))
        except InvalidOperation:
            self._logger.warning("coingecko returned a non-numeric price for %s: %r", coin_id, raw)
            return None

    async def _fetch_price(self, coin_id: str) -> Optional[Decimal]:
        return await self._cache.get_or_load(coin_id, lambda: self._request_price(coin_id))

    def _fallback(self, chain: str) -> Optional[Decimal]:
        if not self._use_fallbacks:
            return None
        value = settings.native_price_fallbacks_usd.get(chain)
        return Decimal(value) if value is not None else None

    async def get_native_price_usd(self, chain: str) -> Optional[Decimal]:
        chain_id = normalize_chain(chain)
        if await self.ready():
            coin_id = chain_metadata(chain_id).coingecko_id
            try:
                price = await self._fetch_price(coin_id)
                if price is not None:
                    return price
            except httpx.HTTPError as exc:
                self._logger.warning("coingecko price lookup for %s failed: %s", coin_id, exc)
        return self._fallback(chain_id.value)
