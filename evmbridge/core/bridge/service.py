"""BridgeService wires the registry, fee model, planner and tracker together."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Dict, Optional, TypeVar

from ...logging_config import get_logger, log_context
from ...providers.base import PriceProvider
from ...providers.coingecko import CoingeckoProvider
from ...providers.rpc import ProviderRegistry
from .errors import BridgeError, ProviderTimeout
from .fees import FeeModel
from .models import FeeEstimate, RouteSearchResult, TransferProgress
from .planner import PreferencesInput, RoutePlanner
from .registry import BridgeRegistry, get_bridge_registry
from .tracker import TransferTracker

T = TypeVar("T")

log = get_logger(__name__)


class BridgeService:
    """Entry point for route search, fee estimation and transfer tracking."""

    def __init__(
        self,
        *,
        registry: Optional[BridgeRegistry] = None,
        providers: Optional[ProviderRegistry] = None,
        price_provider: Optional[PriceProvider] = None,
        fee_model: Optional[FeeModel] = None,
        planner: Optional[RoutePlanner] = None,
        tracker: Optional[TransferTracker] = None,
    ) -> None:
        self.registry = registry or get_bridge_registry()
        self.providers = providers or ProviderRegistry()
        self.prices = price_provider or CoingeckoProvider()
        self.fee_model = fee_model or FeeModel(self.registry, self.providers, self.prices)
        self.planner = planner or RoutePlanner(self.registry, self.fee_model)
        self.tracker = tracker or TransferTracker(self.providers)

    @staticmethod
    async def _bounded(awaitable: Awaitable[T], timeout: Optional[float], operation: str) -> T:
        if timeout is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout)
        except asyncio.TimeoutError:
            raise ProviderTimeout(f"{operation} timed out after {timeout}s", operation=operation) from None

    async def find_routes(
        self,
        source: Any,
        target: Any,
        asset: str,
        *,
        amount: Any = None,
        preferences: PreferencesInput = None,
        timeout: Optional[float] = None,
    ) -> RouteSearchResult:
        with log_context(operation="find_routes", source=str(source), target=str(target), asset=asset):
            try:
                result = await self._bounded(
                    self.planner.find_routes(source, target, asset, amount=amount, preferences=preferences),
                    timeout,
                    "find_routes",
                )
            except BridgeError as exc:
                log.warning("find_routes_failed", category=exc.category.value, error=exc.message)
                raise
            log.info("routes_found", routes=len(result.routes), reason=result.reason)
        return result

    async def estimate_fee(
        self,
        source: Any,
        target: Any,
        amount: Any,
        *,
        protocol: Optional[str] = None,
        urgency: Any = "standard",
        timeout: Optional[float] = None,
    ) -> FeeEstimate:
        with log_context(operation="estimate_fee", source=str(source), target=str(target), protocol=protocol):
            try:
                estimate = await self._bounded(
                    self.fee_model.estimate_fee(source, target, amount, protocol=protocol, urgency=urgency),
                    timeout,
                    "estimate_fee",
                )
            except BridgeError as exc:
                log.warning("estimate_fee_failed", category=exc.category.value, error=exc.message)
                raise
            log.info(
                "fee_estimated",
                total_fee=str(estimate.total_fee),
                live_gas=estimate.gas.source_is_live and estimate.gas.target_is_live,
            )
        return estimate

    async def track_transfer(
        self,
        source: Any,
        target: Any,
        tx_hash: str,
        *,
        bridge_protocol: Optional[str] = None,
        user_address: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> TransferProgress:
        with log_context(operation="track_transfer", source=str(source), target=str(target), tx_hash=tx_hash):
            try:
                progress = await self.tracker.track_transfer(
                    source,
                    target,
                    tx_hash,
                    bridge_protocol=bridge_protocol,
                    user_address=user_address,
                    timeout=timeout,
                )
            except BridgeError as exc:
                log.warning("track_transfer_failed", category=exc.category.value, error=exc.message)
                raise
            log.info(
                "transfer_tracked",
                phase=progress.current_phase.value,
                progress=progress.overall_progress,
                leg_errors=sorted(progress.leg_errors),
            )
        return progress

    async def inspect_transaction(
        self,
        chain: Any,
        tx_hash: str,
        *,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        with log_context(operation="inspect_transaction", chain=str(chain), tx_hash=tx_hash):
            return await self._bounded(
                self.tracker.inspect_transaction(chain, tx_hash),
                timeout,
                "inspect_transaction",
            )

    async def health(self) -> Dict[str, Any]:
        chains, prices = await asyncio.gather(
            self.providers.health(),
            self.prices.health_check(),
        )
        return {"chains": chains, "prices": prices}


_service: Optional[BridgeService] = None


def get_bridge_service() -> BridgeService:
    global _service
    if _service is None:
        _service = BridgeService()
    return _service
