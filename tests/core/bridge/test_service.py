"""Tests for BridgeService wiring and timeouts."""

import asyncio

import pytest
from unittest.mock import AsyncMock

from evmbridge.core.bridge.errors import InvalidBridgeRequest, ProviderTimeout
from evmbridge.core.bridge.fees import FeeModel
from evmbridge.core.bridge.planner import RoutePlanner
from evmbridge.core.bridge.service import BridgeService, get_bridge_service
from evmbridge.core.bridge.tracker import TransferTracker
from evmbridge.core.chain_types import ChainId

from bridge_fakes import TX_HASH, StaticPrices


@pytest.fixture
def service(registry, gas_providers, eth_prices):
    fee_model = FeeModel(registry, gas_providers, eth_prices, default_gas_price=lambda chain: None)
    return BridgeService(
        registry=registry,
        providers=gas_providers,
        price_provider=eth_prices,
        fee_model=fee_model,
    )


class TestDelegation:

    @pytest.mark.asyncio
    async def test_find_routes_with_fees(self, service):
        result = await service.find_routes("ethereum", "arbitrum", "ETH", amount="1")

        assert result.source == ChainId.ETHEREUM
        assert result.routes[0].fee_estimate is not None

    @pytest.mark.asyncio
    async def test_estimate_fee(self, service):
        estimate = await service.estimate_fee("ethereum", "arbitrum", "1", protocol="canonical")
        assert estimate.protocol == "canonical"
        assert estimate.total_fee > 0

    @pytest.mark.asyncio
    async def test_track_transfer_not_found(self, service):
        progress = await service.track_transfer("ethereum", "polygon", TX_HASH)
        assert progress.current_status == "TRANSACTION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_errors_propagate(self, service):
        with pytest.raises(InvalidBridgeRequest):
            await service.find_routes("ethereum", "ethereum", "ETH")

    @pytest.mark.asyncio
    async def test_tracker_receives_arguments(self, registry):
        tracker = AsyncMock(spec=TransferTracker)
        service = BridgeService(registry=registry, price_provider=StaticPrices(), tracker=tracker)

        await service.track_transfer("base", "ethereum", TX_HASH, user_address="0xabc", timeout=3)

        tracker.track_transfer.assert_awaited_once_with(
            "base", "ethereum", TX_HASH, bridge_protocol=None, user_address="0xabc", timeout=3,
        )


class TestTimeouts:

    @pytest.mark.asyncio
    async def test_find_routes_timeout(self, registry):
        planner = AsyncMock(spec=RoutePlanner)

        async def slow(*args, **kwargs):
            await asyncio.sleep(1)

        planner.find_routes.side_effect = slow
        service = BridgeService(registry=registry, price_provider=StaticPrices(), planner=planner)

        with pytest.raises(ProviderTimeout) as exc_info:
            await service.find_routes("ethereum", "base", "ETH", timeout=0.01)
        assert exc_info.value.details["operation"] == "find_routes"

    @pytest.mark.asyncio
    async def test_inspect_timeout(self, registry):
        tracker = AsyncMock(spec=TransferTracker)

        async def slow(*args, **kwargs):
            await asyncio.sleep(1)

        tracker.inspect_transaction.side_effect = slow
        service = BridgeService(registry=registry, price_provider=StaticPrices(), tracker=tracker)

        with pytest.raises(ProviderTimeout):
            await service.inspect_transaction("ethereum", TX_HASH, timeout=0.01)


class TestHealth:

    @pytest.mark.asyncio
    async def test_health_reports_chains_and_prices(self, service):
        health = await service.health()
        assert health["prices"] == {"status": "healthy"}
        assert set(health["chains"]) >= {"ethereum", "base"}


def test_service_singleton():
    assert get_bridge_service() is get_bridge_service()
