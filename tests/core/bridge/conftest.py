"""Fixtures for the bridge subsystem tests."""

from decimal import Decimal

import pytest
from unittest.mock import AsyncMock

from bridge_fakes import GWEI, FakeChainProvider, StaticPrices
from evmbridge.core.bridge.registry import BridgeRegistry
from evmbridge.core.chain_types import ChainId
from evmbridge.providers.base import ChainProvider
from evmbridge.providers.rpc import ProviderRegistry


@pytest.fixture
def registry():
    return BridgeRegistry()


@pytest.fixture
def eth_prices():
    return StaticPrices({
        "ethereum": Decimal("3000"),
        "arbitrum": Decimal("3000"),
        "optimism": Decimal("3000"),
        "base": Decimal("3000"),
        "polygon": Decimal("0.5"),
        "avalanche": Decimal("30"),
        "bsc": Decimal("600"),
        "worldchain": Decimal("2"),
    })


@pytest.fixture
def gas_providers():
    """Every chain answers 10 gwei except the L2s at 1 gwei."""
    providers = {chain: FakeChainProvider(chain.value, gas_price=10 * GWEI) for chain in ChainId}
    for chain in (ChainId.ARBITRUM, ChainId.OPTIMISM, ChainId.BASE):
        providers[chain].gas_price = 1 * GWEI
    return ProviderRegistry(providers)


@pytest.fixture
def failing_provider():
    provider = AsyncMock(spec=ChainProvider)
    provider.get_fee_data.side_effect = RuntimeError("connection refused")
    provider.get_block_number.side_effect = RuntimeError("connection refused")
    return provider
