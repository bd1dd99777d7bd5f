"""
Tests for the bridge fee model

Gas legs, urgency multipliers, finalization on rollup exits, fallbacks and
alternatives.
"""

import asyncio
from decimal import Decimal

import pytest

from evmbridge.core.bridge.errors import ChainUnsupported, FeeUnavailable, InvalidBridgeRequest
from evmbridge.core.bridge.fees import FeeModel, parse_urgency
from evmbridge.core.bridge.models import GasQuote, Urgency
from evmbridge.core.chain_types import ChainId
from evmbridge.providers.rpc import ProviderRegistry

from bridge_fakes import GWEI, FakeChainProvider, StaticPrices


@pytest.fixture
def fee_model(registry, gas_providers, eth_prices):
    return FeeModel(registry, gas_providers, eth_prices, default_gas_price=lambda chain: None)


class TestComputation:

    @pytest.mark.asyncio
    async def test_ethereum_to_arbitrum_canonical(self, fee_model):
        estimate = await fee_model.estimate_fee("ethereum", "arbitrum", "1", protocol="canonical")

        assert estimate.source_chain_gas == Decimal("0.0015")
        assert estimate.target_chain_gas == Decimal("0.0001")
        assert estimate.relayer_fee == Decimal("0.00006")
        assert estimate.protocol_fee == Decimal("0.002")
        assert estimate.finalization_cost is None
        assert estimate.total_fee == Decimal("0.00366")
        assert estimate.total_fee_usd == Decimal("10.98")
        assert estimate.gas.source_is_live and estimate.gas.target_is_live

    @pytest.mark.asyncio
    async def test_rollup_exit_adds_finalization_at_settlement_gas_price(self, fee_model):
        estimate = await fee_model.estimate_fee("arbitrum", "ethereum", "1", protocol="canonical")

        # Ethereum answers 10 gwei
        assert estimate.finalization_cost == Decimal("0.002")
        assert estimate.source_chain_gas == Decimal("0.00015")
        assert estimate.protocol_fee == Decimal("0.005")
        assert estimate.total_fee == (
            estimate.source_chain_gas
            + estimate.target_chain_gas
            + estimate.relayer_fee
            + estimate.finalization_cost
            + estimate.protocol_fee
        )

    @pytest.mark.asyncio
    async def test_polygon_exit_has_no_finalization(self, fee_model):
        estimate = await fee_model.estimate_fee("polygon", "ethereum", "100", protocol="canonical")
        assert estimate.finalization_cost is None

    @pytest.mark.asyncio
    async def test_percentage_fee_is_in_percent(self, fee_model):
        estimate = await fee_model.estimate_fee("ethereum", "arbitrum", "10", protocol="hop")
        assert estimate.protocol_fee == Decimal("0.025")

    @pytest.mark.asyncio
    async def test_destination_legs_converted_to_source_units(self, fee_model):
        estimate = await fee_model.estimate_fee("ethereum", "polygon", "1", protocol="hop")

        # 100k gas at 10 gwei POL, priced at 0.5 / 3000 ETH per POL
        expected_target = Decimal(100_000) * Decimal(10 * GWEI) / Decimal(10**18) * Decimal("0.5") / Decimal("3000")
        assert estimate.target_chain_gas == expected_target
        assert estimate.target_chain_gas < Decimal("0.000001")

    @pytest.mark.asyncio
    async def test_mismatched_natives_without_prices_is_unavailable(self, registry, gas_providers):
        model = FeeModel(registry, gas_providers, StaticPrices({}), default_gas_price=lambda chain: None)
        with pytest.raises(FeeUnavailable):
            await model.estimate_fee("ethereum", "polygon", "1")

    @pytest.mark.asyncio
    async def test_same_native_without_prices_has_no_usd(self, registry, gas_providers):
        model = FeeModel(registry, gas_providers, StaticPrices({}), default_gas_price=lambda chain: None)
        estimate = await model.estimate_fee("ethereum", "base", "1")
        assert estimate.total_fee > 0
        assert estimate.total_fee_usd is None
        assert "USD price unavailable; fees shown in native units only" in estimate.warnings

    def test_compute_is_pure(self, fee_model):
        gas = GasQuote(source_gas_price=20 * GWEI, target_gas_price=2 * GWEI, source_is_live=True, target_is_live=True)
        first = fee_model.compute(ChainId.ETHEREUM, ChainId.OPTIMISM, Decimal("2"), gas, protocol="across")
        second = fee_model.compute(ChainId.ETHEREUM, ChainId.OPTIMISM, Decimal("2"), gas, protocol="across")
        assert first.to_dict() == second.to_dict()
        assert first.protocol == "across"


class TestUrgency:

    @pytest.mark.asyncio
    async def test_fee_ordering(self, fee_model):
        fees = {}
        for urgency in ("economy", "standard", "fast"):
            estimate = await fee_model.estimate_fee("ethereum", "optimism", "5", protocol="across", urgency=urgency)
            fees[urgency] = estimate.total_fee

        assert fees["fast"] >= fees["standard"] >= fees["economy"]
        assert fees["fast"] > fees["economy"]

    @pytest.mark.asyncio
    async def test_multiplier_applies_to_source_leg_only(self, fee_model):
        economy = await fee_model.estimate_fee("ethereum", "base", "1", urgency="economy")
        fast = await fee_model.estimate_fee("ethereum", "base", "1", urgency=Urgency.FAST)

        assert economy.source_chain_gas == Decimal("0.0012")
        assert fast.source_chain_gas == Decimal("0.00225")
        assert economy.target_chain_gas == fast.target_chain_gas
        assert "Fast mode may result in overpaying for gas" in fast.warnings

    def test_parse_urgency(self):
        assert parse_urgency(None) == Urgency.STANDARD
        assert parse_urgency("FAST") == Urgency.FAST
        with pytest.raises(InvalidBridgeRequest):
            parse_urgency("ludicrous")


class TestGasFallbacks:

    @pytest.mark.asyncio
    async def test_configured_default_when_provider_fails(self, registry, eth_prices, failing_provider):
        providers = ProviderRegistry({
            ChainId.ETHEREUM: failing_provider,
            ChainId.ARBITRUM: FakeChainProvider(gas_price=1 * GWEI),
        })
        model = FeeModel(registry, providers, eth_prices, default_gas_price=lambda chain: 25 * GWEI)

        estimate = await model.estimate_fee("ethereum", "arbitrum", "1")

        assert estimate.gas.source_gas_price == 25 * GWEI
        assert not estimate.gas.source_is_live
        assert estimate.gas.target_is_live
        assert any("using configured default" in w for w in estimate.warnings)

    @pytest.mark.asyncio
    async def test_no_live_price_and_no_default_raises(self, registry, eth_prices, failing_provider):
        providers = ProviderRegistry({
            ChainId.ETHEREUM: FakeChainProvider(gas_price=10 * GWEI),
            ChainId.BASE: failing_provider,
        })
        model = FeeModel(registry, providers, eth_prices, default_gas_price=lambda chain: None)

        with pytest.raises(FeeUnavailable) as exc_info:
            await model.estimate_fee("ethereum", "base", "1")
        assert exc_info.value.details["chain"] == "base"

    @pytest.mark.asyncio
    async def test_missing_gas_price_field_uses_default(self, registry, eth_prices):
        providers = ProviderRegistry({
            ChainId.ETHEREUM: FakeChainProvider(gas_price=None),
            ChainId.BASE: FakeChainProvider(gas_price=1 * GWEI),
        })
        model = FeeModel(registry, providers, eth_prices, default_gas_price=lambda chain: 30 * GWEI)

        quote = await model.gas_quote(ChainId.ETHEREUM, ChainId.BASE)

        assert quote.source_gas_price == 30 * GWEI
        assert quote.source_is_live is False

    @pytest.mark.asyncio
    async def test_price_lookup_failure_only_drops_usd(self, registry, gas_providers):
        class BrokenPrices(StaticPrices):
            async def get_native_price_usd(self, chain):
                raise RuntimeError("rate limited")

        model = FeeModel(registry, gas_providers, BrokenPrices(), default_gas_price=lambda chain: None)
        estimate = await model.estimate_fee("arbitrum", "ethereum", "1")
        assert estimate.total_fee_usd is None
        assert estimate.total_fee > 0


class TestAlternativesAndAdvice:

    @pytest.mark.asyncio
    async def test_alternatives_sorted_and_exclude_selection(self, fee_model):
        estimate = await fee_model.estimate_fee("ethereum", "arbitrum", "1", protocol="hop")

        names = [alt.protocol for alt in estimate.alternative_bridges]
        assert "hop" not in names
        assert set(names) == {"canonical", "stargate", "across", "synapse", "celer"}
        totals = [alt.total_fee_usd for alt in estimate.alternative_bridges]
        assert totals == sorted(totals)
        assert names[0] == "celer"
        assert estimate.recommendations[0].startswith("Consider celer for")

    @pytest.mark.asyncio
    async def test_alternatives_limited_to_route(self, fee_model):
        estimate = await fee_model.estimate_fee("ethereum", "base", "1")
        assert {alt.protocol for alt in estimate.alternative_bridges} == {"canonical", "hop", "across", "synapse"}

    @pytest.mark.asyncio
    async def test_no_protocol_selected(self, fee_model):
        estimate = await fee_model.estimate_fee("ethereum", "arbitrum", "1")
        assert estimate.protocol is None
        assert estimate.protocol_fee == 0
        assert "Consider comparing multiple bridge protocols" in estimate.warnings

    @pytest.mark.asyncio
    async def test_high_fee_warning(self, fee_model):
        estimate = await fee_model.estimate_fee("ethereum", "arbitrum", "0.01", protocol="canonical")
        assert "Fees exceed 1% of transfer amount" in estimate.warnings

    @pytest.mark.asyncio
    async def test_fallback_fee_structure_is_flagged(self, fee_model):
        estimate = await fee_model.estimate_fee("avalanche", "ethereum", "10", protocol="avalanche-bridge")
        assert estimate.fee_structure.is_fallback
        assert estimate.protocol_fee == Decimal("0.01")
        assert estimate.to_dict()["feeStructureFallback"] is True
        assert any("No published fee schedule" in w for w in estimate.warnings)

    @pytest.mark.asyncio
    async def test_to_dict_shape(self, fee_model):
        data = (await fee_model.estimate_fee("arbitrum", "ethereum", "2", protocol="canonical")).to_dict()
        assert data["route"] == "arbitrum → ethereum"
        assert data["feeBreakdown"]["finalizationCost"] is not None
        assert data["feeBreakdown"]["totalFeeUSD"].startswith("$")
        assert data["gasPrices"]["target"] == "10 gwei"
        assert data["feePercentage"].endswith("%")


class TestValidation:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["0", "-1", "abc", "NaN"])
    async def test_bad_amounts(self, fee_model, amount):
        with pytest.raises(InvalidBridgeRequest):
            await fee_model.estimate_fee("ethereum", "arbitrum", amount)

    @pytest.mark.asyncio
    async def test_same_chain(self, fee_model):
        with pytest.raises(InvalidBridgeRequest):
            await fee_model.estimate_fee("ethereum", "eth", "1")

    @pytest.mark.asyncio
    async def test_unknown_chain(self, fee_model):
        with pytest.raises(ChainUnsupported):
            await fee_model.estimate_fee("solana", "ethereum", "1")


class TestConcurrentGasLegs:

    @pytest.mark.asyncio
    async def test_both_gas_legs_are_read_concurrently(self, registry, eth_prices):
        started = {ChainId.ETHEREUM: asyncio.Event(), ChainId.ARBITRUM: asyncio.Event()}

        class WaitsForOtherLeg(FakeChainProvider):
            def __init__(self, chain, other, **kwargs):
                super().__init__(chain.value, **kwargs)
                self.chain = chain
                self.other = other

            async def get_fee_data(self):
                started[self.chain].set()
                await started[self.other].wait()
                return await super().get_fee_data()

        providers = ProviderRegistry({
            ChainId.ETHEREUM: WaitsForOtherLeg(ChainId.ETHEREUM, ChainId.ARBITRUM, gas_price=10 * GWEI),
            ChainId.ARBITRUM: WaitsForOtherLeg(ChainId.ARBITRUM, ChainId.ETHEREUM, gas_price=1 * GWEI),
        })
        model = FeeModel(registry, providers, eth_prices, default_gas_price=lambda chain: None)

        quote = await asyncio.wait_for(model.gas_quote(ChainId.ETHEREUM, ChainId.ARBITRUM), timeout=1)

        assert quote == GasQuote(
            source_gas_price=10 * GWEI,
            target_gas_price=1 * GWEI,
            source_is_live=True,
            target_is_live=True,
        )
