"""Bridge fee model: live gas prices combined with per-protocol fee schedules."""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from ...config import settings
from ...providers.base import PriceProvider
from ...providers.rpc import ProviderRegistry
from ..chain_types import ChainId, chain_metadata, is_optimistic_exit
from .errors import FeeUnavailable, InvalidBridgeRequest, ProviderUnavailable, classify_provider_error
from .models import AlternativeBridge, FeeEstimate, FeeStructure, GasQuote, Urgency
from .registry import BridgeRegistry
from .validation import chain_pair, parse_amount

WEI = Decimal(10**18)

# Gas units per bridge leg; protocol-agnostic constants rather than per-call estimates
GAS_UNITS: Dict[str, int] = {
    "deposit": 150_000,   # source chain deposit
    "relay": 50_000,      # relayer delivery on the destination
    "mint": 100_000,      # destination mint/release
    "finalize": 200_000,  # L2 -> L1 finalization on the settlement chain
}

URGENCY_MULTIPLIERS: Dict[Urgency, Decimal] = {
    Urgency.ECONOMY: Decimal("0.8"),
    Urgency.STANDARD: Decimal("1.0"),
    Urgency.FAST: Decimal("1.5"),
}

RELAYER_MARKUP = Decimal("1.2")

PROTOCOL_TIME_ESTIMATES: Dict[str, str] = {
    "canonical": "15-60 min",
    "hop": "5-10 min",
    "stargate": "1-5 min",
    "across": "1-10 min",
}
DEFAULT_TIME_ESTIMATE = "5-30 min"


def parse_urgency(value: Any) -> Urgency:
    if isinstance(value, Urgency):
        return value
    try:
        return Urgency(str(value or "standard").lower())
    except ValueError:
        raise InvalidBridgeRequest(
            f"Unknown urgency: {value!r}",
            suggestion="Use one of: economy, standard, fast",
        ) from None


class FeeModel:
    """Estimates the cost of a bridge transfer in source-chain native units and USD."""

    def __init__(
        self,
        registry: BridgeRegistry,
        providers: ProviderRegistry,
        price_provider: PriceProvider,
        *,
        default_gas_price: Optional[Callable[[str], Optional[int]]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._registry = registry
        self._providers = providers
        self._prices = price_provider
        self._default_gas_price = default_gas_price or settings.default_gas_price_wei
        self._logger = logger or logging.getLogger(__name__)

    async def _live_gas_price(self, chain: ChainId) -> int:
        fee_data = await self._providers.get(chain).get_fee_data()
        if fee_data.gas_price is None:
            raise ProviderUnavailable(
                f"{chain.value} returned no gas price",
                chain=chain.value,
                operation="eth_gasPrice",
            )
        return fee_data.gas_price

    def _resolve_gas_price(self, chain: ChainId, live: Any) -> Tuple[int, bool]:
        if isinstance(live, int):
            return live, True

        error = classify_provider_error(live, chain=chain.value, operation="get_fee_data")
        default = self._default_gas_price(chain.value)
        if default is None:
            raise FeeUnavailable(
                f"No gas price available for {chain.value}",
                details={"chain": chain.value, "providerError": error.to_dict()},
            )
        self._logger.warning(
            "live gas price unavailable on %s (%s), using default %s wei",
            chain.value,
            error.message,
            default,
        )
        return default, False

    async def gas_quote(self, source: ChainId, target: ChainId) -> GasQuote:
        """Fetch both chains' gas prices concurrently; each leg falls back independently."""
        source_live, target_live = await asyncio.gather(
            self._live_gas_price(source),
            self._live_gas_price(target),
            return_exceptions=True,
        )
        source_price, source_is_live = self._resolve_gas_price(source, source_live)
        target_price, target_is_live = self._resolve_gas_price(target, target_live)
        return GasQuote(
            source_gas_price=source_price,
            target_gas_price=target_price,
            source_is_live=source_is_live,
            target_is_live=target_is_live,
        )

    async def _native_price(self, chain: ChainId) -> Optional[Decimal]:
        try:
            return await self._prices.get_native_price_usd(chain.value)
        except Exception as exc:
            # Price data only affects USD display, never the native-unit totals
            self._logger.warning("native price lookup for %s failed: %s", chain.value, exc)
            return None

    async def native_prices(self, source: ChainId, target: ChainId) -> Tuple[Optional[Decimal], Optional[Decimal]]:
        source_price, target_price = await asyncio.gather(
            self._native_price(source),
            self._native_price(target),
        )
        return source_price, target_price

    @staticmethod
    def _target_to_source_rate(
        source: ChainId,
        target: ChainId,
        source_price: Optional[Decimal],
        target_price: Optional[Decimal],
    ) -> Decimal:
        if chain_metadata(source).native_symbol == chain_metadata(target).native_symbol:
            return Decimal(1)
        if not source_price or not target_price:
            raise FeeUnavailable(
                f"Cannot price {target.value} gas in {chain_metadata(source).native_symbol}",
                suggestion="Retry when native token prices are available",
                details={"sourceChain": source.value, "targetChain": target.value},
            )
        return target_price / source_price

    def compute(
        self,
        source: ChainId,
        target: ChainId,
        amount: Decimal,
        gas: GasQuote,
        *,
        protocol: Optional[str] = None,
        urgency: Urgency = Urgency.STANDARD,
        source_price: Optional[Decimal] = None,
        target_price: Optional[Decimal] = None,
        include_alternatives: bool = True,
    ) -> FeeEstimate:
        """Pure fee computation given a gas quote and native prices."""
        rate = self._target_to_source_rate(source, target, source_price, target_price)
        source_gas_native = Decimal(gas.source_gas_price) / WEI
        target_gas_native = Decimal(gas.target_gas_price) / WEI

        source_chain_gas = GAS_UNITS["deposit"] * source_gas_native * URGENCY_MULTIPLIERS[urgency]
        target_chain_gas = GAS_UNITS["mint"] * target_gas_native * rate
        relayer_fee = GAS_UNITS["relay"] * target_gas_native * RELAYER_MARKUP * rate

        finalization_cost: Optional[Decimal] = None
        if is_optimistic_exit(source, target):
            finalization_cost = GAS_UNITS["finalize"] * target_gas_native * rate

        gas_total = source_chain_gas + target_chain_gas + relayer_fee + (finalization_cost or Decimal(0))

        structure: Optional[FeeStructure] = None
        protocol_fee = Decimal(0)
        selected = self._registry.resolve_fee_protocol(protocol) if protocol else None
        if protocol:
            structure = self._registry.protocol_fee_structure(protocol, source, target)
            protocol_fee = structure.protocol_fee(amount)

        total_fee = gas_total + protocol_fee
        total_fee_usd = total_fee * source_price if source_price is not None else None

        estimate = FeeEstimate(
            source_chain=source,
            target_chain=target,
            amount=amount,
            protocol=selected,
            urgency=urgency,
            source_chain_gas=source_chain_gas,
            target_chain_gas=target_chain_gas,
            relayer_fee=relayer_fee,
            protocol_fee=protocol_fee,
            finalization_cost=finalization_cost,
            total_fee=total_fee,
            total_fee_usd=total_fee_usd,
            gas=gas,
            fee_structure=structure,
        )
        if include_alternatives:
            estimate.alternative_bridges = self._alternatives(
                source, target, amount, gas_total, selected, source_price
            )
        estimate.warnings = self._warnings(estimate)
        estimate.recommendations = self._recommendations(estimate)
        return estimate

    def _alternatives(
        self,
        source: ChainId,
        target: ChainId,
        amount: Decimal,
        gas_total: Decimal,
        selected: Optional[str],
        source_price: Optional[Decimal],
    ) -> List[AlternativeBridge]:
        alternatives: List[AlternativeBridge] = []
        for fee_protocol in self._registry.fee_protocols_between(source, target):
            if fee_protocol == selected:
                continue
            structure = self._registry.protocol_fee_structure(fee_protocol, source, target)
            total = gas_total + structure.protocol_fee(amount)
            alternatives.append(
                AlternativeBridge(
                    protocol=fee_protocol,
                    total_fee=total,
                    total_fee_usd=total * source_price if source_price is not None else None,
                    protocol_fee_percent=structure.percentage,
                    estimated_time=PROTOCOL_TIME_ESTIMATES.get(fee_protocol, DEFAULT_TIME_ESTIMATE),
                )
            )
        alternatives.sort(key=lambda alt: alt.total_fee_usd if alt.total_fee_usd is not None else alt.total_fee)
        return alternatives

    @staticmethod
    def _warnings(estimate: FeeEstimate) -> List[str]:
        warnings: List[str] = []
        if estimate.total_fee > estimate.amount * Decimal("0.01"):
            warnings.append("Fees exceed 1% of transfer amount")
        if estimate.urgency == Urgency.FAST:
            warnings.append("Fast mode may result in overpaying for gas")
        if not estimate.protocol:
            warnings.append("Consider comparing multiple bridge protocols")
        if estimate.fee_structure is not None and estimate.fee_structure.is_fallback:
            warnings.append(
                f"No published fee schedule for {estimate.protocol}; "
                f"using a conservative {estimate.fee_structure.percentage}% estimate"
            )
        if not estimate.gas.source_is_live:
            warnings.append(f"Live gas price unavailable on {estimate.source_chain.value}; using configured default")
        if not estimate.gas.target_is_live:
            warnings.append(f"Live gas price unavailable on {estimate.target_chain.value}; using configured default")
        if estimate.total_fee_usd is None:
            warnings.append("USD price unavailable; fees shown in native units only")
        return warnings

    @staticmethod
    def _recommendations(estimate: FeeEstimate) -> List[str]:
        recommendations: List[str] = []
        cheapest = estimate.alternative_bridges[0] if estimate.alternative_bridges else None
        if cheapest is not None and cheapest.total_fee < estimate.total_fee and estimate.total_fee > 0:
            saving = (1 - cheapest.total_fee / estimate.total_fee) * 100
            recommendations.append(f"Consider {cheapest.protocol} for {saving:.1f}% lower fees")
        else:
            recommendations.append("Current selection is most economical")
        if estimate.total_fee_usd is not None and estimate.total_fee_usd > 50:
            recommendations.append("Consider batching multiple transfers to amortize fees")
        if estimate.urgency != Urgency.ECONOMY:
            recommendations.append("Economy mode can save 20% on source chain gas")
        return recommendations

    async def estimate_fee(
        self,
        source: Any,
        target: Any,
        amount: Any,
        *,
        protocol: Optional[str] = None,
        urgency: Any = Urgency.STANDARD,
    ) -> FeeEstimate:
        """Estimate the total cost of bridging ``amount`` from ``source`` to ``target``.

        Raises:
            ChainUnsupported: unknown chain.
            InvalidBridgeRequest: same chain, bad amount or urgency.
            FeeUnavailable: a chain has neither live nor default gas price.
        """
        source_id, target_id = chain_pair(source, target)
        value = parse_amount(amount)
        urgency_mode = parse_urgency(urgency)

        gas, (source_price, target_price) = await asyncio.gather(
            self.gas_quote(source_id, target_id),
            self.native_prices(source_id, target_id),
        )
        return self.compute(
            source_id,
            target_id,
            value,
            gas,
            protocol=protocol,
            urgency=urgency_mode,
            source_price=source_price,
            target_price=target_price,
        )
