"""Route discovery over the bridge registry.

Planning itself is pure: the same registry and inputs always produce the
same ranked routes. Live fee estimates are attached afterwards when an
amount is supplied and a fee model is configured.
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Union

from ..chain_types import ChainId, chain_metadata, is_optimistic_exit
from .errors import BridgeError, ErrorCategory, InvalidBridgeRequest
from .fees import FeeModel
from .models import (
    SPEED_RANK,
    BridgeEdge,
    BridgeSecurity,
    BridgeSpeed,
    Liquidity,
    RiskLevel,
    Route,
    RoutePreferences,
    RouteSearchResult,
)
from .registry import BridgeRegistry
from .validation import chain_pair, is_address_like, parse_amount

HUB_CHAINS: Sequence[ChainId] = (ChainId.ETHEREUM, ChainId.POLYGON, ChainId.ARBITRUM)

# Multi-hop search only runs when fewer direct routes than this were found
MULTI_HOP_THRESHOLD = 3

TIME_ESTIMATES: Dict[BridgeSpeed, str] = {
    BridgeSpeed.INSTANT: "1-2 minutes",
    BridgeSpeed.FAST: "5-15 minutes",
    BridgeSpeed.STANDARD: "15-60 minutes",
    BridgeSpeed.SLOW: "3-7 days",
}

MULTI_HOP_TIME_ESTIMATES: Dict[BridgeSpeed, str] = {
    BridgeSpeed.INSTANT: "5-10 minutes",
    BridgeSpeed.FAST: "15-30 minutes",
    BridgeSpeed.STANDARD: "30-90 minutes",
    BridgeSpeed.SLOW: "3-7 days",
}

FEE_ESTIMATES: Dict[BridgeSecurity, str] = {
    BridgeSecurity.CANONICAL: "0.1-0.3%",
    BridgeSecurity.OPTIMISTIC: "0.1-0.5%",
    BridgeSecurity.THIRD_PARTY: "0.05-0.25%",
}
MULTI_HOP_FEE_ESTIMATE = "0.2-0.6%"

LIQUIDITY_RANK: Dict[Liquidity, int] = {Liquidity.HIGH: 0, Liquidity.MEDIUM: 1, Liquidity.LOW: 2}

ALTERNATIVE_OPTIONS: List[str] = [
    "Consider swapping to a bridgeable token first",
    "Use a DEX aggregator with cross-chain support",
    "Break into multiple smaller bridges",
    "Wait for new bridge deployments",
]

SECURITY_TIPS: List[str] = [
    "Always verify contract addresses before bridging",
    "Start with small test amounts for new routes",
    "Canonical bridges are most secure but slower",
    "Check bridge TVL and audit history",
    "Be aware of withdrawal delays on optimistic rollups (7 days)",
]

PreferencesInput = Union[RoutePreferences, Dict[str, Any], None]


def _parse_preferences(raw: PreferencesInput) -> RoutePreferences:
    prefs = raw if isinstance(raw, RoutePreferences) else RoutePreferences.from_dict(raw)
    speeds = {"any"} | {speed.value for speed in BridgeSpeed}
    securities = {"any"} | {sec.value for sec in BridgeSecurity if sec != BridgeSecurity.MIXED}
    if prefs.speed not in speeds:
        raise InvalidBridgeRequest(
            f"Unknown speed preference: {prefs.speed!r}",
            suggestion=f"Use one of: {', '.join(sorted(speeds))}",
        )
    if prefs.security not in securities:
        raise InvalidBridgeRequest(
            f"Unknown security preference: {prefs.security!r}",
            suggestion=f"Use one of: {', '.join(sorted(securities))}",
        )
    if prefs.max_hops < 1:
        raise InvalidBridgeRequest(
            f"maxHops must be at least 1, got {prefs.max_hops}",
            suggestion="Use 1 for direct routes only or 2 to allow a hub chain",
        )
    return prefs


def resolve_asset(asset: str, source: ChainId) -> str:
    """Upper-cased symbol; token addresses fall back to the source chain's native symbol."""
    value = (asset or "").strip()
    if not value:
        raise InvalidBridgeRequest("Token symbol is required", suggestion="Pass a symbol such as USDC or ETH")
    if is_address_like(value):
        return chain_metadata(source).native_symbol
    return value.upper()


def asset_candidates(symbol: str, source: ChainId) -> FrozenSet[str]:
    """Symbols an edge may list for ``symbol``; native and wrapped-native are interchangeable."""
    meta = chain_metadata(source)
    natives = frozenset({meta.native_symbol, meta.wrapped_native_symbol})
    if symbol in natives:
        return natives
    return frozenset({symbol})


def _edge_supports(edge: BridgeEdge, candidates: FrozenSet[str]) -> bool:
    return bool(edge.supported_assets & candidates)


def _effective_speed(edge: BridgeEdge, source: ChainId, target: ChainId) -> BridgeSpeed:
    # Canonical rollup withdrawals wait out the fraud-proof window
    if edge.security == BridgeSecurity.CANONICAL and is_optimistic_exit(source, target):
        return BridgeSpeed.SLOW
    return edge.speed


def _aggregate_speed(speeds: Sequence[BridgeSpeed]) -> BridgeSpeed:
    if any(speed == BridgeSpeed.SLOW for speed in speeds):
        return BridgeSpeed.SLOW
    if all(speed in (BridgeSpeed.INSTANT, BridgeSpeed.FAST) for speed in speeds):
        return BridgeSpeed.FAST
    return BridgeSpeed.STANDARD


def _aggregate_security(securities: Sequence[BridgeSecurity]) -> BridgeSecurity:
    first = securities[0]
    if all(sec == first for sec in securities):
        return first
    return BridgeSecurity.MIXED


def classify_risk(route: Route) -> RiskLevel:
    if route.security == BridgeSecurity.CANONICAL and route.is_direct:
        return RiskLevel.LOW
    if route.security == BridgeSecurity.THIRD_PARTY and not route.is_direct:
        return RiskLevel.HIGH
    return RiskLevel.MEDIUM


def rank_routes(routes: List[Route]) -> List[Route]:
    """Stable sort: fewer hops, then canonical, then faster."""
    return sorted(
        routes,
        key=lambda route: (
            len(route.path),
            0 if route.security == BridgeSecurity.CANONICAL else 1,
            SPEED_RANK[route.speed],
        ),
    )


def assess_risk(routes: List[Route]) -> Dict[str, Any]:
    first = routes[0] if routes else None
    return {
        "safestRoute": next((r for r in routes if r.risk == RiskLevel.LOW), first),
        "fastestRoute": next((r for r in routes if r.estimated_time == TIME_ESTIMATES[BridgeSpeed.INSTANT]), first),
        "cheapestRoute": next((r for r in routes if "0.05" in r.estimated_fee_percent), first),
        RiskLevel.LOW.value: [r for r in routes if r.risk == RiskLevel.LOW],
        RiskLevel.MEDIUM.value: [r for r in routes if r.risk == RiskLevel.MEDIUM],
        RiskLevel.HIGH.value: [r for r in routes if r.risk == RiskLevel.HIGH],
    }


class RoutePlanner:
    """Finds direct and hub-chain bridge routes between two chains."""

    def __init__(
        self,
        registry: BridgeRegistry,
        fee_model: Optional[FeeModel] = None,
        *,
        hubs: Sequence[ChainId] = HUB_CHAINS,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._registry = registry
        self._fee_model = fee_model
        self._hubs = tuple(hubs)
        self._logger = logger or logging.getLogger(__name__)

    def _contract_entry(self, edge: BridgeEdge, source: ChainId, target: ChainId) -> Dict[str, Any]:
        deployment = self._registry.deployment(source, target, edge.protocol)
        return {
            "protocol": edge.protocol,
            "from": source.value,
            "to": target.value,
            "contractAddress": deployment.contract_address if deployment else None,
            "entrypoints": [
                {"signature": probe.signature, "selector": probe.selector}
                for probe in self._registry.entrypoint_probes(edge.protocol)
            ],
        }

    @staticmethod
    def _edge_warnings(edge: BridgeEdge, source: ChainId, target: ChainId) -> List[str]:
        warnings: List[str] = []
        if edge.security == BridgeSecurity.THIRD_PARTY:
            warnings.append(f"{edge.protocol} is a third-party bridge - ensure you trust the protocol")
        if edge.liquidity == Liquidity.LOW:
            warnings.append(f"{edge.protocol} has low liquidity - large transfers may fail or incur slippage")
        if edge.security == BridgeSecurity.CANONICAL and is_optimistic_exit(source, target):
            warnings.append(f"Withdrawals from {source.value} to {target.value} wait out a 7 day challenge period")
        return warnings

    def _direct_route(
        self,
        edge: BridgeEdge,
        source: ChainId,
        target: ChainId,
        asset: str,
        amount: Optional[Decimal],
    ) -> Route:
        speed = _effective_speed(edge, source, target)
        time_estimate = TIME_ESTIMATES[speed]
        route = Route(
            path=[source, target],
            bridges=[edge.protocol],
            speed=speed,
            estimated_time=time_estimate,
            estimated_fee_percent=FEE_ESTIMATES.get(edge.security, MULTI_HOP_FEE_ESTIMATE),
            security=edge.security,
            liquidity=edge.liquidity,
            steps=[
                f"Approve {asset} spending on {source.value}",
                f"Initiate bridge transaction via {edge.protocol}",
                f"Wait for confirmation ({time_estimate})",
                f"Receive {asset} on {target.value}",
            ],
            warnings=self._edge_warnings(edge, source, target),
            contracts=[self._contract_entry(edge, source, target)],
        )
        if amount is not None:
            structure = self._registry.protocol_fee_structure(edge.protocol, source, target)
            route.estimated_protocol_fee = structure.protocol_fee(amount)
        return route

    def _first_leg(
        self,
        source: ChainId,
        target: ChainId,
        candidates: FrozenSet[str],
        prefs: RoutePreferences,
    ) -> Optional[BridgeEdge]:
        for edge in self._registry.edges_between(source, target):
            if not _edge_supports(edge, candidates):
                continue
            if prefs.security != "any" and edge.security.value != prefs.security:
                continue
            return edge
        return None

    def _multi_hop_routes(
        self,
        source: ChainId,
        target: ChainId,
        asset: str,
        candidates: FrozenSet[str],
        prefs: RoutePreferences,
    ) -> List[Route]:
        routes: List[Route] = []
        for hub in self._hubs:
            if hub in (source, target):
                continue
            first = self._first_leg(source, hub, candidates, prefs)
            second = self._first_leg(hub, target, candidates, prefs) if first else None
            if first is None or second is None:
                continue

            speed = _aggregate_speed([
                _effective_speed(first, source, hub),
                _effective_speed(second, hub, target),
            ])
            if prefs.speed != "any" and speed.value != prefs.speed:
                continue

            warnings = ["Multi-hop route - higher fees and longer time"]
            for edge, leg_source, leg_target in ((first, source, hub), (second, hub, target)):
                for warning in self._edge_warnings(edge, leg_source, leg_target):
                    if warning not in warnings:
                        warnings.append(warning)

            routes.append(
                Route(
                    path=[source, hub, target],
                    bridges=[first.protocol, second.protocol],
                    speed=speed,
                    estimated_time=MULTI_HOP_TIME_ESTIMATES[speed],
                    estimated_fee_percent=MULTI_HOP_FEE_ESTIMATE,
                    security=_aggregate_security([first.security, second.security]),
                    liquidity=max((first.liquidity, second.liquidity), key=LIQUIDITY_RANK.__getitem__),
                    steps=[
                        f"Bridge {asset} from {source.value} to {hub.value} via {first.protocol}",
                        f"Bridge {asset} from {hub.value} to {target.value} via {second.protocol}",
                    ],
                    warnings=warnings,
                    contracts=[
                        self._contract_entry(first, source, hub),
                        self._contract_entry(second, hub, target),
                    ],
                )
            )
        return routes

    def _missing_reason(self, source: ChainId, target: ChainId, candidates: FrozenSet[str]) -> str:
        endpoints = {source, target}
        if not any(self._registry.chains_with_asset(symbol) & endpoints for symbol in candidates):
            return ErrorCategory.ASSET_NOT_SUPPORTED.value
        return ErrorCategory.ROUTE_NOT_FOUND.value

    def plan(
        self,
        source: Any,
        target: Any,
        asset: str,
        *,
        amount: Any = None,
        preferences: PreferencesInput = None,
    ) -> RouteSearchResult:
        """Pure route search; no provider calls."""
        source_id, target_id = chain_pair(source, target)
        prefs = _parse_preferences(preferences)
        value = parse_amount(amount) if amount is not None else None
        symbol = resolve_asset(asset, source_id)
        candidates = asset_candidates(symbol, source_id)

        routes: List[Route] = []
        for edge in self._registry.edges_between(source_id, target_id):
            if not _edge_supports(edge, candidates):
                continue
            if prefs.security != "any" and edge.security.value != prefs.security:
                continue
            if prefs.speed != "any" and _effective_speed(edge, source_id, target_id).value != prefs.speed:
                continue
            routes.append(self._direct_route(edge, source_id, target_id, symbol, value))

        if prefs.max_hops >= 2 and len(routes) < MULTI_HOP_THRESHOLD:
            routes.extend(self._multi_hop_routes(source_id, target_id, symbol, candidates, prefs))

        routes = rank_routes(routes)
        for route in routes:
            route.risk = classify_risk(route)

        self._logger.debug(
            "planned %d routes %s -> %s for %s",
            len(routes),
            source_id.value,
            target_id.value,
            symbol,
        )
        return RouteSearchResult(
            source=source_id,
            target=target_id,
            asset=symbol,
            routes=routes,
            risk_assessment=assess_risk(routes),
            alternative_options=None if routes else list(ALTERNATIVE_OPTIONS),
            reason=None if routes else self._missing_reason(source_id, target_id, candidates),
            security_tips=list(SECURITY_TIPS),
        )

    async def find_routes(
        self,
        source: Any,
        target: Any,
        asset: str,
        *,
        amount: Any = None,
        preferences: PreferencesInput = None,
    ) -> RouteSearchResult:
        """Plan routes and, when ``amount`` is given, attach live fee estimates to direct routes."""
        result = self.plan(source, target, asset, amount=amount, preferences=preferences)
        if amount is None or self._fee_model is None or not result.routes:
            return result

        direct = [route for route in result.routes if route.is_direct]
        if not direct:
            return result

        value = parse_amount(amount)
        try:
            gas, (source_price, target_price) = await asyncio.gather(
                self._fee_model.gas_quote(result.source, result.target),
                self._fee_model.native_prices(result.source, result.target),
            )
            for route in direct:
                route.fee_estimate = self._fee_model.compute(
                    result.source,
                    result.target,
                    value,
                    gas,
                    protocol=route.bridges[0],
                    source_price=source_price,
                    target_price=target_price,
                    include_alternatives=False,
                )
        except BridgeError as exc:
            self._logger.warning("live fee estimate unavailable for %s -> %s: %s",
                                 result.source.value, result.target.value, exc.message)
            for route in direct:
                route.fee_estimate = None
                route.warnings.append(f"Live fee estimate unavailable: {exc.message}")
        return result
