"""Static catalog of bridge protocols, their deployments and fee structures."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from eth_utils import encode_hex, function_signature_to_4byte_selector

from ..chain_types import ChainId
from .models import (
    BridgeEdge,
    BridgeSecurity,
    BridgeSpeed,
    DeploymentKey,
    EdgeConfig,
    EntrypointProbe,
    FeeStructure,
    Liquidity,
)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

E = ChainId


def _edge(
    protocol: str,
    fee_protocol: str,
    chains: Iterable[ChainId],
    assets: Iterable[str],
    speed: BridgeSpeed,
    security: BridgeSecurity,
    liquidity: Liquidity,
    *,
    deployment_scoped: bool = False,
) -> BridgeEdge:
    return BridgeEdge(
        protocol=protocol,
        fee_protocol=fee_protocol,
        chains=frozenset(chains),
        supported_assets=frozenset(a.upper() for a in assets),
        speed=speed,
        security=security,
        liquidity=liquidity,
        deployment_scoped=deployment_scoped,
    )


# Catalog order is the discovery order used by the route planner
BRIDGE_EDGES: Tuple[BridgeEdge, ...] = (
    # Canonical bridges (most secure but slower)
    _edge("ethereum-polygon-canonical", "canonical", (E.ETHEREUM, E.POLYGON),
          ("ETH", "USDC", "USDT", "DAI", "WETH", "POL"),
          BridgeSpeed.STANDARD, BridgeSecurity.CANONICAL, Liquidity.HIGH, deployment_scoped=True),
    _edge("ethereum-arbitrum-canonical", "canonical", (E.ETHEREUM, E.ARBITRUM),
          ("ETH", "USDC", "USDT", "DAI", "WBTC", "LINK"),
          BridgeSpeed.STANDARD, BridgeSecurity.CANONICAL, Liquidity.HIGH, deployment_scoped=True),
    _edge("ethereum-optimism-canonical", "canonical", (E.ETHEREUM, E.OPTIMISM),
          ("ETH", "USDC", "DAI", "WBTC", "SNX", "LINK"),
          BridgeSpeed.SLOW, BridgeSecurity.CANONICAL, Liquidity.HIGH, deployment_scoped=True),
    _edge("ethereum-base-canonical", "canonical", (E.ETHEREUM, E.BASE),
          ("ETH", "USDC", "DAI"),
          BridgeSpeed.STANDARD, BridgeSecurity.CANONICAL, Liquidity.MEDIUM, deployment_scoped=True),
    _edge("worldchain-canonical", "canonical", (E.WORLDCHAIN, E.ETHEREUM, E.BASE),
          ("ETH", "USDC", "WLD"),
          BridgeSpeed.SLOW, BridgeSecurity.CANONICAL, Liquidity.LOW, deployment_scoped=True),
    # Fast bridges (third-party, faster but require trust)
    _edge("hop-protocol", "hop", (E.ETHEREUM, E.POLYGON, E.ARBITRUM, E.OPTIMISM, E.BASE),
          ("ETH", "USDC", "USDT", "DAI", "POL"),
          BridgeSpeed.FAST, BridgeSecurity.THIRD_PARTY, Liquidity.HIGH),
    _edge("stargate-finance", "stargate", (E.ETHEREUM, E.POLYGON, E.ARBITRUM, E.OPTIMISM, E.AVALANCHE, E.BSC),
          ("USDC", "USDT", "ETH", "FRAX", "DAI"),
          BridgeSpeed.INSTANT, BridgeSecurity.THIRD_PARTY, Liquidity.HIGH),
    _edge("across-protocol", "across", (E.ETHEREUM, E.POLYGON, E.ARBITRUM, E.OPTIMISM, E.BASE),
          ("ETH", "USDC", "WBTC", "DAI", "USDT"),
          BridgeSpeed.FAST, BridgeSecurity.THIRD_PARTY, Liquidity.MEDIUM),
    _edge("synapse-bridge", "synapse", (E.ETHEREUM, E.POLYGON, E.ARBITRUM, E.OPTIMISM, E.AVALANCHE, E.BSC, E.BASE),
          ("ETH", "USDC", "USDT", "DAI", "SYN"),
          BridgeSpeed.FAST, BridgeSecurity.THIRD_PARTY, Liquidity.HIGH),
    _edge("celer-cbridge", "celer", (E.ETHEREUM, E.POLYGON, E.ARBITRUM, E.OPTIMISM, E.AVALANCHE, E.BSC),
          ("ETH", "USDC", "USDT", "WBTC", "BUSD", "CELR"),
          BridgeSpeed.FAST, BridgeSecurity.THIRD_PARTY, Liquidity.MEDIUM),
    # Specialised routes
    _edge("avalanche-bridge", "avalanche-bridge", (E.ETHEREUM, E.AVALANCHE),
          ("AVAX", "WETH", "USDC", "USDT", "WBTC"),
          BridgeSpeed.STANDARD, BridgeSecurity.CANONICAL, Liquidity.HIGH, deployment_scoped=True),
    _edge("binance-bridge", "binance-bridge", (E.ETHEREUM, E.BSC),
          ("BNB", "ETH", "USDC", "USDT", "BUSD"),
          BridgeSpeed.STANDARD, BridgeSecurity.CANONICAL, Liquidity.HIGH, deployment_scoped=True),
)

# protocol -> source -> target -> contract; the zero address marks "not deployed"
RAW_DEPLOYMENTS: Dict[str, Dict[ChainId, Dict[ChainId, str]]] = {
    "ethereum-polygon-canonical": {
        E.ETHEREUM: {E.POLYGON: "0xA0c68C638235ee32657e8f720a23ceC1bFc77C77"},
        E.POLYGON: {E.ETHEREUM: "0x2890bA17EfE978480615e330ecB65333b880928e"},
    },
    "ethereum-arbitrum-canonical": {
        E.ETHEREUM: {E.ARBITRUM: "0x4Dbd4fc535Ac27206064B68FfCf827b0A60BAB3f"},
        E.ARBITRUM: {E.ETHEREUM: "0x0B9857ae2D4A3DBe74ffE1d7DF045bb7F96E4840"},
    },
    "ethereum-optimism-canonical": {
        E.ETHEREUM: {E.OPTIMISM: "0x99C9fc46f92E8a1c0deC1b1747d010903E884bE1"},
        E.OPTIMISM: {E.ETHEREUM: "0x4200000000000000000000000000000000000010"},
    },
    "ethereum-base-canonical": {
        E.ETHEREUM: {E.BASE: "0x3154Cf16ccdb4C6d922629664174b904d80F2C35"},
        E.BASE: {E.ETHEREUM: "0x3154Cf16ccdb4C6d922629664174b904d80F2C35"},
    },
    "worldchain-canonical": {
        E.WORLDCHAIN: {E.ETHEREUM: ZERO_ADDRESS, E.BASE: ZERO_ADDRESS},
    },
    "avalanche-bridge": {
        E.AVALANCHE: {E.ETHEREUM: "0x8EB8a3b98659Cce290402893d0123abb75E3ab28"},
        E.ETHEREUM: {E.AVALANCHE: ZERO_ADDRESS},
    },
    "binance-bridge": {
        E.BSC: {E.ETHEREUM: "0x4aa42145Aa6Ebf72e164C9bBC74fbD3788045016"},
        E.ETHEREUM: {E.BSC: ZERO_ADDRESS},
    },
}

# fee protocol -> route key ("source-target" or "default") -> (base, percent)
FEE_TABLE: Dict[str, Dict[str, Tuple[str, str]]] = {
    "canonical": {
        "ethereum-polygon": ("0.001", "0"),
        "ethereum-arbitrum": ("0.002", "0"),
        "ethereum-optimism": ("0.002", "0"),
        "ethereum-base": ("0.001", "0"),
        "polygon-ethereum": ("0.01", "0"),
        "arbitrum-ethereum": ("0.005", "0"),
        "optimism-ethereum": ("0.005", "0"),
        "base-ethereum": ("0.003", "0"),
    },
    "hop": {"default": ("0", "0.25")},
    "stargate": {"default": ("0", "0.06")},
    "across": {"default": ("0", "0.12")},
    "synapse": {"default": ("0", "0.05")},
    "celer": {"default": ("0", "0.04")},
}

DEFAULT_FEE_STRUCTURE = FeeStructure(base=Decimal("0"), percentage=Decimal("0.1"), is_fallback=True)

# Ordered capability probes: bridge entry methods to try, first match wins
ENTRYPOINT_SIGNATURES: Dict[str, Tuple[str, ...]] = {
    "canonical": (
        "depositERC20(address,address,uint256,uint256,uint256)",
        "outboundTransfer(address,address,uint256,bytes)",
        "deposit(address,address,uint256)",
        "bridgeToken(address,uint256,uint256,address)",
    ),
    "hop": (
        "sendToL2(uint256,address,uint256,uint256,uint256,address,uint256)",
        "swapAndSend(uint256,address,uint256,uint256,uint256,uint256,uint256,uint256)",
    ),
    "stargate": (
        "swap(uint16,uint256,uint256,address,uint256,uint256,(uint256,uint256,bytes),bytes,bytes)",
    ),
    "across": (
        "depositV3(address,address,address,address,uint256,uint256,uint256,address,uint32,uint32,uint32,bytes)",
        "deposit(address,address,uint256,uint256,int64,uint32,bytes,uint256)",
    ),
    "synapse": (
        "bridge(address,uint256,address,uint256,(address,address,uint256,uint256,bytes),(address,address,uint256,uint256,bytes))",
    ),
    "celer": (
        "send(address,address,uint256,uint64,uint64,uint32)",
        "sendNative(address,uint256,uint64,uint64,uint32)",
    ),
    "avalanche-bridge": ("transfer(address,uint256)",),
    "binance-bridge": ("transfer(address,uint256)",),
}

FEE_PROTOCOL_ORDER: Tuple[str, ...] = ("canonical", "hop", "stargate", "across", "synapse", "celer")


def build_deployments(
    raw: Mapping[str, Mapping[ChainId, Mapping[ChainId, str]]],
) -> Dict[DeploymentKey, EdgeConfig]:
    """Flatten the nested address table, dropping zero-address placeholders."""
    deployments: Dict[DeploymentKey, EdgeConfig] = {}
    for protocol, by_source in raw.items():
        for source, by_target in by_source.items():
            for target, address in by_target.items():
                if not address or int(address, 16) == 0:
                    continue
                deployments[DeploymentKey(source, target, protocol)] = EdgeConfig(contract_address=address)
    return deployments


def _probe(signature: str) -> EntrypointProbe:
    return EntrypointProbe(
        signature=signature,
        selector=encode_hex(function_signature_to_4byte_selector(signature)),
    )


class BridgeRegistry:
    """Pure lookup over bridge edges, deployments and fees. No I/O."""

    def __init__(
        self,
        *,
        edges: Sequence[BridgeEdge] = BRIDGE_EDGES,
        deployments: Optional[Mapping[DeploymentKey, EdgeConfig]] = None,
        fee_table: Optional[Mapping[str, Mapping[str, Tuple[str, str]]]] = None,
        entrypoints: Optional[Mapping[str, Sequence[str]]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._edges: Tuple[BridgeEdge, ...] = tuple(edges)
        self._by_protocol: Dict[str, BridgeEdge] = {edge.protocol: edge for edge in self._edges}
        self._deployments: Dict[DeploymentKey, EdgeConfig] = dict(
            deployments if deployments is not None else build_deployments(RAW_DEPLOYMENTS)
        )
        self._fees: Dict[str, Dict[str, FeeStructure]] = {
            protocol: {
                route: FeeStructure(base=Decimal(base), percentage=Decimal(pct))
                for route, (base, pct) in routes.items()
            }
            for protocol, routes in (fee_table if fee_table is not None else FEE_TABLE).items()
        }
        self._probes: Dict[str, Tuple[EntrypointProbe, ...]] = {
            protocol: tuple(_probe(sig) for sig in signatures)
            for protocol, signatures in (entrypoints if entrypoints is not None else ENTRYPOINT_SIGNATURES).items()
        }
        self._logger = logger or logging.getLogger(__name__)

    @property
    def edges(self) -> Tuple[BridgeEdge, ...]:
        return self._edges

    def edge(self, protocol: str) -> Optional[BridgeEdge]:
        return self._by_protocol.get(protocol)

    def deployment(self, source: ChainId, target: ChainId, protocol: str) -> Optional[EdgeConfig]:
        return self._deployments.get(DeploymentKey(source, target, protocol))

    def is_usable(self, edge: BridgeEdge, source: ChainId, target: ChainId) -> bool:
        if source == target or not edge.connects(source, target):
            return False
        if edge.deployment_scoped:
            return self.deployment(source, target, edge.protocol) is not None
        return True

    def edges_between(self, source: ChainId, target: ChainId) -> List[BridgeEdge]:
        """Edges usable from ``source`` to ``target``, in catalog order.

        Direction matters: a deployment-scoped edge is only returned when the
        ``source -> target`` direction has a deployment entry.
        """
        return [edge for edge in self._edges if self.is_usable(edge, source, target)]

    def chains_with_asset(self, asset: str) -> set[ChainId]:
        symbol = asset.upper()
        chains: set[ChainId] = set()
        for edge in self._edges:
            if edge.supports_asset(symbol):
                chains.update(edge.chains)
        return chains

    def resolve_fee_protocol(self, protocol: str) -> str:
        edge = self._by_protocol.get(protocol)
        return edge.fee_protocol if edge else protocol.lower()

    def protocol_fee_structure(self, protocol: str, source: ChainId, target: ChainId) -> FeeStructure:
        """Route override, then protocol default, then the conservative fallback."""
        fee_protocol = self.resolve_fee_protocol(protocol)
        structures = self._fees.get(fee_protocol, {})
        route_key = f"{source.value}-{target.value}"
        structure = structures.get(route_key) or structures.get("default")
        if structure is None:
            self._logger.info(
                "no fee structure for %s on %s, using conservative default %s%%",
                fee_protocol,
                route_key,
                DEFAULT_FEE_STRUCTURE.percentage,
            )
            return DEFAULT_FEE_STRUCTURE
        return structure

    def known_fee_protocols(self) -> Tuple[str, ...]:
        return FEE_PROTOCOL_ORDER

    def fee_protocols_between(self, source: ChainId, target: ChainId) -> List[str]:
        """Distinct fee protocols with a usable edge on the route, in edge order."""
        seen: List[str] = []
        for edge in self.edges_between(source, target):
            if edge.fee_protocol not in seen:
                seen.append(edge.fee_protocol)
        return seen

    def entrypoint_probes(self, protocol: str) -> Tuple[EntrypointProbe, ...]:
        return self._probes.get(self.resolve_fee_protocol(protocol), ())


_default_registry: Optional[BridgeRegistry] = None


def get_bridge_registry() -> BridgeRegistry:
    """Process-wide registry over the built-in catalog."""
    global _default_registry
    if _default_registry is None:
        _default_registry = BridgeRegistry()
    return _default_registry


__all__ = [
    "ZERO_ADDRESS",
    "BRIDGE_EDGES",
    "RAW_DEPLOYMENTS",
    "FEE_TABLE",
    "DEFAULT_FEE_STRUCTURE",
    "ENTRYPOINT_SIGNATURES",
    "FEE_PROTOCOL_ORDER",
    "BridgeRegistry",
    "build_deployments",
    "get_bridge_registry",
]
