"""
Tests for the bridge registry

Directional edge lookup, deployment gating, fee structure fallbacks and
entrypoint probes.
"""

import logging
from decimal import Decimal

import pytest

from evmbridge.core.bridge.models import BridgeEdge, BridgeSecurity, BridgeSpeed, DeploymentKey, Liquidity
from evmbridge.core.bridge.registry import (
    BRIDGE_EDGES,
    DEFAULT_FEE_STRUCTURE,
    RAW_DEPLOYMENTS,
    ZERO_ADDRESS,
    BridgeRegistry,
    build_deployments,
    get_bridge_registry,
)
from evmbridge.core.chain_types import ChainId


def protocols(edges):
    return [edge.protocol for edge in edges]


class TestEdgeLookup:

    def test_catalog_order_is_preserved(self, registry):
        edges = registry.edges_between(ChainId.ETHEREUM, ChainId.ARBITRUM)
        assert protocols(edges) == [
            "ethereum-arbitrum-canonical",
            "hop-protocol",
            "stargate-finance",
            "across-protocol",
            "synapse-bridge",
            "celer-cbridge",
        ]

    def test_deployment_scoped_edges_are_directional(self, registry):
        assert "avalanche-bridge" in protocols(registry.edges_between(ChainId.AVALANCHE, ChainId.ETHEREUM))
        assert "avalanche-bridge" not in protocols(registry.edges_between(ChainId.ETHEREUM, ChainId.AVALANCHE))
        assert "binance-bridge" in protocols(registry.edges_between(ChainId.BSC, ChainId.ETHEREUM))
        assert "binance-bridge" not in protocols(registry.edges_between(ChainId.ETHEREUM, ChainId.BSC))

    def test_zero_address_placeholders_never_usable(self, registry):
        for target in (ChainId.ETHEREUM, ChainId.BASE):
            assert registry.deployment(ChainId.WORLDCHAIN, target, "worldchain-canonical") is None
            assert registry.edges_between(ChainId.WORLDCHAIN, target) == []

    def test_same_chain_has_no_edges(self, registry):
        assert registry.edges_between(ChainId.ETHEREUM, ChainId.ETHEREUM) == []

    def test_unscoped_edges_are_symmetric(self, registry):
        forward = protocols(registry.edges_between(ChainId.POLYGON, ChainId.ARBITRUM))
        backward = protocols(registry.edges_between(ChainId.ARBITRUM, ChainId.POLYGON))
        assert forward == backward
        assert "hop-protocol" in forward

    def test_chains_with_asset(self, registry):
        chains = registry.chains_with_asset("wld")
        assert chains == {ChainId.WORLDCHAIN, ChainId.ETHEREUM, ChainId.BASE}
        assert registry.chains_with_asset("DOGE") == set()

    def test_edge_needs_two_chains(self):
        with pytest.raises(ValueError):
            BridgeEdge(
                protocol="lonely",
                fee_protocol="lonely",
                chains=frozenset({ChainId.ETHEREUM}),
                supported_assets=frozenset({"ETH"}),
                speed=BridgeSpeed.FAST,
                security=BridgeSecurity.THIRD_PARTY,
                liquidity=Liquidity.LOW,
            )

    def test_custom_catalog(self):
        edge = BridgeEdge(
            protocol="test-bridge",
            fee_protocol="test",
            chains=frozenset({ChainId.POLYGON, ChainId.BASE}),
            supported_assets=frozenset({"USDC"}),
            speed=BridgeSpeed.FAST,
            security=BridgeSecurity.THIRD_PARTY,
            liquidity=Liquidity.MEDIUM,
        )
        registry = BridgeRegistry(edges=[edge], deployments={})
        assert registry.edges_between(ChainId.BASE, ChainId.POLYGON) == [edge]
        assert registry.edge("hop-protocol") is None


class TestDeployments:

    def test_build_deployments_drops_zero_addresses(self):
        deployments = build_deployments(RAW_DEPLOYMENTS)
        assert DeploymentKey(ChainId.ETHEREUM, ChainId.AVALANCHE, "avalanche-bridge") not in deployments
        key = DeploymentKey(ChainId.AVALANCHE, ChainId.ETHEREUM, "avalanche-bridge")
        assert deployments[key].contract_address == "0x8EB8a3b98659Cce290402893d0123abb75E3ab28"
        assert all(int(cfg.contract_address, 16) != 0 for cfg in deployments.values())
        assert ZERO_ADDRESS not in {cfg.contract_address for cfg in deployments.values()}

    def test_every_scoped_edge_has_an_address_table(self):
        for edge in BRIDGE_EDGES:
            if edge.deployment_scoped:
                assert edge.protocol in RAW_DEPLOYMENTS


class TestFeeStructures:

    def test_route_override(self, registry):
        structure = registry.protocol_fee_structure("ethereum-arbitrum-canonical", ChainId.ETHEREUM, ChainId.ARBITRUM)
        assert structure.base == Decimal("0.002")
        assert structure.percentage == Decimal("0")
        assert not structure.is_fallback

    def test_protocol_default(self, registry):
        structure = registry.protocol_fee_structure("hop", ChainId.POLYGON, ChainId.BASE)
        assert structure.percentage == Decimal("0.25")
        assert structure.protocol_fee(Decimal("100")) == Decimal("0.25")

    def test_protocol_name_resolves_to_fee_family(self, registry):
        by_edge = registry.protocol_fee_structure("stargate-finance", ChainId.ETHEREUM, ChainId.BSC)
        by_family = registry.protocol_fee_structure("stargate", ChainId.ETHEREUM, ChainId.BSC)
        assert by_edge == by_family

    def test_unknown_protocol_uses_logged_fallback(self, registry, caplog):
        with caplog.at_level(logging.INFO):
            structure = registry.protocol_fee_structure("avalanche-bridge", ChainId.AVALANCHE, ChainId.ETHEREUM)
        assert structure is DEFAULT_FEE_STRUCTURE
        assert structure.is_fallback
        assert structure.percentage == Decimal("0.1")
        assert "conservative default" in caplog.text

    def test_canonical_without_route_entry_falls_back(self, registry):
        structure = registry.protocol_fee_structure("canonical", ChainId.ETHEREUM, ChainId.AVALANCHE)
        assert structure.is_fallback

    def test_fee_protocols_between(self, registry):
        assert registry.fee_protocols_between(ChainId.ETHEREUM, ChainId.BASE) == [
            "canonical", "hop", "across", "synapse",
        ]
        assert registry.fee_protocols_between(ChainId.WORLDCHAIN, ChainId.BASE) == []

    def test_known_fee_protocols_order(self, registry):
        assert registry.known_fee_protocols() == ("canonical", "hop", "stargate", "across", "synapse", "celer")


class TestEntrypointProbes:

    def test_probes_are_ordered_with_selectors(self, registry):
        probes = registry.entrypoint_probes("canonical")
        assert probes[0].signature.startswith("depositERC20(")
        assert len(probes) == 4
        for probe in probes:
            assert probe.selector.startswith("0x")
            assert len(probe.selector) == 10

    def test_erc20_transfer_selector(self, registry):
        probe = registry.entrypoint_probes("binance-bridge")[0]
        assert probe.selector == "0xa9059cbb"

    def test_edge_name_resolves_to_family(self, registry):
        assert registry.entrypoint_probes("hop-protocol") == registry.entrypoint_probes("hop")

    def test_unknown_protocol_has_no_probes(self, registry):
        assert registry.entrypoint_probes("made-up") == ()


def test_shared_registry_is_reused():
    assert get_bridge_registry() is get_bridge_registry()
