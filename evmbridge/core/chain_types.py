"""
Chain identification types and utilities.

Every network this package can route over is a member of the ``ChainId``
enum. Membership and pairwise distinctness are the only properties callers
rely on; there is no ordering between chains.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional, Union

from .bridge.errors import ChainUnsupported


class ChainId(str, Enum):
    """Supported EVM test networks."""

    ETHEREUM = "ethereum"
    POLYGON = "polygon"
    AVALANCHE = "avalanche"
    BSC = "bsc"
    ARBITRUM = "arbitrum"
    OPTIMISM = "optimism"
    BASE = "base"
    WORLDCHAIN = "worldchain"


@dataclass(frozen=True)
class ChainMetadata:
    name: str
    evm_chain_id: int
    native_symbol: str
    wrapped_native_symbol: str
    explorer: str
    coingecko_id: str
    aliases: FrozenSet[str] = frozenset()
    # L1 this chain settles withdrawals to through a fraud-proof window
    optimistic_settlement: Optional[ChainId] = None


CHAIN_METADATA: Dict[ChainId, ChainMetadata] = {
    ChainId.ETHEREUM: ChainMetadata(
        name="Ethereum Sepolia",
        evm_chain_id=11155111,
        native_symbol="ETH",
        wrapped_native_symbol="WETH",
        explorer="https://sepolia.etherscan.io",
        coingecko_id="ethereum",
        aliases=frozenset({"eth", "mainnet", "sepolia", "l1"}),
    ),
    ChainId.POLYGON: ChainMetadata(
        name="Polygon Amoy",
        evm_chain_id=80002,
        native_symbol="POL",
        wrapped_native_symbol="WPOL",
        explorer="https://amoy.polygonscan.com",
        coingecko_id="polygon-ecosystem-token",
        aliases=frozenset({"matic", "amoy", "pol"}),
    ),
    ChainId.AVALANCHE: ChainMetadata(
        name="Avalanche Fuji",
        evm_chain_id=43113,
        native_symbol="AVAX",
        wrapped_native_symbol="WAVAX",
        explorer="https://testnet.snowtrace.io",
        coingecko_id="avalanche-2",
        aliases=frozenset({"avax", "fuji"}),
    ),
    ChainId.BSC: ChainMetadata(
        name="BSC Testnet",
        evm_chain_id=97,
        native_symbol="BNB",
        wrapped_native_symbol="WBNB",
        explorer="https://testnet.bscscan.com",
        coingecko_id="binancecoin",
        aliases=frozenset({"bnb", "binance", "bnb chain"}),
    ),
    ChainId.ARBITRUM: ChainMetadata(
        name="Arbitrum Sepolia",
        evm_chain_id=421614,
        native_symbol="ETH",
        wrapped_native_symbol="WETH",
        explorer="https://sepolia.arbiscan.io",
        coingecko_id="ethereum",
        aliases=frozenset({"arb", "arbitrum one"}),
        optimistic_settlement=ChainId.ETHEREUM,
    ),
    ChainId.OPTIMISM: ChainMetadata(
        name="OP Sepolia",
        evm_chain_id=11155420,
        native_symbol="ETH",
        wrapped_native_symbol="WETH",
        explorer="https://sepolia-optimism.etherscan.io",
        coingecko_id="ethereum",
        aliases=frozenset({"op", "op sepolia"}),
        optimistic_settlement=ChainId.ETHEREUM,
    ),
    ChainId.BASE: ChainMetadata(
        name="Base Sepolia",
        evm_chain_id=84532,
        native_symbol="ETH",
        wrapped_native_symbol="WETH",
        explorer="https://sepolia.basescan.org",
        coingecko_id="ethereum",
        aliases=frozenset({"base sepolia"}),
        optimistic_settlement=ChainId.ETHEREUM,
    ),
    ChainId.WORLDCHAIN: ChainMetadata(
        name="Worldchain Sepolia",
        evm_chain_id=4801,
        native_symbol="WLD",
        wrapped_native_symbol="WLD",
        explorer="https://worldchain-sepolia.explorer.alchemy.com",
        coingecko_id="worldcoin-wld",
        aliases=frozenset({"world", "world chain"}),
    ),
}

CHAIN_ALIAS_TO_ID: Dict[str, ChainId] = {
    alias: chain
    for chain, meta in CHAIN_METADATA.items()
    for alias in (chain.value, meta.name.lower(), *meta.aliases)
}


def normalize_chain(chain: Union[str, ChainId, None]) -> ChainId:
    """
    Convert user input to a ``ChainId``.

    Accepts enum members, canonical names, display names and common aliases
    (``"arb"``, ``"op"``, ``"matic"``...).

    Raises:
        ChainUnsupported: If the identifier is not one of the supported networks.
    """
    if isinstance(chain, ChainId):
        return chain
    if chain is None:
        raise ChainUnsupported(chain)

    normalized = str(chain).lower().strip()
    resolved = CHAIN_ALIAS_TO_ID.get(normalized)
    if resolved is None:
        raise ChainUnsupported(chain)
    return resolved


def chain_metadata(chain: ChainId) -> ChainMetadata:
    return CHAIN_METADATA[chain]


def is_optimistic_exit(source: ChainId, target: ChainId) -> bool:
    """True when ``source`` is an optimistic rollup withdrawing to its own L1."""
    return CHAIN_METADATA[source].optimistic_settlement == target


def supported_chain_names() -> list[str]:
    return [chain.value for chain in ChainId]


__all__ = [
    "ChainId",
    "ChainMetadata",
    "CHAIN_METADATA",
    "CHAIN_ALIAS_TO_ID",
    "normalize_chain",
    "chain_metadata",
    "is_optimistic_exit",
    "supported_chain_names",
]
