"""Input normalisation shared by the planner, fee model and tracker."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Tuple

from eth_utils import is_address, to_checksum_address

from ..chain_types import ChainId, normalize_chain
from .errors import InvalidBridgeRequest

TX_HASH_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")
ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")


def chain_pair(source: Any, target: Any) -> Tuple[ChainId, ChainId]:
    source_id = normalize_chain(source)
    target_id = normalize_chain(target)
    if source_id == target_id:
        raise InvalidBridgeRequest(
            f"Source and target chain are both {source_id.value}",
            suggestion="Pick two different chains; bridging within one chain is a plain transfer",
            details={"sourceChain": source_id.value, "targetChain": target_id.value},
        )
    return source_id, target_id


def normalize_tx_hash(tx_hash: str) -> str:
    value = (tx_hash or "").strip()
    if not TX_HASH_PATTERN.match(value):
        raise InvalidBridgeRequest(
            f"Malformed transaction hash: {tx_hash!r}",
            suggestion="Transaction hashes are 0x followed by 64 hex characters",
            details={"transactionHash": tx_hash},
        )
    return value.lower()


def normalize_address(address: Optional[str]) -> Optional[str]:
    if address is None or not address.strip():
        return None
    value = address.strip()
    if not is_address(value):
        raise InvalidBridgeRequest(
            f"Malformed address: {address!r}",
            suggestion="Addresses are 0x followed by 40 hex characters",
            details={"address": address},
        )
    return to_checksum_address(value)


def parse_amount(amount: Any, *, field_name: str = "amount") -> Decimal:
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidBridgeRequest(
            f"Invalid {field_name}: {amount!r}",
            suggestion="Pass a positive decimal amount such as 0.5",
        ) from None
    if not value.is_finite() or value <= 0:
        raise InvalidBridgeRequest(
            f"Invalid {field_name}: {amount!r}",
            suggestion="Pass a positive decimal amount such as 0.5",
        )
    return value


def is_address_like(value: str) -> bool:
    return bool(ADDRESS_PATTERN.match(value.strip()))
