"""
Catalog of bridge event topics.

Logs are decoded once into ``BridgeEvent`` records by matching ``topic0``
against a closed catalog. Logs with unknown topics are ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional

from eth_utils import encode_hex, keccak

from ...types.chain import LogEntry


class BridgeEventKind(str, Enum):
    DEPOSIT_INITIATED = "DepositInitiated"
    DEPOSIT_FINALIZED = "DepositFinalized"
    WITHDRAWAL_INITIATED = "WithdrawalInitiated"
    WITHDRAWAL_PROVEN = "WithdrawalProven"
    WITHDRAWAL_FINALIZED = "WithdrawalFinalized"
    MESSAGE_SENT = "MessageSent"
    MESSAGE_RECEIVED = "MessageReceived"
    BRIDGE_INITIATED = "BridgeInitiated"
    TOKEN_TRANSFER = "Transfer"


ERC20_TRANSFER_TOPIC = encode_hex(keccak(text="Transfer(address,address,uint256)"))

TOPIC_CATALOG: Dict[str, BridgeEventKind] = {
    "0xe1fffcc4923d04b559f4d29a8bfc6cda04eb5b0d3c460751c2402c5c5cc9109c": BridgeEventKind.DEPOSIT_INITIATED,
    "0xb3813568d9991fc951961fcb4c784893574240a28925604d09fc577c55bb7c32": BridgeEventKind.DEPOSIT_FINALIZED,
    "0x7fcf532c15f0a6db0bd6d0e038bea71d30d808c7d98cb3bf7268a95bf5081b65": BridgeEventKind.WITHDRAWAL_INITIATED,
    "0x2ac69ee804d9a7a0984249f508dfab7cb2534b465b6ce1580f99a38ba9c5e631": BridgeEventKind.WITHDRAWAL_PROVEN,
    "0xdb5c7652857aa163daadd670e116628fb42e869d8ac4251ef8971d9e5727df1b": BridgeEventKind.WITHDRAWAL_FINALIZED,
    "0x4dfe1bbbcf077ddc3e01291eea2d5c70c2b422b415d95645b9adcfd678cb1d63": BridgeEventKind.MESSAGE_SENT,
    "0x5e3c1311ea442664e8b1611bfabef659120ea7a0a2cfc0667700bebc69cbffe1": BridgeEventKind.MESSAGE_RECEIVED,
    "0xc1d1490cf25c3b40d600dfb27c7680340ed1ab901b7e8f3551280968a3b372b0": BridgeEventKind.BRIDGE_INITIATED,
    ERC20_TRANSFER_TOPIC: BridgeEventKind.TOKEN_TRANSFER,
}

KIND_TO_TOPIC: Dict[BridgeEventKind, str] = {kind: topic for topic, kind in TOPIC_CATALOG.items()}

# Emitted by the source-chain transaction that starts a transfer
INITIATING_KINDS: FrozenSet[BridgeEventKind] = frozenset({
    BridgeEventKind.DEPOSIT_INITIATED,
    BridgeEventKind.WITHDRAWAL_INITIATED,
    BridgeEventKind.MESSAGE_SENT,
    BridgeEventKind.BRIDGE_INITIATED,
})

FINALIZING_KINDS: FrozenSet[BridgeEventKind] = frozenset({
    BridgeEventKind.DEPOSIT_FINALIZED,
    BridgeEventKind.WITHDRAWAL_FINALIZED,
})

# Destination-side evidence that funds reached the recipient
ARRIVAL_KINDS: FrozenSet[BridgeEventKind] = frozenset({
    BridgeEventKind.TOKEN_TRANSFER,
    BridgeEventKind.DEPOSIT_FINALIZED,
    BridgeEventKind.WITHDRAWAL_FINALIZED,
    BridgeEventKind.MESSAGE_RECEIVED,
})


@dataclass(frozen=True)
class BridgeEvent:
    kind: BridgeEventKind
    contract: str
    topics: tuple[str, ...]
    block_number: Optional[int] = None
    log_index: Optional[int] = None

    def references(self, address: str) -> bool:
        """True when any indexed topic carries ``address``."""
        needle = address_topic(address)
        return any(topic == needle for topic in self.topics[1:])

    def to_dict(self) -> Dict[str, object]:
        return {
            "event": self.kind.value,
            "contract": self.contract,
            "blockNumber": self.block_number,
            "logIndex": self.log_index,
        }


def decode_log(log: LogEntry) -> Optional[BridgeEvent]:
    kind = TOPIC_CATALOG.get(log.topic0 or "")
    if kind is None:
        return None
    return BridgeEvent(
        kind=kind,
        contract=log.address,
        topics=log.topics,
        block_number=log.block_number,
        log_index=log.log_index,
    )


def decode_logs(logs: Iterable[LogEntry]) -> List[BridgeEvent]:
    events: List[BridgeEvent] = []
    for log in logs:
        event = decode_log(log)
        if event is not None:
            events.append(event)
    return events


def event_kinds(events: Iterable[BridgeEvent]) -> FrozenSet[BridgeEventKind]:
    return frozenset(event.kind for event in events)


def address_topic(address: str) -> str:
    """Left-pad an address into a 32-byte topic."""
    return "0x" + address.lower()[2:].rjust(64, "0")


__all__ = [
    "BridgeEventKind",
    "BridgeEvent",
    "ERC20_TRANSFER_TOPIC",
    "TOPIC_CATALOG",
    "KIND_TO_TOPIC",
    "INITIATING_KINDS",
    "FINALIZING_KINDS",
    "ARRIVAL_KINDS",
    "decode_log",
    "decode_logs",
    "event_kinds",
    "address_topic",
]
