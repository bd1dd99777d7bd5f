"""Typed views of the JSON-RPC objects the bridge subsystem reads."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union


def _to_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    text = str(value)
    return int(text, 16) if text.startswith(("0x", "0X")) else int(text)


@dataclass(frozen=True)
class LogEntry:
    address: str
    topics: tuple[str, ...] = ()
    data: str = "0x"
    block_number: Optional[int] = None
    transaction_hash: Optional[str] = None
    log_index: Optional[int] = None

    @property
    def topic0(self) -> Optional[str]:
        return self.topics[0].lower() if self.topics else None

    @classmethod
    def from_rpc(cls, raw: Dict[str, Any]) -> "LogEntry":
        return cls(
            address=(raw.get("address") or "").lower(),
            topics=tuple(t.lower() for t in raw.get("topics") or ()),
            data=raw.get("data") or "0x",
            block_number=_to_int(raw.get("blockNumber")),
            transaction_hash=raw.get("transactionHash"),
            log_index=_to_int(raw.get("logIndex")),
        )


@dataclass(frozen=True)
class Transaction:
    hash: str
    from_address: Optional[str] = None
    to_address: Optional[str] = None
    value: int = 0
    block_number: Optional[int] = None

    @classmethod
    def from_rpc(cls, raw: Dict[str, Any]) -> "Transaction":
        return cls(
            hash=raw.get("hash", ""),
            from_address=raw.get("from"),
            to_address=raw.get("to"),
            value=_to_int(raw.get("value")) or 0,
            block_number=_to_int(raw.get("blockNumber")),
        )


@dataclass(frozen=True)
class TransactionReceipt:
    transaction_hash: str
    status: int
    block_number: int
    gas_used: Optional[int] = None
    logs: tuple[LogEntry, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.status == 1

    @classmethod
    def from_rpc(cls, raw: Dict[str, Any]) -> "TransactionReceipt":
        return cls(
            transaction_hash=raw.get("transactionHash", ""),
            status=_to_int(raw.get("status")) or 0,
            block_number=_to_int(raw.get("blockNumber")) or 0,
            gas_used=_to_int(raw.get("gasUsed")),
            logs=tuple(LogEntry.from_rpc(log) for log in raw.get("logs") or ()),
        )


@dataclass(frozen=True)
class Block:
    number: int
    timestamp: int
    hash: Optional[str] = None

    @classmethod
    def from_rpc(cls, raw: Dict[str, Any]) -> "Block":
        return cls(
            number=_to_int(raw.get("number")) or 0,
            timestamp=_to_int(raw.get("timestamp")) or 0,
            hash=raw.get("hash"),
        )


@dataclass(frozen=True)
class FeeData:
    gas_price: Optional[int] = None
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None


TopicFilter = Union[None, str, Sequence[str]]


@dataclass
class LogFilter:
    from_block: int
    to_block: Union[int, str] = "latest"
    address: Optional[str] = None
    topics: List[TopicFilter] = field(default_factory=list)

    def to_rpc(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "fromBlock": hex(self.from_block),
            "toBlock": hex(self.to_block) if isinstance(self.to_block, int) else self.to_block,
        }
        if self.address:
            params["address"] = self.address
        if self.topics:
            params["topics"] = [
                list(t) if isinstance(t, (list, tuple)) else t for t in self.topics
            ]
        return params
