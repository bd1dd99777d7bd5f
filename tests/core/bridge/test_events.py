"""Tests for bridge event decoding."""

from evmbridge.core.bridge.events import (
    ARRIVAL_KINDS,
    ERC20_TRANSFER_TOPIC,
    INITIATING_KINDS,
    KIND_TO_TOPIC,
    BridgeEventKind,
    address_topic,
    decode_log,
    decode_logs,
    event_kinds,
)
from evmbridge.types.chain import LogEntry

from bridge_fakes import RECIPIENT, bridge_log


def test_transfer_topic_matches_erc20_signature():
    assert ERC20_TRANSFER_TOPIC == "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"


def test_unknown_topics_are_ignored():
    unknown = LogEntry(address="0xabc", topics=("0x" + "00" * 32,))
    empty = LogEntry(address="0xabc")
    assert decode_log(unknown) is None
    assert decode_log(empty) is None
    assert decode_logs([unknown, empty]) == []


def test_decode_keeps_order_and_metadata():
    logs = [
        bridge_log(BridgeEventKind.TOKEN_TRANSFER, RECIPIENT, log_index=0),
        LogEntry(address="0xabc", topics=("0x" + "11" * 32,)),
        bridge_log(BridgeEventKind.MESSAGE_SENT, log_index=2),
    ]
    events = decode_logs(logs)
    assert [event.kind for event in events] == [BridgeEventKind.TOKEN_TRANSFER, BridgeEventKind.MESSAGE_SENT]
    assert events[1].log_index == 2
    assert event_kinds(events) & INITIATING_KINDS == {BridgeEventKind.MESSAGE_SENT}


def test_topic_match_is_case_insensitive():
    topic = KIND_TO_TOPIC[BridgeEventKind.DEPOSIT_FINALIZED].upper().replace("0X", "0x")
    event = decode_log(LogEntry(address="0xabc", topics=(topic,)))
    assert event is not None
    assert event.kind in ARRIVAL_KINDS


def test_references_recipient_in_any_indexed_topic():
    sender = "0x3333333333333333333333333333333333333333"
    event = decode_log(bridge_log(BridgeEventKind.TOKEN_TRANSFER, sender, RECIPIENT))
    assert event.references(RECIPIENT)
    assert event.references(RECIPIENT.upper().replace("0X", "0x"))
    assert not event.references("0x4444444444444444444444444444444444444444")


def test_address_topic_padding():
    topic = address_topic(RECIPIENT)
    assert len(topic) == 66
    assert topic.endswith(RECIPIENT[2:])
    assert topic[2:26] == "0" * 24


def test_event_to_dict():
    event = decode_log(bridge_log(BridgeEventKind.WITHDRAWAL_PROVEN, block_number=42, log_index=3))
    assert event.to_dict() == {
        "event": "WithdrawalProven",
        "contract": "0x2222222222222222222222222222222222222222",
        "blockNumber": 42,
        "logIndex": 3,
    }
