"""Transfer phase classification for in-flight bridge transfers.

Every call re-reads the chains and re-derives the phase list from scratch.
Nothing is persisted between calls and no wall-clock value enters the
result, so identical chain state always yields identical output.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from ...config import settings
from ...providers.rpc import ProviderRegistry
from ...types.chain import LogFilter, Transaction, TransactionReceipt
from ..chain_types import ChainId, chain_metadata, is_optimistic_exit, normalize_chain
from .errors import BridgeError, ProviderTimeout, classify_provider_error
from .events import (
    ARRIVAL_KINDS,
    FINALIZING_KINDS,
    INITIATING_KINDS,
    KIND_TO_TOPIC,
    BridgeEvent,
    BridgeEventKind,
    address_topic,
    decode_logs,
    event_kinds,
)
from .models import PhaseRecord, PhaseStatus, TransferPhase, TransferProgress
from .validation import chain_pair, normalize_address, normalize_tx_hash

ROUTE_COMPLETION_ESTIMATES: Dict[Tuple[ChainId, ChainId], str] = {
    (ChainId.ETHEREUM, ChainId.POLYGON): "20-30 minutes",
    (ChainId.ETHEREUM, ChainId.ARBITRUM): "10-15 minutes",
    (ChainId.POLYGON, ChainId.ETHEREUM): "3-4 hours",
}
DEFAULT_COMPLETION_ESTIMATE = "15-60 minutes"

PROTOCOL_MONITORING_URLS: Dict[str, str] = {
    "layerzero": "https://layerzeroscan.com/tx/{tx_hash}",
    "socket": "https://socketscan.io/tx/{tx_hash}",
    "hop": "https://app.hop.exchange/#/explorer?transactionHash={tx_hash}",
    "stargate": "https://stargate.finance/transfer?txHash={tx_hash}",
    "across": "https://across.to/transactions?search={tx_hash}",
}

SECURITY_REMINDERS: List[str] = [
    "Never share your private keys or seed phrase",
    "Verify you are using official bridge interfaces",
    "Be cautious of fake bridge support contacts",
    "Double-check recipient addresses",
]

# Destination-chain evidence read for a transfer: arrivals plus proven withdrawals
DESTINATION_KINDS: FrozenSet[BridgeEventKind] = ARRIVAL_KINDS | {BridgeEventKind.WITHDRAWAL_PROVEN}

NOT_FOUND_STATUS = "TRANSACTION_NOT_FOUND"
COMPLETE_STATUS = "BRIDGE_COMPLETE"


@dataclass
class TransferSession:
    """Snapshot of one source transaction plus destination evidence."""

    source_chain: ChainId
    target_chain: ChainId
    transaction_hash: str
    transaction: Optional[Transaction] = None
    source_receipt: Optional[TransactionReceipt] = None
    source_head: Optional[int] = None
    source_block_timestamp: Optional[int] = None
    detected_events: List[BridgeEvent] = field(default_factory=list)
    user_address: Optional[str] = None
    destination_checked: bool = False
    destination_head: Optional[int] = None
    destination_events: List[BridgeEvent] = field(default_factory=list)
    leg_errors: Dict[str, BridgeError] = field(default_factory=dict)

    @property
    def found(self) -> bool:
        return self.transaction is not None or self.source_receipt is not None

    @property
    def confirmations(self) -> int:
        if self.source_receipt is None or self.source_head is None:
            return 0
        return max(0, self.source_head - self.source_receipt.block_number + 1)

    @property
    def detected_kinds(self) -> FrozenSet[BridgeEventKind]:
        return event_kinds(self.detected_events)

    @property
    def destination_kinds(self) -> FrozenSet[BridgeEventKind]:
        return event_kinds(self.destination_events)

    @property
    def optimistic_exit(self) -> bool:
        return is_optimistic_exit(self.source_chain, self.target_chain)


class TransferTracker:
    """Reads both chains and classifies a bridge transfer into phases."""

    def __init__(
        self,
        providers: ProviderRegistry,
        *,
        log_window_blocks: Optional[int] = None,
        challenge_window_days: Optional[int] = None,
        min_confirmations: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._providers = providers
        self._log_window = log_window_blocks or settings.destination_log_window_blocks
        self._challenge_days = challenge_window_days or settings.challenge_window_days
        self._min_confirmations = min_confirmations or settings.min_safe_confirmations
        self._logger = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Chain reads
    # ------------------------------------------------------------------

    async def _read_source(self, session: TransferSession) -> None:
        provider = self._providers.get(session.source_chain)
        transaction, receipt, head = await asyncio.gather(
            provider.get_transaction(session.transaction_hash),
            provider.get_transaction_receipt(session.transaction_hash),
            provider.get_block_number(),
        )
        session.transaction = transaction
        session.source_receipt = receipt
        session.source_head = head
        if receipt is None:
            return
        session.detected_events = decode_logs(receipt.logs)
        if session.optimistic_exit:
            await self._read_source_block(session, provider, receipt.block_number)

    async def _read_source_block(self, session: TransferSession, provider: Any, block_number: int) -> None:
        # Only the finalization estimate depends on the block timestamp
        try:
            block = await provider.get_block(block_number)
        except Exception as exc:
            error = classify_provider_error(exc, chain=session.source_chain.value, operation="get_block")
            self._logger.warning("source block %s on %s unavailable: %s",
                                 block_number, session.source_chain.value, error.message)
            session.leg_errors["source_block"] = error
            return
        session.source_block_timestamp = block.timestamp if block else None

    async def _read_destination(self, session: TransferSession) -> None:
        if session.user_address is None:
            return
        provider = self._providers.get(session.target_chain)
        head = await provider.get_block_number()
        kinds = [KIND_TO_TOPIC[kind] for kind in sorted(DESTINATION_KINDS, key=lambda k: k.value)]
        recipient = [address_topic(session.user_address)]
        from_block = max(0, head - self._log_window)
        # Recipient matched in the first or second indexed argument
        batches = await asyncio.gather(
            provider.get_logs(LogFilter(from_block=from_block, to_block=head, topics=[kinds, recipient])),
            provider.get_logs(LogFilter(from_block=from_block, to_block=head, topics=[kinds, None, recipient])),
        )
        logs = list(dict.fromkeys(log for batch in batches for log in batch))
        logs.sort(key=lambda log: (log.block_number or 0, log.log_index or 0))
        session.destination_head = head
        session.destination_events = [
            event
            for event in decode_logs(logs)
            if event.kind in DESTINATION_KINDS and event.references(session.user_address)
        ]
        session.destination_checked = True

    async def load_session(
        self,
        source: ChainId,
        target: ChainId,
        tx_hash: str,
        user_address: Optional[str] = None,
    ) -> TransferSession:
        """Read source and destination legs concurrently.

        A failed source leg raises; a failed destination leg is recorded in
        ``leg_errors`` and the source-side result still stands.
        """
        session = TransferSession(
            source_chain=source,
            target_chain=target,
            transaction_hash=tx_hash,
            user_address=user_address,
        )
        source_result, destination_result = await asyncio.gather(
            self._read_source(session),
            self._read_destination(session),
            return_exceptions=True,
        )
        if isinstance(source_result, BaseException):
            if not isinstance(source_result, Exception):
                raise source_result
            raise classify_provider_error(source_result, chain=source.value, operation="read_source")
        if isinstance(destination_result, BaseException):
            if not isinstance(destination_result, Exception):
                raise destination_result
            error = classify_provider_error(destination_result, chain=target.value, operation="read_destination")
            self._logger.warning("destination leg on %s failed: %s", target.value, error.message)
            session.leg_errors["destination"] = error
        return session

    # ------------------------------------------------------------------
    # Classification (pure)
    # ------------------------------------------------------------------

    def _earliest_finalization(self, session: TransferSession) -> Optional[str]:
        if session.source_block_timestamp is None:
            return None
        initiated = datetime.fromtimestamp(session.source_block_timestamp, tz=timezone.utc)
        return (initiated + timedelta(days=self._challenge_days)).isoformat()

    def _destination_details(self, session: TransferSession) -> Dict[str, Any]:
        details: Dict[str, Any] = {
            "monitored": session.destination_checked,
            "recentActivity": bool(session.destination_kinds & ARRIVAL_KINDS),
            "eventsFound": [event.to_dict() for event in session.destination_events],
        }
        if session.destination_checked:
            details["windowBlocks"] = self._log_window
            details["toBlock"] = session.destination_head
        error = session.leg_errors.get("destination")
        if error is not None:
            details["error"] = error.to_dict()
        elif session.user_address is None:
            details["note"] = "Provide the recipient address to check destination arrival"
        return details

    def classify(self, session: TransferSession) -> List[PhaseRecord]:
        """Derive the ordered phase list from a session snapshot."""
        receipt = session.source_receipt
        if receipt is None:
            details: Dict[str, Any] = {"found": session.found}
            if not session.found:
                details["note"] = "Transaction not found on the source chain; it may not have propagated yet"
            return [PhaseRecord(TransferPhase.SOURCE_PENDING, PhaseStatus.PENDING, details)]

        phases = [
            PhaseRecord(TransferPhase.SOURCE_PENDING, PhaseStatus.COMPLETED, {"blockNumber": receipt.block_number}),
        ]
        confirmations = session.confirmations

        if not receipt.succeeded:
            phases.append(PhaseRecord(
                TransferPhase.SOURCE_CONFIRMED,
                PhaseStatus.FAILED,
                {"status": "reverted", "confirmations": confirmations},
            ))
            phases.append(PhaseRecord(
                TransferPhase.FAILED,
                PhaseStatus.FAILED,
                {"reason": "Source transaction reverted - funds were not bridged"},
            ))
            return phases

        phases.append(PhaseRecord(
            TransferPhase.SOURCE_CONFIRMED,
            PhaseStatus.COMPLETED,
            {
                "confirmations": confirmations,
                "sufficientConfirmations": confirmations >= self._min_confirmations,
                "gasUsed": receipt.gas_used,
            },
        ))

        source_kinds = session.detected_kinds
        destination_kinds = session.destination_kinds
        finalized = bool((source_kinds | destination_kinds) & FINALIZING_KINDS)
        initiated = finalized or bool(source_kinds & INITIATING_KINDS)

        phases.append(PhaseRecord(
            TransferPhase.BRIDGE_INITIATED,
            PhaseStatus.COMPLETED if initiated else PhaseStatus.PENDING,
            {
                "eventsDetected": [event.to_dict() for event in session.detected_events],
                "logCount": len(receipt.logs),
            },
        ))

        destination_details = self._destination_details(session)

        if session.optimistic_exit:
            challenge_details: Dict[str, Any] = {
                "estimatedWindow": f"{self._challenge_days} days",
                "isEstimate": True,
                "description": "Fraud proof challenge window",
                "proven": BridgeEventKind.WITHDRAWAL_PROVEN in destination_kinds,
            }
            earliest = self._earliest_finalization(session)
            if earliest is not None:
                challenge_details["earliestFinalizationEstimate"] = earliest
            phases.append(PhaseRecord(
                TransferPhase.CHALLENGE_PERIOD,
                PhaseStatus.COMPLETED if finalized else PhaseStatus.PENDING,
                challenge_details,
            ))
            if destination_details["recentActivity"] and not finalized:
                destination_details["note"] = "Activity observed at the recipient but no finalization event yet"
            phases.append(PhaseRecord(
                TransferPhase.DESTINATION_ARRIVAL,
                PhaseStatus.COMPLETED if finalized else PhaseStatus.PENDING,
                destination_details,
            ))
            phases.append(PhaseRecord(
                TransferPhase.FINALIZATION,
                PhaseStatus.COMPLETED if finalized else PhaseStatus.PENDING,
                {
                    "finalized": finalized,
                    "estimatedAvailable": f"After the {self._challenge_days} day challenge period (estimate)",
                    "action": f"Submit the finalization transaction on {session.target_chain.value}",
                },
            ))
            completed = finalized
        else:
            arrived = finalized or (initiated and bool(destination_kinds & ARRIVAL_KINDS))
            phases.append(PhaseRecord(
                TransferPhase.DESTINATION_ARRIVAL,
                PhaseStatus.COMPLETED if arrived else PhaseStatus.PENDING,
                destination_details,
            ))
            completed = arrived

        phases.append(PhaseRecord(
            TransferPhase.COMPLETED,
            PhaseStatus.COMPLETED if completed else PhaseStatus.PENDING,
            {"via": "finalization event" if finalized else "destination arrival"} if completed else {},
        ))
        return phases

    @staticmethod
    def current_phase(phases: List[PhaseRecord]) -> TransferPhase:
        if any(record.status == PhaseStatus.FAILED for record in phases):
            return TransferPhase.FAILED
        for record in phases:
            if record.status != PhaseStatus.COMPLETED:
                return record.phase
        return TransferPhase.COMPLETED

    def _estimated_completion(self, session: TransferSession, current: TransferPhase) -> str:
        if current == TransferPhase.FAILED:
            return "Transaction reverted - funds were not bridged"
        if current == TransferPhase.COMPLETED:
            return "Bridge transfer complete"
        if current == TransferPhase.SOURCE_PENDING:
            if not session.found:
                return "Unknown - transaction not yet visible on the source chain"
            return "1-5 minutes for source confirmation"
        if session.optimistic_exit:
            return f"{self._challenge_days} days (optimistic rollup challenge period, estimate)"
        return ROUTE_COMPLETION_ESTIMATES.get(
            (session.source_chain, session.target_chain), DEFAULT_COMPLETION_ESTIMATE
        )

    def _next_steps(self, session: TransferSession, current: TransferPhase) -> List[str]:
        target = session.target_chain.value
        if current == TransferPhase.SOURCE_PENDING:
            if not session.found:
                return [
                    "Verify the transaction hash and source chain",
                    "Wait a few moments for the transaction to propagate",
                ]
            return ["Wait for source chain confirmation", "Monitor gas prices if the transaction is stuck"]
        if current == TransferPhase.FAILED:
            return [
                "Check the revert reason on the source chain explorer",
                "Verify token approvals and balances",
                "Retry the bridge with corrected parameters",
            ]
        if current == TransferPhase.BRIDGE_INITIATED:
            return [
                "No bridge event was found in the source transaction",
                "Confirm the transaction was sent to a bridge contract",
            ]
        if current == TransferPhase.CHALLENGE_PERIOD:
            return [
                "Wait for the challenge period to end",
                "Prove the withdrawal on the settlement chain when available",
                f"Return to finalize the withdrawal on {target}",
            ]
        if current == TransferPhase.DESTINATION_ARRIVAL:
            steps = [f"Wait for funds to arrive on {target}", "Bridge relayers are processing the transfer"]
            if not session.destination_checked:
                steps.append("Provide the recipient address to monitor destination arrival")
            return steps
        if current == TransferPhase.FINALIZATION:
            return [
                f"Submit the finalization transaction on {target}",
                "Keep enough native gas on the settlement chain for finalization",
            ]
        return [f"Verify the funds in your {target} wallet", "Bridge transfer complete"]

    def _monitoring_urls(self, session: TransferSession, bridge_protocol: Optional[str]) -> Dict[str, str]:
        tx_hash = session.transaction_hash
        urls = {"explorer": f"{chain_metadata(session.source_chain).explorer}/tx/{tx_hash}"}
        protocol = (bridge_protocol or "").lower()
        for name, template in PROTOCOL_MONITORING_URLS.items():
            if name in protocol:
                urls[name] = template.format(tx_hash=tx_hash)
        return urls

    def build_progress(
        self,
        session: TransferSession,
        *,
        bridge_protocol: Optional[str] = None,
    ) -> TransferProgress:
        phases = self.classify(session)
        current = self.current_phase(phases)
        completed = sum(1 for record in phases if record.status == PhaseStatus.COMPLETED)

        if not session.found:
            status = NOT_FOUND_STATUS
        elif current == TransferPhase.COMPLETED:
            status = COMPLETE_STATUS
        else:
            status = current.value

        reminders = list(SECURITY_REMINDERS)
        if current == TransferPhase.FAILED:
            reminders.insert(0, "Transaction failed - funds remain on the source chain")

        return TransferProgress(
            source_chain=session.source_chain,
            target_chain=session.target_chain,
            transaction_hash=session.transaction_hash,
            phases=phases,
            current_phase=current,
            current_status=status,
            overall_progress=round(completed / len(phases) * 100),
            estimated_completion=self._estimated_completion(session, current),
            next_steps=self._next_steps(session, current),
            monitoring_urls=self._monitoring_urls(session, bridge_protocol),
            security_reminders=reminders,
            leg_errors={leg: error.to_dict() for leg, error in session.leg_errors.items()},
        )

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def track_transfer(
        self,
        source: Any,
        target: Any,
        tx_hash: str,
        *,
        bridge_protocol: Optional[str] = None,
        user_address: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> TransferProgress:
        """Classify the transfer started by ``tx_hash`` on ``source``.

        Raises:
            ChainUnsupported / InvalidBridgeRequest: malformed input.
            ProviderUnavailable: the source chain could not be read.
            ProviderTimeout: ``timeout`` seconds elapsed.
        """
        source_id, target_id = chain_pair(source, target)
        normalized_hash = normalize_tx_hash(tx_hash)
        recipient = normalize_address(user_address)

        load = self.load_session(source_id, target_id, normalized_hash, recipient)
        if timeout is None:
            session = await load
        else:
            try:
                session = await asyncio.wait_for(load, timeout)
            except asyncio.TimeoutError:
                raise ProviderTimeout(
                    f"Tracking {normalized_hash} timed out after {timeout}s",
                    chain=source_id.value,
                    operation="track_transfer",
                ) from None

        progress = self.build_progress(session, bridge_protocol=bridge_protocol)
        self._logger.info(
            "tracked %s %s -> %s: %s",
            normalized_hash,
            source_id.value,
            target_id.value,
            progress.current_status,
        )
        return progress

    async def inspect_transaction(self, chain: Any, tx_hash: str) -> Dict[str, Any]:
        """Single-chain view of a bridge transaction: events, confirmations and a coarse phase."""
        chain_id = normalize_chain(chain)
        normalized_hash = normalize_tx_hash(tx_hash)
        provider = self._providers.get(chain_id)

        try:
            transaction, receipt, head = await asyncio.gather(
                provider.get_transaction(normalized_hash),
                provider.get_transaction_receipt(normalized_hash),
                provider.get_block_number(),
            )
        except BridgeError:
            raise
        except Exception as exc:
            raise classify_provider_error(exc, chain=chain_id.value, operation="inspect_transaction") from exc

        if transaction is None and receipt is None:
            return {
                "success": False,
                "chain": chain_id.value,
                "transactionHash": normalized_hash,
                "status": NOT_FOUND_STATUS,
                "suggestion": "Wait for the transaction to propagate or verify the hash and chain",
            }

        events = decode_logs(receipt.logs) if receipt else []
        kinds = event_kinds(events)
        confirmations = max(0, head - receipt.block_number + 1) if receipt else 0
        rollup = chain_metadata(chain_id).optimistic_settlement is not None

        if receipt is None:
            phase, estimate = "PENDING", "Waiting for inclusion"
        elif not receipt.succeeded:
            phase, estimate = TransferPhase.FAILED.value, "Transaction reverted"
        elif kinds & FINALIZING_KINDS:
            phase, estimate = TransferPhase.COMPLETED.value, "Bridge complete"
        elif BridgeEventKind.WITHDRAWAL_PROVEN in kinds:
            phase, estimate = "PROVEN", f"Finalization available after the {self._challenge_days} day challenge period"
        elif kinds & INITIATING_KINDS and rollup:
            phase, estimate = TransferPhase.CHALLENGE_PERIOD.value, f"{self._challenge_days} days (estimate)"
        elif kinds & INITIATING_KINDS:
            phase, estimate = TransferPhase.BRIDGE_INITIATED.value, DEFAULT_COMPLETION_ESTIMATE
        else:
            phase, estimate = TransferPhase.SOURCE_CONFIRMED.value, "No bridge event detected"

        sufficient = confirmations >= self._min_confirmations
        return {
            "success": True,
            "chain": chain_id.value,
            "transactionHash": normalized_hash,
            "status": {
                "phase": phase,
                "confirmations": confirmations,
                "detectedEvents": [event.to_dict() for event in events],
                "estimatedCompletion": estimate,
            },
            "securityChecks": {
                "sufficientConfirmations": sufficient,
                "bridgeEventDetected": bool(kinds & (INITIATING_KINDS | FINALIZING_KINDS)),
                "recommendation": (
                    "Transaction is safely confirmed"
                    if sufficient
                    else f"Wait for at least {self._min_confirmations} confirmations"
                ),
            },
            "explorerUrl": f"{chain_metadata(chain_id).explorer}/tx/{normalized_hash}",
        }
