"""Typed models used by the bridge subsystem."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from ..chain_types import ChainId


class BridgeSpeed(str, Enum):
    """Qualitative speed class, not an SLA."""

    INSTANT = "instant"
    FAST = "fast"
    STANDARD = "standard"
    SLOW = "slow"


class BridgeSecurity(str, Enum):
    CANONICAL = "canonical"
    OPTIMISTIC = "optimistic"
    THIRD_PARTY = "third-party"
    MIXED = "mixed"  # multi-hop routes only


class Liquidity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Urgency(str, Enum):
    ECONOMY = "economy"
    STANDARD = "standard"
    FAST = "fast"


class RiskLevel(str, Enum):
    LOW = "lowRisk"
    MEDIUM = "mediumRisk"
    HIGH = "highRisk"


class TransferPhase(str, Enum):
    """Phases of a bridge transfer; COMPLETED and FAILED are terminal."""

    SOURCE_PENDING = "SOURCE_PENDING"
    SOURCE_CONFIRMED = "SOURCE_CONFIRMED"
    BRIDGE_INITIATED = "BRIDGE_INITIATED"
    CHALLENGE_PERIOD = "CHALLENGE_PERIOD"
    DESTINATION_ARRIVAL = "DESTINATION_ARRIVAL"
    FINALIZATION = "FINALIZATION"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (TransferPhase.COMPLETED, TransferPhase.FAILED)


class PhaseStatus(str, Enum):
    COMPLETED = "completed"
    PENDING = "pending"
    FAILED = "failed"


SPEED_RANK: Dict[BridgeSpeed, int] = {
    BridgeSpeed.INSTANT: 0,
    BridgeSpeed.FAST: 1,
    BridgeSpeed.STANDARD: 2,
    BridgeSpeed.SLOW: 3,
}


@dataclass(frozen=True)
class BridgeEdge:
    """One protocol's support for transfers between any two of its chains."""

    protocol: str
    fee_protocol: str
    chains: FrozenSet[ChainId]
    supported_assets: FrozenSet[str]
    speed: BridgeSpeed
    security: BridgeSecurity
    liquidity: Liquidity
    # Only usable on directions listed in the deployment table
    deployment_scoped: bool = False

    def __post_init__(self) -> None:
        if len(self.chains) < 2:
            raise ValueError(f"Bridge edge {self.protocol!r} must connect at least two chains")

    def connects(self, a: ChainId, b: ChainId) -> bool:
        return a in self.chains and b in self.chains

    def supports_asset(self, symbol: str) -> bool:
        return symbol.upper() in self.supported_assets


@dataclass(frozen=True)
class DeploymentKey:
    source: ChainId
    target: ChainId
    protocol: str


@dataclass(frozen=True)
class EdgeConfig:
    contract_address: str


@dataclass(frozen=True)
class FeeStructure:
    """Flat base fee in source native units plus a percentage (in percent) of the amount."""

    base: Decimal
    percentage: Decimal
    is_fallback: bool = False

    def protocol_fee(self, amount: Decimal) -> Decimal:
        return self.base + amount * self.percentage / Decimal(100)


@dataclass(frozen=True)
class EntrypointProbe:
    """A bridge entry method to try, in order, when building a deposit."""

    signature: str
    selector: str


@dataclass
class RoutePreferences:
    speed: str = "any"
    security: str = "any"
    max_hops: int = 2

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "RoutePreferences":
        raw = raw or {}
        return cls(
            speed=raw.get("speed") or "any",
            security=raw.get("security") or "any",
            max_hops=int(raw.get("maxHops", raw.get("max_hops", 2))),
        )


@dataclass
class Route:
    path: List[ChainId]
    bridges: List[str]
    speed: BridgeSpeed
    estimated_time: str
    estimated_fee_percent: str
    security: BridgeSecurity
    liquidity: Liquidity
    steps: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    risk: RiskLevel = RiskLevel.MEDIUM
    contracts: List[Dict[str, Any]] = field(default_factory=list)
    estimated_protocol_fee: Optional[Decimal] = None
    fee_estimate: Optional["FeeEstimate"] = None

    def __post_init__(self) -> None:
        if len(self.path) < 2:
            raise ValueError("A route needs at least two chains")
        if len(self.bridges) != len(self.path) - 1:
            raise ValueError("A route needs exactly one bridge per hop")

    @property
    def is_direct(self) -> bool:
        return len(self.path) == 2

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "path": [chain.value for chain in self.path],
            "bridges": list(self.bridges),
            "speed": self.speed.value,
            "estimatedTime": self.estimated_time,
            "estimatedFeePercent": self.estimated_fee_percent,
            "security": self.security.value,
            "liquidity": self.liquidity.value,
            "risk": self.risk.value,
            "steps": list(self.steps),
            "warnings": list(self.warnings) or None,
        }
        if self.contracts:
            data["contracts"] = self.contracts
        if self.estimated_protocol_fee is not None:
            data["estimatedProtocolFee"] = str(self.estimated_protocol_fee)
        if self.fee_estimate is not None:
            data["feeEstimate"] = self.fee_estimate.to_dict()
        return data


@dataclass
class RouteSearchResult:
    source: ChainId
    target: ChainId
    asset: str
    routes: List[Route]
    risk_assessment: Dict[str, Any]
    alternative_options: Optional[List[str]] = None
    reason: Optional[str] = None
    security_tips: List[str] = field(default_factory=list)

    @property
    def recommended_route(self) -> Optional[Route]:
        return self.routes[0] if self.routes else None

    def to_dict(self) -> Dict[str, Any]:
        recommended = self.recommended_route
        return {
            "success": True,
            "source": self.source.value,
            "target": self.target.value,
            "token": self.asset,
            "routesFound": len(self.routes),
            "recommendedRoute": recommended.to_dict() if recommended else None,
            "routes": [route.to_dict() for route in self.routes],
            "riskAssessment": {
                key: (value.to_dict() if isinstance(value, Route) else
                      [r.to_dict() for r in value] if isinstance(value, list) else value)
                for key, value in self.risk_assessment.items()
            },
            "alternativeOptions": self.alternative_options,
            "reason": self.reason,
            "securityTips": list(self.security_tips),
        }


@dataclass(frozen=True)
class GasQuote:
    """Gas prices (wei) for both ends of a route and where each came from."""

    source_gas_price: int
    target_gas_price: int
    source_is_live: bool
    target_is_live: bool


@dataclass
class AlternativeBridge:
    protocol: str
    total_fee: Decimal
    total_fee_usd: Optional[Decimal]
    protocol_fee_percent: Decimal
    estimated_time: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "protocol": self.protocol,
            "totalFee": str(self.total_fee),
            "totalFeeUSD": _usd(self.total_fee_usd),
            "protocolFee": f"{self.protocol_fee_percent}%",
            "estimatedTime": self.estimated_time,
        }


@dataclass
class FeeEstimate:
    source_chain: ChainId
    target_chain: ChainId
    amount: Decimal
    protocol: Optional[str]
    urgency: Urgency
    source_chain_gas: Decimal
    target_chain_gas: Decimal
    relayer_fee: Decimal
    protocol_fee: Decimal
    finalization_cost: Optional[Decimal]
    total_fee: Decimal
    total_fee_usd: Optional[Decimal]
    gas: GasQuote
    fee_structure: Optional[FeeStructure] = None
    alternative_bridges: List[AlternativeBridge] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    @property
    def fee_percentage(self) -> Optional[Decimal]:
        if self.amount <= 0:
            return None
        return self.total_fee / self.amount * Decimal(100)

    def to_dict(self) -> Dict[str, Any]:
        fee_pct = self.fee_percentage
        return {
            "route": f"{self.source_chain.value} → {self.target_chain.value}",
            "amount": str(self.amount),
            "protocol": self.protocol,
            "urgencyMode": self.urgency.value,
            "feeBreakdown": {
                "sourceChainGas": str(self.source_chain_gas),
                "targetChainGas": str(self.target_chain_gas),
                "relayerFee": str(self.relayer_fee),
                "protocolFee": str(self.protocol_fee),
                "finalizationCost": str(self.finalization_cost) if self.finalization_cost is not None else None,
                "totalFee": str(self.total_fee),
                "totalFeeUSD": _usd(self.total_fee_usd),
            },
            "feePercentage": f"{fee_pct:.3f}%" if fee_pct is not None else None,
            "gasPrices": {
                "source": f"{Decimal(self.gas.source_gas_price) / Decimal(10**9)} gwei",
                "target": f"{Decimal(self.gas.target_gas_price) / Decimal(10**9)} gwei",
                "sourceIsLive": self.gas.source_is_live,
                "targetIsLive": self.gas.target_is_live,
            },
            "feeStructureFallback": bool(self.fee_structure and self.fee_structure.is_fallback),
            "alternativeBridges": [alt.to_dict() for alt in self.alternative_bridges],
            "warnings": list(self.warnings),
            "recommendations": list(self.recommendations),
        }


@dataclass
class PhaseRecord:
    phase: TransferPhase
    status: PhaseStatus
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"phase": self.phase.value, "status": self.status.value, "details": self.details}


@dataclass
class TransferProgress:
    source_chain: ChainId
    target_chain: ChainId
    transaction_hash: str
    phases: List[PhaseRecord]
    current_phase: TransferPhase
    current_status: str
    overall_progress: int
    estimated_completion: str
    next_steps: List[str] = field(default_factory=list)
    monitoring_urls: Dict[str, str] = field(default_factory=dict)
    security_reminders: List[str] = field(default_factory=list)
    leg_errors: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "bridgeRoute": f"{self.source_chain.value} → {self.target_chain.value}",
            "transactionHash": self.transaction_hash,
            "phases": [record.to_dict() for record in self.phases],
            "currentPhase": self.current_phase.value,
            "currentStatus": self.current_status,
            "overallProgress": self.overall_progress,
            "estimatedCompletion": self.estimated_completion,
            "nextSteps": list(self.next_steps),
            "monitoringUrls": dict(self.monitoring_urls),
            "securityReminders": list(self.security_reminders),
            "legErrors": dict(self.leg_errors),
        }


def _usd(value: Optional[Decimal]) -> Optional[str]:
    if value is None:
        return None
    return f"${value:.2f}"


__all__ = [
    "BridgeSpeed",
    "BridgeSecurity",
    "Liquidity",
    "Urgency",
    "RiskLevel",
    "TransferPhase",
    "PhaseStatus",
    "SPEED_RANK",
    "BridgeEdge",
    "DeploymentKey",
    "EdgeConfig",
    "FeeStructure",
    "EntrypointProbe",
    "RoutePreferences",
    "Route",
    "RouteSearchResult",
    "GasQuote",
    "AlternativeBridge",
    "FeeEstimate",
    "PhaseRecord",
    "TransferProgress",
]
