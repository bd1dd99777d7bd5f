from typing import Literal, Optional

from pydantic import BaseModel, Field


class RoutePreferencesModel(BaseModel):
    speed: Literal["instant", "fast", "standard", "slow", "any"] = Field(default="any", description="Required bridge speed class")
    security: Literal["canonical", "optimistic", "third-party", "any"] = Field(default="any", description="Required bridge security class")
    maxHops: int = Field(default=2, ge=1, le=2, description="Maximum number of bridge hops")


class RouteSearchRequest(BaseModel):
    sourceChain: str = Field(description="Source chain name")
    targetChain: str = Field(description="Destination chain name")
    token: str = Field(description="Token symbol or address")
    amount: Optional[str] = Field(default=None, description="Amount in source-chain native units, enables live fee estimates")
    preferences: Optional[RoutePreferencesModel] = Field(default=None, description="Route filters")


class FeeEstimateRequest(BaseModel):
    sourceChain: str = Field(description="Source chain name")
    targetChain: str = Field(description="Destination chain name")
    amount: str = Field(description="Amount to bridge in source-chain native units")
    token: Optional[str] = Field(default=None, description="Token being bridged, informational")
    bridgeProtocol: Optional[str] = Field(default=None, description="Fee protocol (canonical, hop, stargate, across, synapse, celer)")
    urgency: Literal["economy", "standard", "fast"] = Field(default="standard", description="Gas urgency")


class TrackTransferRequest(BaseModel):
    sourceChain: str = Field(description="Source chain name")
    targetChain: str = Field(description="Destination chain name")
    transactionHash: str = Field(description="Source chain transaction hash")
    bridgeProtocol: Optional[str] = Field(default=None, description="Bridge protocol used")
    userAddress: Optional[str] = Field(default=None, description="Recipient address for destination monitoring")
    timeoutSeconds: Optional[float] = Field(default=None, gt=0, description="Overall timeout for the lookup")
