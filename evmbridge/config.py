import os

from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Pick up legacy RPC environment variable names."""

        super().model_post_init(__context)

        if not self.optimism_rpc_url:
            fallback = os.getenv("OP_RPC_URL") or os.getenv("OP_SEPOLIA_RPC_URL")
            if fallback:
                object.__setattr__(self, "optimism_rpc_url", fallback)

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: Optional[bool] = Field(default=None, description="Force JSON log output; unset means JSON unless DEBUG")

    # Chain RPC endpoints (test networks)
    ethereum_rpc_url: str = Field(
        default="https://eth-sepolia.public.blastapi.io",
        description="Ethereum Sepolia JSON-RPC endpoint",
    )
    polygon_rpc_url: str = Field(
        default="https://rpc-amoy.polygon.technology",
        description="Polygon Amoy JSON-RPC endpoint",
    )
    avalanche_rpc_url: str = Field(
        default="https://api.avax-test.network/ext/bc/C/rpc",
        description="Avalanche Fuji C-chain JSON-RPC endpoint",
    )
    bsc_rpc_url: str = Field(
        default="https://data-seed-prebsc-1-s1.binance.org:8545",
        description="BSC testnet JSON-RPC endpoint",
    )
    arbitrum_rpc_url: str = Field(
        default="https://sepolia-rollup.arbitrum.io/rpc",
        description="Arbitrum Sepolia JSON-RPC endpoint",
    )
    optimism_rpc_url: str = Field(
        default="https://sepolia.optimism.io",
        description="OP Sepolia JSON-RPC endpoint",
        validation_alias=AliasChoices("optimism_rpc_url", "OPTIMISM_RPC_URL"),
    )
    base_rpc_url: str = Field(
        default="https://sepolia.base.org",
        description="Base Sepolia JSON-RPC endpoint",
    )
    worldchain_rpc_url: str = Field(
        default="https://worldchain-sepolia.g.alchemy.com/public",
        description="Worldchain Sepolia JSON-RPC endpoint",
    )

    # Request handling
    request_timeout_seconds: int = Field(default=30, description="Per-request RPC timeout")

    # Price lookups
    coingecko_api_key: str = Field(default="", description="Coingecko API key")
    enable_coingecko: bool = Field(default=True, description="Enable Coingecko provider")
    price_cache_ttl_seconds: int = Field(default=300, description="TTL for cached native prices")
    native_price_fallbacks_usd: Dict[str, Decimal] = Field(
        default_factory=lambda: {
            "ethereum": Decimal("2500"),
            "polygon": Decimal("0.7"),
            "avalanche": Decimal("35"),
            "bsc": Decimal("300"),
            "arbitrum": Decimal("2500"),
            "optimism": Decimal("2500"),
            "base": Decimal("2500"),
            "worldchain": Decimal("1"),
        },
        description="Static native token prices used when the price feed is unavailable",
    )

    # Fee model
    default_gas_price_gwei: Dict[str, Optional[Decimal]] = Field(
        default_factory=lambda: {
            "ethereum": Decimal("30"),
            "polygon": Decimal("30"),
            "avalanche": Decimal("25"),
            "bsc": Decimal("5"),
            "arbitrum": Decimal("0.1"),
            "optimism": Decimal("0.01"),
            "base": Decimal("0.01"),
            "worldchain": Decimal("0.01"),
        },
        description="Gas price used when a chain's live fee data is unavailable",
    )

    # Transfer tracking
    destination_log_window_blocks: int = Field(
        default=1000,
        ge=1,
        description="How many recent destination blocks to scan for arrival evidence",
    )
    min_safe_confirmations: int = Field(
        default=12,
        ge=1,
        description="Confirmations after which a source transaction is considered settled",
    )
    challenge_window_days: int = Field(
        default=7,
        ge=1,
        description="Estimated optimistic rollup challenge window",
    )

    def rpc_url_for(self, chain: str) -> str:
        return getattr(self, f"{chain}_rpc_url", "")

    def default_gas_price_wei(self, chain: str) -> Optional[int]:
        gwei = self.default_gas_price_gwei.get(chain)
        if gwei is None:
            return None
        return int(Decimal(gwei) * Decimal(10**9))


# Global settings instance
settings = Settings()
