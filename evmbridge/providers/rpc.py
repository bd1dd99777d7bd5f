"""Async JSON-RPC client for EVM chains."""

from __future__ import annotations

import itertools
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from ..core.bridge.errors import ProviderUnavailable, classify_provider_error
from ..core.chain_types import ChainId, chain_metadata, normalize_chain
from ..types.chain import Block, FeeData, LogEntry, LogFilter, Transaction, TransactionReceipt
from .base import ChainProvider


class JsonRpcProvider(ChainProvider):
    """Thin wrapper around a chain's ``eth_*`` JSON-RPC methods."""

    def __init__(
        self,
        chain: ChainId,
        *,
        rpc_url: Optional[str] = None,
        timeout_s: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.chain = chain
        self.name = f"rpc:{chain.value}"
        self.rpc_url = rpc_url or settings.rpc_url_for(chain.value)
        self.timeout_s = timeout_s or settings.request_timeout_seconds
        self._client = client
        self._ids = itertools.count(1)
        self._logger = logger or logging.getLogger(__name__)

    async def _call(self, method: str, params: List[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": next(self._ids),
        }
        try:
            if self._client is not None:
                response = await self._client.post(self.rpc_url, json=payload, timeout=self.timeout_s)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(
                        self.rpc_url,
                        json=payload,
                        headers={"Content-Type": "application/json"},
                        timeout=self.timeout_s,
                    )
            response.raise_for_status()
            data = response.json()
        except Exception as exc:
            self._logger.warning("rpc %s on %s failed: %s", method, self.chain.value, exc)
            raise classify_provider_error(exc, chain=self.chain.value, operation=method) from exc

        if "error" in data:
            error = data["error"] or {}
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise ProviderUnavailable(
                f"RPC error from {self.chain.value}: {message}",
                chain=self.chain.value,
                operation=method,
            )
        return data.get("result")

    async def ready(self) -> bool:
        return bool(self.rpc_url)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "RPC URL not configured"}

        try:
            head = await self.get_block_number()
            return {"status": "healthy", "blockNumber": head}
        except ProviderUnavailable as e:
            return {"status": "error", "reason": e.message}

    async def get_transaction(self, tx_hash: str) -> Optional[Transaction]:
        raw = await self._call("eth_getTransactionByHash", [tx_hash])
        return Transaction.from_rpc(raw) if raw else None

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[TransactionReceipt]:
        raw = await self._call("eth_getTransactionReceipt", [tx_hash])
        return TransactionReceipt.from_rpc(raw) if raw else None

    async def get_block_number(self) -> int:
        return int(await self._call("eth_blockNumber", []), 16)

    async def get_block(self, number: int) -> Optional[Block]:
        raw = await self._call("eth_getBlockByNumber", [hex(number), False])
        return Block.from_rpc(raw) if raw else None

    async def get_logs(self, log_filter: LogFilter) -> List[LogEntry]:
        raw = await self._call("eth_getLogs", [log_filter.to_rpc()])
        return [LogEntry.from_rpc(item) for item in raw or []]

    async def get_fee_data(self) -> FeeData:
        gas_price_hex = await self._call("eth_gasPrice", [])
        # eth_maxPriorityFeePerGas is missing on some testnet nodes
        try:
            priority_hex = await self._call("eth_maxPriorityFeePerGas", [])
        except ProviderUnavailable:
            priority_hex = None
        gas_price = int(gas_price_hex, 16) if gas_price_hex else None
        priority = int(priority_hex, 16) if priority_hex else None
        return FeeData(
            gas_price=gas_price,
            max_fee_per_gas=(gas_price + priority) if gas_price is not None and priority is not None else None,
            max_priority_fee_per_gas=priority,
        )


class ProviderRegistry:
    """Lazily constructs one ``ChainProvider`` per supported chain."""

    def __init__(self, providers: Optional[Dict[ChainId, ChainProvider]] = None) -> None:
        self._providers: Dict[ChainId, ChainProvider] = dict(providers or {})

    def get(self, chain: ChainId | str) -> ChainProvider:
        chain_id = normalize_chain(chain)
        provider = self._providers.get(chain_id)
        if provider is None:
            provider = JsonRpcProvider(chain_id)
            self._providers[chain_id] = provider
        return provider

    async def health(self) -> Dict[str, Dict[str, Any]]:
        results: Dict[str, Dict[str, Any]] = {}
        for chain in ChainId:
            provider = self.get(chain)
            status = await provider.health_check()
            status["network"] = chain_metadata(chain).name
            results[chain.value] = status
        return results
