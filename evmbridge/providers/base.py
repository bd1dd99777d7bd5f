from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ..types.chain import Block, FeeData, LogEntry, LogFilter, Transaction, TransactionReceipt


class Provider(ABC):
    """Base provider interface"""

    name: str
    timeout_s: int = 10

    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is ready to serve requests"""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""
        pass


class ChainProvider(Provider):
    """Read-only access to a single EVM chain"""

    @abstractmethod
    async def get_transaction(self, tx_hash: str) -> Optional[Transaction]:
        """Return the transaction, or None when the node does not know the hash"""
        pass

    @abstractmethod
    async def get_transaction_receipt(self, tx_hash: str) -> Optional[TransactionReceipt]:
        """Return the receipt, or None while the transaction is unmined"""
        pass

    @abstractmethod
    async def get_block_number(self) -> int:
        """Current head block number"""
        pass

    @abstractmethod
    async def get_block(self, number: int) -> Optional[Block]:
        """Block header by number"""
        pass

    @abstractmethod
    async def get_logs(self, log_filter: LogFilter) -> List[LogEntry]:
        """Logs matching the filter"""
        pass

    @abstractmethod
    async def get_fee_data(self) -> FeeData:
        """Current gas price data"""
        pass


class PriceProvider(Provider):
    """Provider for native token USD prices"""

    @abstractmethod
    async def get_native_price_usd(self, chain: str) -> Optional[Decimal]:
        """USD price of the chain's native token, None when unknown"""
        pass
