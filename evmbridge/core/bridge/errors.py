"""
Error Classification

Error taxonomy for bridge routing and transfer tracking. Every error carries a
category and a human-readable suggestion so callers can surface it as a
structured result instead of crashing.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Dict, Optional

import httpx


class ErrorCategory(str, Enum):
    """Categories of bridge errors."""

    CHAIN_UNSUPPORTED = "chain_unsupported"
    INVALID_REQUEST = "invalid_request"
    ASSET_NOT_SUPPORTED = "asset_not_supported"
    ROUTE_NOT_FOUND = "route_not_found"
    TRANSACTION_NOT_FOUND = "transaction_not_found"
    FEE_UNAVAILABLE = "fee_unavailable"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    TIMEOUT = "timeout"


# Categories that describe malformed input rather than unavailable data
VALIDATION_CATEGORIES = frozenset({
    ErrorCategory.CHAIN_UNSUPPORTED,
    ErrorCategory.INVALID_REQUEST,
})


class BridgeError(Exception):
    """Base class for all bridge subsystem errors."""

    category: ErrorCategory = ErrorCategory.INVALID_REQUEST
    default_suggestion: str = "Check the request parameters and try again"

    def __init__(
        self,
        message: str,
        *,
        suggestion: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion or self.default_suggestion
        self.details = details or {}

    @property
    def is_validation_error(self) -> bool:
        return self.category in VALIDATION_CATEGORIES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "category": self.category.value,
            "suggestion": self.suggestion,
            "details": self.details,
        }


class ChainUnsupported(BridgeError):
    """Chain identifier is not one of the supported networks."""

    category = ErrorCategory.CHAIN_UNSUPPORTED

    def __init__(self, chain: Any):
        # Imported lazily: chain_types depends on this module
        from ..chain_types import supported_chain_names

        supported = supported_chain_names()
        super().__init__(
            f"Unsupported chain: {chain!r}",
            suggestion=f"Use one of: {', '.join(supported)}",
            details={"chain": chain, "supportedChains": supported},
        )


class InvalidBridgeRequest(BridgeError):
    """Malformed request input."""

    category = ErrorCategory.INVALID_REQUEST


class FeeUnavailable(BridgeError):
    """Neither a live gas price nor a configured default is available."""

    category = ErrorCategory.FEE_UNAVAILABLE
    default_suggestion = "Configure a default gas price for the chain or retry when the RPC endpoint is reachable"


class ProviderUnavailable(BridgeError):
    """A chain RPC call failed."""

    category = ErrorCategory.PROVIDER_UNAVAILABLE
    default_suggestion = "Check the chain RPC endpoint and retry"

    def __init__(
        self,
        message: str,
        *,
        chain: Optional[str] = None,
        operation: Optional[str] = None,
        suggestion: Optional[str] = None,
    ):
        details: Dict[str, Any] = {}
        if chain:
            details["chain"] = chain
        if operation:
            details["operation"] = operation
        super().__init__(message, suggestion=suggestion, details=details)
        self.chain = chain
        self.operation = operation


class ProviderTimeout(ProviderUnavailable):
    """A chain call or the whole operation exceeded its timeout."""

    category = ErrorCategory.TIMEOUT
    default_suggestion = "Retry with a longer timeout"


def classify_provider_error(
    error: BaseException,
    *,
    chain: Optional[str] = None,
    operation: Optional[str] = None,
) -> ProviderUnavailable:
    """
    Map a raw exception from an RPC call onto ``ProviderUnavailable``.

    Already-classified errors pass through unchanged.
    """
    if isinstance(error, ProviderUnavailable):
        return error

    if isinstance(error, (asyncio.TimeoutError, httpx.TimeoutException)):
        return ProviderTimeout(
            f"{operation or 'RPC call'} timed out",
            chain=chain,
            operation=operation,
        )

    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        suggestion = "Wait before retrying" if status == 429 else None
        return ProviderUnavailable(
            f"RPC endpoint returned HTTP {status}",
            chain=chain,
            operation=operation,
            suggestion=suggestion,
        )

    if isinstance(error, httpx.RequestError):
        return ProviderUnavailable(
            f"Could not reach RPC endpoint: {error}",
            chain=chain,
            operation=operation,
            suggestion="Check network connectivity and the configured RPC URL",
        )

    message = str(error).lower()
    if any(p in message for p in ("rate limit", "too many requests", "429")):
        return ProviderUnavailable(
            str(error),
            chain=chain,
            operation=operation,
            suggestion="Wait before retrying",
        )

    return ProviderUnavailable(str(error) or type(error).__name__, chain=chain, operation=operation)


__all__ = [
    "ErrorCategory",
    "BridgeError",
    "ChainUnsupported",
    "InvalidBridgeRequest",
    "FeeUnavailable",
    "ProviderUnavailable",
    "ProviderTimeout",
    "classify_provider_error",
]
