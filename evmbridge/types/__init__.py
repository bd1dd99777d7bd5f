from .chain import Block, FeeData, LogEntry, LogFilter, Transaction, TransactionReceipt
from .requests import FeeEstimateRequest, RoutePreferencesModel, RouteSearchRequest, TrackTransferRequest

__all__ = [
    "Block",
    "FeeData",
    "LogEntry",
    "LogFilter",
    "Transaction",
    "TransactionReceipt",
    "FeeEstimateRequest",
    "RoutePreferencesModel",
    "RouteSearchRequest",
    "TrackTransferRequest",
]
