"""
Ledger access package.

Models for log entries, transactions and blocks; the abstract LedgerReader;
and a JSON-RPC implementation over httpx.
"""

from backend_activitylog.ledger.base import LedgerReader
from backend_activitylog.ledger.models import (
    Block,
    LogEntry,
    Transaction,
    canonical_address,
    canonical_address_set,
)
from backend_activitylog.ledger.rpc import JsonRpcLedger

__all__ = [
    "Block",
    "JsonRpcLedger",
    "LedgerReader",
    "LogEntry",
    "Transaction",
    "canonical_address",
    "canonical_address_set",
]
