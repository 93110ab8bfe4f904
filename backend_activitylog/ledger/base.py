"""
Abstract ledger reader: the three reads the activity pipeline needs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from backend_activitylog.ledger.models import Block, LogEntry, Transaction


class LedgerReader(ABC):
    """Read-only view of the ledger; implement over JSON-RPC or in memory for tests."""

    @abstractmethod
    async def get_logs(
        self,
        addresses: Iterable[str],
        from_block: str | int = "0x0",
        to_block: str | int = "latest",
    ) -> list[LogEntry]:
        """Return logs emitted by any of the addresses in one batched query."""
        ...

    @abstractmethod
    async def get_transaction(self, tx_hash: str) -> Transaction:
        """Return the transaction body; raise TransactionNotFound if unknown."""
        ...

    @abstractmethod
    async def get_block(self, block_number: int) -> Block:
        """Return the block header; raise LedgerQueryFailed if unknown."""
        ...
