"""
Data models for ledger reads.

Frozen dataclasses for log entries, transactions and blocks as returned by an
Ethereum-style JSON-RPC node, plus address canonicalization. Every address
leaving this module is in EIP-55 checksummed form, so membership tests on
address sets are plain string comparisons.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from eth_utils import is_address, to_checksum_address


def canonical_address(value: str) -> str:
    """Return the checksummed form of a 20-byte hex address; ValueError if invalid."""
    if not isinstance(value, str) or not is_address(value.strip()):
        raise ValueError(f"Invalid address: {value!r}")
    return to_checksum_address(value.strip())


def canonical_address_set(values: Iterable[str]) -> frozenset[str]:
    """Canonicalize and deduplicate; case variants of one address collapse."""
    return frozenset(canonical_address(v) for v in values)


def hex_to_int(value: Any) -> int:
    """Quantity from JSON-RPC ("0x1a") or already-decoded int."""
    if isinstance(value, bool):
        raise TypeError("bool is not a ledger quantity")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        s = value.strip()
        return int(s, 16) if s.lower().startswith("0x") else int(s)
    raise TypeError(f"Cannot interpret {value!r} as a quantity")


@dataclass(frozen=True)
class LogEntry:
    """One eth_getLogs item; several entries may share a transaction hash."""

    address: str
    transaction_hash: str
    block_number: int
    log_index: int | None = None

    @classmethod
    def from_rpc_item(cls, item: dict[str, Any]) -> "LogEntry":
        log_index = item.get("logIndex")
        return cls(
            address=canonical_address(item["address"]),
            transaction_hash=str(item["transactionHash"]).lower(),
            block_number=hex_to_int(item["blockNumber"]),
            log_index=hex_to_int(log_index) if log_index is not None else None,
        )


@dataclass(frozen=True)
class Transaction:
    """
    A transaction body from eth_getTransactionByHash.

    `to` is None for contract creations; such transactions never belong to a
    cluster and are dropped by the transaction filter.
    """

    hash: str
    sender: str
    to: str | None
    input: str
    block_number: int

    @classmethod
    def from_rpc_item(cls, item: dict[str, Any]) -> "Transaction":
        to = item.get("to")
        data = item.get("input")
        if data is None:
            data = item.get("data", "0x")
        return cls(
            hash=str(item["hash"]).lower(),
            sender=canonical_address(item["from"]),
            to=canonical_address(to) if to else None,
            input=str(data).lower(),
            block_number=hex_to_int(item["blockNumber"]),
        )


@dataclass(frozen=True)
class Block:
    """The block header fields the pipeline reads."""

    number: int
    timestamp: int
    """Unix timestamp (seconds)."""

    @property
    def timestamp_ms(self) -> int:
        return self.timestamp * 1000

    @classmethod
    def from_rpc_item(cls, item: dict[str, Any]) -> "Block":
        return cls(
            number=hex_to_int(item["number"]),
            timestamp=hex_to_int(item["timestamp"]),
        )
