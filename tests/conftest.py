"""
Pytest fixtures for activity log tests: in-memory ledger, directory and describer.
"""

from __future__ import annotations

import asyncio
from typing import Iterable

import pytest
from eth_abi import encode as abi_encode

from backend_activitylog.core.exceptions import (
    DirectoryUnavailable,
    LedgerQueryFailed,
    TransactionNotFound,
)
from backend_activitylog.describer.client import DescriptionService
from backend_activitylog.describer.models import Description, ScriptStep
from backend_activitylog.directory.resolver import ApplicationDirectory
from backend_activitylog.ledger.base import LedgerReader
from backend_activitylog.ledger.models import Block, LogEntry, Transaction, canonical_address

# Cluster apps (lowercase on purpose: the pipeline must checksum them)
VOTING = "0x" + "ab" * 20
FINANCE = "0x" + "cd" * 20
AGENT = "0x" + "ef" * 20
OUTSIDER = "0x" + "12" * 20
USER = "0x" + "9a" * 20

FORWARD_SELECTOR = "0xd948d468"


def tx_hash(n: int) -> str:
    return "0x" + format(n, "064x")


def forward_input(script: bytes) -> str:
    """forward(bytes) calldata with the standard ABI encoding."""
    return FORWARD_SELECTOR + abi_encode(["bytes"], [script]).hex()


class FakeLedger(LedgerReader):
    """In-memory ledger with call counters and optional per-call gate."""

    def __init__(self) -> None:
        self.logs: list[LogEntry] = []
        self.txs: dict[str, Transaction] = {}
        self.blocks: dict[int, Block] = {}
        self.fail_logs: Exception | None = None
        self.fail_tx: dict[str, Exception] = {}
        self.fail_block: dict[int, Exception] = {}
        self.gate: asyncio.Event | None = None
        self.get_logs_calls: list[tuple[frozenset[str], object, object]] = []
        self.get_transaction_calls: list[str] = []
        self.get_block_calls: list[int] = []
        self.in_flight = 0
        self.peak_in_flight = 0

    def add_tx(
        self,
        n: int,
        *,
        to: str | None,
        sender: str = USER,
        data: str = "0x",
        block_number: int = 100,
        timestamp: int = 1_600_000_000,
        log_addresses: Iterable[str] | None = None,
    ) -> str:
        """Register a transaction, its block, and one log per emitting address."""
        h = tx_hash(n)
        self.txs[h] = Transaction(
            hash=h,
            sender=canonical_address(sender),
            to=canonical_address(to) if to else None,
            input=data.lower(),
            block_number=block_number,
        )
        self.blocks[block_number] = Block(number=block_number, timestamp=timestamp)
        emitters = list(log_addresses) if log_addresses is not None else [to or VOTING]
        for addr in emitters:
            self.logs.append(
                LogEntry(
                    address=canonical_address(addr),
                    transaction_hash=h,
                    block_number=block_number,
                    log_index=len(self.logs),
                )
            )
        return h

    async def _enter(self) -> None:
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)

    def _exit(self) -> None:
        self.in_flight -= 1

    async def get_logs(self, addresses, from_block="0x0", to_block="latest"):
        wanted = frozenset(addresses)
        self.get_logs_calls.append((wanted, from_block, to_block))
        if self.fail_logs is not None:
            raise self.fail_logs
        return [entry for entry in self.logs if entry.address in wanted]

    async def get_transaction(self, tx_hash: str) -> Transaction:
        self.get_transaction_calls.append(tx_hash)
        try:
            await self._enter()
            if tx_hash in self.fail_tx:
                raise self.fail_tx[tx_hash]
            if tx_hash not in self.txs:
                raise TransactionNotFound(f"Unknown transaction {tx_hash}", tx_hash=tx_hash)
            return self.txs[tx_hash]
        finally:
            self._exit()

    async def get_block(self, block_number: int) -> Block:
        self.get_block_calls.append(block_number)
        try:
            await self._enter()
            if block_number in self.fail_block:
                raise self.fail_block[block_number]
            if block_number not in self.blocks:
                raise LedgerQueryFailed(f"Unknown block {block_number}")
            return self.blocks[block_number]
        finally:
            self._exit()


class FakeDirectory(ApplicationDirectory):
    def __init__(self, addresses: Iterable[str] = (), *, error: Exception | None = None) -> None:
        self.addresses = list(addresses)
        self.error = error
        self.calls = 0

    async def get_application_addresses(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.addresses


class FakeDescriber(DescriptionService):
    """Describes calls as '<method> on <app>'; scripts are looked up by hex."""

    def __init__(self) -> None:
        self.scripts: dict[str, list[ScriptStep]] = {}
        self.fail_to: dict[str, Exception] = {}
        self.fail_script: Exception | None = None
        self.transaction_calls: list[tuple[str, str]] = []
        self.script_calls: list[str] = []

    def add_script(self, script: bytes, steps: list[tuple[str, str]]) -> None:
        self.scripts["0x" + script.hex()] = [
            ScriptStep(
                to=canonical_address(to),
                description=text,
                annotated_description=[{"type": "text", "value": text}],
            )
            for to, text in steps
        ]

    async def describe_transaction(self, to: str, data: str) -> Description:
        self.transaction_calls.append((to, data))
        await asyncio.sleep(0)
        if to in self.fail_to:
            raise self.fail_to[to]
        text = f"call {data[:10]} on {to}"
        return Description(
            description=text,
            annotated_description=[{"type": "address", "value": to}],
        )

    async def describe_script(self, script: str) -> list[ScriptStep]:
        self.script_calls.append(script)
        await asyncio.sleep(0)
        if self.fail_script is not None:
            raise self.fail_script
        return list(self.scripts.get(script, []))


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def describer() -> FakeDescriber:
    return FakeDescriber()


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory([VOTING, FINANCE, AGENT])


@pytest.fixture
def unavailable_directory() -> FakeDirectory:
    return FakeDirectory(error=DirectoryUnavailable("kernel unreachable"))
