"""
JSON-RPC ledger client: eth_getLogs, eth_getTransactionByHash, eth_getBlockByNumber.

Responsibilities:
- Build JSON-RPC request bodies and POST them over one shared httpx.AsyncClient.
- Retry transient failures (transport errors, HTTP 429 / 5xx) with exponential
  backoff; never retry JSON-RPC error objects or "not found" results.
- Convert raw results into ledger models and every failure into LedgerQueryFailed.
"""

from __future__ import annotations

import asyncio
from typing import Any, Iterable

import httpx

from backend_activitylog.activitylog_logging import get_logger, short
from backend_activitylog.config.env import mask_url
from backend_activitylog.core.exceptions import LedgerQueryFailed, TransactionNotFound
from backend_activitylog.ledger.base import LedgerReader
from backend_activitylog.ledger.models import Block, LogEntry, Transaction

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SEC = 15.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_MIN_RETRY_DELAY_SEC = 0.5
DEFAULT_MAX_RETRY_DELAY_SEC = 8.0


def _block_param(value: str | int) -> str:
    """Block tag or number as JSON-RPC expects it ("latest", "0x1f")."""
    if isinstance(value, int):
        return hex(value)
    return value


def _is_transient(exc: Exception) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


class JsonRpcLedger(LedgerReader):
    """
    Ledger reader over an Ethereum-style JSON-RPC HTTP endpoint.

    Constructed once per process and shared by every pipeline run; use as an
    async context manager or call aclose() on shutdown.
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        max_retries: int = DEFAULT_MAX_RETRIES,
        min_retry_delay_sec: float = DEFAULT_MIN_RETRY_DELAY_SEC,
        max_retry_delay_sec: float = DEFAULT_MAX_RETRY_DELAY_SEC,
    ) -> None:
        """
        Args:
            rpc_url: JSON-RPC HTTP endpoint (e.g. http://localhost:8545).
            client: Optional pre-built httpx.AsyncClient (tests pass a MockTransport);
                when given, the caller owns its lifecycle.
            timeout_sec: HTTP timeout for each request.
            max_retries: Total attempts per call for transient failures.
            min_retry_delay_sec: Initial delay for exponential backoff.
            max_retry_delay_sec: Cap for backoff delay.
        """
        if not rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self._rpc_url = rpc_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_sec))
        self._max_retries = max_retries
        self._min_retry_delay = min_retry_delay_sec
        self._max_retry_delay = max_retry_delay_sec
        self._next_rpc_id = 0

    async def __aenter__(self) -> "JsonRpcLedger":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _next_id(self) -> int:
        self._next_rpc_id += 1
        return self._next_rpc_id

    async def call(self, method: str, params: list[Any]) -> Any:
        """Perform one JSON-RPC call with retry; return `result` (may be None)."""
        delay = self._min_retry_delay
        for attempt in range(self._max_retries):
            body = {
                "jsonrpc": "2.0",
                "id": self._next_id(),
                "method": method,
                "params": params,
            }
            try:
                resp = await self._client.post(self._rpc_url, json=body)
                resp.raise_for_status()
                data = resp.json()
            except (httpx.HTTPError, ValueError) as e:
                if not _is_transient(e):
                    raise LedgerQueryFailed(f"{method} failed: {e}") from e
                if attempt + 1 >= self._max_retries:
                    logger.error(
                        "ledger_rpc_give_up",
                        method=method,
                        max_retries=self._max_retries,
                        rpc_url=mask_url(self._rpc_url),
                        error=str(e),
                    )
                    raise LedgerQueryFailed(
                        f"{method} failed after {self._max_retries} attempts: {e}"
                    ) from e
                logger.warning(
                    "ledger_rpc_retry",
                    method=method,
                    attempt=attempt + 1,
                    max_retries=self._max_retries,
                    backoff_sec=round(delay, 2),
                    error=str(e),
                )
                await asyncio.sleep(delay)
                delay = min(delay * 2, self._max_retry_delay)
                continue

            if not isinstance(data, dict):
                raise LedgerQueryFailed(f"{method} returned a non-object response")
            if "error" in data:
                err = data["error"] or {}
                message = err.get("message", err) if isinstance(err, dict) else err
                code = err.get("code") if isinstance(err, dict) else None
                raise LedgerQueryFailed(f"RPC error in {method}: {message} (code={code})")
            return data.get("result")
        raise LedgerQueryFailed(f"{method} failed: no attempts made")

    async def get_logs(
        self,
        addresses: Iterable[str],
        from_block: str | int = "0x0",
        to_block: str | int = "latest",
    ) -> list[LogEntry]:
        address_list = sorted(addresses)
        flt = {
            "fromBlock": _block_param(from_block),
            "toBlock": _block_param(to_block),
            "address": address_list,
        }
        result = await self.call("eth_getLogs", [flt])
        if not isinstance(result, list):
            raise LedgerQueryFailed("eth_getLogs returned no log list")
        try:
            entries = [LogEntry.from_rpc_item(item) for item in result]
        except (KeyError, TypeError, ValueError) as e:
            raise LedgerQueryFailed(f"Malformed log entry: {e}") from e
        logger.debug(
            "ledger_logs_fetched",
            address_count=len(address_list),
            log_count=len(entries),
        )
        return entries

    async def get_transaction(self, tx_hash: str) -> Transaction:
        result = await self.call("eth_getTransactionByHash", [tx_hash])
        if result is None:
            raise TransactionNotFound(f"Unknown transaction {tx_hash}", tx_hash=tx_hash)
        try:
            return Transaction.from_rpc_item(result)
        except (KeyError, TypeError, ValueError) as e:
            raise LedgerQueryFailed(
                f"Malformed transaction {short(tx_hash)}: {e}", tx_hash=tx_hash
            ) from e

    async def get_block(self, block_number: int) -> Block:
        result = await self.call("eth_getBlockByNumber", [hex(block_number), False])
        if result is None:
            raise LedgerQueryFailed(f"Unknown block {block_number}")
        try:
            return Block.from_rpc_item(result)
        except (KeyError, TypeError, ValueError) as e:
            raise LedgerQueryFailed(f"Malformed block {block_number}: {e}") from e
