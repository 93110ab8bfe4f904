"""
Description service interface and HTTP adapter.

The service turns a call (destination + calldata) into a human description,
and a forwarded script into its ordered steps. It may perform its own ledger
reads; the pipeline treats both calls as opaque and side-effect free.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import httpx

from backend_activitylog.activitylog_logging import get_logger, short
from backend_activitylog.core.exceptions import (
    DescriptionResolutionFailed,
    ScriptDecodeFailed,
)
from backend_activitylog.describer.models import Description, ScriptStep

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SEC = 30.0


class DescriptionService(ABC):
    """Describes transactions and forwarded scripts."""

    @abstractmethod
    async def describe_transaction(self, to: str, data: str) -> Description:
        """Describe a call to `to` with hex calldata `data`."""
        ...

    @abstractmethod
    async def describe_script(self, script: str) -> list[ScriptStep]:
        """Decode and describe a hex-encoded script into ordered steps."""
        ...


class HttpDescriptionService(DescriptionService):
    """
    Client for a remote description service.

    POST {base}/describe/transaction  {"to", "data"}  -> {"description", "annotatedDescription"}
    POST {base}/describe/script       {"script"}      -> [{"to", "description", "annotatedDescription"}, ...]
    """

    def __init__(
        self,
        base_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
    ) -> None:
        if not base_url.strip():
            raise ValueError("base_url must be non-empty")
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_sec))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _post(self, path: str, payload: dict[str, Any]) -> Any:
        resp = await self._client.post(f"{self._base_url}{path}", json=payload)
        resp.raise_for_status()
        return resp.json()

    async def describe_transaction(self, to: str, data: str) -> Description:
        try:
            raw = await self._post("/describe/transaction", {"to": to, "data": data})
            if not isinstance(raw, dict):
                raise TypeError("description response must be an object")
            return Description.from_dict(raw)
        except (httpx.HTTPError, ValueError, TypeError) as e:
            logger.debug("describer_transaction_failed", to=short(to), error=str(e))
            raise DescriptionResolutionFailed(
                f"Could not describe call to {to}: {e}", address=to
            ) from e

    async def describe_script(self, script: str) -> list[ScriptStep]:
        try:
            raw = await self._post("/describe/script", {"script": script})
            if isinstance(raw, dict):
                raw = raw.get("steps")
            if not isinstance(raw, list):
                raise TypeError("script response must be a list of steps")
            return [ScriptStep.from_dict(item) for item in raw]
        except (httpx.HTTPError, ValueError, TypeError, KeyError) as e:
            logger.debug("describer_script_failed", script=short(script, 18), error=str(e))
            raise ScriptDecodeFailed(f"Could not describe script: {e}") from e
