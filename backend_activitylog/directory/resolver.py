"""
Cluster address set resolution.

The organization directory is an external collaborator; this module defines
its interface, a configuration-backed implementation, and the resolver that
turns whatever the directory returns into a deduplicated set of checksummed
addresses.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from backend_activitylog.activitylog_logging import get_logger
from backend_activitylog.core.exceptions import DirectoryUnavailable
from backend_activitylog.ledger.models import canonical_address_set

logger = get_logger(__name__)


class ApplicationDirectory(ABC):
    """Source of the proxy addresses that make up one organization's app cluster."""

    @abstractmethod
    async def get_application_addresses(self) -> Iterable[str]:
        """Return the cluster's proxy addresses in any casing; duplicates allowed."""
        ...


class StaticApplicationDirectory(ApplicationDirectory):
    """Directory backed by a fixed address list (e.g. ACTIVITY_APP_ADDRESSES)."""

    def __init__(self, addresses: Iterable[str]) -> None:
        self._addresses = tuple(addresses)

    async def get_application_addresses(self) -> Iterable[str]:
        return self._addresses


async def resolve_address_set(directory: ApplicationDirectory) -> frozenset[str]:
    """
    Query the directory and return the canonical cluster address set.

    Any failure, including an unparseable address, raises DirectoryUnavailable:
    the pipeline cannot proceed without a trustworthy set.
    """
    try:
        raw = await directory.get_application_addresses()
        addresses = canonical_address_set(raw)
    except DirectoryUnavailable:
        raise
    except Exception as e:
        logger.warning("directory_unavailable", error=str(e))
        raise DirectoryUnavailable(f"Application directory unavailable: {e}") from e
    logger.debug("directory_addresses_resolved", address_count=len(addresses))
    return addresses
