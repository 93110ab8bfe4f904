"""
Application-level exceptions.

One base class, ActivityLogError, and one subclass per pipeline stage that can
fail. Collaborator errors (httpx, JSON-RPC, injected services) are wrapped into
these at the seam where they occur, with the original kept as __cause__.
"""

from __future__ import annotations


class ActivityLogError(Exception):
    """Base for every error raised by the activity pipeline."""

    def __init__(
        self,
        message: str,
        *,
        tx_hash: str | None = None,
        address: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.tx_hash = tx_hash
        self.address = address

    def to_dict(self) -> dict[str, str | None]:
        return {
            "type": type(self).__name__,
            "message": self.message,
            "tx_hash": self.tx_hash,
            "address": self.address,
        }


class DirectoryUnavailable(ActivityLogError):
    """The organization directory could not provide the cluster address set."""


class LedgerQueryFailed(ActivityLogError):
    """A ledger read (logs, transaction, block) failed or returned garbage."""


class TransactionNotFound(LedgerQueryFailed):
    """The ledger has no transaction for a hash referenced by a log entry."""


class DescriptionResolutionFailed(ActivityLogError):
    """The description service could not describe a transaction."""


class ScriptDecodeFailed(ActivityLogError):
    """A forwarded call's script could not be extracted, described, or was empty."""
