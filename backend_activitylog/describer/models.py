"""
Description models returned by the description service.

Annotation tokens are opaque JSON objects (e.g. {"type": "address", "value": "0x..."})
passed through to the presentation layer untouched.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from backend_activitylog.ledger.models import canonical_address

AnnotationTokens = list[dict[str, Any]]


def _annotations(raw: dict[str, Any]) -> AnnotationTokens | None:
    tokens = raw.get("annotatedDescription", raw.get("annotated_description"))
    if tokens is None:
        return None
    if not isinstance(tokens, list):
        raise TypeError("annotatedDescription must be a list of tokens")
    return list(tokens)


@dataclass(frozen=True)
class Description:
    """Human description of a call plus its token-structured form."""

    description: str
    annotated_description: AnnotationTokens | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Description":
        text = raw.get("description")
        return cls(
            description="" if text is None else str(text),
            annotated_description=_annotations(raw),
        )


@dataclass(frozen=True)
class ScriptStep:
    """One decoded action of a forwarded script; the last step is the effective one."""

    to: str
    description: str
    annotated_description: AnnotationTokens | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "ScriptStep":
        text = raw.get("description")
        return cls(
            to=canonical_address(raw["to"]),
            description="" if text is None else str(text),
            annotated_description=_annotations(raw),
        )
