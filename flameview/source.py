"""The raw component text received for one generation turn."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone


def _new_request_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class GeneratedSource:
    """Immutable component source; a newer turn supersedes it, never edits it."""

    text: str
    request_id: str = field(default_factory=_new_request_id)
    received_at: datetime = field(default_factory=_utcnow)

    def __str__(self) -> str:
        return self.text


__all__ = ["GeneratedSource"]
