# src/tasksync/activity/activity_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..core.timeutil import parse_timestamp


@dataclass(frozen=True, slots=True)
class Activity:
    """
    One audit entry. Immutable; never updated after it is written.

    Older records carry a free-text `message`; newer ones carry structured
    `action` + `details` (+ actor fields). Both shapes are read.
    """

    id: str
    list_id: str
    timestamp: datetime | None
    message: str | None = None
    action: str | None = None
    details: str | None = None
    user_name: str | None = None
    user_email: str | None = None

    @classmethod
    def from_doc(cls, doc: dict[str, Any]) -> Activity:
        def opt(key: str) -> str | None:
            v = doc.get(key)
            return v if isinstance(v, str) else None

        return cls(
            id=str(doc["id"]),
            list_id=str(doc.get("listId") or ""),
            timestamp=parse_timestamp(doc.get("timestamp")),
            message=opt("message"),
            action=opt("action"),
            details=opt("details"),
            user_name=opt("userName"),
            user_email=opt("userEmail"),
        )

    @property
    def text(self) -> str:
        """The human-readable line, whichever record shape this is."""
        return self.message or self.details or ""
