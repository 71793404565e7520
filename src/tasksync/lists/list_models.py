# src/tasksync/lists/list_models.py

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..core.session import Session
from ..core.timeutil import parse_timestamp, sort_key


@dataclass(frozen=True, slots=True)
class TaskList:
    id: str
    title: str
    owner_id: str
    shared_with: tuple[str, ...]
    created_at: datetime | None

    @classmethod
    def from_doc(cls, doc: dict[str, Any]) -> TaskList:
        raw = doc.get("sharedWith")
        emails: list[str] = []
        for e in raw if isinstance(raw, list) else []:
            if isinstance(e, str) and e not in emails:
                emails.append(e)
        return cls(
            id=str(doc["id"]),
            title=str(doc.get("title") or ""),
            owner_id=str(doc.get("owner") or ""),
            shared_with=tuple(emails),
            created_at=parse_timestamp(doc.get("createdAt")),
        )

    def is_owner(self, session: Session) -> bool:
        return bool(session.user_id) and self.owner_id == session.user_id

    def is_collaborator(self, session: Session) -> bool:
        return bool(session.email) and session.email in self.shared_with

    def can_access(self, session: Session) -> bool:
        return self.is_owner(session) or self.is_collaborator(session)


def newest_first(lists: Sequence[TaskList]) -> list[TaskList]:
    return sorted(lists, key=lambda x: sort_key(x.created_at), reverse=True)


def fallback_selection(current_id: str | None, visible: Sequence[TaskList]) -> TaskList | None:
    """
    Pick the active list after the visible set changed.

    - the current list is still visible -> keep it
    - otherwise (deleted, access revoked, nothing selected yet) -> newest list
    - nothing visible -> None
    """
    ordered = newest_first(visible)
    if current_id is not None:
        for lst in ordered:
            if lst.id == current_id:
                return lst
    return ordered[0] if ordered else None
