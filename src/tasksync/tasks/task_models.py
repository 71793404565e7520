# src/tasksync/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from ..core.timeutil import parse_timestamp, to_store


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    Statuses form one ring: pending -> in-progress -> review -> completed -> pending.
    The only transition is next(); there is no jump between arbitrary states.
    """

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    REVIEW = "review"
    COMPLETED = "completed"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING

    def next(self) -> TaskStatus:
        ring = list(TaskStatus)
        return ring[(ring.index(self) + 1) % len(ring)]


@dataclass(slots=True)
class Subtask:
    id: str
    title: str
    completed: bool = False

    @classmethod
    def from_doc(cls, raw: dict[str, Any]) -> Subtask:
        return cls(
            id=str(raw.get("id", "")),
            title=str(raw.get("title") or ""),
            completed=bool(raw.get("completed", False)),
        )

    def to_doc(self) -> dict[str, Any]:
        return {"id": self.id, "title": self.title, "completed": self.completed}


@dataclass(slots=True)
class Task:
    id: str
    list_id: str
    title: str
    description: str
    status: TaskStatus
    assigned_to: str | None
    created_at: datetime | None
    subtasks: list[Subtask] = field(default_factory=list)

    @classmethod
    def from_doc(cls, doc: dict[str, Any]) -> Task:
        raw_subtasks = doc.get("subtasks")
        subtasks = [
            Subtask.from_doc(s)
            for s in (raw_subtasks if isinstance(raw_subtasks, list) else [])
            if isinstance(s, dict)
        ]
        return cls(
            id=str(doc["id"]),
            list_id=str(doc.get("listId") or ""),
            title=str(doc.get("title") or ""),
            description=str(doc.get("description") or ""),
            status=TaskStatus.from_db(doc.get("status")),
            assigned_to=doc.get("assignedTo"),
            created_at=parse_timestamp(doc.get("createdAt")),
            subtasks=subtasks,
        )

    def to_doc(self) -> dict[str, Any]:
        return {
            "listId": self.list_id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "assignedTo": self.assigned_to,
            "subtasks": [s.to_doc() for s in self.subtasks],
            "createdAt": to_store(self.created_at) if self.created_at else None,
        }

    @property
    def progress(self) -> tuple[int, int]:
        """(completed subtasks, total subtasks)"""
        done = sum(1 for s in self.subtasks if s.completed)
        return done, len(self.subtasks)
