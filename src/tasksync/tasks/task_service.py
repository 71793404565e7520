# src/tasksync/tasks/task_service.py

"""
Task operations.

Every mutating call follows the same shape:
- validate input (blank titles are silent no-ops: Outcome.SKIPPED, no store call),
- read the task's current document (subtask edits are read-modify-write),
- issue the primary store mutation,
- append the Activity only if the mutation succeeded (see core.mutation).

toggle_subtask is the one quiet mutation: it never appends an Activity.
Concurrent edits are not merged; the last committed patch wins.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime

from ..activity.activity_log import ActivityLog
from ..core.errors import StoreError
from ..core.mutation import Outcome, mutate_then_log
from ..core.ports import DocumentStore
from ..core.session import Session
from ..core.timeutil import sort_key, to_store, utc_now
from ..store.filters import Eq
from ..sync.subscription import Snapshot, Subscription
from .task_models import Subtask, Task, TaskStatus

logger = logging.getLogger(__name__)

TASKS = "tasks"
LISTS = "lists"


def new_subtask_id() -> str:
    return uuid.uuid4().hex


def newest_first(tasks: list[Task]) -> list[Task]:
    return sorted(tasks, key=lambda t: sort_key(t.created_at), reverse=True)


class TaskService:
    def __init__(
        self,
        store: DocumentStore,
        activity: ActivityLog,
        *,
        clock: Callable[[], datetime] = utc_now,
        subtask_ids: Callable[[], str] = new_subtask_id,
    ) -> None:
        self._store = store
        self._activity = activity
        self._clock = clock
        self._subtask_ids = subtask_ids

    # ---- reads ----

    async def get_task(self, task_id: str) -> Task | None:
        doc = await self._store.get(TASKS, task_id)
        return Task.from_doc(doc) if doc else None

    async def fetch_tasks(self, list_id: str) -> list[Task]:
        docs = await self._store.query(TASKS, Eq("listId", list_id))
        return newest_first([Task.from_doc(d) for d in docs])

    async def watch_tasks(
        self, list_id: str, on_change: Callable[[list[Task]], None] | None = None
    ) -> Subscription:
        """Live tasks of one list, newest first. The caller must cancel() the handle."""

        def decode(snapshot: Snapshot) -> list[Task]:
            return newest_first([Task.from_doc(d) for d in snapshot])

        return await self._store.subscribe(TASKS, Eq("listId", list_id), on_change, decode=decode)

    async def _load(self, op: str, task_id: str) -> Task | None:
        try:
            task = await self.get_task(task_id)
        except StoreError:
            logger.exception("%s: task lookup failed task_id=%s", op, task_id)
            return None
        if task is None:
            logger.warning("%s: task %s does not exist", op, task_id)
        return task

    # ---- task lifecycle ----

    async def create_task(
        self, session: Session, list_id: str, title: str, description: str = ""
    ) -> Outcome:
        clean_title = (title or "").strip()
        if not clean_title:
            return Outcome.SKIPPED

        try:
            parent = await self._store.get(LISTS, list_id)
        except StoreError:
            logger.exception("create_task: list lookup failed list_id=%s", list_id)
            return Outcome.FAILED
        if parent is None:
            logger.warning("create_task: list %s does not exist", list_id)
            return Outcome.SKIPPED

        data = {
            "listId": list_id,
            "title": clean_title,
            "description": description or "",
            "status": TaskStatus.PENDING.value,
            "assignedTo": session.user_id,
            "subtasks": [],
            "createdAt": to_store(self._clock()),
        }
        return await mutate_then_log(
            "create_task",
            lambda: self._store.insert(TASKS, data),
            lambda: self._activity.append(list_id, f'{session.actor_name} added "{clean_title}"'),
        )

    async def advance_status(self, session: Session, task_id: str) -> Outcome:
        task = await self._load("advance_status", task_id)
        if task is None:
            return Outcome.FAILED

        new_status = task.status.next()
        logger.debug("Task %s %s -> %s", task_id, task.status.value, new_status.value)
        return await mutate_then_log(
            "advance_status",
            lambda: self._store.patch(TASKS, task_id, {"status": new_status.value}),
            lambda: self._activity.append(
                task.list_id,
                f'{session.actor_name} marked "{task.title}" as {new_status.value}',
            ),
        )

    async def edit_task(
        self, session: Session, task_id: str, title: str, description: str = ""
    ) -> Outcome:
        clean_title = (title or "").strip()
        if not clean_title:
            return Outcome.SKIPPED

        task = await self._load("edit_task", task_id)
        if task is None:
            return Outcome.FAILED

        # The activity names the task as it was before the edit.
        return await mutate_then_log(
            "edit_task",
            lambda: self._store.patch(
                TASKS, task_id, {"title": clean_title, "description": description or ""}
            ),
            lambda: self._activity.append(
                task.list_id, f'{session.actor_name} edited "{task.title}"'
            ),
        )

    async def delete_task(self, session: Session, task_id: str) -> Outcome:
        """Confirmation is the caller's job; this deletes immediately."""
        task = await self._load("delete_task", task_id)
        if task is None:
            return Outcome.FAILED

        return await mutate_then_log(
            "delete_task",
            lambda: self._store.delete(TASKS, task_id),
            lambda: self._activity.append(
                task.list_id, f'{session.actor_name} deleted "{task.title}"'
            ),
        )

    # ---- subtasks ----

    async def add_subtask(self, session: Session, task_id: str, title: str) -> Outcome:
        clean_title = (title or "").strip()
        if not clean_title:
            return Outcome.SKIPPED

        task = await self._load("add_subtask", task_id)
        if task is None:
            return Outcome.FAILED

        subtask = Subtask(id=self._subtask_ids(), title=clean_title, completed=False)
        updated = [s.to_doc() for s in task.subtasks] + [subtask.to_doc()]
        return await mutate_then_log(
            "add_subtask",
            lambda: self._store.patch(TASKS, task_id, {"subtasks": updated}),
            lambda: self._activity.append(
                task.list_id,
                f'{session.actor_name} added subtask "{clean_title}" to "{task.title}"',
            ),
        )

    async def toggle_subtask(self, session: Session, task_id: str, subtask_id: str) -> Outcome:
        task = await self._load("toggle_subtask", task_id)
        if task is None:
            return Outcome.FAILED
        if not any(s.id == subtask_id for s in task.subtasks):
            logger.warning("toggle_subtask: no subtask %s in task %s", subtask_id, task_id)
            return Outcome.SKIPPED

        updated = [
            Subtask(s.id, s.title, not s.completed).to_doc() if s.id == subtask_id else s.to_doc()
            for s in task.subtasks
        ]
        # No activity on purpose: toggling is quiet.
        return await mutate_then_log(
            "toggle_subtask",
            lambda: self._store.patch(TASKS, task_id, {"subtasks": updated}),
        )

    async def delete_subtask(self, session: Session, task_id: str, subtask_id: str) -> Outcome:
        task = await self._load("delete_subtask", task_id)
        if task is None:
            return Outcome.FAILED
        if not any(s.id == subtask_id for s in task.subtasks):
            logger.warning("delete_subtask: no subtask %s in task %s", subtask_id, task_id)
            return Outcome.SKIPPED

        updated = [s.to_doc() for s in task.subtasks if s.id != subtask_id]
        return await mutate_then_log(
            "delete_subtask",
            lambda: self._store.patch(TASKS, task_id, {"subtasks": updated}),
            lambda: self._activity.append(
                task.list_id, f'{session.actor_name} removed a subtask from "{task.title}"'
            ),
        )
