# src/tasksync/lists/list_service.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from ..activity.activity_log import ACTIVITIES, ActivityLog
from ..core.errors import AuthorizationError, StoreError, ValidationError
from ..core.mutation import Outcome, mutate_then_log
from ..core.ports import DocumentStore
from ..core.session import Session
from ..core.timeutil import to_store, utc_now
from ..store.filters import AnyOf, Contains, Eq, Filter
from ..sync.subscription import Snapshot, Subscription
from .list_models import TaskList, fallback_selection, newest_first

logger = logging.getLogger(__name__)

LISTS = "lists"
TASKS = "tasks"


@dataclass(frozen=True, slots=True)
class CascadeReport:
    """
    What delete_list actually removed.

    The cascade is not transactional, so any mix of deleted / surviving
    documents is a possible end state.
    """

    list_id: str
    tasks_deleted: int = 0
    tasks_failed: int = 0
    activities_deleted: int = 0
    activities_failed: int = 0
    list_deleted: bool = False

    @property
    def complete(self) -> bool:
        return self.list_deleted and self.tasks_failed == 0 and self.activities_failed == 0


class ListsView:
    """
    Lists visible to one session (owned or shared with their email), newest
    first, plus the client-local "active list".

    The active list is never persisted. When it leaves the visible set
    (deleted, access revoked) selection falls back to the newest visible list,
    or None when nothing is visible.

    close() must be called when the view is disposed.
    """

    def __init__(
        self, session: Session, on_change: Callable[[ListsView], None] | None = None
    ) -> None:
        self.session = session
        self.lists: list[TaskList] = []
        self.selected: TaskList | None = None
        self._on_change = on_change
        self._subscription: Subscription | None = None

    def apply(self, lists: list[TaskList]) -> None:
        previous = self.selected.id if self.selected else None
        self.lists = newest_first(lists)
        self.selected = fallback_selection(previous, self.lists)

        current = self.selected.id if self.selected else None
        if previous is not None and current != previous:
            logger.info("Active list %s is gone; selection -> %s", previous, current)

        if self._on_change is not None:
            self._on_change(self)

    def select(self, list_id: str) -> TaskList | None:
        """Select a visible list by id; unknown ids leave the selection unchanged."""
        for lst in self.lists:
            if lst.id == list_id:
                self.selected = lst
                return lst
        return None

    def attach(self, subscription: Subscription) -> None:
        self._subscription = subscription

    @property
    def active(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()

    async def __aenter__(self) -> ListsView:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()


def visible_to(session: Session) -> Filter:
    clauses: list[Filter] = [Eq("owner", session.user_id)]
    if session.email:
        clauses.append(Contains("sharedWith", session.email))
    return AnyOf(*clauses)


class ListService:
    def __init__(
        self,
        store: DocumentStore,
        activity: ActivityLog,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._activity = activity
        self._clock = clock

    async def get_list(self, list_id: str) -> TaskList | None:
        doc = await self._store.get(LISTS, list_id)
        return TaskList.from_doc(doc) if doc else None

    async def watch_lists(
        self, session: Session, on_change: Callable[[ListsView], None] | None = None
    ) -> ListsView:
        view = ListsView(session, on_change)

        def decode(snapshot: Snapshot) -> list[TaskList]:
            return [TaskList.from_doc(d) for d in snapshot]

        sub = await self._store.subscribe(LISTS, visible_to(session), view.apply, decode=decode)
        view.attach(sub)
        return view

    async def create_list(self, session: Session, title: str) -> Outcome:
        clean_title = (title or "").strip()
        if not clean_title:
            return Outcome.SKIPPED

        created: dict[str, str] = {}

        async def insert() -> None:
            created["id"] = await self._store.insert(
                LISTS,
                {
                    "title": clean_title,
                    "owner": session.user_id,
                    "sharedWith": [],
                    "createdAt": to_store(self._clock()),
                },
            )

        return await mutate_then_log(
            "create_list",
            insert,
            lambda: self._activity.append(created["id"], f"{session.actor_name} created the list"),
        )

    async def rename_list(self, session: Session, list_id: str, new_title: str) -> Outcome:
        """Blank titles raise ValidationError (the one surfaced validation failure)."""
        clean_title = (new_title or "").strip()
        if not clean_title:
            raise ValidationError("List title cannot be empty")

        return await mutate_then_log(
            "rename_list",
            lambda: self._store.patch(LISTS, list_id, {"title": clean_title}),
            lambda: self._activity.append_action(
                list_id,
                session,
                action="renamed",
                details=f'{session.actor_name} renamed the list to "{clean_title}"',
            ),
        )

    async def delete_list(self, session: Session, task_list: TaskList) -> CascadeReport:
        """
        Owner-only cascading delete in three sequential phases:

        1. delete every task of the list (concurrently, all awaited)
        2. delete every activity of the list (concurrently, all awaited)
        3. delete the list document

        Nothing is rolled back and a failing phase does not stop the next one.
        Authorization uses the caller's synced snapshot, so a non-owner is
        rejected before any store call.
        """
        if not task_list.is_owner(session):
            raise AuthorizationError(f"Only the owner can delete list {task_list.id}")

        list_id = task_list.id
        tasks_ok, tasks_failed = await self._delete_matching(TASKS, list_id)
        acts_ok, acts_failed = await self._delete_matching(ACTIVITIES, list_id)

        list_deleted = True
        try:
            await self._store.delete(LISTS, list_id)
        except StoreError:
            logger.exception("delete_list: list document delete failed list_id=%s", list_id)
            list_deleted = False

        report = CascadeReport(
            list_id=list_id,
            tasks_deleted=tasks_ok,
            tasks_failed=tasks_failed,
            activities_deleted=acts_ok,
            activities_failed=acts_failed,
            list_deleted=list_deleted,
        )
        if report.complete:
            logger.info(
                "List %s deleted (tasks=%d activities=%d)", list_id, tasks_ok, acts_ok
            )
        else:
            logger.warning("List %s only partially deleted: %s", list_id, report)
        return report

    async def _delete_matching(self, collection: str, list_id: str) -> tuple[int, int]:
        """Delete all docs of a collection with listId == list_id; returns (deleted, failed)."""
        try:
            docs = await self._store.query(collection, Eq("listId", list_id))
        except StoreError:
            logger.exception("delete_list: cannot enumerate %s for list_id=%s", collection, list_id)
            return 0, 1

        ids = [str(d["id"]) for d in docs]
        results = await asyncio.gather(
            *(self._store.delete(collection, doc_id) for doc_id in ids),
            return_exceptions=True,
        )

        failed = 0
        for doc_id, res in zip(ids, results):
            if isinstance(res, StoreError):
                failed += 1
                logger.error("delete_list: %s/%s not deleted: %s", collection, doc_id, res)
            elif isinstance(res, BaseException):
                raise res
        return len(ids) - failed, failed
