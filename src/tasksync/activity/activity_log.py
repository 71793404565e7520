# src/tasksync/activity/activity_log.py

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from ..core.ports import DocumentStore
from ..core.session import Session
from ..core.timeutil import to_store, utc_now
from ..store.filters import Eq
from ..sync.subscription import Snapshot, Subscription
from .activity_models import Activity
from .feed import DEFAULT_PAGE_SIZE, ActivityFeedView, ActorClassifier, order_newest_first

logger = logging.getLogger(__name__)

ACTIVITIES = "activities"


class ActivityLog:
    """
    Append-only audit trail, one flat set of records per list.

    There is deliberately no update and no single-record delete; records go away
    only with their list (see ListService.delete_list).
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        clock: Callable[[], datetime] = utc_now,
        feed_limit: int = 0,
    ) -> None:
        self._store = store
        self._clock = clock
        self._feed_limit = max(0, int(feed_limit))

    async def append(self, list_id: str, message: str) -> str:
        """Free-text record: {"listId", "message", "timestamp"}."""
        doc_id = await self._store.insert(
            ACTIVITIES,
            {"listId": list_id, "message": message, "timestamp": to_store(self._clock())},
        )
        logger.info("Activity list=%s: %s", list_id, message)
        return doc_id

    async def append_action(
        self, list_id: str, session: Session, *, action: str, details: str
    ) -> str:
        """Structured record: action + details + actor fields."""
        doc_id = await self._store.insert(
            ACTIVITIES,
            {
                "listId": list_id,
                "userName": session.actor_name,
                "userEmail": session.email,
                "action": action,
                "details": details,
                "timestamp": to_store(self._clock()),
            },
        )
        logger.info("Activity list=%s action=%s: %s", list_id, action, details)
        return doc_id

    async def fetch(self, list_id: str) -> list[Activity]:
        docs = await self._store.query(ACTIVITIES, Eq("listId", list_id))
        return self._ordered(docs)

    async def watch(
        self, list_id: str, on_change: Callable[[list[Activity]], None] | None = None
    ) -> Subscription:
        """Live feed for one list; each delivery is the ordered activity list."""
        return await self._store.subscribe(
            ACTIVITIES, Eq("listId", list_id), on_change, decode=self._ordered
        )

    async def watch_feed(
        self,
        session: Session,
        list_id: str,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        classifier: ActorClassifier | None = None,
        on_change: Callable[[ActivityFeedView], None] | None = None,
    ) -> ActivityFeedView:
        """Feed view for one viewer, kept current by its own subscription."""
        view = ActivityFeedView(
            session, page_size=page_size, classifier=classifier, on_change=on_change
        )
        view.attach(await self.watch(list_id, view.update))
        return view

    def _ordered(self, docs: Snapshot | list) -> list[Activity]:
        ordered = order_newest_first([Activity.from_doc(d) for d in docs])
        if self._feed_limit:
            return ordered[: self._feed_limit]
        return ordered
