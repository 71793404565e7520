# src/tasksync/core/state.py

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from ..activity.activity_log import ActivityLog
from ..activity.feed import DEFAULT_PAGE_SIZE, ActivityFeedView
from ..lists.collaboration import CollaborationManager
from ..lists.list_service import ListService
from ..profiles.profile_directory import ProfileDirectory
from ..store.sqlite_store import SQLiteDocumentStore
from ..tasks.task_service import TaskService
from .session import Session


@dataclass
class AppState:
    # Store Settings on the state for easy access by the presentation layer.
    settings: object

    store: SQLiteDocumentStore
    profiles: ProfileDirectory
    activity: ActivityLog
    lists: ListService
    tasks: TaskService
    collaboration: CollaborationManager

    async def watch_feed(
        self,
        session: Session,
        list_id: str,
        on_change: Callable[[ActivityFeedView], None] | None = None,
    ) -> ActivityFeedView:
        """Live feed view of one list; the caller must close() it."""
        page_size = getattr(self.settings, "activity_page_size", DEFAULT_PAGE_SIZE)
        return await self.activity.watch_feed(
            session, list_id, page_size=page_size, on_change=on_change
        )

    def close(self) -> None:
        self.store.close()
