# src/tasksync/lists/collaboration.py

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from ..activity.activity_log import ActivityLog
from ..core.errors import AuthorizationError
from ..core.mutation import Outcome, mutate_then_log
from ..core.ports import DocumentStore, ProfileRepo
from ..core.session import Session
from .list_models import TaskList

logger = logging.getLogger(__name__)

LISTS = "lists"


@dataclass(frozen=True, slots=True)
class Collaborator:
    """
    One roster row. Built at read time from List.sharedWith (or the owner id)
    plus a profile lookup; never stored.
    """

    email: str | None
    name: str | None
    is_owner: bool
    is_you: bool

    @property
    def label(self) -> str:
        if self.is_you:
            return "You"
        return self.name or self.email or ("Owner" if self.is_owner else "")


class CollaborationManager:
    """
    Sharing rules for a list.

    Membership edits use the caller's synced TaskList snapshot: the new
    sharedWith array is computed from it and patched in one write, so a
    concurrent membership change by someone else can be overwritten
    (last write wins). share_list is the exception, it uses the store's
    set-union append and is idempotent.
    """

    def __init__(self, store: DocumentStore, activity: ActivityLog, profiles: ProfileRepo) -> None:
        self._store = store
        self._activity = activity
        self._profiles = profiles

    async def share_list(self, session: Session, task_list: TaskList, email: str) -> Outcome:
        """Does not check that the email belongs to a registered account."""
        clean = (email or "").strip()
        if not clean:
            return Outcome.SKIPPED
        # The owner never appears in sharedWith.
        if task_list.is_owner(session):
            owner_email = session.email
        else:
            owner = await self._profiles.by_id(task_list.owner_id)
            owner_email = owner.email if owner is not None else None
        if owner_email and clean == owner_email:
            logger.info("share_list: owner cannot be added as a collaborator list=%s", task_list.id)
            return Outcome.SKIPPED

        return await mutate_then_log(
            "share_list",
            lambda: self._store.array_union(LISTS, task_list.id, "sharedWith", [clean]),
            lambda: self._activity.append(
                task_list.id, f"{session.actor_name} shared the list with {clean}"
            ),
        )

    async def remove_collaborator(
        self, session: Session, task_list: TaskList, email: str
    ) -> Outcome:
        if not task_list.is_owner(session):
            raise AuthorizationError(f"Only the owner can remove collaborators from {task_list.id}")
        if email not in task_list.shared_with:
            return Outcome.SKIPPED

        remaining = [e for e in task_list.shared_with if e != email]

        async def record() -> None:
            profile = await self._profiles.by_email(email)
            removed = (profile.name if profile else None) or email
            await self._activity.append_action(
                task_list.id,
                session,
                action="removed",
                details=f"{removed} was removed from the list",
            )

        return await mutate_then_log(
            "remove_collaborator",
            lambda: self._store.patch(LISTS, task_list.id, {"sharedWith": remaining}),
            record,
        )

    async def leave_list(self, session: Session, task_list: TaskList) -> Outcome:
        if task_list.is_owner(session):
            raise AuthorizationError("The owner cannot leave their own list")
        if not task_list.is_collaborator(session):
            raise AuthorizationError(f"{session.email!r} is not a collaborator of {task_list.id}")

        remaining = [e for e in task_list.shared_with if e != session.email]
        return await mutate_then_log(
            "leave_list",
            lambda: self._store.patch(LISTS, task_list.id, {"sharedWith": remaining}),
            lambda: self._activity.append_action(
                task_list.id,
                session,
                action="left",
                details=f"{session.actor_name} left the list",
            ),
        )

    async def collaborators(self, task_list: TaskList, session: Session) -> list[Collaborator]:
        """Owner first, then every shared email; recomputed on each call."""
        owner_profile, *profiles = await asyncio.gather(
            self._profiles.by_id(task_list.owner_id),
            *(self._profiles.by_email(e) for e in task_list.shared_with),
        )

        roster = [
            Collaborator(
                email=owner_profile.email if owner_profile else None,
                name=owner_profile.name if owner_profile else None,
                is_owner=True,
                is_you=task_list.is_owner(session),
            )
        ]
        for email, profile in zip(task_list.shared_with, profiles):
            roster.append(
                Collaborator(
                    email=email,
                    name=profile.name if profile else None,
                    is_owner=False,
                    is_you=bool(session.email) and email == session.email,
                )
            )
        return roster
