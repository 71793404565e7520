# src/tasksync/profiles/profile_directory.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..core.errors import StoreError
from ..core.ports import DocumentStore
from ..core.timeutil import to_store, utc_now
from ..store.filters import Eq

logger = logging.getLogger(__name__)

USERS = "users"


@dataclass(frozen=True, slots=True)
class Profile:
    user_id: str
    name: str | None
    email: str | None

    @classmethod
    def from_doc(cls, doc: dict[str, Any]) -> Profile:
        name = doc.get("name")
        email = doc.get("email")
        return cls(
            user_id=str(doc.get("uid") or doc["id"]),
            name=name if isinstance(name, str) and name.strip() else None,
            email=email if isinstance(email, str) and email.strip() else None,
        )


class ProfileDirectory:
    """
    Profiles stored in the "users" collection (doc id == user id).

    Lookups are best-effort: a store failure is logged and resolves to None,
    callers then fall back to the raw email.
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def by_id(self, user_id: str) -> Profile | None:
        if not user_id:
            return None
        try:
            doc = await self._store.get(USERS, user_id)
        except StoreError:
            logger.exception("Profile lookup by id failed user_id=%s", user_id)
            return None
        return Profile.from_doc(doc) if doc else None

    async def by_email(self, email: str) -> Profile | None:
        if not email:
            return None
        try:
            docs = await self._store.query(USERS, Eq("email", email))
        except StoreError:
            logger.exception("Profile lookup by email failed email=%s", email)
            return None
        return Profile.from_doc(docs[0]) if docs else None

    async def save_profile(self, user_id: str, *, name: str, email: str) -> None:
        """Create or replace the profile written by the identity provider at sign-up."""
        await self._store.put(
            USERS,
            user_id,
            {"uid": user_id, "name": name, "email": email, "createdAt": to_store(utc_now())},
        )
        logger.info("Profile saved user_id=%s", user_id)
