# src/tasksync/core/session.py

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_ACTOR_NAME = "Someone"
DEFAULT_VIEWER_NAME = "User"


@dataclass(frozen=True, slots=True)
class Session:
    """
    Identity of the caller, supplied by the external identity provider.

    Every service call takes a Session explicitly; nothing reads a global
    "current user".
    """

    user_id: str
    email: str | None = None
    display_name: str | None = None

    @property
    def actor_name(self) -> str:
        """Name written into Activity messages."""
        name = (self.display_name or "").strip()
        return name or DEFAULT_ACTOR_NAME

    @property
    def viewer_name(self) -> str:
        """Name used when reading the feed (categorization / personalization)."""
        name = (self.display_name or "").strip()
        return name or DEFAULT_VIEWER_NAME
