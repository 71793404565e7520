# src/tasksync/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the services.

Services depend on Protocols instead of concrete implementations.
This keeps the replicated document store and the profile source swappable
and makes testing easier (tests wrap the real SQLite store with fault injection).
"""

from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from ..profiles.profile_directory import Profile
    from ..store.filters import Filter
    from ..sync.subscription import Subscription

Document = dict[str, Any]
# Stored documents always carry their "id" key when returned by the store.


class DocumentStore(Protocol):
    """
    The subset of the replicated document store the core consumes.

    Every call is a separate, independently fallible network call and raises
    StoreError on failure. Writes are last-write-wins per document.
    """

    async def insert(self, collection: str, data: Document) -> str: ...

    async def put(self, collection: str, doc_id: str, data: Document) -> None: ...

    async def get(self, collection: str, doc_id: str) -> Document | None: ...

    async def patch(self, collection: str, doc_id: str, fields: Document) -> None: ...

    async def array_union(
            self, collection: str, doc_id: str, field: str, values: Iterable[Any]
    ) -> None: ...

    async def delete(self, collection: str, doc_id: str) -> None: ...

    async def query(self, collection: str, where: Filter | None = None) -> list[Document]: ...

    async def subscribe(
            self,
            collection: str,
            where: Filter | None = None,
            on_snapshot: Callable[[Any], None] | None = None,
            *,
            decode: Callable[[tuple[Document, ...]], Any] | None = None,
    ) -> Subscription: ...


class ProfileRepo(Protocol):
    """Read-time profile enrichment (users collection indexed by id and email)."""

    async def by_id(self, user_id: str) -> Profile | None: ...

    async def by_email(self, email: str) -> Profile | None: ...
