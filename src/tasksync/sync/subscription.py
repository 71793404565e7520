# src/tasksync/sync/subscription.py

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import TYPE_CHECKING, Any

from ..core.errors import StoreError

if TYPE_CHECKING:
    from ..store.filters import Filter

logger = logging.getLogger(__name__)

Document = dict[str, Any]
Snapshot = tuple[Document, ...]
Fetch = Callable[[str, "Filter | None"], Awaitable[list[Document]]]

_UNSET: Any = object()


def snapshot_of(docs: list[Document]) -> Snapshot:
    """Deduplicate by id and fix an order so equal sets compare equal."""
    by_id: dict[str, Document] = {}
    for d in docs:
        by_id[str(d.get("id"))] = d
    return tuple(by_id[k] for k in sorted(by_id))


class Subscription:
    """
    Long-lived live query over one collection.

    Delivery:
    - the hub offers a fresh snapshot after each committed write to the collection,
    - unchanged snapshots are dropped, stale ones (older publish) are ignored,
    - delivery itself runs via loop.call_soon, never inside the writer's call.

    Teardown:
    - cancel() is mandatory for the owner and idempotent,
    - after cancel() no callback fires, even one that was already scheduled,
    - snapshots() iterators finish once the subscription is cancelled.
    """

    def __init__(
        self,
        hub: SubscriptionHub,
        collection: str,
        where: Filter | None = None,
        on_snapshot: Callable[[Any], None] | None = None,
        *,
        decode: Callable[[Snapshot], Any] | None = None,
    ) -> None:
        self._hub = hub
        self.collection = collection
        self.where = where
        self._on_snapshot = on_snapshot
        self._decode = decode

        self._cancelled = False
        self._raw: Snapshot | None = None
        self._seq = -1
        self._latest: Any = _UNSET
        self._version = 0
        self._changed = asyncio.Event()

    def __repr__(self) -> str:
        return (
            f"Subscription(collection={self.collection!r}, where={self.where!r}, "
            f"active={self.active})"
        )

    @property
    def active(self) -> bool:
        return not self._cancelled

    @property
    def latest(self) -> Any:
        """Latest delivered value, or None before the first delivery."""
        return None if self._latest is _UNSET else self._latest

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._hub.unregister(self)
        self._changed.set()
        logger.debug("Subscription cancelled collection=%s where=%r", self.collection, self.where)

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.cancel()

    def __aiter__(self) -> AsyncIterator[Any]:
        return self.snapshots()

    async def snapshots(self) -> AsyncIterator[Any]:
        """
        Lazy, unbounded sequence of "current matching set" values.

        Each call starts from the latest delivered value, so iteration can be
        restarted at any time. Intermediate values are coalesced: a slow
        consumer only ever sees the latest known state.
        """
        seen = 0
        while True:
            if self._cancelled:
                return
            if self._version > seen and self._latest is not _UNSET:
                seen = self._version
                yield self._latest
                continue
            self._changed.clear()
            await self._changed.wait()

    # ---- hub side ----

    def _offer(self, raw: Snapshot, seq: int) -> bool:
        if self._cancelled or seq < self._seq:
            return False
        self._seq = seq
        if raw == self._raw:
            return False
        self._raw = raw
        asyncio.get_running_loop().call_soon(self._deliver, raw)
        return True

    def _deliver(self, raw: Snapshot) -> None:
        if self._cancelled or raw is not self._raw:
            # Cancelled, or superseded by a newer snapshot with its own delivery.
            return

        value = self._decode(raw) if self._decode is not None else raw
        self._latest = value
        self._version += 1
        self._changed.set()

        if self._on_snapshot is None:
            return
        try:
            self._on_snapshot(value)
        except Exception:
            logger.exception("Snapshot callback failed collection=%s", self.collection)


class SubscriptionHub:
    """Per-collection registry of live subscriptions for one store."""

    def __init__(self, fetch: Fetch) -> None:
        self._fetch = fetch
        self._subs: dict[str, list[Subscription]] = {}
        self._seq = itertools.count()

    def register(self, sub: Subscription) -> None:
        self._subs.setdefault(sub.collection, []).append(sub)

    def unregister(self, sub: Subscription) -> None:
        subs = self._subs.get(sub.collection)
        if not subs:
            return
        try:
            subs.remove(sub)
        except ValueError:
            return
        if not subs:
            del self._subs[sub.collection]

    def count(self, collection: str | None = None) -> int:
        if collection is not None:
            return len(self._subs.get(collection, ()))
        return sum(len(v) for v in self._subs.values())

    async def refresh(self, sub: Subscription) -> None:
        seq = next(self._seq)
        docs = await self._fetch(sub.collection, sub.where)
        sub._offer(snapshot_of(docs), seq)

    async def publish(self, collection: str) -> None:
        """Recompute and offer snapshots to every live subscription on the collection."""
        for sub in list(self._subs.get(collection, ())):
            if not sub.active:
                continue
            try:
                await self.refresh(sub)
            except StoreError:
                # The next committed write publishes again.
                logger.exception("Snapshot refresh failed collection=%s", collection)
