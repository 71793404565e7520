# src/tasksync/store/sqlite_store.py

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import sqlite3
import time
import uuid
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, TypeVar

from ..core.errors import NotFoundError, StoreError
from ..sync.subscription import Snapshot, Subscription, SubscriptionHub
from .filters import Filter, matches

logger = logging.getLogger(__name__)

T = TypeVar("T")

Document = dict[str, Any]


class SQLiteDocumentStore:
    """
    SQLite-backed document store with push subscriptions.

    Model:
    - documents are JSON objects grouped by collection, addressed by (collection, id)
    - every write is atomic for one document and last-write-wins (no versions)
    - after each committed write, live subscriptions on that collection get a
      fresh snapshot via the SubscriptionHub

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each operation opens its own SQLite connection
    - blocking work runs in asyncio.to_thread, the event loop is never blocked
    """

    def __init__(self, db_path: str | Path = "tasksync.sqlite3", *, timeout: float = 30.0) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._timeout = float(timeout)
        self._ensure_schema()
        self._hub = SubscriptionHub(self.query)
        try:
            total = self._count_sync()
        except sqlite3.Error:
            total = -1
        logger.info("DocumentStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    @property
    def hub(self) -> SubscriptionHub:
        return self._hub

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=self._timeout)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    collection TEXT NOT NULL,
                    id TEXT NOT NULL,
                    body TEXT NOT NULL DEFAULT '{}',
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    PRIMARY KEY (collection, id)
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(documents)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE documents ADD COLUMN {name} {decl}")
                logger.info("DocumentStore migration: added column %s", name)

            add_col("body", "TEXT NOT NULL DEFAULT '{}'")
            add_col("created_at", "REAL NOT NULL DEFAULT 0")
            add_col("updated_at", "REAL NOT NULL DEFAULT 0")

            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection)"
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _encode(data: Document) -> str:
        body = {k: v for k, v in data.items() if k != "id"}
        try:
            return json.dumps(body, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StoreError(f"Document is not JSON-serializable: {e}") from e

    @staticmethod
    def _decode(doc_id: str, body: str | None) -> Document:
        try:
            val = json.loads(body) if body else {}
        except ValueError:
            logger.warning("Corrupt document body id=%s; treating as empty", doc_id)
            val = {}
        doc = val if isinstance(val, dict) else {}
        doc["id"] = doc_id
        return doc

    async def _run(self, op: str, fn: Callable[..., T], *args: Any) -> T:
        try:
            return await asyncio.to_thread(fn, *args)
        except StoreError:
            raise
        except sqlite3.Error as e:
            raise StoreError(f"{op} failed: {e}") from e

    def _count_sync(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM documents").fetchone()
            return int(n)
        finally:
            conn.close()

    def _write_sync(self, collection: str, doc_id: str, data: Document, replace: bool) -> None:
        now = time.time()
        conn = self._get_conn()
        try:
            body = self._encode(data)
            if replace:
                conn.execute(
                    """
                    INSERT INTO documents(collection, id, body, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(collection, id)
                        DO UPDATE SET body = excluded.body, updated_at = excluded.updated_at
                    """,
                    (collection, doc_id, body, now, now),
                )
            else:
                conn.execute(
                    "INSERT INTO documents(collection, id, body, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (collection, doc_id, body, now, now),
                )
            conn.commit()
        finally:
            conn.close()

    def _get_sync(self, collection: str, doc_id: str) -> Document | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT id, body FROM documents WHERE collection = ? AND id = ?",
                (collection, doc_id),
            ).fetchone()
            return self._decode(row["id"], row["body"]) if row else None
        finally:
            conn.close()

    def _update_sync(
        self, collection: str, doc_id: str, change: Callable[[Document], Document]
    ) -> None:
        """Read-modify-write of one document inside a single IMMEDIATE transaction."""
        conn = self._get_conn()
        try:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute(
                "SELECT body FROM documents WHERE collection = ? AND id = ?",
                (collection, doc_id),
            ).fetchone()
            if row is None:
                conn.rollback()
                raise NotFoundError(f"No document {collection}/{doc_id}")
            current = self._decode(doc_id, row["body"])
            updated = change(current)
            conn.execute(
                "UPDATE documents SET body = ?, updated_at = ? WHERE collection = ? AND id = ?",
                (self._encode(updated), time.time(), collection, doc_id),
            )
            conn.commit()
        except BaseException:
            with contextlib.suppress(sqlite3.Error):
                conn.rollback()
            raise
        finally:
            conn.close()

    def _delete_sync(self, collection: str, doc_id: str) -> int:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "DELETE FROM documents WHERE collection = ? AND id = ?", (collection, doc_id)
            )
            conn.commit()
            return cur.rowcount
        finally:
            conn.close()

    def _select_sync(self, collection: str, where: Filter | None) -> list[Document]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT id, body FROM documents WHERE collection = ? ORDER BY created_at ASC",
                (collection,),
            ).fetchall()
        finally:
            conn.close()
        docs = [self._decode(r["id"], r["body"]) for r in rows]
        return [d for d in docs if matches(where, d)]

    # ---- public API ----

    async def insert(self, collection: str, data: Document) -> str:
        doc_id = uuid.uuid4().hex
        await self._run("insert", self._write_sync, collection, doc_id, data, False)
        logger.debug("Inserted %s/%s", collection, doc_id)
        await self._hub.publish(collection)
        return doc_id

    async def put(self, collection: str, doc_id: str, data: Document) -> None:
        """Create or fully replace the document at a known id."""
        await self._run("put", self._write_sync, collection, doc_id, data, True)
        await self._hub.publish(collection)

    async def get(self, collection: str, doc_id: str) -> Document | None:
        return await self._run("get", self._get_sync, collection, doc_id)

    async def patch(self, collection: str, doc_id: str, fields: Document) -> None:
        """Atomically overwrite the given top-level fields; other fields are kept."""
        patch = {k: v for k, v in fields.items() if k != "id"}
        if not patch:
            return

        def change(doc: Document) -> Document:
            doc.update(patch)
            return doc

        await self._run("patch", self._update_sync, collection, doc_id, change)
        logger.debug("Patched %s/%s fields=%s", collection, doc_id, sorted(patch))
        await self._hub.publish(collection)

    async def array_union(
        self, collection: str, doc_id: str, field: str, values: Iterable[Any]
    ) -> None:
        """Append values missing from the array field (set-union, idempotent)."""
        new_values = list(values)

        def change(doc: Document) -> Document:
            raw = doc.get(field)
            items = list(raw) if isinstance(raw, list) else []
            for v in new_values:
                if v not in items:
                    items.append(v)
            doc[field] = items
            return doc

        await self._run("array_union", self._update_sync, collection, doc_id, change)
        await self._hub.publish(collection)

    async def delete(self, collection: str, doc_id: str) -> None:
        removed = await self._run("delete", self._delete_sync, collection, doc_id)
        logger.debug("Deleted %s/%s removed=%s", collection, doc_id, removed)
        if removed:
            await self._hub.publish(collection)

    async def query(self, collection: str, where: Filter | None = None) -> list[Document]:
        return await self._run("query", self._select_sync, collection, where)

    async def subscribe(
        self,
        collection: str,
        where: Filter | None = None,
        on_snapshot: Callable[[Any], None] | None = None,
        *,
        decode: Callable[[Snapshot], Any] | None = None,
    ) -> Subscription:
        """
        Start a live query. The initial snapshot is delivered like any other.

        The caller owns the returned Subscription and must cancel() it.
        """
        sub = Subscription(self._hub, collection, where, on_snapshot, decode=decode)
        self._hub.register(sub)
        try:
            await self._hub.refresh(sub)
        except StoreError:
            sub.cancel()
            raise
        logger.debug("Subscribed collection=%s where=%r", collection, where)
        return sub
