# tests/test_document_store.py

from __future__ import annotations

import sqlite3

import pytest

from tasksync.core.errors import NotFoundError, StoreError
from tasksync.store.filters import AnyOf, Contains, Eq
from tasksync.store.sqlite_store import SQLiteDocumentStore


@pytest.mark.asyncio
async def test_insert_get_roundtrip_assigns_id(real_store: SQLiteDocumentStore) -> None:
    doc_id = await real_store.insert("tasks", {"title": "milk", "subtasks": []})

    doc = await real_store.get("tasks", doc_id)
    assert doc == {"id": doc_id, "title": "milk", "subtasks": []}
    assert await real_store.get("tasks", "missing") is None
    assert await real_store.get("lists", doc_id) is None


@pytest.mark.asyncio
async def test_put_replaces_whole_document(real_store: SQLiteDocumentStore) -> None:
    await real_store.put("users", "u1", {"name": "Alice", "email": "a@example.com"})
    await real_store.put("users", "u1", {"name": "Alice B."})

    assert await real_store.get("users", "u1") == {"id": "u1", "name": "Alice B."}


@pytest.mark.asyncio
async def test_patch_merges_top_level_fields(real_store: SQLiteDocumentStore) -> None:
    doc_id = await real_store.insert("tasks", {"title": "milk", "status": "pending"})

    await real_store.patch("tasks", doc_id, {"status": "review", "id": "ignored"})

    assert await real_store.get("tasks", doc_id) == {
        "id": doc_id,
        "title": "milk",
        "status": "review",
    }


@pytest.mark.asyncio
async def test_patch_and_array_union_on_missing_document_raise(
    real_store: SQLiteDocumentStore,
) -> None:
    with pytest.raises(NotFoundError):
        await real_store.patch("tasks", "nope", {"status": "review"})
    with pytest.raises(StoreError):
        await real_store.array_union("lists", "nope", "sharedWith", ["a@example.com"])


@pytest.mark.asyncio
async def test_array_union_is_a_set_union(real_store: SQLiteDocumentStore) -> None:
    doc_id = await real_store.insert("lists", {"title": "g"})

    await real_store.array_union("lists", doc_id, "sharedWith", ["a@x", "b@x"])
    await real_store.array_union("lists", doc_id, "sharedWith", ["b@x", "c@x", "a@x"])

    assert (await real_store.get("lists", doc_id))["sharedWith"] == ["a@x", "b@x", "c@x"]


@pytest.mark.asyncio
async def test_delete_is_idempotent(real_store: SQLiteDocumentStore) -> None:
    doc_id = await real_store.insert("tasks", {"title": "milk"})

    await real_store.delete("tasks", doc_id)
    await real_store.delete("tasks", doc_id)

    assert await real_store.get("tasks", doc_id) is None


@pytest.mark.asyncio
async def test_query_filters(real_store: SQLiteDocumentStore) -> None:
    a = await real_store.insert("lists", {"owner": "u1", "sharedWith": []})
    b = await real_store.insert("lists", {"owner": "u2", "sharedWith": ["u1@x"]})
    await real_store.insert("lists", {"owner": "u3", "sharedWith": ["u4@x"]})
    await real_store.insert("tasks", {"owner": "u1"})

    assert {d["id"] for d in await real_store.query("lists", Eq("owner", "u1"))} == {a}
    assert {d["id"] for d in await real_store.query("lists", Contains("sharedWith", "u1@x"))} == {b}
    visible = AnyOf(Eq("owner", "u1"), Contains("sharedWith", "u1@x"))
    assert {d["id"] for d in await real_store.query("lists", visible)} == {a, b}
    assert await real_store.query("lists", AnyOf()) == []
    assert len(await real_store.query("lists")) == 3


@pytest.mark.asyncio
async def test_unserializable_document_is_a_store_error(real_store: SQLiteDocumentStore) -> None:
    with pytest.raises(StoreError):
        await real_store.insert("tasks", {"title": object()})


def test_schema_migration_adds_missing_columns(tmp_path) -> None:
    path = tmp_path / "legacy.sqlite3"
    conn = sqlite3.connect(str(path))
    conn.execute(
        "CREATE TABLE documents (collection TEXT NOT NULL, id TEXT NOT NULL, "
        "PRIMARY KEY (collection, id))"
    )
    conn.commit()
    conn.close()

    SQLiteDocumentStore(path)

    conn = sqlite3.connect(str(path))
    try:
        cols = {row[1] for row in conn.execute("PRAGMA table_info(documents)")}
    finally:
        conn.close()
    assert {"body", "created_at", "updated_at"} <= cols


@pytest.mark.asyncio
async def test_data_survives_reopen(tmp_path) -> None:
    path = tmp_path / "docs.sqlite3"
    first = SQLiteDocumentStore(path)
    doc_id = await first.insert("lists", {"title": "kept"})

    second = SQLiteDocumentStore(path)
    assert (await second.get("lists", doc_id))["title"] == "kept"
