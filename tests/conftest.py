# tests/conftest.py

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path
from types import SimpleNamespace

import pytest

from tasksync.activity.activity_log import ActivityLog
from tasksync.core.session import Session
from tasksync.lists.collaboration import CollaborationManager
from tasksync.lists.list_service import ListService
from tasksync.store.sqlite_store import SQLiteDocumentStore
from tasksync.tasks.task_service import TaskService

from .fakes import FakeProfiles, FlakyStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="tasksync-test",
        log_level="DEBUG",
        log_to_file=False,
        data_dir=tmp_path / "data",
        store_db_path=tmp_path / "data" / "documents.sqlite3",
        store_timeout_seconds=5.0,
        activity_page_size=5,
        activity_feed_limit=0,
    )


@pytest.fixture()
def real_store(tmp_path: Path) -> SQLiteDocumentStore:
    """
    NOTE: We keep a real SQLite store here because its snapshot/patch
    semantics are part of what we want to test.
    """
    return SQLiteDocumentStore(tmp_path / "documents.sqlite3", timeout=5.0)


@pytest.fixture()
def store(real_store: SQLiteDocumentStore) -> FlakyStore:
    return FlakyStore(real_store)


@pytest.fixture()
def profiles() -> FakeProfiles:
    return FakeProfiles()


@pytest.fixture()
def clock():
    """Deterministic clock: every call is one second after the previous one."""
    current = [datetime(2024, 3, 1, 9, 0, tzinfo=UTC)]

    def tick() -> datetime:
        current[0] += timedelta(seconds=1)
        return current[0]

    return tick


@pytest.fixture()
def activity(store: FlakyStore, clock) -> ActivityLog:
    return ActivityLog(store, clock=clock)


@pytest.fixture()
def lists(store: FlakyStore, activity: ActivityLog, clock) -> ListService:
    return ListService(store, activity, clock=clock)


@pytest.fixture()
def tasks(store: FlakyStore, activity: ActivityLog, clock) -> TaskService:
    return TaskService(store, activity, clock=clock)


@pytest.fixture()
def collaboration(
    store: FlakyStore, activity: ActivityLog, profiles: FakeProfiles
) -> CollaborationManager:
    return CollaborationManager(store, activity, profiles)


@pytest.fixture()
def alice() -> Session:
    return Session(user_id="u-alice", email="alice@example.com", display_name="Alice")


@pytest.fixture()
def bob() -> Session:
    return Session(user_id="u-bob", email="bob@example.com", display_name="Bob")


@pytest.fixture()
def carol() -> Session:
    return Session(user_id="u-carol", email="carol@example.com", display_name="Carol")
