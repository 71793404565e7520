# src/tasksync/bootstrap.py

"""
Composition root.

- loads settings once,
- ensures local (gitignored) directories exist,
- optionally configures logging,
- wires the store, profile directory, activity log and services into AppState.
"""

from __future__ import annotations

import logging

from .activity.activity_log import ActivityLog
from .config import get_settings
from .core.state import AppState
from .lists.collaboration import CollaborationManager
from .lists.list_service import ListService
from .logging_setup import setup_logging
from .profiles.profile_directory import ProfileDirectory
from .store.sqlite_store import SQLiteDocumentStore
from .tasks.task_service import TaskService

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.store_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, configure_logging: bool = False) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the library easier to test and avoids hidden
    global config reads. If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    if configure_logging:
        level_name = str(getattr(settings, "log_level", "INFO")).upper()
        console_level = getattr(logging, level_name, logging.INFO)
        log_dir = settings.data_dir if getattr(settings, "log_to_file", True) else None
        setup_logging(log_dir=log_dir, console_level=console_level)

    store = SQLiteDocumentStore(
        settings.store_db_path,
        timeout=getattr(settings, "store_timeout_seconds", 30.0),
    )
    activity = ActivityLog(store, feed_limit=getattr(settings, "activity_feed_limit", 0))
    profiles = ProfileDirectory(store)

    state = AppState(
        settings=settings,
        store=store,
        profiles=profiles,
        activity=activity,
        lists=ListService(store, activity),
        tasks=TaskService(store, activity),
        collaboration=CollaborationManager(store, activity, profiles),
    )
    logger.info("%s ready (store=%s)", getattr(settings, "app_name", "tasksync"), settings.store_db_path)
    return state
