# src/tasksync/core/errors.py

from __future__ import annotations


class TaskSyncError(Exception):
    """Base class for all errors raised by tasksync."""


class ValidationError(TaskSyncError):
    """Blank or otherwise unusable input (title, email)."""


class StoreError(TaskSyncError):
    """Network/permission/storage failure on a document store call."""


class NotFoundError(StoreError):
    """The addressed document does not exist (patch/array_union on a missing doc)."""


class AuthorizationError(TaskSyncError):
    """An owner-only (or member-only) action attempted by someone else."""
