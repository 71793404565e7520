"""
tasksync: realtime collaborative task lists.

Lists of Tasks (status ring + embedded Subtasks), shared by email, with an
append-only Activity feed; every view is a push-driven snapshot subscription
over a last-write-wins document store.
"""

from .core.errors import AuthorizationError, StoreError, TaskSyncError, ValidationError
from .core.mutation import Outcome
from .core.session import Session

__all__ = [
    "AuthorizationError",
    "Outcome",
    "Session",
    "StoreError",
    "TaskSyncError",
    "ValidationError",
]
