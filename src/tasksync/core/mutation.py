# src/tasksync/core/mutation.py

"""
Mutate-then-log flow.

A primary store mutation and the Activity that records it are two separate,
sequential, independently fallible calls:

    1. primary()  -> on StoreError: log, Outcome.FAILED, no Activity
    2. record()   -> only after 1 succeeded; on StoreError: log, Outcome.UNLOGGED

Outcome.UNLOGGED is the observable gap where the change is committed but no
Activity describes it. It is never retried or rolled back.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Any

from .errors import StoreError

logger = logging.getLogger(__name__)

Step = Callable[[], Awaitable[Any]]


class Outcome(StrEnum):
    APPLIED = "applied"
    UNLOGGED = "unlogged"  # primary committed, activity append failed
    SKIPPED = "skipped"  # validation no-op, nothing sent to the store
    FAILED = "failed"  # primary mutation failed at the store

    @property
    def committed(self) -> bool:
        return self in (Outcome.APPLIED, Outcome.UNLOGGED)


async def mutate_then_log(op: str, primary: Step, record: Step | None = None) -> Outcome:
    try:
        await primary()
    except StoreError:
        logger.exception("%s failed; nothing was changed", op)
        return Outcome.FAILED

    if record is None:
        return Outcome.APPLIED

    try:
        await record()
    except StoreError:
        logger.exception("%s committed but its activity could not be recorded", op)
        return Outcome.UNLOGGED

    logger.debug("%s applied", op)
    return Outcome.APPLIED
