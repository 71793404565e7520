# src/tasksync/activity/feed.py

"""
Feed assembly.

Pipeline for one render:
- order newest-first (client-side, the store has no ordering),
- categorize into "mine" / "others" on the ORIGINAL text,
- paginate each partition independently (1-indexed, clamped),
- personalize text and format relative time for display only.

Attribution is isolated behind ActorClassifier so an actor-id based schema can
replace the text heuristic without touching consumers.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Generic, Protocol, TypeVar

from ..core.session import Session
from ..core.timeutil import sort_key, utc_now
from ..sync.subscription import Subscription
from .activity_models import Activity

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 5
SELF_TOKEN = "You"
EMPTY_TEXT = "Activity"


def order_newest_first(activities: Iterable[Activity]) -> list[Activity]:
    return sorted(activities, key=lambda a: sort_key(a.timestamp), reverse=True)


class ActorClassifier(Protocol):
    def is_mine(self, activity: Activity, viewer: Session) -> bool: ...


class MessagePrefixClassifier:
    """
    An entry is "mine" iff its text starts with the viewer's display name or
    with the literal "You".

    Known misclassifications are part of the contract: two users sharing a
    display name both see each other's entries as theirs, and any text that
    happens to start with "You" is always "mine".
    """

    def is_mine(self, activity: Activity, viewer: Session) -> bool:
        text = activity.text
        if not text:
            return False
        name = viewer.viewer_name
        return text.startswith(name) or text.startswith(SELF_TOKEN)


_DEFAULT_CLASSIFIER = MessagePrefixClassifier()


def categorize(
    activities: Iterable[Activity],
    viewer: Session,
    classifier: ActorClassifier | None = None,
) -> tuple[list[Activity], list[Activity]]:
    """Split into (mine, others), preserving input order."""
    clf = classifier or _DEFAULT_CLASSIFIER
    mine: list[Activity] = []
    others: list[Activity] = []
    for a in activities:
        (mine if clf.is_mine(a, viewer) else others).append(a)
    return mine, others


def personalize(text: str, viewer: Session) -> str:
    """
    Display-only rewrite:
    - a leading viewer display name -> "You"
    - every occurrence of the viewer's email -> "you"
    """
    out = text
    name = viewer.viewer_name
    if name and out.startswith(name):
        out = SELF_TOKEN + out[len(name):]
    if viewer.email and viewer.email in out:
        out = out.replace(viewer.email, "you")
    return out


def format_time(ts: datetime | None, now: datetime) -> str:
    """Relative time; a pure function of (ts, now), never cached."""
    if ts is None:
        return ""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)

    diff = math.floor((now - ts).total_seconds())
    if diff < 60:
        return "just now"
    if diff < 3600:
        return f"{diff // 60}m ago"
    if diff < 86400:
        return f"{diff // 3600}h ago"
    return ts.astimezone(now.tzinfo).strftime("%Y-%m-%d")


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    items: list[T]
    page: int
    total_pages: int
    total_items: int

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


def total_pages(n_items: int, page_size: int) -> int:
    """Always at least 1 so an empty partition still has a valid page."""
    return max(1, math.ceil(n_items / page_size))


def clamp_page(page: int, n_pages: int) -> int:
    return min(max(1, int(page)), max(1, n_pages))


def paginate(items: Sequence[T], page: int, page_size: int = DEFAULT_PAGE_SIZE) -> Page[T]:
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    n_pages = total_pages(len(items), page_size)
    current = clamp_page(page, n_pages)
    start = (current - 1) * page_size
    return Page(
        items=list(items[start:start + page_size]),
        page=current,
        total_pages=n_pages,
        total_items=len(items),
    )


@dataclass(frozen=True, slots=True)
class FeedEntry:
    activity: Activity
    text: str
    when: str


@dataclass(frozen=True, slots=True)
class FeedView:
    mine: Page[FeedEntry]
    others: Page[FeedEntry]
    total: int


def _render_page(page: Page[Activity], viewer: Session, now: datetime) -> Page[FeedEntry]:
    entries = [
        FeedEntry(
            activity=a,
            text=personalize(a.text or EMPTY_TEXT, viewer),
            when=format_time(a.timestamp, now),
        )
        for a in page.items
    ]
    return Page(
        items=entries,
        page=page.page,
        total_pages=page.total_pages,
        total_items=page.total_items,
    )


def build_feed(
    activities: Iterable[Activity],
    viewer: Session,
    *,
    now: datetime,
    mine_page: int = 1,
    others_page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    classifier: ActorClassifier | None = None,
) -> FeedView:
    ordered = order_newest_first(activities)
    mine, others = categorize(ordered, viewer, classifier)
    return FeedView(
        mine=_render_page(paginate(mine, mine_page, page_size), viewer, now),
        others=_render_page(paginate(others, others_page, page_size), viewer, now),
        total=len(ordered),
    )


class ActivityFeedView:
    """
    Per-viewer feed state: the latest activities plus one page index per partition.

    Page indices are re-clamped every time new data arrives, so shrinking the
    feed under the reader moves them to the last valid page instead of failing.

    A view returned by ActivityLog.watch_feed owns its subscription; close()
    must be called when the view is disposed.
    """

    def __init__(
        self,
        viewer: Session,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        classifier: ActorClassifier | None = None,
        on_change: Callable[[ActivityFeedView], None] | None = None,
    ) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self._viewer = viewer
        self._page_size = page_size
        self._classifier = classifier
        self._activities: list[Activity] = []
        self._mine: list[Activity] = []
        self._others: list[Activity] = []
        self._mine_page = 1
        self._others_page = 1
        self._on_change = on_change
        self._subscription: Subscription | None = None

    @property
    def mine_page(self) -> int:
        return self._mine_page

    @property
    def others_page(self) -> int:
        return self._others_page

    @property
    def activities(self) -> list[Activity]:
        return list(self._activities)

    def update(self, activities: Iterable[Activity]) -> None:
        self._activities = order_newest_first(activities)
        self._mine, self._others = categorize(self._activities, self._viewer, self._classifier)
        self._mine_page = clamp_page(self._mine_page, total_pages(len(self._mine), self._page_size))
        self._others_page = clamp_page(
            self._others_page, total_pages(len(self._others), self._page_size)
        )
        logger.debug(
            "Feed updated total=%d mine=%d others=%d",
            len(self._activities),
            len(self._mine),
            len(self._others),
        )

        if self._on_change is not None:
            self._on_change(self)

    def show_mine_page(self, page: int) -> int:
        self._mine_page = clamp_page(page, total_pages(len(self._mine), self._page_size))
        return self._mine_page

    def show_others_page(self, page: int) -> int:
        self._others_page = clamp_page(page, total_pages(len(self._others), self._page_size))
        return self._others_page

    def render(self, now: datetime | None = None) -> FeedView:
        return build_feed(
            self._activities,
            self._viewer,
            now=now or utc_now(),
            mine_page=self._mine_page,
            others_page=self._others_page,
            page_size=self._page_size,
            classifier=self._classifier,
        )

    def attach(self, subscription: Subscription) -> None:
        self._subscription = subscription

    @property
    def active(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()

    async def __aenter__(self) -> ActivityFeedView:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()
