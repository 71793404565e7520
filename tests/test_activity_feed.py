# tests/test_activity_feed.py

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from tasksync.activity.activity_log import ActivityLog
from tasksync.activity.activity_models import Activity
from tasksync.activity.feed import (
    ActivityFeedView,
    build_feed,
    categorize,
    format_time,
    order_newest_first,
    paginate,
    personalize,
)
from tasksync.core.session import Session

from .fakes import settle

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


def _act(n: int, text: str, *, minutes_ago: int | None = None) -> Activity:
    ts = NOW - timedelta(minutes=n if minutes_ago is None else minutes_ago)
    return Activity(id=f"a{n}", list_id="l1", timestamp=ts, message=text)


def test_categorize_splits_by_leading_display_name(alice, bob) -> None:
    acts = [
        _act(1, 'Alice added "milk"'),
        _act(2, 'Bob marked "milk" as review'),
        _act(3, "Alice created the list"),
    ]

    mine, others = categorize(acts, alice)
    assert [a.id for a in mine] == ["a1", "a3"]
    assert [a.id for a in others] == ["a2"]

    mine, others = categorize(acts, bob)
    assert [a.id for a in mine] == ["a2"]
    assert [a.id for a in others] == ["a1", "a3"]


def test_categorize_reproduces_known_misclassifications(alice) -> None:
    twin = Session(user_id="u-other-alice", email="alice2@example.com", display_name="Alice")
    acts = [
        _act(1, 'Alice deleted "milk"'),  # written by twin
        _act(2, "You won't believe this list"),
        _act(3, 'Someone added "eggs"'),
    ]

    assert [a.id for a in categorize(acts, alice)[0]] == ["a1", "a2"]
    assert [a.id for a in categorize(acts, twin)[0]] == ["a1", "a2"]


def test_categorize_without_display_name_uses_fallback_viewer_name() -> None:
    anon = Session(user_id="u-anon", email="anon@example.com")
    acts = [_act(1, "User renamed it"), _act(2, "Someone created the list")]

    mine, others = categorize(acts, anon)
    assert [a.id for a in mine] == ["a1"]
    assert [a.id for a in others] == ["a2"]


def test_personalize_is_display_only(alice) -> None:
    assert personalize('Alice added "milk"', alice) == 'You added "milk"'
    assert (
        personalize("Bob shared the list with alice@example.com", alice)
        == "Bob shared the list with you"
    )
    assert personalize("alice@example.com and alice@example.com", alice) == "you and you"
    assert personalize('Bob said "Alice"', alice) == 'Bob said "Alice"'


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (0, "just now"),
        (30, "just now"),
        (300, "5m ago"),
        (3599, "59m ago"),
        (7200, "2h ago"),
        (90000, "2024-02-29"),
    ],
)
def test_format_time(seconds: int, expected: str) -> None:
    assert format_time(NOW - timedelta(seconds=seconds), NOW) == expected


def test_format_time_unknown_timestamp_is_blank() -> None:
    assert format_time(None, NOW) == ""


def test_paginate_twelve_items_clamps_page() -> None:
    items = list(range(12))

    first = paginate(items, 1, 5)
    assert first.items == [0, 1, 2, 3, 4]
    assert (first.total_pages, first.has_prev, first.has_next) == (3, False, True)

    last = paginate(items, 4, 5)
    assert last.page == 3
    assert last.items == [10, 11]
    assert (last.has_prev, last.has_next) == (True, False)

    assert paginate(items, 0, 5).page == 1
    empty = paginate([], 2, 5)
    assert (empty.page, empty.total_pages, empty.items) == (1, 1, [])

    with pytest.raises(ValueError):
        paginate(items, 1, 0)


def test_feed_view_reclamps_when_feed_shrinks(alice) -> None:
    view = ActivityFeedView(alice, page_size=5)
    acts = [_act(i, f"Bob did thing {i}") for i in range(12)]
    view.update(acts)

    assert view.show_others_page(3) == 3
    assert view.show_others_page(9) == 3

    view.update(acts[:4])
    assert view.others_page == 1
    rendered = view.render(NOW)
    assert rendered.others.page == 1
    assert len(rendered.others.items) == 4
    assert rendered.mine.items == []
    assert rendered.mine.total_pages == 1


def test_build_feed_orders_mixed_timestamp_formats(alice) -> None:
    docs = [
        {"id": "iso", "listId": "l1", "message": "Bob iso", "timestamp": "2024-03-01T11:00:00Z"},
        {"id": "ms", "listId": "l1", "message": "Bob ms",
         "timestamp": int(datetime(2024, 3, 1, 11, 30, tzinfo=UTC).timestamp() * 1000)},
        {"id": "sec", "listId": "l1", "message": "Bob sec",
         "timestamp": datetime(2024, 3, 1, 10, 0, tzinfo=UTC).timestamp()},
        {"id": "map", "listId": "l1", "message": "Bob map",
         "timestamp": {"seconds": int(datetime(2024, 3, 1, 11, 45, tzinfo=UTC).timestamp()),
                       "nanoseconds": 0}},
        {"id": "naive", "listId": "l1", "message": "Bob naive",
         "timestamp": "2024-03-01T11:59:30"},
        {"id": "junk", "listId": "l1", "message": "Bob junk", "timestamp": "yesterday"},
    ]
    acts = [Activity.from_doc(d) for d in docs]

    assert [a.id for a in order_newest_first(acts)] == ["naive", "map", "ms", "iso", "sec", "junk"]

    feed = build_feed(acts, alice, now=NOW, page_size=10)
    assert [e.when for e in feed.others.items] == [
        "just now", "15m ago", "30m ago", "1h ago", "2h ago", "",
    ]
    assert feed.total == 6


def test_build_feed_personalizes_after_categorizing(alice) -> None:
    acts = [
        Activity(id="s", list_id="l1", timestamp=NOW, action="renamed",
                 details='Alice renamed the list to "X"', user_name="Alice"),
        Activity(id="e", list_id="l1", timestamp=NOW - timedelta(seconds=1)),
    ]

    feed = build_feed(acts, alice, now=NOW)

    assert [e.text for e in feed.mine.items] == ['You renamed the list to "X"']
    assert [e.text for e in feed.others.items] == ["Activity"]


@pytest.mark.asyncio
async def test_activity_log_watch_is_newest_first_and_limited(store, clock, alice) -> None:
    log = ActivityLog(store, clock=clock, feed_limit=2)
    seen: list[list[str]] = []

    sub = await log.watch("l1", lambda acts: seen.append([a.text for a in acts]))
    try:
        await log.append("l1", "Alice one")
        await log.append("l2", "Alice elsewhere")
        await log.append_action("l1", alice, action="renamed", details="Alice two")
        await log.append("l1", "Alice three")
        await settle()
    finally:
        sub.cancel()

    assert seen[-1] == ["Alice three", "Alice two"]
    assert all("Alice elsewhere" not in texts for texts in seen)
    assert [a.text for a in await log.fetch("l1")] == ["Alice three", "Alice two"]


@pytest.mark.asyncio
async def test_watch_feed_view_follows_the_list_until_closed(store, clock, alice) -> None:
    log = ActivityLog(store, clock=clock)
    renders: list[int] = []

    view = await log.watch_feed(alice, "l1", page_size=2, on_change=lambda v: renders.append(1))
    try:
        await settle()
        assert view.active
        assert view.activities == []

        await log.append("l1", 'Alice added "milk"')
        for n in range(3):
            await log.append("l1", f'Bob added "item {n}"')
        await settle()

        feed = view.render(NOW)
        assert [e.text for e in feed.mine.items] == ['You added "milk"']
        assert [e.text for e in feed.others.items] == ['Bob added "item 2"', 'Bob added "item 1"']
        assert feed.others.total_pages == 2
        assert view.show_others_page(5) == 2
    finally:
        view.close()

    assert not view.active
    seen = len(renders)
    await log.append("l1", "Bob added more")
    await settle()
    assert len(renders) == seen
    assert len(view.activities) == 4
