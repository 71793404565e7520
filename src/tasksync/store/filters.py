# src/tasksync/store/filters.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


class Filter(Protocol):
    def matches(self, doc: dict[str, Any]) -> bool: ...


@dataclass(frozen=True, slots=True)
class Eq:
    """field == value"""

    field: str
    value: Any

    def matches(self, doc: dict[str, Any]) -> bool:
        return self.field in doc and doc[self.field] == self.value


@dataclass(frozen=True, slots=True)
class Contains:
    """value is a member of the array stored in field (array-contains)."""

    field: str
    value: Any

    def matches(self, doc: dict[str, Any]) -> bool:
        items = doc.get(self.field)
        if not isinstance(items, (list, tuple, set, frozenset)):
            return False
        return self.value in items


@dataclass(frozen=True, slots=True, init=False)
class AnyOf:
    """Disjunction of clauses. An empty AnyOf matches nothing."""

    clauses: tuple[Filter, ...]

    def __init__(self, *clauses: Filter) -> None:
        object.__setattr__(self, "clauses", tuple(clauses))

    def matches(self, doc: dict[str, Any]) -> bool:
        return any(c.matches(doc) for c in self.clauses)


def matches(where: Filter | None, doc: dict[str, Any]) -> bool:
    return True if where is None else where.matches(doc)
