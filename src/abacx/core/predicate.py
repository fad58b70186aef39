"""Storage-neutral filter predicates.

A predicate is a small immutable tree. Storage adapters translate it (via
``to_dict`` or by walking the nodes) into their own query language;
``matches``/``filter_rows`` evaluate it against in-memory rows.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterator, List, Tuple

from .conditions import Scalar, member_of, scalar_equals

_MISSING = object()


class Predicate:
    def matches(self, row: Mapping[str, Any]) -> bool:  # pragma: no cover - abstract
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:  # pragma: no cover - abstract
        raise NotImplementedError

    def filter_rows(self, rows: Iterable[Mapping[str, Any]]) -> Iterator[Mapping[str, Any]]:
        return (row for row in rows if self.matches(row))


@dataclass(frozen=True)
class Always(Predicate):
    """Universal predicate: every row is visible."""

    def matches(self, row: Mapping[str, Any]) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {"op": "always"}


@dataclass(frozen=True)
class Never(Predicate):
    """Impossible predicate: no row is visible."""

    def matches(self, row: Mapping[str, Any]) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {"op": "never"}


ALWAYS = Always()
NEVER = Never()


@dataclass(frozen=True)
class Eq(Predicate):
    column: str
    value: Scalar

    def matches(self, row: Mapping[str, Any]) -> bool:
        actual = row.get(self.column, _MISSING)
        return actual is not _MISSING and scalar_equals(self.value, actual)

    def to_dict(self) -> Dict[str, Any]:
        return {"op": "eq", "column": self.column, "value": self.value}


@dataclass(frozen=True)
class In(Predicate):
    column: str
    values: FrozenSet[Scalar]

    def matches(self, row: Mapping[str, Any]) -> bool:
        actual = row.get(self.column, _MISSING)
        if actual is _MISSING:
            return False
        return member_of(self.values, actual)

    def to_dict(self) -> Dict[str, Any]:
        return {"op": "in", "column": self.column, "values": sorted(self.values, key=repr)}


@dataclass(frozen=True)
class And(Predicate):
    terms: Tuple[Predicate, ...]

    def matches(self, row: Mapping[str, Any]) -> bool:
        return all(t.matches(row) for t in self.terms)

    def to_dict(self) -> Dict[str, Any]:
        return {"op": "and", "terms": [t.to_dict() for t in self.terms]}


@dataclass(frozen=True)
class Or(Predicate):
    terms: Tuple[Predicate, ...]

    def matches(self, row: Mapping[str, Any]) -> bool:
        return any(t.matches(row) for t in self.terms)

    def to_dict(self) -> Dict[str, Any]:
        return {"op": "or", "terms": [t.to_dict() for t in self.terms]}


def all_of(terms: Iterable[Predicate]) -> Predicate:
    """Conjunction with the obvious simplifications."""
    out: List[Predicate] = []
    for t in terms:
        if isinstance(t, Never):
            return NEVER
        if isinstance(t, Always):
            continue
        out.append(t)
    if not out:
        return ALWAYS
    if len(out) == 1:
        return out[0]
    return And(tuple(out))


def any_of(terms: Iterable[Predicate]) -> Predicate:
    """Disjunction; an empty disjunction is ``NEVER``."""
    out: List[Predicate] = []
    for t in terms:
        if isinstance(t, Always):
            return ALWAYS
        if isinstance(t, Never):
            continue
        out.append(t)
    if not out:
        return NEVER
    if len(out) == 1:
        return out[0]
    return Or(tuple(out))


__all__ = [
    "Predicate",
    "Always",
    "Never",
    "ALWAYS",
    "NEVER",
    "Eq",
    "In",
    "And",
    "Or",
    "all_of",
    "any_of",
]
