from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, FrozenSet, Optional, Tuple

from .conditions import ConditionValue, normalize_conditions
from .errors import ValidationError

# Rule-side wildcards.
MANAGE = "manage"
ALL = "all"


class Effect(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


def _normalize_fields(fields: Any) -> Optional[FrozenSet[str]]:
    if fields is None:
        return None
    # a bare string would otherwise be split into characters
    if isinstance(fields, (str, bytes)) or not isinstance(fields, Iterable):
        raise ValidationError(
            f"fields must be a collection of field names, got {type(fields).__name__}"
        )
    names = list(fields)
    for name in names:
        if not isinstance(name, str) or not name:
            raise ValidationError(f"field names must be non-empty strings, got {name!r}")
    return frozenset(names)


@dataclass(frozen=True)
class Rule:
    """One declarative permission statement.

    ``conditions`` of ``None`` matches every resource instance; ``fields`` of
    ``None`` applies the rule to every field of the resource.
    """

    effect: Effect
    action: str
    subject: str
    conditions: Optional[Mapping[str, ConditionValue]] = None
    fields: Optional[FrozenSet[str]] = None

    def __post_init__(self) -> None:
        try:
            effect = Effect(self.effect)
        except ValueError:
            raise ValidationError(f"unknown effect {self.effect!r}") from None
        object.__setattr__(self, "effect", effect)
        if not isinstance(self.action, str) or not self.action:
            raise ValidationError("rule action must be a non-empty string")
        if not isinstance(self.subject, str) or not self.subject:
            raise ValidationError("rule subject must be a non-empty string")
        object.__setattr__(self, "conditions", normalize_conditions(self.conditions))
        fields = _normalize_fields(self.fields)
        if fields is not None and effect is Effect.DENY:
            raise ValidationError("deny rules cannot restrict fields")
        object.__setattr__(self, "fields", fields)

    def __hash__(self) -> int:
        conditions = (
            tuple(sorted(self.conditions.items(), key=lambda kv: kv[0]))
            if self.conditions is not None
            else None
        )
        return hash((self.effect, self.action, self.subject, conditions, self.fields))

    @property
    def allows(self) -> bool:
        return self.effect is Effect.ALLOW

    @property
    def denies(self) -> bool:
        return self.effect is Effect.DENY

    def applies_to(self, action: str, subject: str) -> bool:
        """Return True when this rule governs *action* on *subject* (wildcards honoured)."""
        return (self.action == action or self.action == MANAGE) and (
            self.subject == subject or self.subject == ALL
        )

    def covers_field(self, name: Optional[str]) -> bool:
        return name is None or self.fields is None or name in self.fields


class RuleStore:
    """Ordered, read-only collection of rules.

    Instances are built once (normally by ``PolicyBuilder``) and may be shared
    between threads without synchronization.
    """

    __slots__ = ("_rules",)

    def __init__(self, rules: Iterable[Rule] = ()) -> None:
        items = tuple(rules)
        for r in items:
            if not isinstance(r, Rule):
                raise ValidationError(f"expected Rule, got {type(r).__name__}")
        self._rules: Tuple[Rule, ...] = items

    @classmethod
    def empty(cls) -> "RuleStore":
        return cls(())

    @property
    def rules(self) -> Tuple[Rule, ...]:
        return self._rules

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __bool__(self) -> bool:
        return bool(self._rules)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RuleStore):
            return NotImplemented
        return self._rules == other._rules

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"RuleStore({len(self._rules)} rules)"

    def rules_for(self, action: str, subject: str) -> Tuple[Rule, ...]:
        return tuple(r for r in self._rules if r.applies_to(action, subject))

    def allow_rules_for(self, action: str, subject: str) -> Tuple[Rule, ...]:
        return tuple(r for r in self._rules if r.allows and r.applies_to(action, subject))

    def deny_rules_for(self, action: str, subject: str) -> Tuple[Rule, ...]:
        return tuple(r for r in self._rules if r.denies and r.applies_to(action, subject))


@dataclass(frozen=True)
class Resource:
    """A resource instance tagged with its subject type.

    ``type`` is assigned when the instance is created and is what field
    projection uses to find the applicable rules.
    """

    type: str
    attrs: Mapping[str, Any] = field(default_factory=dict)
    id: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.type, str) or not self.type:
            raise ValidationError("resource type must be a non-empty string")
        object.__setattr__(self, "attrs", MappingProxyType(dict(self.attrs)))


__all__ = ["MANAGE", "ALL", "Effect", "Rule", "RuleStore", "Resource"]
