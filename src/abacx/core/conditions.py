"""Condition normalization and matching.

A condition mapping is ``{attribute: expected}`` where ``expected`` is either a
scalar (equality) or a set of scalars (membership). All keys are ANDed.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, FrozenSet, Optional, Union

from .errors import ValidationError

Scalar = Union[str, int, float, bool, None]
ConditionValue = Union[Scalar, FrozenSet[Scalar]]
Conditions = Mapping[str, ConditionValue]

_SCALAR_TYPES = (str, int, float, bool, type(None))
_SET_TYPES = (set, frozenset, list, tuple)

_MISSING = object()


def is_scalar(value: Any) -> bool:
    return isinstance(value, _SCALAR_TYPES)


def normalize_value(key: str, value: Any) -> ConditionValue:
    """Return *value* as a scalar or a frozenset of scalars.

    Raises:
        ValidationError: nested structures or non-scalar members.
    """
    if is_scalar(value):
        return value
    if isinstance(value, _SET_TYPES):
        members = list(value)
        for m in members:
            if not is_scalar(m):
                raise ValidationError(
                    f"condition {key!r}: set members must be scalars, got {type(m).__name__}"
                )
        frozen = frozenset(members)
        # {1, True} would collapse into one member
        if len(frozen) != len({(type(m) is bool, m) for m in members}):
            raise ValidationError(
                f"condition {key!r}: set mixes booleans with numbers of equal value"
            )
        return frozen
    raise ValidationError(
        f"condition {key!r}: unsupported value type {type(value).__name__} "
        "(expected a scalar or a set of scalars)"
    )


def normalize_conditions(conditions: Any) -> Optional[Mapping[str, ConditionValue]]:
    """Validate *conditions* and freeze it into a read-only mapping.

    ``None`` and an empty mapping both mean "no conditions" and yield ``None``.
    """
    if conditions is None:
        return None
    if not isinstance(conditions, Mapping):
        raise ValidationError(
            f"conditions must be a mapping, got {type(conditions).__name__}"
        )
    out: dict[str, ConditionValue] = {}
    for key, value in conditions.items():
        if not isinstance(key, str) or not key:
            raise ValidationError(f"condition keys must be non-empty strings, got {key!r}")
        out[key] = normalize_value(key, value)
    if not out:
        return None
    return MappingProxyType(out)


def attributes_of(resource: Any) -> Optional[Mapping[str, Any]]:
    """Return the attribute mapping of *resource* (a mapping or a ``Resource``)."""
    if resource is None:
        return None
    if isinstance(resource, Mapping):
        return resource
    attrs = getattr(resource, "attrs", None)
    if isinstance(attrs, Mapping):
        return attrs
    return None


def scalar_equals(expected: Any, actual: Any) -> bool:
    """Equality where booleans only ever equal booleans (``False != 0``)."""
    if type(expected) is bool or type(actual) is bool:
        return type(expected) is type(actual) and expected == actual
    return expected == actual


def member_of(expected: FrozenSet[Scalar], actual: Any) -> bool:
    try:
        if actual not in expected:
            return False
    except TypeError:
        # unhashable actual value can never be a member
        return False
    return any(scalar_equals(m, actual) for m in expected)


def value_matches(expected: ConditionValue, actual: Any) -> bool:
    if isinstance(expected, frozenset):
        return member_of(expected, actual)
    return scalar_equals(expected, actual)


def matches(conditions: Optional[Conditions], resource: Any) -> bool:
    """Return True when *resource* satisfies every condition.

    An absent resource matches any conditions: an action-only question
    ("can this principal ever update documents?") cannot be refuted by
    instance data it does not have. A resource that is neither a mapping nor
    a ``Resource`` carries no attributes and matches only unconditioned rules.
    """
    if not conditions:
        return True
    if resource is None:
        return True
    attrs = attributes_of(resource)
    if attrs is None:
        return False
    for key, expected in conditions.items():
        actual = attrs.get(key, _MISSING)
        if actual is _MISSING:
            return False
        if not value_matches(expected, actual):
            return False
    return True


__all__ = [
    "Scalar",
    "ConditionValue",
    "Conditions",
    "is_scalar",
    "normalize_value",
    "normalize_conditions",
    "attributes_of",
    "scalar_equals",
    "member_of",
    "value_matches",
    "matches",
]
