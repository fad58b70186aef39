"""Persisted rule records.

A record is one row of a rules table (or one entry of a rule document)::

    {"id": "r1", "effect": "allow", "role": "editor", "action": "update",
     "subject": "document", "conditions": {"authorId": "${principal.id}"},
     "fields": null}

Condition values may reference the principal with ``${principal.<attr>}``
placeholders. They are resolved against the principal attribute bag before
any rule is built; an unknown attribute raises ``ConfigurationError``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ..core.builder import PolicyBuilder
from ..core.conditions import normalize_value
from ..core.errors import ConfigurationError, ValidationError
from ..core.model import Effect, Rule, RuleStore

_PLACEHOLDER_RE = re.compile(r"^\$\{principal\.(?P<attr>[A-Za-z_][A-Za-z0-9_]*)\}$")

_RECORD_KEYS = frozenset({"id", "effect", "role", "action", "subject", "conditions", "fields"})


@dataclass(frozen=True)
class RuleRecord:
    id: str
    effect: Effect
    role: str
    action: str
    subject: str
    conditions: Optional[Dict[str, Any]] = None
    fields: Optional[Tuple[str, ...]] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RuleRecord":
        if not isinstance(data, Mapping):
            raise ValidationError(f"rule record must be an object, got {type(data).__name__}")
        unknown = set(data) - _RECORD_KEYS
        if unknown:
            raise ValidationError(f"rule record has unknown keys: {sorted(unknown)}")
        for key in ("id", "effect", "role", "action", "subject"):
            value = data.get(key)
            if not isinstance(value, str) or not value:
                raise ValidationError(f"rule record {key!r} must be a non-empty string")
        try:
            effect = Effect(data["effect"])
        except ValueError:
            raise ValidationError(f"rule record {data['id']!r}: unknown effect {data['effect']!r}") from None

        conditions = data.get("conditions")
        if conditions is not None:
            if not isinstance(conditions, Mapping):
                raise ValidationError(f"rule record {data['id']!r}: conditions must be an object or null")
            for key, value in conditions.items():
                if not isinstance(key, str) or not key:
                    raise ValidationError(f"rule record {data['id']!r}: condition keys must be non-empty strings")
                try:
                    normalize_value(key, value)
                except ValidationError as e:
                    raise ValidationError(f"rule record {data['id']!r}: {e}") from None
        fields = data.get("fields")
        if fields is not None:
            if isinstance(fields, str) or not isinstance(fields, Iterable):
                raise ValidationError(f"rule record {data['id']!r}: fields must be a list or null")
            fields = tuple(fields)
            for name in fields:
                if not isinstance(name, str) or not name:
                    raise ValidationError(
                        f"rule record {data['id']!r}: field names must be non-empty strings, got {name!r}"
                    )
            if effect is Effect.DENY:
                raise ValidationError(f"rule record {data['id']!r}: deny rules cannot restrict fields")
        return cls(
            id=data["id"],
            effect=effect,
            role=data["role"],
            action=data["action"],
            subject=data["subject"],
            conditions=dict(conditions) if conditions is not None else None,
            fields=fields,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "effect": self.effect.value,
            "role": self.role,
            "action": self.action,
            "subject": self.subject,
            "conditions": _jsonable_conditions(self.conditions),
            "fields": list(self.fields) if self.fields is not None else None,
        }


def _jsonable_conditions(conditions: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    if conditions is None:
        return None
    out: Dict[str, Any] = {}
    for key, value in conditions.items():
        if isinstance(value, (set, frozenset)):
            out[key] = sorted(value, key=repr)
        elif isinstance(value, tuple):
            out[key] = list(value)
        else:
            out[key] = value
    return out


def resolve_value(value: Any, principal: Mapping[str, Any], record_id: str = "?") -> Any:
    """Replace ``${principal.<attr>}`` placeholders inside one condition value."""
    if isinstance(value, str):
        m = _PLACEHOLDER_RE.match(value)
        if m is None:
            return value
        attr = m.group("attr")
        if attr not in principal:
            raise ConfigurationError(
                f"rule record {record_id!r} references missing principal attribute {attr!r}"
            )
        return principal[attr]
    if isinstance(value, (list, tuple, set, frozenset)):
        resolved: List[Any] = []
        for member in value:
            got = resolve_value(member, principal, record_id)
            if isinstance(got, (list, tuple, set, frozenset)):
                # a placeholder holding a collection is flattened into the set
                resolved.extend(got)
            else:
                resolved.append(got)
        return resolved
    return value


def resolve_conditions(
    conditions: Optional[Mapping[str, Any]],
    principal: Mapping[str, Any],
    record_id: str = "?",
) -> Optional[Dict[str, Any]]:
    if conditions is None:
        return None
    return {k: resolve_value(v, principal, record_id) for k, v in conditions.items()}


def load_records(document: Any) -> List[RuleRecord]:
    """Parse ``{"rules": [...]}`` (or a bare list of records) into ``RuleRecord`` objects."""
    if isinstance(document, Mapping):
        items = document.get("rules")
        if items is None:
            raise ValidationError("rule document has no 'rules' list")
    else:
        items = document
    if isinstance(items, (str, bytes)) or not isinstance(items, Iterable):
        raise ValidationError("'rules' must be a list of rule records")
    return [RuleRecord.from_dict(item) for item in items]


def apply_records(
    builder: PolicyBuilder | Any,
    records: Iterable[RuleRecord],
    principal: Mapping[str, Any],
) -> None:
    """Replay *records* through ``allow``/``deny`` of *builder*, resolving placeholders."""
    for rec in records:
        conditions = resolve_conditions(rec.conditions, principal, rec.id)
        if rec.effect is Effect.ALLOW:
            builder.allow(rec.action, rec.subject, conditions, rec.fields)
        else:
            if rec.fields is not None:
                raise ValidationError(f"rule record {rec.id!r}: deny rules cannot restrict fields")
            builder.deny(rec.action, rec.subject, conditions)


def rules_from_records(
    records: Iterable[RuleRecord],
    principal: Optional[Mapping[str, Any]] = None,
) -> RuleStore:
    builder = PolicyBuilder(principal)
    apply_records(builder, records, builder.principal)
    return builder.build()


def dump_records(store: RuleStore, role: str, *, id_prefix: Optional[str] = None) -> List[RuleRecord]:
    """Persist *store* as records of *role*; ids are ``<prefix>-<position>``."""
    prefix = id_prefix or role
    return [_record_of(rule, role, f"{prefix}-{i}") for i, rule in enumerate(store)]


def _record_of(rule: Rule, role: str, record_id: str) -> RuleRecord:
    conditions = None
    if rule.conditions is not None:
        conditions = {
            k: (sorted(v, key=repr) if isinstance(v, frozenset) else v)
            for k, v in rule.conditions.items()
        }
    fields = tuple(sorted(rule.fields)) if rule.fields is not None else None
    return RuleRecord(
        id=record_id,
        effect=rule.effect,
        role=role,
        action=rule.action,
        subject=rule.subject,
        conditions=conditions,
        fields=fields,
    )


def dump_document(records: Iterable[RuleRecord]) -> Dict[str, Any]:
    return {"rules": [r.to_dict() for r in records]}


__all__ = [
    "RuleRecord",
    "resolve_value",
    "resolve_conditions",
    "load_records",
    "apply_records",
    "rules_from_records",
    "dump_records",
    "dump_document",
]
