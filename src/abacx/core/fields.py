from __future__ import annotations

from typing import Any, Dict, FrozenSet, Optional, Union

from .conditions import attributes_of, matches
from .errors import ValidationError
from .model import Resource, RuleStore


class AllFields:
    """Sentinel for "every field": distinct from any finite set of names."""

    _instance: Optional["AllFields"] = None

    def __new__(cls) -> "AllFields":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __contains__(self, item: object) -> bool:
        return True

    def __repr__(self) -> str:
        return "ALL_FIELDS"

    def __reduce__(self) -> str:
        return "ALL_FIELDS"


ALL_FIELDS = AllFields()

FieldSet = Union[AllFields, FrozenSet[str]]


class FieldProjector:
    """Derives readable fields from allow rules and strips the rest.

    Usage::

        projector = FieldProjector(store)
        projector.allowed_fields("read", "document")      # ALL_FIELDS or frozenset
        projector.filter_fields(Resource("document", doc))  # dict with allowed keys
    """

    def __init__(self, rules: RuleStore) -> None:
        self.rules = rules

    def allowed_fields(self, action: str, subject: str, resource: Any = None) -> FieldSet:
        """Union of ``fields`` over the matching allow rules.

        Returns ``ALL_FIELDS`` as soon as one matching allow rule has no field
        restriction. When *resource* is given only rules whose conditions match
        it count, and a matching deny rule leaves no field readable. Without a
        resource only an unconditioned deny rule does.
        """
        if isinstance(resource, Resource) and resource.type != subject:
            return frozenset()
        for rule in self.rules.deny_rules_for(action, subject):
            if resource is None and rule.conditions:
                continue
            if matches(rule.conditions, resource):
                return frozenset()

        names: set[str] = set()
        for rule in self.rules.allow_rules_for(action, subject):
            if not matches(rule.conditions, resource):
                continue
            if rule.fields is None:
                return ALL_FIELDS
            names.update(rule.fields)
        return frozenset(names)

    def filter_fields(
        self,
        resource: Any,
        action: str = "read",
        subject: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Return a copy of *resource* holding only the fields *action* permits.

        *subject* defaults to the ``type`` of a ``Resource`` instance; plain
        mappings need it spelled out.
        """
        if subject is None:
            if not isinstance(resource, Resource):
                raise ValidationError("subject is required unless resource is a Resource")
            subject = resource.type
        attrs = attributes_of(resource)
        if attrs is None:
            return {}
        allowed = self.allowed_fields(action, subject, resource)
        if allowed is ALL_FIELDS:
            return dict(attrs)
        return {k: v for k, v in attrs.items() if k in allowed}


def permitted_fields(rules: RuleStore, action: str, subject: str) -> FieldSet:
    return FieldProjector(rules).allowed_fields(action, subject)


__all__ = ["ALL_FIELDS", "AllFields", "FieldSet", "FieldProjector", "permitted_fields"]
