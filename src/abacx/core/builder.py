from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any, Callable, List, Optional

from .errors import ValidationError
from .model import Effect, Rule, RuleStore

logger = logging.getLogger("abacx.builder")

AllowFn = Callable[..., None]
DenyFn = Callable[..., None]
PolicyFn = Callable[[AllowFn, DenyFn, Mapping[str, Any]], None]


def freeze_principal(principal: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    """Return a read-only snapshot of the principal attribute bag."""
    if principal is None:
        return MappingProxyType({})
    if not isinstance(principal, Mapping):
        raise ValidationError(f"principal must be a mapping, got {type(principal).__name__}")
    return MappingProxyType(dict(principal))


class PolicyBuilder:
    """Accumulates rules declared by a policy function.

    Usage::

        def editor_policy(allow, deny, user):
            allow("read", "document")
            allow("update", "document", {"authorId": user["id"]})
            deny("delete", "document")

        store = PolicyBuilder({"id": 7, "role": "editor"}).build(editor_policy)

    ``allow``/``deny`` only record rules. A builder is single-use: once
    ``build`` has returned or raised, further ``allow``/``deny``/``build`` calls raise
    ``ValidationError`` and the returned store never changes.
    """

    def __init__(self, principal: Optional[Mapping[str, Any]] = None) -> None:
        self.principal = freeze_principal(principal)
        self._rules: List[Rule] = []
        self._finalized = False

    @property
    def finalized(self) -> bool:
        return self._finalized

    def _check_open(self) -> None:
        if self._finalized:
            raise ValidationError("builder already finalized")

    def allow(
        self,
        action: str | Iterable[str],
        subject: str | Iterable[str],
        conditions: Optional[Mapping[str, Any]] = None,
        fields: Optional[Iterable[str]] = None,
    ) -> None:
        self._add(Effect.ALLOW, action, subject, conditions, fields)

    def deny(
        self,
        action: str | Iterable[str],
        subject: str | Iterable[str],
        conditions: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._add(Effect.DENY, action, subject, conditions, None)

    def _add(
        self,
        effect: Effect,
        action: Any,
        subject: Any,
        conditions: Optional[Mapping[str, Any]],
        fields: Optional[Iterable[str]],
    ) -> None:
        self._check_open()
        # a list of actions/subjects expands to one rule per combination
        for a in _names("action", action):
            for s in _names("subject", subject):
                self._rules.append(
                    Rule(effect=effect, action=a, subject=s, conditions=conditions, fields=fields)
                )

    def build(self, policy_fn: Optional[PolicyFn] = None) -> RuleStore:
        """Run *policy_fn* (if given) and return the finished ``RuleStore``."""
        self._check_open()
        try:
            if policy_fn is not None:
                policy_fn(self.allow, self.deny, self.principal)
        finally:
            # partial rules of a failed policy are never handed out
            self._finalized = True
        store = RuleStore(self._rules)
        logger.debug("ABACX: built rule store with %d rules", len(store))
        return store


def _names(kind: str, value: Any) -> List[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, Iterable):
        names = list(value)
        if not names:
            raise ValidationError(f"rule {kind} list must not be empty")
        return names
    raise ValidationError(f"rule {kind} must be a string, got {type(value).__name__}")


def define_rules(principal: Optional[Mapping[str, Any]], policy_fn: PolicyFn) -> RuleStore:
    """Build the rule store of *principal* from *policy_fn*."""
    return PolicyBuilder(principal).build(policy_fn)


__all__ = ["PolicyBuilder", "PolicyFn", "define_rules", "freeze_principal"]
