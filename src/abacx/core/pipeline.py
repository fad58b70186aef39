"""Ordered allow/deny/skip composition.

``PipelineEvaluator`` runs a list of steps; the first step that returns
``ALLOW`` or ``DENY`` decides and later steps are not consulted. When every
step skips, the request is denied. It implements the same
``can``/``cannot``/``authorize`` contract as ``Evaluator``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from .conditions import matches
from .evaluator import BaseEvaluator, Evaluator
from .model import Rule, RuleStore

logger = logging.getLogger("abacx.pipeline")


class Verdict(str, Enum):
    ALLOW = "allow"
    DENY = "deny"
    SKIP = "skip"


@dataclass(frozen=True)
class Request:
    action: str
    subject: str
    resource: Any = None
    field: Optional[str] = None
    principal: Mapping[str, Any] = dataclass_field(default_factory=dict)


Step = Callable[[Request], Verdict]


class PipelineEvaluator(BaseEvaluator):
    def __init__(self, steps: Sequence[Step], principal: Optional[Mapping[str, Any]] = None) -> None:
        self.steps = tuple(steps)
        self.principal = dict(principal or {})

    def verdict(
        self,
        action: str,
        subject: str,
        resource: Any = None,
        field: Optional[str] = None,
    ) -> Verdict:
        req = Request(action, subject, resource, field, self.principal)
        for idx, step in enumerate(self.steps):
            out = step(req)
            if out is Verdict.SKIP:
                continue
            logger.debug("ABACX: pipeline step %d returned %s", idx, out.value)
            return out
        return Verdict.DENY

    def can(
        self,
        action: str,
        subject: str,
        resource: Any = None,
        field: Optional[str] = None,
    ) -> bool:
        return self.verdict(action, subject, resource, field) is Verdict.ALLOW


def rules_step(rules: RuleStore) -> Step:
    """Step backed by a rule store: DENY/ALLOW on a match, SKIP otherwise."""
    ev = Evaluator(rules)

    def step(req: Request) -> Verdict:
        d = ev.decide(req.action, req.subject, req.resource, req.field)
        if d.allowed:
            return Verdict.ALLOW
        if d.reason == "no_match":
            return Verdict.SKIP
        return Verdict.DENY

    return step


def _when(
    effect: Verdict,
    action: str,
    subject: str,
    conditions: Optional[Mapping[str, Any]],
    test: Optional[Callable[[Request], bool]],
) -> Step:
    # reuse Rule for action/subject wildcards and condition validation
    probe = Rule(effect="allow", action=action, subject=subject, conditions=conditions)

    def step(req: Request) -> Verdict:
        if not probe.applies_to(req.action, req.subject):
            return Verdict.SKIP
        if not matches(probe.conditions, req.resource):
            return Verdict.SKIP
        if test is not None and not test(req):
            return Verdict.SKIP
        return effect

    return step


def allow_when(
    action: str,
    subject: str,
    conditions: Optional[Mapping[str, Any]] = None,
    test: Optional[Callable[[Request], bool]] = None,
) -> Step:
    return _when(Verdict.ALLOW, action, subject, conditions, test)


def deny_when(
    action: str,
    subject: str,
    conditions: Optional[Mapping[str, Any]] = None,
    test: Optional[Callable[[Request], bool]] = None,
) -> Step:
    return _when(Verdict.DENY, action, subject, conditions, test)


__all__ = [
    "Verdict",
    "Request",
    "Step",
    "PipelineEvaluator",
    "rules_step",
    "allow_when",
    "deny_when",
]
