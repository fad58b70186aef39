"""Point-in-time authorization checks against a ``RuleStore``.

Deny rules always win over allow rules for the same action/subject,
independent of declaration order. Among allow rules, the first one (in
declaration order) whose conditions and field restriction match decides.
When nothing matches the answer is "no".
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .conditions import matches
from .errors import ForbiddenError
from .model import Resource, Rule, RuleStore
from .ports import MetricsObserve, MetricsSink

logger = logging.getLogger("abacx.engine")

DECISIONS_METRIC = "abacx_decisions_total"
DECISION_SECONDS_METRIC = "abacx_decision_seconds"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str
    rule: Optional[Rule] = None
    action: str = ""
    subject: str = ""

    def __bool__(self) -> bool:
        return self.allowed


class BaseEvaluator:
    """``cannot``/``authorize`` in terms of ``can``.

    Subclasses implement ``can``; every evaluator strategy shares this
    contract.
    """

    def can(
        self,
        action: str,
        subject: str,
        resource: Any = None,
        field: Optional[str] = None,
    ) -> bool:  # pragma: no cover - abstract
        raise NotImplementedError

    def cannot(
        self,
        action: str,
        subject: str,
        resource: Any = None,
        field: Optional[str] = None,
    ) -> bool:
        return not self.can(action, subject, resource, field)

    def authorize(self, action: str, subject: str, resource: Any = None) -> None:
        """Raise ``ForbiddenError`` unless *action* on *subject* is allowed."""
        if not self.can(action, subject, resource):
            logger.info("ABACX: forbidden action=%s subject=%s", action, subject)
            raise ForbiddenError(action, subject)


class Evaluator(BaseEvaluator):
    """Answers ``can``/``cannot``/``authorize`` questions for one rule store.

    Args:
        rules: the principal's rule store.
        metrics: optional sink receiving ``abacx_decisions_total`` increments
            (and ``abacx_decision_seconds`` observations if it supports them).
        decision_logger: optional ``DecisionLogger``.
    """

    def __init__(
        self,
        rules: RuleStore,
        *,
        metrics: MetricsSink | None = None,
        decision_logger: Any | None = None,
    ) -> None:
        self.rules = rules
        self.metrics = metrics
        self.decision_logger = decision_logger

    # -- public API ------------------------------------------------------------

    def can(
        self,
        action: str,
        subject: str,
        resource: Any = None,
        field: Optional[str] = None,
    ) -> bool:
        return self.decide(action, subject, resource, field).allowed

    def decide(
        self,
        action: str,
        subject: str,
        resource: Any = None,
        field: Optional[str] = None,
    ) -> Decision:
        """Evaluate and explain a single check."""
        t0 = time.perf_counter()
        decision = self._decide(action, subject, resource, field)
        self._emit(decision, time.perf_counter() - t0)
        return decision

    def relevant_rules(self, action: str, subject: str) -> Tuple[Rule, ...]:
        return self.rules.rules_for(action, subject)

    # -- internals -------------------------------------------------------------

    def _decide(
        self, action: str, subject: str, resource: Any, field: Optional[str]
    ) -> Decision:
        if isinstance(resource, Resource) and resource.type != subject:
            return Decision(False, "subject_mismatch", None, action, subject)

        for rule in self.rules.deny_rules_for(action, subject):
            if matches(rule.conditions, resource):
                return Decision(False, "denied", rule, action, subject)

        for rule in self.rules.allow_rules_for(action, subject):
            if matches(rule.conditions, resource) and rule.covers_field(field):
                return Decision(True, "matched", rule, action, subject)

        return Decision(False, "no_match", None, action, subject)

    def _emit(self, decision: Decision, elapsed: float) -> None:
        if self.metrics is not None:
            labels = {"decision": "allow" if decision.allowed else "deny"}
            try:
                self.metrics.inc(DECISIONS_METRIC, labels)
                if isinstance(self.metrics, MetricsObserve):
                    self.metrics.observe(DECISION_SECONDS_METRIC, elapsed, labels)
            except Exception:  # pragma: no cover
                logger.debug("ABACX: metrics sink failed", exc_info=True)

        if self.decision_logger is not None:
            event: Dict[str, Any] = {
                "action": decision.action,
                "subject": decision.subject,
                "allowed": decision.allowed,
                "reason": decision.reason,
            }
            if decision.rule is not None:
                event["rule"] = self.rules.rules.index(decision.rule)
            try:
                self.decision_logger.log(event)
            except Exception:  # pragma: no cover
                logger.debug("ABACX: decision logger failed", exc_info=True)


__all__ = ["Decision", "BaseEvaluator", "Evaluator"]
