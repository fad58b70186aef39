"""Compile allow rules into storage filter predicates.

``PredicateCompiler.filter`` scopes bulk queries to the rows a principal can
act on. Only allow rules take part: deny rules are *not* folded into the
predicate, so a row excluded by a conditioned deny rule may still be
returned. Callers that rely on deny rules must re-check fetched rows with
``Evaluator.can`` (or add the exclusion to the query themselves).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import AbstractSet, Dict, List, Optional

from .conditions import is_scalar
from .model import Rule, RuleStore
from .ports import MetricsSink
from .predicate import ALWAYS, NEVER, Eq, In, Predicate, all_of, any_of

logger = logging.getLogger("abacx.compiler")

FALLBACK_METRIC = "abacx_predicate_fallbacks_total"


class PredicateCompiler:
    """Turns the allow subset of a ``RuleStore`` into a ``Predicate``.

    A rule whose conditions reference a column outside the given schema, or
    that has a condition value of an unexpected shape, contributes ``NEVER``
    rather than a wider filter; a warning is logged and
    ``abacx_predicate_fallbacks_total`` is incremented on *metrics*.
    """

    def __init__(self, rules: RuleStore, *, metrics: MetricsSink | None = None) -> None:
        self.rules = rules
        self.metrics = metrics

    def filter(self, action: str, subject: str, columns: Iterable[str]) -> Predicate:
        known = frozenset(columns)
        allow_rules = self.rules.allow_rules_for(action, subject)
        if not allow_rules:
            return NEVER
        if any(not r.conditions for r in allow_rules):
            return ALWAYS
        return any_of(self._compile_rule(r, known, action, subject) for r in allow_rules)

    def _compile_rule(
        self, rule: Rule, columns: AbstractSet[str], action: str, subject: str
    ) -> Predicate:
        terms: List[Predicate] = []
        for key, expected in (rule.conditions or {}).items():
            if key not in columns:
                self._fallback("unknown_column", action, subject, key)
                return NEVER
            if isinstance(expected, frozenset):
                terms.append(In(key, expected))
            elif is_scalar(expected):
                terms.append(Eq(key, expected))
            else:
                self._fallback("unsupported_condition", action, subject, key)
                return NEVER
        return all_of(terms)

    def _fallback(self, reason: str, action: str, subject: str, column: str) -> None:
        logger.warning(
            "ABACX: rule for %s/%s degraded to an empty filter (%s: %s)",
            action,
            subject,
            reason,
            column,
        )
        if self.metrics is None:
            return
        labels: Dict[str, str] = {"reason": reason}
        try:
            self.metrics.inc(FALLBACK_METRIC, labels)
        except Exception:  # pragma: no cover
            logger.debug("ABACX: metrics sink failed", exc_info=True)


def compile_filter(
    rules: RuleStore,
    action: str,
    subject: str,
    columns: Iterable[str],
    *,
    metrics: Optional[MetricsSink] = None,
) -> Predicate:
    return PredicateCompiler(rules, metrics=metrics).filter(action, subject, columns)


__all__ = ["PredicateCompiler", "compile_filter", "FALLBACK_METRIC"]
