from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Dict, Optional

from .core.builder import PolicyFn, define_rules
from .core.compiler import PredicateCompiler
from .core.evaluator import Evaluator
from .core.fields import FieldProjector, FieldSet
from .core.model import RuleStore
from .core.ports import MetricsSink
from .core.predicate import Predicate


class Ability(Evaluator):
    """Everything a request needs from one principal's rule store.

    ``can``/``cannot``/``authorize``/``decide`` come from ``Evaluator``;
    ``allowed_fields``/``filter_fields`` from ``FieldProjector``; ``filter``
    from ``PredicateCompiler``. All three read the same immutable store.
    """

    def __init__(
        self,
        rules: RuleStore,
        *,
        metrics: MetricsSink | None = None,
        decision_logger: Any | None = None,
    ) -> None:
        super().__init__(rules, metrics=metrics, decision_logger=decision_logger)
        self.projector = FieldProjector(rules)
        self.compiler = PredicateCompiler(rules, metrics=metrics)

    @classmethod
    def for_principal(
        cls,
        principal: Optional[Mapping[str, Any]],
        policy_fn: PolicyFn,
        **kwargs: Any,
    ) -> "Ability":
        return cls(define_rules(principal, policy_fn), **kwargs)

    def allowed_fields(self, action: str, subject: str, resource: Any = None) -> FieldSet:
        return self.projector.allowed_fields(action, subject, resource)

    def filter_fields(
        self, resource: Any, action: str = "read", subject: Optional[str] = None
    ) -> Dict[str, Any]:
        return self.projector.filter_fields(resource, action, subject)

    def filter(self, action: str, subject: str, columns: Iterable[str]) -> Predicate:
        return self.compiler.filter(action, subject, columns)


__all__ = ["Ability"]
