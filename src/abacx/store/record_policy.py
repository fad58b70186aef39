from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..core.builder import AllowFn, DenyFn, define_rules
from ..core.model import RuleStore
from .records import RuleRecord, apply_records, load_records

logger = logging.getLogger("abacx.store")


class RecordPolicy:
    """Role policy backed by persisted rule records.

    The principal's roles are read from ``principal[role_attr]`` (a string or
    a list of strings); every record of those roles is replayed, in document
    order, with placeholders resolved against the principal.

    ``set_policy`` swaps the whole document atomically, so a ``HotReloader``
    can drive it. Subscribers registered with ``subscribe`` are called after
    each swap (for example ``AbilityCache.clear``).
    """

    def __init__(
        self,
        document: Optional[Mapping[str, Any]] = None,
        *,
        role_attr: str = "role",
        validate_schema: bool = False,
    ) -> None:
        self.role_attr = role_attr
        self.validate_schema = validate_schema
        self._lock = threading.RLock()
        self._records: Tuple[RuleRecord, ...] = ()
        self._policy: Dict[str, Any] = {"rules": []}
        self._version = 0
        self._subscribers: List[Callable[[], None]] = []
        if document is not None:
            self.set_policy(document)

    # -- document management -------------------------------------------------

    def set_policy(self, policy: Mapping[str, Any]) -> None:
        """Validate and install a new rule document."""
        if self.validate_schema:
            from ..dsl.validate import validate_rules

            validate_rules(policy)
        records = tuple(load_records(policy))
        with self._lock:
            self._records = records
            self._policy = dict(policy)
            self._version += 1
            version = self._version
            subscribers = list(self._subscribers)
        logger.info("ABACX: installed %d rule records (version %d)", len(records), version)
        for callback in subscribers:
            try:
                callback()
            except Exception:  # pragma: no cover
                logger.exception("ABACX: policy change subscriber failed")

    def subscribe(self, callback: Callable[[], None]) -> None:
        with self._lock:
            self._subscribers.append(callback)

    @property
    def policy(self) -> Dict[str, Any]:
        with self._lock:
            return self._policy

    @property
    def records(self) -> Tuple[RuleRecord, ...]:
        with self._lock:
            return self._records

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    # -- rule construction -----------------------------------------------------

    def roles_of(self, principal: Mapping[str, Any]) -> Tuple[str, ...]:
        raw = principal.get(self.role_attr)
        if isinstance(raw, str):
            return (raw,)
        if isinstance(raw, (list, tuple, set, frozenset)):
            return tuple(r for r in raw if isinstance(r, str))
        return ()

    def records_for(self, roles: Tuple[str, ...]) -> Tuple[RuleRecord, ...]:
        wanted = set(roles)
        return tuple(r for r in self.records if r.role in wanted)

    def __call__(self, allow: AllowFn, deny: DenyFn, principal: Mapping[str, Any]) -> None:
        records = self.records_for(self.roles_of(principal))
        apply_records(_Sink(allow, deny), records, principal)

    def build(self, principal: Mapping[str, Any]) -> RuleStore:
        return define_rules(principal, self)


class _Sink:
    def __init__(self, allow: AllowFn, deny: DenyFn) -> None:
        self.allow = allow
        self.deny = deny


__all__ = ["RecordPolicy"]
