from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any, Dict, Generic, Optional, Type, TypeVar

from .builder import AllowFn, DenyFn, PolicyFn, define_rules
from .errors import ConfigurationError
from .model import RuleStore

logger = logging.getLogger("abacx.roles")

R = TypeVar("R", bound=Enum)


class RolePolicies(Generic[R]):
    """Maps every member of a role ``Enum`` to its policy function.

    The mapping is checked when the object is created: a role without a
    policy (or a key that is not a member of the enum) raises
    ``ConfigurationError``, so dispatch itself never meets an unhandled role.

    An instance is itself a policy function and can be passed to
    ``define_rules``::

        class Role(str, Enum):
            ADMIN = "admin"
            EDITOR = "editor"

        policies = RolePolicies(Role, {Role.ADMIN: admin_policy, Role.EDITOR: editor_policy})
        store = define_rules({"id": 7, "role": "editor"}, policies)

    A principal whose role attribute is missing or not a member of the enum
    gets no rules at all.
    """

    def __init__(
        self,
        roles: Type[R],
        policies: Mapping[R, PolicyFn],
        *,
        role_attr: str = "role",
    ) -> None:
        members = set(roles)
        extra = [k for k in policies if k not in members]
        if extra:
            raise ConfigurationError(f"not members of {roles.__name__}: {extra!r}")
        missing = [m for m in roles if m not in policies]
        if missing:
            names = ", ".join(m.name for m in missing)
            raise ConfigurationError(f"no policy defined for {roles.__name__} roles: {names}")
        self.roles = roles
        self.role_attr = role_attr
        self._policies: Dict[R, PolicyFn] = dict(policies)

    def role_of(self, principal: Mapping[str, Any]) -> Optional[R]:
        raw = principal.get(self.role_attr)
        if isinstance(raw, self.roles):
            return raw
        try:
            return self.roles(raw)
        except ValueError:
            return None

    def policy_for(self, role: R) -> PolicyFn:
        return self._policies[role]

    def __call__(self, allow: AllowFn, deny: DenyFn, principal: Mapping[str, Any]) -> None:
        role = self.role_of(principal)
        if role is None:
            logger.warning(
                "ABACX: principal has no recognised %s; no rules granted", self.role_attr
            )
            return
        self._policies[role](allow, deny, principal)

    def build(self, principal: Mapping[str, Any]) -> RuleStore:
        return define_rules(principal, self)


__all__ = ["RolePolicies"]
