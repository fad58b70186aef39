import logging
from enum import Enum

import pytest

from abacx.core.builder import define_rules
from abacx.core.errors import ConfigurationError
from abacx.core.evaluator import Evaluator
from abacx.core.roles import RolePolicies


class Role(str, Enum):
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"


def admin(allow, deny, user):
    allow("manage", "all")


def editor(allow, deny, user):
    allow("read", "document")
    allow("update", "document", {"authorId": user["id"]})


def viewer(allow, deny, user):
    allow("read", "document", {"status": "published"})


def _policies(**kw):
    return RolePolicies(Role, {Role.ADMIN: admin, Role.EDITOR: editor, Role.VIEWER: viewer}, **kw)


def test_missing_role_is_rejected_at_construction():
    with pytest.raises(ConfigurationError) as ei:
        RolePolicies(Role, {Role.ADMIN: admin, Role.EDITOR: editor})
    assert "VIEWER" in str(ei.value)


def test_foreign_key_is_rejected_at_construction():
    with pytest.raises(ConfigurationError):
        RolePolicies(Role, {Role.ADMIN: admin, Role.EDITOR: editor, Role.VIEWER: viewer, "guest": viewer})


def test_dispatch_by_role_value_or_member():
    policies = _policies()
    ed = Evaluator(define_rules({"id": 7, "role": "editor"}, policies))
    assert ed.can("update", "document", {"authorId": 7})
    assert ed.cannot("update", "document", {"authorId": 8})

    adm = Evaluator(policies.build({"id": 1, "role": Role.ADMIN}))
    assert adm.can("delete", "project")
    assert policies.role_of({"role": "viewer"}) is Role.VIEWER
    assert policies.policy_for(Role.VIEWER) is viewer


def test_unknown_role_gets_no_rules(caplog):
    policies = _policies(role_attr="kind")
    with caplog.at_level(logging.WARNING, logger="abacx.roles"):
        store = define_rules({"id": 1, "kind": "superuser"}, policies)
    assert len(store) == 0
    assert "no rules granted" in caplog.text
    assert policies.role_of({}) is None
