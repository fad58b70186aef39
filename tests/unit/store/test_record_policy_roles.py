from abacx.core.builder import define_rules
from abacx.core.evaluator import Evaluator
from abacx.store.record_policy import RecordPolicy

DOC = {
    "rules": [
        {"id": "e1", "effect": "allow", "role": "editor", "action": "update", "subject": "document",
         "conditions": {"authorId": "${principal.id}"}},
        {"id": "v1", "effect": "allow", "role": "viewer", "action": "read", "subject": "document"},
        {"id": "v2", "effect": "deny", "role": "viewer", "action": "read", "subject": "document",
         "conditions": {"status": "archived"}},
    ]
}


def test_rules_are_selected_by_role():
    policy = RecordPolicy(DOC)
    editor = Evaluator(define_rules({"id": 7, "role": "editor"}, policy))
    assert editor.can("update", "document", {"authorId": 7})
    assert editor.cannot("read", "document")

    both = Evaluator(policy.build({"id": 7, "role": ["editor", "viewer"]}))
    assert both.can("read", "document", {"status": "draft"})
    assert both.cannot("read", "document", {"status": "archived"})

    nobody = policy.build({"id": 1})
    assert len(nobody) == 0


def test_set_policy_bumps_version_and_notifies():
    policy = RecordPolicy(role_attr="group")
    calls = []
    policy.subscribe(lambda: calls.append(policy.version))
    assert policy.version == 0 and policy.records == ()

    policy.set_policy(DOC)
    assert policy.version == 1
    assert [r.id for r in policy.records_for(("viewer",))] == ["v1", "v2"]
    assert policy.roles_of({"group": "viewer"}) == ("viewer",)

    policy.set_policy({"rules": []})
    assert calls == [1, 2]
    assert policy.policy == {"rules": []}
