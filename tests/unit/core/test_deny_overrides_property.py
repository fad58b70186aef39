from hypothesis import given, settings
from hypothesis import strategies as st

from abacx.core.builder import PolicyBuilder
from abacx.core.evaluator import Evaluator

ACTIONS = st.sampled_from(["read", "update", "manage"])
SUBJECTS = st.sampled_from(["document", "project", "all"])
CONDS = st.one_of(st.none(), st.dictionaries(st.sampled_from(["a", "b"]), st.integers(0, 2), max_size=2))
RULE = st.tuples(st.booleans(), ACTIONS, SUBJECTS, CONDS)
RESOURCE = st.one_of(st.none(), st.fixed_dictionaries({"a": st.integers(0, 2), "b": st.integers(0, 2)}))


def _build(rules):
    b = PolicyBuilder({})
    for is_allow, action, subject, conds in rules:
        (b.allow if is_allow else b.deny)(action, subject, conds)
    return b.build()


@settings(max_examples=150, deadline=None)
@given(st.lists(RULE, max_size=8), st.sampled_from(["read", "update"]), st.sampled_from(["document", "project"]), RESOURCE)
def test_matching_deny_always_wins_and_order_is_irrelevant(rules, action, subject, resource):
    ev = Evaluator(_build(rules))
    rev = Evaluator(_build(list(reversed(rules))))
    decision = ev.decide(action, subject, resource)
    assert decision.allowed == rev.can(action, subject, resource)

    denied = any(
        not is_allow
        and a in (action, "manage")
        and s in (subject, "all")
        and (resource is None or not c or all(resource.get(k) == v for k, v in c.items()))
        for is_allow, a, s, c in rules
    )
    if denied:
        assert not decision.allowed
