import logging

from abacx.core.builder import define_rules
from abacx.core.compiler import FALLBACK_METRIC, PredicateCompiler, compile_filter
from abacx.core.predicate import ALWAYS, NEVER, And, Eq, In, Or

ROWS = [
    {"id": 1, "orgId": 1, "status": "draft"},
    {"id": 2, "orgId": 2, "status": "published"},
    {"id": 3, "orgId": 1, "status": "archived"},
]


def _compiler(policy, **kw):
    return PredicateCompiler(define_rules({}, policy), **kw)


def test_single_condition_compiles_to_equality():
    pred = _compiler(lambda allow, deny, _: allow("read", "document", {"orgId": 1})).filter(
        "read", "document", {"id", "orgId"}
    )
    assert pred == Eq("orgId", 1)
    assert [r["id"] for r in pred.filter_rows(ROWS)] == [1, 3]


def test_no_allow_rules_is_impossible_predicate():
    pred = _compiler(lambda allow, deny, _: allow("update", "document")).filter(
        "read", "document", {"id"}
    )
    assert pred is NEVER
    assert list(pred.filter_rows(ROWS)) == []


def test_unconditional_allow_is_universal_predicate():
    def policy(allow, deny, _):
        allow("read", "document", {"orgId": 1})
        allow("read", "document")

    pred = _compiler(policy).filter("read", "document", {"id", "orgId"})
    assert pred is ALWAYS
    assert len(list(pred.filter_rows(ROWS))) == len(ROWS)


def test_rules_are_ored_and_conditions_anded():
    def policy(allow, deny, _):
        allow("read", "document", {"orgId": 1, "status": ["draft", "published"]})
        allow("read", "document", {"status": "published"})

    pred = _compiler(policy).filter("read", "document", {"id", "orgId", "status"})
    assert pred == Or(
        (
            And((Eq("orgId", 1), In("status", frozenset({"draft", "published"})))),
            Eq("status", "published"),
        )
    )
    assert [r["id"] for r in pred.filter_rows(ROWS)] == [1, 2]


def test_wildcard_allow_rules_take_part():
    pred = compile_filter(
        define_rules({}, lambda allow, deny, _: allow("manage", "all", {"orgId": 2})),
        "read",
        "document",
        ["orgId"],
    )
    assert pred == Eq("orgId", 2)


def test_deny_rules_are_not_folded_into_the_filter():
    def policy(allow, deny, _):
        allow("read", "document", {"orgId": 1})
        deny("read", "document", {"status": "archived"})

    pred = _compiler(policy).filter("read", "document", {"orgId", "status"})
    assert [r["id"] for r in pred.filter_rows(ROWS)] == [1, 3]


def test_unknown_column_degrades_rule_to_never(caplog):
    class Sink:
        def __init__(self):
            self.calls = []

        def inc(self, name, labels=None):
            self.calls.append((name, labels))

    def policy(allow, deny, _):
        allow("read", "document", {"tenant": "acme"})
        allow("read", "document", {"orgId": 2})

    sink = Sink()
    with caplog.at_level(logging.WARNING, logger="abacx.compiler"):
        pred = _compiler(policy, metrics=sink).filter("read", "document", {"id", "orgId"})
    assert pred == Eq("orgId", 2)
    assert sink.calls == [(FALLBACK_METRIC, {"reason": "unknown_column"})]
    assert "unknown_column" in caplog.text

    only_unknown = _compiler(lambda allow, deny, _: allow("read", "document", {"tenant": "acme"}))
    assert only_unknown.filter("read", "document", {"id"}) is NEVER


def test_predicate_to_dict_is_storage_neutral():
    pred = Or((And((Eq("orgId", 1), In("status", frozenset({"b", "a"})))), Eq("id", 9)))
    assert pred.to_dict() == {
        "op": "or",
        "terms": [
            {
                "op": "and",
                "terms": [
                    {"op": "eq", "column": "orgId", "value": 1},
                    {"op": "in", "column": "status", "values": ["a", "b"]},
                ],
            },
            {"op": "eq", "column": "id", "value": 9},
        ],
    }
    assert ALWAYS.to_dict() == {"op": "always"}
    assert NEVER.to_dict() == {"op": "never"}
