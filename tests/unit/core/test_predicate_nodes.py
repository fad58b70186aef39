from abacx.core.predicate import ALWAYS, NEVER, And, Eq, In, Or, all_of, any_of


def test_eq_and_in_require_column_presence():
    assert Eq("a", None).matches({"a": None})
    assert not Eq("a", None).matches({})
    assert In("a", frozenset({1, 2})).matches({"a": 2})
    assert not In("a", frozenset({1, 2})).matches({"b": 2})
    assert not In("a", frozenset({1})).matches({"a": [1]})


def test_simplification():
    e = Eq("a", 1)
    assert all_of([]) is ALWAYS
    assert all_of([e]) is e
    assert all_of([e, NEVER]) is NEVER
    assert all_of([ALWAYS, e]) is e
    assert any_of([]) is NEVER
    assert any_of([NEVER, e]) is e
    assert any_of([e, ALWAYS]) is ALWAYS
    assert any_of([e, Eq("b", 2)]) == Or((e, Eq("b", 2)))
    assert all_of([e, Eq("b", 2)]) == And((e, Eq("b", 2)))


def test_predicates_keep_booleans_apart_from_numbers():
    assert not Eq("archived", False).matches({"archived": 0})
    assert Eq("archived", False).matches({"archived": False})
    assert not In("n", frozenset({1, 2})).matches({"n": True})
    assert In("n", frozenset({1, 2})).matches({"n": 2})
