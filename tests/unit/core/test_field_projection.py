import pickle

import pytest

from abacx.core.builder import define_rules
from abacx.core.errors import ValidationError
from abacx.core.fields import ALL_FIELDS, FieldProjector, permitted_fields
from abacx.core.model import Resource


def _projector(policy):
    return FieldProjector(define_rules({}, policy))


def test_filter_fields_keeps_only_allowed_keys():
    proj = _projector(
        lambda allow, deny, _: allow("read", "document", {"status": "published"}, fields={"title", "content"})
    )
    doc = {"status": "published", "title": "A", "internalNotes": "X"}
    assert proj.filter_fields(doc, "read", "document") == {"title": "A"}


def test_allowed_fields_is_union_of_explicit_lists():
    def policy(allow, deny, _):
        allow("read", "document", {"orgId": 1}, fields=["title"])
        allow("read", "document", {"orgId": 2}, fields=["content", "title"])
        allow("update", "document")

    assert _projector(policy).allowed_fields("read", "document") == frozenset({"title", "content"})


def test_any_unrestricted_allow_yields_all_fields_sentinel():
    def policy(allow, deny, _):
        allow("read", "document", fields=["title"])
        allow("read", "document", {"authorId": 7})

    fields = _projector(policy).allowed_fields("read", "document")
    assert fields is ALL_FIELDS
    assert "anything" in fields
    assert fields != frozenset()


def test_no_allow_rules_means_no_fields():
    proj = _projector(lambda allow, deny, _: allow("update", "document"))
    assert proj.allowed_fields("read", "document") == frozenset()
    assert proj.filter_fields({"title": "A"}, "read", "document") == {}


def test_all_fields_returns_copy_of_resource():
    proj = _projector(lambda allow, deny, _: allow("read", "document"))
    doc = {"title": "A", "body": "B"}
    out = proj.filter_fields(doc, "read", "document")
    assert out == doc and out is not doc


def test_projection_never_invents_keys():
    proj = _projector(lambda allow, deny, _: allow("read", "document", fields=["title", "summary", "tags"]))
    out = proj.filter_fields({"title": "A", "body": "B"}, "read", "document")
    assert set(out) <= {"title", "body"}
    assert out == {"title": "A"}


def test_resource_conditions_and_denies_are_honoured():
    def policy(allow, deny, _):
        allow("read", "document", {"status": "published"}, fields=["title", "content"])
        allow("read", "document", {"authorId": 7})
        deny("read", "document", {"status": "archived"})

    proj = _projector(policy)
    assert proj.allowed_fields("read", "document", {"status": "published", "authorId": 1}) == {
        "title",
        "content",
    }
    assert proj.allowed_fields("read", "document", {"status": "draft", "authorId": 7}) is ALL_FIELDS
    assert proj.allowed_fields("read", "document", {"status": "archived", "authorId": 7}) == frozenset()


def test_subject_comes_from_tagged_resource():
    proj = _projector(lambda allow, deny, _: allow("read", "document", fields=["title"]))
    assert proj.filter_fields(Resource("document", {"title": "A", "body": "B"})) == {"title": "A"}
    assert proj.filter_fields(Resource("project", {"title": "A"}), subject="document") == {}
    with pytest.raises(ValidationError):
        proj.filter_fields({"title": "A"})


def test_permitted_fields_helper_and_sentinel_identity():
    store = define_rules({}, lambda allow, deny, _: allow("read", "document"))
    assert permitted_fields(store, "read", "document") is ALL_FIELDS
    assert pickle.loads(pickle.dumps(ALL_FIELDS)) is ALL_FIELDS
    assert repr(ALL_FIELDS) == "ALL_FIELDS"


def test_unconditioned_deny_empties_action_level_fields():
    def policy(allow, deny, _):
        allow("read", "document")
        allow("read", "comment", fields=["body"])
        deny("read", "document")
        deny("read", "comment", {"hidden": True})

    store = define_rules({}, policy)
    proj = FieldProjector(store)
    assert proj.allowed_fields("read", "document") == frozenset()
    assert proj.allowed_fields("read", "comment") == frozenset({"body"})
    assert proj.allowed_fields("read", "comment", {"hidden": True}) == frozenset()
