import json

import pytest

from abacx.store.policy_loader import detect_format, load_policy, parse_policy_text


def test_detect_format_prefers_content_type():
    assert detect_format("rules.json", "application/x-yaml") == "yaml"
    assert detect_format("rules.yml") == "yaml"
    assert detect_format("rules.txt", "application/json") == "json"
    assert detect_format() == "json"


def test_parse_json_and_empty_yaml():
    assert parse_policy_text('{"rules": []}') == {"rules": []}
    pytest.importorskip("yaml")
    assert parse_policy_text("", filename="empty.yaml") == {}


def test_non_mapping_document_is_rejected():
    with pytest.raises(ValueError):
        parse_policy_text("[1, 2]")
    with pytest.raises(json.JSONDecodeError):
        parse_policy_text("{oops")


def test_load_yaml_policy_from_disk(tmp_path):
    pytest.importorskip("yaml")
    path = tmp_path / "rules.yaml"
    path.write_text(
        "rules:\n"
        "  - id: r1\n"
        "    effect: allow\n"
        "    role: editor\n"
        "    action: read\n"
        "    subject: document\n"
        "    fields: [title]\n",
        encoding="utf-8",
    )
    doc = load_policy(str(path))
    assert doc["rules"][0]["fields"] == ["title"]
