import json
import os
import time

import pytest

from abacx.core.builder import define_rules
from abacx.core.cache import AbilityCache
from abacx.core.evaluator import Evaluator
from abacx.storage import FilePolicySource, HotReloader, atomic_write
from abacx.store.record_policy import RecordPolicy


def _doc(action):
    return {
        "rules": [
            {"id": "r1", "effect": "allow", "role": "editor", "action": action, "subject": "document"}
        ]
    }


def _write(path, doc):
    atomic_write(str(path), json.dumps(doc))


def test_atomic_write_leaves_no_temp_files(tmp_path):
    path = tmp_path / "rules.json"
    _write(path, _doc("read"))
    _write(path, _doc("update"))
    assert json.loads(path.read_text(encoding="utf-8")) == _doc("update")
    assert [p.name for p in tmp_path.iterdir()] == ["rules.json"]


def test_etag_tracks_content_and_missing_file(tmp_path):
    path = tmp_path / "rules.json"
    src = FilePolicySource(str(path))
    assert src.etag() is None
    _write(path, _doc("read"))
    e1 = src.etag()
    _write(path, _doc("update-all"))
    assert src.etag() != e1
    os.unlink(path)
    assert src.etag() is None


def test_mtime_in_etag_counts_touch(tmp_path):
    path = tmp_path / "rules.json"
    _write(path, _doc("read"))
    plain = FilePolicySource(str(path))
    stamped = FilePolicySource(str(path), include_mtime_in_etag=True)
    p1, s1 = plain.etag(), stamped.etag()
    st = os.stat(path)
    os.utime(path, (st.st_atime, max(st.st_mtime, time.time()) + 2))
    assert plain.etag() == p1
    assert stamped.etag() != s1


def test_reloader_applies_changes_and_clears_cache(tmp_path):
    path = tmp_path / "rules.json"
    _write(path, _doc("read"))
    policy = RecordPolicy()
    abilities = AbilityCache(lambda p: Evaluator(define_rules(p, policy)))
    policy.subscribe(abilities.clear)

    reloader = HotReloader(policy, FilePolicySource(str(path)), initial_load=True)
    assert reloader.check_and_reload() is True
    assert reloader.check_and_reload() is False
    user = {"id": 1, "role": "editor"}
    assert abilities.get(user).can("read", "document")

    _write(path, _doc("update-everything"))
    assert reloader.check_and_reload() is True
    assert abilities.get(user).cannot("read", "document")
    assert abilities.get(user).can("update-everything", "document")
    assert reloader.last_reload_at is not None and reloader.last_error is None


def test_without_initial_load_current_file_is_assumed_applied(tmp_path):
    path = tmp_path / "rules.json"
    _write(path, _doc("read"))
    policy = RecordPolicy()
    reloader = HotReloader(policy, FilePolicySource(str(path)))
    assert reloader.check_and_reload() is False
    assert policy.version == 0
    assert reloader.check_and_reload(force=True) is True
    assert policy.version == 1


def test_bad_document_keeps_previous_policy_and_backs_off(tmp_path, caplog):
    path = tmp_path / "rules.json"
    _write(path, _doc("read"))
    policy = RecordPolicy()
    reloader = HotReloader(policy, FilePolicySource(str(path)), initial_load=True, backoff_min=5)
    assert reloader.check_and_reload()

    atomic_write(str(path), '{"rules": [{"id": "x", "effect": "sometimes"}]}')
    assert reloader.check_and_reload() is False
    assert reloader.last_error is not None
    assert reloader.suppressed_until > time.time()
    assert [r.id for r in policy.records] == ["r1"]
    assert "invalid rule document" in caplog.text

    _write(path, _doc("update"))
    assert reloader.check_and_reload() is False  # still suppressed
    assert reloader.check_and_reload(force=True) is True
    assert reloader.suppressed_until == 0.0


def test_missing_file_is_reported(tmp_path):
    policy = RecordPolicy()
    reloader = HotReloader(policy, FilePolicySource(str(tmp_path / "nope.json")), initial_load=True)
    assert reloader.check_and_reload() is False
    assert isinstance(reloader.last_error, FileNotFoundError)


def test_schema_validation_on_load(tmp_path):
    pytest.importorskip("jsonschema")
    path = tmp_path / "rules.json"
    atomic_write(str(path), '{"rules": [{"id": "x"}]}')
    with pytest.raises(Exception):
        FilePolicySource(str(path), validate_schema=True).load()


def test_background_polling_start_stop(tmp_path):
    path = tmp_path / "rules.json"
    _write(path, _doc("read"))
    policy = RecordPolicy()
    reloader = HotReloader(policy, FilePolicySource(str(path)), initial_load=True, poll_interval=0.05)
    reloader.start()
    try:
        deadline = time.time() + 3
        while policy.version == 0 and time.time() < deadline:
            time.sleep(0.02)
        assert policy.version >= 1
        reloader.start()  # already running: no second thread
    finally:
        reloader.stop()
    assert reloader._thread is None


@pytest.mark.parametrize(
    "bad_rule",
    [
        {"conditions": {"a": {"nested": 1}}},
        {"conditions": {"a": [[1, 2]]}},
        {"fields": ["title", 7]},
        {"effect": "deny", "fields": ["title"]},
    ],
)
def test_malformed_record_is_rejected_before_install(tmp_path, bad_rule):
    path = tmp_path / "rules.json"
    _write(path, _doc("read"))
    policy = RecordPolicy()
    reloader = HotReloader(policy, FilePolicySource(str(path)), initial_load=True)
    assert reloader.check_and_reload()

    broken = _doc("update")
    broken["rules"][0].update(bad_rule)
    _write(path, broken)
    assert reloader.check_and_reload() is False
    assert reloader.last_error is not None
    assert policy.version == 1
    assert Evaluator(policy.build({"role": "editor"})).can("read", "document")
