import json
import logging

from abacx.logging import decision_logger as dl_mod
from abacx.logging.decision_logger import DecisionLogger

EVENT = {
    "action": "read",
    "subject": "document",
    "allowed": True,
    "reason": "matched",
    "rule": 0,
    "resource": {"secret": "s3cr3t"},
    "principal": {"id": 7},
}


def test_text_format_is_sorted_and_scrubbed():
    msg = DecisionLogger().format(EVENT)
    assert msg == "decision action=read allowed=True reason=matched rule=0 subject=document"


def test_json_format_and_extra_drop_keys(caplog):
    logger = DecisionLogger(as_json=True, drop_keys=("rule",), level=logging.WARNING)
    with caplog.at_level(logging.WARNING, logger="abacx.audit"):
        msg = logger.log(EVENT)
    assert json.loads(msg) == {"action": "read", "allowed": True, "reason": "matched", "subject": "document"}
    assert caplog.records[-1].levelno == logging.WARNING
    assert "s3cr3t" not in caplog.text


def test_sampling(monkeypatch):
    assert DecisionLogger(sample_rate=0.0).log(EVENT) is None
    assert DecisionLogger(sample_rate=5).log(EVENT) is not None

    monkeypatch.setattr(dl_mod.random, "random", lambda: 0.7)
    assert DecisionLogger(sample_rate=0.5).log(EVENT) is None
    monkeypatch.setattr(dl_mod.random, "random", lambda: 0.2)
    assert DecisionLogger(sample_rate=0.5).log(EVENT) is not None


def test_custom_logger_name(caplog):
    with caplog.at_level(logging.INFO, logger="myapp.authz"):
        DecisionLogger(logger_name="myapp.authz").log({"action": "a", "subject": "s"})
    assert caplog.records[-1].name == "myapp.authz"
