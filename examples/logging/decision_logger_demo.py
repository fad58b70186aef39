#!/usr/bin/env python3
"""
DecisionLogger and metrics demo.

Run:
  python examples/logging/decision_logger_demo.py

Emits one audit line per decision via the 'abacx.audit' logger. Resource
attributes never reach the log.
"""

import logging

from abacx import DecisionLogger, Evaluator, define_rules


def setup_logging() -> None:
    root = logging.getLogger()
    if not root.handlers:
        h = logging.StreamHandler()
        h.setFormatter(logging.Formatter("%(name)s %(message)s"))
        root.addHandler(h)
    root.setLevel(logging.INFO)


def policy(allow, deny, user):
    allow("read", "document", {"archived": False})
    deny("delete", "document")


def main() -> None:
    setup_logging()
    store = define_rules({"id": "u1"}, policy)

    print("\n=== text lines ===")
    ev = Evaluator(store, decision_logger=DecisionLogger())
    ev.can("read", "document", {"archived": False, "secret": "s"})
    ev.can("delete", "document")

    print("\n=== JSON lines, 50% sampling ===")
    ev = Evaluator(store, decision_logger=DecisionLogger(as_json=True, sample_rate=0.5))
    for _ in range(4):
        ev.can("read", "document", {"archived": True})


if __name__ == "__main__":
    main()
