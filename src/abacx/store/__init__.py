from __future__ import annotations

from .policy_loader import load_policy, parse_policy_text
from .record_policy import RecordPolicy
from .records import (
    RuleRecord,
    dump_document,
    dump_records,
    load_records,
    rules_from_records,
)

__all__ = [
    "RecordPolicy",
    "RuleRecord",
    "dump_document",
    "dump_records",
    "load_policy",
    "load_records",
    "parse_policy_text",
    "rules_from_records",
]
