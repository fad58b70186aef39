"""Static checks for rule documents.

``analyze_rules`` never raises on odd input; every problem is reported as an
issue ``{"code": ..., "message": ..., "index": ..., "id": ...}``.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple

from ..core.model import ALL, MANAGE

Issue = Dict[str, Any]


def _issue(code: str, message: str, index: int, rule_id: Optional[str]) -> Issue:
    return {"code": code, "message": message, "index": index, "id": rule_id}


def _scope_covers(outer: Dict[str, Any], inner: Dict[str, Any]) -> bool:
    """True when *outer*'s action/subject include *inner*'s."""
    action_ok = outer.get("action") in (inner.get("action"), MANAGE)
    subject_ok = outer.get("subject") in (inner.get("subject"), ALL)
    return action_ok and subject_ok and outer.get("role") == inner.get("role")


def _shape(rule: Dict[str, Any]) -> Tuple[Any, ...]:
    return (
        repr(rule.get("effect")),
        repr(rule.get("role")),
        repr(rule.get("action")),
        repr(rule.get("subject")),
        json.dumps(rule.get("conditions"), sort_keys=True, default=str),
        json.dumps(
            sorted(map(str, rule["fields"])) if isinstance(rule.get("fields"), list) else None
        ),
    )


def analyze_rules(document: Any) -> List[Issue]:
    rules = document.get("rules") if isinstance(document, dict) else document
    if not isinstance(rules, list):
        return [_issue("NO_RULES", "document has no 'rules' list", -1, None)]

    issues: List[Issue] = []
    seen_ids: Dict[str, int] = {}
    seen_shapes: Dict[Tuple[Any, ...], int] = {}
    unconditional_denies: List[Tuple[int, Dict[str, Any]]] = []

    for idx, rule in enumerate(rules):
        if not isinstance(rule, dict):
            issues.append(_issue("NOT_AN_OBJECT", "rule record must be an object", idx, None))
            continue
        rid = rule.get("id")
        if not isinstance(rid, str) or not rid:
            issues.append(_issue("MISSING_ID", "rule record has no id", idx, None))
        elif rid in seen_ids:
            issues.append(
                _issue("DUPLICATE_ID", f"id {rid!r} already used by rule #{seen_ids[rid]}", idx, rid)
            )
        else:
            seen_ids[rid] = idx

        effect = rule.get("effect")
        if effect not in ("allow", "deny"):
            issues.append(_issue("UNKNOWN_EFFECT", f"effect {effect!r} is not allow/deny", idx, rid))
            continue

        fields = rule.get("fields")
        if effect == "deny" and fields is not None:
            issues.append(_issue("DENY_WITH_FIELDS", "deny rules cannot restrict fields", idx, rid))
        if effect == "allow" and isinstance(fields, list) and not fields:
            issues.append(
                _issue("EMPTY_FIELDS", "empty field list grants no field-level access", idx, rid)
            )

        shape = _shape(rule)
        if shape in seen_shapes:
            issues.append(
                _issue("DUPLICATE_RULE", f"same as rule #{seen_shapes[shape]}", idx, rid)
            )
        else:
            seen_shapes[shape] = idx

        if effect == "deny" and not rule.get("conditions"):
            unconditional_denies.append((idx, rule))

    for idx, rule in enumerate(rules):
        if not isinstance(rule, dict) or rule.get("effect") != "allow":
            continue
        for deny_idx, deny in unconditional_denies:
            if _scope_covers(deny, rule):
                issues.append(
                    _issue(
                        "SHADOWED_BY_DENY",
                        f"always overridden by unconditional deny rule #{deny_idx}",
                        idx,
                        rule.get("id"),
                    )
                )
                break
    return issues


__all__ = ["Issue", "analyze_rules"]
