from __future__ import annotations

from typing import Any, Dict

_SCALAR = {"type": ["string", "number", "integer", "boolean", "null"]}

RULES_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "abacx rule document",
    "type": "object",
    "required": ["rules"],
    "properties": {
        "rules": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id", "effect", "role", "action", "subject"],
                "additionalProperties": False,
                "properties": {
                    "id": {"type": "string", "minLength": 1},
                    "effect": {"enum": ["allow", "deny"]},
                    "role": {"type": "string", "minLength": 1},
                    "action": {"type": "string", "minLength": 1},
                    "subject": {"type": "string", "minLength": 1},
                    "conditions": {
                        "type": ["object", "null"],
                        "additionalProperties": {
                            "anyOf": [_SCALAR, {"type": "array", "items": _SCALAR}]
                        },
                    },
                    "fields": {
                        "type": ["array", "null"],
                        "items": {"type": "string", "minLength": 1},
                    },
                },
            },
        }
    },
}


def validate_rules(document: Dict[str, Any]) -> None:
    """Validate a rule document against ``RULES_SCHEMA``.

    Raises:
        jsonschema.ValidationError: the document does not match the schema.
        RuntimeError: ``jsonschema`` is not installed.
    """
    try:
        import jsonschema  # type: ignore[import-untyped]
    except Exception as e:
        raise RuntimeError("rule document validation requires jsonschema: pip install jsonschema") from e
    jsonschema.validate(instance=document, schema=RULES_SCHEMA)


__all__ = ["RULES_SCHEMA", "validate_rules"]
