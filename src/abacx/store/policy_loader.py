from __future__ import annotations

import json
import os
from typing import Any, Dict, Literal, Optional

Format = Literal["json", "yaml"]

_YAML_EXTS = (".yaml", ".yml")
_YAML_CONTENT_TYPES = ("yaml", "x-yaml")


def detect_format(filename: Optional[str] = None, content_type: Optional[str] = None) -> Format:
    """Pick a parser from Content-Type first, then the file extension; default JSON."""
    if content_type:
        ct = content_type.lower()
        if any(t in ct for t in _YAML_CONTENT_TYPES):
            return "yaml"
        if "json" in ct:
            return "json"
    if filename:
        ext = os.path.splitext(filename)[1].lower()
        if ext in _YAML_EXTS:
            return "yaml"
    return "json"


def _parse_yaml(text: str) -> Any:
    try:
        import yaml  # type: ignore[import-untyped]
    except Exception as e:  # pragma: no cover
        raise ImportError("YAML rule documents require PyYAML: pip install PyYAML") from e
    return yaml.safe_load(text)


def parse_policy_text(
    text: str,
    *,
    filename: Optional[str] = None,
    content_type: Optional[str] = None,
) -> Dict[str, Any]:
    """Parse a rule document from JSON or YAML text.

    Raises:
        json.JSONDecodeError / yaml.YAMLError: malformed text.
        ValueError: the document is not a mapping.
    """
    fmt = detect_format(filename, content_type)
    data = _parse_yaml(text) if fmt == "yaml" else json.loads(text)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"rule document must be a mapping, got {type(data).__name__}")
    return data


def load_policy(path: str, *, encoding: str = "utf-8") -> Dict[str, Any]:
    with open(path, "r", encoding=encoding) as f:
        text = f.read()
    return parse_policy_text(text, filename=path)


__all__ = ["detect_format", "parse_policy_text", "load_policy"]
