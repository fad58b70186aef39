from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Dict, List, Optional, Sequence

import yaml

from . import __version__
from .core.builder import define_rules
from .core.errors import AbacxError
from .core.evaluator import Evaluator
from .dsl.lint import analyze_rules
from .dsl.validate import validate_rules
from .store.policy_loader import parse_policy_text
from .store.record_policy import RecordPolicy

EXIT_OK = 0
EXIT_DENIED = 1
EXIT_ERROR = 2
EXIT_LINT_ERRORS = 3


def _read_document(path: str) -> Dict[str, Any]:
    if path == "-":
        return parse_policy_text(sys.stdin.read())
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    return parse_policy_text(text, filename=path)


def _print(data: Any, fmt: str = "json") -> None:
    if fmt == "json":
        sys.stdout.write(json.dumps(data, indent=2, ensure_ascii=False, default=str) + "\n")
        return
    if isinstance(data, list):
        if not data:
            sys.stdout.write("OK\n")
        for item in data:
            sys.stdout.write(
                f"{item.get('code')}: {item.get('message')} (rule #{item.get('index')}"
                f"{', id=' + str(item['id']) if item.get('id') else ''})\n"
            )
        return
    text = str(data)
    sys.stdout.write(text if text.endswith("\n") else text + "\n")


def _json_arg(raw: Optional[str], what: str) -> Optional[Dict[str, Any]]:
    if raw is None:
        return None
    value = json.loads(raw)
    if not isinstance(value, dict):
        raise ValueError(f"{what} must be a JSON object")
    return value


def cmd_validate(args: argparse.Namespace) -> int:
    document = _read_document(args.policy)
    try:
        validate_rules(document)
    except RuntimeError as e:
        sys.stderr.write(f"error: {e}\n")
        return EXIT_ERROR
    except Exception as e:
        location = "/".join(str(p) for p in getattr(e, "path", ()) or ())
        message = getattr(e, "message", str(e))
        sys.stderr.write(f"invalid: {message}" + (f" at {location}" if location else "") + "\n")
        return EXIT_ERROR
    _print("OK", "text")
    return EXIT_OK


def cmd_lint(args: argparse.Namespace) -> int:
    document = _read_document(args.policy)
    issues = analyze_rules(document)
    _print(issues, getattr(args, "format", "json"))
    if issues and getattr(args, "strict", False):
        return EXIT_LINT_ERRORS
    return EXIT_OK


def cmd_check(args: argparse.Namespace) -> int:
    document = _read_document(args.policy)
    try:
        principal = _json_arg(args.principal, "--principal") or {}
        resource = _json_arg(args.resource, "--resource")
        policy = RecordPolicy(document, role_attr=args.role_attr)
        store = define_rules(principal, policy)
    except (ValueError, AbacxError) as e:
        sys.stderr.write(f"error: {e}\n")
        return EXIT_ERROR
    decision = Evaluator(store).decide(args.action, args.subject, resource, args.field)
    _print(
        {
            "allowed": decision.allowed,
            "reason": decision.reason,
            "action": args.action,
            "subject": args.subject,
        }
    )
    return EXIT_OK if decision.allowed else EXIT_DENIED


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="abacx", description="abacx rule document tools")
    parser.add_argument("--version", action="version", version=f"abacx {__version__}")
    sub = parser.add_subparsers(dest="command")

    p_val = sub.add_parser("validate", help="validate a rule document against the schema")
    p_val.add_argument("policy", help="path to a JSON/YAML rule document, or - for stdin")
    p_val.set_defaults(func=cmd_validate)

    p_lint = sub.add_parser("lint", help="report suspicious rules")
    p_lint.add_argument("policy", help="path to a JSON/YAML rule document, or - for stdin")
    p_lint.add_argument("--strict", action="store_true", help="exit non-zero when issues are found")
    p_lint.add_argument("--format", choices=("json", "text"), default="json")
    p_lint.set_defaults(func=cmd_lint)

    p_check = sub.add_parser("check", help="evaluate one authorization question")
    p_check.add_argument("policy", help="path to a JSON/YAML rule document, or - for stdin")
    p_check.add_argument("--principal", required=True, help="principal attributes as JSON")
    p_check.add_argument("--action", required=True)
    p_check.add_argument("--subject", required=True)
    p_check.add_argument("--resource", help="resource attributes as JSON")
    p_check.add_argument("--field")
    p_check.add_argument("--role-attr", dest="role_attr", default="role")
    p_check.set_defaults(func=cmd_check)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    func = getattr(args, "func", None)
    if func is None:
        parser.print_usage(sys.stderr)
        return EXIT_ERROR
    try:
        rc = func(args)
    except FileNotFoundError as e:
        sys.stderr.write(f"error: file not found: {e.filename}\n")
        return EXIT_ERROR
    except (ValueError, yaml.YAMLError) as e:
        # malformed JSON/YAML and non-mapping documents
        sys.stderr.write(f"error: {e}\n")
        return EXIT_ERROR
    return rc if isinstance(rc, int) else EXIT_OK


def _entrypoint() -> None:  # pragma: no cover
    sys.exit(main())


if __name__ == "__main__":  # pragma: no cover
    _entrypoint()


__all__: List[str] = [
    "EXIT_OK",
    "EXIT_DENIED",
    "EXIT_ERROR",
    "EXIT_LINT_ERRORS",
    "build_parser",
    "cmd_validate",
    "cmd_lint",
    "cmd_check",
    "main",
]
