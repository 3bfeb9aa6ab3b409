"""all/any condition trees over the classification fact map.

Leaf shape: ``{"fact": "capability.source", "op": "eq", "value": true}``.
"""
from __future__ import annotations

from typing import Any

_VALID_OPS = {"eq", "ne", "in"}

KNOWN_FACTS = {
    "delegation",
    "capability.source",
    "capability.destination",
    "destination.subtype",
    "purpose",
}


def validate_condition(condition: Any) -> list[str]:
    """Return a list of error strings if the condition tree is malformed."""
    errors: list[str] = []
    _validate_node(condition, errors, path="condition")
    return errors


def _validate_node(node: Any, errors: list[str], path: str) -> None:
    if not isinstance(node, dict):
        errors.append(f"{path}: expected dict, got {type(node).__name__}")
        return

    for combinator in ("all", "any"):
        if combinator in node:
            children = node[combinator]
            if not isinstance(children, list) or not children:
                errors.append(f"{path}.{combinator}: expected a non-empty list")
                return
            for i, child in enumerate(children):
                _validate_node(child, errors, path=f"{path}.{combinator}[{i}]")
            return

    for key in ("fact", "op", "value"):
        if key not in node:
            errors.append(f"{path}: missing required key '{key}'")
    if "fact" in node and node["fact"] not in KNOWN_FACTS:
        errors.append(f"{path}: unknown fact '{node['fact']}' (known: {sorted(KNOWN_FACTS)})")
    if "op" in node and node["op"] not in _VALID_OPS:
        errors.append(f"{path}: unknown operator '{node['op']}' (valid: {sorted(_VALID_OPS)})")
    if node.get("op") == "in" and not isinstance(node.get("value"), (list, tuple, set)):
        errors.append(f"{path}: 'in' operator requires a list value, got {type(node.get('value')).__name__}")


def evaluate_condition(condition: dict | None, facts: dict[str, Any]) -> bool:
    """Evaluate a condition tree against a flat fact map.

    A missing condition always holds; a missing fact makes its leaf False.
    """
    if condition is None:
        return True
    if "all" in condition:
        return all(evaluate_condition(c, facts) for c in condition["all"])
    if "any" in condition:
        return any(evaluate_condition(c, facts) for c in condition["any"])

    key = condition["fact"]
    if key not in facts:
        return False
    actual = facts[key]
    op = condition["op"]
    expected = condition["value"]

    if op == "eq":
        return actual == expected
    if op == "ne":
        return actual != expected
    if op == "in":
        return actual in expected

    raise ValueError(f"Unknown operator: {op}")
