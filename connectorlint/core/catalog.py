"""Load the YAML rule catalog and bind each entry to its registered predicate."""
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from ..rules.registry import Predicate, registered_predicates
from .condition import evaluate_condition, validate_condition
from .config import DEFAULT_CATALOG
from .models import InvocationError, RuleLevel

RULE_ID = re.compile(r"^CHK-\d{3}$")

_REQUIRED_GROUP_KEYS = {"id", "number", "title"}
_REQUIRED_RULE_KEYS = {"id", "group", "title", "level"}
_DEFAULT_SKIP = "not applicable"


class CatalogLoadError(InvocationError):
    """Raised when the rule catalog is malformed."""


@dataclass(frozen=True)
class RuleGroup:
    id: str
    number: int
    title: str
    condition: dict | None = None
    skip_message: str = _DEFAULT_SKIP


@dataclass(frozen=True)
class Rule:
    id: str
    title: str
    group: RuleGroup
    level: RuleLevel
    predicate: Predicate
    inherited: bool = False
    condition: dict | None = None
    skip_message: str = _DEFAULT_SKIP
    remediation: str | None = None

    def skip_reason(self, facts: dict[str, Any]) -> str | None:
        """Why the rule does not apply to a module with these facts, or None."""
        if not evaluate_condition(self.group.condition, facts):
            return self.group.skip_message.format_map(facts)
        if not evaluate_condition(self.condition, facts):
            return self.skip_message.format_map(facts)
        return None


@dataclass(frozen=True)
class Catalog:
    path: Path
    groups: tuple[RuleGroup, ...]
    rules: tuple[Rule, ...]

    def rule(self, rule_id: str) -> Rule:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        raise KeyError(rule_id)


def load_catalog(path: Path = DEFAULT_CATALOG, predicates: dict[str, Predicate] | None = None) -> Catalog:
    """Read and validate a catalog file.

    predicates defaults to every check registered by the bundled rule modules.
    Every catalog entry needs a predicate and every predicate needs an entry.
    """
    try:
        with open(path, encoding="utf-8") as f:
            document = yaml.safe_load(f)
    except OSError as e:
        raise CatalogLoadError(f"{path}: cannot read rule catalog: {e.strerror or e}") from e
    except yaml.YAMLError as e:
        raise CatalogLoadError(f"{path}: invalid YAML: {e}") from e

    if not isinstance(document, dict):
        raise CatalogLoadError(f"{path}: expected a YAML mapping at top level")

    groups = document.get("groups", [])
    rules = document.get("rules", [])
    if not isinstance(groups, list):
        raise CatalogLoadError(f"{path}: 'groups' must be a list")
    if not isinstance(rules, list):
        raise CatalogLoadError(f"{path}: 'rules' must be a list")

    if predicates is None:
        predicates = registered_predicates()

    errors = _validate_groups(groups)
    group_ids = {g["id"] for g in groups if isinstance(g, dict) and "id" in g}
    errors.extend(_validate_rules(rules, group_ids, predicates))
    if errors:
        joined = "\n  ".join(errors)
        raise CatalogLoadError(f"{path}: rule catalog validation failed:\n  {joined}")

    by_id = {
        g["id"]: RuleGroup(
            id=g["id"],
            number=int(g["number"]),
            title=g["title"],
            condition=g.get("condition"),
            skip_message=g.get("skip", _DEFAULT_SKIP),
        )
        for g in groups
    }
    bound = [
        Rule(
            id=r["id"],
            title=r["title"],
            group=by_id[r["group"]],
            level=RuleLevel(r["level"]),
            predicate=predicates[r["id"]],
            inherited=bool(r.get("inherited", False)),
            condition=r.get("condition"),
            skip_message=r.get("skip", _DEFAULT_SKIP),
            remediation=r.get("remediation"),
        )
        for r in rules
    ]
    return Catalog(
        path=Path(path),
        groups=tuple(sorted(by_id.values(), key=lambda g: g.number)),
        rules=tuple(sorted(bound, key=lambda r: r.id)),
    )


def _validate_groups(groups: list) -> list[str]:
    errors: list[str] = []
    seen: set[str] = set()
    for i, group in enumerate(groups):
        if not isinstance(group, dict):
            errors.append(f"groups[{i}]: expected dict, got {type(group).__name__}")
            continue
        missing = _REQUIRED_GROUP_KEYS - group.keys()
        if missing:
            errors.append(f"groups[{i}] (id={group.get('id', '?')}): missing keys: {sorted(missing)}")
        if group.get("id") in seen:
            errors.append(f"groups[{i}]: duplicate group id '{group['id']}'")
        seen.add(group.get("id"))
        if "condition" in group:
            for err in validate_condition(group["condition"]):
                errors.append(f"groups[{i}] (id={group.get('id', '?')}): {err}")
    return errors


def _validate_rules(rules: list, group_ids: set[str], predicates: dict[str, Predicate]) -> list[str]:
    errors: list[str] = []
    seen: set[str] = set()
    levels = {level.value for level in RuleLevel}
    for i, rule in enumerate(rules):
        if not isinstance(rule, dict):
            errors.append(f"rules[{i}]: expected dict, got {type(rule).__name__}")
            continue
        rule_id = rule.get("id", "?")
        where = f"rules[{i}] (id={rule_id})"
        missing = _REQUIRED_RULE_KEYS - rule.keys()
        if missing:
            errors.append(f"{where}: missing keys: {sorted(missing)}")
        if "id" in rule:
            if not isinstance(rule_id, str) or not RULE_ID.match(rule_id):
                errors.append(f"{where}: id must look like CHK-123")
            elif rule_id in seen:
                errors.append(f"{where}: duplicate rule id")
            elif rule_id not in predicates:
                errors.append(f"{where}: no predicate registered for this rule")
            seen.add(rule_id)
        if "group" in rule and rule["group"] not in group_ids:
            errors.append(f"{where}: unknown group '{rule['group']}'")
        if "level" in rule and rule["level"] not in levels:
            errors.append(f"{where}: unknown level '{rule['level']}' (valid: {sorted(levels)})")
        if "condition" in rule:
            for err in validate_condition(rule["condition"]):
                errors.append(f"{where}: {err}")

    for rule_id in sorted(set(predicates) - seen):
        errors.append(f"{rule_id}: predicate registered but missing from the catalog")
    return errors
