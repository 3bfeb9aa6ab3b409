from __future__ import annotations

import logging
from typing import Iterable

from .catalog import Rule
from .config import Settings
from .models import Classification, FileSet, Finding, RuleLevel, Severity, Verdict

log = logging.getLogger(__name__)

INHERITED_MESSAGE = "inherited from base"

_VIOLATION_SEVERITY = {
    RuleLevel.ERROR: Severity.FAIL,
    RuleLevel.WARNING: Severity.WARN,
}


class RuleEngine:
    """Evaluates every catalog rule against one module, in rule-id order.

    Rules never see each other's findings. A predicate that raises produces
    a Fail finding for its own rule and the run continues.
    """

    def __init__(self, rules: Iterable[Rule], settings: Settings | None = None) -> None:
        self._rules = tuple(sorted(rules, key=lambda r: r.id))
        self._settings = settings or Settings()

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    def run(self, files: FileSet, classification: Classification) -> list[Finding]:
        facts = classification.facts()
        log.info(
            "evaluating %d rules for %s (%s, %s)",
            len(self._rules), files.module.name, classification.purpose, classification.delegation.value,
        )
        return [self._evaluate(rule, files, classification, facts) for rule in self._rules]

    def _evaluate(self, rule: Rule, files: FileSet, classification: Classification, facts: dict) -> Finding:
        reason = rule.skip_reason(facts)
        if reason is not None:
            return _finding(rule, Severity.SKIP, reason)

        if rule.inherited and classification.is_base_delegated:
            return _finding(rule, Severity.PASS, INHERITED_MESSAGE)

        try:
            verdict = rule.predicate(files, self._settings)
            if not isinstance(verdict, Verdict):
                raise TypeError(f"predicate returned {type(verdict).__name__}, expected Verdict")
        except Exception as e:
            log.error("%s raised %s: %s", rule.id, type(e).__name__, e)
            log.debug("traceback for %s", rule.id, exc_info=True)
            return _finding(rule, Severity.FAIL, f"rule raised {type(e).__name__}: {e}")

        severity = verdict.severity or _VIOLATION_SEVERITY[rule.level]
        log.debug("%s -> %s: %s", rule.id, severity.value, verdict.message)
        return _finding(rule, severity, verdict.message)


def _finding(rule: Rule, severity: Severity, message: str) -> Finding:
    return Finding(
        rule_id=rule.id,
        title=rule.title,
        severity=severity,
        message=message,
        remediation=rule.remediation if severity is Severity.FAIL else None,
        group=rule.group.title,
    )
