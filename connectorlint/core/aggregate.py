from __future__ import annotations

from pathlib import Path
from typing import Iterable

from .models import Classification, Finding, Module, Outcome, Report, Severity

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INVOCATION = 2


def outcome_for(error_count: int, warning_count: int) -> Outcome:
    if error_count > 0:
        return Outcome.FAILURE
    if warning_count > 0:
        return Outcome.SUCCESS_WITH_WARNINGS
    return Outcome.SUCCESS


def exit_code_for(outcome: Outcome) -> int:
    return EXIT_FAILURE if outcome is Outcome.FAILURE else EXIT_OK


def aggregate(
    findings: Iterable[Finding],
    classification: Classification | None = None,
    module: Module | None = None,
    primary_path: Path | None = None,
) -> Report:
    """Freeze findings into a Report. Pass and Skip findings count toward nothing."""
    findings = tuple(findings)
    error_count = sum(1 for f in findings if f.severity is Severity.FAIL)
    warning_count = sum(1 for f in findings if f.severity is Severity.WARN)
    outcome = outcome_for(error_count, warning_count)
    return Report(
        findings=findings,
        error_count=error_count,
        warning_count=warning_count,
        outcome=outcome,
        exit_code=exit_code_for(outcome),
        classification=classification,
        module=module,
        primary_path=primary_path,
    )
