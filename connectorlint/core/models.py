from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from ..scanners.java import JavaSource


@dataclass(frozen=True)
class Module:
    root: Path
    name: str

    @property
    def relative_dir(self) -> str:
        return f"connectors/supaflow-connector-{self.name}"

    @property
    def directory(self) -> Path:
        return self.root / self.relative_dir


@dataclass(frozen=True)
class SourceFile:
    """A text file read once by the locator."""
    path: Path
    text: str


@dataclass(frozen=True)
class FileSet:
    """Everything the rules are allowed to look at for one module."""
    module: Module
    primary: JavaSource
    helpers: tuple[JavaSource, ...] = ()
    integration_test: JavaSource | None = None
    manifest: SourceFile | None = None
    resource: SourceFile | None = None
    parent_manifest: SourceFile | None = None

    @property
    def sources(self) -> tuple[JavaSource, ...]:
        """Primary file first, then helpers in path order."""
        return (self.primary, *self.helpers)

    def first_with(self, predicate) -> JavaSource | None:
        for source in self.sources:
            if predicate(source):
                return source
        return None


class Delegation(str, Enum):
    STANDALONE = "standalone"
    BASE_DELEGATED = "base_delegated"


class DestinationSubtype(str, Enum):
    NONE = "none"
    WAREHOUSE = "warehouse"
    ACTIVATION = "activation"


@dataclass(frozen=True)
class Classification:
    delegation: Delegation
    has_source_capability: bool
    has_destination_capability: bool
    destination_subtype: DestinationSubtype
    base_type: str | None = None

    @property
    def is_base_delegated(self) -> bool:
        return self.delegation is Delegation.BASE_DELEGATED

    @property
    def purpose(self) -> str:
        if self.has_source_capability and self.has_destination_capability:
            return "dual-purpose"
        if self.has_destination_capability:
            return "destination-only"
        if self.has_source_capability:
            return "source-only"
        return "no capabilities declared"

    def facts(self) -> dict[str, Any]:
        """Flat fact map consumed by applicability conditions."""
        return {
            "delegation": self.delegation.value,
            "capability.source": self.has_source_capability,
            "capability.destination": self.has_destination_capability,
            "destination.subtype": self.destination_subtype.value,
            "purpose": self.purpose,
        }


class RuleLevel(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class Severity(str, Enum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"
    SKIP = "skip"


@dataclass(frozen=True)
class Verdict:
    """What a rule predicate concluded.

    severity=None means "violation at the rule's default level".
    """
    severity: Severity | None
    message: str


def ok(message: str) -> Verdict:
    return Verdict(Severity.PASS, message)


def violation(message: str) -> Verdict:
    return Verdict(None, message)


def warn(message: str) -> Verdict:
    return Verdict(Severity.WARN, message)


def skip(message: str) -> Verdict:
    return Verdict(Severity.SKIP, message)


@dataclass(frozen=True)
class Finding:
    rule_id: str
    title: str
    severity: Severity
    message: str
    remediation: str | None = None
    group: str | None = None


class Outcome(str, Enum):
    SUCCESS = "success"
    SUCCESS_WITH_WARNINGS = "success_with_warnings"
    FAILURE = "failure"


@dataclass(frozen=True)
class Report:
    findings: tuple[Finding, ...]
    error_count: int
    warning_count: int
    outcome: Outcome
    exit_code: int
    classification: Classification | None = None
    module: Module | None = None
    primary_path: Path | None = None


class InvocationError(Exception):
    """The run cannot start: bad arguments, missing root, or no primary file."""
