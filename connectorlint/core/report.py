"""Render a Report as text or JSON. Both renderers are pure functions of the Report."""
from __future__ import annotations

import json
from pathlib import Path

from .. import __version__
from .models import Finding, Outcome, Report, Severity

SCHEMA_VERSION = "0.1"

COMMON_FIXES = (
    ("CHK-203", "Add processor.completeProcessing() before building ReadResponse"),
    ("CHK-204", "Use SyncStateResponseBuilder.fromProcessingResult()"),
    ("CHK-205", "Do NOT call processor.close(); the pipeline manages its lifecycle"),
    ("CHK-206", "Use setDatasourceProductName() not setStatus()"),
    ("CHK-109", "Use ConnectorCapabilities.REPLICATION_SOURCE not .READ"),
    ("CHK-216", "Call identifyCursorFields() in schema() for incremental sync"),
    ("CHK-401", "Register the module in the parent pom.xml <modules> section"),
)

_MARKERS = {
    Severity.PASS: "[PASS]",
    Severity.WARN: "[WARN]",
    Severity.FAIL: "[FAIL]",
    Severity.SKIP: "[SKIP]",
}

_OUTCOME_LABELS = {
    Outcome.SUCCESS: "SUCCESS",
    Outcome.SUCCESS_WITH_WARNINGS: "SUCCESS WITH WARNINGS",
    Outcome.FAILURE: "FAILURE",
}


def render_text(report: Report) -> str:
    lines: list[str] = []
    lines.extend(_header(report))

    group = None
    for finding in report.findings:
        if finding.group and finding.group != group:
            group = finding.group
            lines.append("")
            lines.append(f"== {group} ==")
        lines.append(f"{_MARKERS[finding.severity]} {finding.rule_id} {finding.title}: {finding.message}")
        if finding.severity is Severity.FAIL and finding.remediation:
            lines.append(f"       fix: {finding.remediation}")

    lines.append("")
    lines.append("Summary")
    lines.append(f"  errors:   {report.error_count}")
    lines.append(f"  warnings: {report.warning_count}")
    lines.append(f"  outcome:  {_OUTCOME_LABELS[report.outcome]}")
    lines.append("")

    if report.outcome is Outcome.FAILURE:
        lines.append("Fix all [FAIL] findings before proceeding. Common fixes:")
        for rule_id, fix in COMMON_FIXES:
            lines.append(f"  - {fix} ({rule_id})")
    else:
        if report.outcome is Outcome.SUCCESS_WITH_WARNINGS:
            lines.append("Passed with warnings; review them before release.")
        else:
            lines.append("All checks passed.")
        lines.append(f"Next step: {_next_step(report)}")
    return "\n".join(lines)


def _header(report: Report) -> list[str]:
    lines = []
    if report.module is not None:
        lines.append(f"Verifying connector: {report.module.name}")
        lines.append(f"  module:  {report.module.relative_dir}")
    if report.primary_path is not None:
        lines.append(f"  primary: {_display_path(report)}")
    c = report.classification
    if c is not None:
        kind = f"{c.purpose}, {c.delegation.value}"
        if c.base_type:
            kind += f" ({c.base_type})"
        lines.append(f"  kind:    {kind}")
        if c.has_destination_capability:
            lines.append(f"  subtype: {c.destination_subtype.value}")
    return lines


def _display_path(report: Report) -> str:
    path = report.primary_path
    if report.module is not None:
        try:
            return Path(path).relative_to(report.module.directory).as_posix()
        except ValueError:
            pass
    return Path(path).as_posix()


def _next_step(report: Report) -> str:
    if report.module is None:
        return "proceed with testing: mvn clean verify"
    return f"proceed with testing: mvn clean verify -pl {report.module.relative_dir} -am"


def _finding_dict(finding: Finding) -> dict:
    return {
        "rule_id": finding.rule_id,
        "group": finding.group,
        "title": finding.title,
        "severity": finding.severity.value,
        "message": finding.message,
        "remediation": finding.remediation,
    }


def to_dict(report: Report) -> dict:
    meta: dict = {"schema_version": SCHEMA_VERSION, "tool_version": __version__}
    if report.module is not None:
        meta["connector"] = report.module.name
        meta["module"] = report.module.relative_dir
    if report.primary_path is not None:
        meta["primary_file"] = _display_path(report)

    output: dict = {"meta": meta}
    c = report.classification
    if c is not None:
        output["classification"] = {
            "delegation": c.delegation.value,
            "base_type": c.base_type,
            "source": c.has_source_capability,
            "destination": c.has_destination_capability,
            "destination_subtype": c.destination_subtype.value,
        }
    output["summary"] = {
        "error_count": report.error_count,
        "warning_count": report.warning_count,
        "outcome": report.outcome.value,
        "exit_code": report.exit_code,
    }
    output["findings"] = [_finding_dict(f) for f in report.findings]
    return output


def render_json(report: Report) -> str:
    return json.dumps(to_dict(report), indent=2)
