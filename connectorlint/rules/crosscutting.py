"""Rules that apply to every connector: registration, dependencies, cancellation."""
from __future__ import annotations

import logging
import re

from ..core.config import Settings
from ..core.models import FileSet, Verdict, ok, skip, violation, warn
from ..scanners.maven import compile_module, parse_pom
from .registry import predicate

log = logging.getLogger(__name__)

PARENT_MANAGED_ARTIFACTS = ("commons-codec", "commons-io", "opencsv", "slf4j-api")
INTERNAL_GROUP_ID = "io.supaflow"
_CANCEL_CHECKS = ("checkCancellation", "checkCancellationPublic")
_RETRY_WORDS = re.compile(r"\b(?:retry|continue|break)\b", re.IGNORECASE)
_RETHROW_WORDS = re.compile(r"\b(?:throw|rethrow)\b", re.IGNORECASE)


def is_registered(files: FileSet) -> bool | None:
    """Whether the parent pom lists the module; None without a parent pom."""
    parent = files.parent_manifest
    if parent is None:
        return None
    entry = files.module.relative_dir
    pom = parse_pom(parent.text)
    if pom is not None:
        return entry in pom.modules
    return re.search(rf"<module>\s*{re.escape(entry)}\s*</module>", parent.text) is not None


@predicate("CHK-401")
def parent_registration(files: FileSet, settings: Settings) -> Verdict:
    registered = is_registered(files)
    if registered is None:
        return warn(f"parent pom.xml not found at {files.module.root / 'pom.xml'}")
    if not registered:
        return violation(
            f"<module>{files.module.relative_dir}</module> is missing from the parent pom.xml; "
            "root builds and agent deployments will skip this connector"
        )
    return ok("registered in parent pom.xml")


@predicate("CHK-402")
def reactor_build(files: FileSet, settings: Settings) -> Verdict:
    if not settings.build_check:
        return skip("build verification disabled")
    if not is_registered(files):
        return skip("module is not registered in the parent pom.xml")
    succeeded, reason = compile_module(
        files.module.root,
        files.module.relative_dir,
        command=settings.build_command,
        timeout=settings.build_timeout,
    )
    if not succeeded:
        log.warning("reactor build: %s", reason)
        return warn(reason)
    return ok(reason)


@predicate("CHK-403")
def parent_managed_versions(files: FileSet, settings: Settings) -> Verdict:
    if files.manifest is None:
        return skip("no module pom.xml to inspect")
    pom = parse_pom(files.manifest.text)
    if pom is None:
        return warn("module pom.xml is not well-formed XML")
    pinned = [
        f"{d.artifact_id}: {d.version}" for d in pom.dependencies
        if d.artifact_id in PARENT_MANAGED_ARTIFACTS and d.version
    ]
    if pinned:
        return violation("hard-coded versions for parent-managed dependencies: " + ", ".join(pinned))
    return ok("parent-managed dependencies inherit their versions")


@predicate("CHK-404")
def internal_module_versions(files: FileSet, settings: Settings) -> Verdict:
    if files.manifest is None:
        return skip("no module pom.xml to inspect")
    pom = parse_pom(files.manifest.text)
    if pom is None:
        return warn("module pom.xml is not well-formed XML")
    pinned = [d.artifact_id for d in pom.dependencies if d.group_id == INTERNAL_GROUP_ID and d.version]
    if pinned:
        return violation(f"{INTERNAL_GROUP_ID} dependencies declare explicit versions: " + ", ".join(pinned))
    return ok("internal modules inherit ${project.version}")


@predicate("CHK-405")
def cancellation_supplier(files: FileSet, settings: Settings) -> Verdict:
    primary = files.primary
    if not primary.mentions("cancellationSupplier", "BooleanSupplier"):
        return violation("missing cancellationSupplier field")
    if not primary.has_call("getCancellationSupplier"):
        return warn("cancellationSupplier is never wired from runtimeContext.getCancellationSupplier()")
    return ok("cancellationSupplier wired from the runtime context")


@predicate("CHK-406")
def cancellation_helper(files: FileSet, settings: Settings) -> Verdict:
    found = files.first_with(lambda s: s.mentions(*_CANCEL_CHECKS))
    if found is None:
        return violation("missing checkCancellation() helper")
    return ok(f"found checkCancellation() in {found.name}")


@predicate("CHK-407")
def cancellation_in_loops(files: FileSet, settings: Settings) -> Verdict:
    loops = files.primary.loop_count()
    if loops == 0:
        return ok("no explicit loops")
    checks = sum(len(s.calls(name)) for s in files.sources for name in _CANCEL_CHECKS)
    if checks == 0:
        return violation(f"{loops} loop(s) but no checkCancellation() calls")
    return ok(f"{checks} cancellation check(s) for {loops} loop(s)")


@predicate("CHK-408")
def cancelled_not_retried(files: FileSet, settings: Settings) -> Verdict:
    lines = files.primary.bare.splitlines()
    hits = [i for i, line in enumerate(lines) if re.search(r"\bCANCELLED\b", line)]
    if not hits:
        return ok("no CANCELLED handling to inspect")
    for i in hits:
        for line in lines[max(0, i - 5):i + 6]:
            if _RETRY_WORDS.search(line) and not _RETHROW_WORDS.search(line):
                return violation(f"CANCELLED near line {i + 1} may be retried or suppressed; always rethrow it")
    return ok("CANCELLED is rethrown")
