"""Identity and build rules: naming, packaging and committed artifacts."""
from __future__ import annotations

import re

from ..core.config import Settings
from ..core.models import FileSet, Verdict, ok, skip, violation, warn
from ..scanners.git import tracked_paths
from ..scanners.locator import RESOURCE_PATH
from ..scanners.maven import parse_pom
from .registry import predicate

_INVALID_CAPABILITIES = {
    "READ": "REPLICATION_SOURCE",
    "WRITE": "REPLICATION_DESTINATION",
    "SCHEMA_DISCOVERY": None,
}
_LABEL = re.compile(r"\blabel\s*=\s*\"((?:[^\"\\\n]|\\.)*)\"")
_ALNUM_SPACES = re.compile(r"^[A-Za-z0-9 ]*$")


@predicate("CHK-101")
def version_descriptor(files: FileSet, settings: Settings) -> Verdict:
    if files.resource is None:
        return violation(f"missing {RESOURCE_PATH}")
    if not re.search(r"^\s*connector\.version\s*=", files.resource.text, re.MULTILINE):
        return warn("version.properties has no 'connector.version=' entry")
    return ok("found version.properties with connector.version")


@predicate("CHK-102")
def module_manifest(files: FileSet, settings: Settings) -> Verdict:
    if files.manifest is None:
        return violation(f"missing pom.xml in {files.module.relative_dir}")
    return ok("found pom.xml")


@predicate("CHK-103")
def shade_plugin(files: FileSet, settings: Settings) -> Verdict:
    if files.manifest is None:
        return skip("no module pom.xml to inspect")
    pom = parse_pom(files.manifest.text)
    if pom is None:
        return warn("module pom.xml is not well-formed XML")
    if "maven-shade-plugin" not in pom.plugins:
        return violation("maven-shade-plugin is not configured; the uber-jar will be missing dependencies")
    return ok("found maven-shade-plugin")


@predicate("CHK-104")
def build_artifacts(files: FileSet, settings: Settings) -> Verdict:
    target = files.module.directory / "target"
    if not target.is_dir():
        return ok("no target/ directory (clean checkout)")
    relative = f"{files.module.relative_dir}/target"
    tracked, error = tracked_paths(files.module.root, relative)
    if tracked is None:
        return warn(f"target/ exists but git could not be queried: {error}")
    if tracked:
        return violation(f"target/ is committed to git ({len(tracked)} tracked file(s))")
    return ok("target/ exists but is not tracked by git")


@predicate("CHK-105")
def type_identifier(files: FileSet, settings: Settings) -> Verdict:
    value = files.primary.returned_string("getType")
    if value is None:
        return warn("could not resolve the getType() return value")
    if " " in value:
        return violation(f'getType() returns "{value}", which contains spaces')
    if re.search(r"[a-z]", value):
        return warn(f'getType() returns "{value}"; convention is SCREAMING_SNAKE_CASE')
    if re.search(r"[^A-Z0-9_]", value):
        return violation(f'getType() returns "{value}"; only A-Z, 0-9 and _ are allowed')
    return ok(f'getType() returns "{value}"')


@predicate("CHK-106")
def display_name(files: FileSet, settings: Settings) -> Verdict:
    value = files.primary.returned_string("getName")
    if value is None:
        return warn("could not resolve the getName() return value")
    if not _ALNUM_SPACES.match(value):
        return violation(f'getName() returns "{value}"; only letters, digits and spaces are allowed')
    return ok(f'getName() returns "{value}"')


@predicate("CHK-107")
def property_field_names(files: FileSet, settings: Settings) -> Verdict:
    fields = files.primary.annotated_fields("Property")
    snake = [f.name for f in fields if "_" in f.name]
    if snake:
        return violation(f"@Property fields use underscores instead of camelCase: {', '.join(snake)}")
    if not fields:
        return ok("no @Property fields")
    return ok(f"{len(fields)} @Property field(s) use camelCase")


def icon_candidates(display_name: str) -> list[str]:
    """File stems tried for a connector icon, most specific first."""
    compact = display_name.replace(" ", "")
    names = [
        re.sub(r"(?<!^)([A-Z])", r"_\1", compact).lower(),
        compact.lower(),
    ]
    base = re.match(r"[A-Z][a-z]*", compact)
    if base:
        names.append(base.group(0).lower())
    return list(dict.fromkeys(n for n in names if n))


@predicate("CHK-108")
def connector_icon(files: FileSet, settings: Settings) -> Verdict:
    name = files.primary.returned_string("getName")
    if not name:
        return skip("no display name to derive an icon file from")
    icon_dir = settings.resolve_icon_dir(files.module.root)
    if not icon_dir.is_dir():
        return skip(f"icon directory not found: {icon_dir}")
    candidates = icon_candidates(name)
    for stem in candidates:
        if (icon_dir / f"{stem}.svg").is_file():
            return ok(f"found icon {stem}.svg")
    checked = ", ".join(f"{stem}.svg" for stem in candidates)
    return violation(f"no icon found in {icon_dir} (checked: {checked})")


@predicate("CHK-109")
def capability_tokens(files: FileSet, settings: Settings) -> Verdict:
    wrong = []
    for token, replacement in _INVALID_CAPABILITIES.items():
        if files.primary.mentions(f"ConnectorCapabilities.{token}"):
            hint = f" (use {replacement})" if replacement else " (does not exist)"
            wrong.append(f"ConnectorCapabilities.{token}{hint}")
    if wrong:
        return violation("invalid capability token(s): " + "; ".join(wrong))
    return ok("capability tokens are valid")


@predicate("CHK-110")
def property_annotations(files: FileSet, settings: Settings) -> Verdict:
    uses = files.primary.annotations("Property")
    if not uses:
        return warn("no @Property annotations; connectors normally expose configuration")
    problems = []
    labels = [label for arguments, _, _ in uses for label in _LABEL.findall(arguments)]
    invalid = [label for label in labels if not _ALNUM_SPACES.match(label)]
    if invalid:
        problems.append("labels with special characters: " + ", ".join(f'"{label}"' for label in invalid))
    if files.primary.mentions("PropertyType.INTEGER"):
        problems.append("PropertyType.INTEGER does not exist (use PropertyType.NUMERIC)")
    if problems:
        return violation("; ".join(problems))
    return ok(f"{len(uses)} @Property annotation(s) are compliant")
