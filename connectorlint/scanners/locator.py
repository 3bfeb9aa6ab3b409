"""Locates the files of a connector module.

Layout under the module directory:
- primary: src/main/java/io/supaflow/connector/**/*Connector.java (not *IT.java)
- helpers: other *.java files under the primary file's directory tree
- integration test: src/test/**/*ConnectorIT.java
- manifest: pom.xml; resource: src/main/resources/version.properties
"""
from __future__ import annotations

import logging
from pathlib import Path

from ..core.models import FileSet, InvocationError, Module, SourceFile
from .java import JavaSource

log = logging.getLogger(__name__)

SOURCE_SUBDIR = Path("src/main/java/io/supaflow/connector")
TEST_SUBDIR = Path("src/test")
RESOURCE_PATH = Path("src/main/resources/version.properties")
PRIMARY_SUFFIX = "Connector.java"
TEST_SUFFIX = "IT.java"
IT_SUFFIX = "ConnectorIT.java"


class SourceLocator:
    """Builds the FileSet for one module. Filesystem reads only."""

    def locate(self, module: Module) -> FileSet:
        module_dir = module.directory
        if not module_dir.is_dir():
            raise InvocationError(f"connector module not found: {module_dir}")

        primary_path = find_primary(module_dir / SOURCE_SUBDIR)
        if primary_path is None:
            raise InvocationError(
                f"connector file not found: no *{PRIMARY_SUFFIX} under {module_dir / SOURCE_SUBDIR}"
            )
        log.info("primary file: %s", primary_path)

        helpers = tuple(
            JavaSource.read(p)
            for p in sorted(primary_path.parent.rglob("*.java"))
            if p != primary_path and p.is_file()
        )
        log.debug("%d helper file(s) under %s", len(helpers), primary_path.parent)

        it_path = _first(module_dir / TEST_SUBDIR, f"*{IT_SUFFIX}")
        if it_path is None:
            log.info("no integration test file under %s", module_dir / TEST_SUBDIR)

        return FileSet(
            module=module,
            primary=JavaSource.read(primary_path),
            helpers=helpers,
            integration_test=JavaSource.read(it_path) if it_path else None,
            manifest=_read_optional(module_dir / "pom.xml"),
            resource=_read_optional(module_dir / RESOURCE_PATH),
            parent_manifest=_read_optional(module.root / "pom.xml"),
        )


def find_primary(source_dir: Path) -> Path | None:
    """First *Connector.java in path order; ambiguity is not an error."""
    if not source_dir.is_dir():
        return None
    candidates = sorted(
        p for p in source_dir.rglob(f"*{PRIMARY_SUFFIX}")
        if p.is_file() and not p.name.endswith(TEST_SUFFIX)
    )
    if len(candidates) > 1:
        log.info("%d connector files found, using %s", len(candidates), candidates[0].name)
    return candidates[0] if candidates else None


def _first(directory: Path, pattern: str) -> Path | None:
    if not directory.is_dir():
        return None
    matches = sorted(p for p in directory.rglob(pattern) if p.is_file())
    return matches[0] if matches else None


def _read_optional(path: Path) -> SourceFile | None:
    try:
        return SourceFile(path=path, text=path.read_text(encoding="utf-8", errors="replace"))
    except OSError:
        return None
