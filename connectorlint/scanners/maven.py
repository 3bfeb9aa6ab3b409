from __future__ import annotations

import logging
import subprocess
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Dependency:
    group_id: str
    artifact_id: str
    version: str | None


@dataclass(frozen=True)
class Pom:
    modules: tuple[str, ...]
    plugins: tuple[str, ...]
    dependencies: tuple[Dependency, ...]


def parse_pom(text: str) -> Pom | None:
    """Parse a pom.xml, ignoring the Maven namespace. None if not well-formed."""
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        log.debug("pom.xml is not well-formed: %s", e)
        return None

    for el in root.iter():
        if isinstance(el.tag, str) and "}" in el.tag:
            el.tag = el.tag.split("}", 1)[1]

    modules = tuple(_text(m) for m in root.iter("module") if _text(m))
    plugins = tuple(_text(p.find("artifactId")) for p in root.iter("plugin") if p.find("artifactId") is not None)
    dependencies = tuple(
        Dependency(
            group_id=_text(d.find("groupId")),
            artifact_id=_text(d.find("artifactId")),
            version=_text(d.find("version")) or None,
        )
        for d in root.findall("dependencies/dependency")
    )
    return Pom(modules=modules, plugins=plugins, dependencies=dependencies)


def _text(el: ET.Element | None) -> str:
    if el is None or el.text is None:
        return ""
    return el.text.strip()


def compile_module(root: Path, module_path: str, command: str = "mvn", timeout: float = 300.0) -> tuple[bool, str]:
    """Run a reactor compile of one module. Returns (succeeded, reason).

    Never raises: a missing binary, a timeout and a failed build are all
    reported through the reason string.
    """
    args = [command, "-q", "clean", "compile", "-pl", module_path, "-am"]
    log.info("running %s", " ".join(args))
    try:
        result = subprocess.run(args, cwd=root, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError:
        return False, f"{command} not found on PATH"
    except subprocess.TimeoutExpired:
        return False, f"reactor build timed out after {timeout:g}s"
    except OSError as e:
        return False, f"OS error: {e}"

    if result.returncode != 0:
        output = (result.stdout + result.stderr).strip().splitlines()
        last = output[-1][:200] if output else "non-zero exit"
        return False, f"reactor build failed (exit {result.returncode}): {last}"
    return True, "reactor build includes the module"
