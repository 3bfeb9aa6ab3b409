import subprocess
from pathlib import Path
from unittest.mock import patch

from conftest import MODULE_POM, PARENT_POM

from connectorlint.scanners.git import tracked_paths
from connectorlint.scanners.maven import compile_module, parse_pom


def _completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


# --- parse_pom (pure, no Maven required) ---

def test_parse_parent_modules_with_namespace():
    text = PARENT_POM.format(modules="    <module>connectors/supaflow-connector-acme</module>")
    pom = parse_pom(text)
    assert pom.modules == ("connectors/supaflow-connector-acme",)


def test_parse_module_plugins_and_dependencies():
    pom = parse_pom(MODULE_POM.format(name="acme"))
    assert pom.plugins == ("maven-shade-plugin",)
    assert [(d.group_id, d.artifact_id, d.version) for d in pom.dependencies] == [
        ("io.supaflow", "supaflow-connector-sdk", None),
        ("commons-io", "commons-io", None),
    ]


def test_managed_dependencies_are_not_direct_dependencies():
    text = (
        "<project><dependencyManagement><dependencies><dependency>"
        "<groupId>g</groupId><artifactId>a</artifactId><version>1</version>"
        "</dependency></dependencies></dependencyManagement></project>"
    )
    assert parse_pom(text).dependencies == ()


def test_parse_pom_malformed():
    assert parse_pom("<project><modules></project>") is None


# --- compile_module with mocked subprocess ---

def test_compile_module_success():
    with patch("connectorlint.scanners.maven.subprocess.run", return_value=_completed()) as run:
        ok, reason = compile_module(Path("/platform"), "connectors/supaflow-connector-acme")
    assert ok is True
    args = run.call_args.args[0]
    assert args == ["mvn", "-q", "clean", "compile", "-pl", "connectors/supaflow-connector-acme", "-am"]
    assert run.call_args.kwargs["cwd"] == Path("/platform")
    assert run.call_args.kwargs["timeout"] == 300.0


def test_compile_module_failure_reports_last_line():
    result = _completed(returncode=1, stdout="[INFO] x\n", stderr="[ERROR] cannot find symbol\n")
    with patch("connectorlint.scanners.maven.subprocess.run", return_value=result):
        ok, reason = compile_module(Path("/platform"), "m")
    assert ok is False
    assert "exit 1" in reason
    assert "cannot find symbol" in reason


def test_compile_module_missing_binary():
    with patch("connectorlint.scanners.maven.subprocess.run", side_effect=FileNotFoundError):
        ok, reason = compile_module(Path("/platform"), "m", command="mvnw")
    assert ok is False
    assert reason == "mvnw not found on PATH"


def test_compile_module_timeout():
    with patch(
        "connectorlint.scanners.maven.subprocess.run",
        side_effect=subprocess.TimeoutExpired(cmd="mvn", timeout=5),
    ):
        ok, reason = compile_module(Path("/platform"), "m", timeout=5)
    assert ok is False
    assert "timed out after 5s" in reason


# --- tracked_paths ---

def test_tracked_paths_lists_files():
    with patch("connectorlint.scanners.git.subprocess.run", return_value=_completed(stdout="a/target/x.class\n\n")):
        assert tracked_paths(Path("/platform"), "a/target") == (["a/target/x.class"], None)


def test_tracked_paths_outside_work_tree():
    result = _completed(returncode=128, stderr="fatal: not a git repository (or any parent)")
    with patch("connectorlint.scanners.git.subprocess.run", return_value=result):
        assert tracked_paths(Path("/platform"), "a/target") == ([], None)


def test_tracked_paths_failures():
    with patch("connectorlint.scanners.git.subprocess.run", side_effect=FileNotFoundError):
        assert tracked_paths(Path("/p"), "t") == (None, "git binary not found")
    with patch("connectorlint.scanners.git.subprocess.run", side_effect=subprocess.TimeoutExpired("git", 10)):
        assert tracked_paths(Path("/p"), "t") == (None, "git command timed out")
    result = _completed(returncode=2, stderr="boom")
    with patch("connectorlint.scanners.git.subprocess.run", return_value=result):
        paths, reason = tracked_paths(Path("/p"), "t")
    assert paths is None
    assert "boom" in reason
