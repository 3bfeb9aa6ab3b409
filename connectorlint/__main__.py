"""Entry point: python -m connectorlint verify <connector-name> [module-root]"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from .core.aggregate import EXIT_INVOCATION, aggregate
from .core.catalog import load_catalog
from .core.config import DEFAULT_CATALOG, ROOT_ENV_VAR, Settings
from .core.engine import RuleEngine
from .core.log import setup_logging
from .core.models import InvocationError
from .core.report import render_json, render_text
from .runtimes.supaflow.adapter import PlatformAdapter
from .scanners.classifier import ConnectorClassifier
from .scanners.locator import SourceLocator

USAGE = "Usage: python -m connectorlint verify <connector-name> [platform-root]"

log = logging.getLogger("connectorlint")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="connectorlint",
        description="Compliance checks for Supaflow connector modules",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    commands = parser.add_subparsers(dest="command", required=True)

    verify = commands.add_parser("verify", help="Verify one connector module")
    verify.add_argument("connector", help="Connector name, e.g. oracle-tm for supaflow-connector-oracle-tm")
    verify.add_argument(
        "root",
        nargs="?",
        type=Path,
        help=f"Platform checkout holding connectors/ (default: ${ROOT_ENV_VAR}, then the current directory)",
    )
    verify.add_argument("--json", action="store_true", dest="json_output", help="Output the report as JSON")
    verify.add_argument("--catalog", type=Path, help="Path to a custom rule catalog YAML")
    verify.add_argument(
        "--build",
        action="store_true",
        dest="build_check",
        help="Also compile the module with Maven (advisory; failures are warnings)",
    )
    verify.add_argument(
        "--build-timeout",
        type=float,
        default=Settings.build_timeout,
        metavar="SECONDS",
        help="Wall-clock limit for the Maven build (default: %(default)s)",
    )
    verify.add_argument("--icon-dir", type=Path, help="Directory holding connector SVG icons")
    verify.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity (-v, -vv)")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    settings = Settings(
        build_check=args.build_check,
        build_timeout=args.build_timeout,
        icon_dir=args.icon_dir,
    )
    adapter = PlatformAdapter(root=args.root)

    try:
        catalog = load_catalog(args.catalog or DEFAULT_CATALOG)
        module = adapter.module(args.connector)
        files = SourceLocator().locate(module)
    except InvocationError as e:
        print(f"error: {e}", file=sys.stderr)
        if args.root is None:
            print(f"  searched: {', '.join(adapter.searched_locations())}", file=sys.stderr)
        print(USAGE, file=sys.stderr)
        return EXIT_INVOCATION

    classification = ConnectorClassifier().classify(files)
    findings = RuleEngine(catalog.rules, settings).run(files, classification)
    report = aggregate(findings, classification=classification, module=module, primary_path=files.primary.path)
    log.info("%s: %d error(s), %d warning(s)", module.name, report.error_count, report.warning_count)

    if args.json_output:
        print(render_json(report))
    else:
        print(render_text(report))
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
