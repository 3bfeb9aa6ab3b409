from __future__ import annotations

import logging
import os
from pathlib import Path

from ...core.config import ROOT_ENV_VAR
from ...core.models import InvocationError, Module

log = logging.getLogger(__name__)


class PlatformAdapter:
    """Read-only adapter that resolves the platform checkout holding a connector module."""

    def __init__(self, root: Path | None = None) -> None:
        self._explicit_root = root

    def searched_locations(self) -> list[str]:
        """Return the candidate roots in resolution order."""
        locations: list[str] = []
        if self._explicit_root:
            locations.append(str(self._explicit_root))
        env_root = os.environ.get(ROOT_ENV_VAR)
        if env_root:
            locations.append(f"${ROOT_ENV_VAR} ({env_root})")
        locations.append(f"cwd ({Path.cwd()})")
        return locations

    def resolve_root(self) -> Path:
        """Pick the first configured root; it must exist as a directory.

        Only the first configured candidate is considered: an explicit root
        that does not exist is an error, not a reason to fall back.
        """
        if self._explicit_root is not None:
            root = self._explicit_root
        elif os.environ.get(ROOT_ENV_VAR):
            root = Path(os.environ[ROOT_ENV_VAR])
        else:
            root = Path.cwd()

        if not root.is_dir():
            raise InvocationError(f"platform root does not exist: {root}")
        log.debug("platform root resolved to %s", root)
        return root

    def module(self, name: str) -> Module:
        if not name or "/" in name or name.strip() != name:
            raise InvocationError(f"invalid connector name: {name!r}")
        return Module(root=self.resolve_root().resolve(), name=name)
