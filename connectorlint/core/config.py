from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

ROOT_ENV_VAR = "SUPAFLOW_PLATFORM_ROOT"

DEFAULT_CATALOG = Path(__file__).resolve().parent.parent / "policies" / "supaflow.yaml"


@dataclass(frozen=True)
class Settings:
    """Per-run options that rules may consult. Never mutated during a run."""
    build_check: bool = False
    build_timeout: float = 300.0
    build_command: str = "mvn"
    icon_dir: Path | None = None

    def resolve_icon_dir(self, platform_root: Path) -> Path:
        if self.icon_dir is not None:
            return self.icon_dir
        return platform_root.parent / "supaflow-www" / "public" / "connectors"
