from __future__ import annotations

import subprocess
from pathlib import Path


def tracked_paths(root: Path, relative: str, timeout: float = 10) -> tuple[list[str] | None, str | None]:
    """Return (tracked paths under relative, None), or (None, reason) on failure.

    Outside a git work tree nothing is tracked, which is not a failure.
    """
    try:
        result = subprocess.run(
            ["git", "ls-files", "--", relative],
            cwd=root, capture_output=True, text=True, timeout=timeout,
        )
    except FileNotFoundError:
        return None, "git binary not found"
    except subprocess.TimeoutExpired:
        return None, "git command timed out"
    except OSError as e:
        return None, f"OS error: {e}"

    if result.returncode != 0:
        stderr = result.stderr.strip()[:200]
        if "not a git repository" in stderr:
            return [], None
        return None, f"git ls-files failed ({stderr or 'non-zero exit'})"
    return [line for line in result.stdout.splitlines() if line], None
