"""Write ``linemark/_build_info.py`` with the commit the package is built from.

Used by the hatch build hook and runnable by hand before packaging.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Optional

PACKAGE = "linemark"
TARGET = f"{PACKAGE}/_build_info.py"


def git_output(args: list[str], cwd: Path) -> Optional[str]:
    try:
        out = subprocess.check_output(["git", *args], cwd=str(cwd), stderr=subprocess.DEVNULL)
    except (subprocess.CalledProcessError, OSError):
        # Building from an sdist or without git is fine
        return None
    return out.decode().strip() or None


def render_build_info(commit: Optional[str], date: Optional[str], dirty: bool) -> str:
    return (
        "# Auto-generated at build time.\n"
        f"COMMIT = {commit!r}\n"
        f"DATE = {date!r}\n"
        f"DIRTY = {dirty!r}\n"
    )


def write_build_info(project_root: Path) -> Path:
    commit = git_output(["rev-parse", "HEAD"], project_root)
    date = git_output(["show", "-s", "--format=%cI", "HEAD"], project_root)
    dirty = bool(git_output(["status", "--porcelain", "--untracked-files=no"], project_root))
    target = project_root / TARGET
    target.write_text(render_build_info(commit, date, dirty), encoding="utf-8")
    return target


if __name__ == "__main__":
    print(write_build_info(Path(__file__).resolve().parents[1]))
