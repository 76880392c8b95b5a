"""Build identification for ``linemark --version``.

The commit comes from, in order: the git checkout the package runs from,
the ``_build_info.py`` module written by the build hook, or the PEP 610
``direct_url.json`` of a VCS install.
"""

from __future__ import annotations

import importlib.metadata
import json
import logging
import subprocess
from pathlib import Path
from typing import Callable, NamedTuple, Optional

logger = logging.getLogger(__name__)

DIST_NAME = "linemark"


class BuildInfo(NamedTuple):
    commit: Optional[str]
    date: Optional[str]
    dirty: bool

    @property
    def short_commit(self) -> str:
        return self.commit[:7] if self.commit else "unknown"


def _git(args: list[str], cwd: Path) -> Optional[str]:
    try:
        out = subprocess.check_output(["git", *args], cwd=str(cwd), stderr=subprocess.DEVNULL)
    except (subprocess.CalledProcessError, OSError):
        return None
    return out.decode().strip() or None


def from_git_checkout(here: Optional[Path] = None) -> Optional[BuildInfo]:
    here = here or Path(__file__).resolve().parent
    top = _git(["rev-parse", "--show-toplevel"], here)
    if not top:
        return None
    root = Path(top)
    status = _git(["status", "--porcelain"], root)
    return BuildInfo(
        commit=_git(["rev-parse", "HEAD"], root),
        date=_git(["show", "-s", "--format=%cI", "HEAD"], root),
        dirty=bool(status),
    )


def from_build_module() -> Optional[BuildInfo]:
    try:
        from . import _build_info  # type: ignore
    except ImportError:
        return None
    commit = getattr(_build_info, "COMMIT", None)
    date = getattr(_build_info, "DATE", None)
    dirty = bool(getattr(_build_info, "DIRTY", False))
    return BuildInfo(commit, date, dirty) if commit or date else None


def from_direct_url() -> Optional[BuildInfo]:
    try:
        dist = importlib.metadata.distribution(DIST_NAME)
    except importlib.metadata.PackageNotFoundError:
        return None
    text = dist.read_text("direct_url.json")
    if not text:
        return None
    try:
        commit = (json.loads(text).get("vcs_info") or {}).get("commit_id")
    except (json.JSONDecodeError, AttributeError) as e:
        logger.debug(f"Unreadable direct_url.json: {e}")
        return None
    return BuildInfo(commit, None, False) if commit else None


SOURCES: tuple[Callable[[], Optional[BuildInfo]], ...] = (
    from_git_checkout, from_build_module, from_direct_url,
)


def get_build_info() -> BuildInfo:
    for source in SOURCES:
        info = source()
        if info and (info.commit or info.date):
            return info
    return BuildInfo(commit=None, date=None, dirty=False)


def get_version_string() -> str:
    info = get_build_info()
    dirty_suffix = "-dirty" if info.dirty else ""
    return f"{info.short_commit}{dirty_suffix} {info.date or 'unknown'}"
