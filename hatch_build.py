"""Hatchling build hook embedding git build info into the package."""

from __future__ import annotations

import importlib.util
from pathlib import Path
from typing import Any

from hatchling.builders.hooks.plugin.interface import BuildHookInterface


def _load_writer(root: Path):
    spec = importlib.util.spec_from_file_location(
        "write_build_info", root / "build_tools" / "write_build_info.py"
    )
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class CustomBuildHook(BuildHookInterface):
    def initialize(self, version: str, build_data: dict[str, Any]) -> None:
        writer = _load_writer(Path(self.root))
        writer.write_build_info(Path(self.root))
        build_data.setdefault("artifacts", []).append(writer.TARGET)
