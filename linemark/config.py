"""Engine configuration.

Tunables are stored as JSON in the user's config directory. A missing or
unreadable file means defaults; individual invalid values are ignored.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs

from .constants import EngineConstants
from .storage import atomic_write_text

logger = logging.getLogger(__name__)


@dataclass
class EngineConfig:
    parallel_threshold: int = EngineConstants.PARALLEL_RENDER_THRESHOLD
    max_workers: Optional[int] = None
    terminal_columns: int = EngineConstants.DEFAULT_TERMINAL_COLUMNS
    live_search: bool = True


def default_config_path() -> Path:
    """Path of the config file in the platform-appropriate config directory."""
    config_dir = Path(platformdirs.user_config_dir(EngineConstants.CONFIG_APP_NAME))
    return config_dir / EngineConstants.CONFIG_FILE_NAME


def validate_setting(key: str, value: Any) -> bool:
    """Return True if ``value`` is acceptable for config field ``key``."""
    # bool is a subclass of int; keep it out of the integer settings
    if key == 'parallel_threshold':
        return isinstance(value, int) and not isinstance(value, bool) and value >= 1
    if key == 'max_workers':
        if value is None:
            return True
        return isinstance(value, int) and not isinstance(value, bool) and value >= 1
    if key == 'terminal_columns':
        return isinstance(value, int) and not isinstance(value, bool) and 20 <= value <= 1000
    if key == 'live_search':
        return isinstance(value, bool)
    return False


def config_from_dict(data: Dict[str, Any]) -> EngineConfig:
    """Build a config from parsed JSON, skipping unknown or invalid values."""
    known = {f.name for f in fields(EngineConfig)}
    values = {}
    for key, value in data.items():
        if key not in known:
            logger.warning(f"Ignoring unknown config setting {key!r}")
            continue
        if not validate_setting(key, value):
            logger.warning(f"Ignoring invalid value {value!r} for config setting {key!r}")
            continue
        values[key] = value
    return EngineConfig(**values)


def load_config(path: Optional[Path] = None) -> EngineConfig:
    """Load the engine config, falling back to defaults."""
    path = Path(path) if path is not None else default_config_path()
    if not path.exists():
        return EngineConfig()
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Could not load config from {path}: {e}")
        return EngineConfig()

    if not isinstance(data, dict):
        logger.warning("Config file has invalid format (not a dict), ignoring")
        return EngineConfig()
    return config_from_dict(data)


def save_config(config: EngineConfig, path: Optional[Path] = None) -> bool:
    """Write the config atomically (temp file + rename).

    Returns:
        True if the save succeeded, False otherwise.
    """
    path = Path(path) if path is not None else default_config_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning(f"Could not create config directory {path.parent}: {e}")
        return False

    try:
        atomic_write_text(path, json.dumps(asdict(config), indent=2))
        return True
    except OSError as e:
        logger.warning(f"Could not save config to {path}: {e}")
        return False
