"""
Global app configuration for the dmp webapp backend.

Settings are resolved from (in order of priority):
1. Environment variables (DMP_BASE_PATH, DMP_PERSIST, DMP_LOG_LEVEL, DMP_PORT)
2. app_settings.json inside the config folder
3. Built-in defaults

The config folder location is determined by:
1. DMP_CONFIG environment variable
2. Default platform-specific user data directory (platformdirs)
"""

import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs

from .shared.logger import get_logger

logger = get_logger(__name__)

_APP_NAME = "dmp-webapp"
_APP_AUTHOR = "dmp"
_SETTINGS_FILE_NAME = "app_settings.json"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


@dataclass
class AppSettings:
    """Runtime settings for the backend."""

    config_dir: str
    base_path: str = "/dmp"
    persist_graphs: bool = False
    log_level: str = "INFO"
    port: int = 8000

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def spaces_dir(self) -> Path:
        """Folder holding one JSON document per space graph."""
        return Path(self.config_dir) / "spaces"

    @classmethod
    def from_dict(cls, data: Dict[str, Any], config_dir: str) -> "AppSettings":
        return cls(
            config_dir=config_dir,
            base_path=data.get("base_path", "/dmp"),
            persist_graphs=_parse_bool(data.get("persist_graphs", False)),
            log_level=str(data.get("log_level", "INFO")).upper(),
            port=int(data.get("port", 8000)),
        )


def get_config_dir() -> Path:
    """Get the config directory following priority order."""
    env_config = os.environ.get("DMP_CONFIG")
    if env_config:
        return Path(env_config)
    return Path(platformdirs.user_data_dir(_APP_NAME, _APP_AUTHOR))


def _load_settings_file(config_dir: Path) -> Dict[str, Any]:
    settings_file = config_dir / _SETTINGS_FILE_NAME
    if not settings_file.exists():
        return {}
    try:
        with open(settings_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Failed to read %s, using defaults: %s", settings_file, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring %s: expected a JSON object", settings_file)
        return {}
    return data


def load_settings(config_dir: Optional[Path] = None) -> AppSettings:
    """Build settings from the settings file overlaid with environment variables."""
    config_dir = config_dir or get_config_dir()
    data = _load_settings_file(config_dir)

    env_overrides = {
        "base_path": os.environ.get("DMP_BASE_PATH"),
        "persist_graphs": os.environ.get("DMP_PERSIST"),
        "log_level": os.environ.get("DMP_LOG_LEVEL"),
        "port": os.environ.get("DMP_PORT"),
    }
    for key, value in env_overrides.items():
        if value is not None:
            data[key] = value

    return AppSettings.from_dict(data, str(config_dir))


_settings: Optional[AppSettings] = None


def get_settings() -> AppSettings:
    """Return the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Drop cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
