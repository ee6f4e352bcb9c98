"""Configuration management for dupe-review."""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dupe_review.core.errors import ConfigError

logger = logging.getLogger(__name__)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``base`` with ``override`` merged in, recursing into dicts."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Manages review-server configuration and settings."""

    DEFAULT_CONFIG_DIR = Path.home() / ".dupe-review"
    DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"

    DEFAULT_SETTINGS: Dict[str, Any] = {
        "image_root": None,
        "groups_file": "groups.json",
        "server": {"host": "127.0.0.1", "port": 8080},
        "conversion": {
            "extensions": [".cr2"],
            "quality": 85,
            "max_side": 2048,
            "timeout_seconds": 60,
        },
        "io": {"read_timeout_seconds": 30},
        "logging": {"file": None},
    }

    def __init__(self, config_file: Optional[Path] = None):
        """
        Initialize configuration.

        Args:
            config_file: Path to a JSON config file (default: ~/.dupe-review/config.json).
                A missing file is not an error; built-in defaults are used.
        """
        self.config_file = config_file or self.DEFAULT_CONFIG_FILE
        self.settings: Dict[str, Any] = {}
        self.load()

    def load(self) -> None:
        """Load configuration from file, layered over the defaults."""
        self.settings = copy.deepcopy(self.DEFAULT_SETTINGS)
        if not self.config_file.exists():
            logger.debug(f"No config file at {self.config_file}. Using defaults.")
            return

        try:
            with open(self.config_file, "r", encoding="utf-8") as f:
                file_settings = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Invalid config file {self.config_file}: {e}") from e

        if not isinstance(file_settings, dict):
            raise ConfigError(f"Config file {self.config_file} must hold a JSON object")

        self.settings = _deep_merge(self.settings, file_settings)
        logger.debug(f"Loaded configuration from {self.config_file}")

    def save(self) -> None:
        """Save configuration to file."""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, "w", encoding="utf-8") as f:
            json.dump(self.settings, f, indent=2)
        logger.debug(f"Saved configuration to {self.config_file}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Configuration key (supports dot notation, e.g., 'server.port')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key.split(".")
        value = self.settings
        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value for this process.

        Args:
            key: Configuration key (supports dot notation)
            value: Value to set
        """
        keys = key.split(".")
        target = self.settings
        for k in keys[:-1]:
            if k not in target or not isinstance(target[k], dict):
                target[k] = {}
            target = target[k]
        target[keys[-1]] = value

    def get_image_root(self) -> str:
        """
        Get the absolute, normalized image root directory.

        Raises:
            ConfigError: If the root is unset or is not an existing directory
        """
        root = self.get("image_root")
        if not root:
            raise ConfigError("An image root directory is required (--image-root)")

        root = os.path.normpath(os.path.abspath(os.path.expanduser(str(root))))
        if not os.path.isdir(root):
            raise ConfigError(f"Image root is not a directory: {root}")
        return root

    def get_groups_file(self) -> Path:
        """Get the group-partition input file path."""
        return Path(self.get("groups_file", "groups.json")).expanduser()

    def get_log_file(self) -> Optional[Path]:
        """Get the optional log file path."""
        log_file = self.get("logging.file")
        return Path(log_file).expanduser() if log_file else None
