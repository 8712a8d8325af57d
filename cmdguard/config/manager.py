"""Configuration manager for cmdguard."""

from typing import Dict, Any, List, Optional
from pathlib import Path
import sys

import yaml

from ..constants import (
    CONFIG_DIR, DEFAULT_TIMEOUT_MS, DEFAULT_MAX_BUFFER_BYTES, DEFAULT_HISTORY_SIZE,
    DEFAULT_CONFIRMATION_REQUIRED, DEFAULT_SHOW_OUTPUT, DEFAULT_ENABLE_DEBUG
)
from ..utils.logging import logger
from ..utils.helpers import safe_file_write
from .templates import CONFIG_TEMPLATE

# key -> default
_BOOLEAN_KEYS = {
    "confirmation_required": DEFAULT_CONFIRMATION_REQUIRED,
    "show_output": DEFAULT_SHOW_OUTPUT,
    "enable_debug": DEFAULT_ENABLE_DEBUG,
}

_POSITIVE_INT_KEYS = {
    "default_timeout_ms": DEFAULT_TIMEOUT_MS,
    "history_size": DEFAULT_HISTORY_SIZE,
    "max_buffer_bytes": DEFAULT_MAX_BUFFER_BYTES,
}

_PATTERN_LIST_KEYS = ("custom_safe_patterns", "custom_dangerous_patterns")


class ConfigManager:
    """Manages configuration loading, validation, and setup for cmdguard."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize the configuration manager.

        Args:
            config_dir: Custom configuration directory path
        """
        self.config_dir = Path(config_dir) if config_dir else CONFIG_DIR
        self.config_file = self.config_dir / "config.yaml"

        self._config: Optional[Dict[str, Any]] = None

    def initialize(self) -> bool:
        """Write the config template if needed, then load the configuration.

        Returns:
            True if initialization successful
        """
        if not self._perform_initial_setup():
            return False

        self._config = self._load_config()
        return True

    def _perform_initial_setup(self) -> bool:
        """Creates the config directory and a default config file if missing."""
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)

            if not self.config_file.exists():
                formatted_config = CONFIG_TEMPLATE.format(
                    default_timeout_ms=DEFAULT_TIMEOUT_MS,
                    history_size=DEFAULT_HISTORY_SIZE,
                    max_buffer_bytes=DEFAULT_MAX_BUFFER_BYTES,
                )
                if not safe_file_write(self.config_file, formatted_config, "config template"):
                    return False
                logger.system(f"Default configuration written to: {self.config_file}")

            return True

        except OSError as e:
            logger.error(f"Failed during initial setup: {e}")
            return False

    def _load_config(self) -> Dict[str, Any]:
        """Load and validate the configuration file."""
        try:
            with open(self.config_file, 'r') as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Error parsing YAML file {self.config_file}: {e}")
            sys.exit(1)
        except IOError as e:
            logger.error(f"Could not read {self.config_file}: {e}")
            sys.exit(1)

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            logger.error(f"{self.config_file} is not a valid YAML dictionary.")
            sys.exit(1)

        # Booleans fall back to their defaults
        for key, default in _BOOLEAN_KEYS.items():
            value = config_data.get(key, default)
            if not isinstance(value, bool):
                logger.warning(f"{key} in {self.config_file} must be true/false. Defaulting to {str(default).lower()}.")
                value = default
            config_data[key] = value

        for key, default in _POSITIVE_INT_KEYS.items():
            value = config_data.get(key, default)
            if value is None:
                value = default
            if isinstance(value, bool) or not (isinstance(value, int) and value > 0):
                logger.error(f"{key} ('{value}') in {self.config_file} must be a positive integer.")
                sys.exit(1)
            config_data[key] = value

        for key in _PATTERN_LIST_KEYS:
            value = config_data.get(key) or []
            if not isinstance(value, list):
                logger.error(f"'{key}' in {self.config_file} must be a list of strings.")
                sys.exit(1)
            config_data[key] = [str(item) for item in value if item is not None]
            logger.debug(f"Loaded {len(config_data[key])} {key}.")

        working_directory = config_data.get("working_directory")
        if working_directory is not None:
            working_directory = Path(str(working_directory)).expanduser()
            if not working_directory.is_dir():
                logger.error(f"working_directory '{working_directory}' in {self.config_file} is not a directory.")
                sys.exit(1)
            working_directory = str(working_directory)
        config_data["working_directory"] = working_directory

        history_file = config_data.get("history_file") or "history.json"
        if not isinstance(history_file, str):
            logger.error(f"history_file in {self.config_file} must be a path string.")
            sys.exit(1)
        config_data["history_file"] = history_file

        logger.debug(f"Configuration loaded successfully from {self.config_file}")
        return config_data

    @property
    def config(self) -> Dict[str, Any]:
        """Get the current configuration."""
        if self._config is None:
            raise RuntimeError("Configuration not loaded. Call initialize() first.")
        return self._config.copy()

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        if self._config is None:
            raise RuntimeError("Configuration not loaded. Call initialize() first.")
        return self._config.get(key, default)

    def reload(self) -> None:
        """Reload the configuration from disk."""
        self._config = self._load_config()

    def is_initialized(self) -> bool:
        """Check if the configuration has been initialized."""
        return self._config is not None

    @property
    def history_path(self) -> Path:
        """Absolute path of the history file."""
        history_file = Path(self.get("history_file")).expanduser()
        return history_file if history_file.is_absolute() else self.config_dir / history_file

    @property
    def custom_safe_patterns(self) -> List[str]:
        return list(self.get("custom_safe_patterns", []))

    @property
    def custom_dangerous_patterns(self) -> List[str]:
        return list(self.get("custom_dangerous_patterns", []))


def create_config_manager(config_dir: Optional[Path] = None) -> ConfigManager:
    """Create and initialize a configuration manager.

    Args:
        config_dir: Custom configuration directory path

    Returns:
        Initialized ConfigManager instance
    """
    manager = ConfigManager(config_dir)
    if not manager.initialize():
        logger.error(f"Could not set up configuration in {manager.config_dir}.")
        sys.exit(1)
    return manager
