"""
User configuration management for Image Finder.

Supports configuration from multiple sources (in order of priority):
1. Runtime parameters (highest priority, e.g. CLI flags)
2. Environment variables (IMAGEFINDER_*)
3. User config file (~/.imagefinder/config.json)
4. Default values from config.py (lowest priority)

Configuration file location: ~/.imagefinder/config.json
(directory overridable with IMAGEFINDER_CONFIG_DIR)

Example config.json:
{
    "default_workers": 8,
    "search_threshold": 0.8,
    "database_file": "/data/images.db",
    "slot_timeout": 60,
    "result_timeout": 30,
    "log_file": "/var/log/imagefinder.log"
}
"""

import json
import os
from pathlib import Path
from typing import Any, Optional
import logging

from .config import (
    DEFAULT_WORKERS,
    DEFAULT_SEARCH_THRESHOLD,
    DEFAULT_DB_FILE,
    SLOT_ACQUIRE_TIMEOUT,
    RESULT_QUEUE_TIMEOUT,
)

logger = logging.getLogger(__name__)


class UserConfig:
    """
    Manages user configuration from file and environment variables.

    The config file is loaded lazily and cached; call reload() to re-read it.
    """

    _instance: Optional['UserConfig'] = None
    _config_data: Optional[dict] = None

    def __new__(cls):
        """Singleton pattern to ensure one config instance."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def config_dir(self) -> Path:
        """Get the configuration directory path."""
        env_dir = os.getenv('IMAGEFINDER_CONFIG_DIR')
        if env_dir:
            return Path(env_dir)
        return Path.home() / '.imagefinder'

    @property
    def config_file_path(self) -> Path:
        """Get the configuration file path."""
        return self.config_dir / 'config.json'

    def _load_config_file(self) -> dict:
        """Load configuration from JSON file."""
        if not self.config_file_path.exists():
            return {}

        try:
            with open(self.config_file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load config file {self.config_file_path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring config file {self.config_file_path}: expected a JSON object")
            return {}
        logger.debug(f"Loaded configuration from {self.config_file_path}")
        return data

    def _get_config_data(self) -> dict:
        """Get cached config data (lazy loading)."""
        if self._config_data is None:
            self._config_data = self._load_config_file()
        return self._config_data

    def reload(self):
        """Reload configuration from file."""
        self._config_data = None

    def get(self, key: str, default: Any = None, env_var: Optional[str] = None) -> Any:
        """
        Get a configuration value with priority:
        1. Environment variable (if env_var specified)
        2. Config file
        3. Default value

        Args:
            key: Configuration key
            default: Default value if not found
            env_var: Optional environment variable name to check

        Returns:
            Configuration value
        """
        if env_var:
            env_value = os.getenv(env_var)
            if env_value is not None:
                # Numbers and booleans arrive as JSON; anything else is a plain string
                try:
                    return json.loads(env_value)
                except (json.JSONDecodeError, TypeError):
                    return env_value

        config_data = self._get_config_data()
        if key in config_data:
            return config_data[key]

        return default

    def _get_number(self, key: str, default, env_var: str, cast):
        value = self.get(key, default=default, env_var=env_var)
        try:
            return cast(value)
        except (TypeError, ValueError):
            logger.warning(f"Invalid value for {key}: {value!r}, using {default}")
            return default

    @property
    def default_workers(self) -> int:
        """Number of parallel workers for scanning and verification."""
        return self._get_number('default_workers', DEFAULT_WORKERS, 'IMAGEFINDER_WORKERS', int)

    @property
    def search_threshold(self) -> float:
        """Default pixel similarity threshold (0.0-1.0)."""
        return self._get_number(
            'search_threshold', DEFAULT_SEARCH_THRESHOLD, 'IMAGEFINDER_THRESHOLD', float
        )

    @property
    def slot_timeout(self) -> float:
        """Seconds to wait for a free worker slot."""
        return self._get_number(
            'slot_timeout', SLOT_ACQUIRE_TIMEOUT, 'IMAGEFINDER_SLOT_TIMEOUT', float
        )

    @property
    def result_timeout(self) -> float:
        """Seconds a worker waits to queue its result."""
        return self._get_number(
            'result_timeout', RESULT_QUEUE_TIMEOUT, 'IMAGEFINDER_RESULT_TIMEOUT', float
        )

    @property
    def database_file(self) -> str:
        """Path to the fingerprint database."""
        custom = self.get('database_file', env_var='IMAGEFINDER_DB')
        if custom:
            return str(custom)
        return DEFAULT_DB_FILE

    @property
    def log_file(self) -> Optional[str]:
        """Optional debug log file."""
        custom = self.get('log_file', env_var='IMAGEFINDER_LOG_FILE')
        return str(custom) if custom else None

    def create_example_config(self) -> bool:
        """Create an example configuration file."""
        example_config = {
            "_comment": "Image Finder User Configuration",
            "default_workers": DEFAULT_WORKERS,
            "search_threshold": DEFAULT_SEARCH_THRESHOLD,
            "database_file": None,
            "slot_timeout": SLOT_ACQUIRE_TIMEOUT,
            "result_timeout": RESULT_QUEUE_TIMEOUT,
            "log_file": None,
        }

        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, 'w', encoding='utf-8') as f:
                json.dump(example_config, f, indent=2)
        except OSError as e:
            logger.error(f"Failed to create example config: {e}")
            return False
        logger.info(f"Created example config file at {self.config_file_path}")
        return True


# Global instance
_user_config = UserConfig()


def get_user_config() -> UserConfig:
    """Get the global UserConfig instance."""
    return _user_config
