"""
================================================================================
Configuration Loader
================================================================================

YAML-based client configuration with environment variable override support.

Features:
    - YAML configuration loading (config/config.yaml by default)
    - Environment variable override (API_BASE_URL overrides api.base_url)
    - Dot notation path access with default values
    - Validation of the api, auth, retry and logging sections on load
    - Typed conversion of environment overrides; bad values fail loudly

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import math
import os
from pathlib import Path
from typing import Any, Dict, Optional, Type

import yaml
from loguru import logger


# Default configuration file path
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "config.yaml"

# Known sections and the type of each of their keys
CONFIG_SCHEMA: Dict[str, Dict[str, Type]] = {
    "api": {
        "base_url": str,
        "root_url": str,
        "user_agent": str,
        "timeout": float,
    },
    "auth": {
        "access_token": str,
        "token_uri": str,
        "client_id": str,
        "client_secret": str,
        "refresh_token": str,
        "cache_dir": str,
    },
    "retry": {
        "max_retries": int,
        "backoff": float,
        "max_wait": float,
    },
    "logging": {
        "level": str,
        "format": str,
        "file": str,
        "rotation": str,
        "retention": str,
    },
}

_TRUE_VALUES = ("true", "1", "yes", "on")
_FALSE_VALUES = ("false", "0", "no", "off")


class ConfigurationError(Exception):
    """Raised when configuration loading or access fails."""


class ConfigLoader:
    """
    Configuration loader with YAML and environment variable support.

    Configuration hierarchy (highest to lowest priority):
        1. Environment variables (API_BASE_URL)
        2. YAML configuration file
        3. Default values

    Usage:
        >>> config = ConfigLoader()
        >>> config.get("api.base_url", "https://testing.googleapis.com/")
        'https://testing.googleapis.com/'

        >>> config.get("retry.max_retries", 3)
        3

    Environment Variable Mapping:
        - api.base_url -> API_BASE_URL
        - auth.access_token -> AUTH_ACCESS_TOKEN
        - retry.max_retries -> RETRY_MAX_RETRIES
    """

    _instance: Optional["ConfigLoader"] = None
    _config: Dict[str, Any] = {}

    def __new__(cls, config_path: Optional[Path] = None) -> "ConfigLoader":
        """Singleton pattern - configuration is loaded once per process."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: Optional[Path] = None) -> None:
        """
        Initialize configuration loader.

        Args:
            config_path: Path to YAML configuration file.
                        Uses DEFAULT_CONFIG_PATH if not specified.

        Raises:
            ConfigurationError: If the file is not valid YAML or a known
                                section holds a value of the wrong type.
        """
        if getattr(self, "_initialized", False):
            return

        self._config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        self._load_config()
        self._initialized = True

    def _load_config(self) -> None:
        """Load and validate configuration from YAML file."""
        if not self._config_path.exists():
            logger.warning(
                f"Configuration file not found: {self._config_path}. "
                f"Using defaults and environment variables only."
            )
            self._config = {}
            return

        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {e}"
            ) from e

        if not isinstance(loaded, dict):
            raise ConfigurationError(
                f"Configuration root must be a mapping, got {type(loaded).__name__}"
            )
        self._validate(loaded)
        self._config = loaded
        logger.debug(f"Loaded configuration from: {self._config_path}")

    def _validate(self, config: Dict[str, Any]) -> None:
        for section, body in config.items():
            keys = CONFIG_SCHEMA.get(section)
            if keys is None:
                logger.warning(f"Ignoring unknown configuration section: {section}")
                continue
            if body is None:
                continue
            if not isinstance(body, dict):
                raise ConfigurationError(
                    f"Configuration section '{section}' must be a mapping, "
                    f"got {type(body).__name__}"
                )
            for name, value in body.items():
                expected = keys.get(name)
                if expected is None:
                    logger.warning(f"Ignoring unknown configuration key: {section}.{name}")
                elif value is not None:
                    self._check_value(f"{section}.{name}", value, expected)

    @staticmethod
    def _check_value(key: str, value: Any, expected: Type) -> None:
        if expected is str:
            valid = isinstance(value, str)
        elif expected is int:
            valid = isinstance(value, int) and not isinstance(value, bool)
        else:
            valid = isinstance(value, (int, float)) and not isinstance(value, bool)

        if not valid:
            raise ConfigurationError(
                f"Configuration key '{key}' must be {expected.__name__}, "
                f"got {type(value).__name__}: {value!r}"
            )
        if expected is not str and (not math.isfinite(value) or value < 0):
            raise ConfigurationError(
                f"Configuration key '{key}' must be a finite, non-negative number: {value}"
            )

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation path.

        First checks environment variables, then YAML config, then default.

        Args:
            key: Dot-notation path (e.g., "api.base_url")
            default: Default value if key not found

        Returns:
            Configuration value or default

        Raises:
            ConfigurationError: If an environment override cannot be
                                converted to the key's type.
        """
        env_key = key.upper().replace(".", "_")
        env_value = os.environ.get(env_key)
        if env_value is not None:
            return self._convert_type(key, env_key, env_value, default)

        value = self._config
        for part in key.split("."):
            if isinstance(value, dict):
                value = value.get(part)
            else:
                value = None

            if value is None:
                return default

        return value

    def _convert_type(self, key: str, env_key: str, value: str, reference: Any) -> Any:
        """
        Convert an environment override to the key's type.

        The schema type wins; unknown keys follow the type of the default.
        """
        section, _, name = key.partition(".")
        expected = CONFIG_SCHEMA.get(section, {}).get(name)
        if expected is None:
            if reference is None or isinstance(reference, str):
                return value
            expected = type(reference)

        if expected not in (bool, int, float):
            return value

        if expected is bool:
            lowered = value.strip().lower()
            if lowered in _TRUE_VALUES:
                return True
            if lowered in _FALSE_VALUES:
                return False
            raise ConfigurationError(f"{env_key}={value!r} is not a boolean")

        try:
            converted = expected(value)
        except ValueError as e:
            raise ConfigurationError(
                f"{env_key}={value!r} is not a valid {expected.__name__}"
            ) from e
        self._check_value(key, converted, expected)
        return converted

    @classmethod
    def reset(cls) -> None:
        """Reset singleton instance (for testing)."""
        cls._instance = None
        cls._config = {}


__all__ = [
    "CONFIG_SCHEMA",
    "ConfigLoader",
    "ConfigurationError",
]
