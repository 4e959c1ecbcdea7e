"""
Async configuration management for the Confluent Flink MCP server.

This module provides async functions to load, validate, and manage configuration from an
optional JSON file. The file is named by the CONFLUENT_MCP_CONFIG_FILE environment variable
and read with native async file I/O (aiofiles). When the variable is not set, the
configuration is empty and every Flink setting comes from the process environment
(see `confluent_mcp.config._flink.FLINK_ENV_VARS`).

Features:
    - Coroutine-safe, cached loading of configuration using asyncio.Lock.
    - Strict validation of configuration structure and values.
    - Typed `FlinkSettings` view with environment variable fallbacks.
    - Logging of configuration loading with secrets redacted.

Configuration Schema:
---------------------
The configuration file must be a JSON object. It may contain the following top-level key:

  - `flink` (dict, optional): Connection settings and execution defaults.
        - `rest_endpoint` (str): Base URL of the Flink REST API.
        - `api_key` / `api_key_env_var` (str): Flink API key, or the environment variable holding it.
        - `api_secret` / `api_secret_env_var` (str): Flink API secret, or the environment variable holding it.
        - `organization_id` (str): Default organization ID.
        - `environment_id` (str): Default environment ID, must start with 'env-'.
        - `compute_pool_id` (str): Default compute pool ID, must start with 'lfcp-'.
        - `cluster_id` (str): Default Kafka cluster ID used as the default database.
        - `statement_timeout_seconds` (number): Deadline for one statement execution (default 30).
        - `poll_interval_seconds` (number): Wait between status polls (default 0.5).
        - `max_statement_length` (int): Maximum SQL length in characters (default 131072).
        - `statement_name_prefix` (str): Prefix of generated statement names (default 'mcp-query').
        - `cleanup_on_timeout` (bool): Delete statements that timed out (default false).

Example Valid Configuration:
----------------------------
```json
{
    "flink": {
        "rest_endpoint": "https://flink.us-east-1.aws.confluent.cloud",
        "api_key_env_var": "FLINK_API_KEY",
        "api_secret_env_var": "FLINK_API_SECRET",
        "organization_id": "b0b21724-4586-4a07-b787-d0bb5aacbf87",
        "environment_id": "env-abc123",
        "compute_pool_id": "lfcp-xyz789",
        "cluster_id": "lkc-def456",
        "statement_timeout_seconds": 45
    }
}
```

Environment Variables:
----------------------
- `CONFLUENT_MCP_CONFIG_FILE`: Optional path to the configuration JSON file.
- `FLINK_REST_ENDPOINT`, `FLINK_API_KEY`, `FLINK_API_SECRET`, `FLINK_ORG_ID`, `FLINK_ENV_ID`,
  `FLINK_COMPUTE_POOL_ID`, `KAFKA_CLUSTER_ID`: fallbacks for fields missing from the file.
"""

__all__ = [
    "ConfigManager",
    "CONFIG_ENV_VAR",
    "FLINK_ENV_VARS",
    "FlinkSettings",
    "build_flink_settings",
    "get_config_path",
    "load_and_validate_config",
    "redact_flink_config",
    "validate_config",
    "validate_flink_config",
]

import asyncio
import json
import logging
import os
from typing import Any, cast

import aiofiles

from confluent_mcp._exceptions import ConfigurationError, FlinkConfigurationError

from ._flink import (
    FLINK_ENV_VARS,
    FlinkSettings,
    build_flink_settings,
    redact_flink_config,
    validate_flink_config,
)

_LOGGER = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CONFLUENT_MCP_CONFIG_FILE"
"""
str: Name of the environment variable specifying the path to the configuration file.
"""

_ALLOWED_TOP_LEVEL_KEYS: set[str] = {"flink"}
"""Set of all allowed top-level keys in the configuration file."""


class ConfigManager:
    """
    Async configuration manager for the Confluent Flink MCP server.

    Encapsulates loading, validating, and caching the configuration, and exposes the
    typed `FlinkSettings` view.
    """

    def __init__(self) -> None:
        """
        Initialize a new ConfigManager instance.

        Sets up the internal configuration cache and an asyncio.Lock for coroutine safety.
        """
        self._cache: dict[str, Any] | None = None
        self._lock = asyncio.Lock()

    async def clear_config_cache(self) -> None:
        """
        Clear the cached configuration (coroutine-safe).

        The next configuration access reloads from disk and the environment.
        """
        _LOGGER.debug("Clearing configuration cache...")
        async with self._lock:
            self._cache = None

        _LOGGER.debug("Configuration cache cleared.")

    async def _set_config_cache(self, config: dict[str, Any]) -> None:
        """
        PRIVATE: Set the in-memory configuration cache (coroutine-safe, for testing/internal use only).

        The configuration is validated before caching.

        Args:
            config (dict[str, Any]): The configuration dictionary to cache.

        Raises:
            ConfigurationError: If the provided configuration is invalid.
        """
        async with self._lock:
            self._cache = validate_config(config)

    async def get_config(self) -> dict[str, Any]:
        """
        Load and validate the configuration (coroutine-safe, cached).

        Returns:
            dict[str, Any]: The validated configuration dictionary. Empty when
                CONFLUENT_MCP_CONFIG_FILE is not set.

        Raises:
            ConfigurationError: If the config file cannot be read, is not valid JSON,
                or fails validation.
        """
        _LOGGER.debug("Loading application configuration...")
        async with self._lock:
            if self._cache is not None:
                _LOGGER.debug("Using cached application configuration.")
                return self._cache

            config_path = get_config_path()
            if config_path is None:
                validated: dict[str, Any] = {}
            else:
                validated = await load_and_validate_config(config_path)
            self._cache = validated
            _log_config_summary(validated)
            return validated

    async def get_flink_settings(self) -> FlinkSettings:
        """
        Return the typed Flink settings for the current configuration.

        Settings are rebuilt on every call so that environment variable changes are
        picked up after `clear_config_cache()`.

        Returns:
            FlinkSettings: The resolved settings.

        Raises:
            ConfigurationError: If the configuration cannot be loaded.
            FlinkConfigurationError: If an environment-derived value is invalid.
        """
        config = await self.get_config()
        return build_flink_settings(config)


def get_config_path() -> str | None:
    """
    Retrieve the configuration file path from the environment variable.

    Returns:
        str | None: The path named by CONFLUENT_MCP_CONFIG_FILE, or None if the variable
            is not set (environment-only configuration).
    """
    config_path = os.environ.get(CONFIG_ENV_VAR)
    if not config_path:
        _LOGGER.info(
            f"Environment variable {CONFIG_ENV_VAR} is not set; using environment-only configuration."
        )
        return None
    _LOGGER.info(f"Environment variable {CONFIG_ENV_VAR} is set to: {config_path}")
    return config_path


async def _load_config_from_file(config_path: str) -> dict[str, Any]:
    """
    Load and parse the configuration from a JSON file asynchronously.

    Args:
        config_path (str): The file path to the configuration JSON file.

    Returns:
        dict[str, Any]: The parsed configuration.

    Raises:
        ConfigurationError: If the file is not found, cannot be read, or is not valid JSON.
    """
    try:
        async with aiofiles.open(config_path) as f:
            content = await f.read()
        return cast(dict[str, Any], json.loads(content))
    except FileNotFoundError:
        _LOGGER.error(f"Configuration file not found: {config_path}")
        raise ConfigurationError(
            f"Configuration file not found: {config_path}"
        ) from None
    except PermissionError:
        _LOGGER.error(
            f"Permission denied when trying to read configuration file: {config_path}"
        )
        raise ConfigurationError(
            f"Permission denied when trying to read configuration file: {config_path}"
        ) from None
    except json.JSONDecodeError as e:
        _LOGGER.error(f"Invalid JSON in configuration file {config_path}: {e}")
        raise ConfigurationError(
            f"Invalid JSON in configuration file {config_path}: {e}"
        ) from e


async def load_and_validate_config(config_path: str) -> dict[str, Any]:
    """
    Load and validate the configuration from a JSON file.

    Args:
        config_path (str): The path to the configuration JSON file.

    Returns:
        dict[str, Any]: The loaded and validated configuration dictionary.

    Raises:
        ConfigurationError: If the file cannot be read, is not valid JSON, or fails validation.
    """
    data = await _load_config_from_file(config_path)
    try:
        return validate_config(data)
    except FlinkConfigurationError as e:
        _LOGGER.error(f"Configuration validation failed for {config_path}: {e}")
        raise
    except ConfigurationError as e:
        _LOGGER.error(f"General configuration validation error for {config_path}: {e}")
        raise


def _log_config_summary(config: dict[str, Any]) -> None:
    """Log the (redacted) `flink` section of the loaded configuration."""
    flink_config = config.get("flink")
    if flink_config:
        _LOGGER.info(f"Configured Flink settings: {redact_flink_config(flink_config)}")
    else:
        _LOGGER.info(
            "No 'flink' section configured; settings come from environment variables."
        )


def validate_config(config: dict[str, Any]) -> dict[str, Any]:
    """
    Validate the application configuration dictionary.

    Validation Rules:
        - The configuration must be a JSON object.
        - Only the 'flink' top-level key is allowed.
        - The 'flink' section is validated by `validate_flink_config`.

    Args:
        config (dict[str, Any]): The configuration dictionary to validate.

    Returns:
        dict[str, Any]: The validated configuration dictionary.

    Raises:
        ConfigurationError: If the configuration is not a dict or has unknown top-level keys.
        FlinkConfigurationError: If the 'flink' section is invalid.

    Example:
        >>> validate_config({"flink": {"environment_id": "env-123"}})
        {'flink': {'environment_id': 'env-123'}}
    """
    if not isinstance(config, dict):
        _LOGGER.error("Configuration must be a JSON object")
        raise ConfigurationError("Configuration must be a JSON object")

    unknown_keys = set(config.keys()) - _ALLOWED_TOP_LEVEL_KEYS
    if unknown_keys:
        _LOGGER.error(f"Unknown top-level keys in configuration: {unknown_keys}")
        raise ConfigurationError(
            f"Unknown top-level keys in configuration: {unknown_keys}"
        )

    validate_flink_config(config.get("flink"))

    _LOGGER.info("Configuration validation passed.")
    return config
