"""
Configuration handling specific to the Confluent Cloud Flink connection.

This module provides validation and redaction for the `flink` configuration section, and
builds the typed `FlinkSettings` view consumed by the statement execution engine.

Every field of the `flink` section is optional. A field missing from the configuration
file falls back to the conventional Confluent Flink environment variable
(for example `FLINK_ENV_ID` for `environment_id`), so a deployment can be driven
entirely from the environment.

Key Features:
- Type validation for all configuration fields
- Mutual exclusivity checks (e.g., api_key vs api_key_env_var)
- Prefix validation for stable Confluent identifiers (env-, lfcp-)
- Numeric range validation (positive timeouts, intervals, and lengths)
- Sensitive data redaction for secure logging

All validation errors raise `FlinkConfigurationError` with descriptive messages.
"""

__all__ = [
    "FLINK_ENV_VARS",
    "FlinkSettings",
    "build_flink_settings",
    "redact_flink_config",
    "validate_flink_config",
]

import logging
import os
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

from confluent_mcp._exceptions import FlinkConfigurationError

_LOGGER = logging.getLogger(__name__)


_ALLOWED_FLINK_FIELDS: dict[str, type | tuple[type, ...]] = {
    "rest_endpoint": str,
    "api_key": str,
    "api_key_env_var": str,
    "api_secret": str,
    "api_secret_env_var": str,
    "organization_id": str,
    "environment_id": str,
    "compute_pool_id": str,
    "cluster_id": str,
    "statement_timeout_seconds": (int, float),
    "poll_interval_seconds": (int, float),
    "max_statement_length": int,
    "statement_name_prefix": str,
    "cleanup_on_timeout": bool,
}
"""
Dictionary of allowed `flink` configuration fields and their expected types.
Type: dict[str, type | tuple[type, ...]]
"""

_MUTUALLY_EXCLUSIVE_FIELDS: list[tuple[str, str]] = [
    ("api_key", "api_key_env_var"),
    ("api_secret", "api_secret_env_var"),
]

_REQUIRED_PREFIXES: dict[str, str] = {
    "environment_id": "env-",
    "compute_pool_id": "lfcp-",
}

_POSITIVE_NUMBER_FIELDS: list[str] = [
    "statement_timeout_seconds",
    "poll_interval_seconds",
    "max_statement_length",
]

FLINK_ENV_VARS: dict[str, str] = {
    "rest_endpoint": "FLINK_REST_ENDPOINT",
    "api_key": "FLINK_API_KEY",
    "api_secret": "FLINK_API_SECRET",
    "organization_id": "FLINK_ORG_ID",
    "environment_id": "FLINK_ENV_ID",
    "compute_pool_id": "FLINK_COMPUTE_POOL_ID",
    "cluster_id": "KAFKA_CLUSTER_ID",
}
"""
Environment variables consulted for `flink` fields absent from the configuration file.
Type: dict[str, str] mapping field name to environment variable name.
"""

_SENSITIVE_FIELDS = ("api_key", "api_secret")

DEFAULT_STATEMENT_TIMEOUT_SECONDS = 30.0
DEFAULT_POLL_INTERVAL_SECONDS = 0.5
DEFAULT_MAX_STATEMENT_LENGTH = 131072
DEFAULT_STATEMENT_NAME_PREFIX = "mcp-query"


def redact_flink_config(flink_config: dict[str, Any]) -> dict[str, Any]:
    """
    Redact sensitive fields from a `flink` configuration dictionary.

    Creates a shallow copy of the input and replaces the values of 'api_key' and
    'api_secret' with "[REDACTED]". Environment variable *names* are not secrets and
    are kept. The original dictionary is not modified.

    Args:
        flink_config (dict[str, Any]): The `flink` configuration section.

    Returns:
        dict[str, Any]: A new dictionary with sensitive fields redacted.

    Example:
        >>> redact_flink_config({"api_key": "ABC", "environment_id": "env-1"})
        {'api_key': '[REDACTED]', 'environment_id': 'env-1'}
    """
    config_copy = dict(flink_config)
    for key in _SENSITIVE_FIELDS:
        if key in config_copy and config_copy[key]:
            config_copy[key] = "[REDACTED]"  # noqa: S105
    return config_copy


def validate_flink_config(flink_config: Any | None) -> None:
    """
    Validate the `flink` part of the configuration, if present.

    If `flink_config` is None (the key was absent), this function does nothing.

    Args:
        flink_config (dict[str, Any] | None): The `flink` configuration section.

    Raises:
        FlinkConfigurationError: If the section is not a dict, contains unknown fields,
            has fields of the wrong type, sets mutually exclusive fields together, uses an
            identifier without its required prefix, has a non-positive number, or has a
            malformed rest_endpoint URL.
    """
    if flink_config is None:
        return

    if not isinstance(flink_config, dict):
        raise FlinkConfigurationError(
            "'flink' must be a dictionary in configuration"
        )

    for field_name, field_value in flink_config.items():
        if field_name not in _ALLOWED_FLINK_FIELDS:
            raise FlinkConfigurationError(
                f"Unknown field '{field_name}' in flink config"
            )
        expected_type = _ALLOWED_FLINK_FIELDS[field_name]
        # bool is an int subclass; numeric fields must not accept True/False
        if isinstance(field_value, bool) and expected_type is not bool:
            raise FlinkConfigurationError(
                f"Field '{field_name}' in flink config must be of type {_type_name(expected_type)}, got bool"
            )
        if not isinstance(field_value, expected_type):
            raise FlinkConfigurationError(
                f"Field '{field_name}' in flink config must be of type {_type_name(expected_type)}, got {type(field_value).__name__}"
            )

    for first, second in _MUTUALLY_EXCLUSIVE_FIELDS:
        if first in flink_config and second in flink_config:
            raise FlinkConfigurationError(
                f"In flink config, '{first}' and '{second}' are mutually exclusive"
            )

    _validate_settings_values(flink_config)


def _validate_settings_values(values: dict[str, Any]) -> None:
    """Check prefixes, numeric ranges, and URL shape for fields that are present."""
    for field_name, prefix in _REQUIRED_PREFIXES.items():
        value = values.get(field_name)
        if value is not None and not value.startswith(prefix):
            raise FlinkConfigurationError(
                f"Field '{field_name}' in flink config must start with '{prefix}', got '{value}'"
            )

    for field_name in _POSITIVE_NUMBER_FIELDS:
        value = values.get(field_name)
        if value is not None and value <= 0:
            raise FlinkConfigurationError(
                f"Field '{field_name}' in flink config must be positive, got {value}"
            )

    endpoint = values.get("rest_endpoint")
    if endpoint is not None:
        parsed = urlparse(endpoint)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise FlinkConfigurationError(
                f"Field 'rest_endpoint' in flink config must be an http(s) URL, got '{endpoint}'"
            )


def _type_name(expected_type: type | tuple[type, ...]) -> str:
    if isinstance(expected_type, tuple):
        return " or ".join(t.__name__ for t in expected_type)
    return expected_type.__name__


@dataclass(frozen=True)
class FlinkSettings:
    """Resolved, typed Flink connection settings.

    Built by `build_flink_settings` from the validated `flink` configuration section
    merged with environment variable fallbacks.

    Attributes:
        rest_endpoint: Base URL of the Flink REST API (e.g. https://flink.us-east-1.aws.confluent.cloud).
        api_key: Flink API key used for HTTP Basic authentication.
        api_secret: Flink API secret paired with api_key.
        organization_id: Default organization ID.
        environment_id: Default environment ID (env-...). Also the default catalog.
        compute_pool_id: Default compute pool ID (lfcp-...).
        cluster_id: Default Kafka cluster ID (lkc-...). Also the default database.
        statement_timeout_seconds: Overall deadline for one statement execution.
        poll_interval_seconds: Wait between two status polls.
        max_statement_length: Maximum accepted SQL text length in characters.
        statement_name_prefix: Prefix of generated statement names.
        cleanup_on_timeout: Whether to delete a statement whose execution timed out.
    """

    rest_endpoint: str | None = None
    api_key: str | None = None
    api_secret: str | None = None
    organization_id: str | None = None
    environment_id: str | None = None
    compute_pool_id: str | None = None
    cluster_id: str | None = None
    statement_timeout_seconds: float = DEFAULT_STATEMENT_TIMEOUT_SECONDS
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    max_statement_length: int = DEFAULT_MAX_STATEMENT_LENGTH
    statement_name_prefix: str = DEFAULT_STATEMENT_NAME_PREFIX
    cleanup_on_timeout: bool = False

    def __repr__(self) -> str:
        secret = "[REDACTED]" if self.api_secret else None
        key = "[REDACTED]" if self.api_key else None
        return (
            f"FlinkSettings(rest_endpoint={self.rest_endpoint!r}, api_key={key!r}, "
            f"api_secret={secret!r}, organization_id={self.organization_id!r}, "
            f"environment_id={self.environment_id!r}, compute_pool_id={self.compute_pool_id!r}, "
            f"cluster_id={self.cluster_id!r}, statement_timeout_seconds={self.statement_timeout_seconds}, "
            f"poll_interval_seconds={self.poll_interval_seconds}, "
            f"max_statement_length={self.max_statement_length}, "
            f"statement_name_prefix={self.statement_name_prefix!r}, "
            f"cleanup_on_timeout={self.cleanup_on_timeout})"
        )


def _read_env(var_name: str) -> str | None:
    value = os.environ.get(var_name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def build_flink_settings(config: dict[str, Any]) -> FlinkSettings:
    """
    Build `FlinkSettings` from a validated configuration dictionary.

    Resolution order for each connection field:
        1. The value in the `flink` configuration section.
        2. For credentials, the environment variable named by `api_key_env_var` /
           `api_secret_env_var`.
        3. The environment variable listed in FLINK_ENV_VARS.

    Values taken from the environment are validated with the same prefix and URL rules
    as the configuration file.

    Args:
        config (dict[str, Any]): The full, validated configuration dictionary.

    Returns:
        FlinkSettings: The resolved settings.

    Raises:
        FlinkConfigurationError: If an environment-derived value is invalid, or a named
            credential environment variable is not set.
    """
    flink_config: dict[str, Any] = config.get("flink") or {}
    values: dict[str, Any] = {}

    for field_name in ("api_key", "api_secret"):
        env_var_name = flink_config.get(f"{field_name}_env_var")
        if env_var_name is not None:
            value = _read_env(env_var_name)
            if value is None:
                raise FlinkConfigurationError(
                    f"Environment variable '{env_var_name}' named by 'flink.{field_name}_env_var' is not set"
                )
            _LOGGER.debug(
                f"[config:build_flink_settings] Using '{env_var_name}' for flink.{field_name}"
            )
            values[field_name] = value

    for field_name, env_var_name in FLINK_ENV_VARS.items():
        if field_name in values:
            continue
        if field_name in flink_config:
            values[field_name] = flink_config[field_name]
            continue
        value = _read_env(env_var_name)
        if value is not None:
            _LOGGER.debug(
                f"[config:build_flink_settings] Using environment variable {env_var_name} for flink.{field_name}"
            )
            values[field_name] = value

    for field_name in (
        "statement_timeout_seconds",
        "poll_interval_seconds",
        "max_statement_length",
        "statement_name_prefix",
        "cleanup_on_timeout",
    ):
        if field_name in flink_config:
            values[field_name] = flink_config[field_name]

    _validate_settings_values(values)
    if "rest_endpoint" in values:
        values["rest_endpoint"] = values["rest_endpoint"].rstrip("/")

    settings = FlinkSettings(**values)
    _LOGGER.info(f"[config:build_flink_settings] Resolved {settings!r}")
    return settings
