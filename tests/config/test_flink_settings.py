"""Tests for confluent_mcp.config._flink (validation, redaction, and FlinkSettings)."""

import pytest

from confluent_mcp._exceptions import FlinkConfigurationError
from confluent_mcp.config._flink import (
    DEFAULT_MAX_STATEMENT_LENGTH,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_STATEMENT_NAME_PREFIX,
    DEFAULT_STATEMENT_TIMEOUT_SECONDS,
    FLINK_ENV_VARS,
    FlinkSettings,
    build_flink_settings,
    redact_flink_config,
    validate_flink_config,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in FLINK_ENV_VARS.values():
        monkeypatch.delenv(var, raising=False)


def test_validate_none_is_noop():
    validate_flink_config(None)


def test_validate_full_config():
    validate_flink_config(
        {
            "rest_endpoint": "https://flink.us-east-1.aws.confluent.cloud",
            "api_key_env_var": "MY_KEY",
            "api_secret_env_var": "MY_SECRET",
            "organization_id": "org",
            "environment_id": "env-1",
            "compute_pool_id": "lfcp-1",
            "cluster_id": "lkc-1",
            "statement_timeout_seconds": 12.5,
            "poll_interval_seconds": 1,
            "max_statement_length": 1000,
            "statement_name_prefix": "agent",
            "cleanup_on_timeout": True,
        }
    )


@pytest.mark.parametrize(
    "flink_config, message",
    [
        ("nope", "must be a dictionary"),
        ({"bogus": 1}, "Unknown field 'bogus'"),
        ({"environment_id": 5}, "must be of type str, got int"),
        ({"statement_timeout_seconds": True}, "got bool"),
        ({"cleanup_on_timeout": "yes"}, "must be of type bool"),
        ({"api_key": "k", "api_key_env_var": "K"}, "mutually exclusive"),
        ({"api_secret": "s", "api_secret_env_var": "S"}, "mutually exclusive"),
        ({"environment_id": "prod"}, "must start with 'env-'"),
        ({"compute_pool_id": "pool-1"}, "must start with 'lfcp-'"),
        ({"statement_timeout_seconds": 0}, "must be positive"),
        ({"poll_interval_seconds": -1}, "must be positive"),
        ({"max_statement_length": 0}, "must be positive"),
        ({"rest_endpoint": "flink.example.com"}, "http\\(s\\) URL"),
        ({"rest_endpoint": "ftp://flink.example.com"}, "http\\(s\\) URL"),
    ],
)
def test_validate_rejects(flink_config, message):
    with pytest.raises(FlinkConfigurationError, match=message):
        validate_flink_config(flink_config)


def test_redact_flink_config():
    original = {"api_key": "k", "api_secret": "s", "api_key_env_var": "K", "cluster_id": "lkc-1"}
    redacted = redact_flink_config(original)
    assert redacted == {
        "api_key": "[REDACTED]",
        "api_secret": "[REDACTED]",
        "api_key_env_var": "K",
        "cluster_id": "lkc-1",
    }
    assert original["api_key"] == "k"


def test_build_defaults_from_empty_config():
    settings = build_flink_settings({})
    assert settings == FlinkSettings()
    assert settings.rest_endpoint is None
    assert settings.statement_timeout_seconds == DEFAULT_STATEMENT_TIMEOUT_SECONDS
    assert settings.poll_interval_seconds == DEFAULT_POLL_INTERVAL_SECONDS
    assert settings.max_statement_length == DEFAULT_MAX_STATEMENT_LENGTH
    assert settings.statement_name_prefix == DEFAULT_STATEMENT_NAME_PREFIX
    assert settings.cleanup_on_timeout is False


def test_build_from_environment(monkeypatch):
    monkeypatch.setenv("FLINK_REST_ENDPOINT", "https://flink.example.com/")
    monkeypatch.setenv("FLINK_API_KEY", "key")
    monkeypatch.setenv("FLINK_API_SECRET", "secret")
    monkeypatch.setenv("FLINK_ORG_ID", " org-1 ")
    monkeypatch.setenv("FLINK_ENV_ID", "env-1")
    monkeypatch.setenv("FLINK_COMPUTE_POOL_ID", "lfcp-1")
    monkeypatch.setenv("KAFKA_CLUSTER_ID", "lkc-1")

    settings = build_flink_settings({})

    assert settings.rest_endpoint == "https://flink.example.com"
    assert settings.api_key == "key"
    assert settings.api_secret == "secret"
    assert settings.organization_id == "org-1"
    assert settings.environment_id == "env-1"
    assert settings.compute_pool_id == "lfcp-1"
    assert settings.cluster_id == "lkc-1"


def test_build_config_wins_over_environment(monkeypatch):
    monkeypatch.setenv("FLINK_ENV_ID", "env-from-env")
    settings = build_flink_settings({"flink": {"environment_id": "env-from-file"}})
    assert settings.environment_id == "env-from-file"


def test_build_blank_environment_is_ignored(monkeypatch):
    monkeypatch.setenv("FLINK_ENV_ID", "   ")
    assert build_flink_settings({}).environment_id is None


def test_build_named_credential_env_vars(monkeypatch):
    monkeypatch.setenv("MY_FLINK_KEY", "named-key")
    monkeypatch.setenv("MY_FLINK_SECRET", "named-secret")
    monkeypatch.setenv("FLINK_API_KEY", "default-key")
    settings = build_flink_settings(
        {
            "flink": {
                "api_key_env_var": "MY_FLINK_KEY",
                "api_secret_env_var": "MY_FLINK_SECRET",
            }
        }
    )
    assert settings.api_key == "named-key"
    assert settings.api_secret == "named-secret"


def test_build_missing_named_env_var_raises(monkeypatch):
    monkeypatch.delenv("MISSING_KEY_VAR", raising=False)
    with pytest.raises(FlinkConfigurationError, match="MISSING_KEY_VAR"):
        build_flink_settings({"flink": {"api_key_env_var": "MISSING_KEY_VAR"}})


def test_build_validates_environment_values(monkeypatch):
    monkeypatch.setenv("FLINK_COMPUTE_POOL_ID", "pool-1")
    with pytest.raises(FlinkConfigurationError, match="lfcp-"):
        build_flink_settings({})


def test_build_execution_settings():
    settings = build_flink_settings(
        {
            "flink": {
                "statement_timeout_seconds": 5,
                "poll_interval_seconds": 0.25,
                "max_statement_length": 10,
                "statement_name_prefix": "agent",
                "cleanup_on_timeout": True,
            }
        }
    )
    assert settings.statement_timeout_seconds == 5
    assert settings.poll_interval_seconds == 0.25
    assert settings.max_statement_length == 10
    assert settings.statement_name_prefix == "agent"
    assert settings.cleanup_on_timeout is True


def test_settings_repr_redacts_credentials():
    settings = FlinkSettings(api_key="KEY123", api_secret="SECRET456", environment_id="env-1")
    text = repr(settings)
    assert "KEY123" not in text
    assert "SECRET456" not in text
    assert "[REDACTED]" in text
    assert "env-1" in text


def test_settings_are_frozen():
    settings = FlinkSettings()
    with pytest.raises(AttributeError):
        settings.environment_id = "env-2"
