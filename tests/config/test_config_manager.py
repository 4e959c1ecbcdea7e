"""Tests for confluent_mcp.config (file loading, validation, and caching)."""

import json
from unittest.mock import patch

import pytest

from confluent_mcp import config
from confluent_mcp._exceptions import ConfigurationError, FlinkConfigurationError
from confluent_mcp.config._flink import FLINK_ENV_VARS


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv(config.CONFIG_ENV_VAR, raising=False)
    for var in FLINK_ENV_VARS.values():
        monkeypatch.delenv(var, raising=False)


def _write_config(tmp_path, data):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data) if not isinstance(data, str) else data)
    return str(path)


def test_get_config_path_unset():
    assert config.get_config_path() is None


def test_get_config_path_set(monkeypatch):
    monkeypatch.setenv(config.CONFIG_ENV_VAR, "/tmp/flink.json")
    assert config.get_config_path() == "/tmp/flink.json"


@pytest.mark.asyncio
async def test_get_config_without_file_is_empty():
    manager = config.ConfigManager()
    assert await manager.get_config() == {}


@pytest.mark.asyncio
async def test_get_config_loads_and_caches(tmp_path, monkeypatch):
    data = {"flink": {"environment_id": "env-abc", "statement_timeout_seconds": 45}}
    monkeypatch.setenv(config.CONFIG_ENV_VAR, _write_config(tmp_path, data))
    manager = config.ConfigManager()

    first = await manager.get_config()
    assert first == data

    with patch.object(config, "load_and_validate_config") as loader:
        second = await manager.get_config()
        loader.assert_not_called()
    assert second is first


@pytest.mark.asyncio
async def test_clear_config_cache_reloads(tmp_path, monkeypatch):
    path = _write_config(tmp_path, {"flink": {"environment_id": "env-one"}})
    monkeypatch.setenv(config.CONFIG_ENV_VAR, path)
    manager = config.ConfigManager()
    assert (await manager.get_config())["flink"]["environment_id"] == "env-one"

    _write_config(tmp_path, {"flink": {"environment_id": "env-two"}})
    assert (await manager.get_config())["flink"]["environment_id"] == "env-one"

    await manager.clear_config_cache()
    assert (await manager.get_config())["flink"]["environment_id"] == "env-two"


@pytest.mark.asyncio
async def test_set_config_cache_validates():
    manager = config.ConfigManager()
    await manager._set_config_cache({"flink": {"cluster_id": "lkc-1"}})
    assert await manager.get_config() == {"flink": {"cluster_id": "lkc-1"}}

    with pytest.raises(ConfigurationError):
        await manager._set_config_cache({"kafka": {}})


@pytest.mark.asyncio
async def test_missing_file_raises(monkeypatch, tmp_path):
    monkeypatch.setenv(config.CONFIG_ENV_VAR, str(tmp_path / "missing.json"))
    with pytest.raises(ConfigurationError, match="Configuration file not found"):
        await config.ConfigManager().get_config()


@pytest.mark.asyncio
async def test_invalid_json_raises(monkeypatch, tmp_path):
    monkeypatch.setenv(config.CONFIG_ENV_VAR, _write_config(tmp_path, "{not json"))
    with pytest.raises(ConfigurationError, match="Invalid JSON"):
        await config.ConfigManager().get_config()


@pytest.mark.asyncio
async def test_permission_error_raises():
    with patch.object(config.aiofiles, "open", side_effect=PermissionError()):
        with pytest.raises(ConfigurationError, match="Permission denied"):
            await config.load_and_validate_config("/etc/flink.json")


@pytest.mark.asyncio
async def test_invalid_flink_section_raises(monkeypatch, tmp_path):
    path = _write_config(tmp_path, {"flink": {"environment_id": "abc"}})
    monkeypatch.setenv(config.CONFIG_ENV_VAR, path)
    with pytest.raises(FlinkConfigurationError, match="must start with 'env-'"):
        await config.ConfigManager().get_config()


def test_validate_config_not_a_dict():
    with pytest.raises(ConfigurationError, match="must be a JSON object"):
        config.validate_config([])


def test_validate_config_unknown_key():
    with pytest.raises(ConfigurationError, match="Unknown top-level keys"):
        config.validate_config({"flink": {}, "community": {}})


def test_validate_config_empty_is_valid():
    assert config.validate_config({}) == {}


@pytest.mark.asyncio
async def test_get_flink_settings_from_file_and_env(tmp_path, monkeypatch):
    path = _write_config(
        tmp_path,
        {
            "flink": {
                "rest_endpoint": "https://flink.example.com/",
                "environment_id": "env-file",
                "poll_interval_seconds": 1,
            }
        },
    )
    monkeypatch.setenv(config.CONFIG_ENV_VAR, path)
    monkeypatch.setenv("FLINK_ENV_ID", "env-from-env")
    monkeypatch.setenv("FLINK_ORG_ID", "org-1")

    settings = await config.ConfigManager().get_flink_settings()

    assert settings.rest_endpoint == "https://flink.example.com"
    assert settings.environment_id == "env-file"
    assert settings.organization_id == "org-1"
    assert settings.poll_interval_seconds == 1


@pytest.mark.asyncio
async def test_config_summary_redacts_secrets(tmp_path, monkeypatch, caplog):
    path = _write_config(
        tmp_path, {"flink": {"api_key": "KEY123", "api_secret": "SECRET456"}}
    )
    monkeypatch.setenv(config.CONFIG_ENV_VAR, path)
    caplog.set_level("INFO")
    await config.ConfigManager().get_config()
    assert "SECRET456" not in caplog.text
    assert "KEY123" not in caplog.text
    assert "[REDACTED]" in caplog.text
