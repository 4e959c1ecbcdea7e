"""
Tests for confluent_mcp.mcp_server._tools.mcp_server.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from conftest import MockContext

import confluent_mcp.mcp_server as mcp_server_pkg
from confluent_mcp.mcp_server._tools import mcp_server as server_mod
from confluent_mcp.mcp_server._tools.mcp_server import (
    TOOL_HANDLERS,
    app_lifespan,
    mcp_reload,
    register_tool,
)
from confluent_mcp.mcp_server._tools.tool_names import ToolName


def test_every_tool_name_has_a_handler():
    assert set(TOOL_HANDLERS) == set(ToolName)
    assert mcp_server_pkg.TOOL_HANDLERS is TOOL_HANDLERS


def test_tool_handlers_are_registered_under_enum_values():
    for tool_name, handler in TOOL_HANDLERS.items():
        assert handler.__name__ == tool_name.value


def test_server_name():
    assert mcp_server_pkg.mcp_server.name == "confluent-mcp-flink"


def test_register_tool_rejects_duplicates():
    async def another(context):
        return {}

    with pytest.raises(ValueError, match="already registered"):
        register_tool(ToolName.FLINK_SQL_EXECUTE)(another)


@pytest.mark.asyncio
async def test_app_lifespan_yields_context_and_closes():
    config_manager = MagicMock()
    config_manager.get_config = AsyncMock(return_value={})
    services = MagicMock()
    services.initialize = AsyncMock()
    services.close = AsyncMock()
    server = MagicMock()
    server.name = "test-server"

    with (
        patch.object(server_mod, "ConfigManager", return_value=config_manager),
        patch.object(server_mod, "FlinkServices", return_value=services),
    ):
        async with app_lifespan(server) as context:
            assert context["config_manager"] is config_manager
            assert context["flink_services"] is services
            assert isinstance(context["refresh_lock"], asyncio.Lock)
            services.initialize.assert_awaited_once_with(config_manager)
            services.close.assert_not_awaited()

    config_manager.get_config.assert_awaited_once()
    services.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_app_lifespan_config_error_propagates():
    config_manager = MagicMock()
    config_manager.get_config = AsyncMock(side_effect=RuntimeError("bad config"))
    server = MagicMock()
    server.name = "test-server"

    with (
        patch.object(server_mod, "ConfigManager", return_value=config_manager),
        patch.object(server_mod, "FlinkServices") as services_cls,
    ):
        with pytest.raises(RuntimeError, match="bad config"):
            async with app_lifespan(server):
                pass
    services_cls.assert_not_called()


@pytest.mark.asyncio
async def test_mcp_reload_success():
    config_manager = MagicMock()
    config_manager.clear_config_cache = AsyncMock()
    services = MagicMock()
    services.close = AsyncMock()
    services.initialize = AsyncMock()
    context = MockContext(
        {
            "config_manager": config_manager,
            "flink_services": services,
            "refresh_lock": asyncio.Lock(),
        }
    )

    result = await mcp_reload(context)

    assert result == {"success": True}
    config_manager.clear_config_cache.assert_awaited_once()
    services.close.assert_awaited_once()
    services.initialize.assert_awaited_once_with(config_manager)


@pytest.mark.asyncio
async def test_mcp_reload_missing_context_keys():
    config_manager = MagicMock()
    config_manager.clear_config_cache = AsyncMock()
    context = MockContext(
        {"config_manager": config_manager, "refresh_lock": asyncio.Lock()}
    )
    result = await mcp_reload(context)
    assert result["success"] is False
    assert result["isError"] is True
    assert "flink_services" in result["error"]


@pytest.mark.asyncio
async def test_mcp_reload_initialize_error():
    config_manager = MagicMock()
    config_manager.clear_config_cache = AsyncMock()
    services = MagicMock()
    services.close = AsyncMock()
    services.initialize = AsyncMock(side_effect=Exception("invalid flink config"))
    context = MockContext(
        {
            "config_manager": config_manager,
            "flink_services": services,
            "refresh_lock": asyncio.Lock(),
        }
    )
    result = await mcp_reload(context)
    assert result == {"success": False, "error": "invalid flink config", "isError": True}
