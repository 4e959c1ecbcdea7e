"""
MCP Server Infrastructure - FastMCP Server Instance and Configuration Management.

Provides core MCP server infrastructure:
- mcp_server: The FastMCP server instance with registered tools
- app_lifespan: Application lifecycle manager for resource cleanup
- register_tool: Decorator that registers a handler under its ToolName
- mcp_reload: Tool to reload server configuration without restart

This module initializes the MCP server; the tool modules register themselves on import.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from mcp.server.fastmcp import Context, FastMCP

from confluent_mcp.config import ConfigManager
from confluent_mcp.flink import FlinkServices
from confluent_mcp.mcp_server._tools.tool_names import ToolName

_LOGGER = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

TOOL_HANDLERS: dict[ToolName, Callable[..., Any]] = {}
"""Registered handler for every ToolName, in registration order."""


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[dict[str, object]]:
    """
    Async context manager for the FastMCP server application lifespan.

    Startup Process:
      - Creates a ConfigManager and loads the configuration, so that an invalid
        configuration file stops the server before it accepts requests.
      - Creates FlinkServices, which resolves the Flink settings and builds the pooled
        REST client and statement session.
      - Creates an asyncio.Lock for coordinating reloads.

    Shutdown Process:
      - Closes the Flink REST client and its HTTP session. Statements already submitted
        keep running on the service.

    Args:
        server (FastMCP): The FastMCP server instance (required by the FastMCP lifespan API).

    Yields:
        dict[str, object]: A context dictionary for dependency injection into MCP tool requests:
            - 'config_manager' (ConfigManager): Instance for accessing configuration.
            - 'flink_services' (FlinkServices): Settings, REST client, and statement session.
            - 'refresh_lock' (asyncio.Lock): Lock for atomic reload operations across tools.
    """
    _LOGGER.info(f"[mcp_server:app_lifespan] Starting MCP server '{server.name}'")
    flink_services = None

    try:
        config_manager = ConfigManager()

        _LOGGER.info("[mcp_server:app_lifespan] Loading configuration...")
        await config_manager.get_config()
        _LOGGER.info("[mcp_server:app_lifespan] Configuration loaded.")

        flink_services = FlinkServices()
        await flink_services.initialize(config_manager)

        refresh_lock = asyncio.Lock()

        yield {
            "config_manager": config_manager,
            "flink_services": flink_services,
            "refresh_lock": refresh_lock,
        }
    finally:
        _LOGGER.info(f"[mcp_server:app_lifespan] Shutting down MCP server '{server.name}'")
        if flink_services is not None:
            await flink_services.close()
        _LOGGER.info(f"[mcp_server:app_lifespan] MCP server '{server.name}' shut down.")


mcp_server = FastMCP("confluent-mcp-flink", lifespan=app_lifespan)
"""
FastMCP Server Instance for the Confluent Flink MCP tools.

The singleton server that exposes every tool registered with `register_tool`. Do not
instantiate more than once per process.
"""


def register_tool(tool_name: ToolName) -> Callable[[F], F]:
    """
    Register a tool handler under its ToolName.

    The handler is recorded in TOOL_HANDLERS and registered with FastMCP using the enum
    value as the tool name.

    Raises:
        ValueError: If a handler is already registered for tool_name.
    """

    def decorator(func: F) -> F:
        if tool_name in TOOL_HANDLERS:
            raise ValueError(f"Tool '{tool_name.value}' is already registered")
        TOOL_HANDLERS[tool_name] = func
        mcp_server.tool(name=tool_name.value)(func)
        return func

    return decorator


@register_tool(ToolName.MCP_RELOAD)
async def mcp_reload(context: Context) -> dict:
    """
    MCP Tool: Reload configuration and rebuild the Flink client.

    Re-reads the configuration file and the FLINK_* environment variables, closes the
    current Flink REST client, and builds a new one. Statements already running on the
    service are not affected.

    AI Agent Usage:
    - Use this tool after changing the configuration file or credentials
    - Check 'success' field to verify reload completed
    - Operation is serialized: concurrent reloads run one after another

    Args:
        context (Context): The MCP context object.

    Returns:
        dict: Structured result object with the following keys:
            - 'success' (bool): True if the reload completed successfully, False otherwise.
            - 'error' (str, optional): Error message if the reload failed. Omitted on success.
            - 'isError' (bool, optional): Present and True if this is an error response.

    Example Successful Response:
        {'success': True}

    Example Error Response:
        {'success': False, 'error': 'Invalid JSON in config file ...', 'isError': True}
    """
    _LOGGER.info(
        "[mcp_server:mcp_reload] Invoked: reloading configuration and Flink client."
    )
    try:
        refresh_lock: asyncio.Lock = context.request_context.lifespan_context[
            "refresh_lock"
        ]
        config_manager: ConfigManager = context.request_context.lifespan_context[
            "config_manager"
        ]
        flink_services: FlinkServices = context.request_context.lifespan_context[
            "flink_services"
        ]

        async with refresh_lock:
            await config_manager.clear_config_cache()
            await flink_services.close()
            await flink_services.initialize(config_manager)
        _LOGGER.info(
            "[mcp_server:mcp_reload] Success: configuration and Flink client have been reloaded."
        )
        return {"success": True}
    except Exception as e:
        _LOGGER.error(
            f"[mcp_server:mcp_reload] Failed to reload configuration: {e!r}",
            exc_info=True,
        )
        return {"success": False, "error": str(e), "isError": True}
