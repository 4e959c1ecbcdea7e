"""
Confluent Cloud Flink MCP Server.

This package defines the MCP tools for running and inspecting Flink SQL statements on
Confluent Cloud. All tools are registered with the FastMCP server instance `mcp_server`
and return structured dicts with 'success' and 'error' keys; they never raise to the MCP
layer.

Tools Provided:
    Configuration:
    - mcp_reload: Reload configuration and rebuild the Flink REST client.

    Statements:
    - flink_sql_execute: Run a bounded query end to end and return every row.
    - flink_statement_create: Submit a named statement without waiting for it.
    - flink_statement_read: Read the results of a statement, optionally sampling under a timeout.
    - flink_statement_delete: Delete a statement.
    - flink_statements_list: List statements, one page at a time.
    - flink_statement_exceptions: Fetch the most recent exceptions of a statement.
    - flink_statement_health: Summarize a statement's health from its phase and recent exceptions.

    Catalog Discovery:
    - flink_catalogs_list: List catalogs (environments).
    - flink_databases_list: List databases (Kafka clusters) of a catalog.
    - flink_table_describe: Describe the columns of a table.
    - flink_table_info: Show table type, watermark, and distribution metadata.

See individual tool docstrings for full argument, return, and error details.
"""

from confluent_mcp.mcp_server._tools import catalog, statements  # noqa: F401
from confluent_mcp.mcp_server._tools.mcp_server import TOOL_HANDLERS, mcp_server
from confluent_mcp.mcp_server._tools.tool_names import ToolName

__all__ = [
    "TOOL_HANDLERS",
    "ToolName",
    "mcp_server",
]
