"""
Closed set of MCP tool identifiers exposed by the Flink server.

Each member's value is the name under which the tool is registered with FastMCP. The
server's tool table is keyed by these values, so adding a tool means adding a member here
and registering a handler for it.
"""

import enum

__all__ = ["ToolName"]


class ToolName(str, enum.Enum):
    """Identifiers of every tool the server registers."""

    MCP_RELOAD = "mcp_reload"
    """Reload configuration and rebuild the Flink client."""

    FLINK_STATEMENT_CREATE = "flink_statement_create"
    """Submit a named statement without waiting for it."""

    FLINK_STATEMENT_READ = "flink_statement_read"
    """Page through the results of an existing statement."""

    FLINK_STATEMENT_DELETE = "flink_statement_delete"
    """Delete a statement."""

    FLINK_STATEMENTS_LIST = "flink_statements_list"
    """List statements in an environment."""

    FLINK_STATEMENT_EXCEPTIONS = "flink_statement_exceptions"
    """Fetch the most recent exceptions of a statement."""

    FLINK_STATEMENT_HEALTH = "flink_statement_health"
    """Summarize a statement's health from its phase and recent exceptions."""

    FLINK_SQL_EXECUTE = "flink_sql_execute"
    """Run a bounded query end to end and return every row."""

    FLINK_CATALOGS_LIST = "flink_catalogs_list"
    """List catalogs (environments)."""

    FLINK_DATABASES_LIST = "flink_databases_list"
    """List databases (Kafka clusters) in a catalog."""

    FLINK_TABLE_DESCRIBE = "flink_table_describe"
    """Describe the columns of a table."""

    FLINK_TABLE_INFO = "flink_table_info"
    """Show table type, watermark, and distribution metadata."""
