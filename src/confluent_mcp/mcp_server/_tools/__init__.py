"""
Flink MCP Server Tools Package.

This package contains the implementation of all Flink MCP tools organized by functional
area. Each module registers its tools under a `ToolName` with the FastMCP server
instance on import.

Modules:
    mcp_server: Server infrastructure, tool registration, and configuration reload
    tool_names: The closed set of tool identifiers
    statements: Statement lifecycle and end-to-end query execution
    catalog: INFORMATION_SCHEMA discovery of catalogs, databases, and tables
    shared: Internal utility functions (not MCP tools)

All MCP tools follow consistent patterns:
    - Return structured dict responses with 'success' and 'error' keys
    - Never raise exceptions to the MCP layer
    - Use async/await for all I/O operations
    - Include comprehensive docstrings for AI agent consumption
"""
