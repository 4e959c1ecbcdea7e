"""
Confluent Cloud Flink Model Context Protocol (MCP) server.

This package exposes Confluent Cloud Flink SQL as MCP tools for AI agents. Its core is a
remote statement execution engine that submits Flink SQL statements to a compute pool,
polls them to a terminal phase under a deadline, drains their result pages, and resolves
catalog/database identifiers against the cluster's INFORMATION_SCHEMA views.

Subpackages:
    - config: Async configuration loading and validation.
    - flink: The statement execution engine and its REST client.
    - mcp_server: The FastMCP server and its tools.

To run the server, use the `confluent-mcp-flink` console script or
`confluent_mcp.mcp_server.main`.
"""

import logging

from ._version import version as __version__

__all__ = ["__version__"]

_LOGGER = logging.getLogger(__name__)
_LOGGER.addHandler(logging.NullHandler())
