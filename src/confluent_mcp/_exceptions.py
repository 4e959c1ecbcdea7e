"""Custom exception types for the Confluent Flink MCP server.

Defines the exception hierarchy used by configuration loading and by the Flink REST client.
Statement-level failures (a statement that FAILED, was STOPPED, timed out, ...) are NOT
exceptions: the execution engine reports them as failed `ExecutionOutcome` values so that
the calling agent can decide whether to resubmit. The exceptions below cover the layers
underneath that: invalid configuration and HTTP/transport failures.

Exception Hierarchy:
    - McpError: Base for all exceptions raised by this package.
    - InternalError (McpError, RuntimeError): Programming errors and broken invariants.
    - ConfigurationError (McpError): Invalid or missing configuration.
        - FlinkConfigurationError: Invalid `flink` configuration section.
    - FlinkError (McpError): Base for Flink REST client errors.
        - FlinkApiError: The REST API answered with a non-success HTTP status.
        - FlinkConnectionError: The REST API could not be reached.
        - FlinkResponseError: A successful response body was not a JSON object of the expected shape.

Usage Example:
    ```python
    from confluent_mcp._exceptions import FlinkApiError, FlinkConnectionError

    try:
        statement = await client.get_statement(org_id, env_id, name)
    except FlinkApiError as e:
        logger.error(f"API rejected the request ({e.status}): {e}")
    except FlinkConnectionError as e:
        logger.error(f"Flink REST endpoint unreachable: {e}")
    ```
"""

import json
from typing import Any

__all__ = [
    # Base exceptions
    "McpError",
    "InternalError",
    # Configuration exceptions
    "ConfigurationError",
    "FlinkConfigurationError",
    # Flink REST exceptions
    "FlinkError",
    "FlinkApiError",
    "FlinkConnectionError",
    "FlinkResponseError",
]


# Base Exceptions


class McpError(Exception):
    """Base exception for all Confluent Flink MCP errors.

    Allows callers to catch every error raised by this package with a single except
    clause while still keeping specific types for detailed handling.
    """

    pass


class InternalError(McpError, RuntimeError):
    """Internal errors indicating bugs in the MCP implementation.

    Raise when an internal invariant is violated, never for user or configuration
    mistakes.
    """

    pass


# Configuration Exceptions


class ConfigurationError(McpError):
    """Base exception for configuration loading and validation errors.

    Raised when the configuration file cannot be read, is not valid JSON, or contains
    unknown top-level keys.
    """

    pass


class FlinkConfigurationError(ConfigurationError):
    """Raised when the `flink` configuration section is invalid.

    Examples include wrong field types, unknown fields, mutually exclusive credential
    fields, or identifiers without their required prefix (`env-`, `lfcp-`).
    """

    pass


# Flink REST Exceptions


class FlinkError(McpError):
    """Base exception for Flink REST client errors."""

    pass


class FlinkApiError(FlinkError):
    """Raised when the Flink REST API answers with a non-success HTTP status.

    Attributes:
        status (int): The HTTP status code.
        body (Any): The decoded JSON error body, or the raw text when the body was not JSON.
        method (str): The HTTP method of the failed request.
        path (str): The request path of the failed request.
    """

    def __init__(self, status: int, body: Any, method: str = "", path: str = ""):
        """Initialize the exception.

        Args:
            status (int): The HTTP status code.
            body (Any): The decoded error body.
            method (str): The HTTP method of the failed request.
            path (str): The request path of the failed request.
        """
        self.status = status
        self.body = body
        self.method = method
        self.path = path
        super().__init__(self.describe())

    def describe(self) -> str:
        """Return a compact, human-readable description of the API error.

        The body is rendered as JSON when possible so agents see the server's own
        error structure (`errors[].detail`, ...).

        Returns:
            str: The status code followed by the rendered body.
        """
        if isinstance(self.body, str):
            rendered = self.body
        else:
            try:
                rendered = json.dumps(self.body)
            except (TypeError, ValueError):
                rendered = repr(self.body)
        return f"HTTP {self.status}: {rendered}"


class FlinkConnectionError(FlinkError):
    """Raised when the Flink REST API cannot be reached.

    Wraps transport-level failures such as DNS errors, refused connections, and
    request timeouts.
    """

    pass


class FlinkResponseError(FlinkError):
    """Raised when a successful Flink REST response does not have the expected shape.

    Gateways and proxies can answer with a 2xx status and an HTML or plain-text body;
    statement endpoints always return JSON objects.

    Attributes:
        body (Any): The decoded body that was rejected.
    """

    def __init__(self, message: str, body: Any = None):
        """Initialize the exception.

        Args:
            message (str): Description of the unexpected response.
            body (Any): The decoded body that was rejected.
        """
        super().__init__(message)
        self.body = body
