"""
Shared Utilities - Internal Helper Functions.

Provides internal helper functions used across the MCP tool modules:
- Access to the Flink services held in the lifespan context
- Resolution of organization / environment / compute pool arguments against defaults
- Statement name and catalog validation

This module contains private helper functions not exposed as MCP tools.
"""

import logging
import re

from mcp.server.fastmcp import Context

from confluent_mcp.flink import ExecutionScope, FlinkServices, NameResolver

_LOGGER = logging.getLogger(__name__)

MAX_STATEMENT_NAME_LENGTH = 100
"""Maximum length of a user-provided statement name."""

_STATEMENT_NAME_PATTERN = re.compile(
    r"[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*"
)

CATALOG_UNRESOLVED_ERROR = (
    "Catalog name could not be resolved. Set FLINK_ENV_ID or provide a valid "
    "environment ID (env-xxxxx)."
)


def _get_flink_services(function_name: str, context: Context) -> FlinkServices:
    """
    Get the FlinkServices instance from the MCP context.

    Args:
        function_name (str): Name of calling function for logging purposes
        context (Context): The MCP context object containing lifespan context

    Returns:
        FlinkServices: The process-wide Flink services.
    """
    _LOGGER.debug(
        f"[mcp_server:{function_name}] Accessing Flink services from context"
    )
    return context.request_context.lifespan_context["flink_services"]


def _ensure_param(value: str | None, default: str | None, message: str) -> str:
    """
    Return the trimmed argument, else the configured default.

    Raises:
        ValueError: With message when neither is available.
    """
    if value is not None and value.strip():
        return value.strip()
    if default:
        return default
    raise ValueError(message)


def _resolve_location(
    services: FlinkServices,
    organization_id: str | None,
    environment_id: str | None,
) -> tuple[str, str]:
    """
    Resolve the organization and environment of a statement.

    Raises:
        ValueError: 'Organization ID is required' / 'Environment ID is required'.
    """
    settings = services.settings
    return (
        _ensure_param(
            organization_id, settings.organization_id, "Organization ID is required"
        ),
        _ensure_param(
            environment_id, settings.environment_id, "Environment ID is required"
        ),
    )


def _resolve_scope(
    services: FlinkServices,
    organization_id: str | None,
    environment_id: str | None,
    compute_pool_id: str | None,
) -> ExecutionScope:
    """
    Resolve the full execution scope of a statement.

    Raises:
        ValueError: If the organization, environment, or compute pool is missing from
            both the arguments and the configuration.
    """
    org, env = _resolve_location(services, organization_id, environment_id)
    pool = _ensure_param(
        compute_pool_id,
        services.settings.compute_pool_id,
        "Compute Pool ID is required",
    )
    return ExecutionScope(organization_id=org, environment_id=env, compute_pool_id=pool)


def _validate_statement_name(statement_name: str) -> str:
    """
    Check a user-provided statement name.

    Names are resource names: lowercase alphanumerics and '-', optionally dot-separated,
    starting and ending with an alphanumeric, at most 100 characters.

    Raises:
        ValueError: If the name is empty, too long, or malformed.
    """
    if not statement_name:
        raise ValueError("Statement name must not be empty")
    if len(statement_name) > MAX_STATEMENT_NAME_LENGTH:
        raise ValueError(
            f"Statement name must be at most {MAX_STATEMENT_NAME_LENGTH} characters"
        )
    if not _STATEMENT_NAME_PATTERN.fullmatch(statement_name):
        raise ValueError(
            f"Invalid statement name '{statement_name}': use lowercase letters, digits, '-' and '.'"
        )
    return statement_name


def _resolve_catalog(resolver: NameResolver, catalog_name: str | None) -> str:
    """
    Resolve the catalog used to qualify INFORMATION_SCHEMA views.

    Raises:
        ValueError: If no environment ID is given or configured.
    """
    catalog = resolver.resolve_catalog_name(catalog_name)
    if not catalog:
        raise ValueError(CATALOG_UNRESOLVED_ERROR)
    return catalog


def _error_response(function_name: str, e: Exception) -> dict:
    """Log a tool failure and build the standard error response."""
    _LOGGER.error(f"[mcp_server:{function_name}] Failed: {e!r}", exc_info=True)
    return {"success": False, "error": str(e), "isError": True}
