"""
Statement MCP Tools - Flink SQL statement lifecycle and query execution.

Provides MCP tools for working with Flink SQL statements:
- flink_sql_execute: Run a bounded query end to end and return every row
- flink_statement_create: Submit a named statement without waiting for it
- flink_statement_read: Read the results of an existing statement
- flink_statement_delete: Delete a statement
- flink_statements_list: List statements in an environment
- flink_statement_exceptions: Fetch the most recent exceptions of a statement
- flink_statement_health: Summarize a statement's health from its phase and exceptions

Organization, environment, and compute pool arguments are optional and fall back to the
configured defaults (FLINK_ORG_ID, FLINK_ENV_ID, FLINK_COMPUTE_POOL_ID).
"""

import logging
import time
from typing import Any

from mcp.server.fastmcp import Context

from confluent_mcp._exceptions import FlinkError
from confluent_mcp.flink import Statement
from confluent_mcp.flink._models import extract_page_token
from confluent_mcp.mcp_server._tools.mcp_server import register_tool
from confluent_mcp.mcp_server._tools.shared import (
    _error_response,
    _get_flink_services,
    _resolve_location,
    _resolve_scope,
    _validate_statement_name,
)
from confluent_mcp.mcp_server._tools.tool_names import ToolName

_LOGGER = logging.getLogger(__name__)

MAX_LIST_PAGE_SIZE = 100


def _statement_summary(statement: Statement) -> dict[str, Any]:
    summary: dict[str, Any] = {
        "name": statement.name,
        "phase": statement.raw_phase,
        "compute_pool_id": statement.compute_pool_id,
        "statement": statement.sql_text,
    }
    if statement.detail:
        summary["detail"] = statement.detail
    if statement.catalog_name:
        summary["catalog_name"] = statement.catalog_name
    if statement.database_name:
        summary["database_name"] = statement.database_name
    if statement.columns is not None:
        summary["columns"] = list(statement.columns)
    return summary


@register_tool(ToolName.FLINK_SQL_EXECUTE)
async def flink_sql_execute(
    context: Context,
    sql: str,
    catalog_name: str | None = None,
    database_name: str | None = None,
    timeout_seconds: float | None = None,
    resolve_names: bool = True,
    organization_id: str | None = None,
    environment_id: str | None = None,
    compute_pool_id: str | None = None,
) -> dict:
    """
    MCP Tool: Run a bounded Flink SQL query and return all of its rows.

    Submits the statement under a generated name, waits until it completes, fails, or the
    timeout elapses, then reads every result page. The result is all-or-nothing: a query
    whose results cannot be read completely is reported as an error, never as a partial
    success.

    AI Agent Usage:
    - Use for bounded queries (SHOW, DESCRIBE, INFORMATION_SCHEMA, bounded SELECTs)
    - Do NOT use for unbounded streaming SELECTs on Kafka-backed tables; they never
      complete and end in a timeout. Use flink_statement_create + flink_statement_read instead
    - Check 'success'; on failure 'error_kind' tells which stage failed
    - A timed-out statement keeps running on the service unless cleanup is configured;
      delete it with flink_statement_delete using the returned 'statement_name'

    Args:
        context (Context): The MCP context object.
        sql (str): The Flink SQL text (at most 131072 characters by default).
        catalog_name (str | None): Catalog as an environment ID (env-xxxxx). Defaults to FLINK_ENV_ID.
        database_name (str | None): Database as a Kafka cluster ID (lkc-xxxxx) or friendly name.
            Defaults to KAFKA_CLUSTER_ID.
        timeout_seconds (float | None): Execution deadline. Defaults to the configured
            statement timeout (30 seconds).
        resolve_names (bool): Map environment and cluster IDs to their friendly names before
            executing. Default True.
        organization_id (str | None): Organization ID. Defaults to FLINK_ORG_ID.
        environment_id (str | None): Environment ID. Defaults to FLINK_ENV_ID.
        compute_pool_id (str | None): Compute pool ID. Defaults to FLINK_COMPUTE_POOL_ID.

    Returns:
        dict: Structured result object with keys:
            - 'success' (bool): True if the statement completed and all results were read.
            - 'statement_name' (str): Generated statement name.
            - 'phase' (str, optional): Last observed statement phase.
            - 'row_count' (int, optional): Number of rows returned if successful.
            - 'data' (list, optional): Result rows in order if successful.
            - 'columns' (list[str], optional): Result column names, when reported.
            - 'error' (str, optional): Error message if the execution failed.
            - 'error_kind' (str, optional): submission, poll, statement_failed, statement_stopped,
              statement_deleted, timeout, or result_read.
            - 'isError' (bool, optional): Present and True only when success=False.

    Example Successful Response:
        {'success': True, 'statement_name': 'mcp-query-m1x2y3z4-a9b8c7', 'phase': 'COMPLETED',
         'row_count': 1, 'data': [{'op': 0, 'row': ['orders']}], 'columns': ['table name']}

    Example Error Response:
        {'success': False, 'statement_name': 'mcp-query-m1x2y3z4-a9b8c7', 'phase': 'FAILED',
         'error': 'Statement failed: SQL parse failed', 'error_kind': 'statement_failed', 'isError': True}
    """
    _LOGGER.info(
        f"[mcp_server:flink_sql_execute] Invoked: catalog_name={catalog_name!r}, "
        f"database_name={database_name!r}, timeout_seconds={timeout_seconds}, resolve_names={resolve_names}"
    )
    try:
        services = _get_flink_services("flink_sql_execute", context)
        scope = _resolve_scope(services, organization_id, environment_id, compute_pool_id)
        session = services.get_session()
        outcome = await session.execute(
            sql,
            scope,
            catalog_name=catalog_name,
            database_name=database_name,
            timeout_seconds=timeout_seconds,
            resolve_names=resolve_names,
        )
    except Exception as e:
        return _error_response("flink_sql_execute", e)

    _LOGGER.info(
        f"[mcp_server:flink_sql_execute] '{outcome.statement_name}' finished: success={outcome.success}"
    )
    return outcome.to_dict()


@register_tool(ToolName.FLINK_STATEMENT_CREATE)
async def flink_statement_create(
    context: Context,
    statement: str,
    statement_name: str,
    catalog_name: str | None = None,
    database_name: str | None = None,
    organization_id: str | None = None,
    environment_id: str | None = None,
    compute_pool_id: str | None = None,
) -> dict:
    """
    MCP Tool: Submit a Flink SQL statement without waiting for it to finish.

    Use for long-running or unbounded statements (streaming SELECT, INSERT INTO ...).
    Topics in Confluent Cloud are already exposed as tables; list and describe tables
    before creating new ones.

    AI Agent Usage:
    - Follow up with flink_statement_read to sample results
    - Delete statements you no longer need with flink_statement_delete

    Args:
        context (Context): The MCP context object.
        statement (str): The Flink SQL text.
        statement_name (str): Name of the statement, unique within the environment. Lowercase
            letters, digits, '-' and '.', at most 100 characters.
        catalog_name (str | None): Catalog for the statement. Defaults to FLINK_ENV_ID.
        database_name (str | None): Database for the statement. Defaults to KAFKA_CLUSTER_ID.
        organization_id (str | None): Organization ID. Defaults to FLINK_ORG_ID.
        environment_id (str | None): Environment ID. Defaults to FLINK_ENV_ID.
        compute_pool_id (str | None): Compute pool ID. Defaults to FLINK_COMPUTE_POOL_ID.

    Returns:
        dict: Structured result object with keys:
            - 'success' (bool): True if the statement was accepted.
            - 'statement' (dict, optional): name, phase, compute_pool_id, statement, and
              catalog/database properties of the created statement.
            - 'error' (str, optional): Error message if creation failed.
            - 'isError' (bool, optional): Present and True only when success=False.
    """
    _LOGGER.info(
        f"[mcp_server:flink_statement_create] Invoked: statement_name={statement_name!r}, "
        f"catalog_name={catalog_name!r}, database_name={database_name!r}"
    )
    try:
        services = _get_flink_services("flink_statement_create", context)
        scope = _resolve_scope(services, organization_id, environment_id, compute_pool_id)
        _validate_statement_name(statement_name)
        session = services.get_session()
        session.executor.validate_sql(statement)

        properties: dict[str, str] = {}
        catalog = (catalog_name or "").strip() or services.settings.environment_id
        database = session.resolver.resolve_database_name(database_name)
        if catalog:
            properties["sql.current-catalog"] = catalog
        if database:
            properties["sql.current-database"] = database

        created = await services.client.create_statement(
            scope, statement_name, statement, properties
        )
    except Exception as e:
        return _error_response("flink_statement_create", e)

    _LOGGER.info(
        f"[mcp_server:flink_statement_create] Created statement '{created.name}' in phase {created.raw_phase}"
    )
    return {"success": True, "statement": _statement_summary(created)}


@register_tool(ToolName.FLINK_STATEMENT_READ)
async def flink_statement_read(
    context: Context,
    statement_name: str,
    timeout_seconds: float | None = None,
    organization_id: str | None = None,
    environment_id: str | None = None,
) -> dict:
    """
    MCP Tool: Read the results of an existing Flink SQL statement.

    Follows result pages until no continuation token is left. Tables backed by Kafka
    topics are never-ending streams, so to sample a streaming statement pass a timeout:
    reading stops at the first page boundary after the timeout and 'is_complete' is False.

    AI Agent Usage:
    - Always pass timeout_seconds for streaming statements
    - Check 'is_complete' before treating the rows as the full result
    - Rows are returned as the service reports them ({'op': ..., 'row': [...]}); 'columns'
      gives the column names for 'row'

    Args:
        context (Context): The MCP context object.
        statement_name (str): Name of the statement.
        timeout_seconds (float | None): Stop paging after this many seconds. None reads until
            the last page.
        organization_id (str | None): Organization ID. Defaults to FLINK_ORG_ID.
        environment_id (str | None): Environment ID. Defaults to FLINK_ENV_ID.

    Returns:
        dict: Structured result object with keys:
            - 'success' (bool): True if the results were read.
            - 'statement_name' (str, optional): The statement name.
            - 'phase' (str, optional): Statement phase when reading started.
            - 'columns' (list[str], optional): Result column names, when reported.
            - 'row_count' (int, optional): Number of rows returned.
            - 'data' (list, optional): Result rows in order.
            - 'is_complete' (bool, optional): False if reading stopped because of the timeout.
            - 'error' (str, optional): Error message if reading failed.
            - 'isError' (bool, optional): Present and True only when success=False.
    """
    _LOGGER.info(
        f"[mcp_server:flink_statement_read] Invoked: statement_name={statement_name!r}, "
        f"timeout_seconds={timeout_seconds}"
    )
    try:
        services = _get_flink_services("flink_statement_read", context)
        org, env = _resolve_location(services, organization_id, environment_id)
        _validate_statement_name(statement_name)
        if timeout_seconds is not None and timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {timeout_seconds}")

        statement = await services.client.get_statement(org, env, statement_name)
        pager = services.get_session().pager
        deadline = (
            None if timeout_seconds is None else time.monotonic() + timeout_seconds
        )

        rows: list[Any] = []
        is_complete = False
        async for page in pager.iter_pages(org, env, statement_name):
            rows.extend(page.rows)
            if page.is_last:
                is_complete = True
            elif deadline is not None and time.monotonic() >= deadline:
                _LOGGER.info(
                    f"[mcp_server:flink_statement_read] Timeout reached for '{statement_name}' "
                    f"after {len(rows)} row(s)"
                )
                break
    except Exception as e:
        return _error_response("flink_statement_read", e)

    result: dict[str, Any] = {
        "success": True,
        "statement_name": statement_name,
        "phase": statement.raw_phase,
        "row_count": len(rows),
        "data": rows,
        "is_complete": is_complete,
    }
    if statement.columns is not None:
        result["columns"] = list(statement.columns)
    return result


@register_tool(ToolName.FLINK_STATEMENT_DELETE)
async def flink_statement_delete(
    context: Context,
    statement_name: str,
    organization_id: str | None = None,
    environment_id: str | None = None,
) -> dict:
    """
    MCP Tool: Delete a Flink SQL statement.

    Stops the statement if it is running and removes it from the environment.

    Args:
        context (Context): The MCP context object.
        statement_name (str): Name of the statement to delete.
        organization_id (str | None): Organization ID. Defaults to FLINK_ORG_ID.
        environment_id (str | None): Environment ID. Defaults to FLINK_ENV_ID.

    Returns:
        dict: Structured result object with keys:
            - 'success' (bool): True if the deletion was accepted.
            - 'statement_name' (str, optional): The deleted statement.
            - 'status' (int, optional): HTTP status code of the deletion.
            - 'error' (str, optional): Error message if deletion failed.
            - 'isError' (bool, optional): Present and True only when success=False.
    """
    _LOGGER.info(
        f"[mcp_server:flink_statement_delete] Invoked: statement_name={statement_name!r}"
    )
    try:
        services = _get_flink_services("flink_statement_delete", context)
        org, env = _resolve_location(services, organization_id, environment_id)
        _validate_statement_name(statement_name)
        status = await services.client.delete_statement(org, env, statement_name)
    except Exception as e:
        return _error_response("flink_statement_delete", e)

    _LOGGER.info(
        f"[mcp_server:flink_statement_delete] Deleted '{statement_name}' (HTTP {status})"
    )
    return {"success": True, "statement_name": statement_name, "status": status}


@register_tool(ToolName.FLINK_STATEMENTS_LIST)
async def flink_statements_list(
    context: Context,
    compute_pool_id: str | None = None,
    page_size: int = 10,
    page_token: str | None = None,
    label_selector: str | None = None,
    organization_id: str | None = None,
    environment_id: str | None = None,
) -> dict:
    """
    MCP Tool: List Flink SQL statements, one page at a time.

    Args:
        context (Context): The MCP context object.
        compute_pool_id (str | None): Only list statements of this compute pool. Defaults to
            FLINK_COMPUTE_POOL_ID; when neither is set all statements are listed.
        page_size (int): Statements per page, 1 to 100. Default 10.
        page_token (str | None): Token from a previous response's 'next_page_token'.
        label_selector (str | None): Comma-separated label selector.
        organization_id (str | None): Organization ID. Defaults to FLINK_ORG_ID.
        environment_id (str | None): Environment ID. Defaults to FLINK_ENV_ID.

    Returns:
        dict: Structured result object with keys:
            - 'success' (bool): True if the page was retrieved.
            - 'statements' (list[dict], optional): Statement summaries (name, phase, compute_pool_id, ...).
            - 'next_page_token' (str | None, optional): Token for the next page; None on the last page.
            - 'error' (str, optional): Error message if listing failed.
            - 'isError' (bool, optional): Present and True only when success=False.
    """
    _LOGGER.info(
        f"[mcp_server:flink_statements_list] Invoked: compute_pool_id={compute_pool_id!r}, "
        f"page_size={page_size}, label_selector={label_selector!r}"
    )
    try:
        services = _get_flink_services("flink_statements_list", context)
        org, env = _resolve_location(services, organization_id, environment_id)
        if not 1 <= page_size <= MAX_LIST_PAGE_SIZE:
            raise ValueError(
                f"page_size must be between 1 and {MAX_LIST_PAGE_SIZE}, got {page_size}"
            )
        pool = (compute_pool_id or "").strip() or services.settings.compute_pool_id
        response = await services.client.list_statements(
            org,
            env,
            compute_pool_id=pool,
            page_size=page_size,
            page_token=page_token,
            label_selector=label_selector,
        )
    except Exception as e:
        return _error_response("flink_statements_list", e)

    statements = [
        _statement_summary(Statement.from_api(item))
        for item in response.get("data") or []
        if isinstance(item, dict)
    ]
    next_token = extract_page_token((response.get("metadata") or {}).get("next"))
    _LOGGER.info(
        f"[mcp_server:flink_statements_list] Listed {len(statements)} statement(s)"
    )
    return {"success": True, "statements": statements, "next_page_token": next_token}


@register_tool(ToolName.FLINK_STATEMENT_EXCEPTIONS)
async def flink_statement_exceptions(
    context: Context,
    statement_name: str,
    organization_id: str | None = None,
    environment_id: str | None = None,
) -> dict:
    """
    MCP Tool: Fetch the most recent exceptions raised by a Flink SQL statement.

    Use to diagnose a statement that is FAILED or misbehaving while RUNNING.

    Args:
        context (Context): The MCP context object.
        statement_name (str): Name of the statement.
        organization_id (str | None): Organization ID. Defaults to FLINK_ORG_ID.
        environment_id (str | None): Environment ID. Defaults to FLINK_ENV_ID.

    Returns:
        dict: Structured result object with keys:
            - 'success' (bool): True if the exceptions were retrieved.
            - 'statement_name' (str, optional): The statement name.
            - 'exceptions' (list[dict], optional): Exceptions, most recent first.
            - 'error' (str, optional): Error message if retrieval failed.
            - 'isError' (bool, optional): Present and True only when success=False.
    """
    _LOGGER.info(
        f"[mcp_server:flink_statement_exceptions] Invoked: statement_name={statement_name!r}"
    )
    try:
        services = _get_flink_services("flink_statement_exceptions", context)
        org, env = _resolve_location(services, organization_id, environment_id)
        _validate_statement_name(statement_name)
        exceptions = await services.client.get_statement_exceptions(
            org, env, statement_name
        )
    except Exception as e:
        return _error_response("flink_statement_exceptions", e)

    return {
        "success": True,
        "statement_name": statement_name,
        "exceptions": exceptions,
    }


def _exception_message(exception: Any) -> str | None:
    if isinstance(exception, dict) and isinstance(exception.get("message"), str):
        return exception["message"]
    return None


def _assess_health(
    phase: str, detail: str | None, exception_count: int, latest: str | None
) -> tuple[str, str]:
    """Map a statement phase and its recent exceptions to a (status, message) pair."""
    if phase == "RUNNING":
        if exception_count:
            return (
                "warning",
                f"Statement is running but has {exception_count} recent exception(s). Latest: {latest}",
            )
        return "healthy", "Statement is running normally with no recent exceptions."
    if phase == "COMPLETED":
        return "healthy", "Statement completed successfully."
    if phase == "FAILED":
        reason = detail or latest or "Check exceptions for details."
        return "critical", f"Statement failed. {reason}"
    if phase == "FAILING":
        return "critical", f"Statement is failing. {latest or 'Check exceptions for details.'}"
    if phase == "STOPPED":
        return "warning", "Statement has been stopped."
    if phase == "PENDING":
        return "warning", "Statement is pending execution."
    return "unknown", f"Statement is in {phase} state."


@register_tool(ToolName.FLINK_STATEMENT_HEALTH)
async def flink_statement_health(
    context: Context,
    statement_name: str,
    organization_id: str | None = None,
    environment_id: str | None = None,
) -> dict:
    """
    MCP Tool: Summarize the health of a Flink SQL statement.

    Combines the statement phase with its most recent exceptions into one status:
    - 'healthy': COMPLETED, or RUNNING without recent exceptions
    - 'warning': RUNNING with recent exceptions, PENDING, or STOPPED
    - 'critical': FAILED or FAILING
    - 'unknown': any other phase, or no phase reported

    The exceptions lookup is best-effort: if it fails, the status is computed as if
    there were no exceptions.

    AI Agent Usage:
    - Use as a first diagnostic step for a statement that looks stuck or broken
    - Follow up with flink_statement_exceptions for the full exception list

    Args:
        context (Context): The MCP context object.
        statement_name (str): Name of the statement.
        organization_id (str | None): Organization ID. Defaults to FLINK_ORG_ID.
        environment_id (str | None): Environment ID. Defaults to FLINK_ENV_ID.

    Returns:
        dict: Structured result object with keys:
            - 'success' (bool): True if the statement could be inspected.
            - 'statement_name' (str, optional): The statement name.
            - 'status' (str, optional): healthy, warning, critical, or unknown.
            - 'phase' (str, optional): Statement phase, 'UNKNOWN' when not reported.
            - 'message' (str, optional): Human-readable summary.
            - 'details' (dict, optional): has_exceptions, exception_count, latest_exception,
              statement_sql, compute_pool_id.
            - 'error' (str, optional): Error message if the statement could not be fetched.
            - 'isError' (bool, optional): Present and True only when success=False.

    Example Successful Response:
        {'success': True, 'statement_name': 'orders-tail', 'status': 'warning', 'phase': 'RUNNING',
         'message': 'Statement is running but has 1 recent exception(s). Latest: Deserialization failed',
         'details': {'has_exceptions': True, 'exception_count': 1,
                     'latest_exception': 'Deserialization failed',
                     'statement_sql': 'SELECT * FROM orders', 'compute_pool_id': 'lfcp-1'}}
    """
    _LOGGER.info(
        f"[mcp_server:flink_statement_health] Invoked: statement_name={statement_name!r}"
    )
    try:
        services = _get_flink_services("flink_statement_health", context)
        org, env = _resolve_location(services, organization_id, environment_id)
        _validate_statement_name(statement_name)
        statement = await services.client.get_statement(org, env, statement_name)
    except Exception as e:
        return _error_response("flink_statement_health", e)

    try:
        exceptions = await services.client.get_statement_exceptions(
            org, env, statement_name
        )
    except FlinkError as e:
        _LOGGER.warning(
            f"[mcp_server:flink_statement_health] Exceptions of '{statement_name}' unavailable: {e}"
        )
        exceptions = []

    phase = statement.raw_phase or "UNKNOWN"
    latest = _exception_message(exceptions[0]) if exceptions else None
    status, message = _assess_health(phase, statement.detail, len(exceptions), latest)
    _LOGGER.info(
        f"[mcp_server:flink_statement_health] '{statement_name}' is {status} (phase {phase})"
    )
    return {
        "success": True,
        "statement_name": statement_name,
        "status": status,
        "phase": phase,
        "message": message,
        "details": {
            "has_exceptions": bool(exceptions),
            "exception_count": len(exceptions),
            "latest_exception": latest,
            "statement_sql": statement.sql_text,
            "compute_pool_id": statement.compute_pool_id,
        },
    }
