"""
Catalog MCP Tools - Flink INFORMATION_SCHEMA discovery.

Provides MCP tools for discovering what Flink SQL can query:
- flink_catalogs_list: List catalogs (Confluent Cloud environments)
- flink_databases_list: List databases (Kafka clusters) in a catalog
- flink_table_describe: Describe the visible columns of a table
- flink_table_info: Show table type, watermark, and distribution metadata

Every tool runs a fully qualified INFORMATION_SCHEMA query through the statement session
and returns keyed records. The catalog is always an environment ID (env-xxxxx), taken
from the argument or FLINK_ENV_ID.
"""

import logging
from typing import Any

from mcp.server.fastmcp import Context

from confluent_mcp.flink import ExecutionScope, StatementSession, rows_as_records
from confluent_mcp.flink._sql import (
    catalogs_query,
    columns_query,
    schemata_query,
    tables_query,
)
from confluent_mcp.mcp_server._tools.mcp_server import register_tool
from confluent_mcp.mcp_server._tools.shared import (
    _error_response,
    _get_flink_services,
    _resolve_catalog,
    _resolve_scope,
)
from confluent_mcp.mcp_server._tools.tool_names import ToolName

_LOGGER = logging.getLogger(__name__)


async def _query_records(
    session: StatementSession, sql: str, scope: ExecutionScope, what: str
) -> list[dict[str, Any]]:
    """
    Run a metadata query and return its rows as keyed records.

    Raises:
        RuntimeError: 'Failed to <what>: <error>' when the query does not succeed.
    """
    outcome = await session.run_metadata_query(sql, scope)
    if not outcome.success:
        raise RuntimeError(f"Failed to {what}: {outcome.error}")
    return rows_as_records(outcome.data or (), outcome.columns)


async def _schema_name(
    session: StatementSession,
    catalog: str,
    database_name: str | None,
    scope: ExecutionScope,
) -> str | None:
    database = session.resolver.resolve_database_name(database_name)
    if not database:
        return None
    mappings = await session.resolver.get_schema_mapping(session, catalog, scope)
    return session.resolver.resolve_to_schema_name(database, mappings)


@register_tool(ToolName.FLINK_CATALOGS_LIST)
async def flink_catalogs_list(
    context: Context,
    catalog_name: str | None = None,
    organization_id: str | None = None,
    environment_id: str | None = None,
    compute_pool_id: str | None = None,
) -> dict:
    """
    MCP Tool: List the Flink catalogs visible to the compute pool.

    In Confluent Cloud each environment is a catalog. Each record carries the stable
    environment ID (CATALOG_ID) and the friendly name (CATALOG_NAME).

    Args:
        context (Context): The MCP context object.
        catalog_name (str | None): Environment ID (env-xxxxx) whose INFORMATION_SCHEMA is
            queried. Defaults to FLINK_ENV_ID.
        organization_id (str | None): Organization ID. Defaults to FLINK_ORG_ID.
        environment_id (str | None): Environment ID. Defaults to FLINK_ENV_ID.
        compute_pool_id (str | None): Compute pool ID. Defaults to FLINK_COMPUTE_POOL_ID.

    Returns:
        dict: Structured result object with keys:
            - 'success' (bool): True if the catalogs were listed.
            - 'catalogs' (list[dict], optional): Records with CATALOG_ID and CATALOG_NAME.
            - 'error' (str, optional): Error message if listing failed.
            - 'isError' (bool, optional): Present and True only when success=False.
    """
    _LOGGER.info(
        f"[mcp_server:flink_catalogs_list] Invoked: catalog_name={catalog_name!r}"
    )
    try:
        services = _get_flink_services("flink_catalogs_list", context)
        scope = _resolve_scope(services, organization_id, environment_id, compute_pool_id)
        session = services.get_session()
        catalog = _resolve_catalog(session.resolver, catalog_name)
        catalogs = await _query_records(
            session, catalogs_query(catalog), scope, "list catalogs"
        )
    except Exception as e:
        return _error_response("flink_catalogs_list", e)

    _LOGGER.info(f"[mcp_server:flink_catalogs_list] Found {len(catalogs)} catalog(s)")
    return {"success": True, "catalogs": catalogs}


@register_tool(ToolName.FLINK_DATABASES_LIST)
async def flink_databases_list(
    context: Context,
    catalog_name: str | None = None,
    organization_id: str | None = None,
    environment_id: str | None = None,
    compute_pool_id: str | None = None,
) -> dict:
    """
    MCP Tool: List the databases of a Flink catalog.

    In Confluent Cloud each Kafka cluster is a database. Each record carries the stable
    cluster ID (SCHEMA_ID) and the friendly name (SCHEMA_NAME). The INFORMATION_SCHEMA
    pseudo-database is not listed.

    Args:
        context (Context): The MCP context object.
        catalog_name (str | None): Environment ID (env-xxxxx). Defaults to FLINK_ENV_ID.
        organization_id (str | None): Organization ID. Defaults to FLINK_ORG_ID.
        environment_id (str | None): Environment ID. Defaults to FLINK_ENV_ID.
        compute_pool_id (str | None): Compute pool ID. Defaults to FLINK_COMPUTE_POOL_ID.

    Returns:
        dict: Structured result object with keys:
            - 'success' (bool): True if the databases were listed.
            - 'catalog_name' (str, optional): The catalog that was queried.
            - 'databases' (list[dict], optional): Records with SCHEMA_ID and SCHEMA_NAME.
            - 'error' (str, optional): Error message if listing failed.
            - 'isError' (bool, optional): Present and True only when success=False.
    """
    _LOGGER.info(
        f"[mcp_server:flink_databases_list] Invoked: catalog_name={catalog_name!r}"
    )
    try:
        services = _get_flink_services("flink_databases_list", context)
        scope = _resolve_scope(services, organization_id, environment_id, compute_pool_id)
        session = services.get_session()
        catalog = _resolve_catalog(session.resolver, catalog_name)
        databases = await _query_records(
            session, schemata_query(catalog), scope, "list databases"
        )
    except Exception as e:
        return _error_response("flink_databases_list", e)

    _LOGGER.info(
        f"[mcp_server:flink_databases_list] Found {len(databases)} database(s) in '{catalog}'"
    )
    return {"success": True, "catalog_name": catalog, "databases": databases}


def _table_scope_label(catalog: str, schema_name: str | None, table_name: str) -> str:
    if schema_name:
        return f"'{catalog}.{schema_name}.{table_name}'"
    return f"'{table_name}' in catalog '{catalog}'"


@register_tool(ToolName.FLINK_TABLE_DESCRIBE)
async def flink_table_describe(
    context: Context,
    table_name: str,
    catalog_name: str | None = None,
    database_name: str | None = None,
    organization_id: str | None = None,
    environment_id: str | None = None,
    compute_pool_id: str | None = None,
) -> dict:
    """
    MCP Tool: Describe the columns of a Flink table.

    Returns one record per visible column with its position, data type, nullability, and
    whether it is computed or a metadata column. TABLE_SCHEMA tells which database the
    table was found in.

    AI Agent Usage:
    - Omit database_name to search every database of the catalog
    - database_name may be a cluster ID (lkc-xxxxx) or a friendly name

    Args:
        context (Context): The MCP context object.
        table_name (str): Name of the table.
        catalog_name (str | None): Environment ID (env-xxxxx). Defaults to FLINK_ENV_ID.
        database_name (str | None): Database to restrict the lookup to. Defaults to KAFKA_CLUSTER_ID.
        organization_id (str | None): Organization ID. Defaults to FLINK_ORG_ID.
        environment_id (str | None): Environment ID. Defaults to FLINK_ENV_ID.
        compute_pool_id (str | None): Compute pool ID. Defaults to FLINK_COMPUTE_POOL_ID.

    Returns:
        dict: Structured result object with keys:
            - 'success' (bool): True if the table was found.
            - 'table_name' (str, optional): The table name.
            - 'columns' (list[dict], optional): Column records ordered as returned by the service.
            - 'error' (str, optional): Error message, including when the table is not found.
            - 'isError' (bool, optional): Present and True only when success=False.
    """
    _LOGGER.info(
        f"[mcp_server:flink_table_describe] Invoked: table_name={table_name!r}, "
        f"catalog_name={catalog_name!r}, database_name={database_name!r}"
    )
    try:
        table = table_name.strip()
        if not table:
            raise ValueError("Table name must not be empty")
        services = _get_flink_services("flink_table_describe", context)
        scope = _resolve_scope(services, organization_id, environment_id, compute_pool_id)
        session = services.get_session()
        catalog = _resolve_catalog(session.resolver, catalog_name)
        schema_name = await _schema_name(session, catalog, database_name, scope)
        columns = await _query_records(
            session,
            columns_query(catalog, table, schema_name),
            scope,
            "describe table",
        )
        if not columns:
            raise LookupError(
                f"Table {_table_scope_label(catalog, schema_name, table)} not found or has no columns."
            )
    except Exception as e:
        return _error_response("flink_table_describe", e)

    return {"success": True, "table_name": table, "columns": columns}


@register_tool(ToolName.FLINK_TABLE_INFO)
async def flink_table_info(
    context: Context,
    table_name: str,
    catalog_name: str | None = None,
    database_name: str | None = None,
    organization_id: str | None = None,
    environment_id: str | None = None,
    compute_pool_id: str | None = None,
) -> dict:
    """
    MCP Tool: Show table-level metadata of a Flink table.

    Returns the INFORMATION_SCHEMA.TABLES record(s): table type, whether it accepts
    inserts, watermark column and expression, and distribution (algorithm, columns,
    bucket count).

    Args:
        context (Context): The MCP context object.
        table_name (str): Name of the table.
        catalog_name (str | None): Environment ID (env-xxxxx). Defaults to FLINK_ENV_ID.
        database_name (str | None): Database to restrict the lookup to. Defaults to KAFKA_CLUSTER_ID.
        organization_id (str | None): Organization ID. Defaults to FLINK_ORG_ID.
        environment_id (str | None): Environment ID. Defaults to FLINK_ENV_ID.
        compute_pool_id (str | None): Compute pool ID. Defaults to FLINK_COMPUTE_POOL_ID.

    Returns:
        dict: Structured result object with keys:
            - 'success' (bool): True if the table was found.
            - 'table_name' (str, optional): The table name.
            - 'tables' (list[dict], optional): One record per database containing the table.
            - 'error' (str, optional): Error message, including when the table is not found.
            - 'isError' (bool, optional): Present and True only when success=False.
    """
    _LOGGER.info(
        f"[mcp_server:flink_table_info] Invoked: table_name={table_name!r}, "
        f"catalog_name={catalog_name!r}, database_name={database_name!r}"
    )
    try:
        table = table_name.strip()
        if not table:
            raise ValueError("Table name must not be empty")
        services = _get_flink_services("flink_table_info", context)
        scope = _resolve_scope(services, organization_id, environment_id, compute_pool_id)
        session = services.get_session()
        catalog = _resolve_catalog(session.resolver, catalog_name)
        schema_name = await _schema_name(session, catalog, database_name, scope)
        tables = await _query_records(
            session,
            tables_query(catalog, table, schema_name),
            scope,
            "get table info",
        )
        if not tables:
            raise LookupError(
                f"Table {_table_scope_label(catalog, schema_name, table)} not found."
            )
    except Exception as e:
        return _error_response("flink_table_info", e)

    return {"success": True, "table_name": table, "tables": tables}
