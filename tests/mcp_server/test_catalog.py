"""
Tests for confluent_mcp.mcp_server._tools.catalog.
"""

import pytest
from conftest import create_mock_context, create_mock_flink_services

from confluent_mcp.config import FlinkSettings
from confluent_mcp.flink import ExecutionErrorKind, ExecutionOutcome, ExecutionScope
from confluent_mcp.flink._sql import (
    catalogs_query,
    columns_query,
    schemata_query,
    tables_query,
)
from confluent_mcp.mcp_server._tools.catalog import (
    flink_catalogs_list,
    flink_databases_list,
    flink_table_describe,
    flink_table_info,
)
from confluent_mcp.mcp_server._tools.shared import CATALOG_UNRESOLVED_ERROR

SCOPE = ExecutionScope(
    organization_id="org-1", environment_id="env-1", compute_pool_id="lfcp-1"
)


def _ok(columns, *rows):
    return ExecutionOutcome(
        success=True,
        statement_name="mcp-query-x",
        data=tuple({"op": 0, "row": list(r)} for r in rows),
        phase="COMPLETED",
        columns=columns,
    )


SCHEMATA = _ok(("SCHEMA_ID", "SCHEMA_NAME"), ("lkc-1", "cluster_0"))


def _no_cluster_services():
    return create_mock_flink_services(
        FlinkSettings(
            rest_endpoint="https://flink.example.com",
            organization_id="org-1",
            environment_id="env-1",
            compute_pool_id="lfcp-1",
        )
    )


@pytest.mark.asyncio
async def test_catalogs_list_success():
    context, services = create_mock_context()
    session = services.get_session()
    session.run_metadata_query.return_value = _ok(
        ("CATALOG_ID", "CATALOG_NAME"), ("env-1", "default"), ("env-2", "prod")
    )

    result = await flink_catalogs_list(context)

    assert result == {
        "success": True,
        "catalogs": [
            {"CATALOG_ID": "env-1", "CATALOG_NAME": "default"},
            {"CATALOG_ID": "env-2", "CATALOG_NAME": "prod"},
        ],
    }
    session.run_metadata_query.assert_awaited_once_with(catalogs_query("env-1"), SCOPE)


@pytest.mark.asyncio
async def test_catalogs_list_non_env_catalog_falls_back_to_default():
    context, services = create_mock_context()
    session = services.get_session()
    session.run_metadata_query.return_value = _ok(("CATALOG_ID", "CATALOG_NAME"))

    result = await flink_catalogs_list(context, catalog_name="default")

    assert result == {"success": True, "catalogs": []}
    session.run_metadata_query.assert_awaited_once_with(catalogs_query("env-1"), SCOPE)


@pytest.mark.asyncio
async def test_catalogs_list_query_failure():
    context, services = create_mock_context()
    services.get_session().run_metadata_query.return_value = ExecutionOutcome.failure(
        ExecutionErrorKind.TIMEOUT, "Statement timed out after 30s", "mcp-query-x"
    )

    result = await flink_catalogs_list(context)

    assert result == {
        "success": False,
        "error": "Failed to list catalogs: Statement timed out after 30s",
        "isError": True,
    }


@pytest.mark.asyncio
async def test_catalogs_list_unresolved_catalog():
    services = create_mock_flink_services(
        FlinkSettings(
            rest_endpoint="https://flink.example.com",
            organization_id="org-1",
            compute_pool_id="lfcp-1",
        )
    )
    context, _ = create_mock_context(services)

    result = await flink_catalogs_list(context, environment_id="env-1")

    assert result == {
        "success": False,
        "error": CATALOG_UNRESOLVED_ERROR,
        "isError": True,
    }
    services.get_session().run_metadata_query.assert_not_awaited()


@pytest.mark.asyncio
async def test_databases_list_success():
    context, services = create_mock_context()
    session = services.get_session()
    session.run_metadata_query.return_value = _ok(
        ("SCHEMA_ID", "SCHEMA_NAME"), ("lkc-1", "cluster_0")
    )

    result = await flink_databases_list(context, catalog_name="env-2")

    assert result == {
        "success": True,
        "catalog_name": "env-2",
        "databases": [{"SCHEMA_ID": "lkc-1", "SCHEMA_NAME": "cluster_0"}],
    }
    session.run_metadata_query.assert_awaited_once_with(schemata_query("env-2"), SCOPE)


@pytest.mark.asyncio
async def test_databases_list_failure():
    context, services = create_mock_context()
    services.get_session().run_metadata_query.return_value = ExecutionOutcome.failure(
        ExecutionErrorKind.STATEMENT_FAILED, "Statement failed: denied", "mcp-query-x"
    )

    result = await flink_databases_list(context)

    assert result["success"] is False
    assert result["error"] == "Failed to list databases: Statement failed: denied"


@pytest.mark.asyncio
async def test_table_describe_resolves_default_cluster_to_schema_name():
    context, services = create_mock_context()
    session = services.get_session()
    columns = _ok(
        ("TABLE_SCHEMA", "COLUMN_NAME", "DATA_TYPE"),
        ("cluster_0", "id", "INT"),
        ("cluster_0", "amount", "DOUBLE"),
    )
    session.run_metadata_query.side_effect = [SCHEMATA, columns]

    result = await flink_table_describe(context, " orders ")

    assert result == {
        "success": True,
        "table_name": "orders",
        "columns": [
            {"TABLE_SCHEMA": "cluster_0", "COLUMN_NAME": "id", "DATA_TYPE": "INT"},
            {"TABLE_SCHEMA": "cluster_0", "COLUMN_NAME": "amount", "DATA_TYPE": "DOUBLE"},
        ],
    }
    calls = session.run_metadata_query.await_args_list
    assert calls[0].args == (schemata_query("env-1"), SCOPE)
    assert calls[1].args == (columns_query("env-1", "orders", "cluster_0"), SCOPE)


@pytest.mark.asyncio
async def test_table_describe_friendly_database_name_is_used_as_is():
    context, services = create_mock_context()
    session = services.get_session()
    session.run_metadata_query.side_effect = [
        SCHEMATA,
        _ok(("COLUMN_NAME",), ("id",)),
    ]

    result = await flink_table_describe(context, "orders", database_name="analytics")

    assert result["success"] is True
    last_sql = session.run_metadata_query.await_args_list[1].args[0]
    assert last_sql == columns_query("env-1", "orders", "analytics")


@pytest.mark.asyncio
async def test_table_describe_without_database_searches_whole_catalog():
    services = _no_cluster_services()
    context, _ = create_mock_context(services)
    session = services.get_session()
    session.run_metadata_query.return_value = _ok(("COLUMN_NAME",), ("id",))

    result = await flink_table_describe(context, "orders")

    assert result["success"] is True
    session.run_metadata_query.assert_awaited_once_with(
        columns_query("env-1", "orders"), SCOPE
    )


@pytest.mark.asyncio
async def test_table_describe_not_found_with_schema():
    context, services = create_mock_context()
    services.get_session().run_metadata_query.side_effect = [
        SCHEMATA,
        _ok(("COLUMN_NAME",)),
    ]

    result = await flink_table_describe(context, "missing")

    assert result == {
        "success": False,
        "error": "Table 'env-1.cluster_0.missing' not found or has no columns.",
        "isError": True,
    }


@pytest.mark.asyncio
async def test_table_describe_not_found_without_schema():
    services = _no_cluster_services()
    context, _ = create_mock_context(services)
    services.get_session().run_metadata_query.return_value = _ok(("COLUMN_NAME",))

    result = await flink_table_describe(context, "missing")

    assert result["error"] == (
        "Table 'missing' in catalog 'env-1' not found or has no columns."
    )


@pytest.mark.asyncio
async def test_table_describe_schema_lookup_failure_passes_database_through():
    context, services = create_mock_context()
    session = services.get_session()
    session.run_metadata_query.side_effect = [
        ExecutionOutcome.failure(
            ExecutionErrorKind.TIMEOUT, "Statement timed out", "mcp-query-x"
        ),
        _ok(("COLUMN_NAME",), ("id",)),
    ]

    result = await flink_table_describe(context, "orders")

    assert result["success"] is True
    last_sql = session.run_metadata_query.await_args_list[1].args[0]
    assert last_sql == columns_query("env-1", "orders", "lkc-1")


@pytest.mark.asyncio
async def test_table_describe_empty_name():
    context, services = create_mock_context()

    result = await flink_table_describe(context, "   ")

    assert result["error"] == "Table name must not be empty"
    services.get_session().run_metadata_query.assert_not_awaited()


@pytest.mark.asyncio
async def test_table_info_success():
    context, services = create_mock_context()
    session = services.get_session()
    session.run_metadata_query.side_effect = [
        SCHEMATA,
        _ok(
            ("TABLE_SCHEMA", "TABLE_NAME", "TABLE_TYPE"),
            ("cluster_0", "orders", "BASE TABLE"),
        ),
    ]

    result = await flink_table_info(context, "orders")

    assert result == {
        "success": True,
        "table_name": "orders",
        "tables": [
            {
                "TABLE_SCHEMA": "cluster_0",
                "TABLE_NAME": "orders",
                "TABLE_TYPE": "BASE TABLE",
            }
        ],
    }
    last_sql = session.run_metadata_query.await_args_list[1].args[0]
    assert last_sql == tables_query("env-1", "orders", "cluster_0")


@pytest.mark.asyncio
async def test_table_info_not_found():
    context, services = create_mock_context()
    services.get_session().run_metadata_query.side_effect = [
        SCHEMATA,
        _ok(("TABLE_NAME",)),
    ]

    result = await flink_table_info(context, "missing")

    assert result["error"] == "Table 'env-1.cluster_0.missing' not found."


@pytest.mark.asyncio
async def test_table_info_query_failure():
    services = _no_cluster_services()
    context, _ = create_mock_context(services)
    services.get_session().run_metadata_query.return_value = ExecutionOutcome.failure(
        ExecutionErrorKind.POLL, "HTTP 503: unavailable", "mcp-query-x"
    )

    result = await flink_table_info(context, "orders")

    assert result["error"] == "Failed to get table info: HTTP 503: unavailable"
