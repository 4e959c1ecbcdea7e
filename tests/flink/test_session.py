"""Tests for confluent_mcp.flink._session.StatementSession."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from confluent_mcp.config import FlinkSettings
from confluent_mcp.flink._executor import CATALOG_PROPERTY, DATABASE_PROPERTY
from confluent_mcp.flink._models import (
    ExecutionErrorKind,
    ExecutionOutcome,
    ExecutionScope,
    Phase,
    ResultPage,
    Statement,
)
from confluent_mcp.flink._resolver import NameResolver
from confluent_mcp.flink._session import StatementSession

SCOPE = ExecutionScope("org-1", "env-abcde", "lfcp-1")


def _mocked_session(execute_outcome, drain_outcome=None, resolver=None):
    executor = MagicMock()
    executor.execute = AsyncMock(return_value=execute_outcome)
    pager = MagicMock()
    pager.drain = AsyncMock(return_value=drain_outcome)
    return StatementSession(executor, pager, resolver or NameResolver()), executor, pager


@pytest.mark.asyncio
async def test_execute_success_drains_results():
    completed = ExecutionOutcome(
        success=True, statement_name="s1", phase="COMPLETED", columns=("id",)
    )
    drained = ExecutionOutcome(
        success=True, statement_name="s1", data=("r1", "r2"), phase="COMPLETED"
    )
    session, executor, pager = _mocked_session(
        completed, drained, NameResolver("env-default", "lkc-default")
    )

    outcome = await session.execute("SELECT 1", SCOPE, timeout_seconds=5)

    assert outcome is drained
    executor.execute.assert_awaited_once_with(
        "SELECT 1",
        SCOPE,
        catalog_name="env-default",
        database_name="lkc-default",
        timeout_seconds=5,
    )
    pager.drain.assert_awaited_once_with(
        "org-1", "env-abcde", "s1", phase="COMPLETED", columns=("id",)
    )


@pytest.mark.asyncio
async def test_execute_failure_short_circuits():
    failed = ExecutionOutcome.failure(
        ExecutionErrorKind.STATEMENT_FAILED, "Statement failed: boom", "s1", "FAILED"
    )
    session, _, pager = _mocked_session(failed)

    outcome = await session.execute("SELECT 1", SCOPE)

    assert outcome is failed
    pager.drain.assert_not_awaited()


@pytest.mark.asyncio
async def test_execute_propagates_read_failure():
    completed = ExecutionOutcome(success=True, statement_name="s1", phase="COMPLETED")
    read_failed = ExecutionOutcome.failure(
        ExecutionErrorKind.RESULT_READ, "Failed to read results: x", "s1", "COMPLETED"
    )
    session, _, _ = _mocked_session(completed, read_failed)
    assert await session.execute("SELECT 1", SCOPE) is read_failed


@pytest.mark.asyncio
async def test_run_metadata_query_sends_no_properties():
    completed = ExecutionOutcome(success=True, statement_name="m", phase="COMPLETED")
    drained = ExecutionOutcome(success=True, statement_name="m", data=())
    session, executor, _ = _mocked_session(
        completed, drained, NameResolver("env-default", "lkc-default")
    )

    assert await session.run_metadata_query("SHOW CATALOGS", SCOPE) is drained
    executor.execute.assert_awaited_once_with("SHOW CATALOGS", SCOPE, timeout_seconds=None)


@pytest.mark.asyncio
async def test_execute_resolves_ids_to_friendly_names():
    completed = ExecutionOutcome(success=True, statement_name="s1", phase="COMPLETED")
    session, executor, pager = _mocked_session(completed, completed)
    session._resolver = MagicMock(wraps=NameResolver())
    session._resolver.get_catalog_mapping = AsyncMock(
        return_value=[MagicMock(catalog_id="env-abcde", catalog_name="prod")]
    )
    session._resolver.get_schema_mapping = AsyncMock(
        return_value=[MagicMock(schema_id="lkc-1", schema_name="orders_cluster")]
    )

    await session.execute(
        "SELECT * FROM orders",
        SCOPE,
        catalog_name="env-abcde",
        database_name="lkc-1",
        resolve_names=True,
    )

    kwargs = executor.execute.await_args.kwargs
    assert kwargs["catalog_name"] == "prod"
    assert kwargs["database_name"] == "orders_cluster"


@pytest.mark.asyncio
async def test_unresolved_catalog_is_sent_verbatim():
    """End to end through a real executor and pager: no mapping means no substitution."""
    created = []

    async def create_statement(scope, name, sql, properties):
        created.append((sql, dict(properties)))
        return Statement(name=name)

    client = MagicMock()
    client.create_statement = AsyncMock(side_effect=create_statement)
    client.get_statement = AsyncMock(
        return_value=Statement(name="s", phase=Phase.COMPLETED, raw_phase="COMPLETED")
    )
    client.get_statement_results = AsyncMock(return_value=ResultPage(rows=()))
    session = StatementSession.from_settings(client, FlinkSettings())

    outcome = await session.execute(
        "SELECT * FROM orders", SCOPE, catalog_name="env-abcde", resolve_names=True
    )

    assert outcome.success is True
    assert outcome.data == ()
    metadata_sql, metadata_properties = created[0]
    assert "`env-abcde`.`INFORMATION_SCHEMA`.`CATALOGS`" in metadata_sql
    assert metadata_properties == {}
    sql, properties = created[-1]
    assert sql == "SELECT * FROM orders"
    assert properties == {CATALOG_PROPERTY: "env-abcde"}
    assert DATABASE_PROPERTY not in properties


def test_from_settings_wires_components():
    client = MagicMock()
    settings = FlinkSettings(environment_id="env-1", cluster_id="lkc-1", max_statement_length=5)
    session = StatementSession.from_settings(client, settings)
    assert session.executor.client is client
    assert session.resolver.resolve_catalog_name() == "env-1"
    assert session.resolver.resolve_database_name() == "lkc-1"
    with pytest.raises(ValueError):
        session.executor.validate_sql("SELECT 1")
