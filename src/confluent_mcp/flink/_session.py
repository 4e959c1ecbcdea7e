"""
Statement session: one logical query from SQL text to a complete result set.

A `StatementSession` composes the three stages of the execution engine:

    NameResolver → StatementExecutor → ResultPager

Each stage short-circuits on failure and its `ExecutionOutcome` is returned unchanged, so
callers see exactly one outcome per query. Sessions hold no per-query state and may be
shared by concurrent tool calls.
"""

__all__ = ["StatementSession"]

import logging

from confluent_mcp.config import FlinkSettings

from ._client import FlinkRestClient
from ._executor import StatementExecutor
from ._models import ExecutionOutcome, ExecutionScope
from ._pager import ResultPager
from ._resolver import NameResolver

_LOGGER = logging.getLogger(__name__)


class StatementSession:
    """Orchestrates name resolution, execution, and result paging."""

    def __init__(
        self,
        executor: StatementExecutor,
        pager: ResultPager,
        resolver: NameResolver,
    ):
        self._executor = executor
        self._pager = pager
        self._resolver = resolver

    @classmethod
    def from_settings(
        cls, client: FlinkRestClient, settings: FlinkSettings
    ) -> "StatementSession":
        """Build a session whose stages share one REST client and the given settings."""
        return cls(
            StatementExecutor.from_settings(client, settings),
            ResultPager(client),
            NameResolver(settings.environment_id, settings.cluster_id),
        )

    @property
    def executor(self) -> StatementExecutor:
        return self._executor

    @property
    def pager(self) -> ResultPager:
        return self._pager

    @property
    def resolver(self) -> NameResolver:
        return self._resolver

    async def execute(
        self,
        sql: str,
        scope: ExecutionScope,
        catalog_name: str | None = None,
        database_name: str | None = None,
        timeout_seconds: float | None = None,
        resolve_names: bool = False,
    ) -> ExecutionOutcome:
        """
        Run one query and return all of its results.

        The effective catalog and database come from the inputs or the configured
        defaults. With resolve_names, stable IDs (`env-...`, `lkc-...`) are additionally
        mapped to friendly names through the INFORMATION_SCHEMA views; an ID without a
        mapping is sent verbatim.

        Args:
            sql (str): The SQL text.
            scope (ExecutionScope): Organization, environment, and compute pool.
            catalog_name (str | None): Catalog hint; the default environment when None.
            database_name (str | None): Database hint; the default cluster when None.
            timeout_seconds (float | None): Execution deadline; the configured default when None.
            resolve_names (bool): Map stable IDs to friendly names before executing.

        Returns:
            ExecutionOutcome: Success with every result row in page order, or the failed
                outcome of the first stage that failed.

        Raises:
            ValueError: If the SQL or timeout is invalid.
        """
        catalog = self._resolver.resolve_catalog_name(catalog_name)
        database = self._resolver.resolve_database_name(database_name)

        if resolve_names and catalog:
            catalog, database = await self._map_names(catalog, database, scope)

        _LOGGER.debug(
            f"[StatementSession:execute] Effective catalog={catalog!r}, database={database!r}"
        )
        outcome = await self._executor.execute(
            sql,
            scope,
            catalog_name=catalog,
            database_name=database,
            timeout_seconds=timeout_seconds,
        )
        if not outcome.success:
            return outcome

        return await self._pager.drain(
            scope.organization_id,
            scope.environment_id,
            outcome.statement_name,
            phase=outcome.phase,
            columns=outcome.columns,
        )

    async def _map_names(
        self, catalog: str, database: str | None, scope: ExecutionScope
    ) -> tuple[str, str | None]:
        catalog_mappings = await self._resolver.get_catalog_mapping(
            self, catalog, scope
        )
        friendly_catalog = NameResolver.resolve_to_catalog_name(
            catalog, catalog_mappings
        )

        friendly_database = database
        if database:
            schema_mappings = await self._resolver.get_schema_mapping(
                self, catalog, scope
            )
            friendly_database = NameResolver.resolve_to_schema_name(
                database, schema_mappings
            )

        if friendly_catalog != catalog or friendly_database != database:
            _LOGGER.info(
                f"[StatementSession:_map_names] Resolved catalog {catalog!r} -> {friendly_catalog!r}, "
                f"database {database!r} -> {friendly_database!r}"
            )
        return friendly_catalog, friendly_database

    async def run_metadata_query(
        self,
        sql: str,
        scope: ExecutionScope,
        timeout_seconds: float | None = None,
    ) -> ExecutionOutcome:
        """
        Run a fully qualified metadata query.

        No catalog or database properties are sent and no name resolution happens, so
        the resolver can call this without recursing into itself.
        """
        outcome = await self._executor.execute(
            sql, scope, timeout_seconds=timeout_seconds
        )
        if not outcome.success:
            return outcome
        return await self._pager.drain(
            scope.organization_id,
            scope.environment_id,
            outcome.statement_name,
            phase=outcome.phase,
            columns=outcome.columns,
        )
