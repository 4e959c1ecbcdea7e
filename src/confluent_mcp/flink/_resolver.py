"""
Catalog and database name resolution for Flink SQL.

In Confluent Cloud Flink a catalog corresponds to an environment and a database to a Kafka
cluster. Each has a stable ID (`env-...`, `lkc-...`) and a friendly display name, and
INFORMATION_SCHEMA views filter on the friendly name. Agents supply either form, or
nothing at all.

Resolution is best-effort and degrades to passing the input through:
    1. `resolve_catalog_name` / `resolve_database_name` pick the effective identifier from
       the input or the configured default.
    2. `get_catalog_mapping` / `get_schema_mapping` read the ID/name correspondences from
       the metadata views. A failed metadata query yields an empty mapping, never an error.
    3. `resolve_to_catalog_name` / `resolve_to_schema_name` substitute the friendly name
       for a stable ID when a mapping exists, and return the input unchanged otherwise.
"""

__all__ = ["NameResolver", "rows_as_records"]

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from ._models import CatalogMapping, ExecutionScope, SchemaMapping
from ._sql import INFORMATION_SCHEMA, catalogs_query, schemata_query

if TYPE_CHECKING:
    from ._session import StatementSession

_LOGGER = logging.getLogger(__name__)

ENVIRONMENT_ID_PREFIX = "env-"
CLUSTER_ID_PREFIX = "lkc-"


def rows_as_records(
    rows: Iterable[Any], columns: tuple[str, ...] | None
) -> list[dict[str, Any]]:
    """Normalize result rows into keyed records.

    Rows arrive either already keyed (`{"CATALOG_ID": ...}`) or in the Flink REST shape
    `{"op": 0, "row": [...]}`, which is zipped against the result column names. Anything
    else is dropped.
    """
    records: list[dict[str, Any]] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        values = row.get("row")
        if isinstance(values, list):
            if columns is None or len(values) != len(columns):
                continue
            records.append(dict(zip(columns, values)))
        else:
            records.append(row)
    return records


class NameResolver:
    """Resolves catalog/database identifiers to the names the query engine expects."""

    def __init__(
        self,
        default_environment_id: str | None = None,
        default_cluster_id: str | None = None,
    ):
        """Initialize the resolver.

        Args:
            default_environment_id (str | None): Catalog used when none is supplied.
            default_cluster_id (str | None): Database used when none is supplied.
        """
        self._default_environment_id = default_environment_id
        self._default_cluster_id = default_cluster_id

    def resolve_catalog_name(self, catalog_name: str | None = None) -> str | None:
        """
        Pick the effective catalog identifier.

        An input that looks like an environment ID (`env-` prefix) is returned unchanged;
        friendly-name lookup happens later against the mapping. Any other input is
        ignored in favour of the default environment ID.

        Returns:
            str | None: The catalog identifier, or None when neither input nor default is
                available (a configuration error left to the caller).
        """
        if catalog_name and catalog_name.startswith(ENVIRONMENT_ID_PREFIX):
            return catalog_name
        return self._default_environment_id

    def resolve_database_name(self, database_name: str | None = None) -> str | None:
        """
        Pick the effective database identifier.

        Any non-empty input is accepted after trimming; it may be a cluster ID or a
        friendly name. Otherwise the default cluster ID is used.

        Returns:
            str | None: The database identifier, or None when unavailable.
        """
        if database_name and database_name.strip():
            return database_name.strip()
        return self._default_cluster_id

    async def get_catalog_mapping(
        self,
        session: "StatementSession",
        catalog_name: str,
        scope: ExecutionScope,
    ) -> list[CatalogMapping]:
        """
        Read environment ID to catalog name mappings from `INFORMATION_SCHEMA.CATALOGS`.

        Rows with a missing or non-string `CATALOG_ID` / `CATALOG_NAME` are dropped.

        Returns:
            list[CatalogMapping]: The mappings; empty if the metadata query failed.
        """
        outcome = await session.run_metadata_query(catalogs_query(catalog_name), scope)
        if not outcome.success or outcome.data is None:
            _LOGGER.warning(
                f"[NameResolver:get_catalog_mapping] Catalog lookup through '{catalog_name}' failed: {outcome.error}"
            )
            return []

        mappings = []
        for record in rows_as_records(outcome.data, outcome.columns):
            catalog_id = record.get("CATALOG_ID")
            name = record.get("CATALOG_NAME")
            if isinstance(catalog_id, str) and isinstance(name, str):
                mappings.append(CatalogMapping(catalog_id=catalog_id, catalog_name=name))
        _LOGGER.debug(
            f"[NameResolver:get_catalog_mapping] Found {len(mappings)} catalog mapping(s)"
        )
        return mappings

    @staticmethod
    def resolve_to_catalog_name(
        catalog_input: str, mappings: Iterable[CatalogMapping]
    ) -> str:
        """
        Map an environment ID to its friendly catalog name.

        Returns:
            str: The mapped name when catalog_input is an `env-` ID with a mapping;
                otherwise catalog_input unchanged.
        """
        if catalog_input.startswith(ENVIRONMENT_ID_PREFIX):
            for mapping in mappings:
                if mapping.catalog_id == catalog_input:
                    return mapping.catalog_name
        return catalog_input

    async def get_schema_mapping(
        self,
        session: "StatementSession",
        catalog_name: str,
        scope: ExecutionScope,
    ) -> list[SchemaMapping]:
        """
        Read cluster ID to database name mappings from `INFORMATION_SCHEMA.SCHEMATA`.

        The INFORMATION_SCHEMA pseudo-schema is excluded, and rows with a missing or
        non-string `SCHEMA_ID` / `SCHEMA_NAME` are dropped.

        Returns:
            list[SchemaMapping]: The mappings; empty if the metadata query failed.
        """
        outcome = await session.run_metadata_query(schemata_query(catalog_name), scope)
        if not outcome.success or outcome.data is None:
            _LOGGER.warning(
                f"[NameResolver:get_schema_mapping] Database lookup in '{catalog_name}' failed: {outcome.error}"
            )
            return []

        mappings = []
        for record in rows_as_records(outcome.data, outcome.columns):
            schema_id = record.get("SCHEMA_ID")
            name = record.get("SCHEMA_NAME")
            if (
                isinstance(schema_id, str)
                and isinstance(name, str)
                and name != INFORMATION_SCHEMA
            ):
                mappings.append(SchemaMapping(schema_id=schema_id, schema_name=name))
        _LOGGER.debug(
            f"[NameResolver:get_schema_mapping] Found {len(mappings)} database mapping(s)"
        )
        return mappings

    @staticmethod
    def resolve_to_schema_name(
        database_input: str, mappings: Iterable[SchemaMapping]
    ) -> str:
        """
        Map a Kafka cluster ID to its friendly database name.

        Returns:
            str: The mapped name when database_input is an `lkc-` ID with a mapping;
                otherwise database_input unchanged.
        """
        if database_input.startswith(CLUSTER_ID_PREFIX):
            for mapping in mappings:
                if mapping.schema_id == database_input:
                    return mapping.schema_name
        return database_input
