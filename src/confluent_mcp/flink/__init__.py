"""
Remote statement execution engine for Confluent Cloud Flink SQL.

Components:
    - FlinkRestClient: Async client for the `sql/v1` statements REST API.
    - StatementExecutor: Submits a statement and polls it to a terminal phase under a deadline.
    - ResultPager: Reads every result page of a completed statement.
    - NameResolver: Maps catalog/database IDs to the friendly names the engine expects.
    - StatementSession: Resolve names → execute → drain pages, as one outcome.
    - FlinkServices: Process-wide holder of the settings, client, and session.

Every execution ends in exactly one `ExecutionOutcome`; statement-level failures are
values, not exceptions.
"""

from ._client import FlinkRestClient
from ._executor import StatementExecutor, generate_statement_name
from ._models import (
    CatalogMapping,
    ExecutionErrorKind,
    ExecutionOutcome,
    ExecutionScope,
    Phase,
    ResultPage,
    SchemaMapping,
    Statement,
)
from ._pager import ResultPager
from ._resolver import NameResolver, rows_as_records
from ._services import FlinkServices
from ._session import StatementSession

__all__ = [
    "CatalogMapping",
    "ExecutionErrorKind",
    "ExecutionOutcome",
    "ExecutionScope",
    "FlinkRestClient",
    "FlinkServices",
    "NameResolver",
    "Phase",
    "ResultPage",
    "ResultPager",
    "SchemaMapping",
    "Statement",
    "StatementExecutor",
    "StatementSession",
    "generate_statement_name",
    "rows_as_records",
]
