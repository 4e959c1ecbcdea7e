"""
Data model of the Flink statement execution engine.

Defines the value types exchanged between the REST client, the executor, the pager, the
name resolver, and the MCP tools. All types are immutable snapshots: a `Statement` is only
ever mutated by the remote service, so every status poll produces a new instance.

Types:
    - Phase: Server-reported lifecycle phase of a statement.
    - ExecutionErrorKind: Client-side classification of a failed execution.
    - ExecutionScope: Organization / environment / compute pool a statement runs in.
    - Statement: Snapshot of a remote statement.
    - ResultPage: One page of statement results plus its continuation token.
    - CatalogMapping / SchemaMapping: Stable ID to friendly name correspondences.
    - ExecutionOutcome: The uniform result of one execution.
"""

import enum
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qs, urlparse

from confluent_mcp._exceptions import FlinkResponseError

__all__ = [
    "CatalogMapping",
    "ExecutionErrorKind",
    "ExecutionOutcome",
    "ExecutionScope",
    "Phase",
    "ResultPage",
    "SchemaMapping",
    "Statement",
]


class Phase(str, enum.Enum):
    """Server-reported lifecycle phase of a Flink statement.

    Lifecycle: SUBMITTED → {PENDING ⇄ RUNNING} → {COMPLETED | FAILED | STOPPED | DELETED}.
    Once a terminal phase is observed it never reverts.
    """

    PENDING = "PENDING"
    """Accepted by the service, waiting for compute resources."""

    RUNNING = "RUNNING"
    """Executing on the compute pool."""

    COMPLETED = "COMPLETED"
    """Finished successfully; bounded results are available."""

    FAILED = "FAILED"
    """Finished with an error; `status.detail` carries the reason."""

    STOPPED = "STOPPED"
    """Stopped by a user or by the service."""

    DELETED = "DELETED"
    """Deleted while the client was still observing it."""

    @property
    def is_terminal(self) -> bool:
        """True for phases from which no further transition occurs."""
        return self in _TERMINAL_PHASES

    @classmethod
    def parse(cls, value: Any) -> "Phase | None":
        """Parse a raw phase string, returning None for missing or unknown values.

        Unknown phases are treated as non-terminal by the executor, so a service that
        introduces a new intermediate phase does not break polling.
        """
        if not isinstance(value, str):
            return None
        try:
            return cls(value.upper())
        except ValueError:
            return None


_TERMINAL_PHASES = frozenset(
    {Phase.COMPLETED, Phase.FAILED, Phase.STOPPED, Phase.DELETED}
)


class ExecutionErrorKind(str, enum.Enum):
    """Client-side classification of a failed execution."""

    SUBMISSION = "submission"
    """The statement could not be created."""

    POLL = "poll"
    """A status request failed while waiting for a terminal phase."""

    STATEMENT_FAILED = "statement_failed"
    """The statement reached FAILED."""

    STATEMENT_STOPPED = "statement_stopped"
    """The statement reached STOPPED."""

    STATEMENT_DELETED = "statement_deleted"
    """The statement reached DELETED."""

    TIMEOUT = "timeout"
    """The deadline elapsed before a terminal phase was observed."""

    RESULT_READ = "result_read"
    """A result page could not be read."""


@dataclass(frozen=True)
class ExecutionScope:
    """Where a statement runs.

    Attributes:
        organization_id: Confluent Cloud organization ID.
        environment_id: Confluent Cloud environment ID (env-...).
        compute_pool_id: Flink compute pool ID (lfcp-...).
    """

    organization_id: str
    environment_id: str
    compute_pool_id: str


def _json_object(value: Any, what: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise FlinkResponseError(
            f"Unexpected {what}: expected a JSON object, got {type(value).__name__}",
            value,
        )
    return value


@dataclass(frozen=True)
class Statement:
    """Snapshot of a remote Flink statement.

    Attributes:
        name: Statement name, unique within the environment.
        organization_id: Organization the statement belongs to.
        environment_id: Environment the statement belongs to.
        compute_pool_id: Compute pool executing the statement.
        sql_text: The SQL text.
        phase: Parsed lifecycle phase, None when missing or unknown.
        raw_phase: The phase string exactly as reported by the service.
        detail: Human-readable status detail (failure reason for FAILED).
        catalog_name: Value of the `sql.current-catalog` property, if set.
        database_name: Value of the `sql.current-database` property, if set.
        columns: Result column names from `status.traits.schema`, when reported.
    """

    name: str
    organization_id: str | None = None
    environment_id: str | None = None
    compute_pool_id: str | None = None
    sql_text: str | None = None
    phase: Phase | None = None
    raw_phase: str | None = None
    detail: str | None = None
    catalog_name: str | None = None
    database_name: str | None = None
    columns: tuple[str, ...] | None = None

    @classmethod
    def from_api(cls, payload: Any) -> "Statement":
        """Build a snapshot from a `GET statements/{name}` response body.

        Raises:
            FlinkResponseError: If the body or one of its sections is not a JSON object.
        """
        payload = _json_object(payload, "statement")
        spec = _json_object(payload.get("spec"), "statement spec")
        status = _json_object(payload.get("status"), "statement status")
        properties = _json_object(spec.get("properties"), "statement properties")
        raw_phase = status.get("phase")

        columns: tuple[str, ...] | None = None
        traits = _json_object(status.get("traits"), "statement traits")
        schema = _json_object(traits.get("schema"), "statement schema")
        raw_columns = schema.get("columns")
        if isinstance(raw_columns, list):
            columns = tuple(
                c["name"]
                for c in raw_columns
                if isinstance(c, dict) and isinstance(c.get("name"), str)
            )

        return cls(
            name=payload.get("name", ""),
            organization_id=payload.get("organization_id"),
            environment_id=payload.get("environment_id"),
            compute_pool_id=spec.get("compute_pool_id"),
            sql_text=spec.get("statement"),
            phase=Phase.parse(raw_phase),
            raw_phase=raw_phase if isinstance(raw_phase, str) else None,
            detail=status.get("detail") or None,
            catalog_name=properties.get("sql.current-catalog"),
            database_name=properties.get("sql.current-database"),
            columns=columns,
        )


@dataclass(frozen=True)
class ResultPage:
    """One page of statement results.

    Attributes:
        rows: Result records in server order. Records are opaque to the pager.
        next_token: Continuation token for the next page; None on the last page.
    """

    rows: tuple[Any, ...]
    next_token: str | None = None

    @property
    def is_last(self) -> bool:
        """True when this page carries no continuation token."""
        return not self.next_token

    @classmethod
    def from_api(cls, payload: Any) -> "ResultPage":
        """Build a page from a `GET statements/{name}/results` response body.

        The continuation token is the `page_token` query parameter of the
        `metadata.next` link.

        Raises:
            FlinkResponseError: If the body is not a JSON object or its rows are not a list.
        """
        payload = _json_object(payload, "result page")
        data = _json_object(payload.get("results"), "results").get("data") or []
        if not isinstance(data, list):
            raise FlinkResponseError(
                f"Unexpected result page: 'results.data' is {type(data).__name__}, not a list",
                payload,
            )
        next_link = _json_object(payload.get("metadata"), "result metadata").get("next")
        return cls(rows=tuple(data), next_token=extract_page_token(next_link))


def extract_page_token(next_link: str | None) -> str | None:
    """Extract the `page_token` query parameter from a `metadata.next` link.

    Args:
        next_link (str | None): Absolute or relative URL of the next page.

    Returns:
        str | None: The token, or None when the link is missing, empty, or has no token.
    """
    if not isinstance(next_link, str) or not next_link:
        return None
    values = parse_qs(urlparse(next_link).query).get("page_token")
    if not values or not values[0]:
        return None
    return values[0]


@dataclass(frozen=True)
class CatalogMapping:
    """Environment ID (`CATALOG_ID`) to friendly catalog name (`CATALOG_NAME`)."""

    catalog_id: str
    catalog_name: str


@dataclass(frozen=True)
class SchemaMapping:
    """Kafka cluster ID (`SCHEMA_ID`) to friendly database name (`SCHEMA_NAME`)."""

    schema_id: str
    schema_name: str


@dataclass(frozen=True)
class ExecutionOutcome:
    """The uniform result of executing one statement.

    Attributes:
        success: True when the statement completed and all results were read.
        statement_name: Name of the statement, for diagnosis or cleanup by the caller.
        data: All result records in page order (successful outcomes only).
        error: Human-readable failure message (failed outcomes only).
        phase: Last known raw phase.
        error_kind: Classification of the failure (failed outcomes only).
        columns: Result column names, when the service reported a schema.
    """

    success: bool
    statement_name: str
    data: tuple[Any, ...] | None = None
    error: str | None = None
    phase: str | None = None
    error_kind: ExecutionErrorKind | None = None
    columns: tuple[str, ...] | None = field(default=None)

    @classmethod
    def failure(
        cls,
        kind: ExecutionErrorKind,
        error: str,
        statement_name: str,
        phase: str | None = None,
    ) -> "ExecutionOutcome":
        """Create a failed outcome."""
        return cls(
            success=False,
            statement_name=statement_name,
            error=error,
            phase=phase,
            error_kind=kind,
        )

    def to_dict(self) -> dict[str, Any]:
        """Render the outcome as an MCP tool response dictionary.

        Successful outcomes carry 'data' and 'row_count'; failed outcomes carry
        'error', 'error_kind', and 'isError'.
        """
        result: dict[str, Any] = {
            "success": self.success,
            "statement_name": self.statement_name,
        }
        if self.phase is not None:
            result["phase"] = self.phase
        if self.success:
            rows = list(self.data or ())
            result["row_count"] = len(rows)
            result["data"] = rows
            if self.columns is not None:
                result["columns"] = list(self.columns)
        else:
            result["error"] = self.error
            if self.error_kind is not None:
                result["error_kind"] = self.error_kind.value
            result["isError"] = True
        return result
