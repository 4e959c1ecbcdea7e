"""
Statement executor: drives one Flink SQL statement through its remote lifecycle.

The executor submits a statement under a freshly generated name, then polls its status
until the service reports a terminal phase or the deadline elapses:

    SUBMITTED → {PENDING ⇄ RUNNING} → {COMPLETED | FAILED | STOPPED | DELETED}

plus a client-side TIMEOUT outcome when no terminal phase is observed in time.

Polling is cooperative: between two status requests the task suspends with
`asyncio.sleep` for the poll interval (clipped to the remaining time), and the monotonic
deadline is re-checked before every request. Failures are never retried; every failure is
returned as a failed `ExecutionOutcome`. Reading results is not part of execution; see
`ResultPager`.
"""

__all__ = ["StatementExecutor", "generate_statement_name"]

import asyncio
import logging
import secrets
import string
import time

from confluent_mcp._exceptions import FlinkError
from confluent_mcp.config import FlinkSettings
from confluent_mcp.config._flink import (
    DEFAULT_MAX_STATEMENT_LENGTH,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_STATEMENT_NAME_PREFIX,
    DEFAULT_STATEMENT_TIMEOUT_SECONDS,
)

from ._client import FlinkRestClient
from ._models import ExecutionErrorKind, ExecutionOutcome, ExecutionScope, Phase

_LOGGER = logging.getLogger(__name__)

_BASE36_ALPHABET = string.digits + string.ascii_lowercase
_RANDOM_SUFFIX_LENGTH = 6

CATALOG_PROPERTY = "sql.current-catalog"
DATABASE_PROPERTY = "sql.current-database"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_statement_name(prefix: str = DEFAULT_STATEMENT_NAME_PREFIX) -> str:
    """
    Generate a statement name unique per invocation.

    Format: `<prefix>-<base36 millisecond timestamp>-<6 char base36 random suffix>`.
    Collisions with concurrent or earlier statements are improbable without any
    coordination with the service; this is an assumption, not a guarantee.

    Args:
        prefix (str): Name prefix. Defaults to 'mcp-query'.

    Returns:
        str: The generated name, e.g. 'mcp-query-m1x2y3z4-a9b8c7'.
    """
    timestamp = _to_base36(time.time_ns() // 1_000_000)
    suffix = "".join(
        secrets.choice(_BASE36_ALPHABET) for _ in range(_RANDOM_SUFFIX_LENGTH)
    )
    return f"{prefix}-{timestamp}-{suffix}"


class StatementExecutor:
    """Submits one statement and polls it to a terminal phase under a deadline.

    Instances hold no per-statement state, so one executor can serve concurrent
    executions.
    """

    def __init__(
        self,
        client: FlinkRestClient,
        *,
        timeout_seconds: float = DEFAULT_STATEMENT_TIMEOUT_SECONDS,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        max_statement_length: int = DEFAULT_MAX_STATEMENT_LENGTH,
        name_prefix: str = DEFAULT_STATEMENT_NAME_PREFIX,
        cleanup_on_timeout: bool = False,
    ):
        """Initialize the executor.

        Args:
            client (FlinkRestClient): REST client used for submit/status/delete requests.
            timeout_seconds (float): Default overall deadline of one execution.
            poll_interval_seconds (float): Wait between two status requests.
            max_statement_length (int): Maximum accepted SQL length in characters.
            name_prefix (str): Prefix of generated statement names.
            cleanup_on_timeout (bool): If True, issue a best-effort delete of a statement
                whose execution timed out. By default the remote statement is left running.
        """
        self._client = client
        self._timeout_seconds = timeout_seconds
        self._poll_interval_seconds = poll_interval_seconds
        self._max_statement_length = max_statement_length
        self._name_prefix = name_prefix
        self._cleanup_on_timeout = cleanup_on_timeout

    @classmethod
    def from_settings(
        cls, client: FlinkRestClient, settings: FlinkSettings
    ) -> "StatementExecutor":
        """Create an executor configured from `FlinkSettings`."""
        return cls(
            client,
            timeout_seconds=settings.statement_timeout_seconds,
            poll_interval_seconds=settings.poll_interval_seconds,
            max_statement_length=settings.max_statement_length,
            name_prefix=settings.statement_name_prefix,
            cleanup_on_timeout=settings.cleanup_on_timeout,
        )

    @property
    def client(self) -> FlinkRestClient:
        """The REST client used by this executor."""
        return self._client

    def validate_sql(self, sql: str) -> None:
        """
        Check SQL text before submission.

        Raises:
            ValueError: If the SQL is empty or longer than the configured maximum.
        """
        if not sql or not sql.strip():
            raise ValueError("SQL statement must not be empty")
        if len(sql) > self._max_statement_length:
            raise ValueError(
                f"SQL statement is {len(sql)} characters long; the maximum is {self._max_statement_length}"
            )

    async def execute(
        self,
        sql: str,
        scope: ExecutionScope,
        *,
        catalog_name: str | None = None,
        database_name: str | None = None,
        timeout_seconds: float | None = None,
    ) -> ExecutionOutcome:
        """
        Submit a statement and wait for it to reach a terminal phase.

        Args:
            sql (str): The SQL text.
            scope (ExecutionScope): Organization, environment, and compute pool.
            catalog_name (str | None): Sent as `sql.current-catalog` when set.
            database_name (str | None): Sent as `sql.current-database` when set.
            timeout_seconds (float | None): Overall deadline; the executor default when None.

        Returns:
            ExecutionOutcome: Success with phase COMPLETED, or a failure classified by
                `ExecutionErrorKind`. Successful outcomes carry no data; results are read
                by `ResultPager`.

        Raises:
            ValueError: If the SQL is invalid or timeout_seconds is not positive.
        """
        self.validate_sql(sql)
        timeout = self._timeout_seconds if timeout_seconds is None else timeout_seconds
        if timeout <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {timeout}")

        statement_name = generate_statement_name(self._name_prefix)
        properties: dict[str, str] = {}
        if catalog_name:
            properties[CATALOG_PROPERTY] = catalog_name
        if database_name:
            properties[DATABASE_PROPERTY] = database_name

        _LOGGER.info(
            f"[StatementExecutor:execute] Submitting statement '{statement_name}' "
            f"to compute pool '{scope.compute_pool_id}' (properties={properties}, timeout={timeout}s)"
        )
        try:
            await self._client.create_statement(scope, statement_name, sql, properties)
        except FlinkError as e:
            _LOGGER.error(
                f"[StatementExecutor:execute] Failed to create statement '{statement_name}': {e}"
            )
            return ExecutionOutcome.failure(
                ExecutionErrorKind.SUBMISSION,
                f"Failed to create statement: {e}",
                statement_name,
            )

        return await self._wait_for_terminal_phase(scope, statement_name, timeout)

    async def _wait_for_terminal_phase(
        self, scope: ExecutionScope, statement_name: str, timeout: float
    ) -> ExecutionOutcome:
        start_time = time.monotonic()
        deadline = start_time + timeout
        phase: str | None = None
        poll_count = 0

        while time.monotonic() < deadline:
            poll_count += 1
            try:
                statement = await self._client.get_statement(
                    scope.organization_id, scope.environment_id, statement_name
                )
            except FlinkError as e:
                _LOGGER.error(
                    f"[StatementExecutor:_wait_for_terminal_phase] Status request #{poll_count} "
                    f"for '{statement_name}' failed: {e}"
                )
                return ExecutionOutcome.failure(
                    ExecutionErrorKind.POLL,
                    f"Failed to get statement status: {e}",
                    statement_name,
                    phase,
                )

            phase = statement.raw_phase
            _LOGGER.debug(
                f"[StatementExecutor:_wait_for_terminal_phase] '{statement_name}' is {phase} "
                f"(poll #{poll_count}, elapsed {time.monotonic() - start_time:.1f}s)"
            )

            if statement.phase is Phase.COMPLETED:
                _LOGGER.info(
                    f"[StatementExecutor:_wait_for_terminal_phase] '{statement_name}' completed "
                    f"after {poll_count} poll(s)"
                )
                return ExecutionOutcome(
                    success=True,
                    statement_name=statement_name,
                    phase=phase,
                    columns=statement.columns,
                )

            if statement.phase is Phase.FAILED:
                detail = statement.detail or "Unknown error"
                _LOGGER.warning(
                    f"[StatementExecutor:_wait_for_terminal_phase] '{statement_name}' failed: {detail}"
                )
                return ExecutionOutcome.failure(
                    ExecutionErrorKind.STATEMENT_FAILED,
                    f"Statement failed: {detail}",
                    statement_name,
                    phase,
                )

            if statement.phase in (Phase.STOPPED, Phase.DELETED):
                kind = (
                    ExecutionErrorKind.STATEMENT_STOPPED
                    if statement.phase is Phase.STOPPED
                    else ExecutionErrorKind.STATEMENT_DELETED
                )
                _LOGGER.warning(
                    f"[StatementExecutor:_wait_for_terminal_phase] '{statement_name}' was {statement.phase.value}"
                )
                return ExecutionOutcome.failure(
                    kind,
                    f"Statement was {statement.phase.value.lower()}",
                    statement_name,
                    phase,
                )

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            await asyncio.sleep(min(self._poll_interval_seconds, remaining))

        _LOGGER.warning(
            f"[StatementExecutor:_wait_for_terminal_phase] '{statement_name}' timed out after "
            f"{timeout}s in phase {phase} ({poll_count} poll(s))"
        )
        if self._cleanup_on_timeout:
            await self._delete_abandoned(scope, statement_name)
        return ExecutionOutcome.failure(
            ExecutionErrorKind.TIMEOUT,
            f"Statement timed out in {phase or 'UNKNOWN'} state",
            statement_name,
            phase,
        )

    async def _delete_abandoned(
        self, scope: ExecutionScope, statement_name: str
    ) -> None:
        """Best-effort delete of a statement the client stopped waiting for."""
        try:
            await self._client.delete_statement(
                scope.organization_id, scope.environment_id, statement_name
            )
            _LOGGER.info(
                f"[StatementExecutor:_delete_abandoned] Deleted timed-out statement '{statement_name}'"
            )
        except FlinkError as e:
            _LOGGER.warning(
                f"[StatementExecutor:_delete_abandoned] Could not delete timed-out statement "
                f"'{statement_name}'; it may still be running: {e}"
            )
