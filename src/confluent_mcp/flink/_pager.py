"""
Result pager: reads every result page of a completed Flink statement.

Pages are chained by opaque continuation tokens taken from each page's `metadata.next`
link. A page without a token is the last page.

`drain()` guarantees completeness: a result set is either delivered whole or not at all.
If any page cannot be read, the rows already accumulated are discarded and a failed
outcome is returned, so callers never see a truncated result presented as complete.
`iter_pages()` exposes the raw page stream for callers that sample unbounded results and
report truncation themselves.
"""

__all__ = ["ResultPager"]

import logging
from collections.abc import AsyncIterator
from typing import Any

from confluent_mcp._exceptions import FlinkError

from ._client import FlinkRestClient
from ._models import ExecutionErrorKind, ExecutionOutcome, ResultPage

_LOGGER = logging.getLogger(__name__)


class ResultPager:
    """Drains statement result pages in request order."""

    def __init__(self, client: FlinkRestClient):
        """Initialize the pager.

        Args:
            client (FlinkRestClient): REST client used to fetch result pages.
        """
        self._client = client

    async def iter_pages(
        self,
        organization_id: str,
        environment_id: str,
        statement_name: str,
        page_token: str | None = None,
    ) -> AsyncIterator[ResultPage]:
        """
        Yield result pages in order until a page carries no continuation token.

        Args:
            organization_id (str): Organization of the statement.
            environment_id (str): Environment of the statement.
            statement_name (str): Name of the statement.
            page_token (str | None): Token to resume from; the first page when None.

        Yields:
            ResultPage: Each page, starting with the one for page_token.

        Raises:
            FlinkError: If a page cannot be read.
        """
        token = page_token
        page_number = 0
        while True:
            page_number += 1
            page = await self._client.get_statement_results(
                organization_id, environment_id, statement_name, token
            )
            _LOGGER.debug(
                f"[ResultPager:iter_pages] '{statement_name}' page {page_number}: "
                f"{len(page.rows)} row(s), next_token={'yes' if page.next_token else 'no'}"
            )
            yield page
            if page.is_last:
                return
            token = page.next_token

    async def drain(
        self,
        organization_id: str,
        environment_id: str,
        statement_name: str,
        *,
        phase: str | None = None,
        columns: tuple[str, ...] | None = None,
    ) -> ExecutionOutcome:
        """
        Read all result pages of a completed statement into one outcome.

        Args:
            organization_id (str): Organization of the statement.
            environment_id (str): Environment of the statement.
            statement_name (str): Name of the statement.
            phase (str | None): Last known phase, copied into the outcome.
            columns (tuple[str, ...] | None): Result column names, copied into the outcome.

        Returns:
            ExecutionOutcome: Success with the concatenation of all pages in order, or a
                RESULT_READ failure with no data.
        """
        rows: list[Any] = []
        page_count = 0
        try:
            async for page in self.iter_pages(
                organization_id, environment_id, statement_name
            ):
                page_count += 1
                rows.extend(page.rows)
        except FlinkError as e:
            _LOGGER.error(
                f"[ResultPager:drain] Failed to read page {page_count + 1} of '{statement_name}'; "
                f"discarding {len(rows)} row(s): {e}"
            )
            return ExecutionOutcome.failure(
                ExecutionErrorKind.RESULT_READ,
                f"Failed to read results: {e}",
                statement_name,
                phase,
            )

        _LOGGER.info(
            f"[ResultPager:drain] Read {len(rows)} row(s) in {page_count} page(s) for '{statement_name}'"
        )
        return ExecutionOutcome(
            success=True,
            statement_name=statement_name,
            data=tuple(rows),
            phase=phase,
            columns=columns,
        )
