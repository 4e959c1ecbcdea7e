"""
Async REST client for the Confluent Cloud Flink SQL statements API.

`FlinkRestClient` wraps the `sql/v1` statements endpoints with typed async methods. It
owns one lazily created `aiohttp.ClientSession` (HTTP Basic authentication with the Flink
API key and secret) that is reused across requests and closed by `close()`.

Errors:
    - A non-2xx response raises `FlinkApiError` carrying the status and decoded body.
    - A transport failure (DNS, connection refused, timeout) raises `FlinkConnectionError`.

The client performs no retries; callers decide how to react to a failed request.
"""

__all__ = ["FlinkRestClient"]

import asyncio
import json
import logging
from typing import Any, cast
from urllib.parse import quote

import aiohttp

from confluent_mcp._exceptions import (
    FlinkApiError,
    FlinkConfigurationError,
    FlinkConnectionError,
    FlinkResponseError,
)

from ._models import ExecutionScope, ResultPage, Statement

_LOGGER = logging.getLogger(__name__)

_DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0


class FlinkRestClient:
    """Typed async client for the Flink SQL statements REST API.

    Example:
        >>> client = FlinkRestClient("https://flink.us-east-1.aws.confluent.cloud", key, secret)
        >>> statement = await client.get_statement(org_id, env_id, "my-statement")
        >>> await client.close()
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        api_secret: str | None = None,
        *,
        request_timeout_seconds: float = _DEFAULT_REQUEST_TIMEOUT_SECONDS,
        session: aiohttp.ClientSession | None = None,
    ):
        """Initialize the client.

        Args:
            base_url (str): Base URL of the Flink REST API.
            api_key (str | None): Flink API key. Requests are unauthenticated when omitted.
            api_secret (str | None): Flink API secret paired with api_key.
            request_timeout_seconds (float): Total timeout applied to each HTTP request.
            session (aiohttp.ClientSession | None): Pre-built session to use instead of
                creating one. A supplied session is not closed by `close()`.

        Raises:
            FlinkConfigurationError: If base_url is empty, or only one of api_key and
                api_secret is given.
        """
        if not base_url:
            raise FlinkConfigurationError("Flink REST endpoint is not configured")
        if bool(api_key) != bool(api_secret):
            raise FlinkConfigurationError(
                "Flink API key and secret must be provided together"
            )
        self._base_url = base_url.rstrip("/")
        self._auth = aiohttp.BasicAuth(api_key, api_secret) if api_key else None
        self._timeout = aiohttp.ClientTimeout(total=request_timeout_seconds)
        self._session = session
        self._owns_session = session is None
        self._lock = asyncio.Lock()

    @property
    def base_url(self) -> str:
        """The base URL of the Flink REST API."""
        return self._base_url

    async def _get_session(self) -> aiohttp.ClientSession:
        async with self._lock:
            if self._session is None or self._session.closed:
                _LOGGER.debug(
                    f"[FlinkRestClient:_get_session] Opening HTTP session for {self._base_url}"
                )
                self._session = aiohttp.ClientSession(
                    auth=self._auth, timeout=self._timeout
                )
                self._owns_session = True
            return self._session

    async def close(self) -> None:
        """Close the underlying HTTP session if this client created it. Idempotent."""
        async with self._lock:
            if self._session is not None and self._owns_session and not self._session.closed:
                await self._session.close()
                _LOGGER.debug("[FlinkRestClient:close] HTTP session closed")
            self._session = None

    @staticmethod
    def _statements_path(
        organization_id: str, environment_id: str, name: str | None = None
    ) -> str:
        path = (
            f"/sql/v1/organizations/{quote(organization_id, safe='')}"
            f"/environments/{quote(environment_id, safe='')}/statements"
        )
        if name is not None:
            path = f"{path}/{quote(name, safe='')}"
        return path

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> tuple[int, Any]:
        """Issue one HTTP request and decode its JSON body.

        Returns:
            tuple[int, Any]: The HTTP status and the decoded body (None when empty).

        Raises:
            FlinkApiError: On a non-2xx status.
            FlinkConnectionError: On a transport failure.
            FlinkResponseError: On a 2xx body that is not a JSON object.
        """
        session = await self._get_session()
        url = f"{self._base_url}{path}"
        query = {k: v for k, v in (params or {}).items() if v is not None}
        _LOGGER.debug(f"[FlinkRestClient:_request] {method} {path} params={query}")
        try:
            async with session.request(
                method, url, params=query or None, json=body
            ) as response:
                status = response.status
                text = await response.text()
        except (TimeoutError, aiohttp.ClientError) as e:
            _LOGGER.warning(
                f"[FlinkRestClient:_request] {method} {path} failed: {e!r}"
            )
            raise FlinkConnectionError(
                f"Request {method} {path} failed: {e}"
            ) from e

        decoded = _decode_body(text)
        if status >= 400:
            _LOGGER.warning(
                f"[FlinkRestClient:_request] {method} {path} returned HTTP {status}"
            )
            raise FlinkApiError(status, decoded, method=method, path=path)
        if decoded is not None and not isinstance(decoded, dict):
            _LOGGER.warning(
                f"[FlinkRestClient:_request] {method} {path} returned HTTP {status} with a non-JSON-object body"
            )
            raise FlinkResponseError(
                f"Unexpected response to {method} {path}: HTTP {status} body is not a JSON object",
                decoded,
            )
        return status, decoded

    async def create_statement(
        self,
        scope: ExecutionScope,
        name: str,
        sql: str,
        properties: dict[str, str] | None = None,
    ) -> Statement:
        """Submit a statement (`POST statements`).

        Args:
            scope (ExecutionScope): Organization, environment, and compute pool.
            name (str): Statement name, unique within the environment.
            sql (str): The SQL text.
            properties (dict[str, str] | None): Statement properties such as
                `sql.current-catalog` and `sql.current-database`.

        Returns:
            Statement: The created statement as reported by the service.
        """
        body = {
            "name": name,
            "organization_id": scope.organization_id,
            "environment_id": scope.environment_id,
            "spec": {
                "compute_pool_id": scope.compute_pool_id,
                "statement": sql,
                "properties": dict(properties or {}),
            },
        }
        _, payload = await self._request(
            "POST",
            self._statements_path(scope.organization_id, scope.environment_id),
            body=body,
        )
        return Statement.from_api(payload or {"name": name})

    async def get_statement(
        self, organization_id: str, environment_id: str, name: str
    ) -> Statement:
        """Fetch a statement snapshot (`GET statements/{name}`)."""
        _, payload = await self._request(
            "GET",
            self._statements_path(organization_id, environment_id, name),
        )
        return Statement.from_api(payload or {"name": name})

    async def get_statement_raw(
        self, organization_id: str, environment_id: str, name: str
    ) -> dict[str, Any]:
        """Fetch a statement as the raw response body."""
        _, payload = await self._request(
            "GET",
            self._statements_path(organization_id, environment_id, name),
        )
        return cast(dict[str, Any], payload or {})

    async def list_statements(
        self,
        organization_id: str,
        environment_id: str,
        *,
        compute_pool_id: str | None = None,
        page_size: int | None = None,
        page_token: str | None = None,
        label_selector: str | None = None,
    ) -> dict[str, Any]:
        """List statements (`GET statements`), one page at a time.

        Returns:
            dict[str, Any]: The raw response body with 'data' and 'metadata'.
        """
        _, payload = await self._request(
            "GET",
            self._statements_path(organization_id, environment_id),
            params={
                "spec.compute_pool_id": compute_pool_id,
                "page_size": page_size,
                "page_token": page_token,
                "label_selector": label_selector,
            },
        )
        return cast(dict[str, Any], payload or {})

    async def delete_statement(
        self, organization_id: str, environment_id: str, name: str
    ) -> int:
        """Delete a statement (`DELETE statements/{name}`).

        Returns:
            int: The HTTP status code of the deletion.
        """
        status, _ = await self._request(
            "DELETE",
            self._statements_path(organization_id, environment_id, name),
        )
        return status

    async def get_statement_results(
        self,
        organization_id: str,
        environment_id: str,
        name: str,
        page_token: str | None = None,
    ) -> ResultPage:
        """Fetch one page of results (`GET statements/{name}/results`)."""
        _, payload = await self._request(
            "GET",
            f"{self._statements_path(organization_id, environment_id, name)}/results",
            params={"page_token": page_token},
        )
        return ResultPage.from_api(payload)

    async def get_statement_exceptions(
        self, organization_id: str, environment_id: str, name: str
    ) -> list[Any]:
        """Fetch the most recent exceptions of a statement (`GET statements/{name}/exceptions`)."""
        _, payload = await self._request(
            "GET",
            f"{self._statements_path(organization_id, environment_id, name)}/exceptions",
        )
        exceptions = (payload or {}).get("data") or []
        if not isinstance(exceptions, list):
            raise FlinkResponseError(
                f"Unexpected exceptions response: 'data' is {type(exceptions).__name__}, not a list",
                payload,
            )
        return exceptions


def _decode_body(text: str) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text
