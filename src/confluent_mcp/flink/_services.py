"""
Process-wide Flink services shared by all MCP tool calls.

`FlinkServices` owns the resolved settings, the pooled `FlinkRestClient`, and the
`StatementSession` built on top of it. It follows the registry lifecycle used throughout
the server: construct, `await initialize(config_manager)`, use, `await close()`. After
`close()` it can be initialized again, which is how configuration reloads rebuild the
client.
"""

__all__ = ["FlinkServices"]

import asyncio
import logging

from confluent_mcp._exceptions import FlinkConfigurationError, InternalError
from confluent_mcp.config import ConfigManager, FlinkSettings

from ._client import FlinkRestClient
from ._session import StatementSession

_LOGGER = logging.getLogger(__name__)


class FlinkServices:
    """Coroutine-safe holder of the Flink settings, REST client, and statement session."""

    def __init__(self) -> None:
        """
        Create an uninitialized holder.

        The holder is not usable until `initialize()` has been awaited.
        """
        self._lock = asyncio.Lock()
        self._settings: FlinkSettings | None = None
        self._client: FlinkRestClient | None = None
        self._session: StatementSession | None = None
        self._initialized = False
        _LOGGER.info(
            f"[{self.__class__.__name__}] created (must call and await initialize() after construction)"
        )

    def _check_initialized(self) -> None:
        if not self._initialized:
            _LOGGER.error(
                f"[{self.__class__.__name__}] Not initialized. Call 'await initialize()' after construction."
            )
            raise InternalError(
                f"{self.__class__.__name__} not initialized. Call 'await initialize()' after construction."
            )

    async def initialize(self, config_manager: ConfigManager) -> None:
        """
        Resolve settings and build the client and session. Idempotent.

        A missing REST endpoint is not an initialization error: the server still starts
        and tools report the configuration problem when called.

        Args:
            config_manager (ConfigManager): Source of the configuration.

        Raises:
            ConfigurationError: If the configuration cannot be loaded or is invalid.
        """
        async with self._lock:
            if self._initialized:
                return

            _LOGGER.info(f"[{self.__class__.__name__}] initializing...")
            settings = await config_manager.get_flink_settings()
            self._settings = settings
            if settings.rest_endpoint:
                self._client = FlinkRestClient(
                    settings.rest_endpoint, settings.api_key, settings.api_secret
                )
                self._session = StatementSession.from_settings(self._client, settings)
                _LOGGER.info(
                    f"[{self.__class__.__name__}] initialized for endpoint {settings.rest_endpoint}"
                )
            else:
                _LOGGER.warning(
                    f"[{self.__class__.__name__}] initialized without a Flink REST endpoint; "
                    "set FLINK_REST_ENDPOINT or flink.rest_endpoint to enable the Flink tools"
                )
            self._initialized = True

    @property
    def settings(self) -> FlinkSettings:
        """The resolved settings.

        Raises:
            InternalError: If not initialized.
        """
        self._check_initialized()
        assert self._settings is not None
        return self._settings

    def _require_endpoint(self) -> None:
        self._check_initialized()
        if self._client is None:
            raise FlinkConfigurationError(
                "Flink REST endpoint is not configured. Set FLINK_REST_ENDPOINT or flink.rest_endpoint."
            )

    @property
    def client(self) -> FlinkRestClient:
        """The shared REST client.

        Raises:
            InternalError: If not initialized.
            FlinkConfigurationError: If no REST endpoint is configured.
        """
        self._require_endpoint()
        assert self._client is not None
        return self._client

    def get_session(self) -> StatementSession:
        """The shared statement session.

        Raises:
            InternalError: If not initialized.
            FlinkConfigurationError: If no REST endpoint is configured.
        """
        self._require_endpoint()
        assert self._session is not None
        return self._session

    async def close(self) -> None:
        """Close the REST client and reset state for reinitialization."""
        async with self._lock:
            if not self._initialized:
                return
            _LOGGER.info(f"[{self.__class__.__name__}] closing...")
            if self._client is not None:
                await self._client.close()
            self._client = None
            self._session = None
            self._settings = None
            self._initialized = False
            _LOGGER.info(f"[{self.__class__.__name__}] closed")
