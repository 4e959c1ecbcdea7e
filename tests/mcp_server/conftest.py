"""Shared test fixtures and helpers for mcp_server tests."""

from unittest.mock import AsyncMock, MagicMock

from confluent_mcp.config import FlinkSettings
from confluent_mcp.flink import NameResolver


class MockRequestContext:
    """Mock MCP request context for testing."""

    def __init__(self, lifespan_context):
        self.lifespan_context = lifespan_context


class MockContext:
    """Mock MCP context for testing."""

    def __init__(self, lifespan_context):
        self.request_context = MockRequestContext(lifespan_context)


DEFAULT_SETTINGS = FlinkSettings(
    rest_endpoint="https://flink.example.com",
    organization_id="org-1",
    environment_id="env-1",
    compute_pool_id="lfcp-1",
    cluster_id="lkc-1",
)


def create_mock_flink_services(settings=DEFAULT_SETTINGS):
    """Create a mock FlinkServices with a mock client and statement session.

    The session uses a real NameResolver built from the settings so default resolution
    behaves as in production.
    """
    client = MagicMock()
    for name in (
        "create_statement",
        "get_statement",
        "list_statements",
        "delete_statement",
        "get_statement_exceptions",
    ):
        setattr(client, name, AsyncMock())

    session = MagicMock()
    session.execute = AsyncMock()
    session.run_metadata_query = AsyncMock()
    session.resolver = NameResolver(settings.environment_id, settings.cluster_id)
    session.executor = MagicMock()
    session.pager = MagicMock()

    services = MagicMock()
    services.settings = settings
    services.client = client
    services.get_session = MagicMock(return_value=session)
    return services


def create_mock_context(services=None):
    """Create a MockContext whose lifespan holds the given (or a new mock) FlinkServices."""
    services = services or create_mock_flink_services()
    return MockContext({"flink_services": services}), services
