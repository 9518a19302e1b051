"""Pytest configuration and shared fixtures for toolchat-server tests.

This module provides common fixtures used across all test modules,
including test app creation, async client setup and test doubles for
capability providers.
"""

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from toolchat_server import create_app
from toolchat_server.config import ToolchatServerSettings
from toolchat_server.mcp.types import JsonRpcResponse, TransportState


@pytest.fixture
def test_settings():
    """Create test settings with a single, unreachable provider.

    Returns:
        ToolchatServerSettings: Settings instance configured for testing.
    """
    return ToolchatServerSettings(
        host="127.0.0.1",
        port=8000,
        ollama_host="http://localhost:11434",
        model="llama3.2:latest",
        providers={"figma": "http://figma.test"},
        enabled_providers=[],
        handshake_timeout=0.2,
        log_level="DEBUG",
        cors_origins=["*"],
    )


@pytest.fixture
def test_app(test_settings):
    """Create a FastAPI test application instance.

    Args:
        test_settings: Test settings fixture.

    Returns:
        FastAPI: Configured test application.
    """
    return create_app(settings=test_settings)


@pytest_asyncio.fixture
async def async_client(test_app):
    """Create an async HTTP client for testing FastAPI endpoints.

    Args:
        test_app: Test application fixture.

    Yields:
        AsyncClient: Async HTTP client for making test requests.
    """
    # Trigger the lifespan startup manually for tests
    async with test_app.router.lifespan_context(test_app):
        transport = ASGITransport(app=test_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client


class FakeTransport:
    """In-memory stand-in for SessionTransport.

    ``tools`` is the raw ``tools/list`` payload; ``results`` maps a tool name
    to the raw ``tools/call`` result (or a JsonRpcResponse to return as is).
    """

    def __init__(self, url="http://provider.test", tools=None, results=None):
        self.url = url
        self.tools = tools or []
        self.results = results or {}
        self.state = TransportState.IDLE
        self.session_id = None
        self.calls = []
        self.on_closed = None
        self.open = AsyncMock(side_effect=self._open)
        self.close = AsyncMock(side_effect=self._close)

    async def _open(self):
        self.state = TransportState.OPEN
        self.session_id = "abc123"

    async def _close(self):
        self.state = TransportState.CLOSED
        self.session_id = None

    def drop(self):
        """Simulate the provider ending the event stream."""
        self.state = TransportState.CLOSED
        self.session_id = None
        if self.on_closed is not None:
            self.on_closed()

    async def notify(self, method, params=None):
        self.calls.append((method, params))

    async def call(self, method, params=None):
        self.calls.append((method, params))
        if method == "initialize":
            return JsonRpcResponse(id=1, result={"serverInfo": {"name": "fake"}})
        if method == "tools/list":
            return JsonRpcResponse(id=1, result={"tools": self.tools})
        if method == "tools/call":
            result = self.results[params["name"]]
            if isinstance(result, JsonRpcResponse):
                return result
            if isinstance(result, Exception):
                raise result
            return JsonRpcResponse(id=1, result=result)
        raise AssertionError(f"Unexpected method {method}")


@pytest.fixture
def figma_tools():
    """A tools/list payload with a single get_nodes tool."""
    return [
        {
            "name": "get_nodes",
            "description": "List nodes in the current Figma file",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "node_ids": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Optional node ids",
                    }
                },
                "additionalProperties": False,
                "$schema": "http://json-schema.org/draft-07/schema#",
            },
        }
    ]


@pytest.fixture
def fake_transport_cls():
    """The FakeTransport class, for tests that build their own providers."""
    return FakeTransport
