"""Pytest configuration for integration tests.

This module provides integration-test-specific fixtures that replace the
Ollama client and provider sessions with test doubles before the app's
lifespan builds them.
"""

from unittest.mock import AsyncMock, patch

import pytest


@pytest.fixture(autouse=True)
def mock_ollama_client():
    """Mock OllamaClient for all integration tests.

    This fixture patches the OllamaClient class before the app is created,
    ensuring the lifespan uses our mock instead of creating a real client.
    """
    with patch("toolchat_server.app.OllamaClient") as mock_client_class:
        mock_instance = AsyncMock()
        mock_instance.host = "http://localhost:11434"
        mock_instance.check_connection.return_value = True

        mock_client_class.return_value = mock_instance

        yield mock_instance


@pytest.fixture
def provider_results():
    """tools/call results served by fake providers, keyed by tool name."""
    return {"get_nodes": {"nodes": [{"id": "1", "type": "FRAME"}]}}


@pytest.fixture(autouse=True)
def created_transports(fake_transport_cls, figma_tools, provider_results):
    """Patch the transport factory so providers are served in memory.

    Yields:
        list: Every FakeTransport the app created, in creation order.
    """
    transports = []

    def factory_from_settings(settings):
        def factory(url):
            transport = fake_transport_cls(
                url=url, tools=figma_tools, results=provider_results
            )
            transports.append(transport)
            return transport

        return factory

    with patch(
        "toolchat_server.app.transport_factory_from_settings",
        side_effect=factory_from_settings,
    ):
        yield transports
