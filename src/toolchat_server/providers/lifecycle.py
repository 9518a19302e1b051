"""Provider lifecycle management.

Opens a session when a provider is enabled and closes it when the provider is
disabled, keeping the set of open transports identical to the set of enabled
providers in the ``ProviderRegistry``.
"""

import asyncio
import logging
from typing import Callable

from toolchat_server.config import ToolchatServerSettings
from toolchat_server.errors import ProviderError, ProviderNotFoundError
from toolchat_server.mcp.registry import CapabilityRegistry
from toolchat_server.mcp.transport import SessionTransport
from toolchat_server.mcp.types import TransportState
from toolchat_server.providers.registry import ProviderHandle, ProviderRegistry

logger = logging.getLogger(__name__)

MCP_PROTOCOL_VERSION = "2024-11-05"
CLIENT_INFO = {"name": "toolchat-server", "version": "0.1.0"}

TransportFactory = Callable[[str], SessionTransport]


def transport_factory_from_settings(
    settings: ToolchatServerSettings,
) -> TransportFactory:
    """Build a factory creating transports with the configured timeouts."""

    def factory(url: str) -> SessionTransport:
        return SessionTransport(
            url,
            handshake_timeout=settings.handshake_timeout,
            request_timeout=settings.request_timeout,
            sse_path=settings.sse_path,
            session_event=settings.session_event,
            messages_path=settings.messages_path,
        )

    return factory


class ProviderLifecycleManager:
    """Enables and disables capability providers.

    Toggles are serialized with a lock; every registry mutation goes through
    ``enable``/``disable`` or the removal of a provider whose session dropped.
    """

    def __init__(
        self,
        provider_urls: dict[str, str],
        registry: ProviderRegistry,
        transport_factory: TransportFactory,
        capability_registry: CapabilityRegistry | None = None,
    ):
        """Initialize the manager.

        Args:
            provider_urls: Configured providers, id -> base URL
            registry: The shared registry of enabled providers
            transport_factory: Callable building an unopened transport for a URL
            capability_registry: Capability lister (default: a new one)
        """
        self.provider_urls = dict(provider_urls)
        self.registry = registry
        self._transport_factory = transport_factory
        self._capabilities = capability_registry or CapabilityRegistry()
        self._lock = asyncio.Lock()
        self._drop_tasks: set[asyncio.Task[None]] = set()

    def is_enabled(self, provider_id: str) -> bool:
        return self.registry.is_enabled(provider_id)

    async def enable(self, provider_id: str) -> ProviderHandle:
        """Open a session with a provider and register its capabilities.

        No-op if the provider is already enabled with an open session. A
        provider whose session has dropped is disabled automatically; enabling
        it again opens a fresh session. On failure the transport is closed, the
        provider stays disabled and the error is re-raised; there is no retry.

        Args:
            provider_id: Configured provider id

        Returns:
            ProviderHandle: The handle of the enabled provider

        Raises:
            ProviderNotFoundError: If the id is not configured
            ConnectError: If the session handshake fails
            TransportError, ProviderError: If initialization or listing fails
        """
        url = self._url_for(provider_id)

        async with self._lock:
            existing = self.registry.get(provider_id)
            if existing is not None:
                if existing.transport.state is TransportState.OPEN:
                    logger.debug(f"Provider {provider_id} already enabled")
                    return existing
                logger.warning(
                    f"Provider {provider_id} session is "
                    f"{existing.transport.state.value}; reconnecting"
                )
                self.registry.remove(provider_id)
                await existing.transport.close()

            transport = self._transport_factory(url)
            transport.on_closed = lambda: self._on_session_dropped(provider_id, transport)
            try:
                await transport.open()
                await self._initialize(transport)
                capabilities = await self._capabilities.list_capabilities(transport)
            except BaseException:
                await transport.close()
                logger.error(f"Failed to enable provider {provider_id} at {url}")
                raise

            handle = ProviderHandle(
                provider_id=provider_id,
                url=url,
                transport=transport,
                capabilities=capabilities,
                declarations=self._capabilities.to_function_declarations(capabilities),
            )
            self.registry.add(handle)

        logger.info(
            f"Enabled provider {provider_id} with {len(capabilities)} capabilities"
        )
        return handle

    async def disable(self, provider_id: str) -> None:
        """Close a provider's session and drop its capabilities.

        No-op if the provider is not enabled.

        Raises:
            ProviderNotFoundError: If the id is not configured
        """
        self._url_for(provider_id)

        async with self._lock:
            handle = self.registry.remove(provider_id)
            if handle is None:
                logger.debug(f"Provider {provider_id} already disabled")
                return
            await handle.transport.close()

        logger.info(f"Disabled provider {provider_id}")

    async def disable_all(self) -> None:
        """Disable every enabled provider (used on shutdown)."""
        for provider_id in self.registry.enabled_ids():
            await self.disable(provider_id)

    def _on_session_dropped(self, provider_id: str, transport: SessionTransport) -> None:
        """Schedule removal of a provider whose event stream ended."""
        task = asyncio.create_task(self._remove_dropped(provider_id, transport))
        self._drop_tasks.add(task)
        task.add_done_callback(self._drop_tasks.discard)

    async def _remove_dropped(self, provider_id: str, transport: SessionTransport) -> None:
        async with self._lock:
            handle = self.registry.get(provider_id)
            # The provider may have been disabled or re-enabled meanwhile
            if handle is None or handle.transport is not transport:
                return
            self.registry.remove(provider_id)
            await transport.close()
        logger.warning(f"Provider {provider_id} dropped its session; disabled")

    def _url_for(self, provider_id: str) -> str:
        url = self.provider_urls.get(provider_id)
        if url is None:
            raise ProviderNotFoundError(provider_id)
        return url

    async def _initialize(self, transport: SessionTransport) -> None:
        response = await transport.call(
            "initialize",
            {
                "protocolVersion": MCP_PROTOCOL_VERSION,
                "capabilities": {"tools": {}},
                "clientInfo": CLIENT_INFO,
            },
        )
        if response.error is not None:
            raise ProviderError(
                f"initialize failed: {response.error.message}",
                code=response.error.code,
            )
        if isinstance(response.result, dict):
            logger.debug(f"Provider server info: {response.result.get('serverInfo')}")
        await transport.notify("notifications/initialized")
