"""FastAPI application factory and lifespan management.

This module contains the create_app() factory function that creates and configures
the FastAPI application instance, including lifespan management for startup/shutdown
and router registration.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from toolchat_server import __version__
from toolchat_server.config import ToolchatServerSettings
from toolchat_server.conversation import (
    ChatController,
    Conversation,
    ConversationOrchestrator,
)
from toolchat_server.errors import ToolchatError
from toolchat_server.ollama import OllamaClient
from toolchat_server.providers import (
    ProviderLifecycleManager,
    ProviderRegistry,
    transport_factory_from_settings,
)
from toolchat_server.routers import chat, health, providers

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for FastAPI application.

    Long-lived objects (the Ollama client, the provider registry and its
    lifecycle manager, the conversation and its orchestrator) are created once
    at startup and stored in app.state for reuse across all requests.

    Args:
        app: The FastAPI application instance.

    Yields:
        None: Control is yielded while the app is running.
    """
    settings: ToolchatServerSettings = app.state.settings

    app.state.ollama_client = OllamaClient(host=settings.ollama_host)
    logger.info(f"Initialized Ollama client with host: {settings.ollama_host}")

    connected = await app.state.ollama_client.check_connection()
    if connected:
        logger.info("Successfully connected to Ollama")
    else:
        logger.warning("Could not connect to Ollama - check if server is running")

    app.state.provider_registry = ProviderRegistry()
    app.state.lifecycle_manager = ProviderLifecycleManager(
        provider_urls=settings.providers,
        registry=app.state.provider_registry,
        transport_factory=transport_factory_from_settings(settings),
    )
    app.state.conversation = Conversation(system_prompt=settings.system_prompt)
    app.state.orchestrator = ConversationOrchestrator(
        model_client=app.state.ollama_client,
        registry=app.state.provider_registry,
        conversation=app.state.conversation,
        model=settings.model,
    )
    app.state.chat_controller = ChatController(app.state.orchestrator)

    for provider_id in settings.enabled_providers:
        try:
            await app.state.lifecycle_manager.enable(provider_id)
        except ToolchatError as e:
            logger.warning(f"Could not enable provider {provider_id} at startup: {e}")

    yield

    # Shutdown: Clean up resources
    await app.state.chat_controller.shutdown()
    await app.state.lifecycle_manager.disable_all()
    logger.info("All provider sessions closed")
    await app.state.ollama_client.close()
    logger.info("Ollama client closed")


def create_app(settings: ToolchatServerSettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    This factory function creates a FastAPI instance with all routers,
    middleware, and configuration applied. It can accept an optional
    settings object for testing or explicit configuration.

    Args:
        settings: Optional ToolchatServerSettings instance. If not provided,
                  settings will be loaded from environment variables.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        from toolchat_server.dependencies import get_settings

        settings = get_settings()

    app = FastAPI(
        title="toolchat-server",
        description="Headless FastAPI server for tool-augmented LLM conversations via Ollama",
        version=__version__,
        lifespan=lifespan,
    )

    # Store settings in app.state for lifespan access
    app.state.settings = settings

    # Note: FastAPI's type hints for add_middleware are overly strict
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(chat.router)
    app.include_router(providers.router)

    return app
