"""Dependency injection providers for FastAPI endpoints.

This module provides FastAPI dependency functions that are used across
multiple routers to inject the long-lived objects created at startup.
"""

from functools import lru_cache

from fastapi import HTTPException, Request

from toolchat_server.config import ToolchatServerSettings
from toolchat_server.conversation import ChatController, Conversation
from toolchat_server.providers import ProviderLifecycleManager


@lru_cache
def get_settings() -> ToolchatServerSettings:
    """Get the application settings instance.

    This function is cached so that the same settings instance is reused
    across all requests. Settings are loaded from environment variables
    with the TOOLCHAT_ prefix.

    Returns:
        ToolchatServerSettings: The application configuration settings.
    """
    return ToolchatServerSettings()


def _get_state(request: Request, name: str, label: str):
    if not hasattr(request.app.state, name):
        raise HTTPException(
            status_code=503,
            detail={
                "error": {
                    "code": "not_initialized",
                    "message": f"{label} not initialized",
                    "details": {},
                }
            },
        )
    return getattr(request.app.state, name)


def get_lifecycle_manager(request: Request) -> ProviderLifecycleManager:
    """Get the provider lifecycle manager from app state.

    Raises:
        HTTPException: If the manager is not initialized (503 Service Unavailable).
    """
    return _get_state(request, "lifecycle_manager", "Provider lifecycle manager")


def get_chat_controller(request: Request) -> ChatController:
    """Get the chat controller from app state.

    Raises:
        HTTPException: If the controller is not initialized (503 Service Unavailable).
    """
    return _get_state(request, "chat_controller", "Chat controller")


def get_conversation(request: Request) -> Conversation:
    """Get the process-wide conversation from app state.

    Raises:
        HTTPException: If the conversation is not initialized (503 Service Unavailable).
    """
    return _get_state(request, "conversation", "Conversation")
