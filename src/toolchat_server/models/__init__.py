"""Pydantic models for API request and response schemas.

This package contains all Pydantic models used for validating and
serializing API requests and responses across all endpoints.
"""

from toolchat_server.models.chat import (
    ChatRequest,
    ChatStateResponse,
    ChatSubmitResponse,
    MessageResponse,
    MessagesResponse,
)
from toolchat_server.models.health import HealthResponse
from toolchat_server.models.providers import ProviderListResponse, ProviderResponse

__all__ = [
    "ChatRequest",
    "ChatStateResponse",
    "ChatSubmitResponse",
    "HealthResponse",
    "MessageResponse",
    "MessagesResponse",
    "ProviderListResponse",
    "ProviderResponse",
]
