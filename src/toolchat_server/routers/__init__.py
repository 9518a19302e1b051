"""FastAPI routers for API endpoints.

This package contains all route handlers organized by resource type.
Each router module defines endpoints for a specific domain (health, chat, providers).
"""

from toolchat_server.routers import chat, health, providers

__all__ = [
    "chat",
    "health",
    "providers",
]
