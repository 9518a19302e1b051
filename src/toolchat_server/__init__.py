"""toolchat-server: Headless FastAPI server for tool-augmented LLM conversations.

This package provides a REST API and SSE interface for chatting with an Ollama
model that can call tools exposed by MCP-style capability providers.
"""

__version__ = "0.1.0"

from toolchat_server.app import create_app  # noqa: E402

__all__ = ["create_app", "__version__"]
