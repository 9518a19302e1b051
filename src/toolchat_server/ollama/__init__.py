"""Ollama client wrapper and integration layer.

This package provides the async client used as the language model backend.
All Ollama interactions are async and use streaming.
"""

from toolchat_server.ollama.client import OllamaClient
from toolchat_server.ollama.types import FunctionCall, ModelReply

__all__ = ["OllamaClient", "FunctionCall", "ModelReply"]
