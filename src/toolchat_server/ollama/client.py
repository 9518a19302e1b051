"""Async Ollama client wrapper.

This module provides an async wrapper around the ollama.AsyncClient for
communicating with the Ollama API. All operations are async and the client
is designed to be created once at startup and reused.
"""

import logging
from typing import Any, AsyncIterator

import ollama

from toolchat_server.errors import ModelBackendError
from toolchat_server.ollama.types import FunctionCall, ModelReply

logger = logging.getLogger(__name__)


class OllamaClient:
    """Async client for interacting with Ollama API.

    This client wraps ollama.AsyncClient. All chat operations use streaming;
    ``chat`` collects the stream into a single ModelReply.

    Attributes:
        host: The Ollama server URL (e.g., "http://localhost:11434")
        _client: The underlying ollama.AsyncClient instance
    """

    def __init__(self, host: str) -> None:
        """Initialize the Ollama client.

        Args:
            host: The Ollama server URL
        """
        self.host = host
        self._client = ollama.AsyncClient(host=host)
        logger.info(f"OllamaClient initialized with host: {host}")

    async def check_connection(self) -> bool:
        """Check if the Ollama server is reachable.

        Returns:
            bool: True if connection is successful, False otherwise
        """
        try:
            await self._client.list()
            logger.debug("Ollama connection check: successful")
            return True
        except Exception as e:
            logger.warning(f"Ollama connection check failed: {e}")
            return False

    async def chat_stream(
        self,
        model: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        options: dict[str, Any] | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """Stream chat responses from Ollama.

        Args:
            model: The model name to use for the chat
            messages: List of message dicts in Ollama format
            tools: Optional function declarations in Ollama tool format
            options: Optional model parameters (temperature, etc.)

        Yields:
            dict: Response chunks from Ollama. Each chunk contains:
                  - message: dict - role, content and possibly tool_calls
                  - done: bool - True on the final chunk
                  - (final chunk includes eval_count, prompt_eval_count, etc.)

        Raises:
            Exception: If the Ollama API request fails
        """
        try:
            logger.debug(
                f"Starting chat stream with model: {model}, "
                f"{len(messages)} messages, {len(tools or [])} tools"
            )

            async for chunk in await self._client.chat(
                model=model,
                messages=messages,
                tools=tools or None,
                stream=True,
                options=options,
            ):
                # Convert the chunk to a dict if it's not already
                if hasattr(chunk, "model_dump"):
                    chunk_dict = chunk.model_dump()
                elif isinstance(chunk, dict):
                    chunk_dict = chunk
                else:
                    chunk_dict = vars(chunk)

                yield chunk_dict

            logger.debug("Chat stream completed")

        except Exception as e:
            logger.error(f"Chat stream failed: {e}")
            raise

    async def chat(
        self,
        model: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> ModelReply:
        """Collect a complete reply from Ollama's streaming API.

        Text content is concatenated; tool calls are gathered from every chunk
        in the order they were emitted.

        Args:
            model: Model name to use
            messages: Messages in Ollama format
            tools: Optional function declarations in Ollama tool format

        Returns:
            ModelReply: The assembled reply

        Raises:
            ModelBackendError: If the request fails
        """
        reply = ModelReply()
        content_parts = []

        try:
            async for chunk in self.chat_stream(model=model, messages=messages, tools=tools):
                message = chunk.get("message") or {}
                content = message.get("content") or ""
                if content:
                    content_parts.append(content)

                for tool_call in message.get("tool_calls") or []:
                    reply.function_calls.append(
                        FunctionCall.from_ollama_tool_call(tool_call)
                    )

                if chunk.get("done"):
                    reply.eval_count = chunk.get("eval_count")
                    reply.prompt_eval_count = chunk.get("prompt_eval_count")
        except Exception as e:
            raise ModelBackendError(f"Failed to get response from Ollama: {e}") from e

        reply.text = "".join(content_parts)
        logger.debug(
            f"Model reply: {len(reply.text)} characters, "
            f"{len(reply.function_calls)} function calls"
        )
        return reply

    async def close(self) -> None:
        """Close the client and clean up resources.

        ollama.AsyncClient uses httpx internally which handles cleanup.
        """
        logger.debug("OllamaClient closed")
