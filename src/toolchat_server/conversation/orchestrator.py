"""Tool-augmented conversation orchestration.

One user submission runs at most two model rounds:

1. The conversation and the function declarations of every enabled provider
   are sent to the model.
2. If the model answers with text, that is the result. If it answers with
   function-call intents, each intent is executed against the provider that
   owns the capability, in emission order, and the results are appended as
   tool turns. The full conversation is then sent back to the model once
   more, and its text is the result.

Tool chaining stops after that single follow-up round.
"""

import json
import logging
from typing import Any

from toolchat_server.conversation.conversation import Conversation
from toolchat_server.errors import (
    ErrorKind,
    ModelBackendError,
    OrchestrationError,
    ProviderError,
    TransportError,
)
from toolchat_server.mcp.types import FunctionDeclaration, ToolInvocationResult
from toolchat_server.ollama.client import OllamaClient
from toolchat_server.ollama.types import FunctionCall, ModelReply
from toolchat_server.providers.registry import (
    DispatchTable,
    ProviderHandle,
    ProviderRegistry,
)

logger = logging.getLogger(__name__)


def render_tool_result(capability_name: str, result: Any) -> ToolInvocationResult:
    """Turn a ``tools/call`` result into a ToolInvocationResult.

    MCP results carry a ``content`` list: text items are joined by newlines,
    image items become ``[Image: <data>]`` and ``isError`` marks a failure.
    Any other result is passed to the model as JSON.
    """
    if isinstance(result, dict) and isinstance(result.get("content"), list):
        parts = []
        for item in result["content"]:
            if not isinstance(item, dict):
                continue
            if item.get("type") == "text":
                parts.append(str(item.get("text", "")))
            elif item.get("type") == "image":
                parts.append(f"[Image: {item.get('data', '')}]")
        text = "\n".join(parts).strip()

        if result.get("isError"):
            return ToolInvocationResult(
                capability_name=capability_name,
                success=False,
                error=text or "Tool execution failed",
                error_kind=ErrorKind.PROVIDER_ERROR,
            )
        return ToolInvocationResult(
            capability_name=capability_name, success=True, content=text
        )

    return ToolInvocationResult(
        capability_name=capability_name,
        success=True,
        content=json.dumps(result if result is not None else {}, ensure_ascii=False),
    )


class ConversationOrchestrator:
    """Drives chat rounds between the user, the model and capability providers."""

    def __init__(
        self,
        model_client: OllamaClient,
        registry: ProviderRegistry,
        conversation: Conversation,
        model: str,
    ):
        """Initialize the orchestrator.

        Args:
            model_client: Language model backend
            registry: Shared registry of enabled providers (read only here)
            conversation: The conversation to append turns to
            model: Model name passed to the backend
        """
        self.model_client = model_client
        self.registry = registry
        self.conversation = conversation
        self.model = model

    async def submit(self, text: str) -> str:
        """Run one user-initiated round and return the model's final text.

        Args:
            text: The user's message

        Returns:
            str: Final model text

        Raises:
            OrchestrationError: UNKNOWN_TOOL if an intent names an unregistered
                capability, EMPTY_RESPONSE if the model produced no usable text
            ModelBackendError: If the model call fails
            Exception: Anything unexpected is re-raised as is

        A failed round appends one error turn to the conversation before
        re-raising.
        """
        self.conversation.add_user_message(text)

        try:
            return await self._run_round()
        except (OrchestrationError, ModelBackendError) as e:
            logger.error(f"Chat round failed: {e}")
            self.conversation.add_error(str(e))
            raise
        except Exception as e:
            logger.error(f"Chat round failed unexpectedly: {e!r}")
            self.conversation.add_error(f"Unexpected error: {e}")
            raise

    async def _run_round(self) -> str:
        # Both are read together so the round sees one consistent registry state
        declarations = self.registry.function_declarations()
        dispatch = self.registry.dispatch

        reply = await self._ask_model(declarations)

        if not reply.function_calls:
            if not reply.has_text:
                raise OrchestrationError(
                    ErrorKind.EMPTY_RESPONSE, "The model returned an empty response"
                )
            self._append_reply(reply)
            return reply.text

        targets = self._resolve_all(reply.function_calls, dispatch)

        results = []
        for call, provider in targets:
            results.append(await self._invoke(call, provider))

        self.conversation.add_function_calls(
            reply.function_calls, content=reply.text, model=self.model
        )
        for result in results:
            self.conversation.add_tool_result(result)

        follow_up = await self._ask_model(declarations)

        if follow_up.has_text:
            if follow_up.function_calls:
                logger.warning(
                    f"Ignoring {len(follow_up.function_calls)} function calls "
                    "requested in the follow-up round"
                )
            self._append_reply(follow_up)
            return follow_up.text

        if follow_up.function_calls:
            raise OrchestrationError(
                ErrorKind.EMPTY_RESPONSE,
                "The model requested further tool calls after the follow-up round",
            )
        raise OrchestrationError(
            ErrorKind.EMPTY_RESPONSE, "The model returned an empty response"
        )

    async def _ask_model(self, declarations: list[FunctionDeclaration]) -> ModelReply:
        messages = self.conversation.to_ollama_messages()
        tools = [declaration.to_ollama_tool() for declaration in declarations]
        logger.info(
            f"Sending {len(messages)} messages and {len(tools)} tools to {self.model}"
        )
        return await self.model_client.chat(
            model=self.model, messages=messages, tools=tools or None
        )

    def _append_reply(self, reply: ModelReply) -> None:
        self.conversation.add_assistant_message(
            reply.text,
            model=self.model,
            eval_count=reply.eval_count,
            prompt_eval_count=reply.prompt_eval_count,
        )

    @staticmethod
    def _resolve_all(
        function_calls: list[FunctionCall], dispatch: DispatchTable
    ) -> list[tuple[FunctionCall, ProviderHandle]]:
        """Resolve every intent before any provider is called."""
        targets = []
        for call in function_calls:
            provider = dispatch.resolve(call.name)
            if provider is None:
                raise OrchestrationError(
                    ErrorKind.UNKNOWN_TOOL,
                    f"The model called unknown tool '{call.name}'",
                )
            targets.append((call, provider))
        return targets

    async def _invoke(
        self, call: FunctionCall, provider: ProviderHandle
    ) -> ToolInvocationResult:
        """Execute one intent. Provider-side failures are captured, not raised."""
        logger.info(f"Calling {call.name} on provider {provider.provider_id}")

        try:
            response = await provider.transport.call(
                "tools/call", {"name": call.name, "arguments": call.arguments}
            )
        except (TransportError, ProviderError) as e:
            logger.warning(f"{call.name} on {provider.provider_id} failed: {e}")
            return ToolInvocationResult(
                capability_name=call.name,
                success=False,
                error=str(e),
                error_kind=ErrorKind.PROVIDER_ERROR,
            )

        if response.error is not None:
            logger.warning(
                f"{call.name} on {provider.provider_id} returned error "
                f"{response.error.code}: {response.error.message}"
            )
            return ToolInvocationResult(
                capability_name=call.name,
                success=False,
                error=response.error.message or f"Provider error {response.error.code}",
                error_kind=ErrorKind.PROVIDER_ERROR,
            )

        return render_tool_result(call.name, response.result)
