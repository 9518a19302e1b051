"""In-memory conversation history.

The conversation is process-wide and lives only as long as the server
process. Turns are appended, never rewritten; the whole sequence is what the
model sees on every round.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from toolchat_server.conversation.types import (
    AssistantMessage,
    Message,
    SystemMessage,
    ToolMessage,
    UserMessage,
)
from toolchat_server.mcp.types import ToolInvocationResult
from toolchat_server.ollama.types import FunctionCall

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _message_id() -> str:
    return uuid.uuid4().hex[:10]


class Conversation:
    """Ordered sequence of conversation turns."""

    def __init__(self, system_prompt: str | None = None):
        """Initialize an empty conversation.

        Args:
            system_prompt: Optional system prompt kept as the first turn
        """
        self._system_prompt = system_prompt
        self.messages: list[Message] = []
        self._seed()

    def __len__(self) -> int:
        return len(self.messages)

    def add_message(self, message: Message) -> None:
        """Append a turn."""
        self.messages.append(message)

    def add_user_message(self, content: str) -> UserMessage:
        message = UserMessage(content=content, message_id=_message_id(), timestamp=_now())
        self.add_message(message)
        return message

    def add_assistant_message(
        self,
        content: str,
        model: str = "",
        eval_count: int | None = None,
        prompt_eval_count: int | None = None,
    ) -> AssistantMessage:
        message = AssistantMessage(
            content=content,
            model=model,
            message_id=_message_id(),
            timestamp=_now(),
            eval_count=eval_count,
            prompt_eval_count=prompt_eval_count,
        )
        self.add_message(message)
        return message

    def add_function_calls(
        self, function_calls: list[FunctionCall], content: str = "", model: str = ""
    ) -> AssistantMessage:
        """Append the model turn that emitted function-call intents."""
        message = AssistantMessage(
            content=content,
            model=model,
            message_id=_message_id(),
            timestamp=_now(),
            tool_calls=[call.to_ollama_tool_call() for call in function_calls],
        )
        self.add_message(message)
        return message

    def add_tool_result(self, result: ToolInvocationResult) -> ToolMessage:
        message = ToolMessage(
            tool_name=result.capability_name,
            content=result.to_model_content(),
            success=result.success,
            error=result.error,
            error_code=result.error_kind.value if result.error_kind else None,
            message_id=_message_id(),
            timestamp=_now(),
        )
        self.add_message(message)
        return message

    def add_error(self, content: str) -> AssistantMessage:
        """Append a user-visible error turn."""
        message = AssistantMessage(
            content=content,
            message_id=_message_id(),
            timestamp=_now(),
            is_error=True,
        )
        self.add_message(message)
        return message

    def clear(self) -> None:
        """Drop every turn except the system prompt."""
        self.messages = []
        self._seed()
        logger.info("Conversation cleared")

    def to_ollama_messages(self) -> list[dict[str, Any]]:
        """Convert turns to Ollama chat format, skipping error turns."""
        ollama_messages = []

        for msg in self.messages:
            if isinstance(msg, AssistantMessage) and msg.is_error:
                continue

            ollama_msg: dict[str, Any] = {
                "role": msg.role,
                "content": msg.content,
            }
            if isinstance(msg, AssistantMessage) and msg.tool_calls:
                ollama_msg["tool_calls"] = msg.tool_calls
            if isinstance(msg, ToolMessage):
                ollama_msg["tool_name"] = msg.tool_name

            ollama_messages.append(ollama_msg)

        return ollama_messages

    def _seed(self) -> None:
        if self._system_prompt:
            self.messages.append(
                SystemMessage(
                    content=self._system_prompt,
                    message_id=_message_id(),
                    timestamp=_now(),
                )
            )
