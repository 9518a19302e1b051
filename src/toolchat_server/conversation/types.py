"""Data types for conversation turns.

This module defines the message dataclasses that make up a conversation:
user text, model replies (optionally carrying function-call intents), tool
results, and the system prompt.
"""

from dataclasses import dataclass
from typing import Any


@dataclass
class UserMessage:
    """A message from the user."""

    role: str = "user"
    content: str = ""
    message_id: str = ""
    timestamp: str = ""

    def __post_init__(self) -> None:
        """Validate role is always 'user'."""
        self.role = "user"


@dataclass
class SystemMessage:
    """A system prompt message."""

    role: str = "system"
    content: str = ""
    message_id: str = ""
    timestamp: str = ""

    def __post_init__(self) -> None:
        """Validate role is always 'system'."""
        self.role = "system"


@dataclass
class AssistantMessage:
    """A response from the model.

    ``tool_calls`` holds the function-call intents of a tool round.
    ``is_error`` marks the user-visible message appended when a round is
    aborted; such messages are never sent back to the model.
    """

    role: str = "assistant"
    content: str = ""
    model: str = ""
    message_id: str = ""
    timestamp: str = ""
    eval_count: int | None = None
    prompt_eval_count: int | None = None
    tool_calls: list[dict[str, Any]] | None = None
    is_error: bool = False

    def __post_init__(self) -> None:
        """Validate role is always 'assistant'."""
        self.role = "assistant"


@dataclass
class ToolMessage:
    """A tool execution result."""

    role: str = "tool"
    tool_name: str = ""
    content: str = ""
    success: bool = True
    error: str | None = None
    error_code: str | None = None
    message_id: str = ""
    timestamp: str = ""

    def __post_init__(self) -> None:
        """Validate role is always 'tool'."""
        self.role = "tool"


# Union type for all message types
Message = UserMessage | SystemMessage | AssistantMessage | ToolMessage
