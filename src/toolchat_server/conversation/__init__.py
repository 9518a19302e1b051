"""Conversation state and tool-augmented orchestration.

This package holds the in-memory conversation, the orchestrator that runs
model rounds with provider tool calls, and the controller exposing rounds as
fire-and-forget submissions with observable state.
"""

from toolchat_server.conversation.controller import ChatController, ChatState
from toolchat_server.conversation.conversation import Conversation
from toolchat_server.conversation.orchestrator import (
    ConversationOrchestrator,
    render_tool_result,
)
from toolchat_server.conversation.types import (
    AssistantMessage,
    Message,
    SystemMessage,
    ToolMessage,
    UserMessage,
)

__all__ = [
    # Core classes
    "ChatController",
    "ChatState",
    "Conversation",
    "ConversationOrchestrator",
    "render_tool_result",
    # Message types
    "Message",
    "UserMessage",
    "SystemMessage",
    "AssistantMessage",
    "ToolMessage",
]
