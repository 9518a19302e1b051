"""Pydantic models for chat API requests and responses.

This module defines the request and response schemas for the chat endpoints:
fire-and-forget submission, the observable round state, and the message
history.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    """Request body for POST /api/v1/chat."""

    message: str = Field(min_length=1, description="The user message to send.")

    model_config = ConfigDict(
        json_schema_extra={"examples": [{"message": "list the frame nodes"}]}
    )


class ChatSubmitResponse(BaseModel):
    """Response body for an accepted chat submission."""

    accepted: bool = Field(default=True, description="The round was started")


class ChatStateResponse(BaseModel):
    """Observable state of the current chat round."""

    response: str | None = Field(
        default=None, description="Final model text of the last completed round"
    )
    loading: bool = Field(default=False, description="A round is in flight")
    error: str | None = Field(
        default=None, description="Error text of the last failed round"
    )
    error_code: str | None = Field(
        default=None, description="Machine-readable error kind"
    )

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "response": "There is 1 frame node.",
                "loading": False,
                "error": None,
                "error_code": None,
            }
        },
    )


class MessageResponse(BaseModel):
    """A single conversation turn."""

    role: str = Field(description="Message role (system, user, assistant, tool)")
    content: str = Field(description="Message content")
    message_id: str = Field(description="Unique message identifier")
    timestamp: str = Field(description="ISO 8601 timestamp")
    model: str | None = Field(default=None, description="Model that generated this message")
    tool_calls: list[dict[str, Any]] | None = Field(
        default=None, description="Function-call intents emitted by the model"
    )
    tool_name: str | None = Field(default=None, description="Capability of a tool turn")
    success: bool | None = Field(default=None, description="Outcome of a tool turn")
    error_code: str | None = Field(
        default=None, description="Machine-readable failure kind of a tool turn"
    )
    is_error: bool = Field(default=False, description="Turn reports an aborted round")


class MessagesResponse(BaseModel):
    """Response body for GET /api/v1/chat/messages."""

    messages: list[MessageResponse] = Field(default_factory=list)
