"""Data types for capability-provider sessions.

Wire messages (JSON-RPC envelopes) are pydantic models validated at the
network boundary; everything handed around inside the server is a plain
dataclass.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

from toolchat_server.errors import ErrorKind
from toolchat_server.mcp.schema import SchemaNode


class TransportState(str, Enum):
    """Lifecycle states of a SessionTransport."""

    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class Session:
    """Snapshot of a transport's session."""

    provider_url: str
    session_id: str | None
    transport_state: TransportState


class JsonRpcError(BaseModel):
    """The ``error`` member of a JSON-RPC response."""

    code: int = 0
    message: str = ""
    data: Any = None


class JsonRpcResponse(BaseModel):
    """A JSON-RPC 2.0 response envelope."""

    jsonrpc: str = "2.0"
    id: int | str | None = None
    result: Any = None
    error: JsonRpcError | None = None

    model_config = ConfigDict(extra="ignore")


@dataclass(frozen=True)
class Capability:
    """A tool exposed by a provider, as fetched for one session."""

    name: str
    description: str
    parameter_schema: SchemaNode


@dataclass(frozen=True)
class FunctionDeclaration:
    """Model-facing declaration of a capability."""

    name: str
    description: str
    parameters: dict[str, Any] = field(default_factory=dict)

    def to_ollama_tool(self) -> dict[str, Any]:
        """Render in the tool format accepted by Ollama's chat API."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


@dataclass(frozen=True)
class ToolInvocationResult:
    """Outcome of executing one function-call intent against a provider."""

    capability_name: str
    success: bool
    content: str | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None

    def __post_init__(self) -> None:
        """Validate that exactly one of content/error is populated."""
        if (self.content is None) == (self.error is None):
            raise ValueError("Exactly one of content or error must be set")
        if not self.success and self.content is not None:
            raise ValueError("A failed invocation cannot carry content")
        if self.success and self.error is not None:
            raise ValueError("A successful invocation cannot carry an error")
        if self.success and self.error_kind is not None:
            raise ValueError("A successful invocation cannot carry an error kind")

    def to_model_content(self) -> str:
        """Text fed back to the model for this result."""
        if self.success:
            return self.content or ""
        return f"Error: {self.error}"
