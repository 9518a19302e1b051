"""Exception hierarchy for toolchat-server.

Transport and provider failures during a single tool invocation are captured
by the orchestrator and reported to the model. The remaining errors abort the
current chat round or surface directly to the API caller.
"""

from enum import Enum


class ConnectErrorKind(str, Enum):
    """Reasons a session handshake can fail."""

    TIMEOUT = "timeout"
    PARSE_FAILURE = "parse_failure"
    STREAM_ERROR = "stream_error"


class TransportErrorKind(str, Enum):
    """Reasons a session-scoped request can fail."""

    NOT_CONNECTED = "not_connected"
    HTTP_FAILURE = "http_failure"


class ErrorKind(str, Enum):
    """Reasons a chat round can fail."""

    UNKNOWN_TOOL = "unknown_tool"
    EMPTY_RESPONSE = "empty_response"
    PROVIDER_ERROR = "provider_error"


class ToolchatError(Exception):
    """Base exception for all toolchat-server errors."""


class ConnectError(ToolchatError):
    """Establishing a provider session failed."""

    def __init__(self, kind: ConnectErrorKind, message: str):
        super().__init__(message)
        self.kind = kind


class TransportError(ToolchatError):
    """A request over an established session failed."""

    def __init__(
        self,
        kind: TransportErrorKind,
        message: str,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


class ProviderError(ToolchatError):
    """The provider answered with a JSON-RPC error or a malformed reply."""

    def __init__(self, message: str, code: int | None = None):
        super().__init__(message)
        self.code = code


class OrchestrationError(ToolchatError):
    """A chat round was aborted."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind


class ModelBackendError(ToolchatError):
    """The language model backend could not produce a reply."""


class ProviderNotFoundError(ToolchatError):
    """No provider is configured under the requested id."""

    def __init__(self, provider_id: str):
        super().__init__(f"Provider '{provider_id}' is not configured")
        self.provider_id = provider_id


class ChatBusyError(ToolchatError):
    """A chat round is already in flight."""
