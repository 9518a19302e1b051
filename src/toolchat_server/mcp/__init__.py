"""Capability-provider integration layer.

This package provides the SSE session transport used to talk to MCP-style
capability providers, and the registry that turns their tool schemas into
model function declarations.
"""

from toolchat_server.mcp.registry import CapabilityRegistry
from toolchat_server.mcp.schema import SchemaNode, sanitize_schema
from toolchat_server.mcp.transport import SessionTransport
from toolchat_server.mcp.types import (
    Capability,
    FunctionDeclaration,
    JsonRpcResponse,
    Session,
    ToolInvocationResult,
    TransportState,
)

__all__ = [
    "Capability",
    "CapabilityRegistry",
    "FunctionDeclaration",
    "JsonRpcResponse",
    "SchemaNode",
    "Session",
    "SessionTransport",
    "ToolInvocationResult",
    "TransportState",
    "sanitize_schema",
]
