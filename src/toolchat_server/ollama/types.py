"""Type definitions for Ollama integration.

This module contains dataclasses used for representing a complete model reply
assembled from Ollama's streamed chat chunks.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class FunctionCall:
    """A function-call intent emitted by the model.

    Attributes:
        name: Name of the capability to invoke
        arguments: Arguments supplied by the model
    """

    name: str
    arguments: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def from_ollama_tool_call(tool_call: Any) -> "FunctionCall":
        """Create a FunctionCall from an Ollama ``message.tool_calls`` entry.

        Args:
            tool_call: Dict or object with a ``function`` member holding
                ``name`` and ``arguments``

        Returns:
            FunctionCall: Parsed intent
        """

        # Helper to get value from either object attribute or dict key
        def get_value(obj: Any, key: str, default: Any = None) -> Any:
            if isinstance(obj, dict):
                return obj.get(key, default)
            return getattr(obj, key, default)

        function = get_value(tool_call, "function", {})
        arguments = get_value(function, "arguments") or {}
        if not isinstance(arguments, dict):
            arguments = dict(arguments)

        return FunctionCall(name=get_value(function, "name", ""), arguments=arguments)

    def to_ollama_tool_call(self) -> dict[str, Any]:
        """Render in the ``tool_calls`` format Ollama expects in history."""
        return {"function": {"name": self.name, "arguments": self.arguments}}


@dataclass
class ModelReply:
    """A complete model reply.

    Exactly what the model produced in one round: text, function-call
    intents, or (for a degenerate reply) neither.

    Attributes:
        text: Concatenated content of all chunks
        function_calls: Intents in emission order
        eval_count: Number of generated tokens, if reported
        prompt_eval_count: Number of prompt tokens, if reported
    """

    text: str = ""
    function_calls: list[FunctionCall] = field(default_factory=list)
    eval_count: int | None = None
    prompt_eval_count: int | None = None

    @property
    def has_text(self) -> bool:
        return bool(self.text.strip())
