"""Capability discovery and conversion to model function declarations."""

import logging
from typing import Any, Protocol

from pydantic import ValidationError

from toolchat_server.errors import ProviderError
from toolchat_server.mcp.schema import SchemaNode
from toolchat_server.mcp.types import Capability, FunctionDeclaration, JsonRpcResponse

logger = logging.getLogger(__name__)

MAX_LIST_PAGES = 50


class CallableSession(Protocol):
    """Anything that can issue a session-scoped JSON-RPC request."""

    async def call(
        self, method: str, params: dict[str, Any] | None = None
    ) -> JsonRpcResponse: ...


class CapabilityRegistry:
    """Enumerates provider capabilities and projects them for the model.

    The registry itself is stateless; capability snapshots are owned by the
    provider handle that fetched them.
    """

    async def list_capabilities(self, session: CallableSession) -> list[Capability]:
        """Fetch every capability the provider exposes.

        Follows ``nextCursor`` pagination. Entries without a name or with a
        schema that cannot be read are skipped with a warning.

        Args:
            session: An open session with the provider

        Returns:
            list[Capability]: Capabilities in provider order (empty if none)

        Raises:
            ProviderError: If the provider answers with a JSON-RPC error
            TransportError: If the request cannot be delivered
        """
        capabilities: list[Capability] = []
        cursor: str | None = None

        for _ in range(MAX_LIST_PAGES):
            params = {"cursor": cursor} if cursor else None
            response = await session.call("tools/list", params)

            if response.error is not None:
                raise ProviderError(
                    f"tools/list failed: {response.error.message}",
                    code=response.error.code,
                )

            result = response.result if isinstance(response.result, dict) else {}
            for entry in result.get("tools") or []:
                capability = self._parse_capability(entry)
                if capability is not None:
                    capabilities.append(capability)

            cursor = result.get("nextCursor")
            if not cursor:
                break
        else:
            logger.warning(f"Stopped listing capabilities after {MAX_LIST_PAGES} pages")

        logger.info(f"Discovered {len(capabilities)} capabilities")
        return capabilities

    def to_function_declarations(
        self, capabilities: list[Capability]
    ) -> list[FunctionDeclaration]:
        """Convert capabilities to model function declarations.

        Pure and order-preserving; one declaration per capability.
        """
        declarations = []
        for capability in capabilities:
            parameters = capability.parameter_schema.to_dict()
            parameters.setdefault("type", "object")
            if parameters["type"] == "object":
                parameters.setdefault("properties", {})
            declarations.append(
                FunctionDeclaration(
                    name=capability.name,
                    description=capability.description,
                    parameters=parameters,
                )
            )
        return declarations

    @staticmethod
    def _parse_capability(entry: Any) -> Capability | None:
        if not isinstance(entry, dict) or not entry.get("name"):
            logger.warning(f"Skipping capability without a name: {entry!r}")
            return None

        name = str(entry["name"])
        try:
            schema = SchemaNode.model_validate(entry.get("inputSchema") or {})
        except ValidationError as e:
            logger.warning(f"Skipping capability {name} with malformed schema: {e}")
            return None

        return Capability(
            name=name,
            description=entry.get("description") or "",
            parameter_schema=schema,
        )
