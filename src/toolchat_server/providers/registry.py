"""Enabled-provider registry and capability dispatch table.

``ProviderRegistry`` is the single shared record of which providers are
enabled. Only ``ProviderLifecycleManager`` mutates it. Each mutation builds a
fresh ``DispatchTable`` and swaps it in, so a chat round that grabbed the
previous table keeps a consistent view.
"""

import logging
from dataclasses import dataclass, field

from toolchat_server.mcp.transport import SessionTransport
from toolchat_server.mcp.types import Capability, FunctionDeclaration

logger = logging.getLogger(__name__)


@dataclass
class ProviderHandle:
    """An enabled provider with its open session and capability snapshot."""

    provider_id: str
    url: str
    transport: SessionTransport
    capabilities: list[Capability] = field(default_factory=list)
    declarations: list[FunctionDeclaration] = field(default_factory=list)

    @property
    def capability_names(self) -> list[str]:
        return [capability.name for capability in self.capabilities]


class DispatchTable:
    """Maps capability names to the provider that owns them."""

    def __init__(self) -> None:
        self._entries: dict[str, ProviderHandle] = {}

    def register(self, capability_name: str, provider: ProviderHandle) -> None:
        """Register a capability; a later registration for the same name wins."""
        previous = self._entries.get(capability_name)
        if previous is not None and previous.provider_id != provider.provider_id:
            logger.warning(
                f"Capability '{capability_name}' is exposed by both "
                f"'{previous.provider_id}' and '{provider.provider_id}'; "
                f"dispatching to '{provider.provider_id}'"
            )
        self._entries[capability_name] = provider

    def resolve(self, capability_name: str) -> ProviderHandle | None:
        """Return the owning provider, or None if the name is not registered."""
        return self._entries.get(capability_name)

    def remove_provider(self, provider_id: str) -> None:
        """Drop every entry owned by a provider."""
        self._entries = {
            name: handle
            for name, handle in self._entries.items()
            if handle.provider_id != provider_id
        }

    def names(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, capability_name: object) -> bool:
        return capability_name in self._entries


class ProviderRegistry:
    """Process-wide set of enabled providers for one conversation."""

    def __init__(self) -> None:
        self._providers: dict[str, ProviderHandle] = {}
        self._dispatch = DispatchTable()

    @property
    def dispatch(self) -> DispatchTable:
        """The current dispatch table. Never mutated after it is published."""
        return self._dispatch

    def get(self, provider_id: str) -> ProviderHandle | None:
        return self._providers.get(provider_id)

    def is_enabled(self, provider_id: str) -> bool:
        return provider_id in self._providers

    def enabled_ids(self) -> list[str]:
        return list(self._providers)

    def handles(self) -> list[ProviderHandle]:
        return list(self._providers.values())

    def add(self, handle: ProviderHandle) -> None:
        """Record an enabled provider and rebuild dispatch."""
        self._providers[handle.provider_id] = handle
        self._rebuild()

    def remove(self, provider_id: str) -> ProviderHandle | None:
        """Forget a provider and rebuild dispatch."""
        handle = self._providers.pop(provider_id, None)
        if handle is not None:
            self._rebuild()
        return handle

    def function_declarations(self) -> list[FunctionDeclaration]:
        """Declarations of every enabled provider, one per dispatchable name.

        When two providers declare the same name, only the declaration of the
        provider that dispatch resolves to is kept, at its original position.
        """
        dispatch = self._dispatch
        declarations = []
        for handle in self._providers.values():
            for declaration in handle.declarations:
                owner = dispatch.resolve(declaration.name)
                if owner is not None and owner.provider_id == handle.provider_id:
                    declarations.append(declaration)
        return declarations

    def _rebuild(self) -> None:
        table = DispatchTable()
        for handle in self._providers.values():
            for capability in handle.capabilities:
                table.register(capability.name, handle)
        self._dispatch = table
        logger.debug(
            f"Dispatch table rebuilt: {len(table)} capabilities "
            f"from {len(self._providers)} providers"
        )
