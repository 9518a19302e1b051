"""Provider registry and lifecycle management.

This package tracks which capability providers are enabled, owns their open
sessions, and maps capability names to the provider that serves them.
"""

from toolchat_server.providers.lifecycle import (
    ProviderLifecycleManager,
    transport_factory_from_settings,
)
from toolchat_server.providers.registry import (
    DispatchTable,
    ProviderHandle,
    ProviderRegistry,
)

__all__ = [
    "DispatchTable",
    "ProviderHandle",
    "ProviderLifecycleManager",
    "ProviderRegistry",
    "transport_factory_from_settings",
]
