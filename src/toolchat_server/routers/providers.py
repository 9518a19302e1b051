"""Provider API endpoints.

This module provides REST API endpoints for:
- Listing configured capability providers and their status
- Checking whether a provider is enabled
- Enabling a provider (opening its session)
- Disabling a provider (closing its session)
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from toolchat_server.dependencies import get_lifecycle_manager
from toolchat_server.errors import (
    ConnectError,
    ProviderError,
    ProviderNotFoundError,
    TransportError,
)
from toolchat_server.models.providers import ProviderListResponse, ProviderResponse
from toolchat_server.providers import ProviderLifecycleManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/providers", tags=["providers"])


def _provider_response(
    manager: ProviderLifecycleManager, provider_id: str
) -> ProviderResponse:
    handle = manager.registry.get(provider_id)
    if handle is None:
        return ProviderResponse(
            provider_id=provider_id,
            url=manager.provider_urls[provider_id],
            enabled=False,
        )
    return ProviderResponse(
        provider_id=provider_id,
        url=handle.url,
        enabled=True,
        session_id=handle.transport.session_id,
        capabilities=handle.capability_names,
    )


def _not_found(e: ProviderNotFoundError) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={
            "error": {
                "code": "provider_not_found",
                "message": str(e),
                "details": {"provider_id": e.provider_id},
            }
        },
    )


@router.get("", response_model=ProviderListResponse, summary="List providers")
async def list_providers(
    manager: Annotated[ProviderLifecycleManager, Depends(get_lifecycle_manager)],
) -> ProviderListResponse:
    """List every configured provider with its enabled flag and capabilities."""
    return ProviderListResponse(
        providers=[
            _provider_response(manager, provider_id)
            for provider_id in manager.provider_urls
        ]
    )


@router.get("/{provider_id}", response_model=ProviderResponse, summary="Get provider")
async def get_provider(
    provider_id: str,
    manager: Annotated[ProviderLifecycleManager, Depends(get_lifecycle_manager)],
) -> ProviderResponse:
    """Get a provider's status.

    Raises:
        HTTPException: 404 if the provider is not configured
    """
    if provider_id not in manager.provider_urls:
        raise _not_found(ProviderNotFoundError(provider_id))
    return _provider_response(manager, provider_id)


@router.post(
    "/{provider_id}/enable",
    response_model=ProviderResponse,
    summary="Enable a provider",
)
async def enable_provider(
    provider_id: str,
    manager: Annotated[ProviderLifecycleManager, Depends(get_lifecycle_manager)],
) -> ProviderResponse:
    """Open a session with the provider and register its capabilities.

    Enabling an already enabled provider is a no-op.

    Raises:
        HTTPException: 404 if the provider is not configured
        HTTPException: 502 if the session cannot be established
    """
    try:
        await manager.enable(provider_id)
    except ProviderNotFoundError as e:
        raise _not_found(e)
    except ConnectError as e:
        raise HTTPException(
            status_code=502,
            detail={
                "error": {
                    "code": f"connect_{e.kind.value}",
                    "message": str(e),
                    "details": {"provider_id": provider_id},
                }
            },
        )
    except (TransportError, ProviderError) as e:
        raise HTTPException(
            status_code=502,
            detail={
                "error": {
                    "code": "provider_error",
                    "message": str(e),
                    "details": {"provider_id": provider_id},
                }
            },
        )

    return _provider_response(manager, provider_id)


@router.post(
    "/{provider_id}/disable",
    response_model=ProviderResponse,
    summary="Disable a provider",
)
async def disable_provider(
    provider_id: str,
    manager: Annotated[ProviderLifecycleManager, Depends(get_lifecycle_manager)],
) -> ProviderResponse:
    """Close the provider's session and drop its capabilities.

    Disabling a provider that is not enabled is a no-op.

    Raises:
        HTTPException: 404 if the provider is not configured
    """
    try:
        await manager.disable(provider_id)
    except ProviderNotFoundError as e:
        raise _not_found(e)

    return _provider_response(manager, provider_id)
