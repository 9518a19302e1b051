"""Pydantic models for provider API responses."""

from pydantic import BaseModel, Field


class ProviderResponse(BaseModel):
    """A configured capability provider and its current status."""

    provider_id: str = Field(description="Configured provider id")
    url: str = Field(description="Base URL of the provider")
    enabled: bool = Field(description="Whether a session is open")
    session_id: str | None = Field(default=None, description="Current session id")
    capabilities: list[str] = Field(
        default_factory=list, description="Capability names exposed by the provider"
    )


class ProviderListResponse(BaseModel):
    """Response body for GET /api/v1/providers."""

    providers: list[ProviderResponse] = Field(default_factory=list)
