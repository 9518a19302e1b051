"""Configuration module for toolchat-server using pydantic-settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ToolchatServerSettings(BaseSettings):
    """Main configuration settings for toolchat-server.

    All settings can be overridden via environment variables with the TOOLCHAT_ prefix.
    For example, TOOLCHAT_OLLAMA_HOST will override the ollama_host setting.
    Complex values are given as JSON, e.g.
    TOOLCHAT_PROVIDERS='{"figma": "http://localhost:3333"}'.
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Ollama
    ollama_host: str = "http://localhost:11434"
    model: str = "llama3.2:latest"
    system_prompt: str | None = None

    # Capability providers (id -> base URL)
    providers: dict[str, str] = Field(
        default_factory=lambda: {"figma": "http://localhost:3333"}
    )
    enabled_providers: list[str] = Field(default_factory=list)

    # Provider session protocol
    sse_path: str = "/sse"
    session_event: str = "endpoint"
    messages_path: str = "/messages"
    handshake_timeout: float = 5.0
    request_timeout: float = 30.0

    # CORS
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="TOOLCHAT_")
