"""Configuration management for aperonix.

This module provides typed configuration classes using pydantic-settings.
Configuration is loaded from environment variables with optional .env file support.
"""

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = [
    "DEFAULT_MODELS",
    "DEFAULT_SYSTEM_PROMPT",
    "PROXY_SYSTEM_PROMPT",
    "AperonixConfig",
    "IdentitySettings",
    "ProviderSettings",
    "ProxySettings",
    "RedisSettings",
    "StorageSettings",
]

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"

# Most capable first, down to the widely available baseline
DEFAULT_MODELS = [
    "gemini-2.5-flash",
    "gemini-2.0-flash",
    "gemini-1.5-flash",
    "gemini-pro",
]

DEFAULT_SYSTEM_PROMPT = (
    "You are Aperonix AI, a highly intelligent, helpful, and friendly AI assistant.\n"
    "Provide accurate, detailed, and well-structured responses.\n"
    "Format responses using Markdown when appropriate (headers, bold, code blocks, lists).\n"
    "Be concise yet thorough. Always be respectful and professional."
)

PROXY_SYSTEM_PROMPT = (
    "You are Aperonix AI, a highly intelligent, helpful, and friendly AI assistant "
    "powered by Google Gemini. Provide accurate, detailed, well-structured responses. "
    "Use Markdown formatting where appropriate."
)


class ProviderSettings(BaseSettings):
    """Gemini provider settings used by the browser-side client.

    The API key is read from APERONIX_PROVIDER_API_KEY, falling back
    to the GEMINI_API_KEY variable shared with the proxy.
    """

    model_config = SettingsConfigDict(
        env_prefix="APERONIX_PROVIDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("APERONIX_PROVIDER_API_KEY", "GEMINI_API_KEY"),
    )
    base_url: str = GEMINI_API_BASE
    models: list[str] = Field(default_factory=lambda: list(DEFAULT_MODELS))
    timeout_seconds: float = 60.0

    # Generation parameters
    temperature: float = 0.8
    top_k: int = 40
    top_p: float = 0.95
    max_output_tokens: int = 8192  # 2048 for latency-sensitive deployments
    safety_settings_enabled: bool = False
    system_prompt_mode: Literal["instruction", "prepended_turn"] = "instruction"


class StorageSettings(BaseSettings):
    """Persistence settings for the conversation store."""

    model_config = SettingsConfigDict(
        env_prefix="APERONIX_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    backend: Literal["file", "memory", "redis"] = "file"
    path: Path = Path("~/.aperonix/state.json")
    key_prefix: str = "aperonix-"


class RedisSettings(BaseSettings):
    """Redis connection settings (optional).

    Only used when the storage backend is "redis".
    """

    model_config = SettingsConfigDict(
        env_prefix="APERONIX_REDIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    url: str | None = None
    enabled: bool = True


class IdentitySettings(BaseSettings):
    """Fixed identity used to answer "who are you" questions locally."""

    model_config = SettingsConfigDict(
        env_prefix="APERONIX_IDENTITY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    assistant_name: str = "Aperonix"
    owner: str = "Mohammad Khan"
    delay_seconds: float = 0.5


class ProxySettings(BaseSettings):
    """Settings for the serverless proxy endpoint.

    The credential is read from the process environment on the server;
    it never reaches the browser.
    """

    model_config = SettingsConfigDict(
        env_prefix="APERONIX_PROXY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("APERONIX_PROXY_API_KEY", "GEMINI_API_KEY"),
    )
    base_url: str = GEMINI_API_BASE
    models: list[str] = Field(default_factory=lambda: ["gemini-2.0-flash"])
    timeout_seconds: float = 60.0
    max_output_tokens: int = 8192
    system_prompt: str = PROXY_SYSTEM_PROMPT
    empty_response_text: str = "No response received."
    allow_origins: list[str] = Field(default_factory=lambda: ["*"])


class AperonixConfig(BaseSettings):
    """Main configuration aggregating all settings.

    Example usage:
        config = AperonixConfig()
        models = config.provider.models
    """

    model_config = SettingsConfigDict(
        env_prefix="APERONIX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Component settings (nested)
    provider: ProviderSettings = Field(default_factory=ProviderSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    identity: IdentitySettings = Field(default_factory=IdentitySettings)

    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    title_max_length: int = 48

    @property
    def redis_enabled(self) -> bool:
        """Check if Redis persistence is enabled and configured."""
        return self.redis.enabled and self.redis.url is not None
