"""
Configuration management using Pydantic Settings.

This module handles all environment-based configuration for the multimodel
assistant, including logging, provider credentials and the default race lineup.
"""

from typing import TYPE_CHECKING

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from multimodel.models.internal import ProviderModel


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: str = Field(
        default="development",
        description="Deployment environment",
        pattern="^(development|staging|production|test)$",
    )

    # Logging
    log_level: str = Field(
        default="WARNING",
        description="Logging level",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )
    log_format: str = Field(
        default="standard",
        description="Logging format",
        pattern="^(json|standard)$",
    )

    # Provider credentials (a provider without a key is not registered)
    anthropic_api_key: str | None = Field(
        default=None,
        description="Anthropic API key for Claude models",
    )
    openai_api_key: str | None = Field(
        default=None,
        description="OpenAI API key",
    )
    deepseek_api_key: str | None = Field(
        default=None,
        description="DeepSeek API key",
    )

    # Provider endpoints
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL for the OpenAI chat completions API",
    )
    deepseek_base_url: str = Field(
        default="https://api.deepseek.com/v1",
        description="Base URL for the DeepSeek OpenAI-compatible API",
    )

    # Default model used when a command names no model
    default_provider: str = Field(
        default="openai",
        description="Provider used for single-model requests",
        pattern="^(anthropic|openai|deepseek)$",
    )
    default_model: str = Field(
        default="gpt-5-mini",
        description="Model used for single-model requests",
        min_length=1,
    )

    # Race lineup
    race_models: list[str] = Field(
        default=[],
        description="Models raced when no -m option is given, as provider:model strings",
    )

    # Transport
    request_timeout: float = Field(
        default=180.0,
        description="HTTP timeout in seconds for a single provider request",
        gt=0,
        le=600,
    )
    max_tokens: int = Field(
        default=4096,
        description="Max tokens per completion",
        ge=1,
        le=64000,
    )
    temperature: float | None = Field(
        default=None,
        description="Sampling temperature (provider default when unset)",
        ge=0.0,
        le=2.0,
    )

    @property
    def default_provider_model(self) -> "ProviderModel":
        """Build the ProviderModel used when a request names no model."""
        # Lazy import to avoid circular dependencies
        from multimodel.models.internal import ProviderModel

        return ProviderModel(provider=self.default_provider, model=self.default_model)

    @property
    def race_provider_models(self) -> list["ProviderModel"]:
        """
        Parse `race_models` into ProviderModel instances.

        Returns:
            Parsed specifiers in configured order; empty when nothing is configured

        Raises:
            PreconditionError: If an entry is not a `provider:model` string
        """
        from multimodel.models.internal import ProviderModel

        return [ProviderModel.parse(spec) for spec in self.race_models]
