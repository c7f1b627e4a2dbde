"""Pydantic settings for Advisor Orchestrator configuration."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml


class ProviderSettings(BaseModel):
    """Credential and default parameters for one provider."""

    api_key: str = ""
    model: str = ""
    temperature: float = 0.7
    max_tokens: int = 800
    timeout: float = 15.0  # Per attempt, seconds
    enabled: bool = True


class RetrySettings(BaseModel):
    """Backoff for retrying a single provider."""

    max_retries: int = 2
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 10.0


class CacheSettings(BaseModel):
    """Response cache settings."""

    enabled: bool = True
    ttl_seconds: float = 300.0  # 5 min
    sweep_threshold: int = 100


class DispatchSettings(BaseModel):
    """Fan-out limits for advisor dispatch."""

    max_concurrency: int = 10
    advisor_timeout: float | None = None  # Whole-advisor limit, None = unbounded


class Settings(BaseSettings):
    """Main settings for Advisor Orchestrator."""

    model_config = SettingsConfigDict(
        env_prefix="ADVISOR_ORCHESTRATOR_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # General
    debug: bool = False
    log_level: str = "INFO"

    # Providers
    default_provider: str = "openai"
    providers: dict[str, ProviderSettings] = Field(default_factory=dict)

    # Resilience
    retry: RetrySettings = Field(default_factory=RetrySettings)

    # Caching
    cache: CacheSettings = Field(default_factory=CacheSettings)

    # Dispatch
    dispatch: DispatchSettings = Field(default_factory=DispatchSettings)

    # Fallback
    fallback_to_static: bool = True
    persona_file: str | None = None

    # Paths
    metrics_dir: str | None = None

    def get_enabled_providers(self) -> list[str]:
        """Get list of enabled provider names, in configuration order."""
        return [name for name, cfg in self.providers.items() if cfg.enabled]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def load_settings_from_yaml(yaml_path: Path) -> Settings:
    """Load settings from a YAML file."""
    with open(yaml_path, encoding="utf-8") as f:
        data = yaml.safe_load(f)

    return Settings.model_validate(data or {})


def get_default_config() -> dict[str, Any]:
    """Get default configuration as a dictionary."""
    return Settings().model_dump()
