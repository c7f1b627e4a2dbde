"""Configuration module for Advisor Orchestrator."""

from advisor_orchestrator.config.settings import (
    CacheSettings,
    DispatchSettings,
    ProviderSettings,
    RetrySettings,
    Settings,
    get_settings,
    load_settings_from_yaml,
)

__all__ = [
    "CacheSettings",
    "DispatchSettings",
    "ProviderSettings",
    "RetrySettings",
    "Settings",
    "get_settings",
    "load_settings_from_yaml",
]
