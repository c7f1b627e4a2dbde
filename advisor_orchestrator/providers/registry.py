"""Registry of configured providers and their failover order."""

from __future__ import annotations

import logging
import threading

from advisor_orchestrator.core.errors import ConfigurationError
from advisor_orchestrator.providers.base import LLMProvider, ProviderDescriptor
from advisor_orchestrator.providers.credentials import is_valid_credential

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """
    Holds provider descriptors and implementations.

    Registration order is preserved and drives failover after the active
    provider. Registering a name twice replaces the earlier entry but keeps
    its original position.
    """

    def __init__(self) -> None:
        self._descriptors: dict[str, ProviderDescriptor] = {}
        self._providers: dict[str, LLMProvider | None] = {}
        self._active: str | None = None
        self._lock = threading.Lock()

    def register(
        self,
        descriptor: ProviderDescriptor,
        provider: LLMProvider | None = None,
    ) -> ProviderDescriptor:
        """
        Register (or replace) a provider.

        The descriptor's ``available`` flag is recomputed: the credential must
        pass its format check and an implementation must be present and report
        itself available.

        Args:
            descriptor: Provider configuration.
            provider: Implementation; None registers a configured but
                unusable provider.

        Returns:
            The stored descriptor.
        """
        available = (
            descriptor.available
            and provider is not None
            and provider.is_available
            and is_valid_credential(descriptor.name, descriptor.credential)
        )
        stored = descriptor.with_credential(descriptor.credential, available)

        with self._lock:
            self._descriptors[descriptor.name] = stored
            self._providers[descriptor.name] = provider
            if self._active is None:
                self._active = descriptor.name

        if not available:
            logger.info("Provider %s registered but unavailable", descriptor.name)
        else:
            logger.debug("Provider %s registered", descriptor.name)
        return stored

    def set_active(self, name: str) -> None:
        """Make ``name`` the first provider tried."""
        with self._lock:
            if name not in self._descriptors:
                raise ConfigurationError(
                    f"Provider '{name}' is not registered. "
                    f"Registered: {list(self._descriptors)}"
                )
            self._active = name
        logger.info("Active provider set to %s", name)

    @property
    def active(self) -> str | None:
        return self._active

    def rotate_credential(self, name: str, credential: str) -> ProviderDescriptor:
        """Replace a provider's credential and re-run the availability check."""
        with self._lock:
            descriptor = self._require(name)
            provider = self._providers.get(name)
            available = (
                provider is not None
                and provider.is_available
                and is_valid_credential(name, credential)
            )
            rotated = descriptor.with_credential(credential, available)
            self._descriptors[name] = rotated
        logger.info("Credential rotated for %s (available=%s)", name, available)
        return rotated

    def order(self, preferred: str | None = None) -> list[str]:
        """
        Failover order: preferred (or active) first, then registration order.

        Args:
            preferred: Provider to put first instead of the active one.

        Returns:
            Every registered provider name, each exactly once.
        """
        with self._lock:
            names = list(self._descriptors)
            if preferred is not None and preferred not in self._descriptors:
                raise ConfigurationError(f"Provider '{preferred}' is not registered")
            head = preferred or self._active

        if head is None:
            return names
        return [head] + [name for name in names if name != head]

    def get(self, name: str) -> tuple[ProviderDescriptor, LLMProvider | None]:
        """Descriptor and implementation for ``name``."""
        with self._lock:
            return self._require(name), self._providers.get(name)

    def is_available(self, name: str) -> bool:
        with self._lock:
            descriptor = self._descriptors.get(name)
            return bool(descriptor and descriptor.available)

    def any_available(self) -> bool:
        with self._lock:
            return any(d.available for d in self._descriptors.values())

    def status(self) -> dict[str, bool]:
        """Availability of every registered provider."""
        with self._lock:
            return {name: d.available for name, d in self._descriptors.items()}

    def names(self) -> list[str]:
        with self._lock:
            return list(self._descriptors)

    def __contains__(self, name: object) -> bool:
        return name in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)

    def _require(self, name: str) -> ProviderDescriptor:
        descriptor = self._descriptors.get(name)
        if descriptor is None:
            raise ConfigurationError(f"Provider '{name}' is not registered")
        return descriptor
