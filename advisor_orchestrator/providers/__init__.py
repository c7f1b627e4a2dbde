"""Provider abstraction for text-generation backends.

No transport ships with this package. A host wires its own clients in either
by subclassing ``LLMProvider`` or by wrapping a function in
``CallableProvider``, then registers them with a ``ProviderRegistry``:

    registry = ProviderRegistry()
    registry.register(
        ProviderDescriptor(name="openai", model="gpt-4o-mini", credential=key),
        CallableProvider("openai", my_openai_call),
    )

Credentials are format-checked at registration; a provider whose credential
fails the check stays registered but is never attempted.
"""

from advisor_orchestrator.core.errors import EmptyResponseError, ProviderError
from advisor_orchestrator.providers.base import (
    CallableProvider,
    LLMProvider,
    ProviderDescriptor,
    ResolvedCall,
)
from advisor_orchestrator.providers.credentials import (
    CREDENTIAL_RULES,
    CredentialRule,
    is_valid_credential,
)
from advisor_orchestrator.providers.registry import ProviderRegistry

__all__ = [
    # Base classes and types
    "CallableProvider",
    "LLMProvider",
    "ProviderDescriptor",
    "ResolvedCall",
    # Failures
    "EmptyResponseError",
    "ProviderError",
    # Credentials
    "CREDENTIAL_RULES",
    "CredentialRule",
    "is_valid_credential",
    # Registry
    "ProviderRegistry",
]
