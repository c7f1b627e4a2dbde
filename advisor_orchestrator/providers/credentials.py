"""Basic credential format checks.

These never contact a provider; they only reject credentials that cannot
possibly work so the provider is marked unavailable instead of attempted.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CredentialRule:
    """Format requirements for one provider's credential."""

    prefix: str = ""
    min_length: int = 10
    required: bool = True


CREDENTIAL_RULES: dict[str, CredentialRule] = {
    "openai": CredentialRule(prefix="sk-", min_length=20),
    "anthropic": CredentialRule(prefix="sk-ant-", min_length=20),
    "gemini": CredentialRule(min_length=20),  # No standard prefix
    "local": CredentialRule(required=False),
}

DEFAULT_RULE = CredentialRule()


def is_valid_credential(provider: str, credential: str | None) -> bool:
    """
    Check a credential against the provider's format rule.

    Args:
        provider: Provider name (case-insensitive).
        credential: Credential material, possibly empty.

    Returns:
        True if the credential passes (or none is required).
    """
    rule = CREDENTIAL_RULES.get(provider.lower(), DEFAULT_RULE)
    if not rule.required:
        return True
    if not credential or not isinstance(credential, str):
        return False
    return credential.startswith(rule.prefix) and len(credential) > rule.min_length
