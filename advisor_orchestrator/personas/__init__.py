"""Persona template table, lookup and prompt construction."""

from advisor_orchestrator.personas.library import (
    DEFAULT_PERSONA_FILE,
    DOMAIN_FRAMEWORKS,
    GENERAL_FRAMEWORKS,
    LOOKUP_ORDER,
    LookupStrategy,
    PersonaLibrary,
    PersonaMatch,
    PersonaTemplateSet,
    normalize_role,
    select_frameworks,
)
from advisor_orchestrator.personas.prompts import build_persona_prompt

__all__ = [
    "DEFAULT_PERSONA_FILE",
    "DOMAIN_FRAMEWORKS",
    "GENERAL_FRAMEWORKS",
    "LOOKUP_ORDER",
    "LookupStrategy",
    "PersonaLibrary",
    "PersonaMatch",
    "PersonaTemplateSet",
    "build_persona_prompt",
    "normalize_role",
    "select_frameworks",
]
