"""Persona template table and advisor-to-persona lookup."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from advisor_orchestrator.core.errors import ConfigurationError
from advisor_orchestrator.core.models import AdvisorProfile

if TYPE_CHECKING:
    from advisor_orchestrator.analysis.question_classifier import QuestionInsight

logger = logging.getLogger(__name__)

DEFAULT_PERSONA_FILE = Path(__file__).parent / "default_personas.yaml"

# Role words too common to identify a persona on their own
_ROLE_NOISE = frozenset(["and", "the", "for", "head", "lead", "senior", "expert", "of"])


class PersonaTemplateSet(BaseModel):
    """Response style and templates for one persona."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    role: str
    aliases: list[str] = Field(default_factory=list)
    role_context: str = ""
    system_prompt: str = ""
    expertise_areas: list[str] = Field(default_factory=list)
    response_style: str = ""
    frameworks: list[str] = Field(default_factory=list)
    templates: dict[str, str] = Field(default_factory=dict)
    generic_template: str = ""

    def template_for(self, question_type: str) -> str | None:
        """Template stored for ``question_type``, if any."""
        return self.templates.get(question_type)


class LookupStrategy(str, Enum):
    """How an advisor was matched to a persona, in the order tried."""

    EXACT_ID = "exact_id"
    ROLE = "role"
    PARTIAL_ROLE = "partial_role"


LOOKUP_ORDER = (LookupStrategy.EXACT_ID, LookupStrategy.ROLE, LookupStrategy.PARTIAL_ROLE)


@dataclass(frozen=True)
class PersonaMatch:
    """A resolved persona and the strategy that found it."""

    persona: PersonaTemplateSet
    strategy: LookupStrategy


def normalize_role(value: str) -> str:
    """Lower-case a role label and collapse punctuation to underscores."""
    return re.sub(r"[^a-z0-9]+", "_", value.lower()).strip("_")


def _role_tokens(value: str) -> set[str]:
    return {t for t in normalize_role(value).split("_") if len(t) > 2 and t not in _ROLE_NOISE}


class PersonaLibrary:
    """
    Lookup tables over a persona template table.

    Tables are built once at construction; ``resolve`` only reads them and
    is safe to call from concurrent dispatches.
    """

    def __init__(self, personas: list[PersonaTemplateSet]) -> None:
        self._personas = list(personas)
        self._by_id: dict[str, PersonaTemplateSet] = {}
        self._by_role: dict[str, PersonaTemplateSet] = {}

        for persona in self._personas:
            if persona.id in self._by_id:
                logger.warning("Duplicate persona id %s, keeping the later entry", persona.id)
            self._by_id[persona.id] = persona
            for key in [persona.role, *persona.aliases]:
                # First persona to claim a role keeps it
                self._by_role.setdefault(normalize_role(key), persona)

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "PersonaLibrary":
        """
        Load a persona table from YAML.

        Args:
            yaml_path: File with a top-level ``personas`` list.

        Returns:
            PersonaLibrary over the loaded personas.

        Raises:
            ConfigurationError: If the file cannot be read or validated.
        """
        try:
            with open(yaml_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            entries = data.get("personas", []) if isinstance(data, dict) else data
            personas = [PersonaTemplateSet.model_validate(entry) for entry in entries or []]
        except (OSError, yaml.YAMLError, ValidationError) as e:
            raise ConfigurationError(f"Invalid persona file {yaml_path}: {e}") from e

        logger.info("Loaded %d personas from %s", len(personas), yaml_path)
        return cls(personas)

    @classmethod
    def default(cls) -> "PersonaLibrary":
        """Library over the bundled persona table."""
        return cls.from_yaml(DEFAULT_PERSONA_FILE)

    @property
    def personas(self) -> list[PersonaTemplateSet]:
        return list(self._personas)

    def get(self, persona_id: str) -> PersonaTemplateSet | None:
        return self._by_id.get(persona_id)

    def resolve(self, advisor: AdvisorProfile) -> PersonaMatch | None:
        """
        Find the persona for an advisor.

        Strategies are tried in ``LOOKUP_ORDER``; the first hit wins.

        Args:
            advisor: Advisor to resolve.

        Returns:
            PersonaMatch, or None when no strategy matches.
        """
        for strategy in LOOKUP_ORDER:
            persona = self._lookup(strategy, advisor)
            if persona is not None:
                logger.debug(
                    "Advisor %s resolved to persona %s via %s",
                    advisor.id, persona.id, strategy.value,
                )
                return PersonaMatch(persona=persona, strategy=strategy)
        return None

    def _lookup(self, strategy: LookupStrategy, advisor: AdvisorProfile) -> PersonaTemplateSet | None:
        if strategy == LookupStrategy.EXACT_ID:
            for key in (advisor.persona_id, advisor.id):
                if key and key in self._by_id:
                    return self._by_id[key]
            return None

        role = normalize_role(advisor.role or "")
        if not role:
            return None

        if strategy == LookupStrategy.ROLE:
            return self._by_role.get(role)

        return self._partial_role(role)

    def _partial_role(self, role: str) -> PersonaTemplateSet | None:
        # Whole-word containment first, in table order
        bounded_role = f"_{role}_"
        for key, persona in self._by_role.items():
            bounded_key = f"_{key}_"
            if bounded_key in bounded_role or bounded_role in bounded_key:
                return persona

        wanted = _role_tokens(role)
        best: PersonaTemplateSet | None = None
        best_overlap = 0
        for key, persona in self._by_role.items():
            overlap = len(wanted & _role_tokens(key))
            if overlap > best_overlap:
                best, best_overlap = persona, overlap
        return best


# Professional frameworks by domain and question type, used when no persona matched
DOMAIN_FRAMEWORKS: dict[str, dict[str, list[str]]] = {
    "product_development": {
        "product_ideation": ["Jobs-to-be-Done Framework", "Design Thinking", "Lean Startup Methodology"],
        "strategy": ["North Star Framework", "OKRs", "Product-Market Fit Canvas"],
        "technical": ["System Design Principles", "API Design Best Practices", "Scalability Patterns"],
        "general": ["Product Management Framework", "User-Centered Design", "Agile Methodology"],
    },
    "clinical_research": {
        "product_ideation": ["Target Product Profile", "Regulatory Strategy Framework"],
        "strategy": ["Clinical Development Plan", "Drug Development Lifecycle", "Regulatory Pathway Planning"],
        "technical": ["ICH Guidelines", "FDA Guidance Documents", "Clinical Data Standards"],
        "general": ["Clinical Research Best Practices", "Patient Safety Protocols"],
    },
    "education": {
        "product_ideation": ["Learning Experience Design", "Backward Design"],
        "strategy": ["Backward Design", "Curriculum Mapping", "Learning Analytics Strategy"],
        "technical": ["Learning Management Systems", "Adaptive Learning Technology"],
        "general": ["Bloom's Taxonomy", "Competency-Based Learning"],
    },
    "natural_remedies": {
        "product_ideation": ["Integrative Medicine Model", "Holistic Health Framework"],
        "strategy": ["Integrative Medicine Model", "Wellness Program Design"],
        "technical": ["Evidence-Based Natural Therapies", "Mind-Body Integration"],
        "general": ["Integrative Medicine Model", "Holistic Assessment Framework", "Patient-Centered Care"],
    },
}

GENERAL_FRAMEWORKS = ["Structured Problem Solving", "Stakeholder Analysis", "Industry Best Practices"]


def select_frameworks(
    insight: QuestionInsight | None,
    match: PersonaMatch | None = None,
    limit: int = 3,
) -> list[str]:
    """Persona frameworks when matched, otherwise the domain/type table."""
    if match is not None and match.persona.frameworks:
        return list(match.persona.frameworks[:limit])

    if insight is None:
        return GENERAL_FRAMEWORKS[:limit]

    by_type = DOMAIN_FRAMEWORKS.get(insight.domain)
    if not by_type:
        return GENERAL_FRAMEWORKS[:limit]
    return list(by_type.get(insight.question_type, by_type["general"])[:limit])
