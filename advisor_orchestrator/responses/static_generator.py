"""Deterministic persona-aware fallback responses.

Used when live generation is exhausted or disabled. Pure string assembly
with no I/O, so it is always available. ``generate`` never raises: if a
template cannot be assembled it returns a short apology at minimum
confidence.
"""

from __future__ import annotations

import logging
from enum import Enum

from advisor_orchestrator.analysis.question_classifier import QuestionClassifier, QuestionInsight
from advisor_orchestrator.core.models import (
    AdvisorProfile,
    AdvisorResponse,
    ErrorInfo,
    ResponseKind,
)
from advisor_orchestrator.metrics.observability import (
    Component,
    EventSink,
    GenerationEvent,
    LoggingEventSink,
    Timer,
)
from advisor_orchestrator.personas.library import PersonaLibrary, PersonaMatch, select_frameworks

logger = logging.getLogger(__name__)


class StaticPath(str, Enum):
    """How a fallback response was assembled."""

    CATEGORY = "category"  # Persona template for the detected question type
    PERSONA = "persona"  # Persona matched, generic persona template
    GENERIC = "generic"  # No persona, role-labeled template
    APOLOGY = "apology"  # Assembly failed


PATH_CONFIDENCE: dict[StaticPath, float] = {
    StaticPath.CATEGORY: 0.7,
    StaticPath.PERSONA: 0.6,
    StaticPath.GENERIC: 0.45,
    StaticPath.APOLOGY: 0.1,
}

TYPE_INSIGHTS: dict[str, tuple[str, list[str]]] = {
    "product_ideation": ("Key Insights for Product Ideation", [
        "Focus on user problems and market validation",
        "Consider scalability and technical feasibility early",
        "Validate assumptions through rapid prototyping",
        "Align with business objectives and success metrics",
    ]),
    "strategy": ("Strategic Considerations", [
        "Analyze the competitive landscape and your positioning",
        "Define clear success metrics and KPIs",
        "Consider resource allocation and timeline constraints",
        "Plan for risk mitigation and contingency scenarios",
    ]),
    "technical": ("Technical Implementation Insights", [
        "Prioritize scalability and maintainability",
        "Consider security and compliance requirements",
        "Plan for monitoring and observability",
        "Design for failure and recovery scenarios",
    ]),
    "comparative": ("Comparing the Options", [
        "Define the outcome that matters most before comparing",
        "Weigh the evidence behind each option, not just the claims",
        "Consider individual context, constraints and preferences",
        "Prefer the option you can monitor and adjust over time",
    ]),
    "informational": ("Key Points to Understand", [
        "Start from the fundamentals and the terms that matter",
        "Separate well-established findings from open questions",
        "Relate the concepts to your specific situation",
        "Identify trusted sources for deeper reading",
    ]),
    "general": ("Professional Insights", [
        "Apply industry best practices and proven methodologies",
        "Consider stakeholder impact and change management",
        "Focus on measurable outcomes and continuous improvement",
        "Balance short-term needs with long-term vision",
    ]),
}

TYPE_STEPS: dict[str, list[str]] = {
    "product_ideation": [
        "**Discovery Phase:** Research user needs and market opportunities",
        "**Ideation Phase:** Generate and validate concepts through prototyping",
        "**Development Phase:** Build an MVP with user feedback integration",
        "**Launch Phase:** Execute the go-to-market plan with success metrics",
    ],
    "strategy": [
        "**Analysis Phase:** Conduct thorough market and competitive analysis",
        "**Strategy Phase:** Define vision, objectives and strategic initiatives",
        "**Implementation Phase:** Execute with clear accountability and milestones",
        "**Review Phase:** Monitor progress and adjust the strategy as needed",
    ],
    "technical": [
        "**Requirements Phase:** Define technical specifications and constraints",
        "**Design Phase:** Create the architecture and implementation plan",
        "**Development Phase:** Build with testing and quality assurance",
        "**Deployment Phase:** Launch with monitoring and support systems",
    ],
    "comparative": [
        "**Clarify Phase:** Agree on the criteria that decide between the options",
        "**Evidence Phase:** Gather the strongest available evidence for each option",
        "**Trial Phase:** Try the preferred option in a limited, measurable way",
        "**Review Phase:** Compare results against the criteria and adjust",
    ],
}

DEFAULT_STEPS = [
    "**Assessment Phase:** Analyze the current state and define clear objectives",
    "**Planning Phase:** Develop a detailed plan with timeline and resources",
    "**Execution Phase:** Implement with regular checkpoints and feedback loops",
    "**Evaluation Phase:** Measure results and iterate based on learnings",
]


class _TemplateFields(dict):
    """Leave unknown placeholders untouched."""

    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


class StaticResponseGenerator:
    """
    Build fallback responses from the persona template table.

    Confidence is fixed per path and always below the live floor:
    category > persona > generic > apology.
    """

    def __init__(
        self,
        personas: PersonaLibrary,
        classifier: QuestionClassifier | None = None,
        event_sink: EventSink | None = None,
    ) -> None:
        """
        Initialize the generator.

        Args:
            personas: Persona lookup tables.
            classifier: Used when a caller passes no insight.
            event_sink: Receiver for generation events.
        """
        self.personas = personas
        self.classifier = classifier or QuestionClassifier()
        self.event_sink = event_sink or LoggingEventSink()

    def generate(
        self,
        advisor: AdvisorProfile,
        question: str,
        insight: QuestionInsight | None = None,
        error_info: ErrorInfo | None = None,
    ) -> AdvisorResponse:
        """
        Generate a fallback response for one advisor.

        Args:
            advisor: Advisor answering.
            question: The user's question.
            insight: Classification of the question; computed when None.
            error_info: Diagnostic for the live failure that led here.

        Returns:
            AdvisorResponse with kind FALLBACK. Never raises.
        """
        with Timer() as timer:
            try:
                if insight is None:
                    insight = self.classifier.classify(question)
                match = self.personas.resolve(advisor)
                content, path = self._compose(advisor, insight, match)
                frameworks = tuple(select_frameworks(insight, match))
                persona_id = match.persona.id if match else None
            except Exception as e:
                logger.error("Static response assembly failed for %s: %s", getattr(advisor, "id", "?"), e)
                content, path = self._apology(advisor), StaticPath.APOLOGY
                frameworks, persona_id = (), None

        self.event_sink.emit(GenerationEvent(
            component=Component.STATIC_GENERATOR,
            outcome=path.value,
            latency_seconds=timer.elapsed,
            labels={"advisor": str(getattr(advisor, "id", ""))},
        ))

        return AdvisorResponse(
            advisor_id=str(getattr(advisor, "id", "")),
            advisor_name=str(getattr(advisor, "name", "")),
            content=content,
            kind=ResponseKind.FALLBACK,
            confidence=PATH_CONFIDENCE[path],
            error_info=error_info,
            frameworks=frameworks,
            insight=insight,
            processing_seconds=timer.elapsed,
            metadata={"static_path": path.value, "persona_id": persona_id},
        )

    def _compose(
        self,
        advisor: AdvisorProfile,
        insight: QuestionInsight,
        match: PersonaMatch | None,
    ) -> tuple[str, StaticPath]:
        question_type = insight.question_type

        if match is not None:
            persona = match.persona
            typed = persona.template_for(question_type)
            if typed:
                opening, path = typed, StaticPath.CATEGORY
            else:
                opening = persona.generic_template or (
                    f"As a specialist in {persona.role}, here is how I would approach this."
                )
                path = StaticPath.PERSONA
            expertise = ", ".join(persona.expertise_areas[:3]) or persona.role
            style = (persona.response_style or "practical, evidence-based advice").rstrip(".")
            closing = (
                f"*Drawing from my expertise in {expertise}, this approach reflects "
                f"{style[0].lower() + style[1:]}.*"
            )
        else:
            expertise = advisor.expertise or advisor.role or "professional expertise"
            background = advisor.background or "experience"
            opening = (
                f"As {advisor.name}, {advisor.role or 'advisor'}, and based on my {background} "
                f"and {expertise}, here is my perspective on your question."
            )
            path = StaticPath.GENERIC
            closing = (
                f"*This recommendation draws from {expertise} and focuses on practical, "
                f"implementable solutions.*"
            )

        fields = _TemplateFields(
            advisor_name=advisor.name,
            role=advisor.role,
            expertise=expertise,
            domain=insight.domain.replace("_", " "),
        )
        opening = opening.strip().format_map(fields)

        heading, points = TYPE_INSIGHTS.get(question_type, TYPE_INSIGHTS["general"])
        steps = TYPE_STEPS.get(question_type, DEFAULT_STEPS)
        frameworks = select_frameworks(insight, match)

        sections = [
            opening,
            f"**{heading}:**\n" + "\n".join(f"• {point}" for point in points),
            "**Recommended Approach:**\n" + "\n".join(
                f"{i}. {step}" for i, step in enumerate(steps, start=1)
            ),
        ]
        if frameworks:
            sections.append(f"**Relevant Frameworks:** {', '.join(frameworks)}")
        sections.append(closing)

        return "\n\n".join(sections), path

    @staticmethod
    def _apology(advisor: AdvisorProfile) -> str:
        name = getattr(advisor, "name", "") or "Your advisor"
        role = getattr(advisor, "role", "") or "advisor"
        return (
            f"{name} ({role}) is unable to provide a detailed answer right now. "
            f"Please try again shortly."
        )
