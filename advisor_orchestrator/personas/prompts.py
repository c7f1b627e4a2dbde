"""Prompt construction for live persona responses."""

from __future__ import annotations

from advisor_orchestrator.analysis.question_classifier import QuestionInsight
from advisor_orchestrator.core.models import AdvisorProfile
from advisor_orchestrator.personas.library import PersonaMatch, select_frameworks

PERSONA_PROMPT_TEMPLATE = """{system_prompt}

ROLE CONTEXT: {role_context}

EXPERTISE AREAS: {expertise}

RESPONSE STYLE: {response_style}

FRAMEWORKS TO REFERENCE: {frameworks}

QUESTION TYPE: {question_type} ({domain})

USER QUESTION: "{question}"

OPENING: {opening}

Provide a detailed, expert-level response that reflects your background. Use specific
examples from your experience and reference the relevant frameworks where they help."""

GENERIC_PROMPT_TEMPLATE = """You are {advisor_name}, {role}.

EXPERTISE: {expertise}

BACKGROUND: {background}

FRAMEWORKS TO REFERENCE: {frameworks}

USER QUESTION: "{question}"

Provide a professional response with specific, actionable insights that reflect your
role and experience."""


def build_persona_prompt(
    advisor: AdvisorProfile,
    question: str,
    insight: QuestionInsight,
    match: PersonaMatch | None,
) -> str:
    """
    Compose the live-generation prompt for one advisor.

    Args:
        advisor: Advisor the answer is written as.
        question: The user's question.
        insight: Classification of the question.
        match: Resolved persona, or None for a role-labeled prompt.

    Returns:
        Prompt text.
    """
    question = question.strip() or "Please provide general guidance."
    frameworks = ", ".join(select_frameworks(insight, match))

    if match is None:
        return GENERIC_PROMPT_TEMPLATE.format(
            advisor_name=advisor.name,
            role=advisor.role or "an advisor",
            expertise=advisor.expertise or advisor.role or "general advisory",
            background=advisor.background or "Not provided",
            frameworks=frameworks,
            question=question,
        )

    persona = match.persona
    opening = persona.template_for(insight.question_type) or persona.generic_template
    return PERSONA_PROMPT_TEMPLATE.format(
        system_prompt=persona.system_prompt or f"You are {advisor.name}, {persona.role}.",
        role_context=persona.role_context or persona.role,
        expertise=", ".join(persona.expertise_areas) or persona.role,
        response_style=persona.response_style or "Professional and actionable",
        frameworks=frameworks,
        question_type=insight.question_type,
        domain=insight.domain,
        question=question,
        opening=opening or "Start from your most relevant experience.",
    )
