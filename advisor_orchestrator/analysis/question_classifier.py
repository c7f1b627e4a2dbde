"""Question classifier for domain, type and complexity analysis."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class Complexity(str, Enum):
    """Complexity tier of a question."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Urgency(str, Enum):
    """How urgently the asker wants an answer."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


GENERAL = "general"

DEFAULT_CONFIDENCE = 0.5
SINGLE_MATCH_CONFIDENCE = 0.7
MULTI_MATCH_CONFIDENCE = 0.9

SHORT_QUESTION_CHARS = 50
LONG_QUESTION_CHARS = 200
DENSE_KEYWORD_COUNT = 8


@dataclass(frozen=True)
class KeywordRule:
    """A label assigned when any of its keywords appears."""

    label: str
    keywords: frozenset[str]


@dataclass(frozen=True)
class QuestionInsight:
    """Structured judgment about one question."""

    domain: str
    question_type: str
    confidence: float
    keywords: tuple[str, ...]
    complexity: Complexity
    urgency: Urgency = Urgency.LOW

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "domain": self.domain,
            "question_type": self.question_type,
            "confidence": self.confidence,
            "keywords": list(self.keywords),
            "complexity": self.complexity.value,
            "urgency": self.urgency.value,
        }


class QuestionClassifier:
    """
    Classify a question without any model call.

    Rules are evaluated in order and the first rule with any matching
    keyword wins, so the order of ``DOMAIN_RULES`` and ``TYPE_RULES`` is
    significant. Instances hold no per-call state and can be shared.
    """

    STOP_WORDS = frozenset([
        "the", "and", "but", "for", "with", "are", "was", "were", "been",
        "have", "has", "had", "does", "did", "will", "would", "could",
        "should", "may", "might", "must", "can", "this", "that", "these",
        "those", "what", "where", "when", "why", "how", "who", "which",
        "whom", "our", "your", "you", "they", "them", "their", "its",
        "from", "into", "about", "any", "all", "some", "there", "here",
        "not", "just", "also", "very", "more", "most", "need", "want",
    ])

    # Domain rules, most specific vocabulary first
    DOMAIN_RULES = (
        KeywordRule("natural_remedies", frozenset([
            "natural", "holistic", "alternative", "herbal", "herb", "supplement",
            "wellness", "nutrition", "diet", "dietary", "lifestyle", "prevention",
            "traditional", "acupuncture", "naturopathic", "homeopathic",
            "organic", "detox", "healing", "remedy", "diabetic", "diabetes",
            "millet", "rice", "grain", "food", "tcm", "ayurveda",
        ])),
        KeywordRule("clinical_research", frozenset([
            "clinical", "trial", "patient", "treatment", "therapy", "drug",
            "medication", "diagnosis", "symptom", "disease", "medical",
            "healthcare", "regulatory", "fda", "approval", "safety",
            "efficacy", "protocol", "study", "endpoint",
        ])),
        KeywordRule("education", frozenset([
            "education", "learning", "curriculum", "student", "teacher",
            "course", "assessment", "pedagogy", "instruction", "classroom",
            "elearning", "training", "skill", "academic", "university", "school",
        ])),
        KeywordRule("product_development", frozenset([
            "product", "feature", "roadmap", "user", "market", "launch", "mvp",
            "prototype", "customer", "feedback", "analytics", "metric", "kpi",
            "growth", "monetization", "pricing", "competition", "positioning",
            "brand", "marketing", "sales", "startup", "business",
        ])),
    )

    # Type rules; informational words are last so any specific intent wins
    TYPE_RULES = (
        KeywordRule("strategy", frozenset([
            "strategy", "strategic", "plan", "planning", "approach", "framework",
            "methodology", "direction", "goal", "objective", "vision", "mission",
            "competitive", "positioning", "go-to-market",
        ])),
        KeywordRule("technical", frozenset([
            "technical", "implement", "implementation", "architecture", "system",
            "technology", "code", "software", "integration", "api", "database",
            "infrastructure", "scalability", "deployment",
        ])),
        KeywordRule("product_ideation", frozenset([
            "idea", "concept", "innovation", "innovative", "create", "develop",
            "design", "build", "novel", "brainstorm", "ideate", "invent",
        ])),
        KeywordRule("comparative", frozenset([
            "which", "better", "versus", "compare", "comparison", "difference",
            "prefer", "choose",
        ])),
        KeywordRule("informational", frozenset([
            "how", "what", "why", "explain", "describe", "understand", "overview",
        ])),
    )

    URGENCY_WORDS = frozenset([
        "urgent", "asap", "immediately", "quickly", "emergency", "critical",
        "deadline", "rush", "priority", "now",
    ])

    _TOKEN_PATTERN = re.compile(r"[a-z0-9]+(?:-[a-z0-9]+)*")
    _CAPS_PATTERN = re.compile(r"\b[A-Z]{2,}\b")

    def classify(self, question: str) -> QuestionInsight:
        """
        Classify a question.

        Args:
            question: Raw question text.

        Returns:
            QuestionInsight with domain, type, confidence and tiers.
        """
        text = (question or "").strip()
        lowered = text.lower()
        tokens = self._TOKEN_PATTERN.findall(lowered)
        # "vs" is too short to survive keyword filtering but is a strong signal
        tokens = ["versus" if t == "vs" else t for t in tokens]
        keywords = self.extract_keywords(tokens)

        domain, domain_hits = self._first_match(self.DOMAIN_RULES, keywords)
        question_type, type_hits = self._first_match(self.TYPE_RULES, tokens)

        insight = QuestionInsight(
            domain=domain,
            question_type=question_type,
            confidence=self._confidence(domain_hits, type_hits),
            keywords=tuple(keywords),
            complexity=self._complexity(text, keywords),
            urgency=self._urgency(text, tokens),
        )
        logger.debug(
            "Classified question as %s/%s (confidence=%.2f, complexity=%s)",
            insight.domain, insight.question_type, insight.confidence, insight.complexity.value,
        )
        return insight

    def extract_keywords(self, tokens: list[str]) -> list[str]:
        """Tokens longer than two characters that are not stop words, deduplicated."""
        seen: set[str] = set()
        keywords = []
        for token in tokens:
            if len(token) <= 2 or token in self.STOP_WORDS or token in seen:
                continue
            seen.add(token)
            keywords.append(token)
        return keywords

    def _first_match(self, rules: tuple[KeywordRule, ...], tokens: list[str]) -> tuple[str, int]:
        """Label of the first rule any token matches, with its distinct hit count."""
        for rule in rules:
            hits = {token for token in tokens if _matches(token, rule.keywords)}
            if hits:
                return rule.label, len(hits)
        return GENERAL, 0

    def _confidence(self, domain_hits: int, type_hits: int) -> float:
        hits = domain_hits + type_hits
        if hits >= 2:
            return MULTI_MATCH_CONFIDENCE
        if hits == 1:
            return SINGLE_MATCH_CONFIDENCE
        return DEFAULT_CONFIDENCE

    def _complexity(self, text: str, keywords: list[str]) -> Complexity:
        if len(text) > LONG_QUESTION_CHARS or len(keywords) > DENSE_KEYWORD_COUNT:
            return Complexity.HIGH
        if len(text) < SHORT_QUESTION_CHARS:
            return Complexity.LOW
        return Complexity.MEDIUM

    def _urgency(self, text: str, tokens: list[str]) -> Urgency:
        score = 2 * sum(1 for token in set(tokens) if token in self.URGENCY_WORDS)
        score += text.count("!")
        score += len(self._CAPS_PATTERN.findall(text))

        if score >= 2:
            return Urgency.HIGH
        if score >= 1:
            return Urgency.MEDIUM
        return Urgency.LOW


def _matches(token: str, keywords: frozenset[str]) -> bool:
    """Match a token against keywords, tolerating simple plurals."""
    if token in keywords:
        return True
    if token.endswith("ies") and token[:-3] + "y" in keywords:
        return True
    if token.endswith("es") and token[:-2] in keywords:
        return True
    return token.endswith("s") and not token.endswith("ss") and token[:-1] in keywords
