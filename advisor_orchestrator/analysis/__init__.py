"""Question analysis module."""

from advisor_orchestrator.analysis.question_classifier import (
    Complexity,
    KeywordRule,
    QuestionClassifier,
    QuestionInsight,
    Urgency,
)

__all__ = [
    "Complexity",
    "KeywordRule",
    "QuestionClassifier",
    "QuestionInsight",
    "Urgency",
]
